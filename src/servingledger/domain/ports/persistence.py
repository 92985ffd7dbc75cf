"""Ports for persisting ledger records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from servingledger.domain.model import (
    Client,
    ClientCreditState,
    CreditAdjustment,
    CreditAssignment,
    PackageTemplate,
    Submission,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ClientRepository(Repository[Client], Protocol):
    def get(self, client_id: UUID) -> Client | None: ...

    def list(self) -> list[Client]: ...


@runtime_checkable
class PackageTemplateRepository(Repository[PackageTemplate], Protocol):
    def get(self, package_id: str) -> PackageTemplate | None: ...

    def list(self) -> list[PackageTemplate]: ...


@runtime_checkable
class CreditAssignmentRepository(Repository[CreditAssignment], Protocol):
    """Assignments are superseded, never deleted."""

    def active_for(self, client_id: UUID) -> CreditAssignment | None: ...

    def for_client(self, client_id: UUID) -> list[CreditAssignment]: ...

    def supersede(self, assignment: CreditAssignment, *, at: datetime) -> None: ...


@runtime_checkable
class CreditStateRepository(Protocol):
    def get(self, client_id: UUID) -> ClientCreditState:
        """Return the client's state, or a zero state not yet stored."""
        ...

    def save(self, state: ClientCreditState) -> None: ...


@runtime_checkable
class SubmissionRepository(Repository[Submission], Protocol):
    def get(self, submission_id: UUID) -> Submission | None: ...

    def for_client(self, client_id: UUID) -> list[Submission]: ...

    def remove(self, submission: Submission) -> None: ...


@runtime_checkable
class CreditAdjustmentRepository(Repository[CreditAdjustment], Protocol):
    def for_client(self, client_id: UUID) -> list[CreditAdjustment]: ...
