"""Transaction boundary for ledger operations.

Every reconcile or submission change reads and writes inside one unit of work.
Leaving the ``with`` block without ``commit()`` discards all staged writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from servingledger.domain.ports.persistence import (
        ClientRepository,
        CreditAdjustmentRepository,
        CreditAssignmentRepository,
        CreditStateRepository,
        PackageTemplateRepository,
        SubmissionRepository,
    )


@dataclass(slots=True, frozen=True)
class LedgerRepositories:
    """Repositories bound to one unit of work."""

    clients: ClientRepository
    packages: PackageTemplateRepository
    assignments: CreditAssignmentRepository
    credit_states: CreditStateRepository
    submissions: SubmissionRepository
    adjustments: CreditAdjustmentRepository


@runtime_checkable
class LedgerUnitOfWork(Protocol):
    @property
    def repositories(self) -> LedgerRepositories: ...

    def __enter__(self) -> LedgerUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
