"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import select

from servingledger.adapters.sqlalchemy.errors import translate_store_errors
from servingledger.adapters.sqlalchemy.mappings import (
    client_table,
    credit_adjustment_table,
    credit_assignment_table,
    package_template_table,
    submission_table,
)
from servingledger.domain.model import (
    Client,
    ClientCreditState,
    CreditAdjustment,
    CreditAssignment,
    PackageTemplate,
    Submission,
)

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from sqlalchemy.orm import Session


class SqlAlchemyClientRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Client) -> None:
        self.session.add(entity)

    def get(self, client_id: uuid.UUID) -> Client | None:
        return self.session.get(Client, client_id)

    def list(self) -> list[Client]:
        stmt = select(Client).order_by(client_table.c.name)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyPackageTemplateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: PackageTemplate) -> None:
        self.session.add(entity)

    def get(self, package_id: str) -> PackageTemplate | None:
        return self.session.get(PackageTemplate, package_id)

    def list(self) -> list[PackageTemplate]:
        stmt = select(PackageTemplate).order_by(package_template_table.c.name)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyCreditAssignmentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CreditAssignment) -> None:
        self.session.add(entity)

    def active_for(self, client_id: uuid.UUID) -> CreditAssignment | None:
        stmt = (
            select(CreditAssignment)
            .where(credit_assignment_table.c.client_id == client_id)
            .where(credit_assignment_table.c.superseded_at.is_(None))
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def for_client(self, client_id: uuid.UUID) -> list[CreditAssignment]:
        stmt = (
            select(CreditAssignment)
            .where(credit_assignment_table.c.client_id == client_id)
            .order_by(credit_assignment_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def supersede(self, assignment: CreditAssignment, *, at: datetime) -> None:
        assignment.supersede(at)
        # Flush now so the active-assignment index never sees two active rows.
        with translate_store_errors():
            self.session.flush()


class SqlAlchemyCreditStateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, client_id: uuid.UUID) -> ClientCreditState:
        state = self.session.get(ClientCreditState, client_id)
        if state is None:
            return ClientCreditState(client_id=client_id)
        return state

    def save(self, state: ClientCreditState) -> None:
        self.session.add(state)


class SqlAlchemySubmissionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Submission) -> None:
        self.session.add(entity)

    def get(self, submission_id: uuid.UUID) -> Submission | None:
        return self.session.get(Submission, submission_id)

    def for_client(self, client_id: uuid.UUID) -> list[Submission]:
        stmt = (
            select(Submission)
            .where(submission_table.c.client_id == client_id)
            .order_by(submission_table.c.received_at)
        )
        return list(self.session.execute(stmt).scalars())

    def remove(self, submission: Submission) -> None:
        self.session.delete(submission)


class SqlAlchemyCreditAdjustmentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CreditAdjustment) -> None:
        self.session.add(entity)

    def for_client(self, client_id: uuid.UUID) -> list[CreditAdjustment]:
        stmt = (
            select(CreditAdjustment)
            .where(credit_adjustment_table.c.client_id == client_id)
            .order_by(credit_adjustment_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())


if TYPE_CHECKING:
    from servingledger.domain.ports.persistence import (
        ClientRepository,
        CreditAdjustmentRepository,
        CreditAssignmentRepository,
        CreditStateRepository,
        PackageTemplateRepository,
        SubmissionRepository,
    )

    _session_stub = cast("Session", object())
    _client_repo: ClientRepository = SqlAlchemyClientRepository(_session_stub)
    _package_repo: PackageTemplateRepository = SqlAlchemyPackageTemplateRepository(_session_stub)
    _assignment_repo: CreditAssignmentRepository = SqlAlchemyCreditAssignmentRepository(
        _session_stub
    )
    _state_repo: CreditStateRepository = SqlAlchemyCreditStateRepository(_session_stub)
    _submission_repo: SubmissionRepository = SqlAlchemySubmissionRepository(_session_stub)
    _adjustment_repo: CreditAdjustmentRepository = SqlAlchemyCreditAdjustmentRepository(
        _session_stub
    )
