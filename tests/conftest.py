from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from servingledger.adapters.sqlalchemy import start_mappers
from servingledger.adapters.sqlalchemy.migrations import upgrade_head
from servingledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    shutdown,
    startup,
)
from servingledger.domain.assignment import AssignmentReconciler
from servingledger.domain.submissions import SubmissionCreditCoordinator
from tests.helpers.ledger import FakeLedgerStore, FakePackageCatalogue, TickingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyLedgerUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyLedgerUnitOfWork:
        return SqlAlchemyLedgerUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def ledger_store() -> FakeLedgerStore:
    return FakeLedgerStore()


@pytest.fixture
def catalogue() -> FakePackageCatalogue:
    return FakePackageCatalogue()


@pytest.fixture
def reconciler(
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
    clock: TickingClock,
) -> AssignmentReconciler:
    return AssignmentReconciler(
        catalogue=catalogue,
        unit_of_work_factory=ledger_store.unit_of_work,
        clock=clock,
    )


@pytest.fixture
def coordinator(ledger_store: FakeLedgerStore, clock: TickingClock) -> SubmissionCreditCoordinator:
    return SubmissionCreditCoordinator(
        unit_of_work_factory=ledger_store.unit_of_work,
        clock=clock,
    )
