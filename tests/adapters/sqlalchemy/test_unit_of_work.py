from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from servingledger.adapters.sqlalchemy import start_mappers
from servingledger.adapters.sqlalchemy.migrations import (
    current_revision,
    head_revision,
    upgrade_head,
)
from servingledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    StartupError,
    build_engine,
    configured_engine,
    shutdown,
    startup,
)
from servingledger.domain.errors import ConflictError
from servingledger.domain.model import Client, CreditAssignment, PoolBalance
from tests.helpers.ledger import BASE_TIME

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


@pytest.fixture
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}", store_timeout_seconds=1)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyLedgerUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_unit_of_work_commits_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    kept = Client(name="Kept", created_at=BASE_TIME)
    dropped = Client(name="Dropped", created_at=BASE_TIME)

    with SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.clients.add(kept)
        uow.commit()

    with pytest.raises(RuntimeError), SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.clients.add(dropped)
        raise RuntimeError("boom")

    with SqlAlchemyLedgerUnitOfWork() as uow:
        assert [client.name for client in uow.repositories.clients.list()] == ["Kept"]


def test_stale_credit_state_write_is_a_conflict(file_engine: Engine) -> None:
    startup(engine=file_engine, force=True)
    client = Client(name="Racer", created_at=BASE_TIME)
    with SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.clients.add(client)
        state = uow.repositories.credit_states.get(client.id)
        state.servings = PoolBalance(granted=10, remaining=10)
        state.updated_at = BASE_TIME
        uow.repositories.credit_states.save(state)
        uow.commit()

    slow = SqlAlchemyLedgerUnitOfWork()
    with slow:
        stale = slow.repositories.credit_states.get(client.id)
        slow.session.commit()

        with SqlAlchemyLedgerUnitOfWork() as fast:
            fresh = fast.repositories.credit_states.get(client.id)
            fresh.servings = PoolBalance(granted=10, remaining=9, reserved=1)
            fresh.updated_at = BASE_TIME
            fast.repositories.credit_states.save(fresh)
            fast.commit()

        stale.servings = PoolBalance(granted=10, remaining=8, reserved=2)
        with pytest.raises(ConflictError):
            slow.commit()

    with SqlAlchemyLedgerUnitOfWork() as uow:
        assert uow.repositories.credit_states.get(client.id).remaining_servings == 9


def test_second_active_assignment_is_a_conflict(file_engine: Engine) -> None:
    startup(engine=file_engine, force=True)
    client = Client(name="Twice", created_at=BASE_TIME)
    with SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.clients.add(client)
        uow.repositories.assignments.add(
            CreditAssignment(client_id=client.id, remaining_servings=1, created_at=BASE_TIME)
        )
        uow.commit()

    with pytest.raises(ConflictError), SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.assignments.add(
            CreditAssignment(client_id=client.id, remaining_servings=2, created_at=BASE_TIME)
        )
        uow.commit()


def test_startup_migrates_to_the_newest_revision(file_engine: Engine) -> None:
    assert head_revision() == "0001"
    assert current_revision(file_engine) == "0001"


def test_unmigrated_database_has_no_revision() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:")

    assert current_revision(engine) is None
