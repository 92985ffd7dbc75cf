"""Engine lifecycle and the SQLAlchemy unit of work for the ledger store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from servingledger.adapters.sqlalchemy.errors import translate_store_errors
from servingledger.adapters.sqlalchemy.mappings import start_mappers
from servingledger.adapters.sqlalchemy.migrations import current_revision, upgrade_head
from servingledger.adapters.sqlalchemy.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCreditAdjustmentRepository,
    SqlAlchemyCreditAssignmentRepository,
    SqlAlchemyCreditStateRepository,
    SqlAlchemyPackageTemplateRepository,
    SqlAlchemySubmissionRepository,
)
from servingledger.config.ledger import DEFAULT_STORE_TIMEOUT_SECONDS
from servingledger.config.storage import get_database_uri
from servingledger.domain.ports.unit_of_work import LedgerRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the ledger store is used before ``startup()`` or reconfigured by accident."""


@dataclass(slots=True)
class _Binding:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None


_BINDING = _Binding()


def build_engine(
    database_uri: str,
    *,
    store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
) -> Engine:
    """Create an engine whose waits on locks and connections are bounded.

    SQLite gets the timeout as its busy handler, other backends as the pool's
    checkout timeout. Either way a wait past the limit surfaces as a
    ``StoreTimeoutError`` through ``translate_store_errors``.
    """

    options: dict[str, Any] = {}
    if database_uri.startswith("sqlite"):
        options["connect_args"] = {"timeout": store_timeout_seconds}
    else:
        options["pool_timeout"] = store_timeout_seconds
        options["pool_pre_ping"] = True
    return create_engine(database_uri, **options)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
    force: bool = False,
) -> None:
    """Map the ledger model, migrate the schema and bind new units of work to the engine."""

    if _BINDING.engine is not None and not force:
        raise StartupError("Ledger store already started. Pass force=True to rebind it.")

    bound = engine or build_engine(
        database_uri or get_database_uri(),
        store_timeout_seconds=store_timeout_seconds,
    )
    start_mappers()
    upgrade_head(engine=bound)
    log.info(f"Ledger store ready at schema revision {current_revision(bound)}")

    _BINDING.engine = bound
    _BINDING.sessions = sessionmaker(bind=bound, expire_on_commit=False)


def shutdown() -> None:
    """Dispose the bound engine so the next ``startup()`` starts clean."""

    if _BINDING.engine is not None:
        _BINDING.engine.dispose()
    _BINDING.engine = None
    _BINDING.sessions = None


def configured_engine() -> Engine | None:
    return _BINDING.engine


def is_started() -> bool:
    return _BINDING.engine is not None


class SqlAlchemyLedgerUnitOfWork:
    """One database transaction spanning every ledger repository.

    Sessions keep loaded objects usable after commit, so services can log and
    return the entities they wrote without reloading them.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        if session_factory is None:
            if _BINDING.sessions is None:
                raise StartupError(
                    "Ledger store not started. Call "
                    "servingledger.adapters.sqlalchemy.unit_of_work.startup() first."
                )
            session_factory = _BINDING.sessions
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: LedgerRepositories | None = None

    def __enter__(self) -> SqlAlchemyLedgerUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self.session_factory()
        self._session = session
        self._repositories = LedgerRepositories(
            clients=SqlAlchemyClientRepository(session),
            packages=SqlAlchemyPackageTemplateRepository(session),
            assignments=SqlAlchemyCreditAssignmentRepository(session),
            credit_states=SqlAlchemyCreditStateRepository(session),
            submissions=SqlAlchemySubmissionRepository(session),
            adjustments=SqlAlchemyCreditAdjustmentRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> LedgerRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        with translate_store_errors():
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from servingledger.domain.ports.unit_of_work import LedgerUnitOfWork

    _uow_check: LedgerUnitOfWork = SqlAlchemyLedgerUnitOfWork()
