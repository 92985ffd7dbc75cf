"""Application orchestration entry points."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from servingledger.adapters.catalogue import HttpPackageCatalogue
from servingledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    is_started,
    startup,
)
from servingledger.config import (
    CatalogueConfig,
    LedgerConfig,
    get_catalogue_config,
    get_ledger_config,
)
from servingledger.domain.assignment import AssignmentReconciler
from servingledger.domain.catalogue import RepositoryPackageCatalogue
from servingledger.domain.clock import utcnow
from servingledger.domain.errors import RetryableError
from servingledger.domain.model import Client, PackageTemplate
from servingledger.domain.ports.unit_of_work import LedgerUnitOfWork
from servingledger.domain.submissions import SubmissionCreditCoordinator

if TYPE_CHECKING:
    from tenacity import RetryCallState

    from servingledger.domain.clock import Clock
    from servingledger.domain.ports import PackageCatalogue

UnitOfWorkFactory = Callable[[], LedgerUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class LedgerServices:
    """The wired-up ledger components for one process."""

    unit_of_work_factory: UnitOfWorkFactory
    catalogue: PackageCatalogue
    reconciler: AssignmentReconciler
    coordinator: SubmissionCreditCoordinator
    config: LedgerConfig = field(default_factory=LedgerConfig)
    clock: Clock = field(default=utcnow)


def build_catalogue(
    unit_of_work_factory: UnitOfWorkFactory,
    config: CatalogueConfig | None = None,
) -> PackageCatalogue:
    """Use the remote catalogue when one is configured, else the stored templates."""

    effective = config or get_catalogue_config()
    if effective.is_remote:
        log.info(f"Using remote package catalogue at {effective.base_url}")
        return HttpPackageCatalogue(config=effective)
    return RepositoryPackageCatalogue(unit_of_work_factory)


def build_services(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    catalogue: PackageCatalogue | None = None,
    config: LedgerConfig | None = None,
    clock: Clock = utcnow,
) -> LedgerServices:
    """Wire the reconciler and coordinator against the configured adapters."""

    effective_config = config or get_ledger_config()
    if unit_of_work_factory is None:
        if not is_started():
            startup(store_timeout_seconds=effective_config.store_timeout_seconds)
        unit_of_work_factory = SqlAlchemyLedgerUnitOfWork
    effective_catalogue = catalogue or build_catalogue(unit_of_work_factory)
    return LedgerServices(
        unit_of_work_factory=unit_of_work_factory,
        catalogue=effective_catalogue,
        reconciler=AssignmentReconciler(
            catalogue=effective_catalogue,
            unit_of_work_factory=unit_of_work_factory,
            clock=clock,
        ),
        coordinator=SubmissionCreditCoordinator(
            unit_of_work_factory=unit_of_work_factory,
            clock=clock,
        ),
        config=effective_config,
        clock=clock,
    )


def with_retries[T](
    operation: Callable[[], T],
    *,
    attempts: int,
    delay_seconds: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Re-run ``operation`` from scratch while it fails with a retryable error.

    The last error propagates once ``attempts`` runs have failed.
    """

    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_incrementing(start=delay_seconds, increment=delay_seconds),
        retry=retry_if_exception_type(RetryableError),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    try:
        return retrying(operation)
    except RetryableError as exc:
        log.warning(f"Giving up after {attempts} attempts: {exc}")
        raise


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome is not None else None
    log.warning(f"Attempt {retry_state.attempt_number} failed, retrying: {error}")


def create_client(services: LedgerServices, *, name: str) -> Client:
    """Record a converted lead as a client."""

    client = Client(name=name.strip(), created_at=services.clock())
    with services.unit_of_work_factory() as uow:
        uow.repositories.clients.add(client)
        uow.commit()
    log.info(f"Created client {client.id} ({client.name})")
    return client


def add_package(
    services: LedgerServices,
    *,
    package_id: str,
    name: str,
    granted_servings: int,
    granted_images: int | None = None,
    price: Decimal | None = None,
    description: str | None = None,
    max_edits_per_serving: int | None = None,
    active: bool = True,
) -> PackageTemplate:
    """Store a package template in the ledger database."""

    package = PackageTemplate(
        id=package_id,
        name=name,
        granted_servings=granted_servings,
        granted_images=granted_images,
        price=price if price is not None else Decimal(0),
        description=description,
        max_edits_per_serving=max_edits_per_serving,
        active=active,
        created_at=services.clock(),
    )
    with services.unit_of_work_factory() as uow:
        uow.repositories.packages.add(package)
        uow.commit()
    log.info(f"Stored package {package.id} ({package.name})")
    return package
