"""Package catalogue backed by the ledger store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from servingledger.domain.errors import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from servingledger.domain.model import PackageTemplate
    from servingledger.domain.ports import LedgerUnitOfWork, PackageCatalogue


@dataclass(slots=True)
class RepositoryPackageCatalogue:
    """Reads templates stored alongside the ledger, each call in its own unit of work."""

    unit_of_work_factory: Callable[[], LedgerUnitOfWork]

    def list(self) -> Sequence[PackageTemplate]:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.packages.list()

    def get(self, package_id: str) -> PackageTemplate:
        with self.unit_of_work_factory() as uow:
            package = uow.repositories.packages.get(package_id)
        if package is None:
            raise NotFoundError("package", package_id)
        return package


def active_packages(catalogue: PackageCatalogue) -> list[PackageTemplate]:
    """Packages that can be offered for a new selection, by name."""

    return sorted(
        (package for package in catalogue.list() if package.active),
        key=lambda package: package.name.casefold(),
    )
