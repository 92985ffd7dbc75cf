"""Read-only port for the package catalogue."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from servingledger.domain.model import PackageTemplate


@runtime_checkable
class PackageCatalogue(Protocol):
    """Source of package templates. ``get`` raises ``NotFoundError`` for unknown ids."""

    def list(self) -> Sequence[PackageTemplate]: ...

    def get(self, package_id: str) -> PackageTemplate: ...


__all__ = ["PackageCatalogue"]
