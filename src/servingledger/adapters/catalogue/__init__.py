"""Public interface for the remote catalogue adapter."""

from __future__ import annotations

from .client import CatalogueAPIError, HttpPackageCatalogue
from .schema import PackageListResponse, PackagePayload
from .translator import parse_package, parse_packages

__all__ = [
    "CatalogueAPIError",
    "HttpPackageCatalogue",
    "PackageListResponse",
    "PackagePayload",
    "parse_package",
    "parse_packages",
]
