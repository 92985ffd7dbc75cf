"""HTTP client for a remote package catalogue."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PayloadValidationError

from servingledger.adapters.http_resilience import ResilientClient
from servingledger.config.catalogue import CatalogueConfig
from servingledger.config.http_resilience import UNAVAILABLE_STATUSES
from servingledger.domain.errors import NotFoundError, StoreTimeoutError

from .schema import ErrorResponse, PackageListResponse, PackagePayload
from .translator import parse_package, parse_packages

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from servingledger.config.http_resilience import ResilienceConfig
    from servingledger.domain.model import PackageTemplate

log = getLogger(__name__)


class CatalogueAPIError(RuntimeError):
    """Raised when the catalogue answers with an unusable response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpPackageCatalogue:
    """Package catalogue served as JSON over HTTP.

    ``GET packages`` lists templates and ``GET packages/{id}`` fetches one; the
    base URL comes from the catalogue configuration.
    """

    config: CatalogueConfig = field(default_factory=CatalogueConfig.from_environment)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def list(self) -> Sequence[PackageTemplate]:
        return asyncio.run(self._list_async())

    def get(self, package_id: str) -> PackageTemplate:
        return asyncio.run(self._get_async(package_id))

    async def _list_async(self) -> list[PackageTemplate]:
        payload = await self._fetch_json("packages")
        try:
            response = PackageListResponse.model_validate(payload)
        except PayloadValidationError as exc:
            raise CatalogueAPIError("Unexpected catalogue listing payload") from exc
        return parse_packages(response.packages)

    async def _get_async(self, package_id: str) -> PackageTemplate:
        path = f"packages/{quote(package_id, safe='')}"
        payload = await self._fetch_json(path, not_found_key=package_id)
        try:
            package_payload = PackagePayload.model_validate(payload)
        except PayloadValidationError as exc:
            raise CatalogueAPIError(f"Unexpected payload for package {package_id!r}") from exc
        return parse_package(package_payload)

    async def _fetch_json(self, path: str, *, not_found_key: str | None = None) -> object:
        if self.config.resilience.base_url is None:
            raise CatalogueAPIError("Catalogue base URL is not configured")

        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.get(path)
        except httpx.TimeoutException as exc:
            raise StoreTimeoutError(f"Catalogue timed out on {path}") from exc
        except httpx.TransportError as exc:
            raise StoreTimeoutError(f"Catalogue unreachable on {path}: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND and not_found_key is not None:
            raise NotFoundError("package", not_found_key)
        if response.status_code in UNAVAILABLE_STATUSES:
            raise StoreTimeoutError(f"Catalogue unavailable ({response.status_code}) on {path}")
        if response.is_error:
            raise CatalogueAPIError(_error_message(response), status_code=response.status_code)

        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        error = ErrorResponse.model_validate(response.json())
    except (ValueError, PayloadValidationError):
        return f"Catalogue request failed with status {response.status_code}"
    log.error(f"Catalogue API error {error.error}: {error.message}")
    return error.message or error.error


if TYPE_CHECKING:
    from servingledger.domain.ports import PackageCatalogue

    _catalogue_check: PackageCatalogue = HttpPackageCatalogue()
