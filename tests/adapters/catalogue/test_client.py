"""HttpPackageCatalogue against a mocked transport."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import httpx
import pytest

from servingledger.adapters.catalogue import CatalogueAPIError, HttpPackageCatalogue
from servingledger.adapters.http_resilience import ResilientClient
from servingledger.config import CatalogueConfig, ResilienceConfig, RetryPolicy
from servingledger.domain.errors import NotFoundError, StoreTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://catalogue.test/api/"

PACKAGES = [
    {
        "id": "pkg-a",
        "name": "Starter",
        "total_servings": 10,
        "price": "99.00",
        "is_active": True,
    },
    {
        "package_id": 7,
        "package_name": "Photo bundle",
        "granted_servings": 5,
        "granted_images": 12,
        "active": False,
        "description": "  ",
    },
]


def _catalogue(
    handler: Callable[[httpx.Request], httpx.Response],
    requests: list[httpx.Request] | None = None,
) -> HttpPackageCatalogue:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    resilience = ResilienceConfig(
        name="catalogue",
        base_url=BASE_URL,
        retry=RetryPolicy(total=0),
        cache=None,
        default_headers={"Authorization": "Bearer secret"},
    )

    def factory(config: ResilienceConfig) -> ResilientClient:
        return ResilientClient(config, transport=httpx.MockTransport(recording_handler))

    return HttpPackageCatalogue(
        config=CatalogueConfig(base_url=BASE_URL, api_token="secret", resilience=resilience),
        client_factory=factory,
    )


def test_list_translates_payloads() -> None:
    requests: list[httpx.Request] = []
    catalogue = _catalogue(lambda _request: httpx.Response(200, json=PACKAGES), requests)

    packages = catalogue.list()

    assert [package.id for package in packages] == ["pkg-a", "7"]
    assert packages[0].price == Decimal("99.00")
    assert packages[0].granted_images is None
    assert packages[1].granted_images == 12
    assert packages[1].active is False
    assert packages[1].description is None
    assert str(requests[0].url) == f"{BASE_URL}packages"
    assert requests[0].headers["Authorization"] == "Bearer secret"
    assert requests[0].headers["User-Agent"] == "servingledger (catalogue)"


def test_list_accepts_wrapped_listing() -> None:
    catalogue = _catalogue(lambda _request: httpx.Response(200, json={"data": PACKAGES[:1]}))

    assert [package.name for package in catalogue.list()] == ["Starter"]


def test_list_skips_entries_the_domain_rejects() -> None:
    payload = [*PACKAGES[:1], {"id": "blank", "name": "  ", "total_servings": 1}]
    catalogue = _catalogue(lambda _request: httpx.Response(200, json=payload))

    assert [package.id for package in catalogue.list()] == ["pkg-a"]


def test_get_fetches_single_package() -> None:
    requests: list[httpx.Request] = []
    catalogue = _catalogue(lambda _request: httpx.Response(200, json=PACKAGES[0]), requests)

    package = catalogue.get("pkg-a")

    assert package.granted_servings == 10
    assert requests[0].url.path == "/api/packages/pkg-a"


def test_get_escapes_package_id() -> None:
    requests: list[httpx.Request] = []
    catalogue = _catalogue(lambda _request: httpx.Response(200, json=PACKAGES[0]), requests)

    catalogue.get("pkg/a?x")

    assert requests[0].url.raw_path == b"/api/packages/pkg%2Fa%3Fx"


def test_get_missing_package_raises_not_found() -> None:
    catalogue = _catalogue(lambda _request: httpx.Response(404, json={"error": "not_found"}))

    with pytest.raises(NotFoundError) as excinfo:
        catalogue.get("pkg-x")

    assert excinfo.value.kind == "package"
    assert excinfo.value.key == "pkg-x"


def test_unavailable_catalogue_is_retryable() -> None:
    catalogue = _catalogue(lambda _request: httpx.Response(503))

    with pytest.raises(StoreTimeoutError):
        catalogue.list()


def test_timeout_is_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("catalogue too slow", request=request)

    with pytest.raises(StoreTimeoutError):
        _catalogue(handler).get("pkg-a")


def test_client_errors_surface_api_message() -> None:
    catalogue = _catalogue(
        lambda _request: httpx.Response(
            400, json={"error": "bad_request", "message": "unknown filter"}
        )
    )

    with pytest.raises(CatalogueAPIError) as excinfo:
        catalogue.list()

    assert excinfo.value.status_code == 400
    assert "unknown filter" in str(excinfo.value)


def test_unexpected_payload_is_an_api_error() -> None:
    catalogue = _catalogue(lambda _request: httpx.Response(200, json={"id": "pkg-a"}))

    with pytest.raises(CatalogueAPIError):
        catalogue.get("pkg-a")
