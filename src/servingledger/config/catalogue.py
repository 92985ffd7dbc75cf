"""Remote package catalogue settings."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float, optional_env_var
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class CatalogueConfig:
    """Where package templates are read from.

    With no ``base_url`` the templates stored in the ledger database are used.
    """

    base_url: str | None = None
    api_token: str | None = None
    resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(name="catalogue")
    )

    @property
    def is_remote(self) -> bool:
        return self.base_url is not None

    @classmethod
    def from_environment(cls) -> CatalogueConfig:
        base_url = optional_env_var("CATALOGUE_BASE_URL")
        api_token = optional_env_var("CATALOGUE_API_TOKEN")
        timeout = env_float(
            "CATALOGUE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, minimum=0.1
        )
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else None
        resilience = ResilienceConfig(
            name="catalogue",
            base_url=base_url.rstrip("/") + "/" if base_url else None,
            timeout_seconds=timeout,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            cache=CacheConfig(backend="memory"),
            default_headers=headers,
        )
        return cls(base_url=base_url, api_token=api_token, resilience=resilience)


def get_catalogue_config() -> CatalogueConfig:
    return CatalogueConfig.from_environment()
