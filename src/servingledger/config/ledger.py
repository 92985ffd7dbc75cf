"""Ledger behaviour settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_STORE_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class LedgerConfig:
    """Bounds for the optimistic write loop and for each store round trip."""

    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS


def get_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        retry_attempts=env_int("LEDGER_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS, minimum=1),
        store_timeout_seconds=env_float(
            "LEDGER_STORE_TIMEOUT_SECONDS",
            DEFAULT_STORE_TIMEOUT_SECONDS,
            minimum=0.1,
        ),
    )
