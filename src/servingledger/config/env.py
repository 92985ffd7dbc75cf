"""Typed readers for environment variables.

Blank values are treated as unset everywhere, so an empty line in ``.env``
falls back to the default instead of failing to parse.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable


def optional_env_var(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _env_number[N: (int, float)](
    name: str,
    default: N,
    *,
    parse: Callable[[str], N],
    minimum: N,
    kind: str,
) -> N:
    raw = optional_env_var(name)
    if raw is None:
        return default
    try:
        value = parse(raw)
    except ValueError as exc:
        raise InvalidConfigurationError(name, raw, kind) from exc
    if value < minimum:
        raise InvalidConfigurationError(name, raw, f"{kind} >= {minimum}")
    return value


def env_int(name: str, default: int, *, minimum: int = 0) -> int:
    return _env_number(name, default, parse=int, minimum=minimum, kind="an integer")


def env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    return _env_number(name, default, parse=float, minimum=minimum, kind="a number")
