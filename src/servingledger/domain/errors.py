"""Typed errors raised by ledger operations.

Every operation raises to its immediate caller; nothing in the domain swallows
these. Callers tell them apart by type:

- ``ValidationError``: the request is malformed or would break a ledger rule.
- ``InsufficientCreditError``: a pool cannot cover a reservation.
- ``NotFoundError``: a referenced client, package or submission does not exist.
- ``IllegalTransitionError``: a submission cannot move along the requested edge.
- ``RetryableError`` (``ConflictError``, ``StoreTimeoutError``): the store
  rejected the write or did not answer in time; re-running the whole operation
  may succeed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

# Rejection reasons
NEGATIVE_CREDIT: Final[str] = "negative credit"
CONSUMED_EXCEEDS_GRANTED: Final[str] = "consumed exceeds granted"
LEDGER_MISMATCH: Final[str] = "ledger mismatch"
SELECT_PACKAGE: Final[str] = "select a package"
INVALID_PACKAGE: Final[str] = "invalid package"

# Field-scoped messages shown next to the offending input
NEGATIVE_VALUE: Final[str] = "negative value"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A problem attached to a single input field."""

    field: str
    message: str


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(LedgerError, ValueError):
    def __init__(self, reason: str, issues: Iterable[ValidationIssue] = ()) -> None:
        self.reason = reason
        self.issues: tuple[ValidationIssue, ...] = tuple(issues)
        details = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)
        super().__init__(f"{reason} ({details})" if details else reason)

    @classmethod
    def for_field(cls, reason: str, field: str, message: str | None = None) -> ValidationError:
        return cls(reason, (ValidationIssue(field, message or reason),))


class RetryableError(LedgerError):
    """The operation may succeed when re-run against fresh state."""


class ConflictError(RetryableError):
    """A concurrent writer changed the record since it was read."""


class StoreTimeoutError(RetryableError):
    """The store or catalogue did not answer in time."""


class InsufficientCreditError(LedgerError):
    def __init__(self, pool: str, requested: int, remaining: int) -> None:
        super().__init__(
            f"Insufficient {pool} credit: requested {requested}, remaining {remaining}"
        )
        self.pool = pool
        self.requested = requested
        self.remaining = remaining


class NotFoundError(LedgerError, LookupError):
    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class IllegalTransitionError(LedgerError):
    def __init__(self, source: str, target: str, *, detail: str | None = None) -> None:
        message = f"Illegal transition {source} -> {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.source = source
        self.target = target
