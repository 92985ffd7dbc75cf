"""Pure credit arithmetic.

``reconcile`` derives the serving terms of a (re)assignment from the selected
package, the prior assignment and operator overrides. The pool helpers move
credit between ``remaining``, ``reserved`` and ``consumed`` for submissions.
Nothing here performs I/O; every function either returns a new value or raises
``ValidationError`` / ``InsufficientCreditError``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol

from servingledger.domain.errors import (
    CONSUMED_EXCEEDS_GRANTED,
    LEDGER_MISMATCH,
    NEGATIVE_CREDIT,
    NEGATIVE_VALUE,
    SELECT_PACKAGE,
    InsufficientCreditError,
    ValidationError,
    ValidationIssue,
)

if TYPE_CHECKING:
    from servingledger.domain.model import CreditPool, PackageTemplate, PoolBalance


class PriorAssignment(Protocol):
    """What ``reconcile`` needs to know about the assignment being replaced."""

    @property
    def package_template_id(self) -> str | None: ...

    @property
    def remaining_servings(self) -> int: ...

    @property
    def granted_servings(self) -> int | None: ...


@dataclass(frozen=True, slots=True)
class PriorSnapshot:
    package_template_id: str | None
    remaining_servings: int
    granted_servings: int | None = None


@dataclass(frozen=True, slots=True)
class LedgerOverrides:
    """Operator-supplied values. ``remaining`` is always derived, never set."""

    granted: int | None = None
    consumed_at_assignment: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.granted is None and self.consumed_at_assignment is None


@dataclass(frozen=True, slots=True)
class LedgerProposal:
    granted: int | None
    consumed_at_assignment: int
    remaining: int


def reconcile(
    package: PackageTemplate | None,
    prior: PriorAssignment | None,
    overrides: LedgerOverrides | None = None,
) -> LedgerProposal:
    """Derive and validate the serving terms for an assignment."""

    overrides = overrides or LedgerOverrides()
    _reject_negative_overrides(overrides)

    derived = _derive(package, prior)
    if overrides.is_empty:
        proposal = derived
    else:
        granted = overrides.granted
        if granted is None:
            if package is None:
                raise ValidationError.for_field(SELECT_PACKAGE, "package")
            granted = _grant(package, prior)
        consumed = overrides.consumed_at_assignment
        if consumed is None:
            consumed = derived.consumed_at_assignment
        proposal = LedgerProposal(
            granted=granted,
            consumed_at_assignment=consumed,
            remaining=max(0, granted - consumed),
        )

    validate_proposal(proposal)
    return proposal


def _derive(package: PackageTemplate | None, prior: PriorAssignment | None) -> LedgerProposal:
    if package is None:
        remaining = prior.remaining_servings if prior is not None else 0
        return LedgerProposal(granted=None, consumed_at_assignment=0, remaining=remaining)

    if prior is not None and prior.package_template_id == package.id:
        # Reselection keeps what is left; it never restores the full grant.
        granted = _grant(package, prior)
        remaining = prior.remaining_servings
        return LedgerProposal(
            granted=granted,
            consumed_at_assignment=max(0, granted - remaining),
            remaining=remaining,
        )
    granted = package.granted_servings
    return LedgerProposal(granted=granted, consumed_at_assignment=0, remaining=granted)


def _grant(package: PackageTemplate, prior: PriorAssignment | None) -> int:
    """Template grant, or the held grant when adjustments raised it on the same package."""

    if prior is None or prior.package_template_id != package.id:
        return package.granted_servings
    return max(package.granted_servings, prior.granted_servings or 0)


def _reject_negative_overrides(overrides: LedgerOverrides) -> None:
    issues = [
        ValidationIssue(name, NEGATIVE_VALUE)
        for name, value in (
            ("granted", overrides.granted),
            ("consumed_at_assignment", overrides.consumed_at_assignment),
        )
        if value is not None and value < 0
    ]
    if issues:
        raise ValidationError(NEGATIVE_CREDIT, issues)


def validate_proposal(proposal: LedgerProposal) -> None:
    """Check a proposal before anything is written.

    Rules are checked in order: no negative field, consumed within granted,
    and ``granted - consumed == remaining``.
    """

    values = (
        ("granted", proposal.granted),
        ("consumed_at_assignment", proposal.consumed_at_assignment),
        ("remaining", proposal.remaining),
    )
    negative = [
        ValidationIssue(name, NEGATIVE_VALUE)
        for name, value in values
        if value is not None and value < 0
    ]
    if negative:
        raise ValidationError(NEGATIVE_CREDIT, negative)

    if proposal.granted is None:
        if proposal.consumed_at_assignment:
            raise ValidationError.for_field(SELECT_PACKAGE, "package")
        return

    if proposal.consumed_at_assignment > proposal.granted:
        raise ValidationError.for_field(CONSUMED_EXCEEDS_GRANTED, "consumed_at_assignment")
    if proposal.granted - proposal.consumed_at_assignment != proposal.remaining:
        raise ValidationError.for_field(LEDGER_MISMATCH, "remaining")


def proposal_issues(proposal: LedgerProposal) -> tuple[ValidationIssue, ...]:
    """Return the field issues of a proposal instead of raising them."""

    try:
        validate_proposal(proposal)
    except ValidationError as exc:
        return exc.issues
    return ()


# Pool movements ---------------------------------------------------------------


def _require_non_negative(amount: int, field: str) -> None:
    if amount < 0:
        raise ValidationError.for_field(NEGATIVE_CREDIT, field, NEGATIVE_VALUE)


def reserve(
    balance: PoolBalance,
    amount: int,
    *,
    pool: CreditPool,
    allow_overdraft: bool = False,
) -> tuple[PoolBalance, int]:
    """Move ``amount`` from remaining to reserved.

    Returns the new balance and the overdraft taken. Without
    ``allow_overdraft`` a shortfall raises ``InsufficientCreditError``; with it
    the shortfall is recorded as overdraft and remaining floors at zero.
    """

    _require_non_negative(amount, f"requested_{pool}")
    shortfall = max(0, amount - balance.remaining)
    if shortfall and not allow_overdraft:
        raise InsufficientCreditError(str(pool), amount, balance.remaining)
    updated = replace(
        balance,
        remaining=balance.remaining - (amount - shortfall),
        reserved=balance.reserved + amount,
        overdraft=balance.overdraft + shortfall,
    )
    return updated, shortfall


def consume(balance: PoolBalance, amount: int) -> PoolBalance:
    """Move ``amount`` from reserved to consumed."""

    _require_non_negative(amount, "amount")
    if amount > balance.reserved:
        raise ValidationError.for_field(LEDGER_MISMATCH, "reserved")
    return replace(
        balance,
        reserved=balance.reserved - amount,
        consumed=balance.consumed + amount,
    )


def release(balance: PoolBalance, amount: int, *, overdraft: int = 0) -> PoolBalance:
    """Return a reservation to remaining, minus the part that was overdraft."""

    _require_non_negative(amount, "amount")
    _require_non_negative(overdraft, "overdraft")
    if amount > balance.reserved or overdraft > amount:
        raise ValidationError.for_field(LEDGER_MISMATCH, "reserved")
    return replace(
        balance,
        reserved=balance.reserved - amount,
        remaining=balance.remaining + amount - overdraft,
        overdraft=max(0, balance.overdraft - overdraft),
    )


def regrant(balance: PoolBalance, *, remaining: int, fresh: int = 0) -> PoolBalance:
    """Set ``remaining`` after an assignment, adding ``fresh`` to the lifetime grant.

    The lifetime grant is raised further when needed so the pool invariant
    keeps holding for operator overrides.
    """

    _require_non_negative(remaining, "remaining")
    _require_non_negative(fresh, "granted")
    floor = balance.reserved + balance.consumed + remaining - balance.overdraft
    return replace(
        balance,
        granted=max(balance.granted + fresh, floor),
        remaining=remaining,
    )


def adjust(balance: PoolBalance, delta: int) -> PoolBalance:
    """Nudge ``remaining`` by ``delta``, flooring at zero."""

    return regrant(balance, remaining=max(0, balance.remaining + delta))
