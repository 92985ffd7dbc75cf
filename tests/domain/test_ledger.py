"""Pure credit arithmetic: reconcile, validation order and pool movements."""

from __future__ import annotations

import pytest

from servingledger.domain.errors import (
    CONSUMED_EXCEEDS_GRANTED,
    LEDGER_MISMATCH,
    NEGATIVE_CREDIT,
    SELECT_PACKAGE,
    InsufficientCreditError,
    ValidationError,
)
from servingledger.domain.ledger import (
    LedgerOverrides,
    LedgerProposal,
    PriorSnapshot,
    adjust,
    consume,
    proposal_issues,
    reconcile,
    regrant,
    release,
    reserve,
    validate_proposal,
)
from servingledger.domain.model import CreditPool, PoolBalance
from tests.helpers.ledger import make_package


def test_new_client_gets_full_grant() -> None:
    proposal = reconcile(make_package("pkg-a", granted_servings=10), None)

    assert proposal == LedgerProposal(granted=10, consumed_at_assignment=0, remaining=10)


def test_reselecting_same_package_keeps_remaining() -> None:
    prior = PriorSnapshot(package_template_id="pkg-a", remaining_servings=4)

    proposal = reconcile(make_package("pkg-a", granted_servings=10), prior)

    assert proposal.remaining == 4
    assert proposal.consumed_at_assignment == 6
    assert proposal.granted == 10


def test_reselection_is_stable_when_applied_twice() -> None:
    package = make_package("pkg-a", granted_servings=10)
    first = reconcile(package, PriorSnapshot("pkg-a", 4))

    second = reconcile(package, PriorSnapshot("pkg-a", first.remaining))

    assert second == first


def test_reselection_with_remaining_above_grant_is_a_mismatch() -> None:
    prior = PriorSnapshot(package_template_id="pkg-a", remaining_servings=12)

    with pytest.raises(ValidationError) as excinfo:
        reconcile(make_package("pkg-a", granted_servings=10), prior)

    assert excinfo.value.reason == LEDGER_MISMATCH


def test_granted_override_covers_remaining_above_grant() -> None:
    prior = PriorSnapshot(package_template_id="pkg-a", remaining_servings=12)
    package = make_package("pkg-a", granted_servings=10)

    proposal = reconcile(package, prior, LedgerOverrides(granted=12))

    assert proposal == LedgerProposal(granted=12, consumed_at_assignment=0, remaining=12)


def test_reselection_keeps_grant_raised_by_adjustment() -> None:
    prior = PriorSnapshot(package_template_id="pkg-a", remaining_servings=5, granted_servings=11)

    proposal = reconcile(make_package("pkg-a", granted_servings=10), prior)

    assert proposal == LedgerProposal(granted=11, consumed_at_assignment=6, remaining=5)


def test_switching_package_does_not_carry_over() -> None:
    prior = PriorSnapshot(package_template_id="pkg-a", remaining_servings=4)

    proposal = reconcile(make_package("pkg-b", granted_servings=20), prior)

    assert proposal == LedgerProposal(granted=20, consumed_at_assignment=0, remaining=20)


def test_consumed_above_granted_is_rejected() -> None:
    package = make_package("pkg-a", granted_servings=10)

    with pytest.raises(ValidationError) as excinfo:
        reconcile(package, None, LedgerOverrides(consumed_at_assignment=15))

    assert excinfo.value.reason == CONSUMED_EXCEEDS_GRANTED
    assert excinfo.value.issues[0].field == "consumed_at_assignment"


@pytest.mark.parametrize("consumed", [0, 3, 10])
def test_consumed_within_grant_is_accepted(consumed: int) -> None:
    package = make_package("pkg-a", granted_servings=10)

    proposal = reconcile(package, None, LedgerOverrides(consumed_at_assignment=consumed))

    assert proposal.remaining == 10 - consumed
    assert proposal.granted is not None
    assert proposal.granted - proposal.consumed_at_assignment == proposal.remaining


def test_granted_override_replaces_package_grant() -> None:
    package = make_package("pkg-a", granted_servings=10)

    proposal = reconcile(package, None, LedgerOverrides(granted=25, consumed_at_assignment=5))

    assert proposal == LedgerProposal(granted=25, consumed_at_assignment=5, remaining=20)


def test_negative_override_is_rejected_first() -> None:
    package = make_package("pkg-a", granted_servings=10)

    with pytest.raises(ValidationError) as excinfo:
        reconcile(package, None, LedgerOverrides(granted=-1, consumed_at_assignment=15))

    assert excinfo.value.reason == NEGATIVE_CREDIT
    assert [issue.field for issue in excinfo.value.issues] == ["granted"]


def test_no_package_keeps_prior_remaining() -> None:
    proposal = reconcile(None, PriorSnapshot(package_template_id="pkg-a", remaining_servings=7))

    assert proposal == LedgerProposal(granted=None, consumed_at_assignment=0, remaining=7)


def test_no_package_without_prior_is_empty() -> None:
    assert reconcile(None, None) == LedgerProposal(
        granted=None, consumed_at_assignment=0, remaining=0
    )


def test_consumed_override_without_package_asks_for_package() -> None:
    with pytest.raises(ValidationError) as excinfo:
        reconcile(None, None, LedgerOverrides(consumed_at_assignment=2))

    assert excinfo.value.reason == SELECT_PACKAGE
    assert excinfo.value.issues[0].field == "package"


def test_custom_grant_without_package() -> None:
    proposal = reconcile(None, None, LedgerOverrides(granted=8, consumed_at_assignment=3))

    assert proposal == LedgerProposal(granted=8, consumed_at_assignment=3, remaining=5)


def test_validate_proposal_checks_in_order() -> None:
    with pytest.raises(ValidationError) as negative:
        validate_proposal(LedgerProposal(granted=5, consumed_at_assignment=9, remaining=-4))
    with pytest.raises(ValidationError) as exceeds:
        validate_proposal(LedgerProposal(granted=5, consumed_at_assignment=9, remaining=0))
    with pytest.raises(ValidationError) as mismatch:
        validate_proposal(LedgerProposal(granted=5, consumed_at_assignment=1, remaining=3))

    assert negative.value.reason == NEGATIVE_CREDIT
    assert exceeds.value.reason == CONSUMED_EXCEEDS_GRANTED
    assert mismatch.value.reason == LEDGER_MISMATCH


def test_proposal_issues_reports_instead_of_raising() -> None:
    good = LedgerProposal(granted=5, consumed_at_assignment=1, remaining=4)
    bad = LedgerProposal(granted=5, consumed_at_assignment=1, remaining=3)

    assert proposal_issues(good) == ()
    assert [issue.field for issue in proposal_issues(bad)] == ["remaining"]


def test_reserve_moves_remaining_to_reserved() -> None:
    balance = PoolBalance(granted=5, remaining=5)

    updated, shortfall = reserve(balance, 2, pool=CreditPool.IMAGES)

    assert shortfall == 0
    assert updated == PoolBalance(granted=5, remaining=3, reserved=2)
    assert updated.is_consistent


def test_reserve_beyond_remaining_is_rejected() -> None:
    balance = PoolBalance(granted=2, remaining=2)

    with pytest.raises(InsufficientCreditError) as excinfo:
        reserve(balance, 3, pool=CreditPool.IMAGES)

    assert excinfo.value.pool == "images"
    assert excinfo.value.requested == 3
    assert excinfo.value.remaining == 2


def test_reserve_with_overdraft_records_shortfall() -> None:
    balance = PoolBalance(granted=2, remaining=2)

    updated, shortfall = reserve(balance, 3, pool=CreditPool.SERVINGS, allow_overdraft=True)

    assert shortfall == 1
    assert updated == PoolBalance(granted=2, remaining=0, reserved=3, overdraft=1)
    assert updated.is_consistent


def test_reserve_rejects_negative_amount() -> None:
    with pytest.raises(ValidationError) as excinfo:
        reserve(PoolBalance(), -1, pool=CreditPool.SERVINGS)

    assert excinfo.value.issues[0].field == "requested_servings"


def test_consume_moves_reserved_to_consumed() -> None:
    balance = PoolBalance(granted=5, remaining=3, reserved=2)

    assert consume(balance, 2) == PoolBalance(granted=5, remaining=3, reserved=0, consumed=2)


def test_consume_more_than_reserved_is_a_mismatch() -> None:
    with pytest.raises(ValidationError) as excinfo:
        consume(PoolBalance(granted=5, remaining=5, reserved=1), 2)

    assert excinfo.value.reason == LEDGER_MISMATCH


def test_release_returns_reservation_minus_overdraft() -> None:
    balance = PoolBalance(granted=2, remaining=0, reserved=3, overdraft=1)

    released = release(balance, 3, overdraft=1)

    assert released == PoolBalance(granted=2, remaining=2, reserved=0, overdraft=0)


def test_regrant_adds_fresh_grant() -> None:
    balance = PoolBalance(granted=10, remaining=4, consumed=6)

    updated = regrant(balance, remaining=20, fresh=20)

    assert updated.granted == 30
    assert updated.remaining == 20
    assert updated.is_consistent


def test_regrant_raises_grant_to_keep_invariant() -> None:
    balance = PoolBalance(granted=5, remaining=1, reserved=2, consumed=2)

    updated = regrant(balance, remaining=4)

    assert updated.granted == 8
    assert updated.is_consistent


def test_adjust_floors_remaining_at_zero() -> None:
    balance = PoolBalance(granted=5, remaining=2, consumed=3)

    assert adjust(balance, -5).remaining == 0
    assert adjust(balance, 3).remaining == 5
