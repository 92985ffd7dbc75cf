"""AssignmentReconciler against the in-memory ledger store."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from servingledger.domain.assignment import AssignmentOverrides
from servingledger.domain.errors import (
    CONSUMED_EXCEEDS_GRANTED,
    SELECT_PACKAGE,
    NotFoundError,
    ValidationError,
)
from servingledger.domain.model import CreditPool, PaymentStatus
from tests.helpers.ledger import make_package

if TYPE_CHECKING:
    from servingledger.domain.assignment import AssignmentReconciler
    from servingledger.domain.submissions import SubmissionCreditCoordinator
    from tests.helpers.ledger import FakeLedgerStore, FakePackageCatalogue


def test_first_assignment_grants_package(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()

    result = reconciler.assign(client.id, "pkg-a")

    assert result.changed
    assert result.assignment.granted_servings == 10
    assert result.assignment.consumed_servings_at_assignment == 0
    assert result.assignment.remaining_servings == 10
    assert result.assignment.payment_status is PaymentStatus.UNPAID
    state = ledger_store.state(client.id)
    assert state.remaining_servings == 10
    assert state.servings.granted == 10
    assert state.servings.is_consistent


def test_reselection_keeps_remaining_and_writes_nothing(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")
    commits = ledger_store.commits

    result = reconciler.assign(client.id, "pkg-a")

    assert not result.changed
    assert ledger_store.commits == commits
    assert len(ledger_store.data.assignments) == 1


def test_reselection_after_spending_recomputes_consumed(
    reconciler: AssignmentReconciler,
    coordinator: SubmissionCreditCoordinator,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")
    coordinator.create(client.id, requested_servings=6)

    result = reconciler.assign(client.id, "pkg-a")

    assert result.changed
    assert result.assignment.remaining_servings == 4
    assert result.assignment.consumed_servings_at_assignment == 6
    assert ledger_store.state(client.id).remaining_servings == 4

    again = reconciler.assign(client.id, "pkg-a")

    assert not again.changed
    assert again.assignment.id == result.assignment.id


def test_switching_package_supersedes_and_grants_fresh(
    reconciler: AssignmentReconciler,
    coordinator: SubmissionCreditCoordinator,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    catalogue.add(make_package("pkg-b", granted_servings=20))
    client = ledger_store.add_client()
    first = reconciler.assign(client.id, "pkg-a")
    coordinator.create(client.id, requested_servings=6)

    result = reconciler.assign(client.id, "pkg-b")

    assert result.assignment.consumed_servings_at_assignment == 0
    assert result.assignment.remaining_servings == 20
    history = reconciler.history(client.id)
    assert [item.package_template_id for item in history] == ["pkg-a", "pkg-b"]
    assert history[0].id == first.assignment.id
    assert history[0].superseded_at is not None
    assert history[1].is_active
    state = ledger_store.state(client.id)
    assert state.remaining_servings == 20
    assert state.reserved_servings == 6
    assert state.servings.is_consistent


def test_rejected_override_persists_nothing(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()

    with pytest.raises(ValidationError) as excinfo:
        reconciler.assign(
            client.id,
            "pkg-a",
            AssignmentOverrides(consumed_at_assignment=15),
        )

    assert excinfo.value.reason == CONSUMED_EXCEEDS_GRANTED
    assert ledger_store.commits == 0
    assert ledger_store.data.assignments == []
    assert client.id not in ledger_store.data.credit_states


def test_package_with_images_grants_image_pool(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-img", granted_servings=5, granted_images=12))
    client = ledger_store.add_client()

    reconciler.assign(client.id, "pkg-img")

    state = ledger_store.state(client.id)
    assert state.remaining_images == 12
    assert state.images.granted == 12


def test_overrides_and_carried_terms(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(
        client.id,
        "pkg-a",
        AssignmentOverrides(payment_status=PaymentStatus.PAID, notes="invoice 42"),
    )

    result = reconciler.assign(client.id, "pkg-a", AssignmentOverrides(granted=12))

    assert result.assignment.granted_servings == 12
    assert result.assignment.remaining_servings == 12
    assert result.assignment.payment_status is PaymentStatus.PAID
    assert result.assignment.notes == "invoice 42"


def test_no_package_keeps_live_remaining(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")

    result = reconciler.assign(client.id, None)

    assert result.assignment.package_template_id is None
    assert result.assignment.granted_servings is None
    assert result.assignment.remaining_servings == 10


def test_inactive_package_cannot_be_newly_selected(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-old", granted_servings=10, active=False))
    client = ledger_store.add_client()

    with pytest.raises(ValidationError) as excinfo:
        reconciler.assign(client.id, "pkg-old")

    assert excinfo.value.reason == SELECT_PACKAGE


def test_unknown_client_and_package(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a"))
    client = ledger_store.add_client()

    with pytest.raises(NotFoundError) as missing_client:
        reconciler.assign(uuid4(), "pkg-a")
    with pytest.raises(NotFoundError) as missing_package:
        reconciler.assign(client.id, "pkg-missing")

    assert missing_client.value.kind == "client"
    assert missing_package.value.kind == "package"


def test_preview_reports_issues_without_writing(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()

    good = reconciler.preview(client.id, "pkg-a", AssignmentOverrides(consumed_at_assignment=3))
    bad = reconciler.preview(client.id, "pkg-a", AssignmentOverrides(consumed_at_assignment=15))

    assert good.ok
    assert good.proposal is not None
    assert good.proposal.remaining == 7
    assert not bad.ok
    assert bad.reason == CONSUMED_EXCEEDS_GRANTED
    assert [issue.field for issue in bad.issues] == ["consumed_at_assignment"]
    assert ledger_store.commits == 0


def test_adjust_pool_records_adjustment(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")

    adjustment = reconciler.adjust_pool(
        client.id, CreditPool.SERVINGS, -3, note="refund", created_by="ops"
    )

    assert adjustment.previous_remaining == 10
    assert adjustment.new_remaining == 7
    assert adjustment.delta == -3
    assert ledger_store.state(client.id).remaining_servings == 7
    assert [item.id for item in ledger_store.data.adjustments] == [adjustment.id]


def test_adjust_down_supersedes_assignment_as_consumed(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")

    reconciler.adjust_pool(client.id, CreditPool.SERVINGS, -3)

    first, current = reconciler.history(client.id)
    assert not first.is_active
    assert current.granted_servings == 10
    assert current.consumed_servings_at_assignment == 3
    assert current.remaining_servings == 7


def test_assignment_can_be_updated_after_upward_adjustment(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")
    reconciler.adjust_pool(client.id, CreditPool.SERVINGS, 1)

    result = reconciler.assign(
        client.id, "pkg-a", AssignmentOverrides(payment_status=PaymentStatus.PAID)
    )

    assert result.changed
    assert result.assignment.payment_status is PaymentStatus.PAID
    assert result.assignment.granted_servings == 11
    assert result.assignment.consumed_servings_at_assignment == 0
    assert result.assignment.remaining_servings == 11
    assert ledger_store.state(client.id).remaining_servings == 11
    assert [item.is_active for item in reconciler.history(client.id)] == [False, False, True]


def test_image_adjustment_leaves_assignment_alone(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
    catalogue: FakePackageCatalogue,
) -> None:
    catalogue.add(make_package("pkg-a", granted_servings=10, granted_images=2))
    client = ledger_store.add_client()
    reconciler.assign(client.id, "pkg-a")

    reconciler.adjust_pool(client.id, CreditPool.IMAGES, 2)

    assert len(reconciler.history(client.id)) == 1


def test_adjust_up_raises_grant(
    reconciler: AssignmentReconciler,
    ledger_store: FakeLedgerStore,
) -> None:
    client = ledger_store.add_client()

    reconciler.adjust_pool(client.id, CreditPool.IMAGES, 4)

    state = ledger_store.state(client.id)
    assert state.remaining_images == 4
    assert state.images.is_consistent
