"""Package (re)assignment for clients.

The reconciler resolves the selected package, reads the client's active
assignment and live credit state, lets ``ledger.reconcile`` derive the new
terms and commits the superseded assignment, the new assignment and the
updated balance together. Any failure leaves the store untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from servingledger.domain.clock import utcnow
from servingledger.domain.errors import (
    SELECT_PACKAGE,
    NotFoundError,
    ValidationError,
    ValidationIssue,
)
from servingledger.domain.ledger import (
    LedgerOverrides,
    LedgerProposal,
    PriorSnapshot,
    adjust,
    reconcile,
    regrant,
)
from servingledger.domain.model import (
    AssignmentTerms,
    CreditAdjustment,
    CreditAssignment,
    CreditPool,
    PaymentStatus,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from servingledger.domain.clock import Clock
    from servingledger.domain.model import ClientCreditState, PackageTemplate, PoolBalance
    from servingledger.domain.ports import (
        LedgerRepositories,
        LedgerUnitOfWork,
        PackageCatalogue,
    )

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssignmentOverrides:
    """Operator input merged over the derived terms.

    ``None`` keeps the derived value (for credit) or the active assignment's
    value (for payment, expiry and notes).
    """

    granted: int | None = None
    consumed_at_assignment: int | None = None
    payment_status: PaymentStatus | None = None
    expires_at: datetime | None = None
    notes: str | None = None

    def ledger(self) -> LedgerOverrides:
        return LedgerOverrides(
            granted=self.granted,
            consumed_at_assignment=self.consumed_at_assignment,
        )


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    assignment: CreditAssignment
    credit_state: ClientCreditState
    changed: bool


@dataclass(frozen=True, slots=True)
class AssignmentPreview:
    """What an assignment would produce, for display next to the inputs."""

    package: PackageTemplate | None
    proposal: LedgerProposal | None
    reason: str | None = None
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return self.proposal is not None


@dataclass(slots=True)
class _Plan:
    package: PackageTemplate | None
    active: CreditAssignment | None
    state: ClientCreditState
    proposal: LedgerProposal
    terms: AssignmentTerms
    fresh: bool


@dataclass(slots=True)
class AssignmentReconciler:
    catalogue: PackageCatalogue
    unit_of_work_factory: Callable[[], LedgerUnitOfWork]
    clock: Clock = field(default=utcnow)

    def assign(
        self,
        client_id: UUID,
        package_id: str | None,
        overrides: AssignmentOverrides | None = None,
    ) -> AssignmentResult:
        """Assign ``package_id`` (or a no-package state) to a client."""

        overrides = overrides or AssignmentOverrides()
        package = self._resolve_package(package_id)

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            plan = _plan(repositories, client_id, package, overrides)

            if plan.active is not None and plan.active.terms == plan.terms:
                log.info(f"Assignment for client {client_id} unchanged; nothing written")
                return AssignmentResult(
                    assignment=plan.active, credit_state=plan.state, changed=False
                )

            now = self.clock()
            if plan.active is not None:
                repositories.assignments.supersede(plan.active, at=now)
            assignment = CreditAssignment.from_terms(client_id, plan.terms, created_at=now)
            repositories.assignments.add(assignment)

            state = plan.state
            state.servings = regrant(
                state.servings,
                remaining=plan.proposal.remaining,
                fresh=(plan.proposal.granted or 0) if plan.fresh else 0,
            )
            if plan.fresh and package is not None and package.granted_images is not None:
                state.images = regrant(
                    state.images,
                    remaining=package.granted_images,
                    fresh=package.granted_images,
                )
            state.updated_at = now
            repositories.credit_states.save(state)
            uow.commit()

        log.info(
            f"Assigned {package_id or 'no package'} to client {client_id}: "
            f"granted={plan.proposal.granted} "
            f"consumed={plan.proposal.consumed_at_assignment} "
            f"remaining={plan.proposal.remaining}"
        )
        return AssignmentResult(assignment=assignment, credit_state=state, changed=True)

    def preview(
        self,
        client_id: UUID,
        package_id: str | None,
        overrides: AssignmentOverrides | None = None,
    ) -> AssignmentPreview:
        """Run the assignment checks without writing anything.

        Ledger rule violations come back as issues; unknown clients or packages
        still raise ``NotFoundError``.
        """

        overrides = overrides or AssignmentOverrides()
        package = self._resolve_package(package_id)
        with self.unit_of_work_factory() as uow:
            try:
                plan = _plan(uow.repositories, client_id, package, overrides)
            except ValidationError as exc:
                return AssignmentPreview(
                    package=package, proposal=None, reason=exc.reason, issues=exc.issues
                )
        return AssignmentPreview(package=package, proposal=plan.proposal)

    def adjust_pool(
        self,
        client_id: UUID,
        pool: CreditPool,
        delta: int,
        *,
        note: str | None = None,
        created_by: str | None = None,
    ) -> CreditAdjustment:
        """Nudge a pool's remaining credit by ``delta`` and record who did it."""

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            _require_client(repositories, client_id)
            state = repositories.credit_states.get(client_id)
            before = state.pool(pool)
            after = adjust(before, delta)
            now = self.clock()
            adjustment = CreditAdjustment(
                client_id=client_id,
                pool=pool,
                previous_remaining=before.remaining,
                new_remaining=after.remaining,
                note=note,
                created_by=created_by,
                created_at=now,
            )
            state.set_pool(pool, after)
            state.updated_at = now
            repositories.credit_states.save(state)
            repositories.adjustments.add(adjustment)
            if pool is CreditPool.SERVINGS:
                _follow_adjustment(repositories, client_id, before, after, at=now)
            uow.commit()

        log.info(
            f"Adjusted {pool} for client {client_id}: "
            f"{adjustment.previous_remaining} -> {adjustment.new_remaining}"
        )
        return adjustment

    def history(self, client_id: UUID) -> list[CreditAssignment]:
        """All assignments of a client, superseded ones included, oldest first."""

        with self.unit_of_work_factory() as uow:
            _require_client(uow.repositories, client_id)
            return uow.repositories.assignments.for_client(client_id)

    def _resolve_package(self, package_id: str | None) -> PackageTemplate | None:
        if package_id is None:
            return None
        return self.catalogue.get(package_id)


def _require_client(repositories: LedgerRepositories, client_id: UUID) -> None:
    if repositories.clients.get(client_id) is None:
        raise NotFoundError("client", client_id)


def _follow_adjustment(
    repositories: LedgerRepositories,
    client_id: UUID,
    before: PoolBalance,
    after: PoolBalance,
    *,
    at: datetime,
) -> None:
    """Supersede the active assignment so its terms match the adjusted servings.

    An upward nudge adds to the grant, a downward one counts as consumed.
    """

    active = repositories.assignments.active_for(client_id)
    if active is None:
        return
    terms = active.terms
    if terms.granted_servings is None:
        granted = None
        consumed = 0
    else:
        raised = max(0, after.remaining - before.remaining)
        granted = max(terms.granted_servings + raised, after.remaining)
        consumed = granted - after.remaining
    followed = replace(
        terms,
        granted_servings=granted,
        consumed_servings_at_assignment=consumed,
        remaining_servings=after.remaining,
    )
    if followed == terms:
        return
    repositories.assignments.supersede(active, at=at)
    repositories.assignments.add(CreditAssignment.from_terms(client_id, followed, created_at=at))


def _plan(
    repositories: LedgerRepositories,
    client_id: UUID,
    package: PackageTemplate | None,
    overrides: AssignmentOverrides,
) -> _Plan:
    _require_client(repositories, client_id)
    active = repositories.assignments.active_for(client_id)
    state = repositories.credit_states.get(client_id)

    current_package_id = active.package_template_id if active is not None else None
    if package is not None and not package.active and package.id != current_package_id:
        raise ValidationError.for_field(SELECT_PACKAGE, "package")

    prior = _prior_snapshot(active, state)
    proposal = reconcile(package, prior, overrides.ledger())

    terms = AssignmentTerms(
        package_template_id=package.id if package is not None else None,
        granted_servings=proposal.granted,
        consumed_servings_at_assignment=proposal.consumed_at_assignment,
        remaining_servings=proposal.remaining,
        payment_status=_pick(
            overrides.payment_status,
            active.payment_status if active is not None else None,
            PaymentStatus.UNPAID,
        ),
        expires_at=_pick(overrides.expires_at, active.expires_at if active else None, None),
        notes=_pick(overrides.notes, active.notes if active else None, None),
    )
    fresh = package is not None and package.id != current_package_id
    return _Plan(
        package=package,
        active=active,
        state=state,
        proposal=proposal,
        terms=terms,
        fresh=fresh,
    )


def _prior_snapshot(
    active: CreditAssignment | None,
    state: ClientCreditState,
) -> PriorSnapshot | None:
    # Reservations already spent part of the assignment, so the live balance wins.
    if active is not None:
        return PriorSnapshot(
            package_template_id=active.package_template_id,
            remaining_servings=state.remaining_servings,
            granted_servings=active.granted_servings,
        )
    if state.updated_at is not None:
        return PriorSnapshot(package_template_id=None, remaining_servings=state.remaining_servings)
    return None


def _pick[T](override: T | None, current: T | None, default: T) -> T:
    if override is not None:
        return override
    if current is not None:
        return current
    return default
