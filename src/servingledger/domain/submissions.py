"""Reserve, consume and release credit as submissions move through the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from servingledger.domain.clock import utcnow
from servingledger.domain.errors import (
    NEGATIVE_CREDIT,
    NEGATIVE_VALUE,
    NotFoundError,
    ValidationError,
    ValidationIssue,
)
from servingledger.domain.ledger import consume, release, reserve
from servingledger.domain.model import CreditPool, Submission, SubmissionStatus
from servingledger.domain.status_machine import SubmissionStatusMachine

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from servingledger.domain.clock import Clock
    from servingledger.domain.model import ClientCreditState
    from servingledger.domain.ports import LedgerRepositories, LedgerUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True)
class SubmissionCreditCoordinator:
    """Keeps submission lifecycle and client credit in step.

    Each operation reads the latest state, checks it in memory and commits the
    submission and the credit state in one unit of work.
    """

    unit_of_work_factory: Callable[[], LedgerUnitOfWork]
    clock: Clock = field(default=utcnow)
    status_machine: SubmissionStatusMachine = field(default_factory=SubmissionStatusMachine)

    def create(
        self,
        client_id: UUID,
        *,
        requested_servings: int = 0,
        requested_images: int = 0,
        item_name: str | None = None,
        allow_overdraft: bool = False,
    ) -> Submission:
        _validate_requested(requested_servings, requested_images)

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            if repositories.clients.get(client_id) is None:
                raise NotFoundError("client", client_id)
            state = repositories.credit_states.get(client_id)

            servings, servings_overdraft = reserve(
                state.servings,
                requested_servings,
                pool=CreditPool.SERVINGS,
                allow_overdraft=allow_overdraft,
            )
            images, images_overdraft = reserve(
                state.images,
                requested_images,
                pool=CreditPool.IMAGES,
                allow_overdraft=allow_overdraft,
            )

            now = self.clock()
            submission = Submission(
                client_id=client_id,
                item_name=item_name,
                requested_servings=requested_servings,
                requested_images=requested_images,
                overdraft_servings=servings_overdraft,
                overdraft_images=images_overdraft,
            )
            self.status_machine.start(submission, at=now)

            state.servings = servings
            state.images = images
            _touch(repositories, state, now)
            repositories.submissions.add(submission)
            uow.commit()

        if servings_overdraft or images_overdraft:
            log.warning(
                f"Submission {submission.id} for client {client_id} overdrew credit: "
                f"servings={servings_overdraft} images={images_overdraft}"
            )
        log.info(
            f"Created submission {submission.id} for client {client_id} "
            f"reserving servings={requested_servings} images={requested_images}"
        )
        return submission

    def transition(
        self,
        submission_id: UUID,
        target: SubmissionStatus,
        *,
        note: str | None = None,
    ) -> Submission:
        """Move a submission along the pipeline; completing it consumes its reservation."""

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            submission = _require_submission(repositories, submission_id)
            now = self.clock()
            self.status_machine.transition(submission, target, at=now, note=note)

            if target is SubmissionStatus.COMPLETED:
                state = repositories.credit_states.get(submission.client_id)
                state.servings = consume(state.servings, submission.requested_servings)
                state.images = consume(state.images, submission.requested_images)
                _touch(repositories, state, now)
            uow.commit()

        log.info(f"Submission {submission_id} moved to {target}")
        return submission

    def cancel(self, submission_id: UUID, *, note: str | None = None) -> Submission:
        """Cancel an unfinished submission and return its reservation."""

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            submission = _require_submission(repositories, submission_id)
            now = self.clock()
            self.status_machine.cancel(submission, at=now, note=note)
            _release_reservation(repositories, submission, now)
            uow.commit()

        log.info(f"Cancelled submission {submission_id}")
        return submission

    def delete(self, submission_id: UUID) -> None:
        """Remove a submission, returning its reservation if it still holds one."""

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            submission = _require_submission(repositories, submission_id)
            if submission.holds_reservation:
                _release_reservation(repositories, submission, self.clock())
            repositories.submissions.remove(submission)
            uow.commit()

        log.info(f"Deleted submission {submission_id}")

    def record_edit(self, submission_id: UUID) -> Submission:
        with self.unit_of_work_factory() as uow:
            submission = _require_submission(uow.repositories, submission_id)
            self.status_machine.record_edit(submission)
            uow.commit()
        return submission

    def balance(self, client_id: UUID) -> ClientCreditState:
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            if repositories.clients.get(client_id) is None:
                raise NotFoundError("client", client_id)
            return repositories.credit_states.get(client_id)

    def list_for_client(self, client_id: UUID) -> list[Submission]:
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            if repositories.clients.get(client_id) is None:
                raise NotFoundError("client", client_id)
            return repositories.submissions.for_client(client_id)

    def get(self, submission_id: UUID) -> Submission:
        with self.unit_of_work_factory() as uow:
            return _require_submission(uow.repositories, submission_id)


def _validate_requested(requested_servings: int, requested_images: int) -> None:
    issues = [
        ValidationIssue(name, NEGATIVE_VALUE)
        for name, value in (
            ("requested_servings", requested_servings),
            ("requested_images", requested_images),
        )
        if value < 0
    ]
    if issues:
        raise ValidationError(NEGATIVE_CREDIT, issues)


def _require_submission(repositories: LedgerRepositories, submission_id: UUID) -> Submission:
    submission = repositories.submissions.get(submission_id)
    if submission is None:
        raise NotFoundError("submission", submission_id)
    return submission


def _release_reservation(
    repositories: LedgerRepositories,
    submission: Submission,
    now: datetime,
) -> None:
    state = repositories.credit_states.get(submission.client_id)
    for pool in CreditPool:
        state.set_pool(
            pool,
            release(
                state.pool(pool),
                submission.requested(pool),
                overdraft=submission.overdraft(pool),
            ),
        )
    _touch(repositories, state, now)


def _touch(repositories: LedgerRepositories, state: ClientCreditState, now: datetime) -> None:
    # Stamping forces an UPDATE so the version check sees every ledger write.
    state.updated_at = now
    repositories.credit_states.save(state)
