"""Submission pipeline transitions and first-entry timestamps."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from servingledger.domain.errors import IllegalTransitionError
from servingledger.domain.model import StatusChange, SubmissionStatus

if TYPE_CHECKING:
    from datetime import datetime

    from servingledger.domain.model import Submission

log = getLogger(__name__)

ALLOWED_TRANSITIONS: Final[Mapping[SubmissionStatus, frozenset[SubmissionStatus]]] = (
    MappingProxyType(
        {
            SubmissionStatus.RECEIVED: frozenset({SubmissionStatus.IN_PROGRESS}),
            SubmissionStatus.IN_PROGRESS: frozenset({SubmissionStatus.READY_FOR_REVIEW}),
            SubmissionStatus.READY_FOR_REVIEW: frozenset(
                {SubmissionStatus.CHANGES_REQUESTED, SubmissionStatus.COMPLETED}
            ),
            SubmissionStatus.CHANGES_REQUESTED: frozenset(
                {SubmissionStatus.IN_PROGRESS, SubmissionStatus.READY_FOR_REVIEW}
            ),
            SubmissionStatus.COMPLETED: frozenset(),
        }
    )
)

CANCELLED: Final[str] = "cancelled"


def can_transition(source: SubmissionStatus, target: SubmissionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[source]


def allowed_targets(submission: Submission) -> frozenset[SubmissionStatus]:
    if submission.is_cancelled:
        return frozenset()
    return ALLOWED_TRANSITIONS[submission.status]


@dataclass(slots=True, frozen=True)
class SubmissionStatusMachine:
    """Applies pipeline transitions to submissions in memory.

    Persisting the result is the caller's job; a rejected transition leaves the
    submission untouched.
    """

    def start(self, submission: Submission, *, at: datetime) -> None:
        """Stamp the initial state of a freshly created submission."""

        submission.status = SubmissionStatus.RECEIVED
        _stamp_first_entry(submission, SubmissionStatus.RECEIVED, at)

    def check(self, submission: Submission, target: SubmissionStatus) -> None:
        source = submission.status
        if submission.is_cancelled:
            raise IllegalTransitionError(source, target, detail="submission is cancelled")
        if not can_transition(source, target):
            raise IllegalTransitionError(source, target)

    def transition(
        self,
        submission: Submission,
        target: SubmissionStatus,
        *,
        at: datetime,
        note: str | None = None,
    ) -> StatusChange:
        self.check(submission, target)
        change = StatusChange(
            submission_id=submission.id,
            from_status=submission.status,
            to_status=target,
            changed_at=at,
            note=note,
        )
        submission.status = target
        _stamp_first_entry(submission, target, at)
        submission._record_status_change(change)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        log.debug(f"Submission {submission.id}: {change.from_status} -> {change.to_status}")
        return change

    def check_cancel(self, submission: Submission) -> None:
        if submission.is_cancelled:
            raise IllegalTransitionError(
                submission.status, CANCELLED, detail="submission is already cancelled"
            )
        if submission.is_completed:
            raise IllegalTransitionError(submission.status, CANCELLED)

    def cancel(self, submission: Submission, *, at: datetime, note: str | None = None) -> None:
        self.check_cancel(submission)
        submission.cancelled_at = at
        submission.cancellation_note = note

    def record_edit(self, submission: Submission) -> int:
        """Count a non-status edit; allowed in every state, cancelled included."""

        submission.edit_count += 1
        return submission.edit_count


def _stamp_first_entry(submission: Submission, status: SubmissionStatus, at: datetime) -> None:
    field_name = status.timestamp_field
    if getattr(submission, field_name) is None:
        setattr(submission, field_name, at)
