"""Client submissions moving through the processing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from servingledger.domain.model.entity import Entity
from servingledger.domain.model.enums import CreditPool, SubmissionStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from servingledger.domain.model.audit import StatusChange


@dataclass(eq=False, kw_only=True)
class Submission(Entity):
    """A unit of client work holding reserved credit until it completes.

    Each pipeline state has a first-entry timestamp that is written once and
    never overwritten on re-entry.
    """

    client_id: UUID
    item_name: str | None = None
    status: SubmissionStatus = SubmissionStatus.RECEIVED

    requested_servings: int = 0
    requested_images: int = 0
    overdraft_servings: int = 0
    overdraft_images: int = 0

    received_at: datetime | None = None
    in_progress_at: datetime | None = None
    ready_for_review_at: datetime | None = None
    changes_requested_at: datetime | None = None
    completed_at: datetime | None = None

    cancelled_at: datetime | None = None
    cancellation_note: str | None = None
    edit_count: int = 0
    version: int | None = field(default=None, repr=False)

    _status_changes: list[StatusChange] = field(default_factory=list["StatusChange"], repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    @property
    def is_completed(self) -> bool:
        return self.status is SubmissionStatus.COMPLETED

    @property
    def holds_reservation(self) -> bool:
        return not (self.is_completed or self.is_cancelled)

    @property
    def final_approval_at(self) -> datetime | None:
        return self.completed_at

    @property
    def status_changes(self) -> tuple[StatusChange, ...]:
        return tuple(sorted(self._status_changes, key=lambda change: change.changed_at))

    def entered_at(self, status: SubmissionStatus) -> datetime | None:
        return getattr(self, status.timestamp_field)

    def requested(self, pool: CreditPool) -> int:
        if pool is CreditPool.SERVINGS:
            return self.requested_servings
        return self.requested_images

    def overdraft(self, pool: CreditPool) -> int:
        if pool is CreditPool.SERVINGS:
            return self.overdraft_servings
        return self.overdraft_images

    def _record_status_change(self, change: StatusChange) -> None:
        self._status_changes.append(change)
