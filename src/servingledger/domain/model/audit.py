"""Audit records for status changes and manual credit adjustments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .entity import Entity

if TYPE_CHECKING:
    from uuid import UUID

    from .enums import CreditPool, SubmissionStatus


@dataclass(eq=False, kw_only=True)
class StatusChange(Entity):
    """One accepted pipeline transition of a submission."""

    submission_id: UUID
    from_status: SubmissionStatus
    to_status: SubmissionStatus
    changed_at: datetime
    note: str | None = None


@dataclass(eq=False, kw_only=True)
class CreditAdjustment(Entity):
    """Audit record for an operator nudging a pool's remaining balance."""

    client_id: UUID
    pool: CreditPool
    previous_remaining: int
    new_remaining: int
    note: str | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def delta(self) -> int:
        return self.new_remaining - self.previous_remaining
