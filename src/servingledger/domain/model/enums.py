"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SubmissionStatus(StrEnum):
    """Processing pipeline states, in pipeline order."""

    RECEIVED = "received"
    IN_PROGRESS = "in_progress"
    READY_FOR_REVIEW = "ready_for_review"
    CHANGES_REQUESTED = "changes_requested"
    COMPLETED = "completed"

    @property
    def timestamp_field(self) -> str:
        return f"{self.value}_at"


class PaymentStatus(StrEnum):
    PAID = "paid"
    UNPAID = "unpaid"
    PARTIAL = "partial"


class CreditPool(StrEnum):
    SERVINGS = "servings"
    IMAGES = "images"
