"""Package templates offered by the catalogue."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from servingledger.domain.errors import (
    INVALID_PACKAGE,
    NEGATIVE_VALUE,
    ValidationError,
    ValidationIssue,
)

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class PackageTemplate:
    """A sellable bundle of servings and, optionally, images.

    Templates are never edited once an assignment references them; a changed
    offer is a new template. ``granted_images`` of ``None`` means the package
    does not meter images at all.
    """

    id: str
    name: str
    granted_servings: int
    granted_images: int | None = None
    price: Decimal = Decimal(0)
    active: bool = True
    description: str | None = None
    max_edits_per_serving: int | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        issues: list[ValidationIssue] = []
        if not self.id.strip():
            issues.append(ValidationIssue("id", "blank value"))
        if not self.name.strip():
            issues.append(ValidationIssue("name", "blank value"))
        if self.granted_servings < 0:
            issues.append(ValidationIssue("granted_servings", NEGATIVE_VALUE))
        if self.granted_images is not None and self.granted_images < 0:
            issues.append(ValidationIssue("granted_images", NEGATIVE_VALUE))
        if self.price < 0:
            issues.append(ValidationIssue("price", NEGATIVE_VALUE))
        if self.max_edits_per_serving is not None and self.max_edits_per_serving < 1:
            issues.append(ValidationIssue("max_edits_per_serving", "must be at least 1"))
        if issues:
            raise ValidationError(INVALID_PACKAGE, issues)
