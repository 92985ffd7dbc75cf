"""Clients, their credit assignments and their live credit balances."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from servingledger.domain.model.entity import Entity
from servingledger.domain.model.enums import CreditPool, PaymentStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class Client(Entity):
    name: str
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class PoolBalance:
    """Balance of one credit pool.

    ``granted`` is the lifetime amount granted to the pool and ``overdraft`` the
    credit reserved beyond the balance under an explicit override, so that
    ``reserved + consumed + remaining <= granted + overdraft`` always holds.
    """

    granted: int = 0
    remaining: int = 0
    reserved: int = 0
    consumed: int = 0
    overdraft: int = 0

    def __composite_values__(self) -> tuple[int, int, int, int, int]:
        return (self.granted, self.remaining, self.reserved, self.consumed, self.overdraft)

    @property
    def outstanding(self) -> int:
        return self.reserved + self.consumed + self.remaining

    @property
    def is_consistent(self) -> bool:
        values = self.__composite_values__()
        return all(value >= 0 for value in values) and (
            self.outstanding <= self.granted + self.overdraft
        )


@dataclass(eq=False, kw_only=True)
class ClientCreditState:
    """Live per-client balances, one independent pool per resource."""

    client_id: UUID
    servings: PoolBalance = field(default_factory=PoolBalance)
    images: PoolBalance = field(default_factory=PoolBalance)
    updated_at: datetime | None = None
    version: int | None = field(default=None, repr=False)

    def pool(self, pool: CreditPool) -> PoolBalance:
        return self.servings if pool is CreditPool.SERVINGS else self.images

    def set_pool(self, pool: CreditPool, balance: PoolBalance) -> None:
        if pool is CreditPool.SERVINGS:
            self.servings = balance
        else:
            self.images = balance

    @property
    def remaining_servings(self) -> int:
        return self.servings.remaining

    @property
    def reserved_servings(self) -> int:
        return self.servings.reserved

    @property
    def consumed_servings(self) -> int:
        return self.servings.consumed

    @property
    def remaining_images(self) -> int:
        return self.images.remaining

    @property
    def reserved_images(self) -> int:
        return self.images.reserved

    @property
    def consumed_images(self) -> int:
        return self.images.consumed


@dataclass(frozen=True, slots=True)
class AssignmentTerms:
    """The comparable content of an assignment, without identity or timestamps."""

    package_template_id: str | None
    granted_servings: int | None
    consumed_servings_at_assignment: int
    remaining_servings: int
    payment_status: PaymentStatus
    expires_at: datetime | None
    notes: str | None


@dataclass(eq=False, kw_only=True)
class CreditAssignment(Entity):
    """A package (or custom grant) assigned to a client.

    Reassignment stamps ``superseded_at`` on the previous row instead of
    deleting it, so the full history stays readable.
    """

    client_id: UUID
    package_template_id: str | None = None
    granted_servings: int | None = None
    consumed_servings_at_assignment: int = 0
    remaining_servings: int = 0
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    expires_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None
    superseded_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.superseded_at is None

    @property
    def terms(self) -> AssignmentTerms:
        return AssignmentTerms(
            package_template_id=self.package_template_id,
            granted_servings=self.granted_servings,
            consumed_servings_at_assignment=self.consumed_servings_at_assignment,
            remaining_servings=self.remaining_servings,
            payment_status=self.payment_status,
            expires_at=self.expires_at,
            notes=self.notes,
        )

    def supersede(self, at: datetime) -> None:
        if self.superseded_at is None:
            self.superseded_at = at

    @classmethod
    def from_terms(
        cls,
        client_id: UUID,
        terms: AssignmentTerms,
        *,
        created_at: datetime,
    ) -> CreditAssignment:
        return cls(
            client_id=client_id,
            package_template_id=terms.package_template_id,
            granted_servings=terms.granted_servings,
            consumed_servings_at_assignment=terms.consumed_servings_at_assignment,
            remaining_servings=terms.remaining_servings,
            payment_status=terms.payment_status,
            expires_at=terms.expires_at,
            notes=terms.notes,
            created_at=created_at,
        )
