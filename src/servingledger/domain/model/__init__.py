"""Public domain model surface."""

from __future__ import annotations

from servingledger.domain.model.audit import CreditAdjustment, StatusChange
from servingledger.domain.model.credit import (
    AssignmentTerms,
    Client,
    ClientCreditState,
    CreditAssignment,
    PoolBalance,
)
from servingledger.domain.model.entity import Entity, new_id
from servingledger.domain.model.enums import CreditPool, PaymentStatus, SubmissionStatus
from servingledger.domain.model.package import PackageTemplate
from servingledger.domain.model.submission import Submission

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    # enums
    "CreditPool",
    "PaymentStatus",
    "SubmissionStatus",
    # catalogue
    "PackageTemplate",
    # credit
    "AssignmentTerms",
    "Client",
    "ClientCreditState",
    "CreditAssignment",
    "PoolBalance",
    # submissions
    "Submission",
    # audit
    "CreditAdjustment",
    "StatusChange",
]
