"""Domain port definitions for adapters."""

from __future__ import annotations

from .catalogue import PackageCatalogue
from .persistence import (
    ClientRepository,
    CreditAdjustmentRepository,
    CreditAssignmentRepository,
    CreditStateRepository,
    PackageTemplateRepository,
    Repository,
    SubmissionRepository,
)
from .unit_of_work import LedgerRepositories, LedgerUnitOfWork

__all__ = [
    "ClientRepository",
    "CreditAdjustmentRepository",
    "CreditAssignmentRepository",
    "CreditStateRepository",
    "LedgerRepositories",
    "LedgerUnitOfWork",
    "PackageCatalogue",
    "PackageTemplateRepository",
    "Repository",
    "SubmissionRepository",
]
