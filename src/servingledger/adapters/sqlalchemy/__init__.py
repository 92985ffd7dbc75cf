"""SQLAlchemy adapter package for the ledger store."""

from __future__ import annotations

from .errors import translate_store_errors
from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCreditAdjustmentRepository,
    SqlAlchemyCreditAssignmentRepository,
    SqlAlchemyCreditStateRepository,
    SqlAlchemyPackageTemplateRepository,
    SqlAlchemySubmissionRepository,
)
from .unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    StartupError,
    build_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyClientRepository",
    "SqlAlchemyCreditAdjustmentRepository",
    "SqlAlchemyCreditAssignmentRepository",
    "SqlAlchemyCreditStateRepository",
    "SqlAlchemyLedgerUnitOfWork",
    "SqlAlchemyPackageTemplateRepository",
    "SqlAlchemySubmissionRepository",
    "StartupError",
    "build_engine",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
    "translate_store_errors",
]
