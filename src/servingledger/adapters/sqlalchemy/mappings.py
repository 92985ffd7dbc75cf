"""SQLAlchemy mapping metadata for the ledger domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from functools import cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import composite, configure_mappers, relationship

from servingledger.domain.model import (
    Client,
    ClientCreditState,
    CreditAdjustment,
    CreditAssignment,
    CreditPool,
    PackageTemplate,
    PaymentStatus,
    PoolBalance,
    StatusChange,
    Submission,
    SubmissionStatus,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class DecimalString(TypeDecorator[Decimal]):
    """Exact decimal amounts stored as text (SQLite has no decimal type)."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return Decimal(value)


def _value_enum(enum_cls: type[StrEnum]) -> Enum:
    # Store the enum values ("in_progress"), not the member names.
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Catalogue and clients ---------------------------------------------------------

package_template_table = Table(
    "package_template",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String, nullable=False),
    Column("granted_servings", Integer, nullable=False),
    Column("granted_images", Integer, nullable=True),
    Column("price", DecimalString(), nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("description", Text, nullable=True),
    Column("max_edits_per_serving", Integer, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
)

client_table = Table(
    "client",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
)

# Ledger ------------------------------------------------------------------------

credit_assignment_table = Table(
    "credit_assignment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("client_id", UUIDColumnType, ForeignKey("client.id"), nullable=False),
    Column(
        "package_template_id",
        String(64),
        ForeignKey("package_template.id"),
        nullable=True,
    ),
    Column("granted_servings", Integer, nullable=True),
    Column("consumed_servings_at_assignment", Integer, nullable=False, default=0),
    Column("remaining_servings", Integer, nullable=False, default=0),
    Column("payment_status", _value_enum(PaymentStatus), nullable=False),
    Column("expires_at", UTCDateTime(), nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("superseded_at", UTCDateTime(), nullable=True),
    Index("ix_credit_assignment_client_id", "client_id"),
)

# One active assignment per client; a racing second insert fails here.
Index(
    "uq_credit_assignment_active_client",
    credit_assignment_table.c.client_id,
    unique=True,
    sqlite_where=credit_assignment_table.c.superseded_at.is_(None),
    postgresql_where=credit_assignment_table.c.superseded_at.is_(None),
)

client_credit_state_table = Table(
    "client_credit_state",
    mapper_registry.metadata,
    Column("client_id", UUIDColumnType, ForeignKey("client.id"), primary_key=True),
    Column("servings_granted", Integer, nullable=False, default=0),
    Column("servings_remaining", Integer, nullable=False, default=0),
    Column("servings_reserved", Integer, nullable=False, default=0),
    Column("servings_consumed", Integer, nullable=False, default=0),
    Column("servings_overdraft", Integer, nullable=False, default=0),
    Column("images_granted", Integer, nullable=False, default=0),
    Column("images_remaining", Integer, nullable=False, default=0),
    Column("images_reserved", Integer, nullable=False, default=0),
    Column("images_consumed", Integer, nullable=False, default=0),
    Column("images_overdraft", Integer, nullable=False, default=0),
    Column("updated_at", UTCDateTime(), nullable=True),
    Column("version", Integer, nullable=False),
)

credit_adjustment_table = Table(
    "credit_adjustment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("client_id", UUIDColumnType, ForeignKey("client.id"), nullable=False),
    Column("pool", _value_enum(CreditPool), nullable=False),
    Column("previous_remaining", Integer, nullable=False),
    Column("new_remaining", Integer, nullable=False),
    Column("note", Text, nullable=True),
    Column("created_by", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_credit_adjustment_client_id", "client_id"),
)

# Submissions -------------------------------------------------------------------

submission_table = Table(
    "submission",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("client_id", UUIDColumnType, ForeignKey("client.id"), nullable=False),
    Column("item_name", String, nullable=True),
    Column("status", _value_enum(SubmissionStatus), nullable=False),
    Column("requested_servings", Integer, nullable=False, default=0),
    Column("requested_images", Integer, nullable=False, default=0),
    Column("overdraft_servings", Integer, nullable=False, default=0),
    Column("overdraft_images", Integer, nullable=False, default=0),
    Column("received_at", UTCDateTime(), nullable=True),
    Column("in_progress_at", UTCDateTime(), nullable=True),
    Column("ready_for_review_at", UTCDateTime(), nullable=True),
    Column("changes_requested_at", UTCDateTime(), nullable=True),
    Column("completed_at", UTCDateTime(), nullable=True),
    Column("cancelled_at", UTCDateTime(), nullable=True),
    Column("cancellation_note", Text, nullable=True),
    Column("edit_count", Integer, nullable=False, default=0),
    Column("version", Integer, nullable=False),
    Index("ix_submission_client_id", "client_id"),
)

status_change_table = Table(
    "status_change",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "submission_id",
        UUIDColumnType,
        ForeignKey("submission.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("from_status", _value_enum(SubmissionStatus), nullable=False),
    Column("to_status", _value_enum(SubmissionStatus), nullable=False),
    Column("changed_at", UTCDateTime(), nullable=False),
    Column("note", Text, nullable=True),
    Index("ix_status_change_submission_id", "submission_id"),
)


def _pool_composite(table: Table, prefix: str) -> orm.Composite[PoolBalance]:
    return composite(
        PoolBalance,
        table.c[f"{prefix}_granted"],
        table.c[f"{prefix}_remaining"],
        table.c[f"{prefix}_reserved"],
        table.c[f"{prefix}_consumed"],
        table.c[f"{prefix}_overdraft"],
    )


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(PackageTemplate, package_template_table)

    mapper_registry.map_imperatively(Client, client_table)

    mapper_registry.map_imperatively(CreditAssignment, credit_assignment_table)

    mapper_registry.map_imperatively(
        ClientCreditState,
        client_credit_state_table,
        properties={
            "servings": _pool_composite(client_credit_state_table, "servings"),
            "images": _pool_composite(client_credit_state_table, "images"),
        },
        version_id_col=client_credit_state_table.c.version,
    )

    mapper_registry.map_imperatively(CreditAdjustment, credit_adjustment_table)

    mapper_registry.map_imperatively(
        Submission,
        submission_table,
        properties={
            "_status_changes": relationship(
                StatusChange,
                cascade="all, delete-orphan",
                lazy="selectin",
                order_by=status_change_table.c.changed_at,
            ),
        },
        version_id_col=submission_table.c.version,
    )

    mapper_registry.map_imperatively(StatusChange, status_change_table)

    configure_mappers()
    return mapper_registry
