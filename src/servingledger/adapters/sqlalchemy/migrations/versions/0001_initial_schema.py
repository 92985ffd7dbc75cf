"""Initial ledger schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "package_template",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("granted_servings", sa.Integer(), nullable=False),
        sa.Column("granted_images", sa.Integer(), nullable=True),
        sa.Column("price", sa.String(length=32), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("max_edits_per_serving", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_package_template")),
    )
    op.create_table(
        "client",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_client")),
    )
    op.create_table(
        "credit_assignment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("package_template_id", sa.String(length=64), nullable=True),
        sa.Column("granted_servings", sa.Integer(), nullable=True),
        sa.Column("consumed_servings_at_assignment", sa.Integer(), nullable=False),
        sa.Column("remaining_servings", sa.Integer(), nullable=False),
        sa.Column("payment_status", sa.String(length=32), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["client_id"],
            ["client.id"],
            name=op.f("fk_credit_assignment_client_id_client"),
        ),
        sa.ForeignKeyConstraint(
            ["package_template_id"],
            ["package_template.id"],
            name=op.f("fk_credit_assignment_package_template_id_package_template"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_credit_assignment")),
    )
    with op.batch_alter_table("credit_assignment", schema=None) as batch_op:
        batch_op.create_index("ix_credit_assignment_client_id", ["client_id"], unique=False)
        batch_op.create_index(
            "uq_credit_assignment_active_client",
            ["client_id"],
            unique=True,
            sqlite_where=sa.text("superseded_at IS NULL"),
            postgresql_where=sa.text("superseded_at IS NULL"),
        )

    op.create_table(
        "client_credit_state",
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("servings_granted", sa.Integer(), nullable=False),
        sa.Column("servings_remaining", sa.Integer(), nullable=False),
        sa.Column("servings_reserved", sa.Integer(), nullable=False),
        sa.Column("servings_consumed", sa.Integer(), nullable=False),
        sa.Column("servings_overdraft", sa.Integer(), nullable=False),
        sa.Column("images_granted", sa.Integer(), nullable=False),
        sa.Column("images_remaining", sa.Integer(), nullable=False),
        sa.Column("images_reserved", sa.Integer(), nullable=False),
        sa.Column("images_consumed", sa.Integer(), nullable=False),
        sa.Column("images_overdraft", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["client_id"],
            ["client.id"],
            name=op.f("fk_client_credit_state_client_id_client"),
        ),
        sa.PrimaryKeyConstraint("client_id", name=op.f("pk_client_credit_state")),
    )
    op.create_table(
        "credit_adjustment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("pool", sa.String(length=32), nullable=False),
        sa.Column("previous_remaining", sa.Integer(), nullable=False),
        sa.Column("new_remaining", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["client_id"],
            ["client.id"],
            name=op.f("fk_credit_adjustment_client_id_client"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_credit_adjustment")),
    )
    with op.batch_alter_table("credit_adjustment", schema=None) as batch_op:
        batch_op.create_index("ix_credit_adjustment_client_id", ["client_id"], unique=False)

    op.create_table(
        "submission",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("item_name", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("requested_servings", sa.Integer(), nullable=False),
        sa.Column("requested_images", sa.Integer(), nullable=False),
        sa.Column("overdraft_servings", sa.Integer(), nullable=False),
        sa.Column("overdraft_images", sa.Integer(), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("in_progress_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ready_for_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("changes_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_note", sa.Text(), nullable=True),
        sa.Column("edit_count", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["client_id"],
            ["client.id"],
            name=op.f("fk_submission_client_id_client"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_submission")),
    )
    with op.batch_alter_table("submission", schema=None) as batch_op:
        batch_op.create_index("ix_submission_client_id", ["client_id"], unique=False)

    op.create_table(
        "status_change",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("submission_id", sa.Uuid(), nullable=False),
        sa.Column("from_status", sa.String(length=32), nullable=False),
        sa.Column("to_status", sa.String(length=32), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["submission_id"],
            ["submission.id"],
            name=op.f("fk_status_change_submission_id_submission"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_status_change")),
    )
    with op.batch_alter_table("status_change", schema=None) as batch_op:
        batch_op.create_index("ix_status_change_submission_id", ["submission_id"], unique=False)


def downgrade() -> None:
    with op.batch_alter_table("status_change", schema=None) as batch_op:
        batch_op.drop_index("ix_status_change_submission_id")
    op.drop_table("status_change")

    with op.batch_alter_table("submission", schema=None) as batch_op:
        batch_op.drop_index("ix_submission_client_id")
    op.drop_table("submission")

    with op.batch_alter_table("credit_adjustment", schema=None) as batch_op:
        batch_op.drop_index("ix_credit_adjustment_client_id")
    op.drop_table("credit_adjustment")

    op.drop_table("client_credit_state")

    with op.batch_alter_table("credit_assignment", schema=None) as batch_op:
        batch_op.drop_index("uq_credit_assignment_active_client")
        batch_op.drop_index("ix_credit_assignment_client_id")
    op.drop_table("credit_assignment")

    op.drop_table("client")
    op.drop_table("package_template")
