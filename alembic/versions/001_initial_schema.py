"""Initial schema — appointments and audit_log.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    op.create_table(
        "audit_log",
        sa.Column("event_type", sa.String(100), nullable=False, index=True),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("actor_id", sa.String(100), comment="Client, lawyer or admin ID"),
        sa.Column("actor_role", sa.String(50), comment="client, lawyer, admin"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "appointments",
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("lawyer_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("chat_enabled", sa.Boolean(), nullable=False),
        sa.Column("reject_reason", sa.Text()),
        sa.Column("cancel_reason", sa.Text()),
        sa.Column("admin_reason", sa.Text()),
        sa.Column("description", sa.Text()),
        sa.Column("notes", sa.String(1000)),
        sa.Column("meeting_link", sa.String(500)),
        sa.Column("is_lawyer_viewed", sa.Boolean(), nullable=False),
        sa.Column("is_client_viewed", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_time < end_time", name="ck_appointments_time_order"),
        sa.CheckConstraint(
            "NOT (chat_enabled AND status = 'cancelled')",
            name="ck_appointments_chat_closed_when_cancelled",
        ),
    )


def downgrade() -> None:
    op.drop_table("appointments")
    op.drop_table("audit_log")
