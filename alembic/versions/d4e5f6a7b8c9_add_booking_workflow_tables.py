"""add_booking_workflow_tables

Revision ID: d4e5f6a7b8c9
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "d4e5f6a7b8c9"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create medical_centers, appointments, booking_workflows and activity log."""
    op.create_table(
        "medical_centers",
        sa.Column("medical_center_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("address", sa.String(300), nullable=True),
        sa.Column("suburb", sa.String(100), nullable=True),
        sa.Column("postcode", sa.String(10), nullable=True),
    )
    op.create_table(
        "appointments",
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("incident_id", sa.Integer(), nullable=False, index=True),
        sa.Column("worker_id", sa.Integer(), nullable=True),
        sa.Column(
            "medical_center_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("medical_centers.medical_center_id"),
            nullable=True,
        ),
        sa.Column("appointment_type", sa.String(30), nullable=False),
        sa.Column("scheduled_date", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("confirmation_method", sa.String(20), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_by", sa.String(100), nullable=True),
        sa.Column("location_address", sa.String(300), nullable=True),
        sa.Column("location_suburb", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "booking_workflows",
        sa.Column("workflow_id", sa.String(64), primary_key=True),
        sa.Column("incident_id", sa.Integer(), nullable=False, index=True),
        sa.Column("worker_id", sa.Integer(), nullable=True),
        sa.Column(
            "medical_center_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("medical_centers.medical_center_id"),
            nullable=True,
        ),
        sa.Column("status", sa.String(30), nullable=False, server_default="initiated"),
        sa.Column(
            "available_times",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("patient_preferred_time", sa.String(100), nullable=True),
        sa.Column("patient_preferred_doctor", sa.String(200), nullable=True),
        sa.Column("confirmed_datetime", sa.String(100), nullable=True),
        sa.Column("confirmed_doctor_name", sa.String(200), nullable=True),
        sa.Column("confirmed_location", sa.String(300), nullable=True),
        sa.Column("clinic_email", sa.String(200), nullable=True),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column(
            "appointment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("appointments.appointment_id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_booking_workflows_status", "booking_workflows", ["status"])
    op.create_table(
        "incident_activity_log",
        sa.Column("entry_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("incident_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(30), nullable=False),
        sa.Column("summary", sa.String(300), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("actor_name", sa.String(100), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("idempotency_key", sa.String(200), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_incident_activity_log_incident_created",
        "incident_activity_log",
        ["incident_id", "created_at"],
    )


def downgrade() -> None:
    """Drop the booking workflow tables."""
    op.drop_index(
        "ix_incident_activity_log_incident_created",
        table_name="incident_activity_log",
    )
    op.drop_table("incident_activity_log")
    op.drop_index("ix_booking_workflows_status", table_name="booking_workflows")
    op.drop_table("booking_workflows")
    op.drop_table("appointments")
    op.drop_table("medical_centers")
