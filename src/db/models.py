"""SQLAlchemy ORM models for the booking workflow tables."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.shared.types import AppointmentStatus, ConfirmationMethod, WorkflowStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class MedicalCenter(Base):
    """Clinic a workflow books with. Read-only from this service.

    Attributes:
        medical_center_id: Primary key UUID.
        name: Clinic display name.
    """

    __tablename__ = "medical_centers"

    medical_center_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200))
    phone_number: Mapped[str | None] = mapped_column(String(30))
    address: Mapped[str | None] = mapped_column(String(300))
    suburb: Mapped[str | None] = mapped_column(String(100))
    postcode: Mapped[str | None] = mapped_column(String(10))

    workflows: Mapped[list["BookingWorkflowRecord"]] = relationship(
        back_populates="medical_center"
    )


class BookingWorkflowRecord(Base):
    """One appointment booking attempt driven by the voice agent.

    Attributes:
        workflow_id: Opaque correlation key shared with the voice platform.
        status: Workflow lifecycle state.
        available_times: JSONB list of slots offered by the clinic.
    """

    __tablename__ = "booking_workflows"

    workflow_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    incident_id: Mapped[int] = mapped_column(Integer, index=True)
    worker_id: Mapped[int | None] = mapped_column(Integer)
    medical_center_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("medical_centers.medical_center_id")
    )
    status: Mapped[str] = mapped_column(String(30), default=WorkflowStatus.INITIATED)
    available_times: Mapped[list] = mapped_column(JSONB, default=list)
    patient_preferred_time: Mapped[str | None] = mapped_column(String(100))
    patient_preferred_doctor: Mapped[str | None] = mapped_column(String(200))
    confirmed_datetime: Mapped[str | None] = mapped_column(String(100))
    confirmed_doctor_name: Mapped[str | None] = mapped_column(String(200))
    confirmed_location: Mapped[str | None] = mapped_column(String(300))
    clinic_email: Mapped[str | None] = mapped_column(String(200))
    special_instructions: Mapped[str | None] = mapped_column(Text)
    failure_reason: Mapped[str | None] = mapped_column(Text)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("appointments.appointment_id")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    medical_center: Mapped["MedicalCenter | None"] = relationship(back_populates="workflows")

    __table_args__ = (Index("ix_booking_workflows_status", "status"),)


class Appointment(Base):
    """Confirmed medical appointment created when a workflow completes.

    Attributes:
        appointment_id: Primary key UUID.
        scheduled_date: Time as agreed on the call.
    """

    __tablename__ = "appointments"

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    incident_id: Mapped[int] = mapped_column(Integer, index=True)
    worker_id: Mapped[int | None] = mapped_column(Integer)
    medical_center_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("medical_centers.medical_center_id")
    )
    appointment_type: Mapped[str] = mapped_column(String(30), default="initial_consult")
    scheduled_date: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default=AppointmentStatus.CONFIRMED)
    confirmation_method: Mapped[str] = mapped_column(
        String(20), default=ConfirmationMethod.VOICE_AGENT
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_by: Mapped[str | None] = mapped_column(String(100))
    location_address: Mapped[str | None] = mapped_column(String(300))
    location_suburb: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class ActivityLogEntry(Base):
    """Append-only incident audit trail entry.

    Attributes:
        entry_id: Primary key UUID.
        idempotency_key: Prevents duplicate entries on tool call retries.
    """

    __tablename__ = "incident_activity_log"

    entry_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    incident_id: Mapped[int] = mapped_column(Integer)
    action_type: Mapped[str] = mapped_column(String(30))
    summary: Mapped[str] = mapped_column(String(300))
    details: Mapped[str | None] = mapped_column(Text)
    actor_name: Mapped[str | None] = mapped_column(String(100))
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, default=dict)
    idempotency_key: Mapped[str | None] = mapped_column(String(200), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        Index(
            "ix_incident_activity_log_incident_created",
            "incident_id",
            "created_at",
        ),
    )
