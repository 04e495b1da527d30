"""Postgres implementation of the booking store.

Each operation runs inside a savepoint so a failed step rolls back on
its own; the webhook commits the request-scoped session through
``commit`` before it publishes the outcome.
SQLAlchemy errors surface as ``BookingStoreError`` so the transition
handlers can degrade gracefully.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.db.activity_log import log_activity
from src.db.models import Appointment, BookingWorkflowRecord, MedicalCenter
from src.shared.store_protocol import (
    DEFAULT_ACTION_TYPE,
    DEFAULT_ACTOR_NAME,
    DEFAULT_CREATED_BY,
    BookingStoreError,
    WorkflowNotFoundError,
    validate_update_fields,
)
from src.shared.types import AppointmentStatus, ConfirmationMethod, WorkflowStatus
from src.shared.workflow_models import (
    BookingWorkflow,
    MedicalCenterInfo,
    WorkflowLookup,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _as_uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    """Parse a UUID column value, returning None when it is not one."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        logger.warning("invalid_uuid_value", extra={"value": str(value)})
        return None


def _to_workflow(record: BookingWorkflowRecord) -> BookingWorkflow:
    """Convert a workflow row to the domain model."""
    return BookingWorkflow(
        workflow_id=record.workflow_id,
        incident_id=record.incident_id,
        worker_id=record.worker_id,
        medical_center_id=(
            str(record.medical_center_id) if record.medical_center_id else None
        ),
        status=WorkflowStatus(record.status),
        available_times=list(record.available_times or []),
        patient_preferred_time=record.patient_preferred_time,
        patient_preferred_doctor=record.patient_preferred_doctor,
        confirmed_datetime=record.confirmed_datetime,
        confirmed_doctor_name=record.confirmed_doctor_name,
        confirmed_location=record.confirmed_location,
        clinic_email=record.clinic_email,
        special_instructions=record.special_instructions,
        failure_reason=record.failure_reason,
        appointment_id=str(record.appointment_id) if record.appointment_id else None,
    )


def _to_medical_center(center: MedicalCenter) -> MedicalCenterInfo:
    return MedicalCenterInfo(
        name=center.name,
        address=center.address,
        suburb=center.suburb,
        postcode=center.postcode,
    )


class SqlBookingStore:
    """BookingStore backed by the Cloud SQL booking tables.

    Args:
        session: Request-scoped async session.
        actor_name: Actor recorded on activity log entries.
        action_type: Action type recorded on activity log entries.
        created_by: Author recorded on created appointments.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        actor_name: str = DEFAULT_ACTOR_NAME,
        action_type: str = DEFAULT_ACTION_TYPE,
        created_by: str = DEFAULT_CREATED_BY,
    ) -> None:
        self._session = session
        self._actor_name = actor_name
        self._action_type = action_type
        self._created_by = created_by

    async def _get_record(
        self,
        workflow_id: str,
        *,
        for_update: bool = False,
    ) -> BookingWorkflowRecord | None:
        query = select(BookingWorkflowRecord).where(
            BookingWorkflowRecord.workflow_id == workflow_id
        )
        if for_update:
            query = query.with_for_update()
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def fetch_workflow(self, workflow_id: str) -> WorkflowLookup:
        """Load a workflow row and its medical centre.

        Args:
            workflow_id: Correlation key.

        Returns:
            WorkflowLookup with found=False when no row matches.

        Raises:
            BookingStoreError: If the query fails.
        """
        try:
            record = await self._get_record(workflow_id)
            if record is None:
                return WorkflowLookup(found=False)
            center = None
            if record.medical_center_id is not None:
                center = await self._session.get(MedicalCenter, record.medical_center_id)
        except SQLAlchemyError as exc:
            raise BookingStoreError(f"fetch_workflow failed for {workflow_id}") from exc
        return WorkflowLookup(
            found=True,
            workflow=_to_workflow(record),
            medical_center=_to_medical_center(center) if center else None,
        )

    async def apply_workflow(
        self,
        workflow_id: str,
        status: WorkflowStatus,
        **fields: Any,
    ) -> None:
        """Set status and merge non-null fields under a row lock.

        ``available_times`` replaces the stored list wholesale.

        Args:
            workflow_id: Correlation key.
            status: New workflow status.
            **fields: Partial update; None values leave columns unchanged.

        Raises:
            WorkflowNotFoundError: If no row matches.
            BookingStoreError: If the update fails.
        """
        updates = validate_update_fields(fields)
        if "appointment_id" in updates:
            updates["appointment_id"] = _as_uuid(updates["appointment_id"])
        try:
            async with self._session.begin_nested():
                record = await self._get_record(workflow_id, for_update=True)
                if record is None:
                    raise WorkflowNotFoundError(workflow_id)
                record.status = WorkflowStatus(status).value
                for key, value in updates.items():
                    setattr(record, key, value)
                record.updated_at = datetime.now(timezone.utc)
                await self._session.flush()
        except SQLAlchemyError as exc:
            raise BookingStoreError(f"apply_workflow failed for {workflow_id}") from exc

    async def append_activity_log(
        self,
        incident_id: int,
        *,
        summary: str,
        details: str,
        metadata: dict[str, Any],
        action_type: str | None = None,
        actor_name: str | None = None,
        idempotency_key: str | None = None,
    ) -> None:
        """Append an incident activity entry.

        Raises:
            BookingStoreError: If the insert fails.
        """
        try:
            async with self._session.begin_nested():
                await log_activity(
                    self._session,
                    incident_id=incident_id,
                    action_type=action_type or self._action_type,
                    summary=summary,
                    details=details,
                    actor_name=actor_name or self._actor_name,
                    metadata=metadata,
                    idempotency_key=idempotency_key,
                )
        except SQLAlchemyError as exc:
            raise BookingStoreError(f"activity log insert failed for {incident_id}") from exc

    async def create_appointment(
        self,
        *,
        incident_id: int,
        worker_id: int | None,
        medical_center_id: str | None,
        scheduled_date: str | None,
        notes: str,
        location_address: str | None = None,
        location_suburb: str | None = None,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    ) -> str:
        """Insert a confirmed appointment row.

        Returns:
            The new appointment id as a string.

        Raises:
            BookingStoreError: If the insert fails.
        """
        now = datetime.now(timezone.utc)
        appointment = Appointment(
            appointment_id=uuid.uuid4(),
            incident_id=incident_id,
            worker_id=worker_id,
            medical_center_id=_as_uuid(medical_center_id),
            appointment_type="initial_consult",
            scheduled_date=scheduled_date,
            status=AppointmentStatus(status).value,
            confirmation_method=ConfirmationMethod.VOICE_AGENT.value,
            confirmed_at=now,
            confirmed_by=self._created_by,
            location_address=location_address,
            location_suburb=location_suburb,
            notes=notes,
            created_by=self._created_by,
            created_at=now,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(appointment)
                await self._session.flush()
        except SQLAlchemyError as exc:
            raise BookingStoreError(
                f"create_appointment failed for incident {incident_id}"
            ) from exc
        return str(appointment.appointment_id)

    async def commit(self) -> None:
        """Commit the request's session.

        A failed transaction is released when the session closes.

        Raises:
            BookingStoreError: If the commit fails.
        """
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            raise BookingStoreError("commit failed") from exc
