"""Booking store interface shared by the handlers and the store backends.

Transition handlers never talk to a database directly. They receive a
``BookingStore``: the capability set covering the workflow record, the
incident activity log and the appointment table.
"""

from typing import Any, Protocol

from src.shared.types import AppointmentStatus, WorkflowStatus
from src.shared.workflow_models import WORKFLOW_UPDATE_FIELDS, WorkflowLookup

DEFAULT_ACTION_TYPE = "voice_agent"
DEFAULT_ACTOR_NAME = "AI Booking Agent"
DEFAULT_CREATED_BY = "ai_booking_agent"


class BookingStoreError(Exception):
    """A store operation failed."""


class WorkflowNotFoundError(BookingStoreError):
    """The workflow id does not match any record."""


def validate_update_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop null fields and reject fields handlers may not write.

    ``available_times`` is kept even when empty so a reschedule can
    clear it.

    Args:
        fields: Proposed partial update.

    Returns:
        Fields to merge into the record.

    Raises:
        ValueError: If a field is not writable through apply_workflow.
    """
    unknown = set(fields) - WORKFLOW_UPDATE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported workflow fields: {sorted(unknown)}")
    return {key: value for key, value in fields.items() if value is not None}


class BookingStore(Protocol):
    """Persistence capabilities used by the transition handlers."""

    async def fetch_workflow(self, workflow_id: str) -> WorkflowLookup:
        """Load a workflow and its medical centre."""
        ...

    async def apply_workflow(
        self,
        workflow_id: str,
        status: WorkflowStatus,
        **fields: Any,
    ) -> None:
        """Set status and merge non-null fields into the workflow."""
        ...

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
        """Append one entry to the incident's audit trail."""
        ...

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
        """Create a confirmed appointment and return its id."""
        ...

    async def commit(self) -> None:
        """Make the request's writes durable."""
        ...
