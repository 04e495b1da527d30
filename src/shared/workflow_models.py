"""Pydantic models for the booking workflow record and its lookups."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.shared.types import WorkflowStatus

# Fields the transition handlers may write through apply_workflow.
WORKFLOW_UPDATE_FIELDS = frozenset(
    {
        "available_times",
        "patient_preferred_time",
        "patient_preferred_doctor",
        "confirmed_datetime",
        "confirmed_doctor_name",
        "confirmed_location",
        "clinic_email",
        "special_instructions",
        "failure_reason",
        "appointment_id",
    }
)


class AvailableTime(BaseModel):
    """One appointment slot offered by the clinic.

    Unknown keys sent by the voice platform are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    datetime: str
    doctor_name: str | None = None
    notes: str | None = None


class MedicalCenterInfo(BaseModel):
    """Clinic details used to compose appointment locations."""

    name: str | None = None
    address: str | None = None
    suburb: str | None = None
    postcode: str | None = None

    def location_address(self) -> str | None:
        """Compose ``"<address>, <suburb> <postcode>"``.

        Returns:
            Composed address, or None when the clinic has no street address.
        """
        if not self.address:
            return None
        tail = f"{self.suburb or ''} {self.postcode or ''}".strip()
        return f"{self.address}, {tail}".strip().rstrip(",")


class BookingWorkflow(BaseModel):
    """One attempt to book a medical appointment after an incident.

    Attributes:
        workflow_id: Opaque correlation key shared with the voice platform.
        status: Current lifecycle state.
        available_times: Slots offered by the clinic, newest offer only.
    """

    workflow_id: str
    incident_id: int
    worker_id: int | None = None
    medical_center_id: str | None = None
    status: WorkflowStatus = WorkflowStatus.INITIATED
    available_times: list[dict[str, Any]] = Field(default_factory=list)
    patient_preferred_time: str | None = None
    patient_preferred_doctor: str | None = None
    confirmed_datetime: str | None = None
    confirmed_doctor_name: str | None = None
    confirmed_location: str | None = None
    clinic_email: str | None = None
    special_instructions: str | None = None
    failure_reason: str | None = None
    appointment_id: str | None = None


class WorkflowLookup(BaseModel):
    """Result of fetching a workflow with its medical centre."""

    found: bool
    workflow: BookingWorkflow | None = None
    medical_center: MedicalCenterInfo | None = None


def summarize_available_times(times: list[dict[str, Any]]) -> str:
    """Render offered slots as a sentence the agent can read out.

    Args:
        times: Slot dicts with a ``datetime`` key.

    Returns:
        ``"Option 1: ... . Option 2: ..."`` or an empty string.
    """
    parts = []
    for index, slot in enumerate(times, start=1):
        text = str(slot.get("datetime", ""))
        if slot.get("doctor_name"):
            text += f" with {slot['doctor_name']}"
        parts.append(f"Option {index}: {text}")
    return ". ".join(parts)
