"""Tests for workflow record models and helpers."""

from src.shared.types import WorkflowStatus
from src.shared.workflow_models import (
    AvailableTime,
    BookingWorkflow,
    MedicalCenterInfo,
    summarize_available_times,
)


class TestBookingWorkflow:
    """Workflow record defaults."""

    def test_defaults(self) -> None:
        workflow = BookingWorkflow(workflow_id="wf-1", incident_id=1)
        assert workflow.status is WorkflowStatus.INITIATED
        assert workflow.available_times == []
        assert workflow.appointment_id is None

    def test_status_from_string(self) -> None:
        workflow = BookingWorkflow(workflow_id="wf-1", incident_id=1, status="completed")
        assert workflow.status is WorkflowStatus.COMPLETED


class TestAvailableTime:
    """Offered slot model keeps unknown keys."""

    def test_extra_keys_preserved(self) -> None:
        slot = AvailableTime(datetime="Mon 9am", room="4")
        assert slot.model_dump()["room"] == "4"


class TestMedicalCenterInfo:
    """Location composition."""

    def test_full_address(self) -> None:
        center = MedicalCenterInfo(address="1 Main St", suburb="Ryde", postcode="2112")
        assert center.location_address() == "1 Main St, Ryde 2112"

    def test_address_only(self) -> None:
        assert MedicalCenterInfo(address="1 Main St").location_address() == "1 Main St"

    def test_no_address(self) -> None:
        assert MedicalCenterInfo(suburb="Ryde").location_address() is None


class TestSummarizeAvailableTimes:
    """Readable summary of the offered slots."""

    def test_numbers_options_and_names_doctors(self) -> None:
        times = [
            {"datetime": "Mon 9am", "doctor_name": "Dr Lee"},
            {"datetime": "Tue 2pm"},
        ]
        assert summarize_available_times(times) == (
            "Option 1: Mon 9am with Dr Lee. Option 2: Tue 2pm"
        )

    def test_empty(self) -> None:
        assert summarize_available_times([]) == ""
