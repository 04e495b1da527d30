"""Shared test fixtures for the booking workflow test suite."""

import pytest

from src.config.settings import Settings
from src.shared.types import WorkflowStatus
from src.shared.workflow_models import BookingWorkflow, MedicalCenterInfo
from src.workflow.memory_store import InMemoryBookingStore

MEDICAL_CENTER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


@pytest.fixture
def settings() -> Settings:
    """Provide test settings with safe defaults.

    Returns:
        Settings configured for testing (no real database).
    """
    return Settings(
        cloud_sql_password="test-password",
        cloud_sql_database="booking_workflows_test",
        booking_store_backend="memory",
    )


@pytest.fixture
def medical_center() -> MedicalCenterInfo:
    """Clinic linked to seeded workflows."""
    return MedicalCenterInfo(
        name="Harbour Occupational Health",
        address="12 George Street",
        suburb="Parramatta",
        postcode="2150",
    )


@pytest.fixture
def store() -> InMemoryBookingStore:
    """Empty in-memory booking store."""
    return InMemoryBookingStore()


@pytest.fixture
def seed_workflow(store: InMemoryBookingStore, medical_center: MedicalCenterInfo):
    """Factory that seeds a workflow into the in-memory store.

    Returns:
        Callable taking workflow_id, status and extra fields.
    """

    def _seed(
        workflow_id: str = "wf-1",
        status: WorkflowStatus = WorkflowStatus.INITIATED,
        **fields,
    ) -> BookingWorkflow:
        workflow = BookingWorkflow(
            workflow_id=workflow_id,
            incident_id=4021,
            worker_id=88,
            medical_center_id=MEDICAL_CENTER_ID,
            status=status,
            **fields,
        )
        return store.add_workflow(workflow, medical_center)

    return _seed
