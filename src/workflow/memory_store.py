"""In-memory booking store for tests and local demo runs.

Mirrors the Postgres store's merge semantics: status is always set,
null fields are left unchanged and ``available_times`` is replaced
wholesale. Records are copied in and out so callers never share
mutable state with the store.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.shared.store_protocol import (
    DEFAULT_ACTION_TYPE,
    DEFAULT_ACTOR_NAME,
    DEFAULT_CREATED_BY,
    WorkflowNotFoundError,
    validate_update_fields,
)
from src.shared.types import AppointmentStatus, ConfirmationMethod, WorkflowStatus
from src.shared.workflow_models import (
    BookingWorkflow,
    MedicalCenterInfo,
    WorkflowLookup,
)

logger = logging.getLogger(__name__)


@dataclass
class InMemoryBookingStore:
    """Dict-backed BookingStore.

    Attributes:
        workflows: Workflow records keyed by workflow id.
        medical_centers: Clinic details keyed by medical centre id.
        activity_log: Appended audit entries, oldest first.
        appointments: Created appointments keyed by appointment id.
    """

    workflows: dict[str, BookingWorkflow] = field(default_factory=dict)
    medical_centers: dict[str, MedicalCenterInfo] = field(default_factory=dict)
    activity_log: list[dict[str, Any]] = field(default_factory=list)
    appointments: dict[str, dict[str, Any]] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def add_workflow(
        self,
        workflow: BookingWorkflow,
        medical_center: MedicalCenterInfo | None = None,
    ) -> BookingWorkflow:
        """Seed a workflow record, as the clinic outreach process would.

        Args:
            workflow: Workflow to store.
            medical_center: Clinic to link by the workflow's medical_center_id.

        Returns:
            The stored workflow.
        """
        self.workflows[workflow.workflow_id] = workflow
        if medical_center is not None and workflow.medical_center_id:
            self.medical_centers[workflow.medical_center_id] = medical_center
        return workflow

    async def fetch_workflow(self, workflow_id: str) -> WorkflowLookup:
        """Return a copy of the workflow and its medical centre."""
        workflow = self.workflows.get(workflow_id)
        if workflow is None:
            return WorkflowLookup(found=False)
        center = self.medical_centers.get(workflow.medical_center_id or "")
        return WorkflowLookup(
            found=True,
            workflow=workflow.model_copy(deep=True),
            medical_center=center.model_copy() if center else None,
        )

    async def apply_workflow(
        self,
        workflow_id: str,
        status: WorkflowStatus,
        **fields: Any,
    ) -> None:
        """Set status and merge fields under a lock.

        Raises:
            WorkflowNotFoundError: If the workflow was never seeded.
        """
        updates = validate_update_fields(fields)
        async with self._lock:
            workflow = self.workflows.get(workflow_id)
            if workflow is None:
                raise WorkflowNotFoundError(workflow_id)
            if "available_times" in updates:
                updates["available_times"] = copy.deepcopy(updates["available_times"])
            self.workflows[workflow_id] = workflow.model_copy(
                update={**updates, "status": WorkflowStatus(status)},
            )

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
        """Append an entry; a repeated idempotency key is skipped."""
        if idempotency_key and any(
            entry["idempotency_key"] == idempotency_key for entry in self.activity_log
        ):
            logger.info(
                "activity_log_duplicate_skipped",
                extra={"idempotency_key": idempotency_key},
            )
            return
        self.activity_log.append(
            {
                "incident_id": incident_id,
                "action_type": action_type or DEFAULT_ACTION_TYPE,
                "summary": summary,
                "details": details,
                "actor_name": actor_name or DEFAULT_ACTOR_NAME,
                "metadata": copy.deepcopy(metadata),
                "idempotency_key": idempotency_key,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
        )

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
        """Store an appointment dict and return its generated id."""
        appointment_id = str(uuid.uuid4())
        self.appointments[appointment_id] = {
            "appointment_id": appointment_id,
            "incident_id": incident_id,
            "worker_id": worker_id,
            "medical_center_id": medical_center_id,
            "appointment_type": "initial_consult",
            "scheduled_date": scheduled_date,
            "status": AppointmentStatus(status).value,
            "confirmation_method": ConfirmationMethod.VOICE_AGENT.value,
            "confirmed_at": datetime.now(timezone.utc).isoformat(),
            "confirmed_by": DEFAULT_CREATED_BY,
            "location_address": location_address,
            "location_suburb": location_suburb,
            "notes": notes,
            "created_by": DEFAULT_CREATED_BY,
        }
        return appointment_id

    async def commit(self) -> None:
        """No-op: writes take effect immediately."""
