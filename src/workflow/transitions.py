"""Booking workflow transition handlers.

The voice platform calls one tool per step of the booking saga:

    clinic call   -> submit_times
    patient call  -> patient_confirm | patient_reschedule
    clinic call   -> confirm_final
    any call      -> booking_failed

``apply_transition`` is the single entry point. It resolves the
correlation key, dispatches to the event's handler and guarantees a
spoken reply: no exception ever reaches the live call. Handlers read
and write only through the injected ``BookingStore``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from src.shared.payloads import (
    normalize_available_times,
    resolve_bool,
    resolve_field,
    resolve_text,
    resolve_workflow_id,
)
from src.shared.response_models import (
    BookingFailedReply,
    BookingReply,
    ConfirmFinalReply,
    PatientConfirmReply,
    PatientRescheduleReply,
    SubmitTimesReply,
)
from src.shared.store_protocol import BookingStore, BookingStoreError
from src.shared.types import BookingEvent, NextStep, WorkflowStatus
from src.shared.workflow_models import BookingWorkflow, MedicalCenterInfo, WorkflowLookup
from src.workflow import messages
from src.workflow.state_machine import Outcome, decide_transition

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Booking could not be completed"
DEFAULT_APPOINTMENT_NOTES = "Booked by AI agent"

ALERT_WORKFLOW_ID_MISSING = "workflow_id_missing"
ALERT_WORKFLOW_NOT_FOUND = "workflow_not_found"
ALERT_STORE_ERROR = "store_error"
ALERT_UNEXPECTED_ERROR = "unexpected_error"

EVENT_ALIASES: dict[str, BookingEvent] = {
    "booking-submit-times": BookingEvent.SUBMIT_TIMES,
    "booking-patient-confirm": BookingEvent.PATIENT_CONFIRM,
    "booking-patient-reschedule": BookingEvent.PATIENT_RESCHEDULE,
    "booking-confirm-final": BookingEvent.CONFIRM_FINAL,
    "booking-failed": BookingEvent.BOOKING_FAILED,
}


@dataclass
class TransitionResult:
    """Outcome of one tool call.

    Attributes:
        event: Event handled, None when the event name was unknown.
        reply: Reply spoken by the voice agent.
        workflow_id: Resolved correlation key, if any.
        incident_id: Incident linked to the workflow, when it was loaded.
        from_status: Status before the event, when it was loaded.
        to_status: Status written, None when nothing was written.
        alert: Operator alert code when the event could not be persisted.
    """

    event: BookingEvent | None
    reply: BookingReply
    workflow_id: str | None = None
    incident_id: int | None = None
    from_status: WorkflowStatus | None = None
    to_status: WorkflowStatus | None = None
    alert: str | None = None

    @property
    def applied(self) -> bool:
        """Whether a status was written to the store."""
        return self.to_status is not None


Handler = Callable[[BookingStore, Mapping[str, Any], str | None], Awaitable[TransitionResult]]


def parse_event(name: str | BookingEvent) -> BookingEvent | None:
    """Map an event name or hyphenated endpoint alias to a BookingEvent.

    Args:
        name: ``submit_times`` style name or ``booking-submit-times`` alias.

    Returns:
        Matching event, or None when unknown.
    """
    if isinstance(name, BookingEvent):
        return name
    key = str(name).strip().lower()
    if key in EVENT_ALIASES:
        return EVENT_ALIASES[key]
    try:
        return BookingEvent(key.replace("-", "_"))
    except ValueError:
        return None


# --- Shared steps ---


def _alert_missing_workflow_id(event: BookingEvent, body: Mapping[str, Any]) -> str:
    """Log the unresolvable correlation key at error severity."""
    logger.error(
        "booking_workflow_id_missing",
        extra={"event": event.value, "payload_keys": sorted(body.keys())},
    )
    return ALERT_WORKFLOW_ID_MISSING


async def _load_workflow(
    store: BookingStore,
    workflow_id: str,
    event: BookingEvent,
) -> tuple[WorkflowLookup | None, str | None]:
    """Fetch a workflow, mapping failures to an alert code.

    Args:
        store: Injected booking store.
        workflow_id: Correlation key.
        event: Event being handled, for log context.

    Returns:
        (lookup, None) when found, otherwise (None, alert code).
    """
    try:
        lookup = await store.fetch_workflow(workflow_id)
    except BookingStoreError:
        logger.exception(
            "booking_workflow_fetch_failed",
            extra={"workflow_id": workflow_id, "event": event.value},
        )
        return None, ALERT_STORE_ERROR
    if not lookup.found or lookup.workflow is None:
        logger.error(
            "booking_workflow_not_found",
            extra={"workflow_id": workflow_id, "event": event.value},
        )
        return None, ALERT_WORKFLOW_NOT_FOUND
    return lookup, None


async def _apply(
    store: BookingStore,
    workflow: BookingWorkflow,
    status: WorkflowStatus,
    event: BookingEvent,
    **fields: Any,
) -> bool:
    """Write a status and fields. Store failures are logged, not raised.

    Returns:
        True when the write succeeded.
    """
    try:
        await store.apply_workflow(workflow.workflow_id, status, **fields)
    except BookingStoreError:
        logger.exception(
            "booking_workflow_update_failed",
            extra={
                "workflow_id": workflow.workflow_id,
                "event": event.value,
                "target_status": status.value,
            },
        )
        return False
    logger.info(
        "booking_workflow_transitioned",
        extra={
            "workflow_id": workflow.workflow_id,
            "event": event.value,
            "from_status": workflow.status.value,
            "to_status": status.value,
        },
    )
    return True


async def _log_activity(
    store: BookingStore,
    workflow: BookingWorkflow,
    *,
    summary: str,
    details: str,
    metadata: dict[str, Any],
    idempotency_key: str | None = None,
) -> None:
    """Append an activity log entry for the workflow's incident.

    Non-fatal: a store failure is logged and the reply goes out anyway.
    """
    try:
        await store.append_activity_log(
            workflow.incident_id,
            summary=summary,
            details=details,
            metadata={"workflow_id": workflow.workflow_id, **metadata},
            idempotency_key=idempotency_key,
        )
    except BookingStoreError:
        logger.exception(
            "booking_activity_log_failed",
            extra={"workflow_id": workflow.workflow_id, "summary": summary},
        )


def _out_of_order(
    event: BookingEvent,
    lookup: WorkflowLookup,
    reply_type: type[BookingReply],
) -> TransitionResult:
    """Refuse an event that would move the workflow backwards."""
    workflow = lookup.workflow
    logger.warning(
        "booking_event_out_of_order",
        extra={
            "workflow_id": workflow.workflow_id,
            "event": event.value,
            "status": workflow.status.value,
        },
    )
    return TransitionResult(
        event=event,
        reply=reply_type(
            success=False,
            message=messages.SAFE_CLOSING,
            next_step=NextStep.END_CALL,
        ),
        workflow_id=workflow.workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
    )


# --- Handlers ---


async def _submit_times(
    store: BookingStore,
    body: Mapping[str, Any],
    workflow_id: str | None,
) -> TransitionResult:
    """Record the clinic's offered appointment times.

    Args:
        store: Injected booking store.
        body: Raw tool call payload.
        workflow_id: Resolved correlation key.

    Returns:
        Result with next_step ``call_patient`` once times are stored.
    """
    event = BookingEvent.SUBMIT_TIMES
    available_times = normalize_available_times(resolve_field(body, "available_times"))
    clinic_notes = resolve_text(body, "clinic_notes")

    if not available_times:
        logger.info("booking_submit_times_empty", extra={"workflow_id": workflow_id})
        return TransitionResult(
            event=event,
            reply=SubmitTimesReply(
                success=False,
                message=messages.TIMES_MISSING,
                next_step=NextStep.RETRY_OR_FAIL,
            ),
            workflow_id=workflow_id,
        )

    unresolved = SubmitTimesReply(
        success=False,
        message=messages.TIMES_NOTED_NO_WORKFLOW,
        next_step=NextStep.END_CALL,
    )
    if workflow_id is None:
        return TransitionResult(event, unresolved, alert=_alert_missing_workflow_id(event, body))

    lookup, alert = await _load_workflow(store, workflow_id, event)
    if lookup is None:
        return TransitionResult(event, unresolved, workflow_id=workflow_id, alert=alert)
    workflow = lookup.workflow

    decision = decide_transition(workflow.status, event)
    if decision.outcome is not Outcome.APPLY:
        return _out_of_order(event, lookup, SubmitTimesReply)

    written = await _apply(
        store, workflow, decision.target, event, available_times=available_times
    )
    await _log_activity(
        store,
        workflow,
        summary=f"Collected {len(available_times)} available appointment times",
        details=clinic_notes
        or "Times: " + ", ".join(str(slot["datetime"]) for slot in available_times),
        metadata={"available_times": available_times, "clinic_notes": clinic_notes},
    )
    return TransitionResult(
        event=event,
        reply=SubmitTimesReply(
            success=True,
            message=messages.times_collected(len(available_times)),
            times_count=len(available_times),
            next_step=NextStep.CALL_PATIENT,
        ),
        workflow_id=workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
        to_status=decision.target if written else None,
        alert=None if written else ALERT_STORE_ERROR,
    )


async def _patient_confirm(
    store: BookingStore,
    body: Mapping[str, Any],
    workflow_id: str | None,
) -> TransitionResult:
    """Record the time (and optionally doctor) the patient picked.

    Args:
        store: Injected booking store.
        body: Raw tool call payload.
        workflow_id: Resolved correlation key.

    Returns:
        Result with next_step ``confirm_with_clinic`` once stored, or
        ``ask_again`` when the patient's choice was not captured.
    """
    event = BookingEvent.PATIENT_CONFIRM
    confirmed_time = resolve_text(body, "patient_confirmed_time")
    preferred_doctor = resolve_text(body, "patient_preferred_doctor")
    patient_notes = resolve_text(body, "patient_notes")

    if confirmed_time is None:
        return TransitionResult(
            event=event,
            reply=PatientConfirmReply(
                success=False,
                message=messages.PATIENT_TIME_MISSING,
                next_step=NextStep.ASK_AGAIN,
            ),
            workflow_id=workflow_id,
        )

    unresolved = PatientConfirmReply(
        success=True,
        message=messages.PATIENT_NOTED_NO_WORKFLOW,
        confirmed_time=confirmed_time,
        next_step=NextStep.END_CALL,
    )
    if workflow_id is None:
        return TransitionResult(event, unresolved, alert=_alert_missing_workflow_id(event, body))

    lookup, alert = await _load_workflow(store, workflow_id, event)
    if lookup is None:
        return TransitionResult(event, unresolved, workflow_id=workflow_id, alert=alert)
    workflow = lookup.workflow

    decision = decide_transition(workflow.status, event)
    if decision.outcome is not Outcome.APPLY:
        return _out_of_order(event, lookup, PatientConfirmReply)

    written = await _apply(
        store,
        workflow,
        decision.target,
        event,
        patient_preferred_time=confirmed_time,
        patient_preferred_doctor=preferred_doctor,
    )
    details = f"Confirmed: {confirmed_time}"
    if preferred_doctor:
        details += f" with {preferred_doctor}"
    if patient_notes:
        details += f". Notes: {patient_notes}"
    await _log_activity(
        store,
        workflow,
        summary="Patient confirmed appointment time",
        details=details,
        metadata={
            "patient_confirmed_time": confirmed_time,
            "patient_preferred_doctor": preferred_doctor,
            "patient_notes": patient_notes,
        },
    )
    return TransitionResult(
        event=event,
        reply=PatientConfirmReply(
            success=True,
            message=messages.patient_confirmed(confirmed_time),
            confirmed_time=confirmed_time,
            next_step=NextStep.CONFIRM_WITH_CLINIC,
        ),
        workflow_id=workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
        to_status=decision.target if written else None,
        alert=None if written else ALERT_STORE_ERROR,
    )


async def _patient_reschedule(
    store: BookingStore,
    body: Mapping[str, Any],
    workflow_id: str | None,
) -> TransitionResult:
    """Loop the saga back to clinic outreach when no offered time works.

    Resets to ``initiated`` and clears the offered times from any state.
    """
    event = BookingEvent.PATIENT_RESCHEDULE
    availability_notes = resolve_text(body, "patient_availability_notes")
    reason = resolve_text(body, "reason")

    unresolved = PatientRescheduleReply(
        success=True,
        message=messages.RESCHEDULE_NO_WORKFLOW,
        next_step=NextStep.END_CALL,
    )
    if workflow_id is None:
        return TransitionResult(event, unresolved, alert=_alert_missing_workflow_id(event, body))

    lookup, alert = await _load_workflow(store, workflow_id, event)
    if lookup is None:
        return TransitionResult(event, unresolved, workflow_id=workflow_id, alert=alert)
    workflow = lookup.workflow

    decision = decide_transition(workflow.status, event)
    written = await _apply(store, workflow, decision.target, event, available_times=[])
    await _log_activity(
        store,
        workflow,
        summary="Patient requested different appointment times",
        details=(
            f"Reason: {reason or 'Times not suitable'}. "
            f"Availability: {availability_notes or 'Not specified'}"
        ),
        metadata={
            "patient_availability_notes": availability_notes,
            "reason": reason,
            "action": "reschedule_requested",
        },
    )
    return TransitionResult(
        event=event,
        reply=PatientRescheduleReply(
            success=True,
            message=messages.RESCHEDULE_ACCEPTED,
            next_step=NextStep.GET_NEW_TIMES,
        ),
        workflow_id=workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
        to_status=decision.target if written else None,
        alert=None if written else ALERT_STORE_ERROR,
    )


def _appointment_notes(
    booking_notes: str | None,
    doctor_name: str | None,
    special_instructions: str | None,
) -> str:
    parts = [
        booking_notes,
        f"Doctor: {doctor_name}" if doctor_name else None,
        f"Instructions: {special_instructions}" if special_instructions else None,
    ]
    return ". ".join(part for part in parts if part) or DEFAULT_APPOINTMENT_NOTES


def _completed_repeat(lookup: WorkflowLookup) -> TransitionResult:
    """Reply to a confirm_final repeat without touching the store."""
    workflow = lookup.workflow
    logger.info(
        "booking_confirm_final_repeat",
        extra={
            "workflow_id": workflow.workflow_id,
            "appointment_id": workflow.appointment_id,
        },
    )
    return TransitionResult(
        event=BookingEvent.CONFIRM_FINAL,
        reply=ConfirmFinalReply(
            success=True,
            message=messages.booking_confirmed(
                workflow.confirmed_datetime,
                workflow.confirmed_doctor_name,
            ),
            appointment_confirmed=True,
            appointment_datetime=workflow.confirmed_datetime,
            doctor_name=workflow.confirmed_doctor_name,
            next_step=NextStep.BOOKING_COMPLETE,
        ),
        workflow_id=workflow.workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
    )


async def _confirm_final(
    store: BookingStore,
    body: Mapping[str, Any],
    workflow_id: str | None,
) -> TransitionResult:
    """Lock in the booking once the clinic confirms it.

    Creates at most one appointment per workflow: a workflow already
    ``completed``, or reset after it was booked, is answered from its
    stored confirmation. A
    ``booking_confirmed=false`` report writes nothing; the dispatcher
    follows up with ``booking_failed``.

    Args:
        store: Injected booking store.
        body: Raw tool call payload.
        workflow_id: Resolved correlation key.

    Returns:
        Result with next_step ``booking_complete`` once booked.
    """
    event = BookingEvent.CONFIRM_FINAL
    booking_confirmed = resolve_bool(body, "booking_confirmed", default=True)
    confirmed_datetime = resolve_text(body, "confirmed_datetime")
    doctor_name = resolve_text(body, "confirmed_doctor_name")
    clinic_email = resolve_text(body, "clinic_email")
    special_instructions = resolve_text(body, "special_instructions")
    booking_notes = resolve_text(body, "booking_notes")

    if not booking_confirmed:
        return TransitionResult(
            event=event,
            reply=ConfirmFinalReply(
                success=False,
                message=messages.BOOKING_NOT_CONFIRMED,
                appointment_confirmed=False,
                next_step=NextStep.BOOKING_FAILED,
            ),
            workflow_id=workflow_id,
        )

    if workflow_id is None:
        return TransitionResult(
            event=event,
            reply=ConfirmFinalReply(
                success=True,
                message=messages.BOOKING_CONFIRMED_GENERIC,
                appointment_confirmed=True,
                appointment_datetime=confirmed_datetime,
                doctor_name=doctor_name,
                next_step=NextStep.END_CALL,
            ),
            alert=_alert_missing_workflow_id(event, body),
        )

    lookup, alert = await _load_workflow(store, workflow_id, event)
    if lookup is None:
        return TransitionResult(
            event=event,
            reply=ConfirmFinalReply(
                success=True,
                message=messages.BOOKING_CONFIRMED_UNKNOWN_WORKFLOW,
                appointment_confirmed=True,
                next_step=NextStep.END_CALL,
            ),
            workflow_id=workflow_id,
            alert=alert,
        )
    workflow = lookup.workflow

    decision = decide_transition(workflow.status, event)
    # A reset after booking leaves the appointment in place.
    if decision.outcome is Outcome.REPEAT or workflow.appointment_id is not None:
        return _completed_repeat(lookup)
    if decision.outcome is Outcome.OUT_OF_ORDER:
        return _out_of_order(event, lookup, ConfirmFinalReply)

    appointment_time = confirmed_datetime or workflow.patient_preferred_time
    center = lookup.medical_center or MedicalCenterInfo()
    reply = ConfirmFinalReply(
        success=True,
        message=messages.booking_confirmed(appointment_time, doctor_name),
        appointment_confirmed=True,
        appointment_datetime=appointment_time,
        doctor_name=doctor_name,
        next_step=NextStep.BOOKING_COMPLETE,
    )
    result = TransitionResult(
        event=event,
        reply=reply,
        workflow_id=workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
    )

    try:
        appointment_id = await store.create_appointment(
            incident_id=workflow.incident_id,
            worker_id=workflow.worker_id,
            medical_center_id=workflow.medical_center_id,
            scheduled_date=appointment_time,
            notes=_appointment_notes(booking_notes, doctor_name, special_instructions),
            location_address=center.location_address(),
            location_suburb=center.suburb,
        )
    except BookingStoreError:
        # Leave the workflow open so a repeat confirm_final can still book.
        logger.exception(
            "booking_appointment_create_failed",
            extra={"workflow_id": workflow_id, "incident_id": workflow.incident_id},
        )
        result.alert = ALERT_STORE_ERROR
        return result

    written = await _apply(
        store,
        workflow,
        decision.target,
        event,
        confirmed_datetime=appointment_time,
        confirmed_doctor_name=doctor_name,
        confirmed_location=center.address,
        clinic_email=clinic_email,
        special_instructions=special_instructions,
        appointment_id=appointment_id,
    )
    details = f"Confirmed: {appointment_time} at {center.name or 'the medical centre'}"
    if doctor_name:
        details += f" with {doctor_name}"
    await _log_activity(
        store,
        workflow,
        summary="Medical appointment booked successfully",
        details=details,
        metadata={
            "appointment_id": appointment_id,
            "confirmed_datetime": appointment_time,
            "confirmed_doctor_name": doctor_name,
            "clinic_email": clinic_email,
            "special_instructions": special_instructions,
        },
        idempotency_key=f"{workflow_id}:completed",
    )
    result.to_status = decision.target if written else None
    result.alert = None if written else ALERT_STORE_ERROR
    return result


async def _booking_failed(
    store: BookingStore,
    body: Mapping[str, Any],
    workflow_id: str | None,
) -> TransitionResult:
    """Record a failed attempt, either retryable or terminal.

    ``should_retry`` loops back to ``initiated``; otherwise the workflow
    becomes ``failed``. A terminal failure on a completed booking is
    refused and a repeat on a failed workflow writes nothing. The reply
    always ends the call.
    """
    event = BookingEvent.BOOKING_FAILED
    failure_reason = resolve_text(body, "failure_reason") or DEFAULT_FAILURE_REASON
    should_retry = resolve_bool(body, "should_retry", default=False)
    notes = resolve_text(body, "notes")

    if workflow_id is None:
        return TransitionResult(
            event=event,
            reply=BookingFailedReply(
                success=True,
                message=messages.FAILED_NO_WORKFLOW,
                should_retry=False,
                next_step=NextStep.END_CALL,
            ),
            alert=_alert_missing_workflow_id(event, body),
        )

    reply = BookingFailedReply(
        success=True,
        message=messages.FAILED_WILL_RETRY if should_retry else messages.FAILED_FINAL,
        should_retry=should_retry,
        next_step=NextStep.END_CALL,
    )
    lookup, alert = await _load_workflow(store, workflow_id, event)
    if lookup is None:
        return TransitionResult(event, reply, workflow_id=workflow_id, alert=alert)
    workflow = lookup.workflow

    decision = decide_transition(workflow.status, event, should_retry=should_retry)
    if decision.outcome is Outcome.OUT_OF_ORDER:
        return _out_of_order(event, lookup, BookingFailedReply)
    if decision.outcome is Outcome.REPEAT:
        logger.info("booking_failed_repeat", extra={"workflow_id": workflow_id})
        return TransitionResult(
            event=event,
            reply=reply,
            workflow_id=workflow_id,
            incident_id=workflow.incident_id,
            from_status=workflow.status,
        )
    written = await _apply(
        store, workflow, decision.target, event, failure_reason=failure_reason
    )
    details = f"Reason: {failure_reason}"
    if notes:
        details += f". Notes: {notes}"
    await _log_activity(
        store,
        workflow,
        summary="Booking attempt needs retry" if should_retry else "Medical booking failed",
        details=details,
        metadata={
            "failure_reason": failure_reason,
            "should_retry": should_retry,
            "notes": notes,
        },
    )
    return TransitionResult(
        event=event,
        reply=reply,
        workflow_id=workflow_id,
        incident_id=workflow.incident_id,
        from_status=workflow.status,
        to_status=decision.target if written else None,
        alert=None if written else ALERT_STORE_ERROR,
    )


HANDLERS: dict[BookingEvent, Handler] = {
    BookingEvent.SUBMIT_TIMES: _submit_times,
    BookingEvent.PATIENT_CONFIRM: _patient_confirm,
    BookingEvent.PATIENT_RESCHEDULE: _patient_reschedule,
    BookingEvent.CONFIRM_FINAL: _confirm_final,
    BookingEvent.BOOKING_FAILED: _booking_failed,
}


def fallback_reply(event: BookingEvent | None) -> BookingReply:
    """Reply spoken when a handler fails unexpectedly.

    Args:
        event: Event being handled, None when unknown.

    Returns:
        Conversationally safe reply ending the call.
    """
    end = NextStep.END_CALL
    if event is BookingEvent.SUBMIT_TIMES:
        return SubmitTimesReply(success=False, message=messages.TIMES_FALLBACK, next_step=end)
    if event is BookingEvent.PATIENT_CONFIRM:
        return PatientConfirmReply(
            success=False, message=messages.PATIENT_FALLBACK, next_step=end
        )
    if event is BookingEvent.PATIENT_RESCHEDULE:
        return PatientRescheduleReply(
            success=False, message=messages.RESCHEDULE_FALLBACK, next_step=end
        )
    if event is BookingEvent.CONFIRM_FINAL:
        return ConfirmFinalReply(
            success=True,
            message=messages.BOOKING_CONFIRMED_GENERIC,
            appointment_confirmed=True,
            next_step=end,
        )
    if event is BookingEvent.BOOKING_FAILED:
        return BookingFailedReply(
            success=False,
            message=messages.FAILED_FALLBACK,
            should_retry=False,
            next_step=end,
        )
    return BookingReply(success=False, message=messages.UNKNOWN_EVENT, next_step=end)


async def apply_transition(
    store: BookingStore,
    event: str | BookingEvent,
    payload: Any,
) -> TransitionResult:
    """Apply one voice tool call to its booking workflow.

    Never raises: unknown events, malformed payloads and internal
    errors all produce a reply that ends the call politely.

    Args:
        store: Injected booking store.
        event: Event name or hyphenated endpoint alias.
        payload: Raw JSON body from the voice platform.

    Returns:
        TransitionResult carrying the reply and what was written.
    """
    booking_event = parse_event(event)
    if booking_event is None:
        logger.warning("unknown_booking_event", extra={"event": str(event)})
        return TransitionResult(event=None, reply=fallback_reply(None))

    body: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
    workflow_id = resolve_workflow_id(body)
    logger.info(
        "booking_event_received",
        extra={
            "event": booking_event.value,
            "workflow_id": workflow_id,
            "payload_keys": sorted(body.keys()),
        },
    )
    try:
        return await HANDLERS[booking_event](store, body, workflow_id)
    except Exception:
        logger.exception(
            "booking_transition_failed",
            extra={"event": booking_event.value, "workflow_id": workflow_id},
        )
        return TransitionResult(
            event=booking_event,
            reply=fallback_reply(booking_event),
            workflow_id=workflow_id,
            alert=ALERT_UNEXPECTED_ERROR,
        )
