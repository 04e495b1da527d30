"""Webhook endpoints for the booking voice agent.

The voice platform calls these endpoints as server tools while it is
on the phone with the clinic or the patient. Every call gets HTTP 200
and a spoken reply, even when the payload is malformed or the database
is down: a live call must never hear an error.

Architecture note: api/ imports from workflow/ per the dependency
direction: api -> workflow -> db -> shared.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from src.api.event_bus import publish_transition
from src.config.settings import get_settings
from src.db.booking_store import SqlBookingStore
from src.db.session import get_session_factory
from src.shared.store_protocol import BookingStore, BookingStoreError
from src.shared.workflow_models import summarize_available_times
from src.workflow.memory_store import InMemoryBookingStore
from src.workflow.transitions import ALERT_STORE_ERROR, TransitionResult, apply_transition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/booking", tags=["webhooks"])

_memory_store: InMemoryBookingStore | None = None


def get_memory_store() -> InMemoryBookingStore:
    """Return the process-wide in-memory store used by the memory backend."""
    global _memory_store
    if _memory_store is None:
        _memory_store = InMemoryBookingStore()
    return _memory_store


async def get_booking_store() -> AsyncIterator[BookingStore]:
    """Provide the configured booking store for one request.

    The Postgres store shares one session per request. Endpoints that
    write call ``store.commit()`` themselves; anything left uncommitted
    is rolled back when the session closes.

    Yields:
        BookingStore for the request.
    """
    settings = get_settings()
    if settings.booking_store_backend == "memory":
        yield get_memory_store()
        return

    factory = get_session_factory()
    async with factory() as session:
        yield SqlBookingStore(
            session,
            actor_name=settings.booking_actor_name,
            action_type=settings.booking_action_type,
            created_by=settings.booking_created_by,
        )


async def _read_json(request: Request) -> dict[str, Any]:
    """Parse the request body, treating malformed JSON as an empty payload.

    Args:
        request: Incoming webhook request.

    Returns:
        JSON object body, or an empty dict.
    """
    try:
        body = await request.json()
    except ValueError:
        logger.warning(
            "booking_webhook_invalid_json",
            extra={"path": request.url.path},
        )
        return {}
    if not isinstance(body, dict):
        logger.warning(
            "booking_webhook_body_not_object",
            extra={"path": request.url.path, "type": type(body).__name__},
        )
        return {}
    return body


async def _commit(store: BookingStore, result: TransitionResult) -> None:
    """Commit the request's writes; a failed commit turns the outcome into an alert."""
    try:
        await store.commit()
    except BookingStoreError:
        logger.exception(
            "booking_store_commit_failed",
            extra={"workflow_id": result.workflow_id},
        )
        result.to_status = None
        result.alert = ALERT_STORE_ERROR


async def _publish(result: TransitionResult) -> None:
    """Push the outcome to dashboard clients. Never fails the webhook."""
    try:
        await publish_transition(result)
    except Exception:
        logger.warning(
            "booking_event_publish_failed",
            extra={"workflow_id": result.workflow_id},
            exc_info=True,
        )


# --- Voice tool endpoints ---


@router.post("/{event_name}")
async def handle_booking_event(
    event_name: str,
    request: Request,
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """Apply one booking tool call and return the agent's reply.

    ``event_name`` is either the event (``submit_times``) or the
    hyphenated function name (``booking-submit-times``).

    Args:
        event_name: Booking event or endpoint alias.
        request: Incoming webhook request.
        store: Injected booking store.

    Returns:
        Reply envelope ``{success, message, next_step?, ...}``.
    """
    body = await _read_json(request)
    result = await apply_transition(store, event_name, body)
    await _commit(store, result)
    await _publish(result)
    return result.reply.to_payload()


@router.options("/{event_name}")
async def booking_event_options(event_name: str) -> Response:
    """Answer bare OPTIONS requests that carry no CORS preflight headers."""
    return Response(status_code=200, headers={"Allow": "POST, OPTIONS"})


# --- Read-only lookup ---


@router.get("/workflows/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """Return a workflow's current state for the dispatcher or dashboard.

    Args:
        workflow_id: Correlation key.
        store: Injected booking store.

    Returns:
        Workflow fields, medical centre and a readable summary of the
        offered times.

    Raises:
        HTTPException: 404 when unknown, 503 when the store is unavailable.
    """
    try:
        lookup = await store.fetch_workflow(workflow_id)
    except BookingStoreError as exc:
        logger.exception("booking_workflow_lookup_failed", extra={"workflow_id": workflow_id})
        raise HTTPException(status_code=503, detail="Booking store unavailable") from exc
    if not lookup.found or lookup.workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    workflow = lookup.workflow
    return {
        "workflow": workflow.model_dump(mode="json"),
        "medical_center": (
            lookup.medical_center.model_dump(mode="json") if lookup.medical_center else None
        ),
        "available_times_summary": summarize_available_times(workflow.available_times),
    }
