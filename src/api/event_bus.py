"""WebSocket event bus for the live booking dashboard.

Dashboard clients subscribe on ``/ws/booking-events`` and receive one
message per applied workflow transition plus one per operator alert
(unresolvable workflow, store failure). Disconnected clients are
cleaned up automatically.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from src.workflow.transitions import TransitionResult

logger = logging.getLogger(__name__)

ws_router = APIRouter(tags=["websocket"])

_clients: set[WebSocket] = set()


def connect(websocket: WebSocket) -> None:
    """Register a WebSocket client for event broadcasts.

    Args:
        websocket: The WebSocket connection to add.
    """
    _clients.add(websocket)
    logger.info("ws_client_connected, total=%d", len(_clients))


def disconnect(websocket: WebSocket) -> None:
    """Remove a WebSocket client from the broadcast set."""
    _clients.discard(websocket)
    logger.info("ws_client_disconnected, total=%d", len(_clients))


def get_clients() -> set[WebSocket]:
    """Return the current set of connected clients."""
    return _clients


def _make_json_safe(obj: Any) -> Any:
    """Recursively convert non-serializable objects to strings.

    Args:
        obj: Object to sanitize for JSON serialization.

    Returns:
        JSON-safe version of the object.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, dict):
        return {str(k): _make_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_make_json_safe(v) for v in obj]
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", exclude_none=True)
    return str(obj)


def build_transition_message(result: TransitionResult) -> dict[str, Any] | None:
    """Describe a tool call outcome for dashboard clients.

    Args:
        result: Outcome returned by apply_transition.

    Returns:
        ``booking_alert`` when the event could not be persisted,
        ``booking_transition`` when a status was written, else None.
    """
    data = {
        "workflow_id": result.workflow_id,
        "incident_id": result.incident_id,
        "event": result.event.value if result.event else None,
        "next_step": result.reply.next_step,
        "at": datetime.now(UTC).isoformat(),
    }
    if result.alert:
        return {"type": "booking_alert", "data": {**data, "alert": result.alert}}
    if result.applied:
        return {
            "type": "booking_transition",
            "data": {
                **data,
                "from_status": result.from_status,
                "to_status": result.to_status,
            },
        }
    return None


async def broadcast_event(event_data: dict[str, Any]) -> None:
    """Send an event to all connected WebSocket clients.

    Sanitizes event data to ensure JSON serializability before
    sending. Clients that fail to receive are logged and removed.

    Args:
        event_data: Event payload (sanitized before sending).
    """
    safe_data = _make_json_safe(event_data)
    try:
        json.dumps(safe_data)
    except (TypeError, ValueError):
        logger.error(
            "broadcast_payload_not_serializable",
            extra={"event_type": event_data.get("type")},
        )
        return

    dead: list[WebSocket] = []
    for ws in list(_clients):
        try:
            await ws.send_json(safe_data)
        except Exception:
            logger.warning("ws_client_send_failed, removing", exc_info=True)
            dead.append(ws)
    for ws in dead:
        _clients.discard(ws)


async def publish_transition(result: TransitionResult) -> None:
    """Broadcast a transition or alert if the result carries one."""
    message = build_transition_message(result)
    if message is not None:
        await broadcast_event(message)


@ws_router.websocket("/ws/booking-events")
async def booking_events(websocket: WebSocket) -> None:
    """Real-time booking workflow feed for the dashboard.

    Args:
        websocket: Incoming WebSocket connection.
    """
    await websocket.accept()
    connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        disconnect(websocket)
