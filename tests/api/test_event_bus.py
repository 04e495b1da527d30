"""Tests for WebSocket event bus module."""

from unittest.mock import AsyncMock

from src.api.event_bus import (
    broadcast_event,
    build_transition_message,
    connect,
    disconnect,
    get_clients,
    publish_transition,
)
from src.shared.response_models import BookingReply
from src.shared.types import BookingEvent, NextStep, WorkflowStatus
from src.workflow.transitions import TransitionResult


def _result(**overrides) -> TransitionResult:
    values = {
        "event": BookingEvent.SUBMIT_TIMES,
        "reply": BookingReply(success=True, message="ok", next_step=NextStep.CALL_PATIENT),
        "workflow_id": "wf-1",
        "incident_id": 4021,
        "from_status": WorkflowStatus.INITIATED,
    }
    values.update(overrides)
    return TransitionResult(**values)


class TestEventBusConnect:
    """WebSocket client connection management."""

    async def test_connect_adds_client(self) -> None:
        """connect() adds a WebSocket to the client set."""
        ws = AsyncMock()
        connect(ws)
        assert ws in get_clients()
        disconnect(ws)

    async def test_disconnect_removes_client(self) -> None:
        """disconnect() removes a WebSocket from the client set."""
        ws = AsyncMock()
        connect(ws)
        disconnect(ws)
        assert ws not in get_clients()


class TestEventBusBroadcast:
    """Event broadcasting to connected clients."""

    async def test_broadcast_sends_to_all_clients(self) -> None:
        """broadcast_event sends JSON to every connected client."""
        ws1 = AsyncMock()
        ws2 = AsyncMock()
        connect(ws1)
        connect(ws2)

        event_data = {"type": "booking_transition", "data": {"workflow_id": "wf-1"}}
        await broadcast_event(event_data)

        ws1.send_json.assert_called_once_with(event_data)
        ws2.send_json.assert_called_once_with(event_data)

        disconnect(ws1)
        disconnect(ws2)

    async def test_broadcast_cleans_up_disconnected(self) -> None:
        """broadcast_event removes clients that raise on send."""
        good_ws = AsyncMock()
        bad_ws = AsyncMock()
        bad_ws.send_json.side_effect = Exception("disconnected")

        connect(good_ws)
        connect(bad_ws)

        await broadcast_event({"type": "booking_alert", "data": {}})

        good_ws.send_json.assert_called_once()
        assert bad_ws not in get_clients()

        disconnect(good_ws)

    async def test_enums_sent_as_values(self) -> None:
        """Status enums are str subclasses and reach clients as plain strings."""
        ws = AsyncMock()
        connect(ws)
        await broadcast_event({"type": "x", "data": {"status": WorkflowStatus.COMPLETED}})
        disconnect(ws)

        sent = ws.send_json.call_args.args[0]
        assert sent["data"]["status"] == "completed"


class TestBuildTransitionMessage:
    """Dashboard message for one tool call outcome."""

    def test_applied_transition(self) -> None:
        message = build_transition_message(
            _result(to_status=WorkflowStatus.TIMES_COLLECTED)
        )

        assert message["type"] == "booking_transition"
        assert message["data"]["workflow_id"] == "wf-1"
        assert message["data"]["event"] == "submit_times"
        assert message["data"]["to_status"] is WorkflowStatus.TIMES_COLLECTED

    def test_alert_takes_priority(self) -> None:
        message = build_transition_message(_result(workflow_id=None, alert="workflow_id_missing"))

        assert message["type"] == "booking_alert"
        assert message["data"]["alert"] == "workflow_id_missing"

    def test_nothing_written_no_message(self) -> None:
        assert build_transition_message(_result()) is None


class TestPublishTransition:
    """publish_transition broadcasts only meaningful outcomes."""

    async def test_publishes_alert(self) -> None:
        ws = AsyncMock()
        connect(ws)
        await publish_transition(_result(alert="store_error"))
        disconnect(ws)

        assert ws.send_json.call_args.args[0]["type"] == "booking_alert"

    async def test_skips_noop(self) -> None:
        ws = AsyncMock()
        connect(ws)
        await publish_transition(_result())
        disconnect(ws)

        ws.send_json.assert_not_called()
