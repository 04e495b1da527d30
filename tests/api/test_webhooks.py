"""Tests for the booking voice agent webhook endpoints."""

import contextlib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.api.webhooks import get_booking_store, get_memory_store
from src.db.booking_store import SqlBookingStore
from src.shared.store_protocol import BookingStoreError
from src.shared.types import WorkflowStatus
from src.workflow import messages

TIMES = [{"datetime": "Tuesday 21 October at 9am", "doctor_name": "Dr Lee"}]


@pytest.fixture
def app(store):
    """Create test FastAPI app bound to the in-memory store."""
    application = create_app()
    application.dependency_overrides[get_booking_store] = lambda: store
    return application


@pytest.fixture
async def client(app):
    """Async HTTP client against the ASGI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestBookingEventEndpoints:
    """POST /webhooks/booking/{event}."""

    async def test_submit_times(self, client, store, seed_workflow) -> None:
        seed_workflow()
        resp = await client.post(
            "/webhooks/booking/submit_times",
            json={"workflow_id": "wf-1", "available_times": TIMES},
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": messages.times_collected(1),
            "next_step": "call_patient",
            "times_count": 1,
        }
        assert store.workflows["wf-1"].status is WorkflowStatus.TIMES_COLLECTED

    async def test_hyphenated_alias(self, client, store, seed_workflow) -> None:
        seed_workflow(status=WorkflowStatus.TIMES_COLLECTED)
        resp = await client.post(
            "/webhooks/booking/booking-patient-confirm",
            json={"args": {"workflow_id": "wf-1", "patient_confirmed_time": "Mon 9am"}},
        )

        assert resp.status_code == 200
        assert resp.json()["next_step"] == "confirm_with_clinic"
        assert store.workflows["wf-1"].status is WorkflowStatus.PATIENT_CONFIRMED

    async def test_confirm_final_reply_shape(self, client, seed_workflow) -> None:
        seed_workflow(status=WorkflowStatus.PATIENT_CONFIRMED)
        resp = await client.post(
            "/webhooks/booking/confirm_final",
            json={
                "call": {"metadata": {"workflow_id": "wf-1"}},
                "args": {"confirmed_datetime": "Mon 9am", "confirmed_doctor_name": "Dr Lee"},
            },
        )

        body = resp.json()
        assert body["appointment_confirmed"] is True
        assert body["appointment_datetime"] == "Mon 9am"
        assert body["doctor_name"] == "Dr Lee"
        assert body["next_step"] == "booking_complete"

    async def test_invalid_json_still_200(self, client) -> None:
        """Malformed bodies are treated as empty payloads."""
        resp = await client.post(
            "/webhooks/booking/patient_confirm",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 200
        assert resp.json()["next_step"] == "ask_again"

    async def test_missing_workflow_id_still_200(self, client) -> None:
        resp = await client.post(
            "/webhooks/booking/booking_failed", json={"failure_reason": "No answer"}
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": messages.FAILED_NO_WORKFLOW,
            "next_step": "end_call",
            "should_retry": False,
        }

    async def test_unknown_event_still_200(self, client) -> None:
        resp = await client.post("/webhooks/booking/cancel_everything", json={})

        assert resp.status_code == 200
        assert resp.json()["message"] == messages.UNKNOWN_EVENT

    async def test_store_failure_still_200(self, client, store, seed_workflow) -> None:
        seed_workflow()
        failing = AsyncMock(side_effect=BookingStoreError("db down"))
        with patch.object(store, "fetch_workflow", failing):
            resp = await client.post(
                "/webhooks/booking/submit_times",
                json={"workflow_id": "wf-1", "available_times": TIMES},
            )

        assert resp.status_code == 200
        assert resp.json()["message"] == messages.TIMES_NOTED_NO_WORKFLOW

    async def test_broadcasts_transition(self, client, seed_workflow) -> None:
        seed_workflow()
        with patch("src.api.webhooks.publish_transition", new_callable=AsyncMock) as publish:
            await client.post(
                "/webhooks/booking/submit_times",
                json={"workflow_id": "wf-1", "available_times": TIMES},
            )

        result = publish.call_args.args[0]
        assert result.to_status is WorkflowStatus.TIMES_COLLECTED

    async def test_commits_before_broadcast(self, client, store, seed_workflow) -> None:
        """The dashboard only hears about writes that were committed."""
        seed_workflow()
        calls: list[str] = []
        commit = AsyncMock(side_effect=lambda: calls.append("commit"))
        with (
            patch.object(store, "commit", commit),
            patch(
                "src.api.webhooks.publish_transition",
                new_callable=AsyncMock,
                side_effect=lambda result: calls.append("publish"),
            ),
        ):
            await client.post(
                "/webhooks/booking/submit_times",
                json={"workflow_id": "wf-1", "available_times": TIMES},
            )

        assert calls == ["commit", "publish"]

    async def test_commit_failure_broadcasts_alert(self, client, store, seed_workflow) -> None:
        seed_workflow()
        failing = AsyncMock(side_effect=BookingStoreError("commit failed"))
        with (
            patch.object(store, "commit", failing),
            patch("src.api.webhooks.publish_transition", new_callable=AsyncMock) as publish,
        ):
            resp = await client.post(
                "/webhooks/booking/submit_times",
                json={"workflow_id": "wf-1", "available_times": TIMES},
            )

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        result = publish.call_args.args[0]
        assert result.alert == "store_error"
        assert result.to_status is None

    async def test_broadcast_failure_does_not_fail_call(self, client, seed_workflow) -> None:
        seed_workflow()
        with patch(
            "src.api.webhooks.publish_transition",
            new_callable=AsyncMock,
            side_effect=RuntimeError("socket gone"),
        ):
            resp = await client.post(
                "/webhooks/booking/submit_times",
                json={"workflow_id": "wf-1", "available_times": TIMES},
            )

        assert resp.status_code == 200
        assert resp.json()["success"] is True


class TestOptions:
    """Preflight and bare OPTIONS requests."""

    async def test_cors_preflight(self, client) -> None:
        resp = await client.options(
            "/webhooks/booking/submit_times",
            headers={
                "Origin": "https://voice.example",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    async def test_bare_options(self, client) -> None:
        resp = await client.options("/webhooks/booking/submit_times")
        assert resp.status_code == 200


class TestGetWorkflow:
    """GET /webhooks/booking/workflows/{id}."""

    async def test_returns_workflow_and_summary(self, client, seed_workflow) -> None:
        seed_workflow(status=WorkflowStatus.TIMES_COLLECTED, available_times=TIMES)
        resp = await client.get("/webhooks/booking/workflows/wf-1")

        assert resp.status_code == 200
        body = resp.json()
        assert body["workflow"]["status"] == "times_collected"
        assert body["medical_center"]["suburb"] == "Parramatta"
        assert body["available_times_summary"] == (
            "Option 1: Tuesday 21 October at 9am with Dr Lee"
        )

    async def test_unknown_is_404(self, client) -> None:
        resp = await client.get("/webhooks/booking/workflows/ghost")
        assert resp.status_code == 404

    async def test_store_error_is_503(self, client, store) -> None:
        failing = AsyncMock(side_effect=BookingStoreError("db down"))
        with patch.object(store, "fetch_workflow", failing):
            resp = await client.get("/webhooks/booking/workflows/wf-1")
        assert resp.status_code == 503


class TestGetBookingStore:
    """Store dependency selection."""

    async def test_memory_backend(self, settings) -> None:
        with (
            patch("src.api.webhooks.get_settings", return_value=settings),
            patch("src.api.webhooks._memory_store", None),
        ):
            gen = get_booking_store()
            yielded = await gen.__anext__()
            assert yielded is get_memory_store()
            with contextlib.suppress(StopAsyncIteration):
                await gen.__anext__()

    async def test_postgres_backend_leaves_commit_to_caller(self, settings) -> None:
        settings.booking_store_backend = "postgres"
        mock_session = AsyncMock()
        mock_ctx = AsyncMock()
        mock_ctx.__aenter__.return_value = mock_session
        mock_ctx.__aexit__.return_value = False
        factory = MagicMock(return_value=mock_ctx)

        with (
            patch("src.api.webhooks.get_settings", return_value=settings),
            patch("src.api.webhooks.get_session_factory", return_value=factory),
        ):
            gen = get_booking_store()
            yielded = await gen.__anext__()
            assert isinstance(yielded, SqlBookingStore)
            with contextlib.suppress(StopAsyncIteration):
                await gen.__anext__()

        mock_session.commit.assert_not_awaited()
        mock_ctx.__aexit__.assert_awaited_once()
