"""Tests for the append-only incident activity log."""

from unittest.mock import AsyncMock, MagicMock

from src.db.activity_log import log_activity
from src.db.models import ActivityLogEntry


def _mock_session(existing: ActivityLogEntry | None = None) -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = existing
    session.execute = AsyncMock(return_value=result)
    return session


class TestLogActivity:
    """Entry creation and idempotency."""

    async def test_creates_entry(self) -> None:
        """Entry is added and flushed with metadata in metadata_."""
        session = _mock_session()
        entry = await log_activity(
            session,
            incident_id=4021,
            action_type="voice_agent",
            summary="Patient confirmed appointment time",
            details="Confirmed: Mon 9am",
            actor_name="AI Booking Agent",
            metadata={"workflow_id": "wf-1"},
        )

        assert isinstance(entry, ActivityLogEntry)
        assert entry.metadata_ == {"workflow_id": "wf-1"}
        assert entry.created_at is not None
        session.add.assert_called_once_with(entry)
        session.flush.assert_awaited_once()
        session.execute.assert_not_awaited()

    async def test_duplicate_key_skipped(self) -> None:
        """Existing idempotency key returns None and adds nothing."""
        session = _mock_session(existing=ActivityLogEntry(idempotency_key="wf-1:completed"))
        entry = await log_activity(
            session,
            incident_id=4021,
            action_type="voice_agent",
            summary="Medical appointment booked successfully",
            idempotency_key="wf-1:completed",
        )

        assert entry is None
        session.add.assert_not_called()

    async def test_new_key_inserted(self) -> None:
        session = _mock_session(existing=None)
        entry = await log_activity(
            session,
            incident_id=4021,
            action_type="voice_agent",
            summary="Booked",
            idempotency_key="wf-2:completed",
        )

        assert entry.idempotency_key == "wf-2:completed"
        assert entry.metadata_ == {}
        session.execute.assert_awaited_once()
