"""Append-only incident activity log with idempotency key enforcement."""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import ActivityLogEntry


async def log_activity(
    session: AsyncSession,
    *,
    incident_id: int,
    action_type: str,
    summary: str,
    details: str | None = None,
    actor_name: str | None = None,
    metadata: dict | None = None,
    idempotency_key: str | None = None,
) -> ActivityLogEntry | None:
    """Append an entry to the incident activity log.

    If an idempotency_key is provided and already exists, the entry is
    silently skipped (returns None). This prevents duplicate entries
    when the voice platform retries a tool call.

    Args:
        session: Active database session.
        incident_id: Incident this entry belongs to.
        action_type: Kind of action (e.g. "voice_agent").
        summary: One-line summary shown on the incident timeline.
        details: Longer free-text description.
        actor_name: Who performed the action.
        metadata: Structured context for the entry.
        idempotency_key: Unique key to prevent duplicate entries.

    Returns:
        The created entry, or None if deduplicated.
    """
    if idempotency_key:
        existing = await session.execute(
            select(ActivityLogEntry).where(
                ActivityLogEntry.idempotency_key == idempotency_key
            )
        )
        if existing.scalar_one_or_none() is not None:
            return None

    entry = ActivityLogEntry(
        incident_id=incident_id,
        action_type=action_type,
        summary=summary,
        details=details,
        actor_name=actor_name,
        metadata_=metadata or {},
        idempotency_key=idempotency_key,
        created_at=datetime.now(timezone.utc),
    )
    session.add(entry)
    await session.flush()
    return entry
