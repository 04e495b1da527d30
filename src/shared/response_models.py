"""Pydantic response models for booking webhook replies.

Every voice tool reply shares the ``{success, message, next_step?}``
envelope; each event adds its own optional fields. Replies are
serialized with ``exclude_none`` so absent fields never reach the
voice platform.

All models support dict-style access (reply["key"] and "key" in reply)
so tests and callers can treat them like the JSON they become.
"""

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel

from src.shared.types import NextStep


class AgentResult(BaseModel):
    """Base model with dict-compatible access.

    Supports: result["key"], "key" in result, result.get("key"),
    {**result}, and dict(result).
    """

    def __getitem__(self, key: str) -> Any:
        """Support dict-style subscript access.

        Args:
            key: Field name to retrieve.

        Returns:
            Field value.

        Raises:
            AttributeError: If key is not a valid field name.
        """
        return getattr(self, key)

    def __contains__(self, key: str) -> bool:
        """Support 'key in result' membership test.

        Args:
            key: Field name to check.

        Returns:
            True if key is a model field with a non-None value.
        """
        if key not in type(self).model_fields:
            return False
        return getattr(self, key) is not None

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a field value by name with an optional default.

        Args:
            key: Field name to look up.
            default: Value to return if key is not a model field.

        Returns:
            Field value if key exists, otherwise default.
        """
        if key in type(self).model_fields:
            return getattr(self, key)
        return default

    def keys(self) -> list[str]:
        """Return all field names for dict unpacking support."""
        return list(type(self).model_fields.keys())

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        """Iterate over field names for dict() and {**} unpacking."""
        return iter(type(self).model_fields.keys())


class BookingReply(AgentResult):
    """Common reply envelope spoken by the voice agent.

    Attributes:
        success: Whether the tool call achieved its purpose.
        message: Short sentence for the agent to say.
        next_step: Machine hint for the dispatcher.
    """

    success: bool
    message: str
    next_step: NextStep | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON body returned to the voice platform."""
        return self.model_dump(mode="json", exclude_none=True)


class SubmitTimesReply(BookingReply):
    """Reply to the clinic after offered times are recorded."""

    times_count: int | None = None


class PatientConfirmReply(BookingReply):
    """Reply to the patient after they pick a time."""

    confirmed_time: str | None = None


class PatientRescheduleReply(BookingReply):
    """Reply to the patient when none of the offered times work."""


class ConfirmFinalReply(BookingReply):
    """Reply to the clinic once the booking is locked in."""

    appointment_confirmed: bool | None = None
    appointment_datetime: str | None = None
    doctor_name: str | None = None


class BookingFailedReply(BookingReply):
    """Reply when any party reports the booking cannot proceed."""

    should_retry: bool | None = None
