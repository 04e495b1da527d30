"""Shared types, enums, and constants used across the application."""

import enum


class WorkflowStatus(str, enum.Enum):
    """Booking workflow lifecycle state."""

    INITIATED = "initiated"
    TIMES_COLLECTED = "times_collected"
    PATIENT_CONFIRMED = "patient_confirmed"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({WorkflowStatus.COMPLETED, WorkflowStatus.FAILED})


class BookingEvent(str, enum.Enum):
    """Voice agent tool call that drives a workflow transition."""

    SUBMIT_TIMES = "submit_times"
    PATIENT_CONFIRM = "patient_confirm"
    PATIENT_RESCHEDULE = "patient_reschedule"
    CONFIRM_FINAL = "confirm_final"
    BOOKING_FAILED = "booking_failed"


class NextStep(str, enum.Enum):
    """Hint telling the dispatcher what the agent does next."""

    CALL_PATIENT = "call_patient"
    RETRY_OR_FAIL = "retry_or_fail"
    ASK_AGAIN = "ask_again"
    CONFIRM_WITH_CLINIC = "confirm_with_clinic"
    GET_NEW_TIMES = "get_new_times"
    BOOKING_FAILED = "booking_failed"
    BOOKING_COMPLETE = "booking_complete"
    END_CALL = "end_call"


class AppointmentStatus(str, enum.Enum):
    """Appointment lifecycle state."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ConfirmationMethod(str, enum.Enum):
    """How an appointment was confirmed with the clinic."""

    VOICE_AGENT = "voice_agent"
    PHONE = "phone"
    EMAIL = "email"
