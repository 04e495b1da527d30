"""Spoken lines returned to the voice agent.

Each reply is read aloud on a live call, so every line is a short,
complete sentence that still makes sense when the backend has failed.
"""

# Generic fallbacks, used when state could not be read or written.
SAFE_CLOSING = "Thank you for your time. We'll follow up with the details shortly."
UNKNOWN_EVENT = "Thank you. We'll be in touch with the next steps."

# submit_times
TIMES_MISSING = (
    "I wasn't able to get any available times. "
    "Please try again or ask for different dates."
)
TIMES_NOTED_NO_WORKFLOW = "I've noted those times. Thank you for your help."
TIMES_FALLBACK = "Thank you, I've noted those times."

# patient_confirm
PATIENT_TIME_MISSING = (
    "I didn't catch which time you preferred. "
    "Could you please confirm which appointment time works for you?"
)
PATIENT_NOTED_NO_WORKFLOW = (
    "I've noted your preference. We'll confirm with the clinic and send you the details."
)
PATIENT_FALLBACK = "Thank you for confirming. We'll be in touch with the appointment details."

# patient_reschedule
RESCHEDULE_ACCEPTED = (
    "No problem at all. I'll contact the clinic to find some alternative times "
    "that work better for you. We'll be in touch soon."
)
RESCHEDULE_NO_WORKFLOW = "No problem. I'll find some alternative times and get back to you."
RESCHEDULE_FALLBACK = "I understand. We'll find some alternative times and get back to you."

# confirm_final
BOOKING_NOT_CONFIRMED = (
    "I understand, the booking wasn't confirmed. I'll note this and we'll follow up."
)
BOOKING_CONFIRMED_GENERIC = "The appointment has been confirmed. Thank you!"
BOOKING_CONFIRMED_UNKNOWN_WORKFLOW = "Appointment confirmed. Thank you for your help!"

# booking_failed
FAILED_NO_WORKFLOW = (
    "I understand. Thank you for your time. We'll follow up through other means."
)
FAILED_WILL_RETRY = "I understand. I'll try again later. Thank you for your time."
FAILED_FINAL = (
    "I understand. Thank you for your time. Our team will follow up through other means."
)
FAILED_FALLBACK = "Thank you for your time. We'll follow up separately."


def _with_doctor(doctor_name: str | None) -> str:
    return f" with {doctor_name}" if doctor_name else ""


def times_collected(count: int) -> str:
    """Acknowledge the clinic's offered times."""
    noun = "time" if count == 1 else "times"
    return f"Got it, I have {count} available {noun}. I'll check with the patient now."


def patient_confirmed(time: str) -> str:
    """Read back the patient's chosen time."""
    return f"I've confirmed {time}. I'll call the clinic now to lock in that appointment."


def booking_confirmed(appointment_time: str | None, doctor_name: str | None) -> str:
    """Close the clinic call once the appointment is booked.

    Args:
        appointment_time: Confirmed time, if known.
        doctor_name: Confirmed doctor, if any.

    Returns:
        Spoken confirmation.
    """
    if not appointment_time:
        return f"Wonderful, that's all confirmed{_with_doctor(doctor_name)}. Thank you for your help!"
    return (
        f"Wonderful, that's all confirmed for {appointment_time}"
        f"{_with_doctor(doctor_name)}. Thank you for your help!"
    )
