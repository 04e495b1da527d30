"""Booking workflow transition table.

One table maps (current status, event) to an outcome so every
combination can be checked in one place:

- ``apply``: write the target status.
- ``repeat``: the event already took effect, reply without writing.
- ``out_of_order``: the event would move the workflow backwards.

Status only moves forward, except the explicit resets to ``initiated``
made by a patient reschedule or a retryable failure. A terminal failure
never overwrites a completed booking.
"""

import enum
from dataclasses import dataclass

from src.shared.types import TERMINAL_STATUSES, BookingEvent, WorkflowStatus

_RANK: dict[WorkflowStatus, int] = {
    WorkflowStatus.INITIATED: 0,
    WorkflowStatus.TIMES_COLLECTED: 1,
    WorkflowStatus.PATIENT_CONFIRMED: 2,
    WorkflowStatus.COMPLETED: 3,
    WorkflowStatus.FAILED: 3,
}

# Events that only ever move the workflow forward.
_FORWARD_TARGETS: dict[BookingEvent, WorkflowStatus] = {
    BookingEvent.SUBMIT_TIMES: WorkflowStatus.TIMES_COLLECTED,
    BookingEvent.PATIENT_CONFIRM: WorkflowStatus.PATIENT_CONFIRMED,
    BookingEvent.CONFIRM_FINAL: WorkflowStatus.COMPLETED,
}


class Outcome(str, enum.Enum):
    """What a handler should do with an event."""

    APPLY = "apply"
    REPEAT = "repeat"
    OUT_OF_ORDER = "out_of_order"


@dataclass(frozen=True)
class Transition:
    """Decision for one (status, event) pair.

    Attributes:
        outcome: Whether to write, repeat, or refuse.
        target: Status to write when outcome is APPLY.
    """

    outcome: Outcome
    target: WorkflowStatus | None = None


def target_status(event: BookingEvent, should_retry: bool = False) -> WorkflowStatus:
    """Return the status an event writes when it applies.

    Args:
        event: Incoming booking event.
        should_retry: For booking_failed, loop back instead of failing.

    Returns:
        Target workflow status.
    """
    if event is BookingEvent.PATIENT_RESCHEDULE:
        return WorkflowStatus.INITIATED
    if event is BookingEvent.BOOKING_FAILED:
        return WorkflowStatus.INITIATED if should_retry else WorkflowStatus.FAILED
    return _FORWARD_TARGETS[event]


def _decide(
    current: WorkflowStatus,
    event: BookingEvent,
    should_retry: bool,
) -> Transition:
    target = target_status(event, should_retry)
    if event is BookingEvent.BOOKING_FAILED and not should_retry:
        if current is WorkflowStatus.FAILED:
            return Transition(Outcome.REPEAT)
        if current is WorkflowStatus.COMPLETED:
            return Transition(Outcome.OUT_OF_ORDER)
    if event not in _FORWARD_TARGETS:
        return Transition(Outcome.APPLY, target)
    if event is BookingEvent.CONFIRM_FINAL and current is WorkflowStatus.COMPLETED:
        return Transition(Outcome.REPEAT)
    if current in TERMINAL_STATUSES or _RANK[target] < _RANK[current]:
        return Transition(Outcome.OUT_OF_ORDER)
    return Transition(Outcome.APPLY, target)


TRANSITION_TABLE: dict[tuple[WorkflowStatus, BookingEvent, bool], Transition] = {
    (status, event, retry): _decide(status, event, retry)
    for status in WorkflowStatus
    for event in BookingEvent
    for retry in (False, True)
}


def decide_transition(
    current: WorkflowStatus,
    event: BookingEvent,
    should_retry: bool = False,
) -> Transition:
    """Look up what an event does to a workflow in a given status.

    Args:
        current: Workflow status before the event.
        event: Incoming booking event.
        should_retry: Only meaningful for booking_failed.

    Returns:
        Transition decision from the table.
    """
    retry = should_retry if event is BookingEvent.BOOKING_FAILED else False
    return TRANSITION_TABLE[(WorkflowStatus(current), event, retry)]
