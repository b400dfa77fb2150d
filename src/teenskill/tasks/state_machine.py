"""Task state machine.

State progression: open -> taken -> submitted -> completed
Transitions are validated: no skipping states or going backwards. An open
task may also be deleted by its client, which is modelled as a removal rather
than a status.
"""

from __future__ import annotations

from teenskill.db.models import TaskStatus
from teenskill.errors import TransitionConflictError

VALID_TRANSITIONS: dict[TaskStatus, list[TaskStatus]] = {
    TaskStatus.OPEN: [TaskStatus.TAKEN],
    TaskStatus.TAKEN: [TaskStatus.SUBMITTED],
    TaskStatus.SUBMITTED: [TaskStatus.COMPLETED],
    TaskStatus.COMPLETED: [],
}


def can_transition(current_status: str, target_status: str) -> bool:
    try:
        current = TaskStatus(current_status)
        target = TaskStatus(target_status)
    except ValueError:
        return False
    return target in VALID_TRANSITIONS[current]


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a state transition. Raises TransitionConflictError if invalid."""
    if not can_transition(current_status, target_status):
        raise TransitionConflictError(
            f"Invalid transition: {current_status} -> {target_status}"
        )


def previous_status(target_status: TaskStatus) -> TaskStatus:
    """The only status from which target_status may be reached."""
    for source, targets in VALID_TRANSITIONS.items():
        if target_status in targets:
            return source
    msg = f"{target_status.value} has no predecessor"
    raise ValueError(msg)


def can_delete(current_status: str) -> bool:
    return current_status == TaskStatus.OPEN.value
