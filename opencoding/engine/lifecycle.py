"""Per-session run state machine.

Defines valid transitions and enforces them. Invalid transitions
raise ValueError rather than silently proceeding.

State Diagram:

    IDLE ──> RUNNING ──┬──> EXITED     (subprocess exit notification)
                       │
                       └──> CANCELLED  (cancel() or superseded by a new send)

    EXITED / CANCELLED ──> RUNNING  (next turn on the same session)
    EXITED / CANCELLED ──> IDLE     (next turn failed to spawn)
"""
from __future__ import annotations

from .models import RunState

VALID_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {
        RunState.RUNNING,
    },
    RunState.RUNNING: {
        RunState.EXITED,
        RunState.CANCELLED,
    },
    RunState.EXITED: {
        RunState.RUNNING,
        RunState.IDLE,
    },
    RunState.CANCELLED: {
        RunState.RUNNING,
        RunState.IDLE,
    },
}


def validate_transition(current: RunState, target: RunState) -> None:
    """Validate a state transition. Raises ValueError if invalid."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(s.value for s in allowed) or "none (terminal)"
        raise ValueError(
            f"Invalid state transition: {current.value} -> {target.value}. "
            f"Allowed from {current.value}: {allowed_str}"
        )
