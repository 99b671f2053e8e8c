"""State machine constants and transition logic for the job orchestrator.

A job moves pending -> running -> {completed | failed}. Progress inside
running is tracked as a percentage set at stage boundaries instead of as
separate sub-states.
"""

from typing import Dict

PENDING = "pending"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"

# Job states in execution order
JOB_STATES = {
    PENDING: "Created, waiting for a pipeline run to claim it",
    RUNNING: "Claimed by a pipeline run; see progress for the current stage",
    COMPLETED: "All stages finished; video persisted",
    FAILED: "A stage raised; error_message holds the reason",
}

# Allowed status transitions (self-transition on running carries progress updates)
TRANSITIONS = {
    PENDING: {RUNNING, FAILED},
    RUNNING: {RUNNING, COMPLETED, FAILED},
    COMPLETED: set(),
    FAILED: set(),
}

TERMINAL_STATES = {COMPLETED, FAILED}

# Progress percentage written when each stage starts (finalize marks completion)
STAGE_PROGRESS: Dict[str, int] = {
    "fetch": 10,
    "summarize": 25,
    "synthesize": 50,
    "render": 75,
    "finalize": 100,
}

PIPELINE_STAGES = ("fetch", "summarize", "synthesize", "render")

PROGRESS_VALUES = frozenset({0, *STAGE_PROGRESS.values()})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATES


def can_transition(current: str, new: str) -> bool:
    """Check if a job may move from current to new status.

    Args:
        current: Status stored on the job
        new: Requested status

    Returns:
        True if the state machine allows the move, False otherwise

    Examples:
        >>> can_transition("pending", "running")
        True
        >>> can_transition("completed", "failed")
        False
    """
    return new in TRANSITIONS.get(current, set())


def stage_for_progress(progress: int) -> str:
    """Name the stage a running job was in at the given progress value."""
    current = "pending"
    for stage, value in STAGE_PROGRESS.items():
        if progress >= value:
            current = stage
    return current
