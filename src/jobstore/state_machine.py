"""
Trigger lifecycle state machine.

Canonical lifecycle:
(store) -> WAITING -> ACQUIRED -> EXECUTING -> WAITING | COMPLETED | ERROR
ACQUIRED -> WAITING on release without firing.

Notes:
- A transition from any state other than the expected source is a stale
  read. The caller abandons that trigger and moves on; nothing is retried
  in place.
- DELETE_TRIGGER removes the document instead of transitioning it.
"""

from typing import Optional

from .entities import CompletedExecutionInstruction, TriggerState


_TERMINAL_STATES = {TriggerState.COMPLETED, TriggerState.ERROR}

_ALLOWED: dict[TriggerState, set[TriggerState]] = {
    TriggerState.WAITING: {TriggerState.ACQUIRED},
    TriggerState.ACQUIRED: {TriggerState.EXECUTING, TriggerState.WAITING, TriggerState.ERROR},
    TriggerState.EXECUTING: {TriggerState.WAITING, TriggerState.COMPLETED, TriggerState.ERROR},
    TriggerState.COMPLETED: set(),
    TriggerState.ERROR: set(),
}

# None means "remove the trigger".
_COMPLETION_TARGETS: dict[CompletedExecutionInstruction, Optional[TriggerState]] = {
    CompletedExecutionInstruction.NOOP: TriggerState.WAITING,
    CompletedExecutionInstruction.DELETE_TRIGGER: None,
    CompletedExecutionInstruction.SET_TRIGGER_COMPLETE: TriggerState.COMPLETED,
    CompletedExecutionInstruction.SET_TRIGGER_ERROR: TriggerState.ERROR,
    CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_COMPLETE: TriggerState.COMPLETED,
    CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_ERROR: TriggerState.ERROR,
}

_JOB_WIDE = {
    CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_COMPLETE,
    CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_ERROR,
}


def is_terminal(state: TriggerState) -> bool:
    return state in _TERMINAL_STATES


def can_transition(current: TriggerState, new: TriggerState) -> bool:
    """Check whether current -> new is a legal lifecycle step."""
    return new in _ALLOWED.get(current, set())


def completion_target(instruction: CompletedExecutionInstruction) -> Optional[TriggerState]:
    """State a completed trigger moves to; None when it is removed instead."""
    return _COMPLETION_TARGETS[instruction]


def is_job_wide(instruction: CompletedExecutionInstruction) -> bool:
    """Whether the instruction applies to every trigger of the job."""
    return instruction in _JOB_WIDE
