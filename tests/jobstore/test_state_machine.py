"""
Lifecycle table tests.
"""

import pytest

from src.jobstore import CompletedExecutionInstruction, TriggerState
from src.jobstore.state_machine import (
    can_transition,
    completion_target,
    is_job_wide,
    is_terminal,
)


W = TriggerState.WAITING
A = TriggerState.ACQUIRED
X = TriggerState.EXECUTING
C = TriggerState.COMPLETED
E = TriggerState.ERROR


class TestTransitions:

    @pytest.mark.parametrize("current, new", [
        (W, A),
        (A, X),
        (A, W),
        (A, E),
        (X, W),
        (X, C),
        (X, E),
    ])
    def test_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize("current, new", [
        (W, X),
        (W, C),
        (A, A),
        (X, A),
        (C, W),
        (E, W),
        (C, A),
    ])
    def test_rejected(self, current, new):
        assert not can_transition(current, new)

    def test_terminal_states(self):
        assert is_terminal(C)
        assert is_terminal(E)
        assert not any(is_terminal(s) for s in (W, A, X))


class TestCompletionInstructions:

    @pytest.mark.parametrize("instruction, target", [
        (CompletedExecutionInstruction.NOOP, W),
        (CompletedExecutionInstruction.DELETE_TRIGGER, None),
        (CompletedExecutionInstruction.SET_TRIGGER_COMPLETE, C),
        (CompletedExecutionInstruction.SET_TRIGGER_ERROR, E),
        (CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_COMPLETE, C),
        (CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_ERROR, E),
    ])
    def test_target(self, instruction, target):
        assert completion_target(instruction) == target

    def test_job_wide(self):
        assert is_job_wide(CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_COMPLETE)
        assert is_job_wide(CompletedExecutionInstruction.SET_ALL_JOB_TRIGGERS_ERROR)
        assert not is_job_wide(CompletedExecutionInstruction.SET_TRIGGER_COMPLETE)
