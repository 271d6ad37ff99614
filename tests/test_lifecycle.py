"""Tests for per-session run state transitions."""
import pytest

from opencoding.engine.lifecycle import VALID_TRANSITIONS, validate_transition
from opencoding.engine.models import RunState


class TestValidateTransition:
    @pytest.mark.parametrize("current,target", [
        (RunState.IDLE, RunState.RUNNING),
        (RunState.RUNNING, RunState.EXITED),
        (RunState.RUNNING, RunState.CANCELLED),
        (RunState.EXITED, RunState.RUNNING),
        (RunState.CANCELLED, RunState.RUNNING),
        (RunState.EXITED, RunState.IDLE),
        (RunState.CANCELLED, RunState.IDLE),
    ])
    def test_valid(self, current, target):
        validate_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (RunState.IDLE, RunState.EXITED),
        (RunState.IDLE, RunState.CANCELLED),
        (RunState.RUNNING, RunState.IDLE),
        (RunState.RUNNING, RunState.RUNNING),
        (RunState.EXITED, RunState.CANCELLED),
        (RunState.CANCELLED, RunState.EXITED),
    ])
    def test_invalid(self, current, target):
        with pytest.raises(ValueError, match="Invalid state transition"):
            validate_transition(current, target)

    def test_every_state_has_rules(self):
        assert set(VALID_TRANSITIONS) == set(RunState)

    def test_states_are_strings(self):
        assert RunState.RUNNING == "running"
