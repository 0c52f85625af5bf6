"""
Unit tests for restart_policy.py and activity_state.py modules.
"""

import pytest

from ollama_sidecar.entities.activity_state import ActivityState
from ollama_sidecar.use_cases.restart_policy import (
    DEFAULT_IDLE_THRESHOLD,
    RestartPolicy,
    restart_reason,
    should_restart,
)


class TestActivityState:
    """Test ActivityState."""

    def test_initially_empty(self):
        state = ActivityState()
        assert state.last_inference_time is None
        assert state.last_inference_model is None
        assert state.idle_seconds(now=100.0) is None

    def test_record_sets_time_and_model(self):
        state = ActivityState()
        state.record("llama3", now=1000.0)

        assert state.last_inference_time == 1000.0
        assert state.last_inference_model == "llama3"
        assert state.idle_seconds(now=1030.0) == 30.0

    def test_older_stamp_is_ignored(self):
        """Time and model always come from the same call."""
        state = ActivityState()
        state.record("llama3", now=1000.0)
        state.record("mistral", now=990.0)

        assert state.last_inference_time == 1000.0
        assert state.last_inference_model == "llama3"

    def test_same_time_stamp_takes_model(self):
        state = ActivityState()
        state.record("llama3", now=1000.0)
        state.record("mistral", now=1000.0)

        assert state == ActivityState(last_inference_time=1000.0, last_inference_model="mistral")

    def test_record_uses_wall_clock_by_default(self):
        state = ActivityState()
        state.record("llama3")

        assert state.last_inference_time is not None
        assert state.idle_seconds() >= 0


class TestRestartReason:
    """Test the restart decision."""

    def test_default_threshold(self):
        assert DEFAULT_IDLE_THRESHOLD == 90.0

    def test_first_call_never_restarts(self):
        """No recorded activity, no restart."""
        assert should_restart("llama3", ActivityState(), now=1_000_000.0) is False

    def test_recent_same_model(self):
        activity = ActivityState(last_inference_time=1000.0, last_inference_model="llama3")
        assert should_restart("llama3", activity, now=1010.0) is False

    def test_idle_just_below_threshold(self):
        activity = ActivityState(last_inference_time=1000.0, last_inference_model="llama3")
        assert should_restart("llama3", activity, now=1089.9) is False

    def test_idle_at_threshold(self):
        """The threshold itself counts as idle."""
        activity = ActivityState(last_inference_time=1000.0, last_inference_model="llama3")
        assert should_restart("llama3", activity, now=1090.0) is True

    def test_idle_beyond_threshold(self):
        activity = ActivityState(last_inference_time=1000.0, last_inference_model="llama3")
        reason = restart_reason("llama3", activity, now=1200.0)

        assert reason is not None
        assert "200 seconds" in reason

    def test_model_change_restarts_even_when_recent(self):
        activity = ActivityState(last_inference_time=1000.0, last_inference_model="llama3")
        reason = restart_reason("mistral", activity, now=1001.0)

        assert reason == "the model changed from llama3 to mistral"

    def test_model_without_time_still_compared(self):
        activity = ActivityState(last_inference_model="llama3")
        assert should_restart("mistral", activity, now=0.0) is True
        assert should_restart("llama3", activity, now=0.0) is False

    @pytest.mark.parametrize(
        "threshold,idle,expected",
        [(0.0, 0.0, True), (30.0, 29.0, False), (30.0, 30.0, True), (300.0, 120.0, False)],
    )
    def test_custom_threshold(self, threshold, idle, expected):
        activity = ActivityState(last_inference_time=500.0, last_inference_model="m")
        assert should_restart("m", activity, idle_threshold=threshold, now=500.0 + idle) is expected

    def test_decision_does_not_mutate_activity(self):
        activity = ActivityState(last_inference_time=1000.0, last_inference_model="llama3")
        restart_reason("mistral", activity, now=5000.0)

        assert activity == ActivityState(last_inference_time=1000.0, last_inference_model="llama3")


class TestRestartPolicy:
    """Test the RestartPolicy wrapper."""

    def test_uses_configured_threshold(self):
        policy = RestartPolicy(idle_threshold=10.0)
        activity = ActivityState(last_inference_time=100.0, last_inference_model="m")

        assert policy.should_restart("m", activity, now=109.0) is False
        assert policy.should_restart("m", activity, now=110.0) is True

    def test_default_threshold(self):
        policy = RestartPolicy()
        activity = ActivityState(last_inference_time=100.0, last_inference_model="m")

        assert policy.idle_threshold == DEFAULT_IDLE_THRESHOLD
        assert policy.restart_reason("m", activity, now=189.0) is None
        assert policy.restart_reason("m", activity, now=190.0) is not None
