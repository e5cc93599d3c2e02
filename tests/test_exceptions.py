"""Tests for exception hierarchy."""

import pytest

from autopilot.exceptions import (
    AutopilotError,
    ConfigError,
    ContextLogError,
    ExecutionBusyError,
    FeatureError,
    FeatureNotFoundError,
    ProjectNotFoundError,
    SessionCancelledError,
    SessionError,
    SessionTimeoutError,
    StateTransitionError,
)


class TestAutopilotError:
    """Tests for base AutopilotError."""

    def test_basic_error(self):
        err = AutopilotError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.details == {}
        assert str(err) == "Something went wrong"

    def test_error_with_details(self):
        err = AutopilotError("Error occurred", {"code": 500})
        assert err.details == {"code": 500}
        assert "code" in str(err)
        assert "500" in str(err)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_class, parent",
        [
            (ConfigError, AutopilotError),
            (ProjectNotFoundError, ConfigError),
            (FeatureError, AutopilotError),
            (ContextLogError, AutopilotError),
            (SessionError, AutopilotError),
            (SessionCancelledError, SessionError),
        ],
    )
    def test_inheritance(self, error_class, parent):
        assert issubclass(error_class, parent)


class TestFeatureErrors:
    def test_feature_not_found(self):
        err = FeatureNotFoundError("f1")
        assert isinstance(err, FeatureError)
        assert err.feature_id == "f1"
        assert "f1" in str(err)

    def test_execution_busy(self):
        err = ExecutionBusyError("f1", "implement")
        assert err.kind == "implement"
        assert err.details["running_kind"] == "implement"


class TestSessionErrors:
    def test_timeout_error(self):
        err = SessionTimeoutError("Too slow", timeout_seconds=30.0)
        assert isinstance(err, SessionError)
        assert err.timeout_seconds == 30.0
        assert err.details["timeout_seconds"] == 30.0


class TestStateTransitionError:
    def test_states_recorded(self):
        err = StateTransitionError("bad", from_state="PENDING", to_state="VERIFYING")
        assert err.from_state == "PENDING"
        assert err.to_state == "VERIFYING"
        assert "PENDING" in str(err)
