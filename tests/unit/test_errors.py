# =============================================================================
# tests/unit/test_errors.py
# Unit Tests for the error taxonomy and handlers
# =============================================================================

import pytest

from leafguard_core.errors import (
    ApiError,
    ConfigurationError,
    EmailAlreadyExists,
    InsufficientScans,
    InvalidInput,
    NetworkUnreachable,
    NoConnectivity,
    ServerConnectionFailed,
    SessionExpired,
    ValidationError,
    handle_error,
    user_message,
)


class TestExceptions:
    """Codes and details"""

    def test_api_error_details(self):
        error = SessionExpired("expired", status_code=401, endpoint="/users", attempts=1)

        assert error.code == "AUTH_001"
        assert error.details == {"status_code": 401, "endpoint": "/users", "attempts": 1}
        assert isinstance(error, ApiError)

    def test_to_dict(self):
        error = NoConnectivity("offline")
        as_dict = error.to_dict()

        assert as_dict["error_type"] == "NoConnectivity"
        assert as_dict["code"] == "CONN_001"
        assert as_dict["recoverable"] is True

    def test_caller_facing_hierarchy(self):
        assert issubclass(EmailAlreadyExists, ValidationError)
        assert issubclass(InvalidInput, ValidationError)
        assert not issubclass(NoConnectivity, ApiError)
        assert not issubclass(ServerConnectionFailed, ApiError)

    def test_insufficient_scans_carries_count(self):
        error = InsufficientScans("none left", status_code=403)
        assert error.remaining_scans == 0
        assert error.details["remaining_scans"] == 0
        assert error.code == "SCAN_001"

    def test_configuration_error_not_recoverable(self):
        error = ConfigurationError("bad", config_key="timeout")
        assert not error.recoverable
        assert "timeout" in str(error)


class TestUserMessages:
    """Every error kind has a sentence for the user"""

    @pytest.mark.parametrize("error, fragment", [
        (NoConnectivity("x"), "No internet connection"),
        (ServerConnectionFailed("x"), "Could not reach"),
        (EmailAlreadyExists("x"), "Email already exists"),
        (InvalidInput("x"), "Invalid data"),
        (ValidationError("x"), "rejected"),
        (InsufficientScans("x"), "free scans"),
        (SessionExpired("x"), "session has expired"),
    ])
    def test_specific_messages(self, error, fragment):
        assert fragment in user_message(error)

    def test_unknown_exception(self):
        assert user_message(RuntimeError("boom")) == "Something went wrong. Please try again."

    def test_handle_error_returns_message(self):
        assert handle_error(NetworkUnreachable("down")).startswith("Network error")

    def test_handle_error_override(self):
        assert handle_error(NetworkUnreachable("down"), user_message_override="Nope") == "Nope"

