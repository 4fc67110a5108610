# =============================================================================
# leafguard_core/errors/handlers.py
# Error Handling Utilities for the LeafGuard client
# =============================================================================

from __future__ import annotations
from typing import Optional, Dict, Type

from leafguard_core.logging import get_logger
from .exceptions import (
    LeafGuardError,
    NetworkUnreachable,
    SessionExpired,
    NotFound,
    ServerError,
    ValidationError,
    UnknownApiError,
    InvalidCredentials,
    AccountNotFound,
    EmailAlreadyExists,
    InvalidInput,
    InsufficientScans,
    NoConnectivity,
    ServerConnectionFailed,
    ConfigurationError,
)

logger = get_logger(__name__)

# Most specific first: user_message() walks this in order.
USER_MESSAGES: Dict[Type[Exception], str] = {
    NoConnectivity: (
        "No internet connection. Use the default account or try again later."
    ),
    ServerConnectionFailed: (
        "Could not reach the LeafGuard server. Please try again later."
    ),
    InvalidCredentials: "Invalid email or password.",
    AccountNotFound: "User not found.",
    EmailAlreadyExists: "Email already exists. Please use a different email.",
    InsufficientScans: (
        "You have used all your free scans. Subscribe to continue scanning."
    ),
    InvalidInput: "Invalid data. Please check the form and try again.",
    SessionExpired: "Your session has expired. Please log in again.",
    NetworkUnreachable: "Network error. Please check your internet connection.",
    NotFound: "The requested resource was not found.",
    ValidationError: "The request was rejected. Please check your input.",
    ServerError: "Server error. Please try again later.",
    UnknownApiError: "Something went wrong. Please try again.",
    ConfigurationError: "The app is misconfigured. Please contact support.",
}


def user_message(error: Exception) -> str:
    """
    Map any error to the sentence a screen should show the user.

    Args:
        error: The exception to describe

    Returns:
        A short user-facing message
    """
    for error_type, message in USER_MESSAGES.items():
        if isinstance(error, error_type):
            return message
    return "Something went wrong. Please try again."


def handle_error(
    error: Exception,
    log_error: bool = True,
    user_message_override: Optional[str] = None,
) -> str:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        log_error: Whether to log the error
        user_message_override: Custom message (uses the mapped message if None)

    Returns:
        The user-facing message for the error
    """
    message = user_message_override or user_message(error)

    if isinstance(error, LeafGuardError):
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        code = "UNKNOWN"
        details = {}
        recoverable = True

    if log_error:
        if recoverable:
            logger.warning(f"[{code}] {error}", extra={"details": details})
        else:
            logger.error(f"[{code}] {error}", extra={"details": details}, exc_info=True)

    return message

