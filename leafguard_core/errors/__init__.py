# =============================================================================
# leafguard_core/errors/__init__.py
# Centralized Error Handling for the LeafGuard client
# =============================================================================

from .exceptions import (
    LeafGuardError,
    ApiError,
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

from .handlers import (
    handle_error,
    user_message,
)

__all__ = [
    # Exceptions
    "LeafGuardError",
    "ApiError",
    "NetworkUnreachable",
    "SessionExpired",
    "NotFound",
    "ServerError",
    "ValidationError",
    "UnknownApiError",
    "InvalidCredentials",
    "AccountNotFound",
    "EmailAlreadyExists",
    "InvalidInput",
    "InsufficientScans",
    "NoConnectivity",
    "ServerConnectionFailed",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "user_message",
]
