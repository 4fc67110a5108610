# =============================================================================
# leafguard_core/errors/exceptions.py
# Custom Exception Hierarchy for the LeafGuard client
# =============================================================================

from typing import Optional, Dict, Any


class LeafGuardError(Exception):
    """
    Base exception for all LeafGuard client errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "AUTH_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "LG_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# TRANSPORT CLASSIFICATION
# Every failed HTTP call ends up as exactly one of these.
# =============================================================================

class ApiError(LeafGuardError):
    """Base class for classified HTTP failures"""

    default_code = "API_000"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        attempts: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status_code is not None:
            details["status_code"] = status_code
        if endpoint:
            details["endpoint"] = endpoint
        if attempts is not None:
            details["attempts"] = attempts

        kwargs.setdefault("code", self.default_code)
        super().__init__(message=message, details=details, **kwargs)
        self.status_code = status_code
        self.endpoint = endpoint
        self.attempts = attempts


class NetworkUnreachable(ApiError):
    """No response at all: connection refused, DNS failure or timeout"""

    default_code = "NET_001"


class SessionExpired(ApiError):
    """The server answered 401; the cached token has been discarded"""

    default_code = "AUTH_001"


class NotFound(ApiError):
    """The server answered 404"""

    default_code = "API_404"


class ServerError(ApiError):
    """The server answered 5xx (after retries) or sent an unusable body"""

    default_code = "API_500"


class ValidationError(ApiError):
    """The request was rejected (4xx other than 401/404) or failed local checks"""

    default_code = "API_400"


class UnknownApiError(ApiError):
    """Anything that fits none of the other transport categories"""

    default_code = "API_999"


# =============================================================================
# CALLER-FACING ERRORS
# Raised by typed operations and the auth orchestrator.
# =============================================================================

class InvalidCredentials(ApiError):
    """Login rejected: wrong email or password"""

    default_code = "AUTH_002"


class AccountNotFound(ApiError):
    """No account exists for the given email"""

    default_code = "AUTH_003"


class EmailAlreadyExists(ValidationError):
    """Registration rejected because the email is taken"""

    default_code = "AUTH_004"


class InvalidInput(ValidationError):
    """Registration or profile data rejected by the server"""

    default_code = "INPUT_001"


class InsufficientScans(ApiError):
    """The free scan quota is exhausted and the user is not subscribed"""

    default_code = "SCAN_001"

    def __init__(self, message: str, remaining_scans: int = 0, **kwargs):
        details = kwargs.pop("details", {})
        details["remaining_scans"] = remaining_scans
        super().__init__(message=message, details=details, **kwargs)
        self.remaining_scans = remaining_scans


class NoConnectivity(LeafGuardError):
    """The device reports no network and no offline login path matched"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="CONN_001", **kwargs)


class ServerConnectionFailed(LeafGuardError):
    """The device is online but the backend could not be reached"""

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(message=message, code="CONN_002", details=details, **kwargs)


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(LeafGuardError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
