# =============================================================================
# leafguard_core/services/base_service.py
# Base Service: server calls on behalf of the signed-in user
# =============================================================================

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable

from leafguard_core.api.client import LeafGuardClient
from leafguard_core.auth.orchestrator import AuthOrchestrator, AuthState
from leafguard_core.errors import (
    LeafGuardError,
    NoConnectivity,
    SessionExpired,
    handle_error,
    user_message,
)
from leafguard_core.logging import get_logger, LogContext


@dataclass
class ServiceResult:
    """
    What a screen gets back from a service call.

    On failure `error` is the sentence to show, `error_code` the
    LeafGuardError code and `recoverable` whether retrying can help.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    recoverable: bool = True
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def from_error(cls, error: LeafGuardError) -> ServiceResult:
        return cls(
            success=False,
            error=user_message(error),
            error_code=error.code,
            recoverable=error.recoverable,
            metadata=error.details,
        )


class BaseService(ABC):
    """
    Shared plumbing for services that talk to the LeafGuard server.

    Classified errors never escape a service: they come back as a failed
    ServiceResult. A 401 is reported to the orchestrator so the session is
    closed (or continued offline) before the result is returned. Anything
    that is not a LeafGuardError is a bug and propagates.

    Usage:
        class ScanService(BaseService):
            def recent_scans(self) -> ServiceResult:
                return self.safe_execute("Loading recent scans", self._recent)
    """

    offline_message = "This action needs a connection to the LeafGuard server."

    def __init__(self, client: LeafGuardClient, auth: AuthOrchestrator):
        self.client = client
        self.auth = auth
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)

    def require_server_session(self) -> None:
        """Offline sessions carry no bearer token; the server would answer 401."""
        if self.auth.is_offline_session:
            raise NoConnectivity(self.offline_message)

    def fail(self, error: LeafGuardError) -> ServiceResult:
        """Log a classified error, settle a 401 with the orchestrator, build the result."""
        # The orchestrator settles its own 401s, leaving the state non-AUTHENTICATED
        if isinstance(error, SessionExpired) and self.auth.state == AuthState.AUTHENTICATED:
            self.auth.handle_session_expired()
        handle_error(error)
        return ServiceResult.from_error(error)

    def safe_execute(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        **kwargs
    ) -> ServiceResult:
        """
        Run func inside a timed log context.

        Returns:
            func's own ServiceResult, ServiceResult.ok(value) for any other
            return value, or a failed ServiceResult for a LeafGuardError
        """
        with self.log_operation(operation):
            try:
                result = func(*args, **kwargs)
            except LeafGuardError as e:
                return self.fail(e)
        if isinstance(result, ServiceResult):
            return result
        return ServiceResult.ok(result)
