"""
Request Pipeline
Pure functions composed around every transport call made by LeafGuardClient:
attach_auth -> transport -> classify_error -> should_retry
"""
from dataclasses import dataclass, replace
from typing import Dict, Optional

import requests

from leafguard_core.errors import (
    ApiError,
    NetworkUnreachable,
    SessionExpired,
    NotFound,
    ServerError,
    ValidationError,
    UnknownApiError,
)


@dataclass(frozen=True)
class RequestContext:
    """Per-call state threaded through the retry loop (attempt 1 is the first try)"""
    method: str
    endpoint: str
    url: str
    max_retries: int
    attempt: int = 1

    @property
    def attempts_left(self) -> int:
        return self.max_retries - self.attempt + 1

    def next_attempt(self) -> "RequestContext":
        return replace(self, attempt=self.attempt + 1)


def attach_auth(headers: Optional[Dict[str, str]], token: Optional[str]) -> Dict[str, str]:
    """
    Return a copy of headers carrying the bearer token, if there is one.

    A missing token is not an error: public endpoints are called without it.
    """
    result = dict(headers or {})
    if token:
        result["Authorization"] = f"Bearer {token}"
    else:
        result.pop("Authorization", None)
    return result


def response_message(response: requests.Response) -> Optional[str]:
    """Extract the server's 'message' field from an error body, if any"""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        return str(message) if message else None
    return None


def classify_error(
    context: RequestContext,
    response: Optional[requests.Response] = None,
    exception: Optional[BaseException] = None,
) -> ApiError:
    """
    Map a failed call onto exactly one transport error class.

    Args:
        context: The request that failed
        response: The HTTP response, when one was received
        exception: The transport exception, when no response was received

    Returns:
        NetworkUnreachable, SessionExpired, NotFound, ServerError,
        ValidationError or UnknownApiError
    """
    common = {"endpoint": context.endpoint, "attempts": context.attempt}

    if response is None:
        if exception is None or isinstance(exception, requests.exceptions.RequestException):
            reason = str(exception) if exception else "no response"
            return NetworkUnreachable(
                f"No response from {context.method} {context.endpoint}: {reason}",
                **common,
            )
        return UnknownApiError(
            f"{context.method} {context.endpoint} failed: {exception}", **common
        )

    status = response.status_code
    message = response_message(response) or response.reason or f"HTTP {status}"
    common["status_code"] = status

    if status == 401:
        return SessionExpired(message, **common)
    if status == 404:
        return NotFound(message, **common)
    if 500 <= status <= 599:
        return ServerError(message, **common)
    if 400 <= status <= 499:
        return ValidationError(message, **common)
    return UnknownApiError(f"Unexpected status {status}: {message}", **common)


def should_retry(context: RequestContext, error: ApiError) -> bool:
    """
    Retry only when nothing came back or the server failed (5xx),
    and only while attempts remain. Never retry a 4xx.
    """
    if context.attempts_left <= 0:
        return False
    if isinstance(error, NetworkUnreachable):
        return True
    return isinstance(error, ServerError) and error.status_code is not None
