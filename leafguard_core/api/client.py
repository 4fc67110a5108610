"""
LeafGuard API Client
Single point of outbound communication with the LeafGuard backend
"""
from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

import requests

from leafguard_core.errors import (
    AccountNotFound,
    EmailAlreadyExists,
    InsufficientScans,
    InvalidCredentials,
    InvalidInput,
    NotFound,
    ServerError,
    SessionExpired,
    ValidationError,
)
from leafguard_core.logging import get_logger

from .config import ClientConfig
from .models import (
    DetectionResult,
    SavedScan,
    ScanInput,
    Session,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionRecord,
    UserProfile,
)
from .pipeline import RequestContext, attach_auth, classify_error, should_retry

if TYPE_CHECKING:
    from leafguard_core.offline.credential_store import CredentialStore

logger = get_logger(__name__)


ALLOWED_IMAGE_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/webp": (".webp",),
}
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _unwrap(body: Any) -> Any:
    """Most endpoints answer {"success": true, "data": ...}; some answer the payload directly"""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class LeafGuardClient:
    """
    HTTP client for the LeafGuard REST API.

    Construct one per application and pass it to whoever needs it:

        store = CredentialStore(config.db_path)
        client = LeafGuardClient(config, store)
        orchestrator = AuthOrchestrator(client, store, connection_manager)

    Every call reads the bearer token from the credential store at dispatch
    time, retries transport failures and 5xx responses config.max_retries
    times after the first attempt, clears the token on any 401, and raises a
    classified ApiError on failure.
    """

    def __init__(
        self,
        config: ClientConfig,
        credential_store: CredentialStore,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.credential_store = credential_store
        self.session = session or requests.Session()
        self._sleep = sleep

        # Content-Type is set per request (json= or files=)
        self.session.headers.update(
            {k: v for k, v in config.headers.items() if k.lower() != "content-type"}
        )

        self._base_url = (credential_store.get_base_url() or config.base_url).rstrip("/")

    # =========================================================================
    # BASE URL
    # =========================================================================

    @property
    def base_url(self) -> str:
        return self._base_url

    def update_base_url(self, new_base_url: str) -> None:
        """Point subsequent calls at another deployment; in-flight calls keep their URL."""
        new_base_url = new_base_url.rstrip("/")
        if not new_base_url.startswith(("http://", "https://")):
            raise ValidationError(f"Base URL must be an http(s) URL, got {new_base_url!r}")
        self._base_url = new_base_url
        self.credential_store.set_base_url(new_base_url)
        logger.info(f"API base URL changed to {new_base_url}")

    def reset_base_url(self) -> None:
        """Go back to the configured default base URL."""
        self._base_url = self.config.base_url.rstrip("/")
        self.credential_store.clear_base_url()
        logger.info(f"API base URL reset to {self._base_url}")

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Make an HTTP request through the auth/classify/retry pipeline

        Args:
            method: HTTP method (GET, POST, PUT)
            endpoint: Path appended to the base URL, e.g. "/auth/login"
            json: JSON request body
            files: Multipart files for upload endpoints
            params: Query parameters

        Returns:
            A successful (2xx/3xx) response

        Raises:
            ApiError subclass describing the final failure
        """
        context = RequestContext(
            method=method,
            endpoint=endpoint,
            url=f"{self._base_url}{endpoint}",
            max_retries=self.config.max_retries,
        )

        while True:
            headers = attach_auth(None, self.credential_store.get_token())
            if files is not None:
                # let requests write the multipart boundary
                headers["Content-Type"] = None

            try:
                response = self.session.request(
                    method=method,
                    url=context.url,
                    headers=headers,
                    json=json,
                    files=files,
                    params=params,
                    timeout=self.config.timeout,
                )
            except requests.exceptions.RequestException as e:
                error = classify_error(context, exception=e)
            else:
                if response.ok:
                    if context.attempt > 1:
                        logger.info(
                            f"{method} {endpoint} succeeded on attempt {context.attempt}"
                        )
                    return response
                error = classify_error(context, response=response)

            if isinstance(error, SessionExpired):
                self.credential_store.clear_token()
                logger.warning(f"{method} {endpoint} returned 401; cached token cleared")
                raise error

            if not should_retry(context, error):
                logger.warning(
                    f"{method} {endpoint} failed after {context.attempt} attempt(s): {error.message}"
                )
                raise error

            logger.info(
                f"{method} {endpoint} attempt {context.attempt}/{context.max_retries + 1} "
                f"failed ({error.__class__.__name__}); retrying in {self.config.retry_delay}s"
            )
            self._sleep(self.config.retry_delay)
            context = context.next_attempt()

    def _json(self, response: requests.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError:
            raise ServerError("Response body is not valid JSON", endpoint=endpoint,
                              status_code=response.status_code)

    # =========================================================================
    # HEALTH
    # =========================================================================

    def health_check(self) -> bool:
        """True when GET /health answers 2xx. Never raises; a single probe, no retries."""
        try:
            response = self.session.get(
                f"{self._base_url}/health", timeout=self.config.timeout
            )
            return response.ok
        except requests.exceptions.RequestException as e:
            logger.debug(f"Health check failed: {e}")
            return False

    # =========================================================================
    # AUTH
    # =========================================================================

    def login(self, email: str, password: str) -> Session:
        endpoint = "/auth/login"
        try:
            response = self._request("POST", endpoint, json={"email": email, "password": password})
        except SessionExpired as e:
            raise InvalidCredentials(
                "Invalid email or password", status_code=401, endpoint=endpoint
            ) from e
        except NotFound as e:
            raise AccountNotFound("User not found", status_code=404, endpoint=endpoint) from e
        return Session.from_auth_response(self._json(response, endpoint), endpoint)

    def register(
        self, name: str, email: str, password: str, role: Optional[str] = None
    ) -> Session:
        endpoint = "/auth/register"
        payload = {"name": name, "email": email, "password": password}
        if role:
            payload["role"] = role
        try:
            response = self._request("POST", endpoint, json=payload)
        except ValidationError as e:
            # The backend answers 400 "User already exists"; newer builds use 409
            if e.status_code == 409 or "exist" in e.message.lower():
                raise EmailAlreadyExists(
                    "Email already exists", status_code=e.status_code, endpoint=endpoint
                ) from e
            raise InvalidInput(
                e.message or "Invalid registration data",
                status_code=e.status_code,
                endpoint=endpoint,
            ) from e
        return Session.from_auth_response(self._json(response, endpoint), endpoint)

    def forgot_password(self, email: str) -> None:
        """
        Request a password reset link.

        The server answers 200 whether or not the account exists; a 404 from
        an older deployment is treated the same way so callers can never
        learn whether an email is registered.
        """
        try:
            self._request("POST", "/auth/forgot-password", json={"email": email})
        except NotFound:
            logger.debug("forgot-password returned 404; reported as sent")

    # =========================================================================
    # DISEASE DETECTION & SCANS
    # =========================================================================

    def detect_disease(
        self,
        image_bytes: bytes,
        filename: str = "plant.jpg",
        content_type: str = "image/jpeg",
    ) -> DetectionResult:
        """
        Upload a plant photo and get the detected disease.

        Raises:
            ValidationError: empty image, unsupported type or over 10 MB
            InsufficientScans: the server refused because no free scans remain
        """
        endpoint = "/plants/predict"
        self._validate_image(image_bytes, filename, content_type)

        try:
            response = self._request(
                "POST", endpoint, files={"image": (filename, image_bytes, content_type)}
            )
        except ValidationError as e:
            if e.status_code == 403:
                raise InsufficientScans(
                    "No free scans remaining", remaining_scans=0,
                    status_code=403, endpoint=endpoint,
                ) from e
            raise
        return DetectionResult.from_dict(self._json(response, endpoint), endpoint)

    @staticmethod
    def _validate_image(image_bytes: bytes, filename: str, content_type: str) -> None:
        if not image_bytes:
            raise ValidationError("Image is empty", endpoint="/plants/predict")
        extensions = ALLOWED_IMAGE_TYPES.get(content_type)
        if extensions is None:
            raise ValidationError(
                f"Unsupported image type {content_type!r}; use JPEG, PNG or WebP",
                endpoint="/plants/predict",
            )
        if not filename.lower().endswith(extensions):
            raise ValidationError(
                f"File name {filename!r} does not match {content_type}",
                endpoint="/plants/predict",
            )
        if len(image_bytes) > MAX_IMAGE_BYTES:
            raise ValidationError(
                f"Image is {len(image_bytes)} bytes; the limit is {MAX_IMAGE_BYTES}",
                endpoint="/plants/predict",
            )

    def save_scan(self, scan: ScanInput) -> SavedScan:
        endpoint = "/plants/scans"
        response = self._request("POST", endpoint, json=scan.to_dict())
        return SavedScan.from_dict(_unwrap(self._json(response, endpoint)), endpoint)

    def get_recent_scans(self) -> List[SavedScan]:
        endpoint = "/plants/scans"
        response = self._request("GET", endpoint)
        return [
            SavedScan.from_dict(item, endpoint)
            for item in _unwrap(self._json(response, endpoint)) or []
        ]

    def get_disease_catalog(self) -> List[Dict[str, Any]]:
        endpoint = "/plants/diseases"
        response = self._request("GET", endpoint)
        return list(_unwrap(self._json(response, endpoint)) or [])

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def get_subscription_plans(self) -> List[SubscriptionPlan]:
        endpoint = "/subscriptions/plans"
        response = self._request("GET", endpoint)
        return [
            SubscriptionPlan.from_dict(item, endpoint)
            for item in _unwrap(self._json(response, endpoint)) or []
        ]

    def subscribe_to_plan(self, plan_id: str, payment_id: str) -> SubscriptionStatus:
        endpoint = "/subscriptions/subscribe"
        response = self._request(
            "POST", endpoint, json={"planId": plan_id, "paymentId": payment_id}
        )
        data = _unwrap(self._json(response, endpoint)) or {}
        user = data.get("user", {})
        record = data.get("subscription")
        return SubscriptionStatus(
            is_subscribed=bool(user.get("isSubscribed", True)),
            remaining_free_scans=user.get("remainingFreeScans"),
            subscription=SubscriptionRecord.from_dict(record) if record else None,
        )

    def get_subscription_status(self) -> SubscriptionStatus:
        endpoint = "/subscriptions/status"
        response = self._request("GET", endpoint)
        return SubscriptionStatus.from_dict(_unwrap(self._json(response, endpoint)) or {})

    def cancel_subscription(self) -> SubscriptionStatus:
        endpoint = "/subscriptions/cancel"
        response = self._request("POST", endpoint)
        return SubscriptionStatus.from_dict(_unwrap(self._json(response, endpoint)) or {})

    # =========================================================================
    # PROFILE
    # =========================================================================

    def get_user_profile(self) -> UserProfile:
        endpoint = "/users"
        response = self._request("GET", endpoint)
        return UserProfile.from_dict(_unwrap(self._json(response, endpoint)), endpoint)

    def update_user_profile(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> UserProfile:
        endpoint = "/users"
        payload = {
            key: value
            for key, value in (("name", name), ("email", email), ("password", password))
            if value is not None
        }
        if not payload:
            raise InvalidInput("Nothing to update", endpoint=endpoint)
        try:
            response = self._request("PUT", endpoint, json=payload)
        except ValidationError as e:
            if e.status_code == 400:
                raise InvalidInput(e.message, status_code=400, endpoint=endpoint) from e
            raise
        return UserProfile.from_dict(_unwrap(self._json(response, endpoint)), endpoint)

    def get_user_scans(self) -> List[SavedScan]:
        endpoint = "/users/scans"
        response = self._request("GET", endpoint)
        return [
            SavedScan.from_dict(item, endpoint)
            for item in _unwrap(self._json(response, endpoint)) or []
        ]
