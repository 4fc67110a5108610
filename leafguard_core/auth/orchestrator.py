"""
Auth Orchestrator for the LeafGuard client.

Combines the HTTP client, the credential store and the network monitor into
the login / registration / session lifecycle, including the offline
fallback paths:

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED
                                      -> AUTHENTICATED_OFFLINE

Login order:
    1. the built-in default pair logs in offline, no network involved
    2. a remembered pair with a cached profile logs in offline
    3. the network monitor is queried; no connectivity -> NoConnectivity
    4. the server decides; on success the session and the offline pair
       are persisted. An unreachable server -> ServerConnectionFailed
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, TypeVar

from leafguard_core.api.client import LeafGuardClient
from leafguard_core.api.models import Session, SubscriptionStatus, UserProfile
from leafguard_core.errors import (
    InvalidInput,
    NetworkUnreachable,
    NoConnectivity,
    ServerConnectionFailed,
    SessionExpired,
)
from leafguard_core.logging import get_logger
from leafguard_core.offline.connection_manager import ConnectionManager
from leafguard_core.offline.credential_store import CredentialStore

from .credentials import (
    DefaultCredentials,
    default_profile,
    make_offline_credentials,
    normalize_email,
    offline_credentials_match,
)

logger = get_logger(__name__)

T = TypeVar("T")


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    AUTHENTICATED_OFFLINE = "authenticated_offline"


AuthListener = Callable[[AuthState, AuthState], None]


class AuthOrchestrator:
    """
    Owns the session and is the only writer of the token / profile /
    offline-credential triplet in the credential store.

    Usage:
        auth = AuthOrchestrator(client, store, monitor)
        auth.restore_session()
        session = auth.login(email, password)
        auth.update_remaining_scans(result.remaining_scans)
        auth.logout()
    """

    def __init__(
        self,
        client: LeafGuardClient,
        credential_store: CredentialStore,
        connection_manager: ConnectionManager,
        default_credentials: Optional[DefaultCredentials] = DefaultCredentials(),
    ):
        """
        Args:
            client: The shared HTTP client
            credential_store: Persistent credential cache
            connection_manager: Network monitor
            default_credentials: Built-in offline account; None disables it
        """
        self.client = client
        self.credential_store = credential_store
        self.connection_manager = connection_manager
        self.default_credentials = default_credentials

        self._state = AuthState.UNAUTHENTICATED
        self._session: Optional[Session] = None
        self._listeners: List[AuthListener] = []

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[UserProfile]:
        return self._session.profile if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._state in (AuthState.AUTHENTICATED, AuthState.AUTHENTICATED_OFFLINE)

    @property
    def is_offline_session(self) -> bool:
        return self._state == AuthState.AUTHENTICATED_OFFLINE

    def add_listener(self, listener: AuthListener) -> None:
        """Register a callback receiving (old_state, new_state) on every transition."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: AuthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _transition(self, new_state: AuthState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        logger.info(f"Auth state: {old_state.value} -> {new_state.value}")
        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Error in auth listener: {e}")

    def _set_online_session(self, session: Session) -> Session:
        self._session = session
        self._transition(AuthState.AUTHENTICATED)
        return session

    def _set_offline_session(self, profile: UserProfile) -> Session:
        session = Session(profile=profile, offline=True)
        self._session = session
        # Profile only: the sentinel token is never sent as a bearer token
        self.credential_store.clear_token()
        self.credential_store.set_user(profile)
        self._transition(AuthState.AUTHENTICATED_OFFLINE)
        return session

    def _is_connected(self) -> bool:
        self.connection_manager.check_connection()
        return self.connection_manager.is_connected

    def restore_session(self) -> AuthState:
        """
        Rebuild the session from the credential store at start-up.

        token + profile -> AUTHENTICATED, profile only -> AUTHENTICATED_OFFLINE,
        nothing -> UNAUTHENTICATED.
        """
        token = self.credential_store.get_token()
        profile = self.credential_store.get_user()

        if profile is None:
            if token:
                self.credential_store.clear_token()
            self._session = None
            self._transition(AuthState.UNAUTHENTICATED)
        elif token:
            self._set_online_session(Session(token=token, profile=profile))
        else:
            self._session = Session(profile=profile, offline=True)
            self._transition(AuthState.AUTHENTICATED_OFFLINE)

        return self._state

    # =========================================================================
    # LOGIN / REGISTER / LOGOUT
    # =========================================================================

    def login(self, email: str, password: str) -> Session:
        """
        Log in, online or through one of the offline paths.

        The built-in account and a remembered pair never touch the network;
        connectivity is probed only before the online call.

        Raises:
            InvalidInput: blank email or password
            NoConnectivity: no network and no offline pair matched
            ServerConnectionFailed: online, but the server could not be reached
            ServerError: the server kept failing with 5xx
            InvalidCredentials / AccountNotFound: rejected by the server
        """
        if not normalize_email(email) or not password:
            raise InvalidInput("Email and password are required")

        self._transition(AuthState.AUTHENTICATING)
        try:
            return self._login(email, password)
        except Exception:
            self._session = None
            self._transition(AuthState.UNAUTHENTICATED)
            raise

    def _login(self, email: str, password: str) -> Session:
        if self.default_credentials and self.default_credentials.matches(email, password):
            logger.info("Built-in account used; logging in offline")
            return self._set_offline_session(default_profile())

        stored = self.credential_store.get_offline_credentials()
        profile = (stored.profile if stored else None) or self.credential_store.get_user()
        if (
            profile is not None
            and normalize_email(profile.email) == normalize_email(email)
            and offline_credentials_match(stored, email, password)
        ):
            logger.info("Remembered credentials matched; logging in offline")
            return self._set_offline_session(profile)

        if not self._is_connected():
            raise NoConnectivity(
                "No internet connection. Use the default account or try again later."
            )

        try:
            session = self.client.login(email, password)
        except NetworkUnreachable as e:
            raise ServerConnectionFailed(
                "Could not reach the LeafGuard server", endpoint=e.endpoint
            ) from e

        self.credential_store.save_session(session.token, session.profile)
        self.credential_store.set_offline_credentials(
            make_offline_credentials(email, password, session.profile)
        )
        logger.info("Logged in online; offline credentials remembered")
        return self._set_online_session(session)

    def register(
        self, name: str, email: str, password: str, role: Optional[str] = None
    ) -> Session:
        """
        Create an account. Requires connectivity; there is no offline path.

        Raises:
            NoConnectivity, EmailAlreadyExists, InvalidInput, NetworkUnreachable, ServerError
        """
        if not name or not normalize_email(email) or not password:
            raise InvalidInput("Name, email and password are required")
        if not self._is_connected():
            raise NoConnectivity("Registration needs an internet connection.")

        self._transition(AuthState.AUTHENTICATING)
        try:
            session = self.client.register(name, email, password, role)
        except Exception:
            self._session = None
            self._transition(AuthState.UNAUTHENTICATED)
            raise

        self.credential_store.save_session(session.token, session.profile)
        return self._set_online_session(session)

    def forgot_password(self, email: str) -> None:
        """Ask the server to send a reset link; never reveals whether the account exists."""
        if not normalize_email(email):
            raise InvalidInput("Email is required")
        self._online(lambda: self.client.forgot_password(email))

    def logout(self) -> None:
        """
        Forget the token and profile. The remembered offline pair is kept so
        the next login can still work without a network.
        """
        self.credential_store.clear_session()
        self._session = None
        self._transition(AuthState.UNAUTHENTICATED)

    def handle_session_expired(self) -> AuthState:
        """
        React to a 401 from any endpoint (the client has already dropped the token).

        Without connectivity, a user with a remembered offline pair keeps
        working in AUTHENTICATED_OFFLINE; otherwise the session is closed and
        the user must log in again.
        """
        profile = self.user
        stored = self.credential_store.get_offline_credentials()
        if (
            profile is not None
            and stored is not None
            and normalize_email(stored.email) == normalize_email(profile.email)
            and not self._is_connected()
        ):
            logger.info("Session expired while offline; continuing offline")
            self._set_offline_session(profile)
        else:
            logger.info("Session expired; re-login required")
            self.logout()
        return self._state

    # =========================================================================
    # PROFILE & SUBSCRIPTION
    # =========================================================================

    def _online(self, operation: Callable[[], T]) -> T:
        """Run an operation that needs the server; no offline fallback."""
        if not self._is_connected():
            raise NoConnectivity("This action needs an internet connection.")
        try:
            return operation()
        except SessionExpired:
            self.handle_session_expired()
            raise

    def _store_profile(self, profile: UserProfile) -> UserProfile:
        if self._session is None:
            return profile
        self._session.profile = profile
        self.credential_store.set_user(profile)
        return profile

    def update_remaining_scans(self, remaining: int) -> None:
        """
        Record the server-reported scan count locally. Never talks to the network.
        """
        if remaining < 0:
            raise ValueError("Remaining scans cannot be negative")
        profile = self.user
        if profile is None:
            return
        profile.remaining_free_scans = remaining
        self.credential_store.set_user(profile)

    def refresh_profile(self) -> UserProfile:
        """Re-read the profile from the server."""
        return self._store_profile(self._online(self.client.get_user_profile))

    def update_profile(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> UserProfile:
        profile = self._online(lambda: self.client.update_user_profile(name, email, password))
        return self._store_profile(profile)

    def subscribe(self, plan_id: str, payment_id: str) -> SubscriptionStatus:
        status = self._online(lambda: self.client.subscribe_to_plan(plan_id, payment_id))
        self._apply_subscription(status)
        return status

    def cancel_subscription(self) -> SubscriptionStatus:
        status = self._online(self.client.cancel_subscription)
        self._apply_subscription(status)
        return status

    def _apply_subscription(self, status: SubscriptionStatus) -> None:
        profile = self.user
        if profile is None:
            return
        profile.is_subscribed = status.is_subscribed
        if status.remaining_free_scans is not None:
            profile.remaining_free_scans = status.remaining_free_scans
        self.credential_store.set_user(profile)
