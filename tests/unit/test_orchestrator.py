# =============================================================================
# tests/unit/test_orchestrator.py
# Unit Tests for AuthOrchestrator
# =============================================================================

import pytest
import requests

from conftest import auth_body, make_response
from leafguard_core.api.models import SubscriptionStatus
from leafguard_core.auth import (
    DEFAULT_EMAIL,
    DEFAULT_PASSWORD,
    AuthOrchestrator,
    AuthState,
    verify_password,
)
from leafguard_core.errors import (
    AccountNotFound,
    EmailAlreadyExists,
    InvalidCredentials,
    InvalidInput,
    NoConnectivity,
    ServerConnectionFailed,
    ServerError,
    SessionExpired,
)
from leafguard_core.offline import ConnectionManager


@pytest.fixture
def transitions(auth):
    seen = []
    auth.add_listener(lambda old, new: seen.append((old, new)))
    return seen


def _login_online(auth, http, password="secret", **body):
    http.request.return_value = make_response(200, auth_body(**body))
    return auth.login("ada@farm.test", password)


class TestDefaultAccount:
    """The built-in pair always works, without calling the API"""

    def test_logs_in_offline_without_api_call(self, auth, http, internet):
        session = auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)

        assert auth.state == AuthState.AUTHENTICATED_OFFLINE
        assert session.offline
        assert not session.has_bearer_token
        assert session.profile.email == DEFAULT_EMAIL
        assert session.profile.remaining_free_scans == 3
        http.request.assert_not_called()
        assert internet.calls == 0

    def test_works_with_no_connectivity(self, auth, internet):
        internet.value = False

        auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)

        assert auth.state == AuthState.AUTHENTICATED_OFFLINE

    def test_token_never_persisted(self, auth, store):
        auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)

        assert store.get_token() is None
        assert store.get_user().email == DEFAULT_EMAIL

    def test_email_case_and_whitespace_ignored(self, auth):
        auth.login("  User@LeafGuard.com ", DEFAULT_PASSWORD)
        assert auth.is_offline_session

    def test_wrong_password_goes_to_server(self, auth, http):
        http.request.return_value = make_response(401, {"message": "Invalid credentials"})

        with pytest.raises(InvalidCredentials):
            auth.login(DEFAULT_EMAIL, "not-the-password")
        assert http.request.call_count == 1

    def test_can_be_disabled(self, client, store, monitor, internet):
        auth = AuthOrchestrator(client, store, monitor, default_credentials=None)
        internet.value = False

        with pytest.raises(NoConnectivity):
            auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)


class TestMonitorWiredToHealthCheck:
    """Monitor probing the backend through the client, as an application wires it"""

    @pytest.fixture
    def wired_auth(self, client, store, internet):
        monitor = ConnectionManager(backend_probe=client.health_check, internet_probe=internet)
        return AuthOrchestrator(client, store, monitor)

    def test_default_account_makes_no_network_calls(self, wired_auth, http, internet):
        wired_auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)

        assert wired_auth.state == AuthState.AUTHENTICATED_OFFLINE
        assert internet.calls == 0
        http.get.assert_not_called()
        http.request.assert_not_called()

    def test_remembered_pair_makes_no_network_calls(self, wired_auth, http, internet):
        http.get.return_value = make_response(200, {"status": "ok"})
        _login_online(wired_auth, http)
        wired_auth.logout()
        http.get.reset_mock()
        http.request.reset_mock()
        probes = internet.calls

        wired_auth.login("ada@farm.test", "secret")

        assert wired_auth.is_offline_session
        assert internet.calls == probes
        http.get.assert_not_called()
        http.request.assert_not_called()

    def test_online_login_probes_backend_once(self, wired_auth, http, internet):
        http.get.return_value = make_response(200, {"status": "ok"})

        _login_online(wired_auth, http)

        assert wired_auth.state == AuthState.AUTHENTICATED
        assert internet.calls == 1
        assert http.get.call_count == 1


class TestOnlineLogin:
    """Server-decided login"""

    def test_success_persists_session_and_offline_credentials(self, auth, http, store):
        session = _login_online(auth, http)

        assert auth.state == AuthState.AUTHENTICATED
        assert session.token == "jwt-123"
        assert store.get_token() == "jwt-123"
        assert store.get_user().email == "ada@farm.test"

        stored = store.get_offline_credentials()
        assert stored.email == "ada@farm.test"
        assert stored.password_hash != "secret"
        assert verify_password("secret", stored.password_hash)
        assert stored.profile.name == "Ada Farmer"

    def test_transitions(self, auth, http, transitions):
        _login_online(auth, http)

        assert transitions == [
            (AuthState.UNAUTHENTICATED, AuthState.AUTHENTICATING),
            (AuthState.AUTHENTICATING, AuthState.AUTHENTICATED),
        ]

    @pytest.mark.parametrize("status, error", [
        (401, InvalidCredentials),
        (404, AccountNotFound),
    ])
    def test_rejection_stores_nothing(self, auth, http, store, transitions, status, error):
        http.request.return_value = make_response(status, {"message": "no"})

        with pytest.raises(error):
            auth.login("ada@farm.test", "wrong")

        assert auth.state == AuthState.UNAUTHENTICATED
        assert store.get_offline_credentials() is None
        assert store.get_token() is None
        assert transitions[-1] == (AuthState.AUTHENTICATING, AuthState.UNAUTHENTICATED)

    def test_unreachable_server_is_server_connection_failed(self, auth, http):
        http.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ServerConnectionFailed):
            auth.login("ada@farm.test", "secret")

        assert http.request.call_count == 4
        assert auth.state == AuthState.UNAUTHENTICATED

    def test_server_error_propagates(self, auth, http, store):
        http.request.return_value = make_response(500, {"message": "boom"})

        with pytest.raises(ServerError):
            auth.login("ada@farm.test", "secret")

        assert http.request.call_count == 4
        assert store.get_offline_credentials() is None
        assert auth.state == AuthState.UNAUTHENTICATED

    def test_response_without_token_remembers_nothing(self, auth, http, store):
        http.request.return_value = make_response(200, auth_body(token=None))

        with pytest.raises(ServerError):
            auth.login("ada@farm.test", "secret")

        assert store.get_offline_credentials() is None
        assert store.get_token() is None
        assert auth.state == AuthState.UNAUTHENTICATED

    def test_remembered_pair_used_before_server(self, auth, http, internet):
        _login_online(auth, http)
        auth.logout()
        http.request.return_value = make_response(503, {"message": "down"})
        probes = internet.calls

        auth.login("ada@farm.test", "secret")

        assert auth.state == AuthState.AUTHENTICATED_OFFLINE
        assert http.request.call_count == 1
        assert internet.calls == probes

    @pytest.mark.parametrize("email, password", [("", "secret"), ("ada@farm.test", ""), ("  ", "x")])
    def test_blank_input(self, auth, http, transitions, email, password):
        with pytest.raises(InvalidInput):
            auth.login(email, password)

        http.request.assert_not_called()
        assert transitions == []


class TestOfflineLogin:
    """Remembered credentials"""

    def test_remembered_credentials_work_offline(self, auth, http, store, internet):
        _login_online(auth, http)
        auth.logout()
        internet.value = False

        session = auth.login("ada@farm.test", "secret")

        assert auth.state == AuthState.AUTHENTICATED_OFFLINE
        assert session.profile.name == "Ada Farmer"
        assert http.request.call_count == 1
        assert store.get_token() is None

    def test_wrong_password_offline(self, auth, http, internet):
        _login_online(auth, http)
        auth.logout()
        internet.value = False

        with pytest.raises(NoConnectivity):
            auth.login("ada@farm.test", "guess")
        assert auth.state == AuthState.UNAUTHENTICATED

    def test_other_email_offline(self, auth, http, internet):
        _login_online(auth, http)
        auth.logout()
        internet.value = False

        with pytest.raises(NoConnectivity):
            auth.login("bob@farm.test", "secret")

    def test_nothing_remembered(self, auth, http, internet):
        internet.value = False

        with pytest.raises(NoConnectivity):
            auth.login("ada@farm.test", "secret")
        http.request.assert_not_called()


class TestRegister:
    """Account creation"""

    def test_success(self, auth, http, store):
        http.request.return_value = make_response(201, auth_body(token="fresh"))

        session = auth.register("Ada Farmer", "ada@farm.test", "secret")

        assert auth.state == AuthState.AUTHENTICATED
        assert session.token == "fresh"
        assert store.get_token() == "fresh"
        assert store.get_offline_credentials() is None

    def test_offline(self, auth, http, internet):
        internet.value = False

        with pytest.raises(NoConnectivity):
            auth.register("Ada", "ada@farm.test", "secret")
        http.request.assert_not_called()

    def test_duplicate(self, auth, http):
        http.request.return_value = make_response(400, {"message": "User already exists"})

        with pytest.raises(EmailAlreadyExists):
            auth.register("Ada", "ada@farm.test", "secret")
        assert auth.state == AuthState.UNAUTHENTICATED

    def test_missing_name(self, auth):
        with pytest.raises(InvalidInput):
            auth.register("", "ada@farm.test", "secret")


class TestLogout:
    """Logout clears the session but not the offline pair"""

    def test_logout(self, auth, http, store):
        _login_online(auth, http)

        auth.logout()

        assert auth.state == AuthState.UNAUTHENTICATED
        assert auth.user is None
        assert store.get_token() is None
        assert store.get_user() is None
        assert store.get_offline_credentials() is not None


class TestRemainingScans:
    """Local bookkeeping of the server-reported count"""

    def test_updates_profile_and_store(self, auth, http, store, internet):
        _login_online(auth, http)
        calls = http.request.call_count
        probes = internet.calls

        auth.update_remaining_scans(2)

        assert auth.user.remaining_free_scans == 2
        assert store.get_user().remaining_free_scans == 2
        assert http.request.call_count == calls
        assert internet.calls == probes

    def test_negative_rejected(self, auth):
        auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)
        with pytest.raises(ValueError):
            auth.update_remaining_scans(-1)

    def test_noop_when_logged_out(self, auth, store):
        auth.update_remaining_scans(1)
        assert store.get_user() is None


class TestRestoreSession:
    """Start-up from the credential store"""

    def test_token_and_profile(self, auth, store, profile):
        store.save_session("jwt-1", profile)
        assert auth.restore_session() == AuthState.AUTHENTICATED
        assert auth.session.token == "jwt-1"

    def test_profile_only(self, auth, store, profile):
        store.set_user(profile)
        assert auth.restore_session() == AuthState.AUTHENTICATED_OFFLINE
        assert not auth.session.has_bearer_token

    def test_token_without_profile_is_discarded(self, auth, store):
        store.set_token("orphan")
        assert auth.restore_session() == AuthState.UNAUTHENTICATED
        assert store.get_token() is None

    def test_empty(self, auth):
        assert auth.restore_session() == AuthState.UNAUTHENTICATED


class TestSessionExpiry:
    """401 handling at the orchestrator level"""

    def test_online_expiry_logs_out(self, auth, http, store):
        _login_online(auth, http)
        http.request.return_value = make_response(401, {"message": "Token expired"})

        with pytest.raises(SessionExpired):
            auth.refresh_profile()

        assert auth.state == AuthState.UNAUTHENTICATED
        assert store.get_user() is None

    def test_expiry_while_offline_keeps_offline_session(self, auth, http, internet):
        _login_online(auth, http)
        internet.value = False

        assert auth.handle_session_expired() == AuthState.AUTHENTICATED_OFFLINE
        assert auth.user.email == "ada@farm.test"


class TestProfileAndSubscription:
    """Operations that need the server"""

    def test_refresh_profile(self, auth, http, store):
        _login_online(auth, http)
        http.request.return_value = make_response(200, {"data": {
            "_id": "u1", "name": "Ada F.", "email": "ada@farm.test", "remainingFreeScans": 1,
        }})

        profile = auth.refresh_profile()

        assert profile.name == "Ada F."
        assert auth.user.remaining_free_scans == 1
        assert store.get_user().name == "Ada F."

    def test_update_profile(self, auth, http):
        _login_online(auth, http)
        http.request.return_value = make_response(200, {"data": {
            "_id": "u1", "name": "New Name", "email": "ada@farm.test",
        }})

        assert auth.update_profile(name="New Name").name == "New Name"
        assert auth.user.name == "New Name"

    def test_subscribe_updates_profile(self, auth, http, store):
        _login_online(auth, http)
        http.request.return_value = make_response(200, {"data": {
            "subscription": {"plan": "premium", "isActive": True},
            "user": {"isSubscribed": True, "remainingFreeScans": 5},
        }})

        status = auth.subscribe("premium", "pay_1")

        assert isinstance(status, SubscriptionStatus)
        assert auth.user.is_subscribed
        assert store.get_user().is_subscribed

    def test_cancel_subscription(self, auth, http):
        _login_online(auth, http, isSubscribed=True)
        http.request.return_value = make_response(200, {"data": {"isSubscribed": False}})

        auth.cancel_subscription()

        assert not auth.user.is_subscribed

    def test_needs_connectivity(self, auth, http, internet):
        _login_online(auth, http)
        internet.value = False

        with pytest.raises(NoConnectivity):
            auth.refresh_profile()

    def test_forgot_password(self, auth, http):
        http.request.return_value = make_response(200, {"message": "sent"})

        auth.forgot_password("ada@farm.test")

        assert http.request.call_args.kwargs["json"] == {"email": "ada@farm.test"}

    def test_forgot_password_offline(self, auth, internet):
        internet.value = False
        with pytest.raises(NoConnectivity):
            auth.forgot_password("ada@farm.test")


class TestListeners:
    """Observer registration"""

    def test_failing_listener_is_isolated(self, auth):
        seen = []

        def broken(old, new):
            raise RuntimeError("boom")

        auth.add_listener(broken)
        auth.add_listener(lambda old, new: seen.append(new))
        auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)

        assert seen == [AuthState.AUTHENTICATING, AuthState.AUTHENTICATED_OFFLINE]

    def test_remove_listener(self, auth):
        seen = []
        listener = seen.append
        auth.add_listener(listener)
        auth.remove_listener(listener)

        auth.login(DEFAULT_EMAIL, DEFAULT_PASSWORD)

        assert seen == []
