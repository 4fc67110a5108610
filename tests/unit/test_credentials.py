# =============================================================================
# tests/unit/test_credentials.py
# Unit Tests for the built-in account and password hashing
# =============================================================================

from leafguard_core.auth.credentials import (
    DefaultCredentials,
    default_profile,
    hash_password,
    make_offline_credentials,
    offline_credentials_match,
    verify_password,
)


class TestPasswordHashing:
    """bcrypt helpers"""

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("secret")
        assert hashed != "secret"
        assert hashed.startswith("$2")

    def test_verify(self):
        hashed = hash_password("secret")
        assert verify_password("secret", hashed)
        assert not verify_password("Secret", hashed)

    def test_malformed_hash_never_matches(self):
        assert not verify_password("secret", "not-a-bcrypt-hash")


class TestOfflineCredentials:
    """Remembered pair matching"""

    def test_match_ignores_email_case(self, profile):
        credentials = make_offline_credentials("Ada@Farm.test", "secret", profile)

        assert credentials.email == "ada@farm.test"
        assert offline_credentials_match(credentials, " ADA@farm.test", "secret")

    def test_no_match(self, profile):
        credentials = make_offline_credentials("ada@farm.test", "secret", profile)

        assert not offline_credentials_match(credentials, "bob@farm.test", "secret")
        assert not offline_credentials_match(credentials, "ada@farm.test", "other")
        assert not offline_credentials_match(None, "ada@farm.test", "secret")

    def test_round_trip_through_dict(self, profile):
        credentials = make_offline_credentials("ada@farm.test", "secret", profile)
        restored = type(credentials).from_dict(credentials.to_dict())

        assert restored == credentials
        assert "secret" not in str(credentials.to_dict())


class TestDefaultAccount:
    """Built-in pair"""

    def test_matches(self):
        assert DefaultCredentials().matches("user@leafguard.com", "password")
        assert not DefaultCredentials().matches("user@leafguard.com", "Password")

    def test_custom_pair(self):
        assert DefaultCredentials("demo@farm.test", "demo").matches("demo@farm.test", "demo")

    def test_profile_is_fresh_each_time(self):
        first = default_profile()
        first.remaining_free_scans = 0
        assert default_profile().remaining_free_scans == 3
