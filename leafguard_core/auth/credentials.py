"""
Built-in credentials and password hashing for the LeafGuard client.

The default account is always available, online or not, so the app can be
demonstrated and used without a backend. Passwords remembered for offline
login are stored as bcrypt hashes, never in plain text.
"""

from dataclasses import dataclass
from typing import Optional

import bcrypt

from leafguard_core.api.models import OfflineCredentials, UserProfile


# ==================== DEFAULT ACCOUNT ====================

DEFAULT_EMAIL = "user@leafguard.com"
DEFAULT_PASSWORD = "password"


def default_profile() -> UserProfile:
    """
    Returns the fixed profile used by the built-in account.

    A fresh object every call: callers mutate remaining_free_scans.
    """
    return UserProfile(
        id="offline_user",
        name="Default User",
        email=DEFAULT_EMAIL,
        role="user",
        is_subscribed=False,
        remaining_free_scans=3,
    )


@dataclass(frozen=True)
class DefaultCredentials:
    """An email/password pair that logs in without the network"""
    email: str = DEFAULT_EMAIL
    password: str = DEFAULT_PASSWORD

    def matches(self, email: str, password: str) -> bool:
        return normalize_email(email) == normalize_email(self.email) and password == self.password


# ==================== HELPERS ====================

def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        str: Hashed password

    Example:
        >>> hash_password("mypassword123")
        '$2b$12$...'
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain text password against a bcrypt hash; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def make_offline_credentials(
    email: str, password: str, profile: Optional[UserProfile] = None
) -> OfflineCredentials:
    return OfflineCredentials(
        email=normalize_email(email),
        password_hash=hash_password(password),
        profile=profile,
    )


def offline_credentials_match(
    credentials: Optional[OfflineCredentials], email: str, password: str
) -> bool:
    """True when a stored offline pair exists and equals (email, password)."""
    if credentials is None:
        return False
    if normalize_email(email) != normalize_email(credentials.email):
        return False
    return verify_password(password, credentials.password_hash)
