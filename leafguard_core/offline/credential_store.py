# =============================================================================
# leafguard_core/offline/credential_store.py
# Persistent Credential Cache
# =============================================================================
"""
CredentialStore - SQLite-backed key/value store for the client's session.

Holds:
- userToken           the bearer token (absent means unauthenticated)
- userData            the last-known profile, serialized without the token
- offlineCredentials  email + password hash from the last successful online login
- apiBaseUrl          a runtime override of the API base URL

Only the auth orchestrator writes the token/profile/offline-credential
triplet. The HTTP client reads the token and clears it on a 401.
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
import logging

from leafguard_core.api.models import OfflineCredentials, UserProfile
from leafguard_core.errors import LeafGuardError

logger = logging.getLogger(__name__)


AUTH_TOKEN_KEY = "userToken"
USER_DATA_KEY = "userData"
OFFLINE_CREDENTIALS_KEY = "offlineCredentials"
BASE_URL_KEY = "apiBaseUrl"


class CredentialStore:
    """
    Local SQLite store for the session triplet and client settings.

    Usage:
        store = CredentialStore(Path("~/.leafguard/credentials.db").expanduser())
        store.save_session(token, profile)
        store.get_user()      # -> UserProfile
        store.clear_session() # token + profile gone, offline credentials kept
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS credentials (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Path):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create the schema if needed."""
        if self._initialized:
            return

        with self.transaction() as conn:
            conn.execute(self.SCHEMA)

        self._initialized = True
        logger.info(f"Credential store initialized at: {self.db_path}")

    # =========================================================================
    # RAW KEY/VALUE ACCESS
    # =========================================================================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Read a JSON-decoded value."""
        self.initialize()
        row = self._get_connection().execute(
            "SELECT value FROM credentials WHERE key = ?", [key]
        ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return row["value"]

    def set_settings(self, values: Dict[str, Any]) -> None:
        """Write several keys in one transaction."""
        self.initialize()
        now = datetime.now().isoformat()
        with self.transaction() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO credentials (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [(key, json.dumps(value), now) for key, value in values.items()],
            )

    def remove_settings(self, keys: Iterable[str]) -> None:
        """Delete several keys in one transaction."""
        self.initialize()
        with self.transaction() as conn:
            conn.executemany(
                "DELETE FROM credentials WHERE key = ?", [(key,) for key in keys]
            )

    def set_setting(self, key: str, value: Any) -> None:
        self.set_settings({key: value})

    # =========================================================================
    # TOKEN
    # =========================================================================

    def get_token(self) -> Optional[str]:
        return self.get_setting(AUTH_TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self.set_setting(AUTH_TOKEN_KEY, token)

    def clear_token(self) -> None:
        self.remove_settings([AUTH_TOKEN_KEY])

    # =========================================================================
    # PROFILE
    # =========================================================================

    def get_user(self) -> Optional[UserProfile]:
        """Last-known profile, or None if nothing (or something unreadable) is cached."""
        data = self.get_setting(USER_DATA_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return UserProfile.from_dict(data)
        except (LeafGuardError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable cached profile: {e}")
            return None

    def set_user(self, profile: UserProfile) -> None:
        self.set_setting(USER_DATA_KEY, profile.to_dict())

    # =========================================================================
    # SESSION
    # =========================================================================

    def save_session(self, token: str, profile: UserProfile) -> None:
        """Persist token and profile together."""
        self.set_settings({AUTH_TOKEN_KEY: token, USER_DATA_KEY: profile.to_dict()})

    def clear_session(self) -> None:
        """Remove token and profile; offline credentials are kept."""
        self.remove_settings([AUTH_TOKEN_KEY, USER_DATA_KEY])

    # =========================================================================
    # OFFLINE CREDENTIALS
    # =========================================================================

    def get_offline_credentials(self) -> Optional[OfflineCredentials]:
        data = self.get_setting(OFFLINE_CREDENTIALS_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return OfflineCredentials.from_dict(data)
        except (KeyError, LeafGuardError, TypeError, ValueError):
            logger.warning("Discarding incomplete offline credentials")
            return None

    def set_offline_credentials(self, credentials: OfflineCredentials) -> None:
        self.set_setting(OFFLINE_CREDENTIALS_KEY, credentials.to_dict())

    def clear_offline_credentials(self) -> None:
        self.remove_settings([OFFLINE_CREDENTIALS_KEY])

    # =========================================================================
    # BASE URL OVERRIDE
    # =========================================================================

    def get_base_url(self) -> Optional[str]:
        return self.get_setting(BASE_URL_KEY)

    def set_base_url(self, url: str) -> None:
        self.set_setting(BASE_URL_KEY, url)

    def clear_base_url(self) -> None:
        self.remove_settings([BASE_URL_KEY])

    def clear_all(self) -> None:
        self.remove_settings(
            [AUTH_TOKEN_KEY, USER_DATA_KEY, OFFLINE_CREDENTIALS_KEY, BASE_URL_KEY]
        )

    def close(self) -> None:
        """Close database connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None


class InMemoryCredentialStore(CredentialStore):
    """Same interface, nothing touches disk. Used by tests and ephemeral sessions."""

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()

    def initialize(self) -> None:
        pass

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._values:
                return default
            return json.loads(self._values[key])

    def set_settings(self, values: Dict[str, Any]) -> None:
        with self._lock:
            for key, value in values.items():
                self._values[key] = json.dumps(value)

    def remove_settings(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._values.pop(key, None)

    def close(self) -> None:
        pass
