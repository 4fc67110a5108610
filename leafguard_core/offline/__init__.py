# =============================================================================
# leafguard_core/offline/__init__.py
# Offline Support for the LeafGuard client
# =============================================================================
"""
Offline Support Module

Two pieces the auth orchestrator combines with the HTTP client:

    ConnectionManager   is the device online, and does the backend answer?
    CredentialStore     token, last-known profile, offline credentials

Usage:
------
from leafguard_core.offline import ConnectionManager, CredentialStore

store = CredentialStore(config.db_path)
monitor = ConnectionManager(backend_probe=client.health_check)
monitor.check_connection()
print(monitor.is_connected)
"""

from leafguard_core.offline.connection_manager import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    probe_internet,
)

from leafguard_core.offline.credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
)

__all__ = [
    # Connection Management
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "probe_internet",
    # Credential Cache
    "CredentialStore",
    "InMemoryCredentialStore",
]
