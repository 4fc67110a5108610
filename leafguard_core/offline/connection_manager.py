# =============================================================================
# leafguard_core/offline/connection_manager.py
# Connection Status Detection and Management
# =============================================================================
"""
ConnectionManager - Detects and monitors internet/backend connectivity.

Features:
- Connection detection (DNS host probe + backend health check)
- Optional background monitoring thread
- Event callbacks for status changes
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Connection status states."""
    ONLINE = "online"           # Internet + LeafGuard backend
    OFFLINE = "offline"         # No connectivity
    DEGRADED = "degraded"       # Internet OK but backend unavailable
    CHECKING = "checking"       # Currently checking status
    UNKNOWN = "unknown"         # Initial state


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    internet_available: bool = False
    backend_available: bool = False
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0


def probe_internet(
    hosts: Sequence[Tuple[str, int]] = (
        ("8.8.8.8", 53),        # Google DNS
        ("1.1.1.1", 53),        # Cloudflare DNS
        ("208.67.222.222", 53), # OpenDNS
    ),
    timeout: float = 5.0,
) -> bool:
    """
    Check internet connectivity by opening a TCP socket to well-known hosts.

    Returns:
        True as soon as one host accepts the connection
    """
    for host, port in hosts:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            continue
    return False


class ConnectionManager:
    """
    Network monitor for the LeafGuard client.

    Usage:
        monitor = ConnectionManager(backend_probe=client.health_check)
        monitor.check_connection()
        if monitor.is_connected:
            # try the server
        else:
            # offline login paths only
    """

    # Configuration
    CHECK_INTERVAL_ONLINE = 30      # Seconds between checks when online
    CHECK_INTERVAL_OFFLINE = 10     # Seconds between checks when offline

    def __init__(
        self,
        backend_probe: Optional[Callable[[], bool]] = None,
        internet_probe: Callable[[], bool] = probe_internet,
    ):
        """
        Args:
            backend_probe: Returns True when the API answers (usually
                LeafGuardClient.health_check); skipped when None
            internet_probe: Returns True when the device has internet access
        """
        self._state = ConnectionState()
        self._backend_probe = backend_probe
        self._internet_probe = internet_probe
        self._callbacks: List[Callable[[ConnectionState], None]] = []
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()
        self._forced_offline = False

    @property
    def state(self) -> ConnectionState:
        """Get a snapshot of the current connection state."""
        return replace(self._state)

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        """Internet and backend both reachable."""
        return self._state.status == ConnectionStatus.ONLINE

    @property
    def is_connected(self) -> bool:
        """The device has internet, whether or not the backend answers."""
        return self._state.internet_available

    @property
    def is_offline(self) -> bool:
        return self._state.status == ConnectionStatus.OFFLINE

    def check_connection(self) -> ConnectionState:
        """
        Perform a connection check and update state.

        Returns:
            Snapshot of the updated ConnectionState
        """
        old_status = self._state.status

        if self._forced_offline:
            return self.state

        self._state.status = ConnectionStatus.CHECKING
        self._state.last_check = datetime.now()

        internet_ok = self._safe_probe(self._internet_probe)
        self._state.internet_available = internet_ok

        backend_ok = False
        if internet_ok:
            backend_ok = (
                self._safe_probe(self._backend_probe)
                if self._backend_probe is not None
                else True
            )
        self._state.backend_available = backend_ok

        if internet_ok and backend_ok:
            self._state.status = ConnectionStatus.ONLINE
            self._state.last_online = datetime.now()
            self._state.consecutive_failures = 0
        elif internet_ok:
            self._state.status = ConnectionStatus.DEGRADED
            self._state.consecutive_failures += 1
        else:
            self._state.status = ConnectionStatus.OFFLINE
            self._state.consecutive_failures += 1

        if old_status != self._state.status:
            logger.info(
                f"Connection status changed: {old_status.value} -> {self._state.status.value}"
            )
            self._notify_callbacks()

        return self.state

    @staticmethod
    def _safe_probe(probe: Callable[[], bool]) -> bool:
        try:
            return bool(probe())
        except Exception as e:
            logger.debug(f"Connectivity probe failed: {e}")
            return False

    def start_monitoring(self) -> None:
        """Start background connection monitoring."""
        if self._monitor_thread is not None and self._monitor_thread.is_alive():
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="ConnectionMonitor"
        )
        self._monitor_thread.start()
        logger.debug("Connection monitoring started")

    def stop_monitoring(self) -> None:
        """Stop background connection monitoring."""
        self._stop_monitoring.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
        logger.debug("Connection monitoring stopped")

    def _monitoring_loop(self) -> None:
        """Background monitoring loop."""
        while not self._stop_monitoring.is_set():
            interval = (
                self.CHECK_INTERVAL_ONLINE
                if self.is_online
                else self.CHECK_INTERVAL_OFFLINE
            )

            if self._stop_monitoring.wait(timeout=interval):
                break

            self.check_connection()

    def register_callback(self, callback: Callable[[ConnectionState], None]) -> None:
        """
        Register a callback for connection status changes.

        Args:
            callback: Function called with ConnectionState when status changes
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[ConnectionState], None]) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        """Notify all registered callbacks of status change."""
        snapshot = self.state
        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

    def force_offline(self) -> None:
        """Force offline mode (for testing or user preference)."""
        self._forced_offline = True
        self._state.status = ConnectionStatus.OFFLINE
        self._state.internet_available = False
        self._state.backend_available = False
        self._notify_callbacks()
        logger.info("Forced offline mode")

    def clear_forced_offline(self) -> ConnectionState:
        """Leave forced offline mode and re-check immediately."""
        self._forced_offline = False
        return self.check_connection()

    def get_status_display(self) -> dict:
        """Get status information for display."""
        return {
            "status": self._state.status.value,
            "is_online": self.is_online,
            "internet": self._state.internet_available,
            "backend": self._state.backend_available,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
        }
