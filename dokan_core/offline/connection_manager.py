# =============================================================================
# dokan_core/offline/connection_manager.py
# Network status monitor
# =============================================================================
"""
ConnectionManager - tracks whether the remote backend is reachable.

Features:
- Socket probe of a public host and of the configured backend host
- Externally fed status (set_online / force_offline)
- Callbacks fired only when the status actually changes
- Optional background monitoring thread
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlparse

from dokan_core.logging import get_logger

logger = get_logger(__name__)


class ConnectionStatus(Enum):
    """Connection status states."""
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    error_message: Optional[str] = None


ConnectionCallback = Callable[[ConnectionStatus, ConnectionStatus], None]


class ConnectionManager:
    """
    Singleton holder of the online/offline signal.

    Usage:
        manager = get_connection_manager()
        if manager.is_online:
            # Call the backend
        else:
            # Serve from the local store

    Callbacks receive (old_status, new_status) and are invoked only on
    transitions, never for a repeated report of the same status.
    """

    _instance: Optional[ConnectionManager] = None
    _lock = threading.Lock()

    CHECK_INTERVAL_ONLINE = 30
    CHECK_INTERVAL_OFFLINE = 10
    CONNECTION_TIMEOUT = 3
    PROBE_HOSTS = (
        ("8.8.8.8", 53),
        ("1.1.1.1", 53),
    )

    def __init__(self, remote_url: Optional[str] = None, initial_online: Optional[bool] = None):
        """
        Args:
            remote_url: Backend URL whose host is probed in addition to
                the public hosts
            initial_online: Starting status; UNKNOWN (treated as offline)
                when omitted
        """
        self._state = ConnectionState()
        self._remote_url = remote_url
        self._callbacks: List[ConnectionCallback] = []
        self._state_lock = threading.RLock()
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()

        if initial_online is not None:
            self._state.status = ConnectionStatus.ONLINE if initial_online else ConnectionStatus.OFFLINE
            self._state.last_check = datetime.now()
            if initial_online:
                self._state.last_online = self._state.last_check

    @classmethod
    def get_instance(cls, remote_url: Optional[str] = None) -> ConnectionManager:
        """Get or create the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = ConnectionManager(remote_url)
        return cls._instance

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self._state.status == ConnectionStatus.ONLINE

    @property
    def is_offline(self) -> bool:
        return not self.is_online

    # =========================================================================
    # STATUS UPDATES
    # =========================================================================

    def set_online(self, online: bool) -> bool:
        """
        Record an externally observed connectivity signal.

        Returns:
            True if the status changed
        """
        new_status = ConnectionStatus.ONLINE if online else ConnectionStatus.OFFLINE
        with self._state_lock:
            old_status = self._state.status
            self._state.status = new_status
            self._state.last_check = datetime.now()
            if online:
                self._state.last_online = self._state.last_check
                self._state.consecutive_failures = 0
                self._state.error_message = None
            else:
                self._state.consecutive_failures += 1

        if old_status == new_status:
            return False

        logger.info(f"Connection status changed: {old_status.value} -> {new_status.value}")
        self._notify_callbacks(old_status, new_status)
        return True

    def force_offline(self) -> None:
        """Force offline mode (user preference or tests)."""
        self.set_online(False)

    def check_connection(self) -> ConnectionState:
        """Probe connectivity now and update the status."""
        self.set_online(self._check_internet() and self._check_remote())
        return self._state

    def _probe(self, host: str, port: int) -> bool:
        try:
            with socket.create_connection((host, port), timeout=self.CONNECTION_TIMEOUT):
                return True
        except OSError as e:
            self._state.error_message = str(e)
            return False

    def _check_internet(self) -> bool:
        return any(self._probe(host, port) for host, port in self.PROBE_HOSTS)

    def _check_remote(self) -> bool:
        if not self._remote_url:
            return True
        parsed = urlparse(self._remote_url)
        if not parsed.hostname:
            return True
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        ok = self._probe(parsed.hostname, port)
        if not ok:
            logger.debug(f"Backend probe failed for {parsed.hostname}:{port}")
        return ok

    # =========================================================================
    # MONITORING
    # =========================================================================

    def start_monitoring(self) -> None:
        """Start background connection monitoring."""
        if self._monitor_thread is not None and self._monitor_thread.is_alive():
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="ConnectionMonitor",
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
        while not self._stop_monitoring.is_set():
            interval = self.CHECK_INTERVAL_ONLINE if self.is_online else self.CHECK_INTERVAL_OFFLINE
            if self._stop_monitoring.wait(timeout=interval):
                break
            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Error in connection check: {e}")

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    def register_callback(self, callback: ConnectionCallback) -> None:
        """Register a callback for status transitions."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: ConnectionCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self, old_status: ConnectionStatus, new_status: ConnectionStatus) -> None:
        for callback in list(self._callbacks):
            try:
                callback(old_status, new_status)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

    def get_status_display(self) -> dict:
        """Get status information for UI display."""
        return {
            "status": self._state.status.value,
            "is_online": self.is_online,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
            "error": self._state.error_message,
        }


# Singleton accessor
_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Get the global ConnectionManager, probing once on first use."""
    global _connection_manager
    if _connection_manager is None:
        from dokan_core.config import get_config
        config = get_config()
        remote_url = config.supabase_url if config.remote_provider == "supabase" else config.api_base_url
        if config.remote_provider == "memory":
            remote_url = None
        _connection_manager = ConnectionManager.get_instance(remote_url)
        _connection_manager.check_connection()
    return _connection_manager


def is_online() -> bool:
    """Quick check if we're online."""
    return get_connection_manager().is_online
