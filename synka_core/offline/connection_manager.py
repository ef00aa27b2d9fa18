# =============================================================================
# synka_core/offline/connection_manager.py
# Connection Status Detection and Management
# =============================================================================
"""
ConnectionMonitor - tracks internet/Supabase connectivity and announces
restoration.

Features:
- Socket probes against public DNS hosts and the Supabase host
- Platform online/offline events via ``set_online``
- Periodic background checks on the event loop
- DATA_SYNC broadcast whenever connectivity comes back after an outage
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Tuple
from urllib.parse import urlparse
import logging

from synka_core.offline.event_bus import DataSyncEventBus, SyncTopic
from synka_core.utils import Clock, utc_now

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Connection status states."""
    ONLINE = "online"           # Full connectivity (Internet + Supabase)
    OFFLINE = "offline"         # No connectivity
    DEGRADED = "degraded"       # Internet OK but Supabase unavailable
    CHECKING = "checking"       # Currently checking status
    UNKNOWN = "unknown"         # Initial state


@dataclass
class ConnectionState:
    """Current connection state with metadata."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    internet_available: bool = False
    supabase_available: bool = False
    last_check: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    restorations: int = 0
    error_message: Optional[str] = None


class ConnectionMonitor:
    """
    Usage:
        monitor = ConnectionMonitor(bus, supabase_url=settings.supabase_url)
        await monitor.check_connection()
        monitor.start_monitoring()
        ...
        if monitor.is_offline:
            # serve expired offline entries
    """

    PROBE_HOSTS: Sequence[Tuple[str, int]] = (
        ("8.8.8.8", 53),        # Google DNS
        ("1.1.1.1", 53),        # Cloudflare DNS
        ("208.67.222.222", 53), # OpenDNS
    )

    def __init__(
        self,
        bus: DataSyncEventBus,
        supabase_url: Optional[str] = None,
        check_interval_online: float = 30.0,
        check_interval_offline: float = 10.0,
        connection_timeout: float = 5.0,
        clock: Clock = utc_now,
    ):
        self.bus = bus
        self.supabase_url = supabase_url
        self.check_interval_online = check_interval_online
        self.check_interval_offline = check_interval_offline
        self.connection_timeout = connection_timeout
        self.clock = clock
        self._state = ConnectionState()
        self._monitor_task: Optional[asyncio.Task] = None

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
        return self._state.status == ConnectionStatus.OFFLINE

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    def _transition(self, new_status: ConnectionStatus) -> None:
        old_status = self._state.status
        self._state.status = new_status

        if new_status == ConnectionStatus.ONLINE:
            self._state.last_online = self.clock()
            self._state.consecutive_failures = 0
            self._state.error_message = None
        else:
            self._state.consecutive_failures += 1

        if old_status == new_status:
            return

        logger.info(f"Connection status changed: {old_status.value} -> {new_status.value}")
        self.bus.emit(SyncTopic.CONNECTION_CHANGED, new_status == ConnectionStatus.ONLINE)

        was_down = old_status in (ConnectionStatus.OFFLINE, ConnectionStatus.DEGRADED)
        if was_down and new_status == ConnectionStatus.ONLINE:
            self._state.restorations += 1
            logger.info("Connection restored, requesting data sync")
            self.bus.emit(SyncTopic.DATA_SYNC)

    def set_online(self, online: bool) -> None:
        """
        Feed a platform online/offline event.

        Args:
            online: True for an "online" event, False for "offline"
        """
        self._state.last_check = self.clock()
        self._state.internet_available = online
        self._state.supabase_available = online
        self._transition(ConnectionStatus.ONLINE if online else ConnectionStatus.OFFLINE)

    def force_offline(self) -> None:
        """Force offline mode (for testing or user preference)."""
        self.set_online(False)
        logger.info("Forced offline mode")

    # =========================================================================
    # PROBING
    # =========================================================================

    async def check_connection(self) -> ConnectionState:
        """
        Probe connectivity and update state.

        Returns:
            Updated ConnectionState
        """
        previous = self._state.status
        self._state.status = ConnectionStatus.CHECKING
        self._state.last_check = self.clock()

        internet_ok = await self._check_internet()
        supabase_ok = await self._check_supabase() if internet_ok else False
        self._state.internet_available = internet_ok
        self._state.supabase_available = supabase_ok

        # Restore the pre-check status so _transition sees the real change
        self._state.status = previous

        if internet_ok and supabase_ok:
            self._transition(ConnectionStatus.ONLINE)
        elif internet_ok:
            self._transition(ConnectionStatus.DEGRADED)
        else:
            self._transition(ConnectionStatus.OFFLINE)

        return self._state

    async def _probe(self, host: str, port: int) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.connection_timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def _check_internet(self) -> bool:
        for host, port in self.PROBE_HOSTS:
            if await self._probe(host, port):
                return True
        return False

    async def _check_supabase(self) -> bool:
        if not self.supabase_url:
            # No Supabase configured - treat as available (local-only mode)
            return True

        parsed = urlparse(self.supabase_url)
        if not parsed.hostname:
            self._state.error_message = f"Invalid Supabase URL: {self.supabase_url}"
            return False

        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        ok = await self._probe(parsed.hostname, port)
        if not ok:
            self._state.error_message = f"Supabase host unreachable: {parsed.hostname}"
            logger.debug(self._state.error_message)
        return ok

    # =========================================================================
    # BACKGROUND MONITORING
    # =========================================================================

    def start_monitoring(self) -> None:
        """Start periodic checks on the running event loop."""
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        self._monitor_task = asyncio.get_running_loop().create_task(
            self._monitoring_loop(), name="ConnectionMonitor"
        )
        logger.debug("Connection monitoring started")

    async def stop_monitoring(self) -> None:
        """Stop periodic checks."""
        if self._monitor_task is None:
            return
        self._monitor_task.cancel()
        try:
            await self._monitor_task
        except asyncio.CancelledError:
            pass
        self._monitor_task = None
        logger.debug("Connection monitoring stopped")

    async def _monitoring_loop(self) -> None:
        while True:
            interval = (
                self.check_interval_online
                if self.is_online
                else self.check_interval_offline
            )
            await asyncio.sleep(interval)
            try:
                await self.check_connection()
            except Exception as e:
                logger.error(f"Error in connection check: {e}")

    def get_status_display(self) -> dict:
        """Get status information for UI display."""
        return {
            "status": self._state.status.value,
            "is_online": self.is_online,
            "internet": self._state.internet_available,
            "supabase": self._state.supabase_available,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_online": self._state.last_online.isoformat() if self._state.last_online else None,
            "failures": self._state.consecutive_failures,
            "restorations": self._state.restorations,
            "error": self._state.error_message,
        }
