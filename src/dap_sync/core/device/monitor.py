"""Device connection polling."""

import logging
import os
import threading
from typing import Callable, List, Optional

from ...database.settings import SyncSettings

logger = logging.getLogger(__name__)

# Called with (connected, settings) on every connect/disconnect transition
TransitionListener = Callable[[bool, SyncSettings], None]
SettingsProvider = Callable[[], SyncSettings]


def is_mounted(path: Optional[str]) -> bool:
    """Check whether ``path`` names an existing directory.

    Any directory counts, not only true mount points, so a plain folder can
    stand in for a device.
    """
    if not path:
        return False
    return os.path.isdir(path)


class DeviceMonitor:
    """Polls the configured mount path and reports transitions.

    Settings are re-read on every poll so a changed mount path or interval
    takes effect on the next cycle.
    """

    def __init__(self, settings_provider: SettingsProvider) -> None:
        """Initialize monitor.

        Args:
            settings_provider: Returns the current sync settings
        """
        self.settings_provider = settings_provider
        self._listeners: List[TransitionListener] = []
        self._connected = False
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_connected(self) -> bool:
        """Connection state observed by the most recent poll."""
        with self._lock:
            return self._connected

    @property
    def is_running(self) -> bool:
        """Whether the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a callback for connect/disconnect transitions."""
        self._listeners.append(listener)

    def poll_once(self) -> bool:
        """Check the mount path once.

        Returns:
            True if the connection state changed
        """
        settings = self.settings_provider()
        connected = is_mounted(settings.mount_path)

        with self._lock:
            changed = connected != self._connected
            self._connected = connected

        if not changed:
            return False

        if connected:
            logger.info("Device connected at %s", settings.mount_path)
        else:
            logger.info("Device disconnected from %s", settings.mount_path)

        for listener in list(self._listeners):
            try:
                listener(connected, settings)
            except Exception as e:
                logger.error("Device listener failed: %s", e, exc_info=True)
        return True

    def start(self) -> None:
        """Start polling on a daemon thread; a no-op if already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="dap-sync-monitor", daemon=True
        )
        self._thread.start()
        logger.debug("Device monitor started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop polling and wait for the thread to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("Device monitor stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
                interval = self.settings_provider().polling_interval_seconds
            except Exception as e:
                logger.error("Device poll failed: %s", e, exc_info=True)
                interval = SyncSettings().polling_interval_seconds
            self._stop_event.wait(max(interval, 1))
