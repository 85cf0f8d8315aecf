"""Cooperative cancellation for sync passes."""

import threading

from .errors import SyncCancelledError


class CancellationToken:
    """Thread-safe flag checked between units of work.

    The orchestrator creates one token per pass; ``cancel()`` may be called
    from any thread and takes effect at the next check. A copy in progress is
    always allowed to finish.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``SyncCancelledError`` if cancellation has been requested."""
        if self._event.is_set():
            raise SyncCancelledError()
