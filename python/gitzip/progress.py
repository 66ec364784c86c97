"""
Progress reporting and cooperative cancellation.

A progress sink receives ``report(message, increment)`` calls where
``increment`` is a percentage of the whole operation, and exposes
``is_cancellation_requested`` which the core polls once per entry.
"""

import threading
from typing import Callable, Optional, Protocol

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)


class ProgressSink(Protocol):
    """Interface the builder, extractor and compressors report into."""

    def report(self, message: str, increment: float = 0.0) -> None: ...

    @property
    def is_cancellation_requested(self) -> bool: ...


class CancellationToken:
    """Thread-safe cancellation flag that can be shared with a UI or signal handler."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()


class ProgressReporter:
    """
    Progress sink that accumulates percentages and forwards them.

    Updates are passed to ``callback(message, percent_done)`` when one is
    given, and otherwise logged at PROGRESS level no more often than every
    ``log_step`` percent.
    """

    def __init__(
        self,
        callback: Optional[Callable[[str, float], None]] = None,
        token: Optional[CancellationToken] = None,
        log_step: float = 5.0,
    ):
        self._callback = callback
        self._token = token
        self._log_step = max(0.0, log_step)
        self._lock = threading.Lock()
        self._percent = 0.0
        self._last_logged = -1.0

    @property
    def percent(self) -> float:
        return self._percent

    @property
    def is_cancellation_requested(self) -> bool:
        return self._token is not None and self._token.is_cancellation_requested

    def should_log(self, percent: float) -> bool:
        return (
            self._last_logged < 0
            or percent >= 100.0
            or percent - self._last_logged >= self._log_step
        )

    def report(self, message: str, increment: float = 0.0) -> None:
        with self._lock:
            self._percent = min(100.0, self._percent + max(0.0, increment))
            percent = self._percent
            log_now = self._callback is None and self.should_log(percent)
            if log_now:
                self._last_logged = percent

        # Called outside the lock so callbacks may report again
        if self._callback is not None:
            self._callback(message, percent)
        elif log_now:
            logger.progress("%s (%.0f%%)", message, percent)


class NullProgress:
    """Sink that ignores reports and never cancels."""

    def report(self, message: str, increment: float = 0.0) -> None:
        pass

    @property
    def is_cancellation_requested(self) -> bool:
        return False
