"""
Progress reporting for indexing runs.
"""

import logging
import threading
import time
from typing import Callable, Optional

from srcindex.core.interfaces import ProgressReporter

logger = logging.getLogger(__name__)


def pluralize_files(count: int) -> str:
    return "file" if count == 1 else "files"


def indexed_files_message(count: int, last_path: str) -> str:
    """Build the advisory message emitted after each registration."""
    return f"{count} {pluralize_files(count)} indexed...  (last one was {last_path})"


class ProgressReport(ProgressReporter):
    """
    Coalescing progress reporter.

    Keeps the latest message and logs it at most once per ``period_seconds``.
    An optional callback receives every message, e.g. to drive a rich
    progress bar.
    """

    def __init__(
        self,
        period_seconds: float = 10.0,
        callback: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._period = period_seconds
        self._callback = callback
        self._clock = clock
        self._last_message: Optional[str] = None
        self._last_logged: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def last_message(self) -> Optional[str]:
        return self._last_message

    def message(self, text: str) -> None:
        with self._lock:
            self._last_message = text
            now = self._clock()
            should_log = self._last_logged is None or now - self._last_logged >= self._period
            if should_log:
                self._last_logged = now
        if should_log:
            logger.info(text)
        if self._callback is not None:
            self._callback(text)

    def stop(self, final_message: Optional[str] = None) -> None:
        if final_message:
            logger.info(final_message)
