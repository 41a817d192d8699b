"""
Shared state of one indexing run.

Every piece of mutable state shared between workers lives here and is only
touched through atomic operations.
"""

import logging
import threading
from typing import Optional

from srcindex.core.atomic import WarnLatch
from srcindex.core.exclusions import ExclusionWarning
from srcindex.core.interfaces import Warnings

from .indexing_models import IndexingCounters
from .registry import ComponentRegistry, IdGenerator

logger = logging.getLogger(__name__)


class AnalysisWarnings(Warnings):
    """User-visible warnings, each message kept once in insertion order."""

    def __init__(self) -> None:
        self._messages: list[str] = []
        self._lock = threading.Lock()

    def add_unique(self, message: str) -> None:
        with self._lock:
            if message not in self._messages:
                self._messages.append(message)

    @property
    def messages(self) -> list[str]:
        with self._lock:
            return list(self._messages)


class IndexingSession:
    """
    State owned by a single indexing run.

    Attributes:
        ids: File id allocator
        registry: Indexed files by project-relative path
        latches: One warning latch per deprecation-warning kind
        warnings: Warnings collector surfaced to the user
        counters: Skip counters per rejection category
    """

    def __init__(
        self,
        registry: Optional[ComponentRegistry] = None,
        warnings: Optional[AnalysisWarnings] = None,
    ):
        self.ids = IdGenerator()
        self.registry = registry if registry is not None else ComponentRegistry()
        self.warnings = warnings if warnings is not None else AnalysisWarnings()
        self.latches: dict[ExclusionWarning, WarnLatch] = {kind: WarnLatch() for kind in ExclusionWarning}
        self.counters = IndexingCounters()
        self._stopped = threading.Event()
        self._failure: Optional[BaseException] = None
        self._failure_lock = threading.Lock()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    def fail(self, error: BaseException) -> bool:
        """
        Record a fatal error and stop accepting candidates.

        Returns:
            True if ``error`` is the first fatal error of the run
        """
        with self._failure_lock:
            first = self._failure is None
            if first:
                self._failure = error
            self._stopped.set()
            self.registry.freeze()
        if not first:
            logger.debug(f"Ignoring subsequent fatal error: {error}")
        return first
