"""
Indexing Service data models.

Contains the result summary of an indexing run and its thread-safe counters.
"""

import threading
from dataclasses import dataclass


@dataclass
class IndexingResult:
    """Result of an indexing run."""

    candidates: int = 0
    indexed_files: int = 0
    outside_basedir: int = 0
    excluded_by_patterns: int = 0
    forced_language_skipped: int = 0
    excluded_by_extensions: int = 0
    duration_seconds: float = 0.0

    @property
    def skipped(self) -> int:
        return (
            self.outside_basedir
            + self.excluded_by_patterns
            + self.forced_language_skipped
            + self.excluded_by_extensions
        )


class IndexingCounters:
    """Thread-safe counters feeding an IndexingResult."""

    FIELDS = (
        "candidates",
        "outside_basedir",
        "excluded_by_patterns",
        "forced_language_skipped",
        "excluded_by_extensions",
    )

    def __init__(self) -> None:
        self._values = dict.fromkeys(self.FIELDS, 0)
        self._lock = threading.Lock()

    def increment(self, name: str) -> None:
        with self._lock:
            self._values[name] += 1

    def get(self, name: str) -> int:
        with self._lock:
            return self._values[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._values)
