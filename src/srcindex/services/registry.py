"""
In-memory component registry shared by indexing workers.
"""

import threading
from typing import Iterator, Optional

from srcindex.core.atomic import AtomicCounter
from srcindex.core.interfaces import Registry
from srcindex.core.models import IndexedFileRecord


class RegistryFrozenError(RuntimeError):
    """Raised on insertion into a registry frozen after a fatal error."""

    pass


class IdGenerator:
    """Allocates unique, strictly increasing file ids starting at 1."""

    def __init__(self, start: int = 0):
        self._counter = AtomicCounter(start)

    def next_id(self) -> int:
        return self._counter.increment_and_get()

    @property
    def last_id(self) -> int:
        return self._counter.value


class ComponentRegistry(Registry):
    """
    Indexed files keyed by project-relative path.

    Holds at most one record per project-relative path across all modules.
    """

    def __init__(self) -> None:
        self._files: dict[str, IndexedFileRecord] = {}
        self._by_module: dict[str, list[IndexedFileRecord]] = {}
        self._frozen = False
        self._lock = threading.Lock()

    def freeze(self) -> None:
        """Refuse any further insertion."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def insert_if_absent(
        self, project_relative_path: str, record: IndexedFileRecord
    ) -> Optional[IndexedFileRecord]:
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(f"Registry is frozen, can't index {project_relative_path}")
            existing = self._files.get(project_relative_path)
            if existing is not None:
                return existing
            self._files[project_relative_path] = record
            self._by_module.setdefault(record.module_key, []).append(record)
            return None

    def get(self, project_relative_path: str) -> Optional[IndexedFileRecord]:
        with self._lock:
            return self._files.get(project_relative_path)

    def files_of_module(self, module_key: str) -> list[IndexedFileRecord]:
        with self._lock:
            return list(self._by_module.get(module_key, []))

    def all_files(self) -> list[IndexedFileRecord]:
        """Return all records ordered by id."""
        with self._lock:
            records = list(self._files.values())
        return sorted(records, key=lambda r: r.id)

    def languages(self) -> set[str]:
        with self._lock:
            return {r.language for r in self._files.values() if r.language is not None}

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, project_relative_path: object) -> bool:
        with self._lock:
            return project_relative_path in self._files

    def __iter__(self) -> Iterator[IndexedFileRecord]:
        return iter(self.all_files())
