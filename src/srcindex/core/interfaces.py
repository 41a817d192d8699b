"""
Abstract interfaces for the collaborators of the file indexer.

The indexer only depends on these contracts; default implementations live in
the sibling modules and can be replaced by callers.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .models import FileMetadata, FileType, IndexedFileRecord


class ExclusionFilter(ABC):
    """Inclusion/exclusion predicate of one configuration scope."""

    @abstractmethod
    def accept(self, path: Path, relative_path: str, file_type: FileType) -> bool:
        """
        Decide whether a file belongs to the analysis.

        Args:
            path: Absolute path of the file
            relative_path: Path relative to the scope's base directory
            file_type: Declared type of the file

        Returns:
            True if the file is accepted
        """
        pass


class LanguageResolver(ABC):
    """Detects the language of a file."""

    @abstractmethod
    def detect(self, path: Path, relative_path: str) -> Optional[str]:
        """Return the language key of the file, or None if unknown."""
        pass

    @abstractmethod
    def forced_language(self) -> Optional[str]:
        """Return the single language the analysis is restricted to, if any."""
        pass


class MetadataCallback(ABC):
    """Computes content-derived metadata of an indexed file."""

    @abstractmethod
    def __call__(
        self, module_key_with_branch: str, record: IndexedFileRecord, encoding: str
    ) -> FileMetadata:
        pass


class Registry(ABC):
    """Shared store of indexed files keyed by project-relative path."""

    @abstractmethod
    def insert_if_absent(
        self, project_relative_path: str, record: IndexedFileRecord
    ) -> Optional[IndexedFileRecord]:
        """
        Atomically insert a record unless one exists for the path.

        Returns:
            The record already present, or None if the insertion happened
        """
        pass

    @abstractmethod
    def get(self, project_relative_path: str) -> Optional[IndexedFileRecord]:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class IssueExclusionRegistrar(ABC):
    """Secondary registration of indexed files for issue exclusions."""

    @abstractmethod
    def active(self) -> bool:
        pass

    @abstractmethod
    def register(self, project_relative_path: str, file_id: int) -> None:
        pass


class FileFilterExtension(ABC):
    """
    Programmatic filter evaluated on a fully built record.

    Filters run in order and the first rejection drops the file.
    """

    @abstractmethod
    def accept(self, record: IndexedFileRecord) -> bool:
        pass

    @property
    def name(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"


class ProgressReporter(ABC):
    """Receives advisory progress messages."""

    @abstractmethod
    def message(self, text: str) -> None:
        pass


class Warnings(ABC):
    """Collects warnings surfaced to the end user."""

    @abstractmethod
    def add_unique(self, message: str) -> None:
        pass
