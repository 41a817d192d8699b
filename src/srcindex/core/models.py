"""
Data models for the file indexing pipeline.

Contains the project/module contexts, candidate paths, indexed file records
and the lazily computed file metadata holder.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Union

if TYPE_CHECKING:
    from srcindex.core.interfaces import ExclusionFilter

DEFAULT_ENCODING = "UTF-8"


class FileType(str, Enum):
    """Declared type of an indexed file."""

    MAIN = "MAIN"
    TEST = "TEST"


@dataclass(frozen=True)
class ModuleContext:
    """
    A module of the analyzed project.

    Attributes:
        key: Module key, unique within the project
        name: Human readable module name (used in warnings)
        base_dir: Resolved base directory of the module
        encoding: Text encoding of the module's source files
        exclusion_filters: Module-scope inclusion/exclusion predicate
        uses_project_scope: True if ``exclusion_filters`` is the project's own
            scope, False if the module declared its own configuration
        branch: Optional branch name of the analysis
    """

    key: str
    name: str
    base_dir: Path
    encoding: str
    exclusion_filters: "ExclusionFilter"
    uses_project_scope: bool
    branch: str | None = None

    @property
    def key_with_branch(self) -> str:
        if self.branch:
            return f"{self.key}:BRANCH:{self.branch}"
        return self.key


@dataclass
class ProjectContext:
    """
    The analyzed project: base directory, key, project-scope exclusions and
    an ordered list of modules.

    Single-module projects use one module whose base directory is the
    project's own and whose exclusion scope is the project scope.
    """

    key: str
    base_dir: Path
    exclusion_filters: "ExclusionFilter"
    branch: str | None = None
    modules: list[ModuleContext] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir).resolve()

    def add_module(
        self,
        key: str,
        base_dir: Path | str,
        name: str | None = None,
        encoding: str = DEFAULT_ENCODING,
        exclusion_filters: "ExclusionFilter | None" = None,
    ) -> ModuleContext:
        """
        Create and register a module of this project.

        Args:
            key: Module key
            base_dir: Module base directory (resolved on creation)
            name: Display name, defaults to the key
            encoding: Source encoding of the module
            exclusion_filters: Module-declared exclusion scope. When None the
                module evaluates the project's scope.

        Returns:
            The new ModuleContext
        """
        uses_project_scope = exclusion_filters is None
        module = ModuleContext(
            key=key,
            name=name or key,
            base_dir=Path(base_dir).resolve(),
            encoding=encoding,
            exclusion_filters=self.exclusion_filters if uses_project_scope else exclusion_filters,
            uses_project_scope=uses_project_scope,
            branch=self.branch,
        )
        self.modules.append(module)
        return module

    def root_module(self, encoding: str = DEFAULT_ENCODING) -> ModuleContext:
        """Register a module sharing the project base directory and scope."""
        return self.add_module(self.key, self.base_dir, encoding=encoding)


@dataclass(frozen=True)
class CandidatePath:
    """A filesystem path proposed for indexing."""

    path: Path
    module: ModuleContext
    type: FileType = FileType.MAIN


@dataclass(frozen=True)
class FileMetadata:
    """Content-derived facts about an indexed file."""

    hash: str
    charset: str
    lines: int
    line_offsets: tuple[int, ...]
    last_valid_offset: int
    empty: bool = False


@dataclass(frozen=True)
class NotComputed:
    """Metadata not computed yet; holds the inputs of the computation."""

    module_key_with_branch: str
    encoding: str


@dataclass(frozen=True)
class Computed:
    result: FileMetadata


@dataclass(frozen=True)
class Failed:
    error: BaseException


MetadataState = Union[NotComputed, Computed, Failed]

MetadataCallbackFn = Callable[[str, "IndexedFileRecord", str], FileMetadata]


class LazyMetadata:
    """
    Deferred metadata of one indexed file.

    The state moves at most once from NotComputed to Computed or Failed.
    Later accesses return the cached result or re-raise the cached error.
    """

    def __init__(self, callback: MetadataCallbackFn, inputs: NotComputed):
        self._callback = callback
        self._state: MetadataState = inputs
        self._lock = threading.Lock()

    @property
    def state(self) -> MetadataState:
        return self._state

    @property
    def computed(self) -> bool:
        return not isinstance(self._state, NotComputed)

    def get(self, record: "IndexedFileRecord") -> FileMetadata:
        with self._lock:
            state = self._state
            if isinstance(state, NotComputed):
                try:
                    result = self._callback(state.module_key_with_branch, record, state.encoding)
                except Exception as e:
                    self._state = Failed(e)
                    raise
                self._state = Computed(result)
                return result
        if isinstance(state, Failed):
            raise state.error
        return state.result


@dataclass(frozen=True)
class IndexedFileRecord:
    """
    A file accepted into the registry.

    Attributes:
        id: Unique, strictly increasing identity within the run
        path: Absolute path (parents resolved, final symlink kept)
        project_relative_path: Path relative to the project base dir, '/' separated
        module_relative_path: Path relative to the module base dir, '/' separated
        type: MAIN or TEST
        language: Resolved language key, None if unknown
        module_key: Key of the owning module
    """

    id: int
    path: Path
    project_relative_path: str
    module_relative_path: str
    type: FileType
    language: str | None
    module_key: str
    _metadata: LazyMetadata = field(repr=False, compare=False)

    @property
    def published(self) -> bool:
        """True iff the language was resolved."""
        return self.language is not None

    @property
    def is_test(self) -> bool:
        return self.type == FileType.TEST

    @property
    def metadata_state(self) -> MetadataState:
        return self._metadata.state

    def metadata(self) -> FileMetadata:
        """Return the file metadata, computing it on first access."""
        return self._metadata.get(self)

    def __str__(self) -> str:
        return self.project_relative_path
