"""
Inclusion/exclusion handling for srcindex.

Provides:
- PatternExclusionFilters: glob based inclusions/exclusions per file type
- ExclusionArbiter: applies the project scope, then the legacy module scope,
  warning once per kind when the module scope is what rejected a file
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable

import pathspec

from .atomic import WarnLatch
from .interfaces import ExclusionFilter, Warnings
from .models import CandidatePath, FileType

logger = logging.getLogger(__name__)

# Patterns with this prefix are matched against the absolute path
ABSOLUTE_PATTERN_PREFIX = "file:"


def _compile(patterns: Iterable[str]) -> tuple[pathspec.PathSpec | None, pathspec.PathSpec | None]:
    """Compile patterns into (relative, absolute) specs, None when empty."""
    relative: list[str] = []
    absolute: list[str] = []
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        if pattern.startswith(ABSOLUTE_PATTERN_PREFIX):
            absolute.append(pattern[len(ABSOLUTE_PATTERN_PREFIX):].lstrip("/"))
        else:
            relative.append(pattern)

    def build(lines: list[str]) -> pathspec.PathSpec | None:
        if not lines:
            return None
        return pathspec.PathSpec.from_lines("gitwildmatch", lines)

    return build(relative), build(absolute)


class _PatternSet:
    """Compiled relative and absolute patterns of one setting."""

    def __init__(self, patterns: Iterable[str] | None):
        self.raw: list[str] = [p for p in (patterns or []) if p and p.strip()]
        self._relative, self._absolute = _compile(self.raw)

    def __bool__(self) -> bool:
        return bool(self.raw)

    def matches(self, path: Path, relative_path: str) -> bool:
        if self._relative is not None and self._relative.match_file(relative_path):
            return True
        if self._absolute is not None:
            return self._absolute.match_file(path.as_posix().lstrip("/"))
        return False


class PatternExclusionFilters(ExclusionFilter):
    """
    Inclusion/exclusion predicate built from glob patterns.

    A file is accepted when it matches one of the inclusions of its type (or
    no inclusion is configured for that type) and none of its exclusions.
    Patterns use gitignore syntax and are matched on the relative path
    handed to accept(); ``file:`` patterns are matched on the absolute path.

    Example:
        >>> filters = PatternExclusionFilters(exclusions=["**/generated/**"])
        >>> filters.accept(Path("/p/src/a.py"), "src/a.py", FileType.MAIN)
        True
    """

    def __init__(
        self,
        inclusions: Iterable[str] | None = None,
        exclusions: Iterable[str] | None = None,
        test_inclusions: Iterable[str] | None = None,
        test_exclusions: Iterable[str] | None = None,
    ):
        self._inclusions = {
            FileType.MAIN: _PatternSet(inclusions),
            FileType.TEST: _PatternSet(test_inclusions),
        }
        self._exclusions = {
            FileType.MAIN: _PatternSet(exclusions),
            FileType.TEST: _PatternSet(test_exclusions),
        }
        self._log_configuration()

    def _log_configuration(self) -> None:
        for label, sets in (("inclusions", self._inclusions), ("exclusions", self._exclusions)):
            for file_type, pattern_set in sets.items():
                if pattern_set:
                    prefix = "Test " if file_type == FileType.TEST else ""
                    logger.debug(f"{prefix}{label}: {', '.join(pattern_set.raw)}")

    @property
    def is_empty(self) -> bool:
        """True if no pattern is configured at all."""
        return not any(self._inclusions.values()) and not any(self._exclusions.values())

    def accept(self, path: Path, relative_path: str, file_type: FileType) -> bool:
        inclusions = self._inclusions[file_type]
        if inclusions and not inclusions.matches(path, relative_path):
            return False
        return not self._exclusions[file_type].matches(path, relative_path)


class ExclusionWarning(str, Enum):
    """Kinds of latched deprecation warnings."""

    MODULE_RELATIVE_PATTERNS = "module_relative_patterns"
    MODULE_LEVEL_EXCLUSIONS = "module_level_exclusions"


class ExclusionArbiter:
    """
    Decides whether a candidate is excluded by configuration.

    The project scope is always evaluated first, on the project-relative
    path. The module scope is evaluated afterwards on the module-relative
    path; a rejection there is honored but flagged as deprecated usage.
    """

    def __init__(
        self,
        project_filters: ExclusionFilter,
        warnings: Warnings,
        latches: dict[ExclusionWarning, WarnLatch] | None = None,
    ):
        self._project_filters = project_filters
        self._warnings = warnings
        self._latches = latches if latches is not None else {kind: WarnLatch() for kind in ExclusionWarning}

    def accept(
        self,
        candidate: CandidatePath,
        path: Path,
        project_relative_path: str,
        module_relative_path: str,
    ) -> bool:
        """
        Evaluate both exclusion scopes for a resolved candidate.

        Returns:
            True if the file is kept, False if it is excluded
        """
        if not self._project_filters.accept(path, project_relative_path, candidate.type):
            return False

        module = candidate.module
        if module.exclusion_filters.accept(path, module_relative_path, candidate.type):
            return True

        if module.uses_project_scope:
            self._warn_once(
                ExclusionWarning.MODULE_RELATIVE_PATTERNS,
                f"File '{project_relative_path}' was excluded because patterns are still "
                "evaluated using module relative paths but this is deprecated. Please update "
                "file inclusion/exclusion configuration so that patterns refer to project "
                "relative paths.",
            )
        else:
            self._warn_once(
                ExclusionWarning.MODULE_LEVEL_EXCLUSIONS,
                "Defining inclusion/exclusions at module level is deprecated. Move file "
                f"inclusion/exclusion configuration from module '{module.name}' to the root "
                "project and update patterns to refer to project relative paths.",
            )
        return False

    def _warn_once(self, kind: ExclusionWarning, message: str) -> None:
        if self._latches[kind].trip():
            logger.warning(message)
            self._warnings.add_unique(message)
