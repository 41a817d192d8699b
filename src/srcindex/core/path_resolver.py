"""
PathResolver module for srcindex.

Canonicalizes candidate paths and enforces the project boundary:
- Parent directories are resolved to their real on-disk location and case
- A symlink in final position is kept as the file's identity
- Containment is checked against the fully resolved target
"""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path, PurePath

from .errors import PathResolutionError
from .models import ModuleContext, ProjectContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPath:
    """
    Result of resolving a candidate path.

    Attributes:
        path: Real path of the file without following a final symlink
        target: Fully resolved location of the file
        project_relative_path: '/'-separated path relative to the project base dir
        module_relative_path: '/'-separated path relative to the module base dir
    """

    path: Path
    target: Path
    project_relative_path: str
    module_relative_path: str


def to_relative_string(path: PurePath, base: PurePath) -> str | None:
    """
    Lexically subtract ``base`` from ``path``.

    Returns:
        The forward-slash relative path, or None if path is not under base
    """
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return None


def _casefold_match(entries: frozenset[str], name: str) -> str | None:
    """Return the entry of ``entries`` equal to ``name`` ignoring case."""
    folded = name.casefold()
    for entry in entries:
        if entry.casefold() == folded:
            return entry
    return None


class PathResolver:
    """Resolves candidate paths against a project's base directory."""

    def __init__(self, project: ProjectContext):
        self._project = project
        self._base_dir = project.base_dir
        # Directory listings, only read when a name must be case-corrected
        self._listings: dict[Path, frozenset[str]] = {}
        self._listings_lock = threading.Lock()

    def _listing(self, directory: Path, refresh: bool = False) -> frozenset[str]:
        with self._listings_lock:
            entries = None if refresh else self._listings.get(directory)
        if entries is None:
            entries = frozenset(os.listdir(directory))
            with self._listings_lock:
                self._listings[directory] = entries
        return entries

    def _real_name(self, parent: Path, name: str) -> str:
        """
        Return the on-disk spelling of an existing entry of ``parent``.

        Only reached after lstat succeeded, so a name missing from the
        listing means the filesystem matched it case-insensitively.
        """
        entries = self._listing(parent)
        if name in entries:
            return name
        entries = self._listing(parent, refresh=True)
        if name in entries:
            return name
        return _casefold_match(entries, name) or name

    def display_path(self, path: Path) -> str:
        """Forward-slash project-relative path of a candidate, absolute if outside."""
        absolute = Path(os.path.abspath(path))
        return to_relative_string(absolute, self._base_dir) or absolute.as_posix()

    def real_path(self, path: Path) -> Path:
        """
        Resolve parents of ``path`` without dereferencing its last component.

        Raises:
            PathResolutionError: If the path can not be resolved on disk
        """
        path = Path(os.path.abspath(path))
        try:
            parent = path.parent.resolve(strict=True)
            # the link itself must exist, its target may be missing
            os.lstat(parent / path.name)
            return parent / self._real_name(parent, path.name)
        except OSError as e:
            raise PathResolutionError(self.display_path(path), e) from e

    def resolve(self, path: Path, module: ModuleContext) -> ResolvedPath | None:
        """
        Resolve a candidate and check that it belongs to the project.

        A dangling symlink is accepted; its containment is checked on the
        location it points to.

        Args:
            path: Absolute candidate path
            module: Module owning the candidate

        Returns:
            ResolvedPath, or None if the file is located outside the project

        Raises:
            PathResolutionError: On I/O errors while resolving
        """
        real = self.real_path(path)
        try:
            target = real.resolve(strict=False)
        except (OSError, RuntimeError) as e:
            raise PathResolutionError(self.display_path(path), e) from e

        project_relative = to_relative_string(real, self._base_dir)
        if project_relative is None or to_relative_string(target, self._base_dir) is None:
            logger.warning(
                f"File '{real}' is ignored. It is not located in project basedir '{self._base_dir}'."
            )
            return None

        module_relative = to_relative_string(real, module.base_dir)
        if module_relative is None:
            logger.debug(
                f"'{project_relative}' is not located in module basedir '{module.base_dir}'"
            )
            module_relative = project_relative

        return ResolvedPath(
            path=real,
            target=target,
            project_relative_path=project_relative,
            module_relative_path=module_relative,
        )
