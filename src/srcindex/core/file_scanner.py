"""
Candidate discovery for srcindex.

Walks the source and test directories of each module and yields candidate
paths. Deciding whether a candidate is actually indexed is the job of the
FileIndexer; the walker only skips hidden and well-known build directories.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from .models import CandidatePath, FileType, ModuleContext

logger = logging.getLogger(__name__)

# Directories never descended into
DEFAULT_SKIPPED_DIRS: frozenset[str] = frozenset([
    "__pycache__",
    "node_modules",
    ".venv",
    "venv",
    ".tox",
    ".pytest_cache",
    ".hypothesis",
])


def _is_skipped_dir(name: str) -> bool:
    return name.startswith(".") or name in DEFAULT_SKIPPED_DIRS


def walk_files(root: Path) -> Iterator[Path]:
    """
    Recursively yield files under ``root`` in a stable order.

    Symlinked files are yielded as-is; symlinked directories are not
    followed.
    """
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except PermissionError as e:
        logger.warning(f"Permission denied accessing directory: {root} - {e}")
        return

    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            if _is_skipped_dir(entry.name):
                logger.debug(f"Ignoring: {path}")
                continue
            yield from walk_files(path)
        elif entry.is_file() or entry.is_symlink():
            yield path


def module_candidates(
    module: ModuleContext, sources: Iterable[str], tests: Iterable[str]
) -> Iterator[CandidatePath]:
    """
    Yield candidates of a module.

    Args:
        module: Owning module
        sources: Files or directories holding main files, relative to the module
        tests: Files or directories holding test files, relative to the module
    """
    for entries, file_type in ((sources, FileType.MAIN), (tests, FileType.TEST)):
        for entry in entries:
            location = (module.base_dir / entry).absolute()
            if location.is_dir():
                for path in walk_files(location):
                    yield CandidatePath(path=path, module=module, type=file_type)
            elif location.exists() or location.is_symlink():
                yield CandidatePath(path=location, module=module, type=file_type)
            else:
                logger.warning(f"{file_type.value.lower()} location '{entry}' of module '{module.name}' doesn't exist")
