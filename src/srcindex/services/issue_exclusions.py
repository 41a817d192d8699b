"""
Issue exclusion patterns attached to indexed files.

Multicriteria patterns associate a rule pattern with a resource pattern;
each indexed file collects the patterns whose resource pattern matches its
project-relative path. "All file" regexps ignore every issue of a file whose
content matches, and are evaluated lazily on request.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pathspec

from srcindex.core.interfaces import IssueExclusionRegistrar
from srcindex.core.models import IndexedFileRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueExclusionPattern:
    """Ignore issues of rules matching ``rule_key`` on files matching ``resource_key``."""

    resource_key: str
    rule_key: str
    _resource_spec: pathspec.PathSpec = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_resource_spec", pathspec.PathSpec.from_lines("gitwildmatch", [self.resource_key])
        )

    def matches_resource(self, project_relative_path: str) -> bool:
        return self._resource_spec.match_file(project_relative_path)


class IssueExclusionsLoader(IssueExclusionRegistrar):
    """Default issue-exclusion registrar."""

    def __init__(
        self,
        multicriteria: Iterable[IssueExclusionPattern] = (),
        allfile_regexps: Iterable[str] = (),
    ):
        self._multicriteria = list(multicriteria)
        self._allfile_regexps = [re.compile(r) for r in allfile_regexps]
        self._patterns_by_id: dict[int, list[IssueExclusionPattern]] = {}
        self._ids_by_path: dict[str, int] = {}
        self._lock = threading.Lock()

        for pattern in self._allfile_regexps:
            logger.info(f"- Exclusion pattern '{pattern.pattern}': every issue in this file will be ignored.")

    @classmethod
    def from_config(cls, multicriteria: list[dict], allfile_regexps: list[str]) -> "IssueExclusionsLoader":
        patterns = [
            IssueExclusionPattern(resource_key=str(p["resource_key"]), rule_key=str(p.get("rule_key", "*")))
            for p in multicriteria
        ]
        return cls(patterns, allfile_regexps)

    def active(self) -> bool:
        return bool(self._multicriteria) or bool(self._allfile_regexps)

    def register(self, project_relative_path: str, file_id: int) -> None:
        matching = [p for p in self._multicriteria if p.matches_resource(project_relative_path)]
        with self._lock:
            self._ids_by_path[project_relative_path] = file_id
            if matching:
                self._patterns_by_id[file_id] = matching

    def file_id(self, project_relative_path: str) -> Optional[int]:
        with self._lock:
            return self._ids_by_path.get(project_relative_path)

    def patterns_for(self, file_id: int) -> list[IssueExclusionPattern]:
        with self._lock:
            return list(self._patterns_by_id.get(file_id, []))

    def ignores_all_issues(self, record: IndexedFileRecord) -> bool:
        """
        Check the file content against the "all file" regexps.

        Reads the file with the charset detected by its metadata, so calling
        this triggers metadata computation for lazily indexed files.
        """
        if not self._allfile_regexps:
            return False
        logger.debug(f"'{record.project_relative_path}' generating issue exclusions")
        charset = record.metadata().charset
        content = record.path.read_bytes().decode(charset, errors="replace")
        return any(regexp.search(content) for regexp in self._allfile_regexps)
