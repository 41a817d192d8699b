"""
File Indexer for srcindex.

Indexes candidate files into the shared component registry. Each candidate
flows through path resolution, exclusion arbitration, the language gate and
registration; skipped candidates are counted per category, fatal conditions
stop the whole run.

Candidates can be processed on a ThreadPoolExecutor. Workers only share the
IndexingSession, whose state is accessed through atomic operations.
"""

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Iterable, Optional, Sequence

from srcindex.core.errors import DuplicatePathError, IndexingInternalError, MessageError
from srcindex.core.exclusions import ExclusionArbiter
from srcindex.core.interfaces import (
    FileFilterExtension,
    IssueExclusionRegistrar,
    LanguageResolver,
    MetadataCallback,
    ProgressReporter,
)
from srcindex.core.language import LanguageGate
from srcindex.core.metadata import MetadataGenerator, MetadataScheduler
from srcindex.core.models import CandidatePath, FileType, IndexedFileRecord, ProjectContext
from srcindex.core.path_resolver import PathResolver, ResolvedPath

from .indexing_models import IndexingResult
from .progress import ProgressReport, indexed_files_message, pluralize_files
from .registry import RegistryFrozenError
from .session import IndexingSession

logger = logging.getLogger(__name__)


class FileIndexer:
    """
    Indexes candidate files of a project.

    Args:
        project: Project being analyzed; its exclusion filters form the
            project scope
        language_resolver: Detects languages and the forced language
        session: Shared run state (a new one when None)
        metadata_callback: Computes file metadata (default: MetadataGenerator)
        preload_metadata: Compute metadata at indexing time
        issue_exclusions: Optional secondary registrar of indexed files
        filters: Ordered programmatic filters evaluated on built records
        progress: Receives progress messages (default: ProgressReport)
        max_workers: Number of worker threads used by index_files
    """

    def __init__(
        self,
        project: ProjectContext,
        language_resolver: LanguageResolver,
        session: Optional[IndexingSession] = None,
        metadata_callback: Optional[MetadataCallback] = None,
        preload_metadata: bool = False,
        issue_exclusions: Optional[IssueExclusionRegistrar] = None,
        filters: Sequence[FileFilterExtension] = (),
        progress: Optional[ProgressReporter] = None,
        max_workers: int = 1,
    ):
        self._project = project
        self._session = session or IndexingSession()
        self._path_resolver = PathResolver(project)
        self._arbiter = ExclusionArbiter(
            project.exclusion_filters, self._session.warnings, self._session.latches
        )
        self._language_gate = LanguageGate(language_resolver)
        self._metadata = MetadataScheduler(metadata_callback or MetadataGenerator(), preload_metadata)
        self._issue_exclusions = issue_exclusions
        self._filters = list(filters)
        self._progress = progress or ProgressReport()
        self._max_workers = max(1, max_workers)

    @property
    def session(self) -> IndexingSession:
        return self._session

    def index_file(self, candidate: CandidatePath) -> Optional[IndexedFileRecord]:
        """
        Index a single candidate.

        Returns:
            The registered record, or None if the candidate was skipped

        Raises:
            MessageError: On a fatal condition; the session is stopped first
            IndexingInternalError: On any unexpected failure; the session is
                stopped first
        """
        if self._session.stopped:
            return None
        self._session.counters.increment("candidates")
        try:
            return self._index(candidate)
        except MessageError as e:
            self._session.fail(e)
            raise
        except Exception as e:
            error = IndexingInternalError(f"Unexpected error while indexing {candidate.path}: {e}")
            self._session.fail(error)
            raise error from e

    def _index(self, candidate: CandidatePath) -> Optional[IndexedFileRecord]:
        resolved = self._path_resolver.resolve(candidate.path, candidate.module)
        if resolved is None:
            self._session.counters.increment("outside_basedir")
            return None

        if not self._arbiter.accept(
            candidate, resolved.path, resolved.project_relative_path, resolved.module_relative_path
        ):
            self._session.counters.increment("excluded_by_patterns")
            return None

        decision = self._language_gate.resolve(resolved.path, resolved.project_relative_path)
        if not decision.accepted:
            self._session.counters.increment("forced_language_skipped")
            return None

        return self._register(candidate, resolved, decision.language)

    def _register(
        self, candidate: CandidatePath, resolved: ResolvedPath, language: Optional[str]
    ) -> Optional[IndexedFileRecord]:
        record = IndexedFileRecord(
            id=self._session.ids.next_id(),
            path=resolved.path,
            project_relative_path=resolved.project_relative_path,
            module_relative_path=resolved.module_relative_path,
            type=candidate.type,
            language=language,
            module_key=candidate.module.key,
            _metadata=self._metadata.defer(candidate.module),
        )

        # Filters may trigger metadata computation
        for file_filter in self._filters:
            if not file_filter.accept(record):
                logger.debug(f"'{record.project_relative_path}' excluded by {file_filter.name}")
                self._session.counters.increment("excluded_by_extensions")
                return None

        try:
            existing = self._session.registry.insert_if_absent(record.project_relative_path, record)
        except RegistryFrozenError:
            logger.debug(f"'{record.project_relative_path}' not indexed, indexing was stopped")
            return None
        if existing is not None:
            raise DuplicatePathError(record.project_relative_path)

        if self._issue_exclusions is not None and self._issue_exclusions.active():
            self._issue_exclusions.register(record.project_relative_path, record.id)

        as_test = "as test " if record.type == FileType.TEST else ""
        logger.debug(
            f"'{record.project_relative_path}' indexed {as_test}with language '{record.language or 'null'}'"
        )

        self._metadata.after_registration(record)

        count = len(self._session.registry)
        self._progress.message(indexed_files_message(count, record.project_relative_path))
        return record

    def index_files(self, candidates: Iterable[CandidatePath]) -> IndexingResult:
        """
        Index all candidates and summarize the run.

        Raises:
            MessageError: The first fatal error of the run
            IndexingInternalError: On any unexpected failure
        """
        start_time = time.time()
        if self._max_workers == 1:
            for candidate in candidates:
                self.index_file(candidate)
        else:
            self._index_parallel(candidates)

        result = self._build_result(time.time() - start_time)
        if isinstance(self._progress, ProgressReport):
            self._progress.stop(f"{result.indexed_files} {pluralize_files(result.indexed_files)} indexed")
        return result

    def _index_parallel(self, candidates: Iterable[CandidatePath]) -> None:
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = [executor.submit(self.index_file, candidate) for candidate in candidates]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
        # In-flight candidates have finished here; surface the first fatal error
        failure = self._session.failure
        if failure is not None:
            raise failure
        for future in done:
            future.result()

    def _build_result(self, duration: float) -> IndexingResult:
        counters = self._session.counters.snapshot()
        return IndexingResult(
            candidates=counters["candidates"],
            indexed_files=len(self._session.registry),
            outside_basedir=counters["outside_basedir"],
            excluded_by_patterns=counters["excluded_by_patterns"],
            forced_language_skipped=counters["forced_language_skipped"],
            excluded_by_extensions=counters["excluded_by_extensions"],
            duration_seconds=duration,
        )
