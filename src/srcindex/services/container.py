"""
Services container for srcindex.

Builds the project context, the file indexer and their collaborators from a
ScannerConfig, so that the CLI and library callers share one setup path.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from srcindex.core.config import ScannerConfig, load_config
from srcindex.core.exclusions import PatternExclusionFilters
from srcindex.core.file_scanner import module_candidates
from srcindex.core.language import LanguageDetection
from srcindex.core.models import CandidatePath, ProjectContext

from .file_indexer import FileIndexer
from .issue_exclusions import IssueExclusionsLoader
from .progress import ProgressReport
from .session import IndexingSession


@dataclass
class ServicesContainer:
    """
    Container holding the services of one indexing run.

    Attributes:
        config: Application configuration
        project: Project context with its modules
        session: Shared state of the run (registry, warnings, counters)
        indexer: File indexer bound to the session
        issue_exclusions: Secondary registrar of indexed files
        sources: Source/test locations per module key
    """

    config: ScannerConfig
    project: ProjectContext
    session: IndexingSession
    indexer: FileIndexer
    issue_exclusions: IssueExclusionsLoader
    sources: dict[str, tuple[list[str], list[str]]]

    def candidates(self) -> Iterator[CandidatePath]:
        """Yield candidates of every module in declaration order."""
        for module in self.project.modules:
            sources, tests = self.sources[module.key]
            yield from module_candidates(module, sources, tests)


def build_project(config: ScannerConfig, base_dir: Optional[Path] = None) -> tuple[ProjectContext, dict]:
    """
    Create the project context and module contexts from configuration.

    Modules declaring their own patterns get a distinct exclusion scope;
    all others evaluate the project's patterns.

    Returns:
        (project, sources) where sources maps module key to (sources, tests)
    """
    project_cfg = config.project
    indexing = config.indexing
    root = Path(base_dir if base_dir is not None else project_cfg.base_dir)

    project = ProjectContext(
        key=project_cfg.key,
        base_dir=root,
        exclusion_filters=PatternExclusionFilters(
            inclusions=indexing.inclusions,
            exclusions=indexing.exclusions,
            test_inclusions=indexing.test_inclusions,
            test_exclusions=indexing.test_exclusions,
        ),
        branch=project_cfg.branch,
    )

    sources: dict[str, tuple[list[str], list[str]]] = {}
    if not project_cfg.modules:
        module = project.root_module(encoding=project_cfg.encoding)
        sources[module.key] = (list(project_cfg.sources), list(project_cfg.tests))
        return project, sources

    for module_cfg in project_cfg.modules:
        module_filters = None
        if module_cfg.declares_patterns:
            module_filters = PatternExclusionFilters(
                inclusions=module_cfg.inclusions,
                exclusions=module_cfg.exclusions,
                test_inclusions=module_cfg.test_inclusions,
                test_exclusions=module_cfg.test_exclusions,
            )
        module = project.add_module(
            key=module_cfg.key,
            base_dir=project.base_dir / module_cfg.base_dir,
            name=module_cfg.name,
            encoding=module_cfg.encoding or project_cfg.encoding,
            exclusion_filters=module_filters,
        )
        sources[module.key] = (list(module_cfg.sources), list(module_cfg.tests))
    return project, sources


def create_services(
    config: Optional[ScannerConfig] = None,
    base_dir: Optional[Path] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
) -> ServicesContainer:
    """
    Create all services of an indexing run.

    Args:
        config: Configuration; loaded from defaults and environment if None
        base_dir: Overrides the configured project base directory
        progress_callback: Receives every progress message

    Raises:
        MessageError: If the forced language is unknown
    """
    config = config or load_config()
    project, sources = build_project(config, base_dir)

    language_detection = LanguageDetection(
        config.languages or None,
        forced_language=config.indexing.forced_language,
    )
    issue_exclusions = IssueExclusionsLoader.from_config(
        config.issue_exclusions.multicriteria,
        config.issue_exclusions.allfile_regexps,
    )
    session = IndexingSession()
    indexer = FileIndexer(
        project=project,
        language_resolver=language_detection,
        session=session,
        preload_metadata=config.indexing.preload_metadata,
        issue_exclusions=issue_exclusions,
        progress=ProgressReport(config.indexing.progress_period_seconds, progress_callback),
        max_workers=config.indexing.max_workers,
    )
    return ServicesContainer(
        config=config,
        project=project,
        session=session,
        indexer=indexer,
        issue_exclusions=issue_exclusions,
        sources=sources,
    )
