"""
Services Layer - Indexing session, registry and file indexer.
"""

from srcindex.services.container import ServicesContainer, build_project, create_services
from srcindex.services.file_indexer import FileIndexer
from srcindex.services.indexing_models import IndexingResult
from srcindex.services.issue_exclusions import IssueExclusionPattern, IssueExclusionsLoader
from srcindex.services.progress import ProgressReport
from srcindex.services.registry import ComponentRegistry, IdGenerator, RegistryFrozenError
from srcindex.services.session import AnalysisWarnings, IndexingSession

__all__ = [
    "FileIndexer",
    "IndexingResult",
    "IndexingSession",
    "AnalysisWarnings",
    "ComponentRegistry",
    "IdGenerator",
    "RegistryFrozenError",
    "ProgressReport",
    "IssueExclusionsLoader",
    "IssueExclusionPattern",
    "ServicesContainer",
    "build_project",
    "create_services",
]
