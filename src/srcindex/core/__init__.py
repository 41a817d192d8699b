"""
Core Layer - Path resolution, exclusions, language detection and file metadata.
"""

from srcindex.core.config import (
    IndexingConfig,
    IssueExclusionsConfig,
    LoggingConfig,
    ModuleConfig,
    ProjectConfig,
    ScannerConfig,
    load_config,
)
from srcindex.core.errors import (
    DuplicatePathError,
    IndexingInternalError,
    MessageError,
    MetadataError,
    PathResolutionError,
)
from srcindex.core.exclusions import ExclusionArbiter, ExclusionWarning, PatternExclusionFilters
from srcindex.core.interfaces import (
    ExclusionFilter,
    FileFilterExtension,
    IssueExclusionRegistrar,
    LanguageResolver,
    MetadataCallback,
    ProgressReporter,
    Registry,
    Warnings,
)
from srcindex.core.language import LanguageDecision, LanguageDetection, LanguageGate
from srcindex.core.metadata import MetadataGenerator, MetadataScheduler, compute_metadata
from srcindex.core.models import (
    CandidatePath,
    Computed,
    Failed,
    FileMetadata,
    FileType,
    IndexedFileRecord,
    ModuleContext,
    NotComputed,
    ProjectContext,
)
from srcindex.core.path_resolver import PathResolver, ResolvedPath

__all__ = [
    # Config
    "ScannerConfig",
    "ProjectConfig",
    "ModuleConfig",
    "IndexingConfig",
    "IssueExclusionsConfig",
    "LoggingConfig",
    "load_config",
    # Errors
    "MessageError",
    "DuplicatePathError",
    "MetadataError",
    "PathResolutionError",
    "IndexingInternalError",
    # Interfaces
    "ExclusionFilter",
    "LanguageResolver",
    "MetadataCallback",
    "Registry",
    "IssueExclusionRegistrar",
    "FileFilterExtension",
    "ProgressReporter",
    "Warnings",
    # Models
    "FileType",
    "ProjectContext",
    "ModuleContext",
    "CandidatePath",
    "IndexedFileRecord",
    "FileMetadata",
    "NotComputed",
    "Computed",
    "Failed",
    # Pipeline stages
    "PathResolver",
    "ResolvedPath",
    "ExclusionArbiter",
    "ExclusionWarning",
    "PatternExclusionFilters",
    "LanguageDetection",
    "LanguageGate",
    "LanguageDecision",
    "MetadataGenerator",
    "MetadataScheduler",
    "compute_metadata",
]
