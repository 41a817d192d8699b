"""
Configuration module for srcindex.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section) or {}
    value = section_defaults.get(key, fallback)
    # Mutable defaults must not be shared between instances
    if isinstance(value, (list, dict)):
        return type(value)(value)
    return value


@dataclass
class ModuleConfig:
    """Configuration of one module of a multi-module project."""

    key: str
    base_dir: str
    name: Optional[str] = None
    encoding: Optional[str] = None
    sources: list[str] = field(default_factory=lambda: ["."])
    tests: list[str] = field(default_factory=list)
    # Legacy module-level patterns, deprecated in favor of project patterns
    inclusions: list[str] = field(default_factory=list)
    exclusions: list[str] = field(default_factory=list)
    test_inclusions: list[str] = field(default_factory=list)
    test_exclusions: list[str] = field(default_factory=list)

    @property
    def declares_patterns(self) -> bool:
        return bool(self.inclusions or self.exclusions or self.test_inclusions or self.test_exclusions)


@dataclass
class ProjectConfig:
    """Configuration of the analyzed project."""

    key: str = field(default_factory=lambda: _get_default("project", "key", "project"))
    base_dir: str = field(default_factory=lambda: _get_default("project", "base_dir", "."))
    branch: Optional[str] = field(default_factory=lambda: _get_default("project", "branch"))
    encoding: str = field(default_factory=lambda: _get_default("project", "encoding", "UTF-8"))
    sources: list[str] = field(default_factory=lambda: _get_default("project", "sources", ["."]))
    tests: list[str] = field(default_factory=lambda: _get_default("project", "tests", []))
    modules: list[ModuleConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.modules = [m if isinstance(m, ModuleConfig) else ModuleConfig(**m) for m in self.modules]


@dataclass
class IndexingConfig:
    """Configuration for the indexing process."""

    inclusions: list[str] = field(default_factory=lambda: _get_default("indexing", "inclusions", []))
    exclusions: list[str] = field(default_factory=lambda: _get_default("indexing", "exclusions", []))
    test_inclusions: list[str] = field(
        default_factory=lambda: _get_default("indexing", "test_inclusions", [])
    )
    test_exclusions: list[str] = field(
        default_factory=lambda: _get_default("indexing", "test_exclusions", [])
    )
    preload_metadata: bool = field(
        default_factory=lambda: _get_default("indexing", "preload_metadata", False)
    )
    forced_language: Optional[str] = field(
        default_factory=lambda: _get_default("indexing", "forced_language")
    )
    max_workers: int = field(default_factory=lambda: _get_default("indexing", "max_workers", 4))
    progress_period_seconds: float = field(
        default_factory=lambda: _get_default("indexing", "progress_period_seconds", 10.0)
    )


@dataclass
class IssueExclusionsConfig:
    """Configuration of issue exclusion patterns."""

    allfile_regexps: list[str] = field(
        default_factory=lambda: _get_default("issue_exclusions", "allfile_regexps", [])
    )
    multicriteria: list[dict] = field(
        default_factory=lambda: _get_default("issue_exclusions", "multicriteria", [])
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(default_factory=lambda: _get_default("logging", "format", "%(message)s"))


@dataclass
class ScannerConfig:
    """Main configuration class for srcindex."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    languages: dict[str, list[str]] = field(
        default_factory=lambda: dict(_load_defaults().get("languages") or {})
    )
    issue_exclusions: IssueExclusionsConfig = field(default_factory=IssueExclusionsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "ScannerConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            ScannerConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "ScannerConfig":
        """Create ScannerConfig from a dictionary."""
        config = cls()

        if "project" in data:
            config.project = ProjectConfig(**data["project"])
        if "indexing" in data:
            config.indexing = IndexingConfig(**data["indexing"])
        if "languages" in data:
            config.languages = {str(k): list(v) for k, v in (data["languages"] or {}).items()}
        if "issue_exclusions" in data:
            config.issue_exclusions = IssueExclusionsConfig(**data["issue_exclusions"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def apply_env_overrides(self) -> "ScannerConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: SRCINDEX_<SECTION>_<KEY>
        Examples:
            - SRCINDEX_PROJECT_KEY
            - SRCINDEX_INDEXING_PRELOAD_METADATA
            - SRCINDEX_INDEXING_EXCLUSIONS (comma separated)
            - SRCINDEX_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Project config
            "SRCINDEX_PROJECT_KEY": ("project", "key", str),
            "SRCINDEX_PROJECT_BASE_DIR": ("project", "base_dir", str),
            "SRCINDEX_PROJECT_BRANCH": ("project", "branch", str),
            "SRCINDEX_PROJECT_ENCODING": ("project", "encoding", str),
            "SRCINDEX_PROJECT_SOURCES": ("project", "sources", _parse_list),
            "SRCINDEX_PROJECT_TESTS": ("project", "tests", _parse_list),
            # Indexing config
            "SRCINDEX_INDEXING_INCLUSIONS": ("indexing", "inclusions", _parse_list),
            "SRCINDEX_INDEXING_EXCLUSIONS": ("indexing", "exclusions", _parse_list),
            "SRCINDEX_INDEXING_TEST_INCLUSIONS": ("indexing", "test_inclusions", _parse_list),
            "SRCINDEX_INDEXING_TEST_EXCLUSIONS": ("indexing", "test_exclusions", _parse_list),
            "SRCINDEX_INDEXING_PRELOAD_METADATA": ("indexing", "preload_metadata", _parse_bool),
            "SRCINDEX_INDEXING_FORCED_LANGUAGE": ("indexing", "forced_language", str),
            "SRCINDEX_INDEXING_MAX_WORKERS": ("indexing", "max_workers", int),
            "SRCINDEX_INDEXING_PROGRESS_PERIOD_SECONDS": ("indexing", "progress_period_seconds", float),
            # Logging config
            "SRCINDEX_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma separated string to a list of trimmed, non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> ScannerConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        ScannerConfig instance
    """
    if config_path:
        config = ScannerConfig.from_file(config_path)
    else:
        config = ScannerConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
