"""
Language detection for indexed files.

LanguageDetection maps languages to glob patterns (gitignore syntax) matched
on the project-relative path. LanguageGate applies the forced-language
restriction on top of any LanguageResolver.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import pathspec
import yaml

from .errors import MessageError
from .interfaces import LanguageResolver

logger = logging.getLogger(__name__)

# Default path to the languages configuration file
_DEFAULT_LANGUAGES_CONFIG = Path(__file__).parent / "languages.yaml"


def load_language_patterns(config_path: Path | str) -> dict[str, list[str]]:
    """
    Load language patterns from a YAML file.

    Expected format:
        language_key:
          - "**/*.ext1"
          - "**/*.ext2"

    Raises:
        ValueError: If the file is not valid YAML or not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        logger.warning(f"Languages config not found: {config_path}, using no language")
        return {}

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse languages config: {e}")
        raise ValueError(f"Invalid YAML in languages config: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid languages config format: expected dict, got {type(data)}")

    patterns: dict[str, list[str]] = {}
    for language, language_patterns in data.items():
        if not isinstance(language_patterns, list):
            logger.warning(
                f"Invalid patterns for {language}: expected list, got {type(language_patterns)}"
            )
            continue
        patterns[str(language)] = [str(p) for p in language_patterns]
    return patterns


class LanguageDetection(LanguageResolver):
    """
    Pattern based language resolver.

    Example:
        >>> detection = LanguageDetection({"xoo": ["**/*.xoo"]})
        >>> detection.detect(Path("/p/src/a.xoo"), "src/a.xoo")
        'xoo'
    """

    def __init__(
        self,
        patterns_by_language: Optional[Mapping[str, list[str]]] = None,
        forced_language: Optional[str] = None,
    ):
        """
        Initialize the detection.

        Args:
            patterns_by_language: Patterns per language key. If None, the
                packaged defaults from languages.yaml are used.
            forced_language: Restrict the analysis to this language

        Raises:
            MessageError: If the forced language is not a known language
        """
        if patterns_by_language is None:
            patterns_by_language = load_language_patterns(_DEFAULT_LANGUAGES_CONFIG)

        self._patterns: dict[str, pathspec.PathSpec] = {}
        for language, patterns in patterns_by_language.items():
            if patterns:
                self._patterns[language] = pathspec.PathSpec.from_lines("gitwildmatch", patterns)
                logger.debug(f"Declared patterns of language {language} were converted to {', '.join(patterns)}")

        if forced_language and forced_language not in self._patterns:
            raise MessageError(f"You must install a plugin that supports the language '{forced_language}'")
        self._forced_language = forced_language or None

    @classmethod
    def from_yaml(cls, config_path: Path | str, forced_language: Optional[str] = None) -> "LanguageDetection":
        return cls(load_language_patterns(config_path), forced_language)

    @property
    def languages(self) -> set[str]:
        return set(self._patterns)

    def forced_language(self) -> Optional[str]:
        return self._forced_language

    def detect(self, path: Path, relative_path: str) -> Optional[str]:
        if self._forced_language is not None:
            if self._patterns[self._forced_language].match_file(relative_path):
                return self._forced_language
            return None

        detected: Optional[str] = None
        for language, spec in self._patterns.items():
            if not spec.match_file(relative_path):
                continue
            if detected is not None:
                raise MessageError(
                    f"Language of file '{relative_path}' can not be decided as the file matches "
                    f"patterns of both {detected} and {language}"
                )
            detected = language
        return detected


@dataclass(frozen=True)
class LanguageDecision:
    """Outcome of the language gate for one file."""

    accepted: bool
    language: Optional[str] = None


class LanguageGate:
    """Resolves the language of a file and applies the forced language."""

    def __init__(self, resolver: LanguageResolver):
        self._resolver = resolver

    def resolve(self, path: Path, project_relative_path: str) -> LanguageDecision:
        """
        Resolve the language of a file.

        Returns:
            A rejected decision when a forced language is set and the file
            doesn't belong to it; otherwise an accepted decision whose
            language may be None.
        """
        language = self._resolver.detect(path, project_relative_path)
        if language is None:
            forced = self._resolver.forced_language()
            if forced is not None:
                logger.warning(
                    f"File '{path}' is ignored because it doesn't belong to the forced language '{forced}'"
                )
                return LanguageDecision(accepted=False)
        return LanguageDecision(accepted=True, language=language)
