"""Analysis configuration module.

Configuration is read from environment variables prefixed with ``JREADY_``.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from jakarta_readiness.exceptions import ConfigurationError


class UnresolvedJarPolicy(str, Enum):
    """What blocker detection does when a mapped artifact has no JAR evidence.

    IGNORE: no blocker; the artifact only gets a version recommendation.
    FLAG: emit a low-confidence VERSION_INCOMPATIBLE blocker.
    """

    IGNORE = "ignore"
    FLAG = "flag"


def _home() -> Path:
    return Path(os.path.expanduser("~"))


@dataclass
class AnalysisConfig:
    """Analysis configuration container.

    Attributes:
        max_workers: Worker pool size for classification and JAR comparison
        compare_timeout: Seconds before a single binary comparison is abandoned
        max_phase_size: Upper bound of estimated file touches per plan phase
        max_transitive_depth: How deep local-repository POMs are followed
        unresolved_jar_policy: Blocker policy when JARs cannot be resolved
        maven_repo: Local Maven repository root
        gradle_cache: Gradle module cache root (files-2.1)
        japicmp_jar: Path to the japicmp standalone JAR (optional)
        java: Java executable used to run japicmp
        mappings_file: Extra javax -> jakarta mappings (JSON, optional)
        file_minutes: Planned effort per touched file
        breaking_change_minutes: Planned effort per breaking change
        blocker_minutes: Planned effort per artifact without a Jakarta version
    """

    max_workers: int = 8
    compare_timeout: float = 60.0
    max_phase_size: int = 25
    max_transitive_depth: int = 8
    unresolved_jar_policy: UnresolvedJarPolicy = UnresolvedJarPolicy.IGNORE

    maven_repo: Path | None = None
    gradle_cache: Path | None = None
    japicmp_jar: Path | None = None
    java: str = "java"
    mappings_file: Path | None = None

    file_minutes: int = 15
    breaking_change_minutes: int = 30
    blocker_minutes: int = 240

    def __post_init__(self) -> None:
        if self.maven_repo is None:
            self.maven_repo = _home() / ".m2" / "repository"
        if self.gradle_cache is None:
            self.gradle_cache = _home() / ".gradle" / "caches" / "modules-2" / "files-2.1"

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        """Create configuration from environment variables.

        Environment variables:
            JREADY_MAX_WORKERS: Worker pool size (default: 8)
            JREADY_COMPARE_TIMEOUT: Seconds per JAR comparison (default: 60)
            JREADY_MAX_PHASE_SIZE: File touches per plan phase (default: 25)
            JREADY_MAX_TRANSITIVE_DEPTH: Local repository POM depth (default: 8)
            JREADY_UNRESOLVED_JAR_POLICY: "ignore" or "flag" (default: "ignore")
            JREADY_MAVEN_REPO: Local Maven repository (default: ~/.m2/repository)
            JREADY_GRADLE_CACHE: Gradle module cache (default: ~/.gradle/caches/modules-2/files-2.1)
            JREADY_JAPICMP_JAR: japicmp standalone JAR path
            JREADY_JAVA: Java executable (default: "java")
            JREADY_MAPPINGS_FILE: JSON file with extra coordinate mappings
            JREADY_FILE_MINUTES / JREADY_BREAKING_CHANGE_MINUTES / JREADY_BLOCKER_MINUTES:
                Effort units used by the planner
        """
        maven_repo = os.getenv("JREADY_MAVEN_REPO")
        gradle_cache = os.getenv("JREADY_GRADLE_CACHE")
        japicmp = os.getenv("JREADY_JAPICMP_JAR")
        mappings = os.getenv("JREADY_MAPPINGS_FILE")
        policy = os.getenv("JREADY_UNRESOLVED_JAR_POLICY", UnresolvedJarPolicy.IGNORE.value).lower()

        try:
            return cls(
                max_workers=int(os.getenv("JREADY_MAX_WORKERS", "8")),
                compare_timeout=float(os.getenv("JREADY_COMPARE_TIMEOUT", "60")),
                max_phase_size=int(os.getenv("JREADY_MAX_PHASE_SIZE", "25")),
                max_transitive_depth=int(os.getenv("JREADY_MAX_TRANSITIVE_DEPTH", "8")),
                unresolved_jar_policy=UnresolvedJarPolicy(policy),
                maven_repo=Path(maven_repo).expanduser() if maven_repo else None,
                gradle_cache=Path(gradle_cache).expanduser() if gradle_cache else None,
                japicmp_jar=Path(japicmp).expanduser() if japicmp else None,
                java=os.getenv("JREADY_JAVA", "java"),
                mappings_file=Path(mappings).expanduser() if mappings else None,
                file_minutes=int(os.getenv("JREADY_FILE_MINUTES", "15")),
                breaking_change_minutes=int(os.getenv("JREADY_BREAKING_CHANGE_MINUTES", "30")),
                blocker_minutes=int(os.getenv("JREADY_BLOCKER_MINUTES", "240")),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid JREADY_* environment value: {exc}") from exc

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigurationError: If a value is out of range or a file is missing.
        """
        if self.max_workers < 1:
            raise ConfigurationError("JREADY_MAX_WORKERS must be at least 1")
        if self.compare_timeout <= 0:
            raise ConfigurationError("JREADY_COMPARE_TIMEOUT must be positive")
        if self.max_phase_size < 1:
            raise ConfigurationError("JREADY_MAX_PHASE_SIZE must be at least 1")
        if self.max_transitive_depth < 1:
            raise ConfigurationError("JREADY_MAX_TRANSITIVE_DEPTH must be at least 1")
        if min(self.file_minutes, self.breaking_change_minutes, self.blocker_minutes) < 0:
            raise ConfigurationError("Effort units must not be negative")
        if self.mappings_file is not None and not self.mappings_file.is_file():
            raise ConfigurationError(f"JREADY_MAPPINGS_FILE not found: {self.mappings_file}")
        if self.japicmp_jar is not None and not self.japicmp_jar.is_file():
            raise ConfigurationError(f"JREADY_JAPICMP_JAR not found: {self.japicmp_jar}")
