"""Locate artifact JARs on the local machine."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Protocol

from jakarta_readiness.models import Artifact

logger = logging.getLogger(__name__)


class JarResolver(Protocol):
    """Maps an artifact to a local JAR path, or None when it is not available."""

    def resolve(self, artifact: Artifact) -> Path | None:
        ...


class LocalRepositoryJarResolver:
    """Looks in the Gradle module cache first, then the local Maven repository.

    Gradle cache layout keeps dots in the group id::

        files-2.1/{groupId}/{artifactId}/{version}/{hash}/{artifactId}-{version}.jar

    Maven turns the group id into directories::

        repository/{group/path}/{artifactId}/{version}/{artifactId}-{version}.jar
    """

    def __init__(self, maven_repo: Path | None = None, gradle_cache: Path | None = None) -> None:
        self.maven_repo = maven_repo
        self.gradle_cache = gradle_cache

    def resolve_from_gradle(self, artifact: Artifact) -> Path | None:
        if self.gradle_cache is None:
            return None
        version_dir = self.gradle_cache / artifact.group_id / artifact.artifact_id / artifact.version
        if not version_dir.is_dir():
            return None
        wanted = f"{artifact.artifact_id}-{artifact.version}.jar"
        try:
            candidates = sorted(p for p in version_dir.glob("*/*.jar") if p.is_file())
        except OSError as exc:
            logger.debug("Error searching Gradle cache for %s: %s", artifact.compact(), exc)
            return None
        for p in candidates:
            if p.name == wanted:
                return p
        return None

    def resolve_from_maven(self, artifact: Artifact) -> Path | None:
        if self.maven_repo is None:
            return None
        jar = (
            self.maven_repo.joinpath(*artifact.group_id.split("."))
            / artifact.artifact_id
            / artifact.version
            / f"{artifact.artifact_id}-{artifact.version}.jar"
        )
        return jar if jar.is_file() else None

    def resolve(self, artifact: Artifact) -> Path | None:
        jar = self.resolve_from_gradle(artifact) or self.resolve_from_maven(artifact)
        if jar is None:
            logger.debug("Could not resolve JAR for %s", artifact.compact())
        else:
            logger.debug("Resolved %s -> %s", artifact.compact(), jar)
        return jar


class CachingJarResolver:
    """Thread-safe resolve-once cache in front of another resolver.

    Concurrent callers asking for the same artifact wait on a single
    resolution; the delegate is called at most once per artifact. A delegate
    failure is cached as "not resolvable".
    """

    def __init__(self, delegate: JarResolver) -> None:
        self._delegate = delegate
        self._lock = threading.Lock()
        self._futures: dict[tuple[str, str, str], Future[Path | None]] = {}

    def resolve(self, artifact: Artifact) -> Path | None:
        with self._lock:
            future = self._futures.get(artifact.key)
            owner = future is None
            if owner:
                future = Future()
                self._futures[artifact.key] = future
        if owner:
            try:
                future.set_result(self._delegate.resolve(artifact))
            except Exception as exc:
                logger.warning("JAR resolution failed for %s: %s", artifact.compact(), exc)
                future.set_result(None)
        return future.result()

    def clear(self) -> None:
        with self._lock:
            self._futures.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._futures)
