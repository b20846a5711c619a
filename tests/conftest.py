"""Pytest configuration and fixtures for jakarta-readiness tests."""
from __future__ import annotations

import os
from pathlib import Path

import pytest

from jakarta_readiness.config import AnalysisConfig
from jakarta_readiness.models import Artifact


class NoJars:
    """Resolver for a machine with empty local repositories."""

    def __init__(self) -> None:
        self.calls: list[Artifact] = []

    def resolve(self, artifact: Artifact) -> Path | None:
        self.calls.append(artifact)
        return None


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's JREADY_* settings out of the tests."""
    for key in list(os.environ):
        if key.startswith("JREADY_"):
            monkeypatch.delenv(key)


@pytest.fixture
def no_jars() -> NoJars:
    return NoJars()


@pytest.fixture
def config(tmp_path: Path) -> AnalysisConfig:
    """Configuration pointing at empty local repositories."""
    return AnalysisConfig(
        max_workers=4,
        maven_repo=tmp_path / "m2",
        gradle_cache=tmp_path / "gradle",
    )
