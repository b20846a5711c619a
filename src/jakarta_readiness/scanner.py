from __future__ import annotations

from pathlib import Path

MAVEN_DESCRIPTORS = ("pom.xml",)
MAVEN_POM_SUFFIX = ".pom"
GRADLE_DESCRIPTORS = ("build.gradle.kts", "build.gradle")

# Build output and tool caches never hold the project's own descriptors.
_SKIP_DIRS = frozenset({"target", "build", "out", ".git", ".gradle", ".idea", ".mvn", ".m2", "node_modules"})

def _rank(path: Path) -> tuple[int, str]:
    """Lower wins when one directory holds several descriptors."""
    name = path.name.lower()
    if name in MAVEN_DESCRIPTORS:
        return (0, name)
    if name.endswith(MAVEN_POM_SUFFIX):
        return (1, name)
    return (2 + GRADLE_DESCRIPTORS.index(name), name)

def is_build_file(path: Path) -> bool:
    name = path.name.lower()
    return name in MAVEN_DESCRIPTORS or name.endswith(MAVEN_POM_SUFFIX) or name in GRADLE_DESCRIPTORS


def find_build_files(root: Path) -> list[Path]:
    """Find build descriptors under root (pom.xml, *.pom, build.gradle, build.gradle.kts).

    When a directory holds several descriptors only one is used, in the order
    pom.xml, other *.pom files, build.gradle.kts, build.gradle.

    Args:
        root: A directory to scan recursively, or a single descriptor file.

    Returns:
        Sorted unique list of descriptor files.
    """
    if root.is_file():
        return [root]

    by_dir: dict[Path, Path] = {}
    for p in root.rglob("*"):
        if not p.is_file() or not is_build_file(p):
            continue
        rel_parts = p.relative_to(root).parts[:-1]
        if any(part in _SKIP_DIRS for part in rel_parts):
            continue
        current = by_dir.get(p.parent)
        if current is None or _rank(p) < _rank(current):
            by_dir[p.parent] = p
    return sorted(by_dir.values())
