"""Turn build descriptors into a `DependencyGraph`.

Conflicting versions of the same ``groupId:artifactId`` are resolved the way
Maven does it (nearest wins): the graph is walked breadth-first from the
roots in declaration order, so the first request to reach a coordinate is
the shallowest one, and among equally shallow requests the first declared.
That version is the only one that enters the graph; every other request is
kept as a `VersionConflict` and its edge points at the winner.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from jakarta_readiness.config import AnalysisConfig
from jakarta_readiness.exceptions import DependencyGraphError, DescriptorNotFoundError
from jakarta_readiness.gradle import parse_gradle
from jakarta_readiness.graph import DependencyGraph
from jakarta_readiness.models import (
    Artifact,
    BuildDescriptor,
    DeclaredDependency,
    Dependency,
    VersionConflict,
    VersionRequest,
)
from jakarta_readiness.parser import parse_pom
from jakarta_readiness.scanner import GRADLE_DESCRIPTORS, MAVEN_DESCRIPTORS, MAVEN_POM_SUFFIX, find_build_files

logger = logging.getLogger(__name__)

# Maven only propagates these scopes to consumers of a dependency.
TRANSITIVE_SCOPES = frozenset({"compile", "runtime"})

ChildLookup = Callable[[Artifact, int], Sequence[DeclaredDependency]]

# Stands in as the requester of declarations without a parent; never a graph node.
IMPLICIT_PROJECT = Artifact(group_id="<project>", artifact_id="<project>")


def read_descriptor(path: Path) -> BuildDescriptor:
    """Parse one build descriptor, picking the reader from the file name.

    Raises:
        DescriptorNotFoundError: If the file is missing or not a known descriptor type.
        DescriptorParseError / DescriptorModelError: If the descriptor is invalid.
    """
    name = path.name.lower()
    if name in MAVEN_DESCRIPTORS or name.endswith(MAVEN_POM_SUFFIX):
        return parse_pom(path)
    if name in GRADLE_DESCRIPTORS:
        return parse_gradle(path)
    raise DescriptorNotFoundError(f"Unsupported build descriptor: {path}")


class RepositoryPomSource:
    """Reads dependency POMs from a local Maven repository to follow transitive dependencies.

    Failures are local to one artifact: a missing or broken POM simply makes
    the artifact a leaf.
    """

    def __init__(self, maven_repo: Path | None) -> None:
        self.maven_repo = maven_repo

    def pom_path(self, artifact: Artifact) -> Path | None:
        if self.maven_repo is None:
            return None
        return (
            self.maven_repo.joinpath(*artifact.group_id.split("."))
            / artifact.artifact_id
            / artifact.version
            / f"{artifact.artifact_id}-{artifact.version}.pom"
        )

    def declarations_for(self, artifact: Artifact) -> list[DeclaredDependency]:
        path = self.pom_path(artifact)
        if path is None or not path.is_file():
            return []
        try:
            descriptor = parse_pom(path)
        except DependencyGraphError as exc:
            logger.warning("Ignoring unreadable repository POM for %s: %s", artifact.compact(), exc)
            return []
        return [
            d.model_copy(update={"parent": artifact})
            for d in descriptor.dependencies
            if d.scope in TRANSITIVE_SCOPES and not d.optional
        ]


def _descriptor_declarations(descriptor: BuildDescriptor) -> list[DeclaredDependency]:
    decls: list[DeclaredDependency] = []
    if descriptor.parent is not None:
        decls.append(DeclaredDependency(artifact=descriptor.parent, parent=descriptor.project, scope="parent"))
    decls.extend(descriptor.dependencies)
    return decls


class DependencyGraphBuilder:
    """Builds dependency graphs from project descriptors or normalized declarations."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        repository: RepositoryPomSource | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.repository = repository if repository is not None else RepositoryPomSource(self.config.maven_repo)

    def build_from_project(self, path: str | Path) -> DependencyGraph:
        """Build the graph for a project directory or a single descriptor file.

        Every descriptor found becomes a root (a module of a multi-module
        build). Non-root artifacts are expanded from the local Maven
        repository when their POM is available there.

        Raises:
            DependencyGraphError: If the path is missing, holds no descriptor,
                or a project descriptor cannot be parsed.
        """
        root = Path(path)
        if not root.exists():
            raise DescriptorNotFoundError(f"Project path does not exist: {root}")

        files = find_build_files(root)
        if not files:
            raise DescriptorNotFoundError(f"No build file found in project root: {root}")

        descriptors = [read_descriptor(f) for f in files]
        logger.info("Read %d build descriptor(s) under %s", len(descriptors), root)

        modules: dict[Artifact, BuildDescriptor] = {}
        for d in descriptors:
            modules.setdefault(d.project, d)

        def children(parent: Artifact, depth: int) -> Sequence[DeclaredDependency]:
            if depth == 0 and parent in modules:
                return _descriptor_declarations(modules[parent])
            return self.repository.declarations_for(parent)

        return self._resolve(
            roots=list(modules),
            orphans=[],
            children=children,
            max_depth=self.config.max_transitive_depth,
            descriptors={a: d.path for a, d in modules.items()},
        )

    def build_from_declarations(
        self,
        declarations: Iterable[DeclaredDependency],
        roots: Iterable[Artifact] | None = None,
    ) -> DependencyGraph:
        """Build the graph from normalized ``(artifact, parent, scope)`` tuples.

        Args:
            declarations: Entries in declaration order. An entry without a
                parent is a direct dependency of the (implicit) project.
            roots: Project artifacts. Defaults to parents that are never
                declared as a dependency themselves.
        """
        decls = list(declarations)
        by_parent: dict[tuple[str, str, str], list[DeclaredDependency]] = {}
        orphans: list[DeclaredDependency] = []
        for d in decls:
            if d.parent is None:
                orphans.append(d)
            else:
                by_parent.setdefault(d.parent.key, []).append(d)

        if roots is None:
            declared = {d.artifact.key for d in decls}
            seen: set[tuple[str, str, str]] = set()
            root_list: list[Artifact] = []
            for d in decls:
                if d.parent is not None and d.parent.key not in declared and d.parent.key not in seen:
                    seen.add(d.parent.key)
                    root_list.append(d.parent)
        else:
            root_list = list(roots)

        def children(parent: Artifact, depth: int) -> Sequence[DeclaredDependency]:
            return by_parent.get(parent.key, [])

        return self._resolve(roots=root_list, orphans=orphans, children=children, max_depth=None, descriptors={})

    def _resolve(
        self,
        *,
        roots: list[Artifact],
        orphans: list[DeclaredDependency],
        children: ChildLookup,
        max_depth: int | None,
        descriptors: dict[Artifact, Path],
    ) -> DependencyGraph:
        nodes: dict[tuple[str, str, str], Artifact] = {}
        winners: dict[tuple[str, str], Artifact] = {}
        requests: dict[tuple[str, str], list[VersionRequest]] = {}
        edges: dict[tuple[tuple[str, str, str], tuple[str, str, str]], Dependency] = {}
        queue: deque[tuple[Artifact, int]] = deque()

        for r in roots:
            root = r.model_copy(update={"transitive": False})
            winners.setdefault((root.group_id, root.artifact_id), root)
            nodes.setdefault(root.key, root)

        def visit(decl: DeclaredDependency, parent: Artifact | None, depth: int) -> None:
            a = decl.artifact
            ga = (a.group_id, a.artifact_id)
            requester = parent if parent is not None else IMPLICIT_PROJECT
            requests.setdefault(ga, []).append(VersionRequest(parent=requester, version=a.version))
            winner = winners.get(ga)
            if winner is None:
                winner = Artifact(
                    group_id=a.group_id,
                    artifact_id=a.artifact_id,
                    version=a.version,
                    scope=decl.scope,
                    transitive=depth > 1,
                )
                winners[ga] = winner
                nodes[winner.key] = winner
                queue.append((winner, depth))
            elif winner.version != a.version:
                logger.debug(
                    "%s requested at %s by %s; keeping nearer %s",
                    decl.artifact.identifier(),
                    a.version,
                    requester.compact(),
                    winner.version,
                )
            if parent is not None:
                edges.setdefault(
                    (parent.key, winner.key),
                    Dependency(source=parent, target=winner, scope=decl.scope, optional=decl.optional),
                )

        for r in roots:
            queue.append((nodes[r.key], 0))
        for d in orphans:
            visit(d, None, 1)

        while queue:
            parent, depth = queue.popleft()
            if max_depth is not None and depth >= max_depth:
                continue
            for decl in children(parent, depth):
                visit(decl, parent, depth + 1)

        conflicts = []
        for (group_id, artifact_id), reqs in requests.items():
            if len({r.version for r in reqs}) > 1:
                conflicts.append(
                    VersionConflict(
                        group_id=group_id,
                        artifact_id=artifact_id,
                        resolved_version=winners[(group_id, artifact_id)].version,
                        requests=tuple(reqs),
                    )
                )

        graph = DependencyGraph(
            nodes.values(),
            edges.values(),
            roots=[nodes[r.key] for r in roots],
            conflicts=conflicts,
            descriptors={nodes[a.key]: p for a, p in descriptors.items()},
        )
        logger.info(
            "Dependency graph: %d node(s), %d edge(s), %d version conflict(s)",
            len(graph),
            len(graph.edges),
            len(conflicts),
        )
        return graph
