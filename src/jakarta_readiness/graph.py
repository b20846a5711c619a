from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import networkx as nx

from jakarta_readiness.models import Artifact, Dependency, VersionConflict


def _by_coordinate(a: Artifact) -> str:
    return a.compact()


class DependencyGraph:
    """Immutable dependency graph: A -> B means A depends on B.

    Roots are the project (module) artifacts whose descriptors were read; every
    other node is a dependency. The graph may contain cycles; traversals go
    through networkx or carry a visited set.
    """

    def __init__(
        self,
        nodes: Iterable[Artifact] = (),
        edges: Iterable[Dependency] = (),
        *,
        roots: Iterable[Artifact] = (),
        conflicts: Iterable[VersionConflict] = (),
        descriptors: Mapping[Artifact, Path] | None = None,
    ) -> None:
        by_key: dict[tuple[str, str, str], Artifact] = {}
        for a in nodes:
            by_key.setdefault(a.key, a)
        edge_set = frozenset(edges)
        for e in edge_set:
            for end in (e.source, e.target):
                if end.key not in by_key:
                    raise ValueError(f"Edge endpoint {end.compact()} is not a graph node ({e.label()})")
        root_set = frozenset(roots)
        for r in root_set:
            if r.key not in by_key:
                raise ValueError(f"Root {r.compact()} is not a graph node")

        self._by_key = MappingProxyType(by_key)
        self._nodes = frozenset(by_key.values())
        self._edges = edge_set
        self._roots = root_set
        self._conflicts = tuple(sorted(conflicts, key=lambda c: c.identifier()))
        self._descriptors = MappingProxyType(dict(descriptors or {}))

        g = nx.DiGraph()
        g.add_nodes_from(self._nodes)
        for e in edge_set:
            g.add_edge(e.source, e.target, scope=e.scope, optional=e.optional)
        self._g = nx.freeze(g)

    @property
    def nodes(self) -> frozenset[Artifact]:
        return self._nodes

    @property
    def edges(self) -> frozenset[Dependency]:
        return self._edges

    @property
    def roots(self) -> frozenset[Artifact]:
        return self._roots

    @property
    def conflicts(self) -> tuple[VersionConflict, ...]:
        return self._conflicts

    @property
    def descriptors(self) -> Mapping[Artifact, Path]:
        return self._descriptors

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, artifact: object) -> bool:
        return isinstance(artifact, Artifact) and artifact.key in self._by_key

    def node(self, artifact: Artifact) -> Artifact:
        """Return the graph's own instance (with its scope/transitive flags)."""
        return self._by_key[artifact.key]

    def dependency_artifacts(self) -> list[Artifact]:
        """All non-root nodes, sorted by coordinate."""
        return sorted((a for a in self._nodes if a not in self._roots), key=_by_coordinate)

    def is_direct(self, artifact: Artifact) -> bool:
        """Whether a dependency is declared directly (not only reached transitively)."""
        if artifact not in self or artifact in self._roots:
            return False
        return not self.node(artifact).transitive

    def successors(self, artifact: Artifact) -> list[Artifact]:
        """What ``artifact`` depends on."""
        if artifact not in self:
            return []
        return sorted(self._g.successors(self.node(artifact)), key=_by_coordinate)

    def reverse_dependencies(self, target: Artifact) -> list[Artifact]:
        """Return predecessors of target (who depends on it)."""
        if target not in self:
            return []
        return sorted(self._g.predecessors(self.node(target)), key=_by_coordinate)

    def descendants(self, artifact: Artifact) -> set[Artifact]:
        if artifact not in self:
            return set()
        return set(nx.descendants(self._g, self.node(artifact)))

    def roots_reaching(self, artifact: Artifact) -> list[Artifact]:
        """Roots that (transitively) depend on ``artifact``, itself included if it is a root."""
        if artifact not in self:
            return []
        node = self.node(artifact)
        found = {a for a in nx.ancestors(self._g, node) if a in self._roots}
        if node in self._roots:
            found.add(node)
        return sorted(found, key=_by_coordinate)

    def conflict_for(self, artifact: Artifact) -> VersionConflict | None:
        for c in self._conflicts:
            if c.group_id == artifact.group_id and c.artifact_id == artifact.artifact_id:
                return c
        return None

    def dependency_order(self) -> list[list[Artifact]]:
        """Strongly connected groups ordered dependencies-first.

        Artifacts in one dependency cycle share a group. The order is
        deterministic: ties are broken by the smallest coordinate in a group.
        """
        cond = nx.condensation(self._g)
        members: dict[int, list[Artifact]] = {
            n: sorted(cond.nodes[n]["members"], key=_by_coordinate) for n in cond.nodes
        }
        dependents_first = list(
            nx.lexicographical_topological_sort(cond, key=lambda n: members[n][0].compact())
        )
        return [members[n] for n in reversed(dependents_first)]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view of the graph."""
        return {
            "roots": sorted(a.compact() for a in self._roots),
            "nodes": [
                {"id": a.compact(), "scope": a.scope, "transitive": a.transitive}
                for a in sorted(self._nodes, key=_by_coordinate)
            ],
            "edges": [
                {"source": e.source.compact(), "target": e.target.compact(), "scope": e.scope, "optional": e.optional}
                for e in sorted(self._edges, key=lambda e: (e.source.compact(), e.target.compact()))
            ],
            "conflicts": [c.model_dump(mode="json") for c in self._conflicts],
            "descriptors": {a.compact(): str(p) for a, p in sorted(self._descriptors.items(), key=lambda kv: kv[0].compact())},
        }
