from __future__ import annotations

from rich.console import Console

from jakarta_readiness.builder import DependencyGraphBuilder
from jakarta_readiness.classifier import CoordinateStrategy, NamespaceClassifier
from jakarta_readiness.models import Artifact, DeclaredDependency
from jakarta_readiness.render import blockers_table, build_dependency_tree
from jakarta_readiness.report import Blocker, BlockerType


def _a(coord: str) -> Artifact:
    g, a, v = coord.split(":")
    return Artifact(group_id=g, artifact_id=a, version=v)


def _render(renderable) -> str:
    console = Console(width=200, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


def test_tree_marks_cycles_and_namespaces() -> None:
    app, lib, servlet = _a("com.acme:app:1"), _a("com.acme:lib:1"), _a("javax.servlet:javax.servlet-api:4.0.1")
    graph = DependencyGraphBuilder().build_from_declarations(
        [
            DeclaredDependency(artifact=lib, parent=app),
            DeclaredDependency(artifact=servlet, parent=lib),
            DeclaredDependency(artifact=lib, parent=servlet),
        ],
        roots=[app],
    )
    namespaces = NamespaceClassifier([CoordinateStrategy()]).classify_all(graph.nodes)

    text = _render(build_dependency_tree(graph, namespaces))

    assert "javax.servlet:javax.servlet-api:4.0.1 JAVAX" in text
    assert "(cycle)" in text


def test_tree_of_empty_graph() -> None:
    text = _render(build_dependency_tree(DependencyGraphBuilder().build_from_declarations([])))
    assert "No dependencies found" in text


def test_blockers_table_lists_each_blocker() -> None:
    blocker = Blocker(
        artifact=_a("javax.xml.rpc:javax.xml.rpc-api:1.1.2"),
        type=BlockerType.NO_JAKARTA_VERSION,
        reason="No Jakarta EE equivalent",
        confidence=1.0,
    )
    table = blockers_table([blocker])

    assert table.row_count == 1
    assert "NO_JAKARTA_VERSION" in _render(table)
