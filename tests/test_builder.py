from __future__ import annotations

from pathlib import Path

import pytest

from jakarta_readiness.builder import IMPLICIT_PROJECT, DependencyGraphBuilder, RepositoryPomSource
from jakarta_readiness.config import AnalysisConfig
from jakarta_readiness.exceptions import DependencyGraphError, DescriptorNotFoundError, DescriptorParseError
from jakarta_readiness.models import Artifact, DeclaredDependency


def _a(coord: str) -> Artifact:
    g, a, v = coord.split(":")
    return Artifact(group_id=g, artifact_id=a, version=v)


def _decl(coord: str, parent: str | None = None, scope: str = "compile") -> DeclaredDependency:
    return DeclaredDependency(artifact=_a(coord), parent=_a(parent) if parent else None, scope=scope)


def _pom(path: Path, coord: str, deps: list[tuple[str, str]] = ()) -> Path:
    g, a, v = coord.split(":")
    body = "".join(
        f"<dependency><groupId>{d.split(':')[0]}</groupId><artifactId>{d.split(':')[1]}</artifactId>"
        f"<version>{d.split(':')[2]}</version><scope>{scope}</scope></dependency>"
        for d, scope in deps
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f"<project><groupId>{g}</groupId><artifactId>{a}</artifactId><version>{v}</version>"
        f"<dependencies>{body}</dependencies></project>",
        encoding="utf-8",
    )
    return path


def _repo_pom(repo: Path, coord: str, deps: list[tuple[str, str]] = ()) -> Path:
    g, a, v = coord.split(":")
    return _pom(repo.joinpath(*g.split(".")) / a / v / f"{a}-{v}.pom", coord, deps)


def test_nearest_wins_shallower_declaration() -> None:
    builder = DependencyGraphBuilder()
    graph = builder.build_from_declarations(
        [
            _decl("com.acme:lib-a:1.0", "com.acme:app:1"),
            _decl("com.acme:lib-b:1.0", "com.acme:app:1"),
            _decl("javax.servlet:javax.servlet-api:3.1.0", "com.acme:lib-a:1.0"),
            _decl("javax.servlet:javax.servlet-api:4.0.1", "com.acme:app:1"),
        ]
    )

    servlet = [a for a in graph.nodes if a.artifact_id == "javax.servlet-api"]
    assert [a.version for a in servlet] == ["4.0.1"]
    assert graph.is_direct(servlet[0])
    # The deeper request is redirected to the winner.
    assert _a("javax.servlet:javax.servlet-api:4.0.1") in graph.successors(_a("com.acme:lib-a:1.0"))

    conflict = graph.conflict_for(servlet[0])
    assert conflict is not None
    assert conflict.resolved_version == "4.0.1"
    assert conflict.requested_versions == ("3.1.0", "4.0.1")


def test_direct_declaration_without_parent_takes_part_in_conflicts() -> None:
    graph = DependencyGraphBuilder().build_from_declarations(
        [
            _decl("javax.servlet:javax.servlet-api:3.1.0"),
            _decl("com.acme:lib-a:1.0"),
            _decl("javax.servlet:javax.servlet-api:4.0.1", "com.acme:lib-a:1.0"),
        ]
    )

    conflict = graph.conflict_for(_a("javax.servlet:javax.servlet-api:3.1.0"))
    assert conflict is not None
    assert conflict.resolved_version == "3.1.0"
    assert [r.parent for r in conflict.requests] == [IMPLICIT_PROJECT, _a("com.acme:lib-a:1.0")]
    assert IMPLICIT_PROJECT not in graph


def test_nearest_wins_equal_depth_first_declared() -> None:
    builder = DependencyGraphBuilder()
    graph = builder.build_from_declarations(
        [
            _decl("com.acme:lib-a:1.0", "com.acme:app:1"),
            _decl("com.acme:lib-b:1.0", "com.acme:app:1"),
            _decl("javax.validation:validation-api:1.1.0.Final", "com.acme:lib-a:1.0"),
            _decl("javax.validation:validation-api:2.0.1.Final", "com.acme:lib-b:1.0"),
        ]
    )

    validation = [a for a in graph.nodes if a.artifact_id == "validation-api"]
    assert [a.version for a in validation] == ["1.1.0.Final"]
    assert validation[0].transitive is True


def test_default_roots_and_direct_flags() -> None:
    graph = DependencyGraphBuilder().build_from_declarations(
        [
            _decl("com.acme:lib-a:1.0", "com.acme:app:1"),
            _decl("org.slf4j:slf4j-api:2.0.12", "com.acme:lib-a:1.0"),
        ]
    )

    assert graph.roots == frozenset({_a("com.acme:app:1")})
    assert graph.is_direct(_a("com.acme:lib-a:1.0"))
    assert not graph.is_direct(_a("org.slf4j:slf4j-api:2.0.12"))
    assert graph.dependency_artifacts() == [_a("com.acme:lib-a:1.0"), _a("org.slf4j:slf4j-api:2.0.12")]


def test_declarations_without_parent_are_direct() -> None:
    graph = DependencyGraphBuilder().build_from_declarations(
        [
            _decl("javax.servlet:javax.servlet-api:4.0.1"),
            _decl("jakarta.servlet:jakarta.servlet-api:5.0.0"),
        ]
    )

    assert not graph.roots
    assert len(graph) == 2
    assert all(graph.is_direct(a) for a in graph.nodes)


def test_cycles_are_kept_and_terminate() -> None:
    graph = DependencyGraphBuilder().build_from_declarations(
        [
            _decl("com.acme:a:1", "com.acme:app:1"),
            _decl("com.acme:b:1", "com.acme:a:1"),
            _decl("com.acme:a:1", "com.acme:b:1"),
        ]
    )

    assert len(graph) == 3
    assert _a("com.acme:a:1") in graph.successors(_a("com.acme:b:1"))
    groups = graph.dependency_order()
    assert [a.artifact_id for a in groups[0]] == ["a", "b"]
    assert groups[-1] == [_a("com.acme:app:1")]


def test_build_from_project_multi_module(tmp_path: Path) -> None:
    _pom(tmp_path / "pom.xml", "com.acme:parent:1.0", [("com.acme:core:1.0", "compile")])
    _pom(
        tmp_path / "core" / "pom.xml",
        "com.acme:core:1.0",
        [("javax.persistence:javax.persistence-api:2.2", "compile")],
    )
    builder = DependencyGraphBuilder(AnalysisConfig(maven_repo=tmp_path / "m2"))

    graph = builder.build_from_project(tmp_path)

    assert graph.roots == frozenset({_a("com.acme:parent:1.0"), _a("com.acme:core:1.0")})
    assert graph.descriptors[_a("com.acme:core:1.0")] == tmp_path / "core" / "pom.xml"
    jpa = _a("javax.persistence:javax.persistence-api:2.2")
    assert jpa in graph
    assert graph.roots_reaching(jpa) == [_a("com.acme:core:1.0"), _a("com.acme:parent:1.0")]


def test_transitive_expansion_from_local_repository(tmp_path: Path) -> None:
    repo = tmp_path / "m2"
    _repo_pom(
        repo,
        "org.glassfish.jersey.core:jersey-server:2.39",
        [
            ("javax.ws.rs:javax.ws.rs-api:2.1.1", "compile"),
            ("junit:junit:4.13.2", "test"),
        ],
    )
    project = tmp_path / "app"
    _pom(project / "pom.xml", "com.acme:app:1.0", [("org.glassfish.jersey.core:jersey-server:2.39", "compile")])

    graph = DependencyGraphBuilder(AnalysisConfig(maven_repo=repo)).build_from_project(project)

    rs = graph.node(_a("javax.ws.rs:javax.ws.rs-api:2.1.1"))
    assert rs.transitive is True
    assert _a("junit:junit:4.13.2") not in graph


def test_broken_repository_pom_is_a_leaf(tmp_path: Path) -> None:
    repo = tmp_path / "m2"
    broken = repo / "com" / "acme" / "lib" / "1.0" / "lib-1.0.pom"
    broken.parent.mkdir(parents=True)
    broken.write_text("<project>", encoding="utf-8")

    assert RepositoryPomSource(repo).declarations_for(_a("com.acme:lib:1.0")) == []


def test_missing_project_path_raises(tmp_path: Path) -> None:
    with pytest.raises(DescriptorNotFoundError):
        DependencyGraphBuilder().build_from_project(tmp_path / "nope")


def test_project_without_descriptor_raises(tmp_path: Path) -> None:
    (tmp_path / "README.md").write_text("hi", encoding="utf-8")
    with pytest.raises(DependencyGraphError):
        DependencyGraphBuilder().build_from_project(tmp_path)


def test_unparseable_root_descriptor_is_fatal(tmp_path: Path) -> None:
    (tmp_path / "pom.xml").write_text("<project>", encoding="utf-8")
    with pytest.raises(DescriptorParseError):
        DependencyGraphBuilder().build_from_project(tmp_path)
