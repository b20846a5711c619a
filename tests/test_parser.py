from __future__ import annotations

from pathlib import Path

import pytest

from jakarta_readiness.exceptions import DescriptorModelError, DescriptorNotFoundError, DescriptorParseError
from jakarta_readiness.models import BuildDescriptor
from jakarta_readiness.parser import parse_pom


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_parse_pom_without_namespace(tmp_path: Path) -> None:
    pom = """<?xml version=\"1.0\" encoding=\"UTF-8\"?>
<project>
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.acme</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>

  <dependencies>
    <dependency>
      <groupId>javax.servlet</groupId>
      <artifactId>javax.servlet-api</artifactId>
      <version>4.0.1</version>
      <scope>provided</scope>
    </dependency>
  </dependencies>
</project>
"""
    path = _write(tmp_path, "pom.xml", pom)
    model = parse_pom(path)

    assert isinstance(model, BuildDescriptor)
    assert model.path == path
    assert model.project.compact() == "com.acme:demo:1.0.0"
    assert len(model.dependencies) == 1
    dep = model.dependencies[0]
    assert dep.artifact.compact() == "javax.servlet:javax.servlet-api:4.0.1"
    assert dep.scope == "provided"
    assert dep.parent == model.project


def test_parse_pom_with_namespace(tmp_path: Path) -> None:
    pom = """<?xml version=\"1.0\" encoding=\"UTF-8\"?>
<project xmlns=\"http://maven.apache.org/POM/4.0.0\">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.acme</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>

  <dependencies>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.13.2</version>
      <scope>test</scope>
      <optional>true</optional>
    </dependency>
  </dependencies>
</project>
"""
    path = _write(tmp_path, "pom.xml", pom)
    model = parse_pom(path)

    dep = model.dependencies[0]
    assert dep.artifact.compact() == "junit:junit:4.13.2"
    assert dep.scope == "test"
    assert dep.optional is True


def test_missing_scope_defaults_to_compile(tmp_path: Path) -> None:
    pom = """<project>
  <groupId>com.acme</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>
  <dependencies>
    <dependency>
      <groupId>org.slf4j</groupId>
      <artifactId>slf4j-api</artifactId>
      <version>2.0.12</version>
    </dependency>
  </dependencies>
</project>
"""
    model = parse_pom(_write(tmp_path, "pom.xml", pom))
    assert model.dependencies[0].scope == "compile"


def test_unresolved_placeholder_becomes_unknown(tmp_path: Path) -> None:
    pom = """<?xml version=\"1.0\" encoding=\"UTF-8\"?>
<project>
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.acme</groupId>
  <artifactId>demo</artifactId>

  <dependencies>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>lib</artifactId>
      <version>${lib.version}</version>
    </dependency>
  </dependencies>
</project>
"""
    model = parse_pom(_write(tmp_path, "pom.xml", pom))

    assert model.project.version == "Unknown"
    assert model.dependencies[0].artifact.version == "Unknown"


def test_inherit_coordinates_from_parent(tmp_path: Path) -> None:
    pom = """<?xml version=\"1.0\" encoding=\"UTF-8\"?>
<project xmlns=\"http://maven.apache.org/POM/4.0.0\">
  <modelVersion>4.0.0</modelVersion>

  <parent>
    <groupId>com.acme</groupId>
    <artifactId>parent</artifactId>
    <version>9.9.9</version>
  </parent>

  <artifactId>child</artifactId>
</project>
"""
    model = parse_pom(_write(tmp_path, "pom.xml", pom))

    assert model.project.compact() == "com.acme:child:9.9.9"
    assert model.parent is not None
    assert model.parent.compact() == "com.acme:parent:9.9.9"
    assert model.parent.scope == "parent"


def test_resolve_properties_for_dependency_version(tmp_path: Path) -> None:
    pom = """<?xml version=\"1.0\" encoding=\"UTF-8\"?>
<project>
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.acme</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>

  <properties>
    <servlet.version>4.0.1</servlet.version>
  </properties>

  <dependencies>
    <dependency>
      <groupId>javax.servlet</groupId>
      <artifactId>javax.servlet-api</artifactId>
      <version>${servlet.version}</version>
    </dependency>
    <dependency>
      <groupId>${project.groupId}</groupId>
      <artifactId>demo-core</artifactId>
      <version>${project.version}</version>
    </dependency>
  </dependencies>
</project>
"""
    model = parse_pom(_write(tmp_path, "pom.xml", pom))

    assert [d.artifact.compact() for d in model.dependencies] == [
        "javax.servlet:javax.servlet-api:4.0.1",
        "com.acme:demo-core:1.0.0",
    ]


def test_version_from_dependency_management(tmp_path: Path) -> None:
    pom = """<project>
  <groupId>com.acme</groupId>
  <artifactId>demo</artifactId>
  <version>1.0.0</version>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>javax.persistence</groupId>
        <artifactId>javax.persistence-api</artifactId>
        <version>2.2</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>javax.persistence</groupId>
      <artifactId>javax.persistence-api</artifactId>
    </dependency>
  </dependencies>
</project>
"""
    model = parse_pom(_write(tmp_path, "pom.xml", pom))

    assert len(model.dependencies) == 1
    assert model.dependencies[0].artifact.compact() == "javax.persistence:javax.persistence-api:2.2"


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(DescriptorNotFoundError):
        parse_pom(tmp_path / "pom.xml")


def test_broken_xml_raises(tmp_path: Path) -> None:
    path = _write(tmp_path, "pom.xml", "<project><groupId>com.acme</groupId>")
    with pytest.raises(DescriptorParseError):
        parse_pom(path)


def test_missing_artifact_id_raises(tmp_path: Path) -> None:
    path = _write(tmp_path, "pom.xml", "<project><groupId>com.acme</groupId></project>")
    with pytest.raises(DescriptorModelError):
        parse_pom(path)
