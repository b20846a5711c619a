"""Read Maven POMs into ``BuildDescriptor`` values.

Queries go through ``local-name()`` XPath, so a POM parses the same with or
without the Maven XML namespace.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, Mapping

from lxml import etree

from jakarta_readiness.exceptions import DescriptorModelError, DescriptorNotFoundError, DescriptorParseError
from jakarta_readiness.models import (
    DEFAULT_SCOPE,
    Artifact,
    BuildDescriptor,
    DeclaredDependency,
    UNKNOWN_VERSION,
)

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_PASSES = 5

Coordinates = tuple[str | None, str | None, str | None]


def _steps(*names: str) -> str:
    """``a, b`` -> ``*[local-name()='a']/*[local-name()='b']``."""
    return "/".join(f"*[local-name()='{n}']" for n in names)


_PROJECT = "/" + _steps("project")


def _first(node: etree._Element, expr: str) -> str | None:
    """Stripped text of the first XPath hit, or None when absent or blank."""
    for hit in node.xpath(expr):
        raw = hit.text if isinstance(hit, etree._Element) else hit
        text = (raw or "").strip()
        return text or None
    return None


def _coordinates(node: etree._Element, base: str) -> Coordinates:
    return (
        _first(node, f"{base}/{_steps('groupId')}"),
        _first(node, f"{base}/{_steps('artifactId')}"),
        _first(node, f"{base}/{_steps('version')}"),
    )


class _Properties:
    """``${...}`` interpolation over POM properties and project built-ins."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = dict(values)

    def interpolate(self, value: str) -> str:
        """Expand known placeholders; unknown ones stay as written."""
        for _ in range(_MAX_INTERPOLATION_PASSES):
            expanded = _PLACEHOLDER_RE.sub(lambda m: self._values.get(m.group(1)) or m.group(0), value)
            if expanded == value:
                break
            value = expanded
        return value

    def version(self, raw: str | None) -> str:
        """A concrete version, or ``Unknown`` when missing or still templated."""
        if raw is None:
            return UNKNOWN_VERSION
        resolved = self.interpolate(raw).strip()
        if not resolved or _PLACEHOLDER_RE.search(resolved):
            return UNKNOWN_VERSION
        return resolved


def _load(path: Path) -> etree._Element:
    if not path.exists():
        raise DescriptorNotFoundError(f"pom.xml not found: {path}")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, recover=False)
    try:
        return etree.parse(str(path), parser=parser).getroot()
    except (OSError, etree.XMLSyntaxError) as exc:
        raise DescriptorParseError(f"Failed to parse pom.xml: {path}") from exc


def _declared_properties(root: etree._Element) -> dict[str, str]:
    found: dict[str, str] = {}
    for node in root.xpath(f"{_PROJECT}/{_steps('properties')}/*"):
        value = (node.text or "").strip()
        if value:
            found[etree.QName(node).localname] = value
    return found


def _builtins(group_id: str, artifact_id: str, version: str, parent_version: str | None) -> dict[str, str]:
    values: dict[str, str] = {}
    for prefix in ("project.", "pom.", ""):
        values[f"{prefix}groupId"] = group_id
        values[f"{prefix}artifactId"] = artifact_id
        values[f"{prefix}version"] = version
    if parent_version:
        values["project.parent.version"] = parent_version
    return values


def _dependency_nodes(root: etree._Element, *section: str) -> Iterator[etree._Element]:
    yield from root.xpath(f"{_PROJECT}/{_steps(*section, 'dependencies', 'dependency')}")


def parse_pom(path: str | Path) -> BuildDescriptor:
    """Parse a pom.xml into its project coordinate and direct dependencies.

    groupId and version fall back to the ``<parent>`` block. Dependencies
    without a version take it from ``<dependencyManagement>`` of the same
    POM; a version that cannot be resolved is recorded as ``Unknown``.

    Raises:
        DescriptorNotFoundError: The file does not exist.
        DescriptorParseError: The file is not well-formed XML.
        DescriptorModelError: artifactId or groupId cannot be determined.
    """
    pom_path = Path(path)
    root = _load(pom_path)

    group_id, artifact_id, version = _coordinates(root, _PROJECT)
    parent_group, parent_artifact, parent_version = _coordinates(root, f"{_PROJECT}/{_steps('parent')}")
    if artifact_id is None:
        raise DescriptorModelError(f"Missing required <artifactId> in {pom_path}")
    group_id = group_id or parent_group
    if group_id is None:
        raise DescriptorModelError(f"Missing required <groupId> (or parent <groupId>) in {pom_path}")
    version = version or parent_version or UNKNOWN_VERSION

    props = _Properties({**_declared_properties(root), **_builtins(group_id, artifact_id, version, parent_version)})
    project = Artifact(group_id=props.interpolate(group_id), artifact_id=artifact_id, version=props.version(version))
    parent = None
    if parent_group and parent_artifact:
        parent = Artifact(
            group_id=parent_group,
            artifact_id=parent_artifact,
            version=props.version(parent_version),
            scope="parent",
        )

    managed: dict[tuple[str, str], str] = {}
    for node in _dependency_nodes(root, "dependencyManagement"):
        g, a, v = _coordinates(node, ".")
        if g and a and v:
            managed.setdefault((props.interpolate(g), props.interpolate(a)), props.version(v))

    declared: list[DeclaredDependency] = []
    for node in _dependency_nodes(root):
        g, a, v = _coordinates(node, ".")
        if g is None or a is None:
            continue
        g, a = props.interpolate(g), props.interpolate(a)
        scope = _first(node, f"./{_steps('scope')}") or DEFAULT_SCOPE
        optional = (_first(node, f"./{_steps('optional')}") or "").lower() == "true"
        resolved = props.version(v) if v is not None else managed.get((g, a), UNKNOWN_VERSION)
        declared.append(
            DeclaredDependency(
                artifact=Artifact(group_id=g, artifact_id=a, version=resolved, scope=scope),
                parent=project,
                scope=scope,
                optional=optional,
            )
        )

    return BuildDescriptor(path=pom_path, project=project, parent=parent, dependencies=tuple(declared))
