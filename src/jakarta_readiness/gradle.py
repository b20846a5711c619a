"""Read declared dependencies from Gradle build scripts (Groovy and Kotlin DSL).

Gradle scripts are programs, not data, so this is a best-effort reader: it
understands string notation (``implementation("g:a:v")``), map notation
(``implementation group: "g", name: "a", version: "v"``) and simple
``ext``/``def``/``val`` string properties used for interpolation. Anything
computed at configuration time is reported with an unknown version.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping

from jakarta_readiness.exceptions import DescriptorNotFoundError, DescriptorParseError
from jakarta_readiness.models import Artifact, BuildDescriptor, DeclaredDependency, UNKNOWN_VERSION

logger = logging.getLogger(__name__)

GRADLE_UNSPECIFIED = "unspecified"

_CONFIGURATION_SCOPES: dict[str, str] = {
    "api": "compile",
    "implementation": "compile",
    "compile": "compile",
    "compileOnly": "provided",
    "compileOnlyApi": "provided",
    "providedCompile": "provided",
    "annotationProcessor": "provided",
    "kapt": "provided",
    "runtimeOnly": "runtime",
    "runtime": "runtime",
    "providedRuntime": "runtime",
    "testImplementation": "test",
    "testCompileOnly": "test",
    "testRuntimeOnly": "test",
    "testCompile": "test",
    "testRuntime": "test",
}

_CONF = "|".join(sorted(_CONFIGURATION_SCOPES, key=len, reverse=True))

_STRING_NOTATION_RE = re.compile(
    rf"\b(?P<conf>{_CONF})\s*\(?\s*(?:(?:enforcedPlatform|platform)\s*\(\s*)?"
    r"[\"'](?P<coord>[^\"'\s]+:[^\"'\s]+)[\"']"
)
_MAP_NOTATION_RE = re.compile(
    rf"\b(?P<conf>{_CONF})\s*\(?\s*"
    r"group\s*[:=]\s*[\"'](?P<group>[^\"']+)[\"']\s*,\s*"
    r"name\s*[:=]\s*[\"'](?P<name>[^\"']+)[\"']"
    r"(?:\s*,\s*version\s*[:=]\s*[\"'](?P<version>[^\"']+)[\"'])?"
)
_PROPERTY_RE = re.compile(
    r"^\s*(?:ext\.|def\s+|val\s+|var\s+|extra\[\s*[\"'])?"
    r"(?P<key>[A-Za-z_][\w.]*)[\"']?\s*\]?\s*=\s*[\"'](?P<value>[^\"'$]+)[\"']",
    re.MULTILINE,
)
_GROUP_RE = re.compile(r"^\s*group\s*=\s*[\"'](?P<value>[^\"']+)[\"']", re.MULTILINE)
_VERSION_RE = re.compile(r"^\s*version\s*=\s*[\"'](?P<value>[^\"']+)[\"']", re.MULTILINE)
_ROOT_NAME_RE = re.compile(r"rootProject\.name\s*=\s*[\"'](?P<value>[^\"']+)[\"']")
_INTERPOLATION_RE = re.compile(r"\$\{?([A-Za-z_][\w.]*)\}?")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"(^|\s)//.*$", re.MULTILINE)


def _strip_comments(text: str) -> str:
    return _LINE_COMMENT_RE.sub(r"\1", _BLOCK_COMMENT_RE.sub("", text))


def _interpolate(value: str, props: Mapping[str, str]) -> str | None:
    """Resolve ``$name`` / ``${name}``; None when something stays unresolved."""
    unresolved = False

    def _sub(m: re.Match[str]) -> str:
        nonlocal unresolved
        key = m.group(1)
        for candidate in (key, key.removeprefix("project."), key.removeprefix("rootProject.")):
            if candidate in props:
                return props[candidate]
        unresolved = True
        return m.group(0)

    resolved = _INTERPOLATION_RE.sub(_sub, value)
    return None if unresolved else resolved


def _project_name(script: Path) -> str:
    for settings in ("settings.gradle.kts", "settings.gradle"):
        candidate = script.parent / settings
        if candidate.is_file():
            m = _ROOT_NAME_RE.search(candidate.read_text(encoding="utf-8", errors="replace"))
            if m:
                return m.group("value")
    return script.parent.resolve().name or "project"


def _coordinate(raw: str, props: Mapping[str, str]) -> tuple[str, str, str] | None:
    parts = raw.split("@", 1)[0].split(":")
    if len(parts) < 2:
        return None
    group_id = _interpolate(parts[0], props)
    artifact_id = _interpolate(parts[1], props)
    if not group_id or not artifact_id:
        return None
    version = UNKNOWN_VERSION
    if len(parts) >= 3 and parts[2]:
        version = _interpolate(parts[2], props) or UNKNOWN_VERSION
    return group_id, artifact_id, version


def parse_gradle(path: str | Path) -> BuildDescriptor:
    """Parse a build.gradle / build.gradle.kts file.

    Args:
        path: Path to the Gradle build script.

    Raises:
        DescriptorNotFoundError: If the file does not exist.
        DescriptorParseError: If the file cannot be read.

    Returns:
        A `BuildDescriptor` with the project artifact and declared dependencies.
    """
    script = Path(path)
    if not script.exists():
        raise DescriptorNotFoundError(f"Gradle build file not found: {script}")
    try:
        text = _strip_comments(script.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise DescriptorParseError(f"Failed to read Gradle build file: {script}") from exc

    props = {m.group("key"): m.group("value") for m in _PROPERTY_RE.finditer(text)}
    group = _GROUP_RE.search(text)
    version = _VERSION_RE.search(text)
    project = Artifact(
        group_id=(group.group("value") if group else None) or GRADLE_UNSPECIFIED,
        artifact_id=_project_name(script),
        version=(version.group("value") if version else None) or GRADLE_UNSPECIFIED,
    )
    props.setdefault("group", project.group_id)
    props.setdefault("version", project.version)

    found: list[tuple[int, str, tuple[str, str, str]]] = []
    for m in _STRING_NOTATION_RE.finditer(text):
        coord = _coordinate(m.group("coord"), props)
        if coord is None:
            logger.debug("Skipping unparseable Gradle coordinate %r in %s", m.group("coord"), script)
            continue
        found.append((m.start(), m.group("conf"), coord))
    for m in _MAP_NOTATION_RE.finditer(text):
        raw = f"{m.group('group')}:{m.group('name')}:{m.group('version') or ''}"
        coord = _coordinate(raw, props)
        if coord is not None:
            found.append((m.start(), m.group("conf"), coord))

    deps: list[DeclaredDependency] = []
    for _, conf, (group_id, artifact_id, dep_version) in sorted(found):
        scope = _CONFIGURATION_SCOPES[conf]
        deps.append(
            DeclaredDependency(
                artifact=Artifact(group_id=group_id, artifact_id=artifact_id, version=dep_version, scope=scope),
                parent=project,
                scope=scope,
            )
        )
    return BuildDescriptor(path=script, project=project, dependencies=tuple(deps))
