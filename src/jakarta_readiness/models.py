"""Pydantic models for dependency coordinates, namespaces and compatibility evidence."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


UNKNOWN_VERSION = "Unknown"
DEFAULT_SCOPE = "compile"


class Artifact(BaseModel):
    """A versioned Maven coordinate discovered in the dependency graph.

    Identity is ``(group_id, artifact_id, version)``: scope and the transitive
    flag describe how the artifact was reached, not what it is, so two
    artifacts with the same coordinates compare equal regardless of them.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., min_length=1)
    artifact_id: str = Field(..., min_length=1)
    version: str = Field(default=UNKNOWN_VERSION, min_length=1)
    scope: str = DEFAULT_SCOPE
    transitive: bool = False

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.group_id, self.artifact_id, self.version)

    def identifier(self) -> str:
        """Return ``groupId:artifactId`` (version-less)."""
        return f"{self.group_id}:{self.artifact_id}"

    def compact(self) -> str:
        """Return a compact string representation.

        Returns:
            A string like `groupId:artifactId:version`.
        """
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Artifact):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.compact()


class Dependency(BaseModel):
    """A graph edge: ``source`` depends on ``target``."""

    model_config = ConfigDict(frozen=True)

    source: Artifact
    target: Artifact
    scope: str = DEFAULT_SCOPE
    optional: bool = False

    def label(self) -> str:
        """Return a user-facing label for the dependency.

        Returns:
            A formatted string including both ends and scope.
        """
        parts: list[str] = [f"{self.source.compact()} -> {self.target.compact()}"]
        if self.scope:
            parts.append(f"(scope={self.scope})")
        if self.optional:
            parts.append("(optional)")
        return " ".join(parts)


class DeclaredDependency(BaseModel):
    """One normalized build-descriptor entry: ``parent`` declares ``artifact``."""

    model_config = ConfigDict(frozen=True)

    artifact: Artifact
    parent: Artifact | None = None
    scope: str = DEFAULT_SCOPE
    optional: bool = False


class BuildDescriptor(BaseModel):
    """A parsed build descriptor (a Maven POM or a Gradle build script)."""

    model_config = ConfigDict(frozen=True)

    path: Path
    project: Artifact
    parent: Artifact | None = None
    dependencies: tuple[DeclaredDependency, ...] = ()


class VersionRequest(BaseModel):
    """``parent`` asked for a specific version of a conflicting coordinate."""

    model_config = ConfigDict(frozen=True)

    parent: Artifact
    version: str


class VersionConflict(BaseModel):
    """The same ``groupId:artifactId`` was requested at several versions.

    ``resolved_version`` is the nearest-wins choice that ended up in the graph;
    ``requests`` lists every request in discovery order, including the winner.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    resolved_version: str
    requests: tuple[VersionRequest, ...]

    def identifier(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def requested_versions(self) -> tuple[str, ...]:
        return tuple(sorted({r.version for r in self.requests}))


class Namespace(str, Enum):
    """Package family an artifact belongs to."""

    JAKARTA = "JAKARTA"
    JAVAX = "JAVAX"
    MIXED = "MIXED"
    UNKNOWN = "UNKNOWN"


class CompatibilityLevel(str, Enum):
    DROP_IN_REPLACEMENT = "DROP_IN_REPLACEMENT"
    REQUIRES_CODE_CHANGES = "REQUIRES_CODE_CHANGES"
    NO_EQUIVALENT = "NO_EQUIVALENT"


class JakartaEquivalent(BaseModel):
    """A known Jakarta replacement coordinate for a javax-era artifact."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    version: str
    compatibility_level: CompatibilityLevel
    javax_packages: tuple[str, ...] = ()
    notes: str | None = None

    @property
    def usable(self) -> bool:
        return self.compatibility_level is not CompatibilityLevel.NO_EQUIVALENT

    def compact(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    def as_artifact(self, like: Artifact) -> Artifact:
        """Build the replacement artifact, keeping scope/transitivity of ``like``."""
        return Artifact(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            version=self.version,
            scope=like.scope,
            transitive=like.transitive,
        )


class BreakingChangeType(str, Enum):
    CLASS_REMOVED = "CLASS_REMOVED"
    METHOD_REMOVED = "METHOD_REMOVED"
    METHOD_SIGNATURE_CHANGED = "METHOD_SIGNATURE_CHANGED"
    FIELD_REMOVED = "FIELD_REMOVED"
    FIELD_TYPE_CHANGED = "FIELD_TYPE_CHANGED"
    INTERFACE_REMOVED = "INTERFACE_REMOVED"
    VISIBILITY_CHANGED = "VISIBILITY_CHANGED"
    OTHER = "OTHER"


# Relative cost of each kind of break; used for blocker confidence and
# recommendation scoring.
_SEVERITY: dict[BreakingChangeType, float] = {
    BreakingChangeType.CLASS_REMOVED: 1.0,
    BreakingChangeType.INTERFACE_REMOVED: 1.0,
    BreakingChangeType.METHOD_REMOVED: 0.6,
    BreakingChangeType.METHOD_SIGNATURE_CHANGED: 0.6,
    BreakingChangeType.OTHER: 0.5,
    BreakingChangeType.FIELD_REMOVED: 0.4,
    BreakingChangeType.FIELD_TYPE_CHANGED: 0.4,
    BreakingChangeType.VISIBILITY_CHANGED: 0.3,
}


class BreakingChange(BaseModel):
    """A binary-incompatible difference between two JAR versions."""

    model_config = ConfigDict(frozen=True)

    type: BreakingChangeType
    class_name: str = ""
    member_name: str = ""
    description: str = ""

    @property
    def severity(self) -> float:
        return _SEVERITY[self.type]


class CompatibilityStatus(str, Enum):
    COMPATIBLE = "COMPATIBLE"
    INCOMPATIBLE = "INCOMPATIBLE"
    # No evidence either way (JAR missing, comparison timed out).
    UNKNOWN = "UNKNOWN"


class BinaryCompatibilityReport(BaseModel):
    """Outcome of comparing two artifact versions at the bytecode level."""

    model_config = ConfigDict(frozen=True)

    old: Artifact
    new: Artifact
    status: CompatibilityStatus
    breaking_changes: tuple[BreakingChange, ...] = ()
    summary: str = ""

    @property
    def is_compatible(self) -> bool:
        """False only when a comparison actually found breaking changes."""
        return self.status is not CompatibilityStatus.INCOMPATIBLE

    @property
    def has_evidence(self) -> bool:
        return self.status is not CompatibilityStatus.UNKNOWN

    @classmethod
    def compatible(cls, old: Artifact, new: Artifact, summary: str | None = None) -> "BinaryCompatibilityReport":
        return cls(
            old=old,
            new=new,
            status=CompatibilityStatus.COMPATIBLE,
            summary=summary or "No breaking changes detected between versions",
        )

    @classmethod
    def incompatible(
        cls,
        old: Artifact,
        new: Artifact,
        breaking_changes: list[BreakingChange] | tuple[BreakingChange, ...],
    ) -> "BinaryCompatibilityReport":
        changes = tuple(breaking_changes)
        return cls(
            old=old,
            new=new,
            status=CompatibilityStatus.INCOMPATIBLE,
            breaking_changes=changes,
            summary=f"Found {len(changes)} breaking change(s) between {old.version} and {new.version}",
        )

    @classmethod
    def unknown(cls, old: Artifact, new: Artifact, reason: str) -> "BinaryCompatibilityReport":
        return cls(old=old, new=new, status=CompatibilityStatus.UNKNOWN, summary=reason)
