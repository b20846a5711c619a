"""Result types of an analysis run and of a migration plan.

Everything here is a frozen pydantic model: reports are built once per run
and can be handed to any number of consumers.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from jakarta_readiness.classifier import NamespaceCompatibilityMap
from jakarta_readiness.graph import DependencyGraph
from jakarta_readiness.models import Artifact, BreakingChange, CompatibilityLevel


class BlockerType(str, Enum):
    NO_JAKARTA_VERSION = "NO_JAKARTA_VERSION"
    BINARY_INCOMPATIBLE = "BINARY_INCOMPATIBLE"
    TRANSITIVE_CONFLICT = "TRANSITIVE_CONFLICT"
    VERSION_INCOMPATIBLE = "VERSION_INCOMPATIBLE"


# Weight of each blocker category in the risk score.
BLOCKER_WEIGHTS: dict[BlockerType, float] = {
    BlockerType.NO_JAKARTA_VERSION: 1.0,
    BlockerType.BINARY_INCOMPATIBLE: 0.8,
    BlockerType.TRANSITIVE_CONFLICT: 0.5,
    BlockerType.VERSION_INCOMPATIBLE: 0.4,
}
VERSION_GAP_WEIGHT = 0.2


class Blocker(BaseModel):
    """A reason ``artifact`` cannot be migrated cleanly."""

    model_config = ConfigDict(frozen=True)

    artifact: Artifact
    type: BlockerType
    reason: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    mitigation_strategies: tuple[str, ...] = ()

    def sort_key(self) -> tuple[str, str]:
        return (self.artifact.compact(), self.type.value)


class VersionRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_artifact: Artifact
    recommended_artifact: Artifact
    migration_path: str
    compatibility_level: CompatibilityLevel
    compatibility_score: float = Field(..., ge=0.0, le=1.0)
    breaking_changes: tuple[BreakingChange, ...] = ()


class ReadinessScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0.0, le=1.0)
    explanation: str


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_score: float = Field(..., ge=0.0, le=1.0)
    risk_factors: tuple[str, ...] = ()
    mitigation_suggestions: tuple[str, ...] = ()


class ConflictKind(str, Enum):
    # Same coordinate requested at several versions.
    VERSION = "VERSION"
    # A javax artifact and its jakarta replacement are both on the classpath.
    NAMESPACE = "NAMESPACE"


class TransitiveConflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ConflictKind
    coordinates: tuple[str, ...]
    versions: tuple[str, ...] = ()
    requested_by: tuple[str, ...] = ()
    description: str


class TransitiveConflictReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    conflicts: tuple[TransitiveConflict, ...] = ()
    summary: str

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class SourceScanSummary(BaseModel):
    """Counts handed over by the source scanning engine.

    ``import_counts`` maps an imported package (``javax.servlet.http``) to the
    number of import statements referencing it.
    """

    model_config = ConfigDict(frozen=True)

    files_scanned: int = Field(default=0, ge=0)
    files_with_javax_usage: int = Field(default=0, ge=0)
    import_counts: dict[str, int] = Field(default_factory=dict)

    def imports_for(self, packages: tuple[str, ...] | list[str]) -> int:
        """Imports that fall under any of ``packages`` (sub-packages included)."""
        total = 0
        for name, count in self.import_counts.items():
            if any(name == p or name.startswith(p + ".") for p in packages):
                total += count
        return total


class ImpactLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class MigrationImpact(BaseModel):
    """Combined dependency and source view of how big the migration is."""

    model_config = ConfigDict(frozen=True)

    level: ImpactLevel
    description: str
    affected_dependencies: int
    blocker_count: int
    breaking_changes: int
    files_with_javax_usage: int
    estimated_hours: float
    risk_factors: tuple[str, ...] = ()


class DependencyAnalysisReport(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    graph: DependencyGraph
    namespace_map: NamespaceCompatibilityMap
    blockers: tuple[Blocker, ...] = ()
    recommendations: tuple[VersionRecommendation, ...] = ()
    readiness_score: ReadinessScore
    risk_assessment: RiskAssessment

    @field_serializer("graph")
    def _serialize_graph(self, graph: DependencyGraph) -> dict[str, Any]:
        return graph.to_dict()

    @field_serializer("namespace_map")
    def _serialize_namespaces(self, namespace_map: NamespaceCompatibilityMap) -> dict[str, str]:
        return namespace_map.to_dict()

    def blockers_for(self, artifact: Artifact) -> list[Blocker]:
        return [b for b in self.blockers if b.artifact == artifact]

    def recommendation_for(self, artifact: Artifact) -> VersionRecommendation | None:
        for r in self.recommendations:
            if r.current_artifact == artifact:
                return r
        return None


class RefactoringPhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase_number: int = Field(..., ge=1)
    description: str
    artifacts: tuple[Artifact, ...] = ()
    files: tuple[Path, ...] = ()
    estimated_file_touches: int = 0
    estimated_duration: timedelta = timedelta(0)
    risk_score: float = Field(default=0.0, ge=0.0, le=1.0)
    depends_on: tuple[int, ...] = ()


class MigrationPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    phases: tuple[RefactoringPhase, ...]
    total_file_count: int
    estimated_duration: timedelta
    overall_risk: RiskAssessment
    prerequisites: tuple[str, ...] = ()

    def phase_of(self, artifact: Artifact) -> RefactoringPhase | None:
        for phase in self.phases:
            if artifact in phase.artifacts:
                return phase
        return None
