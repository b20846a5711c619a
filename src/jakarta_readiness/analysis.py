"""Dependency analysis: namespaces, blockers, recommendations and scores for one project."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from jakarta_readiness.builder import DependencyGraphBuilder
from jakarta_readiness.classifier import (
    ArchiveContentStrategy,
    CoordinateStrategy,
    NamespaceClassifier,
    NamespaceCompatibilityMap,
)
from jakarta_readiness.compatibility import BinaryCompatibilityChecker, JapicmpDiffTool
from jakarta_readiness.config import AnalysisConfig
from jakarta_readiness.exceptions import AnalysisError, DependencyGraphError
from jakarta_readiness.graph import DependencyGraph
from jakarta_readiness.jars import CachingJarResolver, JarResolver, LocalRepositoryJarResolver
from jakarta_readiness.mapping import JakartaMappingService
from jakarta_readiness.models import (
    Artifact,
    BinaryCompatibilityReport,
    CompatibilityLevel,
    JakartaEquivalent,
    Namespace,
)
from jakarta_readiness.report import (
    BLOCKER_WEIGHTS,
    VERSION_GAP_WEIGHT,
    Blocker,
    BlockerType,
    ConflictKind,
    DependencyAnalysisReport,
    ImpactLevel,
    MigrationImpact,
    ReadinessScore,
    RiskAssessment,
    SourceScanSummary,
    TransitiveConflict,
    TransitiveConflictReport,
    VersionRecommendation,
)
from jakarta_readiness.rules import MIGRATABLE, BlockerRule, RuleContext, default_rules, evaluate_rules

logger = logging.getLogger(__name__)

_BASE_SCORE: dict[CompatibilityLevel, float] = {
    CompatibilityLevel.DROP_IN_REPLACEMENT: 1.0,
    CompatibilityLevel.REQUIRES_CODE_CHANGES: 0.7,
}
BREAKING_CHANGE_PENALTY = 0.1

_FACTOR_TEXT: dict[BlockerType, str] = {
    BlockerType.NO_JAKARTA_VERSION: "{n} dependency(ies) have no Jakarta version",
    BlockerType.BINARY_INCOMPATIBLE: "{n} dependency(ies) have binary-incompatible Jakarta replacements",
    BlockerType.TRANSITIVE_CONFLICT: "{n} dependency(ies) are requested at conflicting major versions",
    BlockerType.VERSION_INCOMPATIBLE: "{n} dependency(ies) have unverified replacement compatibility",
}


@dataclass(frozen=True)
class ArtifactEvidence:
    """Mapping and comparison result for one artifact."""

    artifact: Artifact
    equivalent: JakartaEquivalent | None = None
    compatibility: BinaryCompatibilityReport | None = None
    # Replacement coordinate; None when there is nothing to move to.
    target: Artifact | None = None


def compatibility_score(level: CompatibilityLevel, report: BinaryCompatibilityReport | None) -> float:
    """Score a replacement: the level's base minus a penalty per breaking change."""
    score = _BASE_SCORE.get(level, 0.0)
    if report is not None:
        score -= sum(BREAKING_CHANGE_PENALTY * c.severity for c in report.breaking_changes)
    return round(max(0.0, score), 4)


def _migration_path(current: Artifact, eq: JakartaEquivalent) -> str:
    level = eq.compatibility_level.value.replace("_", " ").lower()
    path = f"{current.compact()} -> {eq.compact()} ({level})"
    if eq.notes:
        path += f"; {eq.notes}"
    return path


class DependencyAnalysisModule:
    """Runs the analysis pipeline: graph, namespaces, evidence, blockers, scores.

    Collaborators default to the ones described by ``config``; tests pass
    their own.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        *,
        builder: DependencyGraphBuilder | None = None,
        mapping: JakartaMappingService | None = None,
        resolver: JarResolver | None = None,
        classifier: NamespaceClassifier | None = None,
        checker: BinaryCompatibilityChecker | None = None,
        rules: Sequence[BlockerRule] | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.builder = builder or DependencyGraphBuilder(self.config)
        self.mapping = mapping or JakartaMappingService.from_file(self.config.mappings_file)
        self.resolver = resolver or CachingJarResolver(
            LocalRepositoryJarResolver(self.config.maven_repo, self.config.gradle_cache)
        )
        self.classifier = classifier or NamespaceClassifier(
            [CoordinateStrategy(self.mapping.source_keys()), ArchiveContentStrategy(self.resolver)],
            max_workers=self.config.max_workers,
        )
        if checker is None:
            tool = JapicmpDiffTool(self.config.japicmp_jar, self.config.java) if self.config.japicmp_jar else None
            checker = BinaryCompatibilityChecker(self.resolver, tool, self.config.compare_timeout)
        self.checker = checker
        self.rules = list(rules) if rules is not None else default_rules(self.config.unresolved_jar_policy)

    # -- pipeline ---------------------------------------------------------

    def analyze_project(self, path: str | Path) -> DependencyAnalysisReport:
        """Analyze the project at ``path``.

        Raises:
            DependencyGraphError: The build descriptors are missing or invalid.
            AnalysisError: Anything else went wrong; the cause is chained.
        """
        try:
            graph = self.builder.build_from_project(path)
            return self.analyze_graph(graph)
        except DependencyGraphError:
            raise
        except Exception as exc:
            raise AnalysisError(f"Analysis of {path} failed: {exc}") from exc

    def analyze_graph(self, graph: DependencyGraph) -> DependencyAnalysisReport:
        namespaces = self.identify_namespaces(graph)
        evidence = self._collect_evidence(graph.dependency_artifacts(), namespaces)
        blockers = self._detect(graph, namespaces, evidence)
        recommendations = self._recommend(graph.dependency_artifacts(), namespaces, evidence)
        readiness = self.readiness(graph, namespaces, blockers)
        risk = self.risk(graph, namespaces, blockers)
        logger.info(
            "Analysis done: %d blocker(s), %d recommendation(s), readiness %.2f, risk %.2f",
            len(blockers),
            len(recommendations),
            readiness.score,
            risk.risk_score,
        )
        return DependencyAnalysisReport(
            graph=graph,
            namespace_map=namespaces,
            blockers=tuple(blockers),
            recommendations=tuple(recommendations),
            readiness_score=readiness,
            risk_assessment=risk,
        )

    def identify_namespaces(self, graph: DependencyGraph) -> NamespaceCompatibilityMap:
        return self.classifier.classify_all(sorted(graph.nodes, key=lambda a: a.compact()))

    def detect_blockers(
        self, graph: DependencyGraph, namespaces: NamespaceCompatibilityMap | None = None
    ) -> list[Blocker]:
        """Blockers for every non-root javax or mixed artifact, sorted by coordinate and type."""
        namespaces = namespaces if namespaces is not None else self.identify_namespaces(graph)
        evidence = self._collect_evidence(graph.dependency_artifacts(), namespaces)
        return self._detect(graph, namespaces, evidence)

    def recommend_versions(
        self, artifacts: Iterable[Artifact], namespaces: NamespaceCompatibilityMap | None = None
    ) -> list[VersionRecommendation]:
        """Replacement coordinates for every artifact with a usable mapping."""
        items = sorted(set(artifacts), key=lambda a: a.compact())
        if namespaces is None:
            namespaces = self.classifier.classify_all(items)
        evidence = self._collect_evidence(items, namespaces)
        return self._recommend(items, namespaces, evidence)

    # -- evidence ---------------------------------------------------------

    def _evidence_for(self, artifact: Artifact, namespace: Namespace) -> ArtifactEvidence:
        """Mapping and compatibility evidence for one artifact.

        A failure is local to the artifact: it is logged and the artifact keeps
        whatever mapping was found, with no replacement target.
        """
        eq: JakartaEquivalent | None = None
        try:
            eq = self.mapping.find_mapping(artifact)
            if eq is None or not eq.usable or namespace is Namespace.JAKARTA:
                return ArtifactEvidence(artifact, eq)
            target = eq.as_artifact(artifact)
            if target == artifact:
                return ArtifactEvidence(artifact, eq)
            return ArtifactEvidence(artifact, eq, self.checker.compare_versions(artifact, target), target)
        except Exception as exc:
            logger.warning("Evidence collection failed for %s: %s", artifact.compact(), exc)
            return ArtifactEvidence(artifact, eq)

    def _collect_evidence(
        self, artifacts: Sequence[Artifact], namespaces: NamespaceCompatibilityMap
    ) -> dict[Artifact, ArtifactEvidence]:
        items = list(artifacts)
        workers = max(1, min(self.config.max_workers, len(items)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda a: self._evidence_for(a, namespaces[a]), items))
        return dict(zip(items, results))

    def _detect(
        self,
        graph: DependencyGraph,
        namespaces: NamespaceCompatibilityMap,
        evidence: Mapping[Artifact, ArtifactEvidence],
    ) -> list[Blocker]:
        blockers: list[Blocker] = []
        for artifact in graph.dependency_artifacts():
            ev = evidence.get(artifact) or ArtifactEvidence(artifact)
            ctx = RuleContext(
                artifact=artifact,
                namespace=namespaces[artifact],
                equivalent=ev.equivalent,
                compatibility=ev.compatibility,
                conflict=graph.conflict_for(artifact),
            )
            blockers.extend(evaluate_rules(self.rules, ctx))
        return sorted(blockers, key=Blocker.sort_key)

    def _recommend(
        self,
        artifacts: Sequence[Artifact],
        namespaces: NamespaceCompatibilityMap,
        evidence: Mapping[Artifact, ArtifactEvidence],
    ) -> list[VersionRecommendation]:
        recommendations: list[VersionRecommendation] = []
        for artifact in artifacts:
            ev = evidence.get(artifact)
            if ev is None or ev.equivalent is None or ev.target is None:
                continue
            if namespaces[artifact] is Namespace.JAKARTA:
                continue
            eq, target = ev.equivalent, ev.target
            report = ev.compatibility if ev.compatibility is not None and ev.compatibility.has_evidence else None
            recommendations.append(
                VersionRecommendation(
                    current_artifact=artifact,
                    recommended_artifact=target,
                    migration_path=_migration_path(artifact, eq),
                    compatibility_level=eq.compatibility_level,
                    compatibility_score=compatibility_score(eq.compatibility_level, report),
                    breaking_changes=report.breaking_changes if report is not None else (),
                )
            )
        return recommendations

    # -- scores -----------------------------------------------------------

    @staticmethod
    def _by_artifact(blockers: Iterable[Blocker]) -> dict[Artifact, list[Blocker]]:
        grouped: dict[Artifact, list[Blocker]] = {}
        for b in blockers:
            grouped.setdefault(b.artifact, []).append(b)
        return grouped

    def readiness(
        self, graph: DependencyGraph, namespaces: NamespaceCompatibilityMap, blockers: Sequence[Blocker]
    ) -> ReadinessScore:
        """Share of dependencies that are already migration-safe.

        Artifacts whose only blockers are transitive conflicts are left out
        of the count; they are a version alignment problem, not a namespace one.
        """
        grouped = self._by_artifact(blockers)
        considered = [
            a
            for a in graph.dependency_artifacts()
            if not (grouped.get(a) and all(b.type is BlockerType.TRANSITIVE_CONFLICT for b in grouped[a]))
        ]
        if not considered:
            return ReadinessScore(score=1.0, explanation="No dependencies to migrate")

        ready = [
            a
            for a in considered
            if namespaces[a] is Namespace.JAKARTA or (namespaces[a] is Namespace.UNKNOWN and not grouped.get(a))
        ]
        blocked = sum(1 for a in considered if grouped.get(a))
        upgrades = len(considered) - len(ready) - blocked
        explanation = f"{len(ready)} of {len(considered)} dependencies are Jakarta-ready"
        if blocked and blocked >= upgrades:
            explanation += f"; {blocked} blocked dependency(ies) dominate the remaining work"
        elif upgrades:
            explanation += f"; {upgrades} javax dependency(ies) need a coordinate upgrade"
        score = min(1.0, max(0.0, len(ready) / len(considered)))
        return ReadinessScore(score=round(score, 4), explanation=explanation)

    def risk(
        self, graph: DependencyGraph, namespaces: NamespaceCompatibilityMap, blockers: Sequence[Blocker]
    ) -> RiskAssessment:
        """``0.7 * mean blocker severity + 0.3 * share of blocked direct dependencies``."""
        grouped = self._by_artifact(blockers)
        artifacts = graph.dependency_artifacts()
        if not artifacts:
            return RiskAssessment(risk_score=0.0)

        def weight(a: Artifact) -> float:
            if grouped.get(a):
                return max(BLOCKER_WEIGHTS[b.type] for b in grouped[a])
            return VERSION_GAP_WEIGHT if namespaces[a] in MIGRATABLE else 0.0

        severity = sum(weight(a) for a in artifacts) / len(artifacts)
        direct = [a for a in artifacts if graph.is_direct(a)]
        exposure = sum(1 for a in direct if grouped.get(a)) / len(direct) if direct else 0.0
        score = min(1.0, 0.7 * severity + 0.3 * exposure)

        factors: list[str] = []
        suggestions: list[str] = []
        for kind in BlockerType:
            hit = {b.artifact for b in blockers if b.type is kind}
            if not hit:
                continue
            factors.append(_FACTOR_TEXT[kind].format(n=len(hit)))
            for b in blockers:
                if b.type is kind:
                    suggestions.extend(s for s in b.mitigation_strategies if s not in suggestions)
                    break
        return RiskAssessment(
            risk_score=round(score, 4),
            risk_factors=tuple(factors),
            mitigation_suggestions=tuple(suggestions),
        )

    # -- supplementary views ----------------------------------------------

    def analyze_transitive_conflicts(self, graph: DependencyGraph) -> TransitiveConflictReport:
        """Version conflicts plus javax/jakarta variants of the same API living side by side."""
        conflicts: list[TransitiveConflict] = []
        for c in graph.conflicts:
            conflicts.append(
                TransitiveConflict(
                    kind=ConflictKind.VERSION,
                    coordinates=(c.identifier(),),
                    versions=c.requested_versions,
                    requested_by=tuple(sorted({r.parent.compact() for r in c.requests})),
                    description=(
                        f"{c.identifier()} requested at {', '.join(c.requested_versions)}; "
                        f"resolved to {c.resolved_version}"
                    ),
                )
            )

        present: dict[tuple[str, str], Artifact] = {(a.group_id, a.artifact_id): a for a in graph.nodes}
        for artifact in graph.dependency_artifacts():
            eq = self.mapping.find_mapping(artifact)
            if eq is None or not eq.usable:
                continue
            other = present.get((eq.group_id, eq.artifact_id))
            if other is None or other == artifact or (other.group_id, other.artifact_id) == (
                artifact.group_id,
                artifact.artifact_id,
            ):
                continue
            conflicts.append(
                TransitiveConflict(
                    kind=ConflictKind.NAMESPACE,
                    coordinates=(artifact.identifier(), other.identifier()),
                    versions=(artifact.version, other.version),
                    requested_by=tuple(a.compact() for a in graph.reverse_dependencies(artifact)),
                    description=f"{artifact.compact()} and its Jakarta replacement {other.compact()} are both present",
                )
            )

        versions = sum(1 for c in conflicts if c.kind is ConflictKind.VERSION)
        sides = len(conflicts) - versions
        summary = (
            f"{versions} version conflict(s), {sides} javax/jakarta side-by-side conflict(s)"
            if conflicts
            else "No transitive conflicts found"
        )
        return TransitiveConflictReport(conflicts=tuple(conflicts), summary=summary)

    def assess_impact(
        self, report: DependencyAnalysisReport, scan: SourceScanSummary | None = None
    ) -> MigrationImpact:
        """Combine the dependency report with source scan counts into an effort estimate."""
        scan = scan or SourceScanSummary()
        affected = {r.current_artifact for r in report.recommendations} | {b.artifact for b in report.blockers}
        breaking = sum(len(r.breaking_changes) for r in report.recommendations)
        no_version = {b.artifact for b in report.blockers if b.type is BlockerType.NO_JAKARTA_VERSION}
        risk = report.risk_assessment.risk_score

        minutes = (
            self.config.file_minutes * (scan.files_with_javax_usage + len(affected))
            + self.config.breaking_change_minutes * breaking
            + self.config.blocker_minutes * len(no_version)
        )

        if no_version or risk >= 0.75:
            level = ImpactLevel.CRITICAL
        elif risk >= 0.5 or scan.files_with_javax_usage > 100:
            level = ImpactLevel.HIGH
        elif risk >= 0.25 or affected or scan.files_with_javax_usage:
            level = ImpactLevel.MEDIUM
        else:
            level = ImpactLevel.LOW

        factors = list(report.risk_assessment.risk_factors)
        if scan.files_with_javax_usage:
            factors.append(
                f"{scan.files_with_javax_usage} of {scan.files_scanned} source file(s) import javax.* packages"
            )
        return MigrationImpact(
            level=level,
            description=(
                f"{level.value} impact: {len(affected)} dependency(ies) to change, "
                f"{scan.files_with_javax_usage} source file(s) using javax.*"
            ),
            affected_dependencies=len(affected),
            blocker_count=len(report.blockers),
            breaking_changes=breaking,
            files_with_javax_usage=scan.files_with_javax_usage,
            estimated_hours=round(minutes / 60, 1),
            risk_factors=tuple(factors),
        )
