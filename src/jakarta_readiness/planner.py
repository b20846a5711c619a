"""Turn an analysis report into a phased migration plan."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

from jakarta_readiness.config import AnalysisConfig
from jakarta_readiness.mapping import JakartaMappingService
from jakarta_readiness.models import Artifact
from jakarta_readiness.report import (
    BLOCKER_WEIGHTS,
    VERSION_GAP_WEIGHT,
    BlockerType,
    DependencyAnalysisReport,
    MigrationPlan,
    RefactoringPhase,
    RiskAssessment,
    SourceScanSummary,
)
from jakarta_readiness.scanner import find_build_files

logger = logging.getLogger(__name__)

MAX_NAMES_IN_DESCRIPTION = 3
CONCENTRATED_RISK = 0.5


def _names(artifacts: Sequence[Artifact]) -> str:
    shown = ", ".join(a.identifier() for a in artifacts[:MAX_NAMES_IN_DESCRIPTION])
    if len(artifacts) > MAX_NAMES_IN_DESCRIPTION:
        shown += f" and {len(artifacts) - MAX_NAMES_IN_DESCRIPTION} more"
    return shown


class MigrationPlanner:
    """Schedules replacements so no phase depends on unfinished later work.

    Phase 1 takes every dependency without a Jakarta version. The remaining
    upgrades follow the dependency graph bottom-up and are packed into
    phases of roughly equal size (in estimated file touches). A verification
    phase closes the plan.
    """

    def __init__(self, config: AnalysisConfig | None = None, mapping: JakartaMappingService | None = None) -> None:
        self.config = config or AnalysisConfig()
        self.mapping = mapping or JakartaMappingService()

    def file_touches(self, artifact: Artifact, scan: SourceScanSummary) -> int:
        """One descriptor edit plus the source files expected to import the artifact's packages."""
        eq = self.mapping.find_mapping(artifact)
        imports = scan.imports_for(eq.javax_packages) if eq is not None and eq.javax_packages else 0
        return 1 + min(imports, scan.files_with_javax_usage)

    def _artifact_risk(self, artifact: Artifact, report: DependencyAnalysisReport) -> float:
        blockers = report.blockers_for(artifact)
        if blockers:
            return max(BLOCKER_WEIGHTS[b.type] for b in blockers)
        rec = report.recommendation_for(artifact)
        score = rec.compatibility_score if rec is not None else 1.0
        return min(1.0, VERSION_GAP_WEIGHT + 0.3 * (1.0 - score))

    def _duration(self, artifacts: Sequence[Artifact], touches: int, report: DependencyAnalysisReport) -> timedelta:
        changes = 0
        blockers = 0
        for a in artifacts:
            rec = report.recommendation_for(a)
            if rec is not None:
                changes += len(rec.breaking_changes)
            blockers += len(report.blockers_for(a))
        minutes = (
            self.config.file_minutes * touches
            + self.config.breaking_change_minutes * changes
            + self.config.blocker_minutes * blockers
        )
        return timedelta(minutes=minutes)

    def _files(self, artifacts: Sequence[Artifact], report: DependencyAnalysisReport, fallback: tuple[Path, ...]) -> tuple[Path, ...]:
        graph = report.graph
        if not graph.descriptors:
            return fallback
        files: set[Path] = set()
        for a in artifacts:
            for root in graph.roots_reaching(a):
                path = graph.descriptors.get(root)
                if path is not None:
                    files.add(path)
        return tuple(sorted(files))

    def _pack(self, groups: list[list[Artifact]], touches: dict[Artifact, int]) -> list[list[Artifact]]:
        """Greedy packing of ordered groups into roughly equal phases."""
        total = sum(touches[a] for g in groups for a in g)
        if total == 0:
            return []
        limit = self.config.max_phase_size
        target = math.ceil(total / math.ceil(total / limit))

        phases: list[list[Artifact]] = []
        current: list[Artifact] = []
        size = 0
        for group in groups:
            weight = sum(touches[a] for a in group)
            if weight > limit:
                if current:
                    phases.append(current)
                phases.append(list(group))
                current, size = [], 0
                continue
            if current and size + weight > target:
                phases.append(current)
                current, size = [], 0
            current.extend(group)
            size += weight
        if current:
            phases.append(current)
        return phases

    def create_plan(
        self,
        path: str | Path,
        report: DependencyAnalysisReport,
        scan: SourceScanSummary | None = None,
    ) -> MigrationPlan:
        """Build the migration plan for the project at ``path``.

        ``path`` is only read when the report's graph carries no descriptor
        paths (graphs built from declarations); its build files are then
        listed for every phase.
        """
        scan = scan or SourceScanSummary()
        graph = report.graph
        fallback: tuple[Path, ...] = ()
        if not graph.descriptors:
            try:
                fallback = tuple(find_build_files(Path(path)))
            except OSError as exc:
                logger.debug("No build files listed for %s: %s", path, exc)

        unavailable = sorted(
            {b.artifact for b in report.blockers if b.type is BlockerType.NO_JAKARTA_VERSION},
            key=lambda a: a.compact(),
        )
        upgrades = {r.current_artifact for r in report.recommendations} - set(unavailable)
        scheduled = set(unavailable) | upgrades
        touches = {a: self.file_touches(a, scan) for a in scheduled}

        groups = [[a for a in group if a in upgrades] for group in graph.dependency_order()]
        packed: list[list[Artifact]] = []
        if unavailable:
            packed.append(unavailable)
        packed.extend(self._pack([g for g in groups if g], touches))

        phase_of: dict[Artifact, int] = {}
        for number, artifacts in enumerate(packed, start=1):
            for a in artifacts:
                phase_of[a] = number

        phases: list[RefactoringPhase] = []
        prerequisites: list[str] = []
        for number, artifacts in enumerate(packed, start=1):
            needs: set[int] = set()
            for a in artifacts:
                for dep in sorted(graph.descendants(a), key=lambda d: d.compact()):
                    other = phase_of.get(dep)
                    if other is None or other == number:
                        continue
                    if other < number:
                        needs.add(other)
                    else:
                        prerequisites.append(
                            f"{a.compact()} (phase {number}) depends on {dep.compact()}, upgraded in phase {other}"
                        )
            phase_touches = sum(touches[a] for a in artifacts)
            if number == 1 and unavailable:
                description = f"Replace or substitute dependencies without a Jakarta version: {_names(artifacts)}"
            else:
                description = f"Upgrade {len(artifacts)} dependency(ies) to Jakarta coordinates: {_names(artifacts)}"
            phases.append(
                RefactoringPhase(
                    phase_number=number,
                    description=description,
                    artifacts=tuple(artifacts),
                    files=self._files(artifacts, report, fallback),
                    estimated_file_touches=phase_touches,
                    estimated_duration=self._duration(artifacts, phase_touches, report),
                    risk_score=round(sum(self._artifact_risk(a, report) for a in artifacts) / len(artifacts), 4),
                    depends_on=tuple(sorted(needs)),
                )
            )
            if needs:
                prerequisites.append(
                    f"Phase {number} requires phase(s) {', '.join(str(n) for n in sorted(needs))} to be complete"
                )

        for conflict in graph.conflicts:
            involved = [phase_of[a] for a in scheduled if a.identifier() == conflict.identifier()]
            if involved:
                prerequisites.append(
                    f"Align {conflict.identifier()} on one version "
                    f"(requested: {', '.join(conflict.requested_versions)}) before phase {min(involved)}"
                )

        all_files = tuple(sorted(set(graph.descriptors.values()))) or fallback
        verification = RefactoringPhase(
            phase_number=len(phases) + 1,
            description="Verify: full build, test suite and runtime smoke test against the Jakarta EE stack",
            files=all_files,
            estimated_file_touches=len(all_files),
            estimated_duration=timedelta(minutes=self.config.file_minutes * len(all_files)),
            risk_score=0.0,
            depends_on=tuple(p.phase_number for p in phases),
        )
        phases.append(verification)

        touched = {f for p in phases for f in p.files}
        plan = MigrationPlan(
            phases=tuple(phases),
            total_file_count=len(touched) + scan.files_with_javax_usage,
            estimated_duration=sum((p.estimated_duration for p in phases), timedelta(0)),
            overall_risk=self._overall_risk(phases[:-1], report),
            prerequisites=tuple(prerequisites),
        )
        logger.info("Migration plan: %d phase(s), %s", len(plan.phases), plan.estimated_duration)
        return plan

    def _overall_risk(self, phases: Sequence[RefactoringPhase], report: DependencyAnalysisReport) -> RiskAssessment:
        """Risk of the plan as realized: ``0.6 * worst phase + 0.4 * touch-weighted mean``."""
        suggestions = report.risk_assessment.mitigation_suggestions
        if not phases:
            return RiskAssessment(risk_score=0.0, mitigation_suggestions=suggestions)

        worst = max(phases, key=lambda p: p.risk_score)
        weights = sum(p.estimated_file_touches for p in phases)
        mean = sum(p.risk_score * p.estimated_file_touches for p in phases) / weights if weights else worst.risk_score
        score = min(1.0, 0.6 * worst.risk_score + 0.4 * mean)

        factors = [
            f"Phase {p.phase_number} concentrates risk ({p.risk_score:.2f}) over "
            f"{len(p.artifacts)} dependency(ies) and {p.estimated_file_touches} file touch(es)"
            for p in phases
            if p.risk_score >= CONCENTRATED_RISK
        ]
        if not factors:
            factors.append(f"Highest phase risk is {worst.risk_score:.2f} (phase {worst.phase_number})")
        return RiskAssessment(
            risk_score=round(score, 4),
            risk_factors=tuple(factors),
            mitigation_suggestions=suggestions,
        )
