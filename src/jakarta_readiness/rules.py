"""Blocker rules.

Each rule looks at one artifact in isolation and returns zero or more
blockers. Rules are independent and their results are additive; the engine
runs them in the order given.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from jakarta_readiness.config import UnresolvedJarPolicy
from jakarta_readiness.models import (
    Artifact,
    BinaryCompatibilityReport,
    JakartaEquivalent,
    Namespace,
    VersionConflict,
)
from jakarta_readiness.report import Blocker, BlockerType
from jakarta_readiness.versions import majors_differ

MAX_LISTED_CHANGES = 10

_MITIGATIONS: dict[BlockerType, tuple[str, ...]] = {
    BlockerType.NO_JAKARTA_VERSION: (
        "Look for a maintained fork or an alternative library that supports jakarta.*",
        "Produce a jakarta.* build of the JAR with the Eclipse Transformer",
        "Isolate the dependency behind an adapter and migrate it last",
    ),
    BlockerType.BINARY_INCOMPATIBLE: (
        "Update call sites for the removed or changed APIs listed in the reason",
        "Upgrade in a dedicated phase backed by a full regression run",
    ),
    BlockerType.VERSION_INCOMPATIBLE: (
        "Download the JARs locally (mvn dependency:resolve or gradle dependencies) and re-run the analysis",
    ),
    BlockerType.TRANSITIVE_CONFLICT: (
        "Pin a single version with dependencyManagement or Gradle constraints",
        "Upgrade the dependencies that still request the older version",
    ),
}

MIGRATABLE = frozenset({Namespace.JAVAX, Namespace.MIXED})


@dataclass(frozen=True)
class RuleContext:
    """Everything known about one artifact when its blockers are decided."""

    artifact: Artifact
    namespace: Namespace
    equivalent: JakartaEquivalent | None = None
    compatibility: BinaryCompatibilityReport | None = None
    conflict: VersionConflict | None = None


class BlockerRule(Protocol):
    def evaluate(self, ctx: RuleContext) -> list[Blocker]:
        ...


def _blocker(ctx: RuleContext, kind: BlockerType, reason: str, confidence: float) -> Blocker:
    return Blocker(
        artifact=ctx.artifact,
        type=kind,
        reason=reason,
        confidence=round(min(1.0, max(0.0, confidence)), 4),
        mitigation_strategies=_MITIGATIONS[kind],
    )


class NoJakartaVersionRule:
    """No known replacement, or the API was pruned from Jakarta EE."""

    def evaluate(self, ctx: RuleContext) -> list[Blocker]:
        eq = ctx.equivalent
        if eq is not None and eq.usable:
            return []
        if eq is None:
            reason = f"No Jakarta equivalent is known for {ctx.artifact.identifier()}"
        else:
            reason = f"{ctx.artifact.identifier()} has no Jakarta equivalent"
            if eq.notes:
                reason += f": {eq.notes}"
        return [_blocker(ctx, BlockerType.NO_JAKARTA_VERSION, reason, 1.0)]


class BinaryIncompatibilityRule:
    """The replacement was compared and found binary incompatible."""

    def evaluate(self, ctx: RuleContext) -> list[Blocker]:
        eq, report = ctx.equivalent, ctx.compatibility
        if eq is None or not eq.usable or report is None or report.is_compatible:
            return []
        changes = report.breaking_changes
        listed = "; ".join(c.description or c.type.value for c in changes[:MAX_LISTED_CHANGES])
        if len(changes) > MAX_LISTED_CHANGES:
            listed += f"; and {len(changes) - MAX_LISTED_CHANGES} more"
        reason = f"{len(changes)} breaking change(s) migrating to {eq.compact()}: {listed}"
        confidence = 0.5 + 0.1 * sum(c.severity for c in changes)
        return [_blocker(ctx, BlockerType.BINARY_INCOMPATIBLE, reason, confidence)]


class MissingEvidenceRule:
    """A replacement exists but the JARs could not be compared.

    With ``UnresolvedJarPolicy.IGNORE`` this never fires and the artifact
    only gets a version recommendation.
    """

    def __init__(self, policy: UnresolvedJarPolicy = UnresolvedJarPolicy.IGNORE) -> None:
        self.policy = policy

    def evaluate(self, ctx: RuleContext) -> list[Blocker]:
        if self.policy is UnresolvedJarPolicy.IGNORE:
            return []
        eq, report = ctx.equivalent, ctx.compatibility
        if eq is None or not eq.usable:
            return []
        if report is not None and report.has_evidence:
            return []
        detail = report.summary if report is not None else "no comparison was made"
        reason = f"Compatibility with {eq.compact()} is unverified: {detail}"
        return [_blocker(ctx, BlockerType.VERSION_INCOMPATIBLE, reason, 0.3)]


class TransitiveConflictRule:
    """Distinct parents request versions with different major numbers."""

    def evaluate(self, ctx: RuleContext) -> list[Blocker]:
        conflict = ctx.conflict
        if conflict is None:
            return []
        reqs = conflict.requests
        clash = any(
            a.parent != b.parent and majors_differ(a.version, b.version)
            for i, a in enumerate(reqs)
            for b in reqs[i + 1 :]
        )
        if not clash:
            return []
        requested = ", ".join(f"{r.version} (by {r.parent.compact()})" for r in reqs)
        reason = (
            f"{conflict.identifier()} is requested at incompatible versions: {requested}; "
            f"{conflict.resolved_version} wins"
        )
        return [_blocker(ctx, BlockerType.TRANSITIVE_CONFLICT, reason, 0.8)]


def default_rules(policy: UnresolvedJarPolicy = UnresolvedJarPolicy.IGNORE) -> list[BlockerRule]:
    return [
        NoJakartaVersionRule(),
        BinaryIncompatibilityRule(),
        MissingEvidenceRule(policy),
        TransitiveConflictRule(),
    ]


def evaluate_rules(rules: Sequence[BlockerRule], ctx: RuleContext) -> list[Blocker]:
    """Run every rule for one artifact; only javax or mixed artifacts can be blocked."""
    if ctx.namespace not in MIGRATABLE:
        return []
    blockers: list[Blocker] = []
    for rule in rules:
        blockers.extend(rule.evaluate(ctx))
    return blockers
