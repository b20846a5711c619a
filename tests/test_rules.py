from __future__ import annotations

from jakarta_readiness.config import UnresolvedJarPolicy
from jakarta_readiness.mapping import JakartaMappingService
from jakarta_readiness.models import (
    Artifact,
    BinaryCompatibilityReport,
    BreakingChange,
    BreakingChangeType,
    Namespace,
    VersionConflict,
    VersionRequest,
)
from jakarta_readiness.report import BlockerType
from jakarta_readiness.rules import (
    BinaryIncompatibilityRule,
    MissingEvidenceRule,
    NoJakartaVersionRule,
    RuleContext,
    TransitiveConflictRule,
    default_rules,
    evaluate_rules,
)

SERVLET = Artifact(group_id="javax.servlet", artifact_id="javax.servlet-api", version="4.0.1")
MAPPING = JakartaMappingService()


def _ctx(artifact: Artifact = SERVLET, **kw) -> RuleContext:
    kw.setdefault("namespace", Namespace.JAVAX)
    kw.setdefault("equivalent", MAPPING.find_mapping(artifact))
    return RuleContext(artifact=artifact, **kw)


def _incompatible(n: int, kind: BreakingChangeType = BreakingChangeType.METHOD_REMOVED) -> BinaryCompatibilityReport:
    eq = MAPPING.find_mapping(SERVLET)
    changes = [BreakingChange(type=kind, class_name=f"javax.servlet.C{i}", description=f"change {i}") for i in range(n)]
    return BinaryCompatibilityReport.incompatible(SERVLET, eq.as_artifact(SERVLET), changes)


def test_no_mapping_blocks_with_full_confidence() -> None:
    legacy = Artifact(group_id="com.acme", artifact_id="legacy-soap", version="1.0")
    blockers = NoJakartaVersionRule().evaluate(_ctx(legacy, equivalent=None))

    assert len(blockers) == 1
    assert blockers[0].type is BlockerType.NO_JAKARTA_VERSION
    assert blockers[0].confidence == 1.0
    assert blockers[0].mitigation_strategies


def test_no_equivalent_mapping_blocks_and_mentions_notes() -> None:
    rpc = Artifact(group_id="javax.xml.rpc", artifact_id="javax.xml.rpc-api", version="1.1.2")
    blockers = NoJakartaVersionRule().evaluate(_ctx(rpc))

    assert [b.type for b in blockers] == [BlockerType.NO_JAKARTA_VERSION]
    assert "pruned" in blockers[0].reason


def test_usable_mapping_is_not_a_missing_version() -> None:
    assert NoJakartaVersionRule().evaluate(_ctx()) == []


def test_binary_incompatibility_confidence_grows_with_severity() -> None:
    rule = BinaryIncompatibilityRule()
    one = rule.evaluate(_ctx(compatibility=_incompatible(1)))[0]
    three = rule.evaluate(_ctx(compatibility=_incompatible(3)))[0]
    many = rule.evaluate(_ctx(compatibility=_incompatible(12, BreakingChangeType.CLASS_REMOVED)))[0]

    assert one.type is BlockerType.BINARY_INCOMPATIBLE
    assert 0.5 < one.confidence < three.confidence <= 1.0
    assert many.confidence == 1.0
    assert "change 0" in many.reason
    assert "and 2 more" in many.reason


def test_unknown_report_never_yields_binary_blocker() -> None:
    eq = MAPPING.find_mapping(SERVLET)
    unknown = BinaryCompatibilityReport.unknown(SERVLET, eq.as_artifact(SERVLET), "JAR not available locally")

    assert BinaryIncompatibilityRule().evaluate(_ctx(compatibility=unknown)) == []


def test_missing_evidence_policy() -> None:
    ctx = _ctx(compatibility=None)

    assert MissingEvidenceRule(UnresolvedJarPolicy.IGNORE).evaluate(ctx) == []
    flagged = MissingEvidenceRule(UnresolvedJarPolicy.FLAG).evaluate(ctx)
    assert [b.type for b in flagged] == [BlockerType.VERSION_INCOMPATIBLE]
    assert flagged[0].confidence < 0.5


def test_transitive_conflict_needs_different_majors_from_distinct_parents() -> None:
    a = Artifact(group_id="com.acme", artifact_id="a", version="1")
    b = Artifact(group_id="com.acme", artifact_id="b", version="1")
    major_clash = VersionConflict(
        group_id="javax.servlet",
        artifact_id="javax.servlet-api",
        resolved_version="4.0.1",
        requests=(VersionRequest(parent=a, version="4.0.1"), VersionRequest(parent=b, version="3.1.0")),
    )
    minor_only = major_clash.model_copy(
        update={"requests": (VersionRequest(parent=a, version="4.0.1"), VersionRequest(parent=b, version="4.0.0"))}
    )

    rule = TransitiveConflictRule()
    blockers = rule.evaluate(_ctx(conflict=major_clash))
    assert [x.type for x in blockers] == [BlockerType.TRANSITIVE_CONFLICT]
    assert "3.1.0 (by com.acme:b:1)" in blockers[0].reason
    assert rule.evaluate(_ctx(conflict=minor_only)) == []


def test_blockers_are_additive() -> None:
    legacy = Artifact(group_id="com.acme", artifact_id="legacy-soap", version="1.0")
    p1 = Artifact(group_id="com.acme", artifact_id="p1", version="1")
    p2 = Artifact(group_id="com.acme", artifact_id="p2", version="1")
    conflict = VersionConflict(
        group_id="com.acme",
        artifact_id="legacy-soap",
        resolved_version="1.0",
        requests=(VersionRequest(parent=p1, version="1.0"), VersionRequest(parent=p2, version="2.0")),
    )

    blockers = evaluate_rules(default_rules(), _ctx(legacy, equivalent=None, conflict=conflict))

    assert [b.type for b in blockers] == [BlockerType.NO_JAKARTA_VERSION, BlockerType.TRANSITIVE_CONFLICT]


def test_only_javax_and_mixed_artifacts_are_evaluated() -> None:
    legacy = Artifact(group_id="com.acme", artifact_id="legacy-soap", version="1.0")
    rules = default_rules()

    assert evaluate_rules(rules, _ctx(legacy, equivalent=None, namespace=Namespace.JAKARTA)) == []
    assert evaluate_rules(rules, _ctx(legacy, equivalent=None, namespace=Namespace.UNKNOWN)) == []
    assert len(evaluate_rules(rules, _ctx(legacy, equivalent=None, namespace=Namespace.MIXED))) == 1
