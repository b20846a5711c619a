"""Rich rendering for analysis reports and migration plans."""

from __future__ import annotations

from rich.table import Table
from rich.tree import Tree

from jakarta_readiness.classifier import NamespaceCompatibilityMap
from jakarta_readiness.graph import DependencyGraph
from jakarta_readiness.models import Artifact, Namespace
from jakarta_readiness.report import (
    Blocker,
    DependencyAnalysisReport,
    MigrationPlan,
    TransitiveConflictReport,
    VersionRecommendation,
)

_NAMESPACE_STYLE = {
    Namespace.JAKARTA: "green",
    Namespace.JAVAX: "red",
    Namespace.MIXED: "yellow",
    Namespace.UNKNOWN: "dim",
}


def _label(artifact: Artifact, namespaces: NamespaceCompatibilityMap | None) -> str:
    if namespaces is None or artifact not in namespaces:
        return artifact.compact()
    ns = namespaces[artifact]
    return f"{artifact.compact()} [{_NAMESPACE_STYLE[ns]}]{ns.value}[/]"


def build_dependency_tree(
    graph: DependencyGraph,
    namespaces: NamespaceCompatibilityMap | None = None,
    max_depth: int = 3,
) -> Tree:
    """Build a Rich Tree of the graph below its roots.

    Args:
        graph: Dependency graph to render.
        namespaces: Optional classification shown next to each artifact.
        max_depth: Levels below each root to expand.

    Returns:
        A Rich Tree object for rendering.
    """
    tree = Tree("[bold]Dependencies[/bold]")
    roots = sorted(graph.roots, key=lambda a: a.compact())
    if not roots:
        for a in graph.dependency_artifacts():
            tree.add(_label(a, namespaces))
        if not graph.nodes:
            tree.add("[dim]No dependencies found[/dim]")
        return tree

    def add_children(branch: Tree, artifact: Artifact, depth: int, path: frozenset[Artifact]) -> None:
        if depth >= max_depth:
            return
        for child in graph.successors(artifact):
            if child in path:
                branch.add(f"{_label(child, namespaces)} [dim](cycle)[/dim]")
                continue
            add_children(branch.add(_label(child, namespaces)), child, depth + 1, path | {child})

    for root in roots:
        branch = tree.add(f"[bold]{root.compact()}[/bold]")
        add_children(branch, root, 0, frozenset({root}))
        if not graph.successors(root):
            branch.add("[dim]No direct dependencies found[/dim]")
    return tree


def summary_table(report: DependencyAnalysisReport) -> Table:
    table = Table(title="Jakarta readiness", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Readiness", f"{report.readiness_score.score:.0%}  {report.readiness_score.explanation}")
    table.add_row("Risk", f"{report.risk_assessment.risk_score:.2f}")
    for factor in report.risk_assessment.risk_factors:
        table.add_row("", f"- {factor}")
    counts = report.namespace_map.counts()
    table.add_row("Namespaces", ", ".join(f"{ns.value}: {n}" for ns, n in counts.items() if n))
    table.add_row("Blockers", str(len(report.blockers)))
    table.add_row("Recommendations", str(len(report.recommendations)))
    return table


def blockers_table(blockers: list[Blocker] | tuple[Blocker, ...]) -> Table:
    table = Table(title="Migration blockers")
    table.add_column("Artifact")
    table.add_column("Type", style="bold red")
    table.add_column("Confidence", justify="right")
    table.add_column("Reason")
    for b in blockers:
        table.add_row(b.artifact.compact(), b.type.value, f"{b.confidence:.2f}", b.reason)
    return table


def recommendations_table(recommendations: list[VersionRecommendation] | tuple[VersionRecommendation, ...]) -> Table:
    table = Table(title="Recommended replacements")
    table.add_column("Current")
    table.add_column("Recommended", style="green")
    table.add_column("Level")
    table.add_column("Score", justify="right")
    table.add_column("Breaking", justify="right")
    for r in recommendations:
        table.add_row(
            r.current_artifact.compact(),
            r.recommended_artifact.compact(),
            r.compatibility_level.value,
            f"{r.compatibility_score:.2f}",
            str(len(r.breaking_changes)),
        )
    return table


def conflicts_table(report: TransitiveConflictReport) -> Table:
    table = Table(title=f"Transitive conflicts ({report.summary})")
    table.add_column("Kind", style="bold")
    table.add_column("Coordinates")
    table.add_column("Versions")
    table.add_column("Requested by", style="dim")
    for c in report.conflicts:
        table.add_row(c.kind.value, "\n".join(c.coordinates), ", ".join(c.versions), "\n".join(c.requested_by))
    return table


def plan_table(plan: MigrationPlan) -> Table:
    table = Table(title=f"Migration plan ({plan.estimated_duration}, risk {plan.overall_risk.risk_score:.2f})")
    table.add_column("#", style="dim", width=4)
    table.add_column("Description")
    table.add_column("Touches", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Risk", justify="right")
    table.add_column("After", style="dim")
    for p in plan.phases:
        table.add_row(
            str(p.phase_number),
            p.description,
            str(p.estimated_file_touches),
            str(p.estimated_duration),
            f"{p.risk_score:.2f}",
            ", ".join(str(n) for n in p.depends_on),
        )
    return table
