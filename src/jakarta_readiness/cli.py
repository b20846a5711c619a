"""Typer CLI entry point for Jakarta Readiness."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape

from jakarta_readiness.analysis import DependencyAnalysisModule
from jakarta_readiness.config import AnalysisConfig, UnresolvedJarPolicy
from jakarta_readiness.exceptions import JakartaReadinessError
from jakarta_readiness.logging_config import setup_logging
from jakarta_readiness.planner import MigrationPlanner
from jakarta_readiness.render import (
    blockers_table,
    build_dependency_tree,
    conflicts_table,
    plan_table,
    recommendations_table,
    summary_table,
)
from jakarta_readiness.report import Blocker, SourceScanSummary

app = typer.Typer(add_completion=False, help="Assess a Java project's readiness for the javax -> jakarta migration.")
console = Console()

_BLOCKERS = TypeAdapter(list[Blocker])

ProjectArg = Annotated[Path, typer.Argument(help="Project directory, pom.xml or build.gradle(.kts).")]
JsonOpt = Annotated[bool, typer.Option("--json", help="Print the result as JSON.")]
FlagOpt = Annotated[
    bool,
    typer.Option("--flag-unresolved", help="Report mapped dependencies whose JARs cannot be compared as blockers."),
]


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


def _config(flag_unresolved: bool = False) -> AnalysisConfig:
    config = AnalysisConfig.from_env()
    if flag_unresolved:
        config.unresolved_jar_policy = UnresolvedJarPolicy.FLAG
    config.validate()
    return config


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
    raise typer.Exit(code=1) from None


@app.command()
def analyze(
    project: ProjectArg,
    as_json: JsonOpt = False,
    tree: Annotated[bool, typer.Option("--tree", help="Also print the dependency tree.")] = False,
    flag_unresolved: FlagOpt = False,
) -> None:
    """Analyze dependencies: namespaces, blockers, recommendations, readiness and risk."""
    try:
        report = DependencyAnalysisModule(_config(flag_unresolved)).analyze_project(project)
    except JakartaReadinessError as exc:
        _fail(exc)

    if as_json:
        typer.echo(report.model_dump_json(indent=2))
        return
    console.print(f"[dim]{project}[/dim]")
    if tree:
        console.print(build_dependency_tree(report.graph, report.namespace_map))
    console.print(summary_table(report))
    if report.blockers:
        console.print(blockers_table(report.blockers))
    if report.recommendations:
        console.print(recommendations_table(report.recommendations))


@app.command()
def blockers(project: ProjectArg, as_json: JsonOpt = False, flag_unresolved: FlagOpt = False) -> None:
    """List migration blockers only."""
    try:
        module = DependencyAnalysisModule(_config(flag_unresolved))
        graph = module.builder.build_from_project(project)
        found = module.detect_blockers(graph)
    except JakartaReadinessError as exc:
        _fail(exc)

    if as_json:
        typer.echo(_BLOCKERS.dump_json(found, indent=2).decode())
        return
    if not found:
        console.print("[green]No migration blockers found.[/green]")
        return
    console.print(blockers_table(found))


@app.command()
def conflicts(project: ProjectArg, as_json: JsonOpt = False) -> None:
    """Show version conflicts and javax/jakarta artifacts living side by side."""
    try:
        module = DependencyAnalysisModule(_config())
        result = module.analyze_transitive_conflicts(module.builder.build_from_project(project))
    except JakartaReadinessError as exc:
        _fail(exc)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return
    if not result.has_conflicts:
        console.print(f"[green]{result.summary}[/green]")
        return
    console.print(conflicts_table(result))


@app.command()
def plan(
    project: ProjectArg,
    as_json: JsonOpt = False,
    scan_summary: Annotated[
        Path | None,
        typer.Option("--scan-summary", help="JSON file with source scan counts (files_scanned, files_with_javax_usage, import_counts)."),
    ] = None,
    flag_unresolved: FlagOpt = False,
) -> None:
    """Create a phased migration plan."""
    try:
        scan = None
        if scan_summary is not None:
            try:
                scan = SourceScanSummary.model_validate_json(scan_summary.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as exc:
                raise JakartaReadinessError(f"Invalid scan summary {scan_summary}: {exc}") from exc
        config = _config(flag_unresolved)
        module = DependencyAnalysisModule(config)
        report = module.analyze_project(project)
        result = MigrationPlanner(config, module.mapping).create_plan(project, report, scan)
    except JakartaReadinessError as exc:
        _fail(exc)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return
    console.print(plan_table(result))
    for item in result.prerequisites:
        console.print(f"[yellow]-[/yellow] {item}")


def main() -> None:
    """Console-script entry point."""
    app()
