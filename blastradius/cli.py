"""Typer-based CLI for blastradius dependency impact analysis."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from . import __version__, config, config_manager
from .analyzer import ImpactAnalyzer, normalize_target
from .errors import GraphFormatError, ImpactAnalysisError, InvalidInputError, TargetNotFoundError
from .logging_utils import console, print_error, setup_logging
from .models import ChangeType, ImpactAnalysis
from .path_resolver import suggest
from .risk import risk_level
from .storage import GraphStore, load_graph_file
from .summary import RISK_EMOJI, render_markdown

app = typer.Typer(
    help="💥 blast: dependency impact analysis for code graphs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="⚙️  Configuration: engine limits and cache settings.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config")


class OutputFormat(str, Enum):
    TABLE = "table"
    MARKDOWN = "markdown"
    JSON = "json"


_LEVEL_STYLE = {
    "critical": "bold red",
    "high": "dark_orange",
    "medium": "yellow",
    "low": "green",
}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"blastradius v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors."),
):
    """Trace which files break when a file changes."""
    setup_logging("verbose" if verbose else "quiet" if quiet else "normal")


def _load_store(graph_file: Path) -> GraphStore:
    store = GraphStore()
    try:
        store.load(load_graph_file(graph_file))
    except GraphFormatError as exc:
        print_error(exc.message)
        raise typer.Exit(code=1)
    return store


def _print_suggestions(suggestions: List[str]) -> None:
    if not suggestions:
        return
    typer.echo("\n💡 Did you mean one of these?", err=True)
    for item in suggestions:
        typer.echo(f"   - {item}", err=True)


def _print_table(analysis: ImpactAnalysis) -> None:
    level = risk_level(analysis.risk_score)
    console.print(
        Panel.fit(
            f"[bold]{analysis.target}[/bold] ({analysis.change_type.value})\n"
            f"{RISK_EMOJI[level]} Risk score: [bold]{analysis.risk_score}/10[/bold] ({level})",
            title="[bold]Impact Analysis[/bold]",
        )
    )

    if analysis.impacted_files:
        table = Table(title=f"\n{len(analysis.impacted_files)} impacted files", show_header=True)
        table.add_column("Level", width=9)
        table.add_column("Dist", justify="right", width=4)
        table.add_column("Path", style="cyan", overflow="fold")
        table.add_column("Reason", min_width=30)
        for item in analysis.impacted_files:
            style = _LEVEL_STYLE[item.impact_level.value]
            table.add_row(
                f"[{style}]{item.impact_level.value.upper()}[/{style}]",
                str(item.distance),
                item.path,
                item.reason,
            )
        console.print(table)
    else:
        console.print("\n[green]No files depend on this target.[/green]")

    if analysis.circular_dependencies:
        console.print(f"\n[bold yellow]🔄 {len(analysis.circular_dependencies)} circular dependency chain(s)[/bold yellow]")
        for cycle in analysis.circular_dependencies:
            console.print(f"  • {' → '.join(cycle)}")

    console.print(
        Panel(
            "\n".join(f"  • {rec}" for rec in analysis.recommendations),
            title="[bold yellow]📋 Recommendations[/bold yellow]",
            border_style="yellow",
        )
    )

    meta = analysis.metadata
    if meta.truncated:
        console.print("[yellow]⚠️  Traversal stopped at a limit; results are partial.[/yellow]")
    if meta.degraded:
        console.print(f"[yellow]⚠️  Fallback used for: {', '.join(meta.degraded)}[/yellow]")
    console.print(f"[dim]depth {meta.depth} · {meta.analysis_time_ms}ms[/dim]")


@app.command("analyze")
def analyze(
    graph_file: Path = typer.Argument(..., help="Graph JSON produced by the scanner."),
    target: str = typer.Argument(..., help="Workspace-relative path of the changed file."),
    change_type: ChangeType = typer.Option(ChangeType.MODIFY, "--change-type", "-c", help="Kind of change."),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Hops to follow (clamped to 1-5)."),
    output: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="table, markdown or json."),
):
    """Show every file affected by changing TARGET."""
    store = _load_store(graph_file)
    analyzer = ImpactAnalyzer(store, settings=config_manager.load_settings())
    try:
        analysis = analyzer.analyze_impact(
            {"target": target, "changeType": change_type.value, "depth": depth}
        )
    except InvalidInputError as exc:
        raise typer.BadParameter(exc.message)
    except TargetNotFoundError as exc:
        print_error(exc.message)
        _print_suggestions(exc.suggestions)
        raise typer.Exit(code=1)
    except ImpactAnalysisError as exc:
        print_error(exc.message)
        raise typer.Exit(code=1)
    finally:
        analyzer.close()

    if output is OutputFormat.JSON:
        typer.echo(json.dumps(analysis.to_dict(), indent=2, ensure_ascii=False))
    elif output is OutputFormat.MARKDOWN:
        console.print(Markdown(render_markdown(analysis)))
    else:
        _print_table(analysis)


@app.command("dependents")
def dependents(
    graph_file: Path = typer.Argument(..., help="Graph JSON produced by the scanner."),
    node_id: str = typer.Argument(..., help="Node id to look up."),
):
    """List files that directly import NODE_ID."""
    try:
        node_id = normalize_target(node_id)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    store = _load_store(graph_file)
    if not store.has_node(node_id):
        print_error(f"Node not found in dependency graph: {node_id}")
        _print_suggestions(suggest(node_id, store.node_ids()))
        raise typer.Exit(code=1)

    found = store.dependents_of(node_id)
    if not found:
        typer.echo(f"No files depend on {node_id}.")
        return
    typer.echo(f"{len(found)} file(s) depend on {node_id}:")
    for item in found:
        typer.echo(f"  - {item}")


@app.command("graph-info")
def graph_info(
    graph_file: Path = typer.Argument(..., help="Graph JSON produced by the scanner."),
):
    """Show node, edge and index counts for a graph file."""
    store = _load_store(graph_file)
    stats = store.stats()

    table = Table(title="Graph", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Nodes", str(stats["nodes"]))
    table.add_row("Edges", str(stats["edges"]))
    table.add_row("Indexed targets", str(stats["indexed_targets"]))
    table.add_row("Dangling edges", str(stats["dangling_edges"]))

    graph = store.current()
    for key, value in sorted((graph.metadata if graph else {}).items()):
        table.add_row(f"meta.{key}", str(value))
    console.print(table)


# ── config ───────────────────────────────────────────────────

@config_app.command("show")
def config_show():
    """Print the effective configuration."""
    table = Table(title=f"Config ({config.CONFIG_FILE})", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value", justify="right")
    for section, values in config_manager.effective_config().items():
        for name, value in values.items():
            table.add_row(f"{section}.{name}", str(value))
    console.print(table)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="section.name, e.g. analysis.max_nodes"),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one configuration value."""
    try:
        stored = config_manager.set_value(key, value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    typer.echo(f"✅ {key} = {stored}")


@config_app.command("reset")
def config_reset():
    """Remove the config file and go back to defaults."""
    if config_manager.reset_config():
        typer.echo("✅ Configuration reset to defaults.")
    else:
        typer.echo("Configuration already at defaults.")
