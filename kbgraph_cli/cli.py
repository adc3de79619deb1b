"""Typer-based CLI for Kibana saved-object dependency and health analysis."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape

from . import __version__, config
from .cli_groups import analyze_grp, config_grp
from .cli_setup import set_kibana, show_kibana, unset_kibana
from .client import SavedObjectSource, client_from_config
from .dependency_analyzer import DependencyAnalyzer
from .errors import AnalysisError, ConfigError
from .formatters import (
    format_batch_report,
    format_dependency_tree,
    format_health_report,
    format_impact_analysis,
)
from .health_analyzer import HealthAnalyzer

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="🧭 kbgraph: saved-object dependency, impact, and dashboard health analysis for Kibana.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config_grp, name="config")
app.add_typer(analyze_grp, name="analyze")

config_grp.command("set-kibana")(set_kibana)
config_grp.command("show-kibana")(show_kibana)
config_grp.command("unset-kibana")(unset_kibana)

OUTPUT_FORMATS = ("markdown", "json")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"kbgraph CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, "--url", envvar="KBGRAPH_URL", help="Override the configured Kibana URL."),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log every request and degraded lookup."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """kbgraph CLI: read-only analysis of Kibana saved objects."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    ctx.obj = {"url": url}


def _open_source(ctx: typer.Context) -> SavedObjectSource:
    url = (ctx.obj or {}).get("url")
    try:
        return client_from_config(url=url)
    except ConfigError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}. Run 'kbg config set-kibana --url <url>' first.")
        raise typer.Exit(1)


def _check_format(fmt: str) -> str:
    fmt = fmt.lower()
    if fmt not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"Format must be one of: {', '.join(OUTPUT_FORMATS)}")
    return fmt


def _run(ctx: typer.Context, work: Callable[[SavedObjectSource], Any]) -> Any:
    source = _open_source(ctx)
    try:
        return work(source)
    except AnalysisError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(1)
    finally:
        source.close()


def _emit(result: Any, render: Callable[[Any], str], fmt: str, pretty: bool) -> None:
    if fmt == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif pretty:
        console.print(Markdown(render(result)))
    else:
        typer.echo(render(result))


@analyze_grp.command("deps")
def dependencies(
    ctx: typer.Context,
    obj_type: str = typer.Argument(..., help="Saved object type (dashboard, visualization, lens, index-pattern, ...)."),
    obj_id: str = typer.Argument(..., help="Saved object id."),
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Kibana space (defaults to the configured space)."),
    max_depth: int = typer.Option(config.DEFAULT_MAX_DEPTH, "--max-depth", "-d", min=0, help="Maximum depth to traverse."),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json."),
    pretty: bool = typer.Option(False, "--pretty", help="Render markdown in the terminal."),
):
    """🌳 Show the dependency tree below a saved object.

    Example:
      kbg analyze deps dashboard 7adfa750-4c81-11e8-b3d7-01146121b73d
    """
    fmt = _check_format(fmt)
    tree = _run(ctx, lambda source: DependencyAnalyzer(source).build_dependency_tree(
        obj_id, obj_type, space=space, max_depth=max_depth,
    ))
    _emit(tree, format_dependency_tree, fmt, pretty)


@analyze_grp.command("impact")
def impact(
    ctx: typer.Context,
    obj_type: str = typer.Argument(..., help="Saved object type (visualization, lens, index-pattern, ...)."),
    obj_id: str = typer.Argument(..., help="Saved object id."),
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Kibana space (defaults to the configured space)."),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json."),
    pretty: bool = typer.Option(False, "--pretty", help="Render markdown in the terminal."),
):
    """🎯 Estimate what deleting or modifying an object would break.

    Example:
      kbg analyze impact index-pattern logs-*
    """
    fmt = _check_format(fmt)
    analysis = _run(ctx, lambda source: DependencyAnalyzer(source).analyze_impact(obj_id, obj_type, space=space))
    _emit(analysis, format_impact_analysis, fmt, pretty)


@analyze_grp.command("health")
def health(
    ctx: typer.Context,
    dashboard_id: str = typer.Argument(..., help="Dashboard id to check."),
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Kibana space (defaults to the configured space)."),
    check_indices: bool = typer.Option(False, "--check-indices", help="Also resolve every index pattern the dashboard references."),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json."),
    pretty: bool = typer.Option(False, "--pretty", help="Render markdown in the terminal."),
):
    """🏥 Check a dashboard for broken references and oversized panels.

    Example:
      kbg analyze health 7adfa750-4c81-11e8-b3d7-01146121b73d --check-indices
    """
    fmt = _check_format(fmt)
    report = _run(ctx, lambda source: HealthAnalyzer(source).analyze_dashboard(
        dashboard_id, space=space, check_indices=check_indices,
    ))
    _emit(report, format_health_report, fmt, pretty)


@analyze_grp.command("scan")
def scan(
    ctx: typer.Context,
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Kibana space (defaults to the configured space)."),
    max_dashboards: int = typer.Option(
        config.DEFAULT_MAX_DASHBOARDS, "--max-dashboards", "-n", min=1, help="Maximum number of dashboards to scan.",
    ),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json."),
    pretty: bool = typer.Option(False, "--pretty", help="Render markdown in the terminal."),
):
    """📋 Scan every dashboard in a space and summarize their health.

    Example:
      kbg analyze scan --space marketing --max-dashboards 100
    """
    fmt = _check_format(fmt)
    report = _run(ctx, lambda source: HealthAnalyzer(source).scan_dashboards(space=space, max_dashboards=max_dashboards))
    _emit(report, format_batch_report, fmt, pretty)


if __name__ == "__main__":
    app()
