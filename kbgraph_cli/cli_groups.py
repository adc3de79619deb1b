"""Command hierarchy groups for organized CLI experience.

Provides logical grouping of commands under:
  kbg config  : Kibana connection settings
  kbg analyze : Dependency, impact, and health analysis
"""

from __future__ import annotations

import typer

# ── Configuration group ──────────────────────────────────────
config_grp = typer.Typer(
    help="⚙️  Configuration: Kibana URL, credentials, and default space.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ── Analysis group ───────────────────────────────────────────
analyze_grp = typer.Typer(
    help="🔍 Analysis: dependencies, deletion impact, and dashboard health.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
