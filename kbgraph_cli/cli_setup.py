"""Kibana connection setup commands for kbgraph CLI."""

from __future__ import annotations

from typing import Optional

import typer

from . import config_manager
from .errors import ConfigError


def print_success(message: str):
    """Print success message."""
    typer.echo(typer.style(f"✅ {message}", fg=typer.colors.GREEN))


def print_error(message: str):
    """Print error message."""
    typer.echo(typer.style(f"❌ {message}", fg=typer.colors.RED), err=True)


def print_info(message: str):
    """Print info message."""
    typer.echo(typer.style(f"ℹ️  {message}", fg=typer.colors.BLUE))


def _mask(secret: str) -> str:
    if not secret:
        return typer.style("(not set)", dim=True)
    visible = secret[:4]
    return visible + "•" * min(max(len(secret) - 4, 4), 16)


def set_kibana(
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Kibana base URL, e.g. https://kibana.example.com:5601"),
    username: Optional[str] = typer.Option(None, "--username", help="Basic auth username."),
    password: Optional[str] = typer.Option(None, "--password", help="Basic auth password."),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="Kibana API key (takes precedence over basic auth)."),
    ca_cert: Optional[str] = typer.Option(None, "--ca-cert", help="Path to a CA bundle for TLS verification."),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=1, help="Request timeout in seconds."),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", min=0, help="Connection retries per request."),
    default_space: Optional[str] = typer.Option(None, "--space", "-s", help="Default Kibana space."),
):
    """Save Kibana connection settings to the config file.

    Examples:
        kbg config set-kibana -u https://localhost:5601 --username elastic --password changeme
        kbg config set-kibana -k YOUR_API_KEY -s marketing
    """
    values = {
        "url": url,
        "username": username,
        "password": password,
        "api_key": api_key,
        "ca_cert": ca_cert,
        "timeout": timeout,
        "max_retries": max_retries,
        "default_space": default_space,
    }
    if all(value is None for value in values.values()):
        print_error("Nothing to save. Pass at least one option (see --help).")
        raise typer.Exit(code=1)

    try:
        if url is not None:
            values["url"] = config_manager.validate_url(url)
        path = config_manager.save_kibana_config(values)
    except ConfigError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1)

    print_success(f"Kibana settings saved to {path}")


def show_kibana():
    """Show the effective Kibana connection settings (file + environment)."""
    try:
        cfg = config_manager.load_kibana_config()
    except ConfigError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1)

    typer.echo("")
    typer.echo(typer.style("🔍 Kibana Configuration", bold=True, fg=typer.colors.CYAN))
    typer.echo("━" * 50)
    typer.echo(f"  URL        {cfg['url'] or typer.style('(not set)', dim=True)}")
    typer.echo(f"  Space      {cfg['default_space']}")
    typer.echo(f"  Username   {cfg['username'] or typer.style('(not set)', dim=True)}")
    typer.echo(f"  Password   {_mask(cfg['password'])}")
    typer.echo(f"  API Key    {_mask(cfg['api_key'])}")
    if cfg["ca_cert"]:
        typer.echo(f"  CA Cert    {cfg['ca_cert']}")
    typer.echo(f"  Timeout    {cfg['timeout']}s")
    typer.echo(f"  Retries    {cfg['max_retries']}")
    typer.echo(f"  Config     {typer.style(str(config_manager.CONFIG_FILE), dim=True)}")


def unset_kibana(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """Remove saved Kibana settings from the config file."""
    if not config_manager.CONFIG_FILE.exists():
        print_info("No Kibana configuration found. Nothing to unset.")
        raise typer.Exit(code=0)

    if not yes and not typer.confirm("Remove saved Kibana settings?", default=False):
        print_info("Cancelled.")
        raise typer.Exit(code=0)

    if config_manager.clear_kibana_config():
        print_success("Kibana settings removed.")
    else:
        print_info("No Kibana configuration found. Nothing to unset.")
