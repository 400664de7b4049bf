"""
Menu Mirror — CLI Entry Point

Usage:
    python -m menumirror.main serve [--port N]
    python -m menumirror.main menus
    python -m menumirror.main sync MENU_ID
    python -m menumirror.main metrics [--format prometheus|json]
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import json
from typing import Optional

import click

from .config import load_settings
from .logging_config import setup_logging
from .cli.sync import check, init_mirror, override, poll, signals, sync

# Initialize logging
setup_logging()


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root holding menumirror.yaml, state/ and audit/ (default: cwd)",
)
@click.pass_context
def cli(ctx: click.Context, root: Optional[Path]) -> None:
    """Menu Mirror — keep navigation menus mirrored into the loop store."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root or Path.cwd()
    ctx.obj["settings"] = load_settings(ctx.obj["root"])


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", type=int, default=5050, help="Port (default: 5050)")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, debug: bool) -> None:
    """Run the local admin server."""
    from .admin import run_server

    run_server(host=host, port=port, debug=debug, project_root=ctx.obj["root"])


@cli.command()
@click.pass_context
def menus(ctx: click.Context) -> None:
    """List menus and whether each has a loop entry."""
    from .engine import resolve_key
    from .services import Services

    svc = ctx.obj.get("services") or Services.from_settings(ctx.obj["settings"])
    entries = svc.mirror.read()

    if entries is None:
        click.secho("⚠️  Loop store is not initialized (run init-mirror)", fg="yellow")

    found = svc.tree.list_menus()
    if not found:
        click.echo("No menus")
        return

    for menu in found:
        match = resolve_key(entries, menu.slug) if entries is not None else None
        if match is None:
            marker = "·"
        elif match.is_collision:
            marker = "✗"
        else:
            marker = "✓"
        click.echo(f"  {marker} {menu.id:>4}  {menu.slug:<24} {len(menu.items)} item(s)")


@cli.command("metrics")
@click.option("--format", "output_format", type=click.Choice(["prometheus", "json"]), default="prometheus")
def metrics_cmd(output_format: str) -> None:
    """Export metrics for monitoring."""
    from .observability.metrics import metrics

    if output_format == "json":
        click.echo(json.dumps(metrics.export_json(), indent=2))
    else:
        click.echo(metrics.export_prometheus())


# Sync commands live in menumirror/cli/sync.py
cli.add_command(init_mirror)
cli.add_command(check)
cli.add_command(sync)
cli.add_command(override)
cli.add_command(signals)
cli.add_command(poll)


if __name__ == "__main__":
    cli()
