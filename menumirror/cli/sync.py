"""
CLI sync commands — inspect and drive menu syncs from the shell.

Usage:
    python -m menumirror.main init-mirror
    python -m menumirror.main check MENU_ID [--json]
    python -m menumirror.main sync MENU_ID [--override]
    python -m menumirror.main override SLUG --on|--off
    python -m menumirror.main signals SLUG
    python -m menumirror.main poll SLUG [--url URL] [--token TOKEN]
"""

from __future__ import annotations

import json

import click

from ..access import Actor, RequestOrigin
from ..errors import TreeNotFound
from ..signals import Topics


def _services(ctx: click.Context):
    from ..services import Services

    if "services" not in ctx.obj:
        ctx.obj["services"] = Services.from_settings(ctx.obj["settings"])
    return ctx.obj["services"]


@click.command("init-mirror")
@click.pass_context
def init_mirror(ctx: click.Context) -> None:
    """Create an empty loop store if none exists."""
    svc = _services(ctx)
    if svc.mirror.initialize():
        click.secho("✅ Loop store initialized", fg="green")
    else:
        click.echo("Loop store already active")


@click.command("check")
@click.argument("menu_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def check(ctx: click.Context, menu_id: int, as_json: bool) -> None:
    """Run the editor-load check for a menu and show its notice."""
    from ..engine import resolve_notice

    svc = _services(ctx)
    try:
        menu = svc.tree.get_menu(menu_id)
    except TreeNotFound as e:
        raise click.ClickException(str(e))

    status = svc.status.check(menu_id)
    notice = resolve_notice(svc.signals, menu.slug, menu.name)

    if as_json:
        click.echo(json.dumps({
            "menu_slug": status.menu_slug,
            "enabled": status.enabled,
            "needs_migration": status.needs_migration,
            "notice": notice.to_dict(),
        }, indent=2))
        return

    color = "green" if status.enabled else "yellow"
    click.secho(f"{menu.name} ({menu.slug}): {'in sync' if status.enabled else 'not syncing'}", fg=color, bold=True)
    click.echo(f"  Notice: {notice.state.value}")
    if notice.message:
        click.echo(f"  {notice.message}")
    if status.needs_migration:
        click.echo(f"  Declared key '{status.needs_migration}' will be migrated on next sync")


@click.command("sync")
@click.argument("menu_id", type=int)
@click.option("--override", is_flag=True, help="Write even if a conflict is detected")
@click.pass_context
def sync(ctx: click.Context, menu_id: int, override: bool) -> None:
    """Sync a menu's current tree into the loop store."""
    svc = _services(ctx)
    try:
        slug = svc.tree.slug_of(menu_id)
    except TreeNotFound as e:
        raise click.ClickException(str(e))

    if override:
        svc.signals.set(Topics.OVERRIDE_ENABLED, slug, True)
        svc.audit.emit_override_changed(slug, True)

    context = svc.new_context(RequestOrigin.ADMIN, Actor.admin(svc.settings.capability))
    context.queue.enqueue(menu_id)
    outcomes = svc.finish(context)

    for outcome in outcomes:
        if outcome.status == "ok":
            click.secho(f"✅ {outcome.menu_slug} synced as '{outcome.details.get('key')}'", fg="green")
        elif outcome.status == "skipped":
            click.secho(f"⚠️  {outcome.menu_slug} not synced: {outcome.reason.value}", fg="yellow")
        else:
            click.secho(f"❌ {outcome.menu_slug} failed: {outcome.error.message}", fg="red")

    if not all(o.succeeded for o in outcomes):
        raise SystemExit(1)


@click.command("override")
@click.argument("menu_slug")
@click.option("--on/--off", "enabled", default=True, help="Enable or clear the override")
@click.pass_context
def override(ctx: click.Context, menu_slug: str, enabled: bool) -> None:
    """Enable or clear the conflict override for a menu slug."""
    svc = _services(ctx)
    if enabled:
        svc.signals.set(Topics.OVERRIDE_ENABLED, menu_slug, True)
        ttl = svc.signals.ttl_for(Topics.OVERRIDE_ENABLED)
        click.echo(f"Override enabled for '{menu_slug}' ({ttl}s)")
    else:
        svc.signals.delete(Topics.OVERRIDE_ENABLED, menu_slug)
        click.echo(f"Override cleared for '{menu_slug}'")
    svc.audit.emit_override_changed(menu_slug, enabled)


@click.command("signals")
@click.argument("menu_slug")
@click.pass_context
def signals(ctx: click.Context, menu_slug: str) -> None:
    """Show the live signals for a menu slug."""
    svc = _services(ctx)
    snapshot = svc.signals.snapshot(menu_slug)
    if not snapshot:
        click.echo(f"No live signals for '{menu_slug}'")
        return
    for name, value in snapshot.items():
        click.echo(f"  {name:<22} {value}")


@click.command("poll")
@click.argument("menu_slug")
@click.option("--url", default="http://127.0.0.1:5050", help="Admin server base URL")
@click.option("--token", envvar="MENUMIRROR_ADMIN_TOKEN", help="Admin token")
@click.pass_context
def poll(ctx: click.Context, menu_slug: str, url: str, token: str) -> None:
    """Wait for a running sync of a menu to finish."""
    import httpx

    from ..client import PollingClient, PollState

    settings = ctx.obj["settings"]
    with httpx.Client(base_url=url, timeout=10) as http:
        poller = PollingClient(
            http,
            admin_token=token,
            max_polls=settings.max_polls,
            interval_seconds=settings.poll_interval_seconds,
        )
        try:
            notice = poller.fetch_notice(menu_slug)
        except httpx.HTTPError as e:
            raise click.ClickException(f"Could not read status: {e}")

        if not poller.start(notice):
            click.echo(notice.get("message") or f"No sync running for '{menu_slug}'")
            return

        click.echo(f"Waiting for '{menu_slug}' to sync...")
        state = poller.run()

    colors = {
        PollState.COMPLETED: "green",
        PollState.FAILED: "red",
        PollState.TIMED_OUT: "yellow",
    }
    if state == PollState.IDLE:
        raise click.ClickException(f"Polling stopped: {poller.last_error}")

    click.secho(poller.message, fg=colors.get(state, "white"))
    if poller.show_override:
        click.echo(f"  → {poller.override_label}: python -m menumirror.main override {menu_slug} --on")
    if state != PollState.COMPLETED:
        raise SystemExit(1)
