"""
launchplane — CLI entrypoint.

Usage:
    launchplane --help
    launchplane list --search docker
    launchplane show com.example.backup-agent
    launchplane start com.example.backup-agent --dry-run
    launchplane health
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from launchplane import __version__
from launchplane.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="launchplane")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: $LAUNCHPLANE_CONFIG or ~/.config/launchplane/config.yml).",
)
@click.option("--mock", is_flag=True, help="Use canned demo data (no real commands).")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    mock: bool,
) -> None:
    """launchplane — inspect and control background services."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["mock"] = mock
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None

    setup_logging(level=resolve_level(level), quiet_third_party=not debug)

    # ── Settings ────────────────────────────────────────────────
    from launchplane.core.config.loader import ConfigError, load_settings

    try:
        ctx.obj["settings"] = load_settings(ctx.obj["config_path"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Show system health — tools, discovery, privileges."""
    from launchplane.adapters.mock import MockCommandExecutor
    from launchplane.core.engine.monitor import ServiceMonitor
    from launchplane.core.observability.health import check_system_health
    from launchplane.core.services.discovery import DiscoveryError
    from launchplane.core.services.launchctl.version import get_os_version
    from launchplane.ui.cli.services import get_executor

    executor = get_executor(ctx)

    async def _probe():
        monitor = ServiceMonitor(executor)
        monitor.set_auto_refresh(False)
        try:
            await monitor.refresh()
        except DiscoveryError:
            pass  # reported by the discovery component
        finally:
            await monitor.close()
        return monitor, await get_os_version(executor)

    monitor, os_version = asyncio.run(_probe())
    system_health = check_system_health(
        executor.context,
        reconciler=monitor.reconciler,
        cache=monitor.cache,
        mock=isinstance(executor, MockCommandExecutor),
    )

    if as_json:
        data = system_health.to_dict()
        data["os"] = os_version.to_dict()
        click.echo(json.dumps(data, indent=2))
        return

    # Pretty output
    status_icons = {
        "healthy": ("💚", "green"),
        "degraded": ("🟡", "yellow"),
        "unhealthy": ("🔴", "red"),
        "unknown": ("❔", "white"),
    }
    icon, color = status_icons.get(system_health.status, ("❔", "white"))

    click.echo()
    click.secho(f"{icon} System Health: {system_health.status.upper()}", fg=color, bold=True)
    click.echo(f"   {system_health.timestamp}")
    click.echo(f"   macOS {os_version.full} ({os_version.name})")
    click.echo()

    for component in system_health.components:
        c_icon, c_color = status_icons.get(component.status, ("❔", "white"))
        click.secho(f"   {c_icon} {component.name}", fg=c_color, bold=True)
        click.echo(f"      {component.message}")

        if ctx.obj.get("verbose") and component.details:
            for key, val in component.details.items():
                click.echo(f"      {key}: {val}")

    click.echo()


# ── Register command modules ────────────────────────────────────

from launchplane.ui.cli.services import LIFECYCLE_COMMANDS, history, list_services, show  # noqa: E402

cli.add_command(list_services)
cli.add_command(show)
cli.add_command(history)
for _command in LIFECYCLE_COMMANDS:
    cli.add_command(_command)


if __name__ == "__main__":
    cli()
