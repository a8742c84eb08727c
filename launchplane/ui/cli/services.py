"""
CLI commands for services — list, inspect and control.

Thin wrappers over ``launchplane.core.engine.monitor``.

Usage::

    launchplane list --search docker --hide-vendor
    launchplane list --type daemon --sort pid --desc --json
    launchplane show com.example.backup-agent
    launchplane stop org.nginx.daemon --dry-run
    launchplane start org.nginx.daemon --password ...
    launchplane history -n 10
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from collections.abc import AsyncIterator
from typing import NoReturn

import click

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.core.engine.monitor import ServiceMonitor
from launchplane.core.models.action import ServiceAction
from launchplane.core.models.service import Service, ServiceDomain, ServiceStatus, ServiceType
from launchplane.core.services.discovery import DiscoveryError

logger = logging.getLogger(__name__)

PASSWORD_ENV = "LAUNCHPLANE_SUDO_PASSWORD"

_STATUS_ICONS = {
    ServiceStatus.RUNNING: ("🟢", "green"),
    ServiceStatus.STOPPED: ("⚪", "white"),
    ServiceStatus.DISABLED: ("⏸️", "yellow"),
    ServiceStatus.ERROR: ("🔴", "red"),
    ServiceStatus.UNKNOWN: ("❔", "white"),
}


# ── Executor / monitor wiring ──────────────────────────────────


def _retry_echo(ctx: click.Context):
    """Retry callback that surfaces backoff to the user in verbose mode."""
    if not ctx.obj.get("verbose"):
        return None

    def on_retry(attempt: int, error: str, delay: float) -> None:
        click.secho(f"   ⟳ Attempt {attempt} failed ({error}), retrying in {delay:.1f}s", fg="yellow", err=True)

    return on_retry


def get_executor(ctx: click.Context) -> CommandExecutor:
    """The executor for this invocation (real, or demo data off macOS / with --mock)."""
    executor = ctx.obj.get("executor")
    if executor is not None:
        return executor

    from launchplane.adapters.mock import demo_executor
    from launchplane.core.context import ControlContext

    context = ControlContext.from_environment(ctx.obj.get("settings"), on_retry=_retry_echo(ctx))
    if ctx.obj.get("mock") or not context.is_macos:
        logger.info("Using demo data (mock=%s, platform=%s)", ctx.obj.get("mock"), context.platform)
        executor = demo_executor(context)
    else:
        executor = CommandExecutor(context)

    ctx.obj["executor"] = executor
    return executor


@contextlib.asynccontextmanager
async def open_monitor(executor: CommandExecutor) -> AsyncIterator[ServiceMonitor]:
    """A monitor with one fresh snapshot and no background timers."""
    monitor = ServiceMonitor.from_executor(executor)
    monitor.set_auto_refresh(False)
    try:
        await monitor.refresh()
        yield monitor
    finally:
        await monitor.close()


def _fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


# ── Formatting ─────────────────────────────────────────────────


def _echo_service_row(service: Service) -> None:
    icon, color = _STATUS_ICONS.get(service.status, ("❔", "white"))
    pid = str(service.pid) if service.pid is not None else "-"
    markers = ""
    if service.is_protected:
        markers += " 🔒"
    elif service.is_vendor_owned:
        markers += " 🍎"
    if service.requires_root:
        markers += " 🔑"
    click.secho(f"   {icon} {service.label:<48}", fg=color, nl=False)
    click.echo(f" {service.type:<9} {service.domain:<6} {pid:>7}{markers}")


def _echo_detail(service: Service, verbose: bool) -> None:
    icon, color = _STATUS_ICONS.get(service.status, ("❔", "white"))
    click.echo()
    click.secho(f"{icon} {service.display_name}", fg=color, bold=True)
    click.echo(f"   Label:       {service.label}")
    click.echo(f"   Type:        {service.type} ({service.domain})")
    click.echo(f"   Status:      {service.status}")
    if service.pid is not None:
        click.echo(f"   PID:         {service.pid}")
    if service.exit_status is not None:
        click.echo(f"   Last exit:   {service.exit_status}")
    click.echo(f"   Protection:  {service.protection}")
    click.echo(f"   Vendor:      {'yes' if service.is_vendor_owned else 'no'}")
    click.echo(f"   Needs root:  {'yes' if service.requires_root else 'no'} ({service.classification})")
    if service.file_path:
        click.echo(f"   File:        {service.file_path}")
    if service.description:
        click.echo(f"   Behavior:    {service.description}")

    if service.is_extension:
        if service.team_id:
            click.echo(f"   Team ID:     {service.team_id}")
        if service.version:
            click.echo(f"   Version:     {service.version}")
        if service.extension_state:
            click.echo(f"   State:       {service.extension_state}")
        if service.categories:
            click.echo(f"   Categories:  {', '.join(service.categories)}")

    plist = service.plist
    if plist is not None:
        program = plist.program or (plist.program_arguments[0] if plist.program_arguments else None)
        if program:
            click.echo(f"   Program:     {program}")
        if verbose:
            if plist.program_arguments:
                click.echo(f"   Arguments:   {' '.join(plist.program_arguments)}")
            if plist.working_directory:
                click.echo(f"   Working dir: {plist.working_directory}")
            if plist.standard_out_path:
                click.echo(f"   Stdout:      {plist.standard_out_path}")
            if plist.standard_error_path:
                click.echo(f"   Stderr:      {plist.standard_error_path}")
            for key, val in plist.environment_variables.items():
                click.echo(f"   Env:         {key}={val}")
    click.echo()


# ── list ───────────────────────────────────────────────────────


@click.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--search", "-s", "query", default="", help="Fuzzy search across label, name and description.")
@click.option("--type", "service_type", type=click.Choice([t.value for t in ServiceType]), default=None)
@click.option("--domain", type=click.Choice([d.value for d in ServiceDomain]), default=None)
@click.option("--status", type=click.Choice([s.value for s in ServiceStatus]), default=None)
@click.option("--hide-vendor", is_flag=True, help="Hide com.apple.* and /System services.")
@click.option("--hide-protected", is_flag=True, help="Hide protected and system-owned services.")
@click.option(
    "--sort", "sort_field",
    type=click.Choice(["label", "status", "type", "domain", "pid"]),
    default="label",
    help="Sort field (ignored with --search, which ranks by score).",
)
@click.option("--desc", is_flag=True, help="Sort descending.")
@click.pass_context
def list_services(
    ctx: click.Context,
    as_json: bool,
    query: str,
    service_type: str | None,
    domain: str | None,
    status: str | None,
    hide_vendor: bool,
    hide_protected: bool,
    sort_field: str,
    desc: bool,
) -> None:
    """List discovered services."""
    from launchplane.core.services.query import (
        FilterOptions,
        SortField,
        SortOptions,
        filter_services,
        sort_services,
    )

    executor = get_executor(ctx)

    async def _snapshot() -> list[Service]:
        async with open_monitor(executor) as monitor:
            return monitor.services

    try:
        services = asyncio.run(_snapshot())
    except DiscoveryError as e:
        _fail(str(e))

    options = FilterOptions(
        type=ServiceType(service_type) if service_type else None,
        domain=ServiceDomain(domain) if domain else None,
        status=ServiceStatus(status) if status else None,
        hide_vendor=hide_vendor,
        hide_protected=hide_protected,
        query=query,
    )
    shown = filter_services(services, options)
    if not query:
        shown = sort_services(shown, SortOptions(field=SortField(sort_field), descending=desc))

    if as_json:
        click.echo(json.dumps([s.to_dict() for s in shown], indent=2))
        return

    if not ctx.obj.get("quiet"):
        click.secho(f"\n🛰️  Services: {len(shown)} of {len(services)}", fg="cyan", bold=True)
        click.echo()

    for service in shown:
        _echo_service_row(service)

    if not shown:
        click.echo("   No services match.")
    click.echo()


# ── show ───────────────────────────────────────────────────────


@click.command()
@click.argument("label")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, label: str, as_json: bool) -> None:
    """Show one service, including its definition file and runtime detail."""
    executor = get_executor(ctx)

    async def _detail() -> tuple[Service | None, str | None]:
        async with open_monitor(executor) as monitor:
            service = monitor.find(label)
            if service is None:
                return None, None
            refined = await monitor.load_detail(service)
            if refined is None:
                return service, monitor.cache.error_for(service.id)
            return refined, None

    try:
        service, error = asyncio.run(_detail())
    except DiscoveryError as e:
        _fail(str(e))

    if service is None:
        _fail(f"Service not found: {label}")

    if as_json:
        click.echo(json.dumps(service.to_dict(), indent=2))
        return

    if error:
        click.secho(f"⚠️  Could not load details: {error}", fg="yellow")
    _echo_detail(service, verbose=ctx.obj.get("verbose", False))


# ── Lifecycle actions ──────────────────────────────────────────


def _action_command(action: ServiceAction) -> click.Command:
    """Build the ``start`` / ``stop`` / ... command for one action."""

    @click.command(name=action.value, help=f"{action.value.capitalize()} a service.")
    @click.argument("label")
    @click.option("--dry-run", is_flag=True, help="Show the command without executing.")
    @click.option(
        "--password", envvar=PASSWORD_ENV, default=None,
        help=f"Administrator password for headless sessions (can also set {PASSWORD_ENV}).",
    )
    @click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
    @click.pass_context
    def command(ctx: click.Context, label: str, dry_run: bool, password: str | None, as_json: bool) -> None:
        executor = get_executor(ctx)

        async def _run():
            async with open_monitor(executor) as monitor:
                service = monitor.find(label)
                if service is None:
                    return None
                # Act on the confirmed domain, not the label guess
                service = await monitor.load_detail(service) or service
                return await monitor.execute_action(action, service, dry_run=dry_run, password=password or None)

        try:
            result = asyncio.run(_run())
        except DiscoveryError as e:
            _fail(str(e))

        if result is None:
            _fail(f"Service not found: {label}")

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
            if not result.success:
                sys.exit(1)
            return

        if result.success:
            click.secho(f"✅ {result.message}", fg="green")
            return

        click.secho(f"❌ {result.message}", fg="red")
        if result.error:
            click.echo(f"   {result.error}")
        if result.error == "NEEDS_PASSWORD":
            click.echo(f"   Re-run with --password or set {PASSWORD_ENV}.")
        elif result.requires_root:
            click.echo("   This service may need administrator privileges.")
        sys.exit(1)

    return command


LIFECYCLE_COMMANDS = [_action_command(action) for action in ServiceAction]


# ── history ────────────────────────────────────────────────────


@click.command()
@click.option("-n", "count", default=20, type=click.IntRange(min=1), help="Number of entries.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recently executed actions from the audit ledger."""
    from launchplane.core.config.loader import Settings
    from launchplane.core.persistence.audit import AuditWriter

    settings: Settings = ctx.obj.get("settings") or Settings()
    if not settings.audit.path:
        _fail("Audit ledger is disabled (audit.path is null)")

    entries = AuditWriter(settings.audit.path).read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No actions recorded.")
        return

    click.echo()
    for entry in entries:
        icon = "✅" if entry.success else "❌"
        click.echo(f"   {icon} {entry.timestamp[:19]}  {entry.action:<8} {entry.label}")
        if not entry.success and entry.error:
            click.secho(f"      {entry.error}", fg="red")
    click.echo()
