"""
CLI — command surface for external-notify.

Commands:
    external-notify status              — Show configuration and service state
    external-notify enable [service]    — Enable notifications globally or per service
    external-notify disable [service]   — Disable notifications globally or per service
    external-notify setup [service]     — Show setup instructions for a service
    external-notify config ...          — Configure filters, formats and services
    external-notify test [service]      — Send a test notification
    external-notify providers           — List available providers and their settings
    external-notify help                — Quick start
    external-notify dispatch [file]     — Feed chat events (JSON) through the pipeline
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from external_notify import __version__

console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _report(result) -> None:
    """Print a CommandResult and exit non-zero when it failed."""
    colour = "green" if result.success else "red"
    marker = ">" if result.success else "x"
    for line in result.messages:
        console.print(f"[{colour}]{marker}[/{colour}] {escape(line)}")
    if not result.success:
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--identity", "-i", default=None, help="Identity whose configuration to use")
@click.option(
    "--storage-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding per-identity config files",
)
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None)
@click.pass_context
def main(ctx: click.Context, identity, storage_dir, log_level) -> None:
    """external-notify — push notifications for chat events."""
    from external_notify.core import load_settings
    from external_notify.core.context import IdentityContext
    from external_notify.core.store import ConfigStore

    settings = load_settings()
    _setup_logging((log_level or settings.log_level).upper())

    store = ConfigStore(storage_dir or settings.storage_dir)
    ctx.obj = IdentityContext(
        identity or settings.default_identity,
        store,
        settings=settings,
    )


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@main.command()
@click.pass_obj
def status(context) -> None:
    """Show current configuration."""
    report = context.status()

    state = "[green]ENABLED[/green]" if report.enabled else "[dim]DISABLED[/dim]"
    console.print(f"\n[bold]Status[/bold] ({escape(report.identity)}): {state}\n")

    console.print("[bold]Services:[/bold]")
    if not report.services:
        console.print("  [dim]None configured[/dim]")
    for svc in report.services:
        if svc.enabled and svc.configured:
            mark = "[green]✓[/green]"
        elif svc.configured:
            mark = "[dim]○[/dim]"
        else:
            mark = "[red]✗[/red]"
        console.print(f"  {escape(svc.display_name)}: {mark} {svc.label}")

    filters = report.filters
    suffix = "" if report.enabled else " [dim](notifications are disabled)[/dim]"
    console.print("\n[bold]Filters:[/bold]")
    away = "Notify only when away" if filters.only_when_away else "Notify when away or present"
    highlights = "Notify on highlights" if filters.highlights else "Do not notify on highlights"
    console.print(f"  - {away}{suffix}")
    console.print(f"  - {highlights}{suffix}")
    if filters.channels is not None:
        if filters.channels.whitelist:
            console.print(f"  - Only channels: {escape(', '.join(filters.channels.whitelist))}")
        if filters.channels.blacklist:
            console.print(f"  - Never channels: {escape(', '.join(filters.channels.blacklist))}")

    fmt = report.format
    console.print("\n[bold]Format:[/bold]")
    console.print(f"  Title: {escape(fmt.title)}")
    console.print(f"  Channel title: {escape(fmt.title_with_channel)}")
    console.print(f"  Message: {escape(fmt.message)}")
    console.print(f"  Action: {escape(fmt.action_message)}")


# ---------------------------------------------------------------------------
# Enable / disable
# ---------------------------------------------------------------------------


@main.command()
@click.argument("service", required=False)
@click.pass_obj
def enable(context, service) -> None:
    """Enable notifications globally or for a specific service."""
    _report(context.enable(service))


@main.command()
@click.argument("service", required=False)
@click.pass_obj
def disable(context, service) -> None:
    """Disable notifications globally or for a specific service."""
    _report(context.disable(service))


# ---------------------------------------------------------------------------
# Setup & help
# ---------------------------------------------------------------------------


def _available() -> str:
    from external_notify.notifications.registry import PROVIDERS

    return ", ".join(spec.schema.display_name for spec in PROVIDERS.values())


@main.command()
@click.argument("service", required=False)
def setup(service) -> None:
    """Show setup instructions for a service."""
    from external_notify.notifications.registry import get_provider

    if not service:
        console.print("Usage: [bold]setup <service>[/bold]")
        console.print(f"Available services: {_available()}")
        return

    spec = get_provider(service)
    if spec is None:
        console.print(f"[red]Unknown service: {escape(service)}[/red]")
        console.print(f"Available services: {_available()}")
        sys.exit(1)

    schema = spec.schema
    console.print(f"\n[bold {schema.color}]{schema.display_name} Setup Instructions[/bold {schema.color}]\n")
    if schema.url:
        console.print(f"  Homepage: {schema.url}")
    if schema.register_url and schema.register_url != schema.url:
        console.print(f"  Register: {schema.register_url}")
    for n, line in enumerate(schema.setup_instructions, 1):
        console.print(f"  {n}. {escape(line)}")

    console.print("\n[bold]Quick start:[/bold]")
    for n, line in enumerate(schema.quick_start(), 1):
        console.print(f"  {n}. {escape(line)}")

    console.print("\n[bold]All settings:[/bold]")
    for command, comment in schema.config_examples():
        note = f"  [dim]# {escape(comment)}[/dim]" if comment else ""
        console.print(f"  {escape(command)}{note}")


@main.command(name="help")
def help_command() -> None:
    """Show a quick start guide."""
    from external_notify.notifications.registry import PROVIDERS

    console.print("\n[bold]Quick start:[/bold]")
    first = next(iter(PROVIDERS.values()), None)
    steps = first.schema.quick_start() if first else ["setup <service>", "config <service> <setting> <value>", "enable"]
    for n, line in enumerate(steps, 1):
        console.print(f"  {n}. {escape(line)}")

    console.print("\n[bold]Available commands:[/bold]")
    for command, text in (
        ("status", "Show current configuration"),
        ("setup <service>", "Show setup instructions for a service"),
        ("enable [service]", "Enable notifications globally or for a specific service"),
        ("disable [service]", "Disable notifications globally or for a specific service"),
        ("config", "Configure settings"),
        ("test [service]", "Send test notification"),
        ("dispatch [file]", "Process chat events from a JSON file or stdin"),
    ):
        console.print(f"  [bold]{escape(command)}[/bold] — {text}")

    console.print(f"\n[bold]Available services:[/bold] {_available()}")


@main.command()
def providers() -> None:
    """List available providers and their settings."""
    from external_notify.notifications.registry import PROVIDERS

    for name, spec in PROVIDERS.items():
        schema = spec.schema
        console.print(f"\n[bold {schema.color}]{schema.display_name}[/bold {schema.color}] ({name})")
        for key, descriptor in schema.fields.items():
            flag = "required" if descriptor.required else f"default: {descriptor.default!r}"
            console.print(f"  {key} [dim]({escape(flag)})[/dim] {escape(descriptor.description)}")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def _config_usage() -> None:
    from external_notify.notifications.registry import PROVIDERS
    from external_notify.notifications.template import TEMPLATE_VARIABLES

    console.print("Usage: [bold]config <category> <setting> <value>[/bold]\n")
    console.print("[bold]Filter:[/bold]")
    console.print("  config filter onlyWhenAway <true|false>")
    console.print("  config filter highlights <true|false>")
    console.print("  config filter whitelist '#chan1,#chan2'  [dim]# empty clears[/dim]")
    console.print("  config filter blacklist '#chan3'")
    console.print("\n[bold]Format:[/bold]")
    console.print(escape('  config format title "{{network}}"'))
    console.print(escape('  config format titleWithChannel "{{network}} - {{channel}}"'))
    console.print(escape('  config format message "<{{nick}}> {{message}}"'))
    console.print(escape('  config format actionMessage "* {{nick}} {{message}}"'))
    console.print("  config format reset")
    names = ", ".join("{{%s}}" % v for v in TEMPLATE_VARIABLES)
    console.print(f"  [dim]Available variables: {escape(names)}[/dim]")

    for spec in PROVIDERS.values():
        console.print(f"\n[bold]{spec.schema.display_name}:[/bold]")
        for command, comment in spec.schema.config_examples():
            note = f"  [dim]# {escape(comment)}[/dim]" if comment else ""
            console.print(f"  {escape(command)}{note}")


@main.command()
@click.argument("category", required=False)
@click.argument("setting", required=False)
@click.argument("value", nargs=-1)
@click.pass_obj
def config(context, category, setting, value) -> None:
    """Configure filters, formats and services."""
    if not category:
        _config_usage()
        return

    category = category.lower()
    if not setting:
        console.print("[red]Missing setting name. Use 'config' for usage.[/red]")
        sys.exit(1)

    if category == "format" and setting.lower() == "reset":
        _report(context.reset_format())
        return

    if not value:
        console.print("[red]Missing value. Use 'config' for usage.[/red]")
        sys.exit(1)
    joined = " ".join(value)

    if category == "filter":
        _report(context.set_filter(setting, joined))
    elif category == "format":
        _report(context.set_format(setting, joined))
    else:
        from external_notify.notifications.registry import get_provider

        if get_provider(category) is None:
            console.print(f"[red]Unknown category: {escape(category)}. Use 'config' for usage.[/red]")
            sys.exit(1)
        _report(context.set_service_field(category, setting, joined))


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


@main.command()
@click.argument("service", required=False)
@click.pass_obj
def test(context, service) -> None:
    """Send a test notification."""
    _report(asyncio.run(context.test(service)))


def _parse_events(text: str) -> list[dict[str, Any]]:
    """Accept one JSON object, a JSON array, or one object per line."""
    text = text.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return [json.loads(line) for line in text.splitlines() if line.strip()]
    return data if isinstance(data, list) else [data]


@main.command()
@click.argument("source", type=click.File("r"), default="-")
@click.option("--away/--present", default=True, help="Presence to assume while dispatching")
@click.pass_obj
def dispatch(context, source, away) -> None:
    """Run chat events (JSON) through filtering, dedup and delivery."""
    from external_notify.notifications.events import InboundEvent

    try:
        events = [InboundEvent.model_validate(item) for item in _parse_events(source.read())]
    except (json.JSONDecodeError, ValidationError) as exc:
        console.print(f"[red]Error: invalid event input: {escape(str(exc))}[/red]")
        sys.exit(1)

    if not context.config.enabled:
        console.print("[yellow]Notifications are disabled; nothing will be sent.[/yellow]")

    async def _run() -> int:
        sent = 0
        engine = context.engine
        if engine is not None:
            await engine.connect_all()
        try:
            for event in events:
                result = await context.handle_event(event, away=away)
                label = f"{escape(event.network)} {escape(event.channel)} <{escape(event.nick)}>"
                if result is None:
                    console.print(f"  [dim]- skipped {label}[/dim]")
                    continue
                sent += 1
                delivered = ", ".join(result.services) or "no services"
                console.print(f"  [green]>[/green] {label}: {escape(result.notification.title)} → {delivered}")
                for name, reason in result.failures.items():
                    console.print(f"    [red]x {escape(name)}: {escape(reason)}[/red]")
        finally:
            if engine is not None:
                await engine.disconnect_all()
        return sent

    sent = asyncio.run(_run())
    console.print(f"\n{sent} of {len(events)} event(s) produced a notification.")


if __name__ == "__main__":
    main()
