"""Command-line interface for tracker."""
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

from .config import load_config, mask_secret, set_config_value
from .display import (
    console,
    render_daily,
    render_devices,
    render_top,
    render_trends,
    render_weekly,
    show_push_status,
    show_stale_warning,
)
from .local_cache import get_pending_count, list_pending, load_server_data
from . import sync as api

CONFIG_KEYS = {
    "server-url": "server_url",
    "token": "token",
    "device-id": "device_id",
    "device-name": "device_name",
}


def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr
    )


def _require_server(config: dict) -> None:
    if not config.get("server_url"):
        raise click.ClickException("Server not configured. Run 'tracker config set server-url URL'")


def _call(fn, *args, **kwargs):
    """Run an API call, turning failures into a clean CLI error."""
    try:
        return fn(*args, **kwargs)
    except api.ApiError as e:
        raise click.ClickException(e.detail)
    except httpx.RequestError as e:
        raise click.ClickException(f"Could not reach server: {e}")


def _read_json(path: Path, what: str):
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{what} is not valid JSON: {e}")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """Tracker - multi-device activity tracking."""
    setup_logging(verbose)


# === Config commands ===

@cli.group()
def config():
    """Manage configuration."""
    pass


@config.command("show")
def config_show():
    """Show current configuration."""
    cfg = load_config()
    console.print("[bold]Current configuration:[/bold]")
    for key, value in cfg.items():
        if key == "token":
            value = mask_secret(value)
        console.print(f"  {key}: {value}")


@config.command("set")
@click.argument("key", type=click.Choice(list(CONFIG_KEYS)))
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value."""
    set_config_value(CONFIG_KEYS[key], value)
    console.print(f"[green]Set {key}[/green]")


# === Account commands ===

@cli.command()
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and store the access token."""
    cfg = load_config()
    _require_server(cfg)
    user = _call(api.login, cfg, email, password)
    console.print(f"[green]Logged in as {user['email']}[/green]")


@cli.command()
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--name', 'display_name', default=None, help='Display name')
def register(email: str, password: str, display_name: Optional[str]):
    """Create an account and store the access token."""
    cfg = load_config()
    _require_server(cfg)
    user = _call(api.register, cfg, email, password, display_name)
    console.print(f"[green]Account created for {user['email']}[/green]")


# === Device commands ===

@cli.group()
def device():
    """Manage devices."""
    pass


@device.command("register")
@click.option('--name', default=None, help='Device name (default: hostname)')
@click.option('--type', 'device_type', default="desktop",
              type=click.Choice(["desktop", "laptop", "mobile", "tablet", "other"]))
def device_register(name: Optional[str], device_type: str):
    """Register this machine as a device."""
    cfg = load_config()
    _require_server(cfg)
    registered = _call(api.register_device, cfg, name, device_type)
    console.print(f"[green]Registered {registered['device_name']}[/green] [dim]({registered['id']})[/dim]")


@device.command("list")
def device_list():
    """List your devices."""
    cfg = load_config()
    _require_server(cfg)
    render_devices(_call(api.list_devices, cfg), cfg.get("device_id"))


# === Push command ===

@cli.command()
@click.argument("report", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=False)
@click.option('--events', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='JSON list of activity events to send along')
@click.option('--retry', is_flag=True, help='Only replay queued pushes')
@click.option('--status', is_flag=True, help='Show queued pushes')
def push(report: Optional[Path], events: Optional[Path], retry: bool, status: bool):
    """Push a usage report (date -> domain -> usage JSON) to the server."""
    if status:
        pending = list_pending()
        console.print(f"[bold]Pending pushes:[/bold] {len(pending)}")
        for i, item in enumerate(pending[:5]):
            console.print(f"  {i+1}. Queued at {item['queued_at']}")
        if len(pending) > 5:
            console.print(f"  ... and {len(pending) - 5} more")
        return

    cfg = load_config()

    if retry:
        _require_server(cfg)
        success, remaining = _call(api.retry_pending, cfg)
        console.print(f"[green]Replayed {success} queued pushes[/green]")
        if remaining > 0:
            console.print(f"[yellow]{remaining} still pending[/yellow]")
        return

    if report is None:
        raise click.UsageError("REPORT is required unless --retry or --status is given")

    usage = _read_json(report, "Report")
    activity = _read_json(events, "Events file") if events else None
    result = api.do_push(cfg, usage, activity)
    show_push_status(result, get_pending_count())
    if result.status == "error":
        sys.exit(1)


# === Analytics commands ===

def _show(kind: str, params: dict, render):
    cfg = load_config()
    _require_server(cfg)
    if not cfg.get("token"):
        raise click.ClickException("Not logged in. Run 'tracker login'")
    data = api.fetch_analytics(kind, params)
    if data is not None:
        render(data)
        return

    show_stale_warning(cfg)
    cached = load_server_data(kind)
    if cached is None:
        raise click.ClickException("Server unavailable and nothing cached yet")
    console.print("[yellow]Server unavailable, showing last fetched data[/yellow]")
    render(cached["data"], cached_at=cached["cached_at"])


@cli.command()
@click.option('--date', '-d', default=None, help='Day to show (YYYY-MM-DD, default today)')
def daily(date: Optional[str]):
    """Show usage for one day across all devices."""
    _show("daily", {"date": date} if date else {}, render_daily)


@cli.command()
@click.option('--weeks', '-w', default=4, help='Number of weeks (max 12)')
def weekly(weeks: int):
    """Show day-by-day usage over recent weeks."""
    _show("weekly", {"weeks": weeks}, render_weekly)


@cli.command()
def trends():
    """Compare this week with last week."""
    _show("trends", {}, render_trends)


@cli.command()
@click.option('--period', '-p', default=7, help='Days to look back (max 90)')
@click.option('--limit', '-n', default=20, help='Number of domains (max 100)')
def top(period: int, limit: int):
    """Show the most used domains."""
    _show("top", {"period": period, "limit": limit}, render_top)


if __name__ == "__main__":
    cli()
