"""Terminal display using Rich."""
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.table import Table

console = Console()

BAR_CHARS = " ▁▂▃▄▅▆▇█"
BAR_WIDTH = 30


def format_duration(seconds: int) -> str:
    """Format seconds as e.g. `2h 05m`, `14m` or `40s`."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"


def format_number(n: int) -> str:
    """Format number with K/M suffix."""
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)


def percent_change(current: int, previous: int) -> Optional[float]:
    if previous <= 0:
        return None
    return (current - previous) / previous * 100


def _mini_sparkline(values: list[int]) -> str:
    if not values:
        return ""
    max_val = max(values) if max(values) > 0 else 1
    return "".join(BAR_CHARS[min(8, int(v / max_val * 8))] for v in values)


def _bar(value: int, max_value: int) -> str:
    if max_value <= 0:
        return ""
    return "█" * max(1, round(value / max_value * BAR_WIDTH)) if value else ""


def _cached_note(cached_at: Optional[str]):
    if cached_at:
        console.print(f"[dim]  Cached data from {cached_at[:16].replace('T', ' ')}[/dim]")


def render_daily(data: dict, cached_at: Optional[str] = None):
    """Sites, categories and devices for one day."""
    sites = data.get("sites", [])
    totals = data.get("totals", {})
    console.print()
    if not sites:
        console.print(f"[yellow]No usage recorded on {data.get('date')}[/yellow]")
        _cached_note(cached_at)
        return

    table = Table(title=f"Usage on {data['date']}", show_header=True, header_style="bold cyan")
    table.add_column("Domain")
    table.add_column("Category", style="dim")
    table.add_column("Time", justify="right")
    table.add_column("Visits", justify="right")
    table.add_column("", justify="left")

    top = sites[0]["total_seconds"]
    for site in sites:
        table.add_row(
            site["domain"],
            site.get("category") or "",
            format_duration(site["total_seconds"]),
            format_number(site["total_visits"]),
            f"[green]{_bar(site['total_seconds'], top)}[/green]",
        )
    console.print(table)

    console.print()
    console.print(
        f"  [bold]Total:[/bold] {format_duration(totals.get('total_seconds', 0))}  │  "
        f"[bold]Sites:[/bold] {totals.get('total_domains', 0)}  │  "
        f"[bold]Screenshots:[/bold] {data.get('screenshot_count', 0)}"
    )
    for device in data.get("device_breakdown", []):
        console.print(
            f"  [dim]{device['device_name']} ({device['device_type']}): "
            f"{format_duration(device['total_seconds'])}[/dim]"
        )
    _cached_note(cached_at)
    console.print()


def render_weekly(data: dict, cached_at: Optional[str] = None):
    """Day-by-day totals with a sparkline, then the top sites."""
    daily = data.get("daily", [])
    console.print()
    if not daily:
        console.print(f"[yellow]No usage since {data.get('since')}[/yellow]")
        _cached_note(cached_at)
        return

    table = Table(title=f"Last {data['weeks']} week(s)", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="dim")
    table.add_column("Day", style="dim")
    table.add_column("Time", justify="right")
    table.add_column("Sites", justify="right")
    table.add_column("Spark", justify="left")

    totals = [d["total_seconds"] for d in daily]
    for i, day in enumerate(daily):
        try:
            dow = datetime.strptime(day["date"], '%Y-%m-%d').strftime('%a')
        except ValueError:
            dow = "?"
        table.add_row(
            day["date"][5:], dow,
            format_duration(day["total_seconds"]),
            str(day["total_domains"]),
            f"[green]{_mini_sparkline(totals[:i + 1][-7:])}[/green]",
        )
    console.print(table)

    average = sum(totals) // len(totals)
    console.print()
    console.print(
        f"  [bold]Total:[/bold] {format_duration(sum(totals))}  │  "
        f"[bold]Active-day avg:[/bold] {format_duration(average)}"
    )
    if data.get("top_sites"):
        top = ", ".join(s["domain"] for s in data["top_sites"][:5])
        console.print(f"  [bold]Top sites:[/bold] {top}")
    _cached_note(cached_at)
    console.print()


def _change(current: int, previous: int) -> str:
    change = percent_change(current, previous)
    if change is None:
        return "[dim]-[/dim]"
    if change > 20:
        return f"[green]↑ {change:.0f}%[/green]"
    if change < -20:
        return f"[red]↓ {abs(change):.0f}%[/red]"
    return f"[dim]→ {change:+.0f}%[/dim]"


def render_trends(data: dict, cached_at: Optional[str] = None):
    """This week next to last week."""
    this_week = data["this_week"]
    last_week = data["last_week"]

    table = Table(title="This week vs last week", show_header=True, header_style="bold cyan")
    table.add_column("")
    table.add_column(f"Since {data['this_week_since']}", justify="right")
    table.add_column(f"Since {data['last_week_since']}", justify="right")
    table.add_column("Change", justify="right")

    table.add_row(
        "Time",
        format_duration(this_week["total_seconds"]),
        format_duration(last_week["total_seconds"]),
        _change(this_week["total_seconds"], last_week["total_seconds"]),
    )
    for label, key in (("Visits", "total_visits"), ("Sites", "total_domains"), ("Active days", "active_days")):
        table.add_row(label, str(this_week[key]), str(last_week[key]), _change(this_week[key], last_week[key]))

    console.print()
    console.print(table)

    previous = {c["category"]: c["total_seconds"] for c in data.get("last_week_categories", [])}
    if data.get("this_week_categories"):
        console.print()
        for category in data["this_week_categories"]:
            name = category["category"] or "Other"
            console.print(
                f"  {name:<16} {format_duration(category['total_seconds']):>8}  "
                f"{_change(category['total_seconds'], previous.get(category['category'], 0))}"
            )
    _cached_note(cached_at)
    console.print()


def render_top(data: dict, cached_at: Optional[str] = None):
    domains = data.get("domains", [])
    console.print()
    if not domains:
        console.print(f"[yellow]No usage in the last {data.get('period')} days[/yellow]")
        _cached_note(cached_at)
        return

    table = Table(title=f"Top domains, last {data['period']} days",
                  show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Domain")
    table.add_column("Time", justify="right")
    table.add_column("Visits", justify="right")
    table.add_column("Days", justify="right")

    for rank, domain in enumerate(domains, start=1):
        table.add_row(
            str(rank), domain["domain"],
            format_duration(domain["total_seconds"]),
            format_number(domain["total_visits"]),
            str(domain["active_days"]),
        )
    console.print(table)
    _cached_note(cached_at)
    console.print()


def render_devices(devices: list[dict], current_id: Optional[str] = None):
    if not devices:
        console.print("[yellow]No devices registered[/yellow]")
        return

    table = Table(title="Devices", show_header=True, header_style="bold cyan")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Type", style="dim")
    table.add_column("Last sync", style="dim")
    table.add_column("Records", justify="right")
    table.add_column("Screenshots", justify="right")

    for device in devices:
        last_sync = device.get("last_sync_at") or "never"
        table.add_row(
            "[green]●[/green]" if device["id"] == current_id else "",
            device["device_name"],
            device["device_type"],
            last_sync[:16].replace("T", " "),
            format_number(device.get("usage_count", 0)),
            format_number(device.get("screenshot_count", 0)),
        )
    console.print(table)


def show_push_status(result, pending_count: int = 0):
    """Show push status with appropriate styling."""
    if result.status == "success":
        msg = (f"[green]✓ Synced {result.records_synced} records, "
               f"{result.events_synced} events[/green]")
        if result.replayed:
            msg += f" [dim](replayed {result.replayed} queued)[/dim]"
    elif result.status == "queued":
        msg = f"[yellow]⚠ {result.message} (queued for retry)[/yellow]"
    elif result.status == "skipped":
        msg = f"[dim]↷ {result.message}[/dim]"
    else:
        msg = f"[red]✗ {result.message}[/red]"

    if pending_count > 0:
        msg += f" [dim]({pending_count} pending)[/dim]"

    console.print(msg)


def show_stale_warning(config: dict):
    """Warn if data might be stale."""
    if not config.get("last_sync_success", True):
        last_error = config.get("last_error", "unknown error")
        console.print(f"[yellow]⚠ Last push failed: {last_error}[/yellow]")
        console.print("[dim]  Run 'tracker push --retry' to replay queued pushes.[/dim]")
