"""dayforge CLI commands for planning and travel lookups."""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="dayforge day planner CLI", no_args_is_help=True)
console = Console()


def _async_run(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


async def _with_orchestrator(action):
    """Open the database, build services, run ``action(orch)``, close again."""
    from dayforge.database import close_db, init_db
    from dayforge.logging_config import setup_logging
    from dayforge.orchestrator import Orchestrator

    setup_logging()
    await init_db()
    try:
        return await action(Orchestrator())
    finally:
        await close_db()


def _parse_date(value: Optional[str]) -> dt.date:
    if not value:
        return dt.date.today()
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
) -> None:
    """Start the API server."""
    from dayforge.main import run

    run(host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command() -> None:
    """Create database tables."""
    from dayforge.database import close_db, init_db

    async def _init() -> None:
        await init_db()
        await close_db()

    _async_run(_init())
    console.print("[green]✓[/green] Database initialized")


@app.command()
def plan(
    user: str = typer.Option("default", "--user", "-u", help="User ID"),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="Day to plan (YYYY-MM-DD)"),
    accept: bool = typer.Option(False, "--accept", help="Save the proposed blocks"),
) -> None:
    """Propose a schedule for one day."""
    target = _parse_date(date)

    async def _plan(orch):
        day_plan = await orch.planner.plan_for_user(user, target)
        created = await orch.planner.accept_plan(user, day_plan.schedule) if accept else []
        return day_plan, created

    day_plan, created = _async_run(_with_orchestrator(_plan))

    table = Table(title=f"Plan for {target.isoformat()}")
    table.add_column("Start", style="cyan")
    table.add_column("End", style="cyan")
    table.add_column("Title")
    table.add_column("Kind", style="dim")
    for entry in day_plan.schedule:
        kind = "new" if entry.is_proposed else (entry.source.value if entry.source else "event")
        style = "green" if entry.is_proposed else None
        table.add_row(
            entry.start_time.strftime("%H:%M"),
            entry.end_time.strftime("%H:%M"),
            entry.title,
            kind,
            style=style,
        )
    console.print(table)
    console.print(f"[bold]{day_plan.proposed_count}[/bold] new block(s) proposed")
    if accept:
        console.print(f"[green]✓[/green] Saved {len(created)} block(s)")


@app.command()
def travel(
    origin: str = typer.Argument(..., help="Start address"),
    destination: str = typer.Argument(..., help="Destination address"),
    mode: str = typer.Option("drive", "--mode", "-m", help="drive, walk, transit, bike..."),
) -> None:
    """Look up travel time between two addresses."""
    from dayforge.modules.travel.service import TravelService, normalize_travel_mode

    canonical = normalize_travel_mode(mode)
    result = _async_run(TravelService().calculate_travel_time(origin, destination, canonical))
    if result is None:
        console.print("[red]✗[/red] Travel time unavailable (check addresses and GOOGLE_MAPS_API_KEY)")
        raise typer.Exit(code=1)
    console.print(f"{canonical.value}: [bold]{result.duration_text}[/bold] ({result.duration_minutes} min)")


@app.command()
def tasks(
    user: str = typer.Option("default", "--user", "-u", help="User ID"),
    all_tasks: bool = typer.Option(False, "--all", help="Include completed tasks"),
) -> None:
    """List tasks by priority."""

    async def _list(orch):
        return await orch.tasks.list_tasks(user, include_completed=all_tasks)

    rows = _async_run(_with_orchestrator(_list))
    table = Table(title=f"Tasks for {user}")
    table.add_column("Priority", justify="right")
    table.add_column("Title")
    table.add_column("Due")
    table.add_column("Estimate", justify="right")
    table.add_column("Done")
    for task in rows:
        table.add_row(
            f"{task.priority_score:.1f}",
            task.title,
            task.due_date.strftime("%Y-%m-%d %H:%M") if task.due_date else "—",
            f"{task.estimated_time} min" if task.estimated_time else "—",
            "✓" if task.is_completed else "",
        )
    console.print(table)


@app.command()
def prefs(
    user: str = typer.Option("default", "--user", "-u", help="User ID"),
    work_start: Optional[int] = typer.Option(None, help="Work day start hour (0-23)"),
    work_end: Optional[int] = typer.Option(None, help="Work day end hour (0-23)"),
    break_minutes: Optional[int] = typer.Option(None, help="Break around fixed events"),
    buffer_minutes: Optional[int] = typer.Option(None, help="Planning buffer override"),
    travel_mode: Optional[str] = typer.Option(None, help="drive, walk, transit, bike"),
    home: Optional[str] = typer.Option(None, help="Home address (travel origin fallback)"),
) -> None:
    """Show or update scheduling preferences."""
    changes = {
        key: value
        for key, value in {
            "work_hours_start": work_start,
            "work_hours_end": work_end,
            "break_minutes": break_minutes,
            "buffer_minutes": buffer_minutes,
            "travel_mode": travel_mode,
        }.items()
        if value is not None
    }

    async def _prefs(orch):
        if home is not None:
            await orch.users.set_home_address(user, home)
        if changes:
            current = await orch.users.update_preferences(user, **changes)
        else:
            current = await orch.users.get_preferences(user)
        return current, await orch.users.get_home_address(user)

    try:
        current, address = _async_run(_with_orchestrator(_prefs))
    except ValueError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title=f"Preferences for {user}", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Work hours", f"{current.work_hours_start}:00–{current.work_hours_end}:00")
    table.add_row("Break", f"{current.break_minutes} min")
    table.add_row("Planning buffer", f"{current.effective_buffer} min")
    table.add_row("Travel mode", current.travel_mode)
    table.add_row("Home", address or "—")
    console.print(table)


if __name__ == "__main__":
    app()
