"""CLI commands for FocusFlow using Typer."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from focusflow import __version__
from focusflow.achievements.catalog import Achievement
from focusflow.core.config import get_config
from focusflow.core.errors import FocusFlowError, NotFound
from focusflow.core.tracker import LocalApp, open_local_app
from focusflow.focus.timer import TimerState, TimerStatus
from focusflow.habits.completion import ToggleResult
from focusflow.habits.models import Habit, HabitCategory, parse_category
from focusflow.habits.templates import HabitTemplate, templates_for

T = TypeVar("T")

app = typer.Typer(
    name="focusflow",
    help="Habits, streaks, achievements and a focus timer.",
    add_completion=False,
)
habit_app = typer.Typer(help="Create, list, edit and remove habits.")
stats_app = typer.Typer(help="Completion statistics.")
remind_app = typer.Typer(help="Daily reminder settings.")
app.add_typer(habit_app, name="habit")
app.add_typer(stats_app, name="stats")
app.add_typer(remind_app, name="remind")

console = Console()

_CATEGORY_HELP = "One of: " + ", ".join(c.value for c in HabitCategory)


def setup_logging(log_level: str, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Reduce noise from external libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    config = get_config()
    setup_logging(log_level, config.log_dir / "focusflow.log")


def _run(action: Callable[[LocalApp], Awaitable[T]]) -> T:
    """Open the local app, run ``action`` and close it again."""

    async def runner() -> T:
        local = await open_local_app(get_config())
        try:
            return await action(local)
        finally:
            await local.close()

    try:
        return asyncio.run(runner())
    except FocusFlowError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


async def _resolve(local: LocalApp, ref: str) -> Habit:
    """Find a habit by id, id prefix or case-insensitive title."""
    habits = await local.tracker.repository.list_habits()
    for habit in habits:
        if habit.id == ref or habit.title.lower() == ref.lower():
            return habit
    matches = [h for h in habits if h.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise NotFound(f"No habit matches '{ref}'")


def _announce_unlock(local: LocalApp) -> None:
    def announce(achievement: Achievement) -> None:
        d = achievement.definition
        console.print(Panel(f"{d.icon} [bold]{d.title}[/bold]\n{d.description}",
                            title="Achievement unlocked", border_style="yellow"))

    local.tracker.achievements.on_unlock = announce


# Habits


@habit_app.command("add")
def habit_add(
    title: str = typer.Argument(None, help="Habit title (optional with --template)"),
    template: str = typer.Option(None, "--template", help="Start from a preset (id or title, see 'habit templates')"),
    target: int = typer.Option(None, "--target", "-t", help="Completions needed per day"),
    category: str = typer.Option(None, "--category", "-c", help=_CATEGORY_HELP),
    color: str = typer.Option(None, "--color"),
    description: str = typer.Option(None, "--description", "-d"),
) -> None:
    """Create a habit, from scratch or from a preset."""
    if not title and not template:
        console.print("[red]Give a habit title or --template[/red]")
        raise typer.Exit(1)

    async def action(local: LocalApp) -> Habit:
        _announce_unlock(local)
        fields = {
            "target_per_day": target,
            "category": category,
            "color": color,
            "description": description,
        }
        if template:
            return await local.tracker.create_from_template(template, title=title, **fields)
        return await local.tracker.create_habit(title, **fields)

    habit = _run(action)
    console.print(f"[green]Added[/green] {habit.title} ({habit.target_per_day}/day) [dim]{habit.id[:8]}[/dim]")


@habit_app.command("list")
def habit_list() -> None:
    """List habits with today's progress and streaks."""
    progress = _run(lambda local: local.tracker.habit_progress())

    if not progress:
        console.print("[dim]No habits yet. Add one with 'focusflow habit add'.[/dim]")
        return

    table = Table(title="Habits", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Habit")
    table.add_column("Category")
    table.add_column("Today", justify="right")
    table.add_column("Streak", justify="right")
    table.add_column("Best", justify="right")

    for p in progress:
        today = f"{min(p.today_count, p.habit.target_per_day)}/{p.habit.target_per_day}"
        today = f"[green]{today}[/green]" if p.is_complete_today else today
        table.add_row(p.habit.id[:8], p.habit.title, p.habit.category.label, today,
                      f"{p.streak}d", f"{p.longest_streak}d")
    console.print(table)


@habit_app.command("edit")
def habit_edit(
    ref: str = typer.Argument(..., help="Habit id, id prefix or title"),
    title: str = typer.Option(None, "--title"),
    target: int = typer.Option(None, "--target", "-t"),
    category: str = typer.Option(None, "--category", "-c", help=_CATEGORY_HELP),
    color: str = typer.Option(None, "--color"),
    description: str = typer.Option(None, "--description", "-d"),
) -> None:
    """Edit a habit."""
    changes = {
        k: v
        for k, v in {
            "title": title,
            "target_per_day": target,
            "category": category,
            "color": color,
            "description": description,
        }.items()
        if v is not None
    }

    async def action(local: LocalApp) -> Habit:
        habit = await _resolve(local, ref)
        return await local.tracker.update_habit(habit.id, **changes)

    habit = _run(action)
    console.print(f"[green]Updated[/green] {habit.title}")


@habit_app.command("rm")
def habit_rm(
    ref: str = typer.Argument(..., help="Habit id, id prefix or title"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a habit and its completion history."""
    if not yes:
        typer.confirm(f"Delete '{ref}' and all its completions?", abort=True)

    async def action(local: LocalApp) -> str:
        habit = await _resolve(local, ref)
        await local.tracker.delete_habit(habit.id)
        return habit.title

    title = _run(action)
    console.print(f"[yellow]Removed[/yellow] {title}")


@habit_app.command("templates")
def habit_templates(
    category: str = typer.Option(None, "--category", "-c", help="Only show one category"),
) -> None:
    """List habit presets for 'habit add --template'."""

    async def action(local: LocalApp) -> tuple[list[HabitTemplate], set[str]]:
        chosen = parse_category(category) if category else None
        habits = await local.tracker.repository.list_habits()
        return templates_for(chosen), {h.title.lower() for h in habits}

    templates, existing = _run(action)

    table = Table(title="Habit templates", show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Template")
    table.add_column("Category")
    table.add_column("Description")
    for t in templates:
        added = t.title.lower() in existing
        title = f"[dim]{t.title} (added)[/dim]" if added else t.title
        table.add_row(t.id, title, t.category.label, t.description)
    console.print(table)


@app.command()
def toggle(ref: str = typer.Argument(..., help="Habit id, id prefix or title")) -> None:
    """Advance today's count for a habit (wraps to zero after the target)."""

    async def action(local: LocalApp) -> tuple[Habit, ToggleResult]:
        _announce_unlock(local)
        habit = await _resolve(local, ref)
        return habit, await local.tracker.toggle(habit.id)

    habit, result = _run(action)
    if result.reached_target:
        console.print(f"🎉 [green bold]{habit.title} done for today![/green bold]")
    elif result.count == 0:
        console.print(f"{habit.title}: reset to 0/{result.target}")
    else:
        console.print(f"{habit.title}: {result.count}/{result.target}")


@app.command()
def streak() -> None:
    """Show the all-habits streak."""
    days = _run(lambda local: local.tracker.overall_streak())
    flame = "🔥 " if days else ""
    console.print(Panel(f"{flame}[bold]{days}[/bold] day{'s' if days != 1 else ''}",
                        title="Overall streak", border_style="red" if days else "dim"))


# Stats


def _rate_style(percentage: int) -> str:
    if percentage >= 100:
        return "green"
    if percentage >= 50:
        return "yellow"
    return "red"


@stats_app.command("week")
def stats_week(
    week_of: datetime = typer.Option(None, "--date", formats=["%Y-%m-%d"], help="Any day in the week"),
) -> None:
    """Per-day completion for a Monday-based week."""
    day = week_of.date() if week_of else None
    stats = _run(lambda local: local.tracker.weekly(day))

    table = Table(title="This week" if day is None else f"Week of {stats[0].day}",
                  show_header=True, header_style="bold cyan")
    table.add_column("Day")
    table.add_column("Completed", justify="right")
    table.add_column("Rate", justify="right")
    for s in stats:
        style = _rate_style(s.percentage)
        table.add_row(s.label, f"{s.completed}/{s.total}", f"[{style}]{s.percentage}%[/{style}]")
    console.print(table)
    console.print(f"{sum(s.completed for s in stats)} completed")


@stats_app.command("period")
def stats_period(
    days: int = typer.Option(None, "--days", "-n", help="Trailing window in days (7 or 30)"),
) -> None:
    """Completion rates and trend over a trailing window."""
    stats = _run(lambda local: local.tracker.period(days))

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    trend = stats.trend
    trend_style = "green" if trend >= 0 else "red"
    table.add_row("Completed", f"{stats.total_completed}/{stats.total_possible}")
    table.add_row("Average rate", f"{stats.average_rate}%")
    table.add_row("Perfect days", str(stats.perfect_days))
    table.add_row("Trend", f"[{trend_style}]{'+' if trend >= 0 else ''}{round(trend)}%[/{trend_style}]")
    console.print(Panel(table, title=f"Last {len(stats.days)} days", border_style="cyan"))


@stats_app.command("focus")
def stats_focus(
    days: int = typer.Option(7, "--days", "-n", help="Trailing window in days (7 or 30)"),
) -> None:
    """Completed focus sessions over a trailing window."""
    history = _run(lambda local: local.tracker.focus_history(days))

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("Metric", style="bold")
    summary.add_column("Value")
    summary.add_row("Total", f"{history.total_minutes} min")
    summary.add_row("Sessions", str(history.session_count))
    summary.add_row("Avg/day", f"{history.average_per_day} min")
    console.print(Panel(summary, title=f"Focus, last {history.days} days", border_style="magenta"))

    grouped = history.by_day()
    if not grouped:
        console.print("[dim]No sessions yet. Start one with 'focusflow focus'.[/dim]")
        return
    for day, sessions in grouped.items():
        minutes = "  ".join(f"{s.duration_minutes}m" for s in sessions)
        console.print(f"[bold]{day.strftime('%a, %b %d')}[/bold]  {minutes}")


@app.command()
def achievements() -> None:
    """List achievements and their unlock status."""

    async def action(local: LocalApp) -> list[Achievement]:
        return local.tracker.achievement_list()

    items = _run(action)

    table = Table(title="Achievements", show_header=True, header_style="bold cyan")
    table.add_column("")
    table.add_column("Title")
    table.add_column("Description")
    table.add_column("Unlocked")
    for a in items:
        d = a.definition
        when = a.unlocked_at.strftime("%Y-%m-%d") if a.unlocked_at else ("yes" if a.unlocked else "")
        title = d.title if a.unlocked else f"[dim]{d.title}[/dim]"
        table.add_row(d.icon if a.unlocked else "🔒", title, d.description, when)
    console.print(table)
    console.print(f"{sum(1 for a in items if a.unlocked)}/{len(items)} unlocked")


@app.command()
def export(
    output: Path = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout"),
) -> None:
    """Export habits, stats, focus history and achievements as JSON."""
    data = json.dumps(_run(lambda local: local.tracker.report()), indent=2)
    if output:
        output.write_text(data)
        console.print(f"[green]Exported[/green] to {output}")
    else:
        typer.echo(data)


# Focus timer


def _render_timer(status: TimerStatus) -> Panel:
    label = "Break" if status.state is TimerState.BREAK else "Focus"
    style = "green" if status.state is TimerState.BREAK else "magenta"
    body = f"[bold]{status.time_display}[/bold]"
    if status.warning:
        body += f"\n[yellow]{status.warning}[/yellow]"
    return Panel(body, title=label, border_style=style)


@app.command()
def focus(
    minutes: int = typer.Option(None, "--minutes", "-m", help="Focus duration"),
    break_minutes: int = typer.Option(None, "--break", "-b", help="Break duration"),
    no_break: bool = typer.Option(False, "--no-break", help="Skip the break after the session"),
) -> None:
    """Run a focus session in the foreground. Ctrl+C abandons it."""

    async def action(local: LocalApp) -> int:
        _announce_unlock(local)
        timer = local.tracker.timer
        if minutes:
            timer.set_duration(minutes)
        if break_minutes:
            timer.set_break_duration(break_minutes)
        if no_break:
            timer.breaks_enabled = False

        with Live(_render_timer(timer.status), console=console, refresh_per_second=4) as live:
            timer.on_tick = lambda status: live.update(_render_timer(status))
            await timer.start()
            try:
                while timer.state is not TimerState.IDLE:
                    await asyncio.sleep(0.25)
            except asyncio.CancelledError:
                await timer.reset()
                raise
        return timer.focus_minutes_today

    try:
        total = _run(action)
    except KeyboardInterrupt:
        console.print("\n[yellow]Session abandoned[/yellow]")
        raise typer.Exit(130)
    console.print(f"[green]Session complete.[/green] {total} min focused today")


# Reminders


@remind_app.command("set")
def remind_set(
    time: str = typer.Option(None, "--time", "-t", help="Daily reminder time, HH:MM"),
    enabled: bool = typer.Option(None, "--on/--off", help="Enable or disable reminders"),
) -> None:
    """Change reminder settings."""

    async def action(local: LocalApp) -> Any:
        if time is not None:
            await local.reminders.set_time(time)
        if enabled is not None:
            await local.reminders.set_enabled(enabled)
        return local.reminders.preferences

    prefs = _run(action)
    state = "[green]on[/green]" if prefs.enabled else "[dim]off[/dim]"
    console.print(f"Reminders {state} at {prefs.time}")


@remind_app.command("check")
def remind_check() -> None:
    """Exit 0 and print a reminder if one is due right now, else exit 1."""

    async def action(local: LocalApp) -> bool:
        return await local.reminders.check(datetime.now())

    if _run(action):
        console.print("🌟 Time to build habits! Start a focus session and complete your habits.")
    else:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"FocusFlow v{__version__}")
