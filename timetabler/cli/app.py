"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Dict, List, NoReturn, Optional, Tuple

import pendulum
import typer
from pendulum import Date
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel

from ..adapters.json_store import JsonScheduleStore
from ..config import AppConfig
from ..domain.exceptions import TimetableError
from ..domain.master_data import EntityType
from ..domain.models import (
    DayOfWeek,
    ScheduleFilters,
    ScheduleSlot,
    SlotData,
    SlotUpdate,
    TimeOfDay,
    TimeRange,
    WeekWindow,
)
from ..domain.time_options import generate_time_options, shift_preserving_duration
from ..domain.week_grid import GridCell, WeekGridLayoutEngine, creation_order
from ..services.master_data_service import MasterDataService
from ..services.schedule_service import ConflictError, ScheduleService

app = typer.Typer(
    name="timetabler",
    help="Manage a weekly school timetable: render the week grid and book slots without double-booking",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
SampleOption = Annotated[bool, typer.Option("--sample", help="Use the bundled sample timetable (changes are not saved).")]

SLOT_COLORS = ["blue", "green", "magenta", "dark_orange", "deep_pink3"]


class _Context:
    """Everything a command needs, built from the config."""

    def __init__(self, config: AppConfig, sample: bool):
        self.config = config
        self.store = JsonScheduleStore.sample() if sample else JsonScheduleStore(config.data_file)
        self.master_data = MasterDataService(self.store)
        engine = WeekGridLayoutEngine(
            axis=config.grid.time_axis(),
            layout=config.grid.layout(),
            order_key=creation_order,
        )
        self.schedule = ScheduleService(
            self.store,
            layout_engine=engine,
            require_known_references=True,
        )

    def names(self) -> Dict[EntityType, Dict[str, str]]:
        return {entity_type: self.master_data.names(entity_type) for entity_type in EntityType}


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _open(config_file: Optional[Path], sample: bool) -> _Context:
    try:
        config = AppConfig.load_or_default(config_file)
        return _Context(config, sample)
    except (FileNotFoundError, ValueError, TimetableError) as e:
        _fail(str(e))


def _parse_date(value: Optional[str], tz: str) -> Date:
    if not value:
        return pendulum.today(tz).date()
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        _fail(f"Could not parse date {value!r}: {e}")


def _describe(slot: ScheduleSlot, names: Dict[EntityType, Dict[str, str]]) -> Tuple[str, str, str, str]:
    """Subject, teacher, class and room display names (falling back to ids)."""
    return (
        names[EntityType.SUBJECT].get(slot.subject_id, slot.subject_id),
        names[EntityType.TEACHER].get(slot.teacher_id, slot.teacher_id),
        names[EntityType.CLASS].get(slot.class_id, slot.class_id),
        names[EntityType.ROOM].get(slot.room_id, slot.room_id),
    )


def _render_cell(cell: GridCell, names: Dict[EntityType, Dict[str, str]], step_minutes: int) -> str:
    lines: List[str] = []
    for index, placement in enumerate(cell.placements):
        subject, teacher, class_name, room = _describe(placement.slot, names)
        color = SLOT_COLORS[placement.color_index % len(SLOT_COLORS)]
        cells = placement.slot.time_range.duration_minutes() / step_minutes
        lines.append(
            f"{' ' * index}"
            f"[{color}]■ {subject}[/{color}] {class_name}\n"
            f"  [dim]{teacher} · {room} · {placement.slot.time_range} ({cells:g} cells)[/dim]"
        )
    if cell.has_more:
        lines.append(f"[bold]+{cell.overflow_count} more[/bold]")
    return "\n".join(lines)


def _print_slot_table(title: str, slots: List[ScheduleSlot], names: Dict[EntityType, Dict[str, str]]) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Subject", style="bold yellow")
    table.add_column("Teacher")
    table.add_column("Class")
    table.add_column("Room")

    for slot in slots:
        subject, teacher, class_name, room = _describe(slot, names)
        table.add_row(slot.id, slot.day_of_week.label, str(slot.time_range), subject, teacher, class_name, room)

    console.print()
    console.print(table)
    console.print()


def _print_conflict(conflict: ConflictError, names: Dict[EntityType, Dict[str, str]]) -> None:
    subject, teacher, class_name, room = _describe(conflict.conflicting_slot, names)
    console.print(Panel.fit(
        f"[bold red]✗ {conflict.message}[/bold red]\n\n"
        f"[bold]Slot:[/bold] {conflict.conflicting_slot.id}\n"
        f"[bold]Lesson:[/bold] {subject} for {class_name}\n"
        f"[bold]Teacher:[/bold] {teacher}\n"
        f"[bold]Room:[/bold] {room}",
        title="Conflict"
    ))


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Timetable management: week grid, slot booking and conflict checks.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.command()
def week(
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Any date in the week to show (YYYY-MM-DD). Defaults to today.")] = None,
    next_week: Annotated[bool, typer.Option("--next-week", help="Show the week after --date.")] = False,
    class_id: Annotated[Optional[str], typer.Option("--class", help="Only slots of this class id.")] = None,
    teacher_id: Annotated[Optional[str], typer.Option("--teacher", help="Only slots of this teacher id.")] = None,
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    Render the weekly grid.

    Examples:

        timetabler week --sample
        timetabler week --date 2024-11-27 --class c-10a
    """
    ctx = _open(config_file, sample)
    window = WeekWindow.containing(_parse_date(date, ctx.config.timezone))
    if next_week:
        window = window.next()

    filters = ScheduleFilters(class_id=class_id, teacher_id=teacher_id)
    grid = ctx.schedule.render_week(window.start, filters)
    names = ctx.names()
    step = ctx.config.grid.step_minutes

    table = Table(
        title=f"🗓️  Week {window.label()}",
        show_header=True,
        header_style="bold cyan",
        show_lines=True,
    )
    table.add_column("Time", style="dim", no_wrap=True)
    for day, day_date in zip(DayOfWeek, grid.days()):
        table.add_column(f"{day.short}\n{day_date.format('MMM D')}", overflow="fold")

    for row in grid.rows:
        rendered = [_render_cell(cell, names, step) for cell in row.cells]
        table.add_row(row.time.format(), *rendered)

    console.print()
    console.print(table)

    if grid.unplaced:
        console.print(
            f"[yellow]⚠ {len(grid.unplaced)} slot(s) start off the {step}-minute grid "
            f"and are not shown:[/yellow] " + ", ".join(f"{slot.id} ({slot})" for slot in grid.unplaced)
        )
    console.print()


@app.command()
def cell(
    day: Annotated[str, typer.Argument(help="Day of week (1-7 or name, e.g. 'mon').")],
    time: Annotated[str, typer.Argument(help="Cell start time (HH:MM).")],
    class_id: Annotated[Optional[str], typer.Option("--class", help="Only slots of this class id.")] = None,
    teacher_id: Annotated[Optional[str], typer.Option("--teacher", help="Only slots of this teacher id.")] = None,
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    List every slot starting at one grid cell, including those hidden behind "+N more".
    """
    ctx = _open(config_file, sample)
    try:
        day_of_week = DayOfWeek.from_value(day)
        start = TimeOfDay.parse(time)
    except TimetableError as e:
        _fail(str(e))

    filters = ScheduleFilters(class_id=class_id, teacher_id=teacher_id)
    slots = ctx.schedule.list_slots_for_week(pendulum.today(ctx.config.timezone).date(), filters)
    at_cell = ctx.schedule.layout_engine.slots_starting_at(slots, day_of_week, start)

    if not at_cell:
        console.print(f"[yellow]No slots start on {day_of_week.label} at {start}.[/yellow]")
        return

    _print_slot_table(f"Slots at {day_of_week.label} {start}", at_cell, ctx.names())


@app.command()
def add(
    day: Annotated[str, typer.Option("--day", help="Day of week (1-7 or name).")],
    start: Annotated[str, typer.Option("--start", help="Start time (HH:MM).")],
    end: Annotated[str, typer.Option("--end", help="End time (HH:MM).")],
    teacher_id: Annotated[str, typer.Option("--teacher", help="Teacher id.")],
    subject_id: Annotated[str, typer.Option("--subject", help="Subject id.")],
    class_id: Annotated[str, typer.Option("--class", help="Class id.")],
    room_id: Annotated[str, typer.Option("--room", help="Room id.")],
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    Book a new weekly slot. Rejected if the teacher or room is already booked.
    """
    ctx = _open(config_file, sample)
    try:
        data = SlotData.build(
            day=day,
            start=start,
            end=end,
            teacher_id=teacher_id,
            subject_id=subject_id,
            class_id=class_id,
            room_id=room_id,
        )
        result = ctx.schedule.create_slot(data)
    except TimetableError as e:
        _fail(str(e))

    if isinstance(result, ConflictError):
        _print_conflict(result, ctx.names())
        raise typer.Exit(1)

    console.print(f"[green]✓ Created slot {result.id}: {result}[/green]")


@app.command()
def update(
    slot_id: Annotated[str, typer.Argument(help="Id of the slot to change.")],
    day: Annotated[Optional[str], typer.Option("--day", help="New day of week.")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="New start time (HH:MM).")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="New end time (HH:MM).")] = None,
    keep_duration: Annotated[bool, typer.Option("--keep-duration", help="With --start, move the end time to keep the current duration.")] = False,
    teacher_id: Annotated[Optional[str], typer.Option("--teacher", help="New teacher id.")] = None,
    subject_id: Annotated[Optional[str], typer.Option("--subject", help="New subject id.")] = None,
    class_id: Annotated[Optional[str], typer.Option("--class", help="New class id.")] = None,
    room_id: Annotated[Optional[str], typer.Option("--room", help="New room id.")] = None,
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    Change a slot. The conflict check ignores the slot's own stored version.
    """
    ctx = _open(config_file, sample)
    try:
        new_start = TimeOfDay.parse(start) if start else None
        new_end = TimeOfDay.parse(end) if end else None

        if keep_duration and new_start is not None and new_end is None:
            current = ctx.store.get_slot(slot_id)
            grid = ctx.config.grid
            options = generate_time_options(grid.start_hour, grid.end_hour)
            shifted = shift_preserving_duration(current.time_range, new_start, options)
            if shifted is None:
                _fail(
                    f"Keeping {current.time_range.duration_minutes()} minutes from {new_start} "
                    f"ends outside the offered times; pass --end instead."
                )
            new_end = shifted.end

        changes = SlotUpdate(
            day_of_week=DayOfWeek.from_value(day) if day else None,
            start=new_start,
            end=new_end,
            teacher_id=teacher_id,
            subject_id=subject_id,
            class_id=class_id,
            room_id=room_id,
        )
        if changes.is_empty():
            _fail("Nothing to change. Pass at least one option.")

        result = ctx.schedule.update_slot(slot_id, changes)
    except TimetableError as e:
        _fail(str(e))

    if isinstance(result, ConflictError):
        _print_conflict(result, ctx.names())
        raise typer.Exit(1)

    console.print(f"[green]✓ Updated slot {result.id}: {result}[/green]")


@app.command()
def remove(
    slot_id: Annotated[str, typer.Argument(help="Id of the slot to delete.")],
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    Delete a slot.
    """
    ctx = _open(config_file, sample)
    try:
        ctx.schedule.delete_slot(slot_id)
    except TimetableError as e:
        _fail(str(e))

    console.print(f"[green]✓ Deleted slot {slot_id}.[/green]")


@app.command()
def check(
    day: Annotated[str, typer.Option("--day", help="Day of week (1-7 or name).")],
    start: Annotated[str, typer.Option("--start", help="Start time (HH:MM).")],
    end: Annotated[str, typer.Option("--end", help="End time (HH:MM).")],
    teacher_id: Annotated[str, typer.Option("--teacher", help="Teacher id.")],
    room_id: Annotated[str, typer.Option("--room", help="Room id.")],
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Slot id to ignore (the slot being edited).")] = None,
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    Dry-run the conflict check without writing anything.
    """
    ctx = _open(config_file, sample)
    try:
        data = SlotData(
            day_of_week=DayOfWeek.from_value(day),
            time_range=TimeRange.from_strings(start, end),
            teacher_id=teacher_id,
            subject_id="",
            class_id="",
            room_id=room_id,
        )
    except TimetableError as e:
        _fail(str(e))

    result = ctx.schedule.check_slot(data, exclude_id=exclude)
    if result.has_conflict:
        _print_conflict(ConflictError.from_result(result), ctx.names())
        raise typer.Exit(1)

    console.print(f"[green]✓ No conflict for {data.day_of_week.label} {data.time_range}.[/green]")


@app.command()
def audit(
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    Report every pair of stored slots that double-books a teacher or room.
    """
    ctx = _open(config_file, sample)
    pairs = ctx.schedule.audit()

    if not pairs:
        console.print("[green]✓ No double bookings found.[/green]")
        return

    names = ctx.names()
    table = Table(title="Double bookings", show_header=True, header_style="bold red")
    table.add_column("Day")
    table.add_column("Resource")
    table.add_column("First slot")
    table.add_column("Second slot")
    for pair in pairs:
        table.add_row(
            pair.day_of_week.label,
            " & ".join(kind.value for kind in pair.kinds),
            f"{pair.first.id} {pair.first.time_range} ({_describe(pair.first, names)[0]})",
            f"{pair.second.id} {pair.second.time_range} ({_describe(pair.second, names)[0]})",
        )

    console.print()
    console.print(table)
    console.print()
    raise typer.Exit(1)


@app.command()
def entities(
    entity_type: Annotated[EntityType, typer.Argument(help="teacher, subject, class or room")],
    config_file: ConfigOption = None,
    sample: SampleOption = False,
):
    """
    List master data of one type.
    """
    ctx = _open(config_file, sample)
    records = ctx.master_data.list(entity_type)

    if not records:
        console.print(f"[yellow]No {entity_type.plural} defined.[/yellow]")
        return

    table = Table(
        title=entity_type.plural.capitalize(),
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold yellow")
    for record in records:
        table.add_row(record.id, record.name)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]timetabler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
