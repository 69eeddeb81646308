"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from ..adapters.memory_store import InMemoryAppointmentStore, InMemoryProfessionalDirectory
from ..adapters.sql_store import SqlAppointmentStore, SqlProfessionalDirectory, create_db_engine, init_db
from ..config import AppConfig, get_default_config_path
from ..domain.availability import AvailabilityReport
from ..domain.exceptions import BookingRejected, SlotguardError
from ..domain.models import Appointment, AppointmentStatus, BookingPayload, OverrideKind, format_time_of_day
from ..services.availability import AvailabilityService
from ..services.booking import BookingArbiter

app = typer.Typer(
    name="slotguard",
    help="Query professional availability and claim appointment slots",
    add_completion=False
)

console = Console()

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_REJECTED = 2

HANDLED_ERRORS = (SlotguardError, SQLAlchemyError, FileNotFoundError, ValueError)

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use in-memory stores seeded from the config instead of the database.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Print the wire-format JSON instead of tables.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path], verbose: bool) -> AppConfig:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    _configure_logging("DEBUG" if verbose else config.log_level)
    return config


def _build_backend(config: AppConfig, mock: bool):
    """Return (directory, store) for the configured backend."""
    if mock:
        directory = InMemoryProfessionalDirectory(config.build_professionals())
        return directory, InMemoryAppointmentStore(timezone=config.timezone)

    engine = create_db_engine(config.database_url)
    return (
        SqlProfessionalDirectory(engine),
        SqlAppointmentStore(engine, timezone=config.timezone),
    )


def _resolve_week_start(config: AppConfig, week_start: Optional[str]) -> str:
    if week_start:
        return week_start
    return pendulum.today(config.timezone).format("YYYY-MM-DD")


def _fail(exc: Exception, code: int = EXIT_ERROR) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    return typer.Exit(code)


def _render_report(report: AvailabilityReport, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold")
    table.add_column("Weekday")
    table.add_column("Hours", style="dim")
    table.add_column("Open slots")

    for day in report.days:
        if day.open_slots:
            slots = ", ".join(format_time_of_day(slot) for slot in day.open_slots)
        else:
            slots = f"[yellow]{day.reason}[/yellow]"
        table.add_row(
            day.date.isoformat(),
            day.weekday.label,
            str(day.window) if day.window else "-",
            slots,
        )

    console.print()
    console.print(table)

    summary = report.summary
    status = "[bold red]fully booked[/bold red]" if summary.week_fully_booked else "[bold green]available[/bold green]"
    console.print(
        f"  {summary.total_open_slots} open slot(s) on {summary.days_with_availability} day(s), "
        f"week is {status}\n"
    )


def _render_appointment(appointment: Appointment, title: str) -> None:
    console.print(Panel.fit(
        f"[bold]Appointment:[/bold] {appointment.id}\n"
        f"[bold]Professional:[/bold] {appointment.professional_id}\n"
        f"[bold]Slot:[/bold] {appointment.slot}\n"
        f"[bold]Status:[/bold] {appointment.status.value}"
        + (f"\n[bold]Override:[/bold] {appointment.override.value}" if appointment.override else ""),
        title=title
    ))


@app.command()
def availability(
    professional_id: Annotated[int, typer.Argument(help="Professional id")],
    week_start: Annotated[Optional[str], typer.Option("--week-start", "-w", help="First date of the week (YYYY-MM-DD). Defaults to today.")] = None,
    interval: Annotated[Optional[int], typer.Option("--interval", "-i", help="Slot interval in minutes")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Show the 7-day availability of a professional.

    Examples:
        slotguard availability 1
        slotguard availability 1 --week-start 2024-12-16 --interval 20
    """
    try:
        config = _load_config(config_file, verbose)
        directory, store = _build_backend(config, mock)
        service = AvailabilityService(
            directory,
            store,
            default_interval_minutes=config.defaults.interval_minutes,
            default_lookahead_weeks=config.defaults.lookahead_weeks,
        )
        report = asyncio.run(
            service.weekly_availability(professional_id, _resolve_week_start(config, week_start), interval)
        )
    except HANDLED_ERRORS as e:
        raise _fail(e)

    if as_json:
        console.print_json(json.dumps(report.to_dict()))
        return
    _render_report(report, f"Availability of professional {professional_id}")


@app.command()
def next_week(
    professional_id: Annotated[int, typer.Argument(help="Professional id")],
    week_start: Annotated[Optional[str], typer.Option("--week-start", "-w", help="Current week start (YYYY-MM-DD). Defaults to today.")] = None,
    max_weeks: Annotated[Optional[int], typer.Option("--max-weeks", "-m", help="How many following weeks to examine")] = None,
    interval: Annotated[Optional[int], typer.Option("--interval", "-i", help="Slot interval in minutes")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Find the next week, after the given one, that still has open slots.
    """
    try:
        config = _load_config(config_file, verbose)
        directory, store = _build_backend(config, mock)
        service = AvailabilityService(
            directory,
            store,
            default_interval_minutes=config.defaults.interval_minutes,
            default_lookahead_weeks=config.defaults.lookahead_weeks,
        )
        report = asyncio.run(
            service.next_available_week(
                professional_id,
                _resolve_week_start(config, week_start),
                max_weeks=max_weeks,
                interval_minutes=interval,
            )
        )
    except HANDLED_ERRORS as e:
        raise _fail(e)

    if as_json:
        console.print_json(json.dumps(report.to_dict() if report else None))
        return
    if report is None:
        console.print(
            "[yellow]⚠ No week with open slots found within the lookahead window.[/yellow]\n"
            "Try a larger --max-weeks, a later --week-start or another professional."
        )
        return
    _render_report(report, f"Next available week of professional {professional_id}")


@app.command()
def claim(
    professional_id: Annotated[int, typer.Argument(help="Professional id")],
    date: Annotated[str, typer.Argument(help="Slot date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Slot start time (HH:MM)")],
    name: Annotated[str, typer.Option("--name", "-n", help="Patient full name")],
    document: Annotated[str, typer.Option("--document", help="Patient national id")] = "",
    phone: Annotated[str, typer.Option("--phone", help="Patient phone")] = "",
    email: Annotated[str, typer.Option("--email", help="Patient email")] = "",
    notes: Annotated[str, typer.Option("--notes", help="Notes for the professional")] = "",
    override: Annotated[Optional[OverrideKind], typer.Option("--override", help="Book outside working hours")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Claim a slot. Exits with code 2 when the slot is taken or not bookable.

    Examples:
        slotguard claim 1 2024-12-16 09:30 --name "Ana Pérez"
        slotguard claim 1 2024-12-16 19:00 --name "Ana Pérez" --override emergency
    """
    try:
        config = _load_config(config_file, verbose)
        directory, store = _build_backend(config, mock)
        arbiter = BookingArbiter(directory, store)
        payload = BookingPayload(
            patient_name=name,
            patient_document=document,
            phone=phone,
            email=email,
            notes=notes,
        )
        appointment = asyncio.run(arbiter.claim_slot(professional_id, date, time, payload, override=override))
    except BookingRejected as e:
        raise _fail(e, EXIT_REJECTED)
    except HANDLED_ERRORS as e:
        raise _fail(e)

    if as_json:
        console.print_json(json.dumps(appointment.to_dict()))
        return
    _render_appointment(appointment, "✓ Slot claimed")


@app.command()
def set_status(
    appointment_id: Annotated[int, typer.Argument(help="Appointment id")],
    status: Annotated[AppointmentStatus, typer.Argument(help="New status")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Confirm, cancel, release or mark an appointment as no-show.
    """
    try:
        config = _load_config(config_file, verbose)
        directory, store = _build_backend(config, mock=False)
        arbiter = BookingArbiter(directory, store)
        appointment = asyncio.run(arbiter.change_status(appointment_id, status))
    except KeyError:
        raise _fail(LookupError(f"Appointment {appointment_id} not found"))
    except BookingRejected as e:
        raise _fail(e, EXIT_REJECTED)
    except HANDLED_ERRORS as e:
        raise _fail(e)

    _render_appointment(appointment, "✓ Status updated")


@app.command()
def professionals(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List professionals and their weekly hours.
    """
    try:
        config = _load_config(config_file, verbose=False)
        directory, _ = _build_backend(config, mock)
        entries = directory.list_professionals()
    except HANDLED_ERRORS as e:
        raise _fail(e)

    if not entries:
        console.print("[yellow]No professionals configured.[/yellow]")
        return

    table = Table(
        title="Professionals",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Hours", style="dim")

    for professional in entries:
        table.add_row(
            str(professional.id),
            professional.name,
            professional.status.value,
            professional.schedule.describe(),
        )

    console.print()
    console.print(table)
    console.print()


@app.command(name="init-db")
def init_database(
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Create the tables and load the professionals from the config file.
    """
    try:
        config = _load_config(config_file, verbose)
        engine = create_db_engine(config.database_url)
        init_db(engine)
        directory = SqlProfessionalDirectory(engine)
        for professional in config.build_professionals():
            directory.upsert(professional)
            logger.debug("Loaded professional %s (%s)", professional.id, professional.name)
    except HANDLED_ERRORS as e:
        raise _fail(e)

    console.print(
        f"\n[green]✓ Database ready at {config.database_url} "
        f"with {len(config.professionals)} professional(s).[/green]\n"
    )


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotguard[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
