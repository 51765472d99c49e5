"""CLI commands for MedBook."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from medbook.config import get_settings
from medbook.scheduling.errors import SchedulingError

app = typer.Typer(
    name="medbook",
    help="Doctor availability and appointment booking service",
    add_completion=False,
)
console = Console()


def _availability_service():
    from medbook.scheduling.availability import AvailabilityService

    return AvailabilityService(week_days=get_settings().week_days)


async def _with_session(fn):
    from medbook.core.database import get_session_factory

    async with get_session_factory()() as session:
        return await fn(session)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"Starting MedBook API server on {host}:{port}")
    uvicorn.run(
        "medbook.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command("init-db")
def init_db():
    """Create database tables (development only)."""
    from medbook.core.database import init_db as create_tables

    asyncio.run(create_tables())
    console.print("[green]Database tables created[/green]")


@app.command()
def slots(
    doctor_id: str = typer.Argument(..., help="Doctor ID"),
    day: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    available_only: bool = typer.Option(False, "--available", "-a", help="Only list free slots"),
):
    """Show a doctor's slots for one day."""
    service = _availability_service()
    try:
        result = asyncio.run(_with_session(lambda s: service.get_day(s, doctor_id, day)))
    except SchedulingError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if not result.slots:
        console.print(f"[yellow]No schedule for {result.date}[/yellow]")
        return

    table = Table(title=f"Slots for {result.date} ({result.available_slots}/{result.total_slots} free)")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Status")
    for slot in result.slots:
        if available_only and not slot.is_available:
            continue
        status = "[green]free[/green]" if slot.is_available else "[red]taken[/red]"
        table.add_row(slot.start_time, slot.end_time, status)
    console.print(table)


@app.command()
def week(doctor_id: str = typer.Argument(..., help="Doctor ID")):
    """Show the availability rollup for the coming week."""
    service = _availability_service()
    try:
        entries = asyncio.run(_with_session(lambda s: service.get_week_availability(s, doctor_id)))
    except SchedulingError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    table = Table(title="Week availability")
    table.add_column("Day")
    table.add_column("Date")
    table.add_column("Available", justify="right")
    table.add_column("Total", justify="right")
    for entry in entries:
        table.add_row(entry.day_name, entry.date.isoformat(), str(entry.available_slots), str(entry.total_slots))
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from medbook import __version__

    console.print(f"MedBook v{__version__}")
