import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer()
console = Console()

SETTINGS_OPTION = typer.Option(None, "--config", "-c", help="Path to settings.yaml")


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _settings(config: Optional[str], verbose: bool = False):
    from earlyjob.config import load_settings
    from earlyjob.errors import FatalError

    try:
        settings = load_settings(config)
    except FatalError as e:
        setup_logging()
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    setup_logging("DEBUG" if verbose else settings.log_level)
    return settings


def _ingest_signals(settings, signals_file: Optional[str] = None):
    from earlyjob.config import load_signal_events
    from earlyjob.db import JobStore
    from earlyjob.errors import FatalError
    from earlyjob.models import SignalReport, utcnow
    from earlyjob.signals import SignalIngestor

    try:
        events = load_signal_events(signals_file or settings.signals_file)
        store = JobStore(settings.db_path)
    except FatalError as e:
        return SignalReport(success=False, timestamp=utcnow(), error=str(e))
    try:
        return SignalIngestor(store).ingest(events)
    finally:
        store.close()


@app.command()
def run(
    config: Optional[str] = SETTINGS_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Run one job ingestion pass now"""
    from earlyjob.pipeline import run_once

    settings = _settings(config, verbose)
    report = run_once(settings)
    console.print_json(report.model_dump_json())
    if not report.success:
        raise typer.Exit(code=1)


@app.command()
def signals(
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Signals YAML (default from settings)"),
    config: Optional[str] = SETTINGS_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Ingest hiring signals now and alert users tracking those companies"""
    settings = _settings(config, verbose)
    report = _ingest_signals(settings, file)
    console.print_json(report.model_dump_json())
    if not report.success:
        raise typer.Exit(code=1)


@app.command()
def schedule(
    config: Optional[str] = SETTINGS_OPTION,
    max_runs: Optional[int] = typer.Option(None, help="Stop after this many runs"),
):
    """Run job and signal ingestion now, then every interval_hours"""
    from earlyjob.pipeline import run_once
    from earlyjob.scheduler import Scheduler

    settings = _settings(config)

    def ingest_all():
        job_report = run_once(settings)
        console.print_json(job_report.model_dump_json())
        signal_report = _ingest_signals(settings)
        console.print_json(signal_report.model_dump_json())

    console.print(f"Ingesting every {settings.interval_hours} hours. Press Ctrl+C to stop.")
    try:
        Scheduler(ingest_all, interval_hours=settings.interval_hours).run_forever(max_runs)
    except KeyboardInterrupt:
        console.print("Shutting down ingestion service.")


@app.command()
def status(config: Optional[str] = SETTINGS_OPTION):
    """Show API rotation state and record counts"""
    from earlyjob.db import JobStore

    settings = _settings(config)
    store = JobStore(settings.db_path)
    try:
        _print_status(store)
    finally:
        store.close()


def _print_status(store):
    table = Table(title="API Rotation")
    table.add_column("API")
    table.add_column("Status")
    table.add_column("Used")
    table.add_column("Last used")
    table.add_column("Errors")
    table.add_column("Last error")
    for state in store.list_rotation_states():
        table.add_row(
            state.api_name,
            state.status,
            f"{state.requests_used}/{state.monthly_limit}",
            state.last_used_at.isoformat() if state.last_used_at else "never",
            str(state.error_count),
            state.last_error or "",
        )
    console.print(table)

    counts = Table(title="Records")
    counts.add_column("Table")
    counts.add_column("Rows")
    for name in ("companies", "jobs", "hiring_signals", "alerts"):
        counts.add_row(name, str(store.count(name)))
    console.print(counts)


if __name__ == "__main__":
    app()
