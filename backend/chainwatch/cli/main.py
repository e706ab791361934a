"""
Chainwatch - CLI Application
"""
import asyncio
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chainwatch.config import settings
from chainwatch.core.enums import Instrument
from chainwatch.integrations.nse_fetcher import Fetcher
from chainwatch.integrations.nse_session import SessionManager
from chainwatch.integrations.session_store import SessionStore
from chainwatch.logger import logger
from chainwatch.models.chain import Snapshot
from chainwatch.services.reducer import DataReducer

# Create Typer app
app = typer.Typer(
    name="chainwatch",
    help="NSE option chain harvesting service",
    add_completion=False,
)

console = Console()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit")
):
    """
    Chainwatch CLI
    """
    if version:
        console.print(f"[cyan]{settings.APP_NAME}[/cyan] v{settings.APP_VERSION}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(Panel.fit(
            f"[bold cyan]{settings.APP_NAME}[/bold cyan]\n"
            f"[dim]Version {settings.APP_VERSION}[/dim]\n\n"
            f"[yellow]Use --help to see available commands[/yellow]",
            box=box.ROUNDED,
            border_style="cyan"
        ))


@app.command()
def server(
    host: str = typer.Option(settings.API.host, "--host", "-h", help="Server host"),
    port: int = typer.Option(settings.API.port, "--port", "-p", help="Server port"),
):
    """
    Start the API server and the collection scheduler
    """
    import uvicorn

    console.print(f"[green]Starting server at http://{host}:{port}[/green]")
    console.print(f"[dim]API docs: http://{host}:{port}/docs[/dim]\n")
    logger.info(f"Starting server via CLI at {host}:{port}")

    uvicorn.run("chainwatch.main:app", host=host, port=port, log_level="info")


@app.command()
def status():
    """
    Show effective configuration
    """
    table = Table(title="Configuration", box=box.ROUNDED)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Application", settings.APP_NAME)
    table.add_row("Version", settings.APP_VERSION)
    table.add_row("Upstream", settings.UPSTREAM.base_url)
    table.add_row("Instruments", ", ".join(settings.HARVEST.instruments))
    table.add_row("Refresh interval", f"{settings.SCHEDULE.refresh_interval_seconds:.0f}s")
    table.add_row("Session renewal", f"{settings.SCHEDULE.renewal_interval_seconds:.0f}s")
    table.add_row(
        "Trading window",
        f"{settings.SCHEDULE.window_start} - {settings.SCHEDULE.window_end} ({settings.SCHEDULE.timezone})",
    )
    table.add_row("Session file", settings.SESSION.store_path)
    table.add_row("Log level", settings.LOGGER.default_level)

    console.print(table)


@app.command()
def snapshot(symbol: str = typer.Argument(..., help="Instrument symbol, e.g. NIFTY")):
    """
    Acquire a session, fetch one option chain and print the reduced snapshot
    """
    try:
        instrument = Instrument.parse(symbol)
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=2)

    result = asyncio.run(_fetch_snapshot(instrument))
    if result is None:
        console.print(f"[red]✗[/red] No data for {instrument.value}")
        raise typer.Exit(code=1)

    table = Table(title=f"{instrument.value} @ {result.timestamp}", box=box.ROUNDED)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for field, value in result.model_dump(exclude={"instrument", "timestamp"}).items():
        table.add_row(field, "-" if value is None else f"{value:,}")
    console.print(table)


async def _fetch_snapshot(instrument: Instrument) -> Optional[Snapshot]:
    session = SessionManager(
        settings.UPSTREAM,
        settings.SESSION,
        store=SessionStore(settings.SESSION.store_path),
    )
    fetcher = Fetcher(
        session,
        settings.UPSTREAM,
        attempts=settings.HARVEST.fetch_attempts,
        backoff_unit_seconds=settings.HARVEST.backoff_unit_seconds,
    )
    try:
        session.restore()
        with console.status(f"Fetching {instrument.value} option chain..."):
            raw = await fetcher.fetch(instrument)
        return DataReducer(settings.HARVEST.strikes_per_side).reduce(raw, instrument)
    finally:
        await session.aclose()


if __name__ == "__main__":
    app()
