"""
Operational command line for the flight snapshot cache.

Commands:
    run          ingestion loop until interrupted
    ingest       a single ingestion tick
    search       resolve a filtered query
    get / set    raw document access
    keys         list keys by glob pattern
    purge-stale  drop query cache entries from earlier versions
"""

import asyncio
import json
import signal
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from .app import open_services
from .models.query import FlightQuery
from .utils.config import load_config, configure_logging

app = typer.Typer(help="Versioned flight snapshot cache")
console = Console()


def _config():
    config = load_config()
    configure_logging(config.log_level)
    return config


@app.command()
def run():
    """Run the ingestion loop: one tick now, then one per interval."""
    config = _config()

    async def _run():
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                pass
        async with open_services(config) as services:
            await services.job.run(stop)

    asyncio.run(_run())


@app.command()
def ingest():
    """Fetch and publish once."""
    config = _config()

    async def _ingest():
        async with open_services(config) as services:
            return await services.job.run_once()

    result = asyncio.run(_ingest())
    status = "[green]ok[/green]" if result.ok else f"[yellow]failed: {', '.join(result.failed_steps)}[/yellow]"
    console.print(f"Version [bold]{result.version}[/bold], {result.record_count} records, {status}")
    console.print(f"  snapshot: [cyan]{result.snapshot_key}[/cyan]")


@app.command()
def search(
    airline: Optional[str] = typer.Option(None, "--airline", "-a", help="Airline IATA code"),
    airport: Optional[str] = typer.Option(None, "--airport", "-p", help="Airport IATA code (either endpoint)"),
    raw: bool = typer.Option(False, "--raw", help="Print the JSON payload"),
):
    """Search the current dataset (airline OR airport)."""
    config = _config()
    try:
        query = FlightQuery(airline_iata=airline, airport_iata=airport)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    async def _search():
        async with open_services(config) as services:
            return await services.resolver.resolve(query)

    result = asyncio.run(_search())
    if result is None:
        console.print("[red]No dataset published[/red]")
        raise typer.Exit(1)

    if raw:
        console.print_json(result.payload)
        return

    records = result.records
    table = Table(title=f"{len(records)} flights (version {result.version})", box=box.SIMPLE)
    for column in ("Date", "Flight", "Airline", "From", "To", "Status"):
        table.add_column(column)
    for record in records:
        table.add_row(
            record.get("flight_date") or "",
            (record.get("flight") or {}).get("iata") or "",
            (record.get("airline") or {}).get("iata") or "",
            (record.get("departure") or {}).get("iata") or "",
            (record.get("arrival") or {}).get("iata") or "",
            record.get("flight_status") or "",
        )
    console.print(table)
    console.print(f"[dim]cache key: {result.cache_key}[/dim]")


@app.command()
def get(key: str):
    """Print the JSON document stored at KEY."""
    config = _config()

    async def _get():
        async with open_services(config) as services:
            return await services.inspector.get(key)

    value = asyncio.run(_get())
    if value is None:
        console.print(f"[red]Key '{key}' not found[/red]")
        raise typer.Exit(1)
    console.print_json(json.dumps(value))


@app.command("set")
def set_key(key: str, value: str = typer.Argument(..., help="JSON document")):
    """Store a JSON document at KEY."""
    config = _config()
    try:
        document = json.loads(value)
    except ValueError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        raise typer.Exit(2)

    async def _set():
        async with open_services(config) as services:
            return await services.inspector.set(key, document)

    asyncio.run(_set())
    console.print(f"Saved [cyan]{key}[/cyan]")


@app.command()
def keys(pattern: Optional[str] = typer.Argument(None, help="Glob pattern, defaults to '<prefix>:*'")):
    """List keys matching PATTERN."""
    config = _config()

    async def _keys():
        async with open_services(config) as services:
            return await services.inspector.list_keys(pattern)

    for key in asyncio.run(_keys()):
        console.print(key)


@app.command("purge-stale")
def purge_stale():
    """Delete cached query results from earlier dataset versions."""
    config = _config()

    async def _purge():
        async with open_services(config) as services:
            return await services.resolver.purge_stale()

    console.print(f"Purged {asyncio.run(_purge())} stale query entries")
