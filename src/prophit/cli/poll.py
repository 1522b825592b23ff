"""Poll subcommand: once, start."""

from __future__ import annotations

import asyncio
import signal
import sys

import typer

from prophit.services import build_services

app = typer.Typer(help="Fetch markets, record prices and detect movements")


@app.command("once")
def once(
    ctx: typer.Context,
    limit: int | None = typer.Option(None, "--limit", "-n", help="Max markets to fetch (overrides config)"),
) -> None:
    """Run a single poll cycle and print what it did."""
    settings = ctx.obj["settings"]
    services = build_services(settings)

    async def _run():
        try:
            return await services.manager.process_markets(limit or settings.market_limit)
        finally:
            await services.aclose()

    result = asyncio.run(_run())
    typer.echo(f"Source: {result.source}")
    typer.echo(f"Markets processed: {result.markets}")
    typer.echo(f"Movements detected: {result.movements}")


@app.command("start")
def start(ctx: typer.Context) -> None:
    """Poll on the configured interval in the foreground until Ctrl+C."""
    settings = ctx.obj["settings"]
    services = build_services(settings)
    stop_event = asyncio.Event()

    def shutdown() -> None:
        stop_event.set()

    async def _run() -> None:
        services.scheduler.start()
        try:
            await stop_event.wait()
        finally:
            await services.aclose()

    loop = asyncio.new_event_loop()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown)
        loop.add_signal_handler(signal.SIGTERM, shutdown)
    try:
        typer.echo(
            f"Polling every {settings.poll_interval_minutes:g} min "
            f"({services.storage.kind} storage, Ctrl+C to stop)..."
        )
        loop.run_until_complete(_run())
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()
    typer.echo("Stopped.")
