"""Markets subcommand: list, movements, history, stats."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from prophit.storage import open_storage

app = typer.Typer(help="Inspect stored markets, movements and price history")


def _fmt_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    category: str | None = typer.Option(None, "--category", "-c", help="Only this category"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max markets to show"),
) -> None:
    """List active markets, most recently updated first."""
    storage = open_storage(ctx.obj["settings"])
    try:
        rows = storage.list_markets(category=category, limit=limit)
        for m in rows:
            prices = " / ".join(f"{o.name} {o.price:.2f}" for o in m.outcomes)
            typer.echo(f"  {m.market_id[:20]:<20}  {m.category:<14}  {m.question[:60]}  [{prices}]")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        storage.close()


@app.command("movements")
def movements(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-n", help="Max movements to show"),
    hours: int = typer.Option(24, "--hours", help="Look back this many hours"),
) -> None:
    """Show recent movements, newest first."""
    storage = open_storage(ctx.obj["settings"])
    try:
        rows = storage.list_movements(hours=hours, limit=limit)
        for mv in rows:
            market = storage.get_market(mv.market_id)
            question = market.question[:50] if market else mv.market_id
            typer.echo(
                f"  {_fmt_ts(mv.detected_at)}  {mv.change_percent:+7.2f}%  "
                f"{mv.old_price:.3f} -> {mv.new_price:.3f}  {mv.outcome:<10}  {question}"
            )
        typer.echo(f"Total: {len(rows)} movements in the last {hours}h")
    finally:
        storage.close()


@app.command("history")
def history(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    hours: int = typer.Option(24, "--hours", help="Look back this many hours"),
    outcome: str | None = typer.Option(None, "--outcome", "-o", help="Only this outcome"),
) -> None:
    """Print the recorded price samples of one market."""
    storage = open_storage(ctx.obj["settings"])
    try:
        entries = storage.query_price_history(market_id, hours, outcome=outcome)
        if not entries:
            typer.echo(f"No price history for {market_id} in the last {hours}h")
            raise typer.Exit(1)
        for e in entries:
            typer.echo(f"  {_fmt_ts(e.timestamp)}  {e.outcome:<16}  {e.price:.4f}")
        typer.echo(f"Total: {len(entries)} samples")
    finally:
        storage.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show storage counts."""
    storage = open_storage(ctx.obj["settings"])
    try:
        s = storage.stats()
        typer.echo(f"Storage: {s['storage']}")
        typer.echo(f"Markets: {s['markets']}")
        typer.echo(f"Price history entries: {s['price_history']}")
        typer.echo(f"Movements: {s['movements']} ({s['recent_movements']} in the last 24h)")
    finally:
        storage.close()
