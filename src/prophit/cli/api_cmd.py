"""API server command."""

import typer

from prophit.api.main import run_api

app = typer.Typer(help="Start the read API with the poller in-process")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (default: [api] host)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default: [api] port)"),
    polling: bool = typer.Option(True, "--polling/--no-polling", help="Run the market poller in the same process"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    run_api(
        host=host or settings.api_host,
        port=port or settings.api_port,
        profile=ctx.obj["profile"],
        config_dir=ctx.obj["config_dir"],
        polling=polling,
    )
