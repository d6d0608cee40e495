from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Optional

import typer

from cli.client import StationClient
from cli.config import load_config
from cli.render import render_payload
from protocol.framing import FrameError, Payload
from protocol.schemas import Variant
from settings import get_settings
from station.errors import BindError
from station.main import run_station

app = typer.Typer(
    help="Simulated weather station that streams framed measurements over TCP.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main() -> None:
    """Entry point for the CLI."""


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(
        None,
        "--host",
        help="Listen address (defaults to STATION_HOST env or 0.0.0.0).",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Listen port (defaults to STATION_PORT env or 3000).",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between emitted frames.",
    ),
    variant: Optional[Variant] = typer.Option(
        None,
        "--variant",
        help="Payload shape to emit.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Run the station until interrupted."""
    settings = get_settings()
    overrides = {
        "host": host,
        "port": port,
        "interval": interval,
        "variant": variant.value if variant is not None else None,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = replace(settings, **{key: value for key, value in overrides.items() if value is not None})
    if settings.interval <= 0:
        raise typer.BadParameter("Interval must be positive.", param_hint="--interval")

    try:
        asyncio.run(run_station(settings))
    except BindError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        typer.echo("Station stopped.")


@app.command("watch")
def watch_command(
    host: Optional[str] = typer.Option(
        None,
        "--host",
        help="Station address (defaults to STATION_WATCH_HOST env or 127.0.0.1).",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Station port (defaults to STATION_WATCH_PORT env or 3000).",
    ),
    count: Optional[int] = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Stop after this many frames.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the connection.",
    ),
) -> None:
    """Connect to a station and print every decoded frame."""
    config = load_config(host=host, port=port, connect_timeout=timeout)
    client = StationClient(config)
    typer.echo(f"Watching {config.host}:{config.port} ...")

    def on_error(body: str, exc: FrameError) -> None:
        typer.secho(f"Skipping malformed frame {body!r}: {exc}", fg=typer.colors.YELLOW, err=True)

    def on_payload(payload: Payload) -> None:
        render_payload(payload)
        typer.echo()

    try:
        received = asyncio.run(client.watch(on_payload, on_error, count=count))
    except KeyboardInterrupt:
        return
    typer.secho(f"Received {received} frame(s).", fg=typer.colors.GREEN)
