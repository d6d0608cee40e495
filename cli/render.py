from __future__ import annotations

from typing import Any, Iterable

import typer

from protocol.framing import Payload
from protocol.schemas import MeasurementBatch, SimplePayload


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_batch(batch: MeasurementBatch) -> None:
    echo_heading("Measurement Batch")
    echo_key_values(
        [
            ("version", batch.version),
            ("numberOfNodes", batch.number_of_nodes),
        ]
    )
    for measurement in batch.measurements:
        typer.echo(
            f"  - node {measurement.node_id}: "
            f"wind={measurement.wind_speed:.2f} temperature={measurement.temperature:.2f}"
        )


def render_simple(payload: SimplePayload) -> None:
    echo_heading("Sample")
    typer.echo(f"{payload.first} {payload.second}")


def render_payload(payload: Payload) -> None:
    if isinstance(payload, MeasurementBatch):
        render_batch(payload)
    else:
        render_simple(payload)
