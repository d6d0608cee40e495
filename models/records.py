"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Node:
    """A simulated sensor and its current state."""

    node_id: int
    temperature: float
    wind_speed: float = 0.0
