"""Random-walk measurement generation for the simulated nodes."""

from __future__ import annotations

import random
from typing import List, Optional, Tuple

from models.records import Node
from protocol.schemas import PROTOCOL_VERSION, MeasurementBatch, NodeMeasurement, SimplePayload

DEFAULT_NODE_COUNT = 2
SAMPLE_MIN = 1
SAMPLE_MAX = 30
DERIVED_NODE_OFFSET = 2.0


class MeasurementGenerator:
    """Owns node state and advances it one tick at a time.

    Node 0 performs an unbounded random walk on temperature, stepping by a
    magnitude in ``[0, 1)`` with a random sign. Every other node mirrors node
    0's fresh values shifted by a fixed offset rather than being simulated on
    its own.
    """

    def __init__(
        self,
        node_count: int = DEFAULT_NODE_COUNT,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self.nodes: List[Node] = []
        self.initialize(node_count)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    def initialize(self, node_count: int) -> None:
        if node_count < 1:
            raise ValueError("node_count must be at least 1.")
        self.nodes = [
            Node(node_id=node_id, temperature=self._rng.uniform(SAMPLE_MIN, SAMPLE_MAX))
            for node_id in range(node_count)
        ]

    def tick(self) -> MeasurementBatch:
        lead = self.nodes[0]
        sign = 1 if self._rng.random() < 0.5 else -1
        lead.temperature += sign * self._rng.random()
        lead.wind_speed = float(self._rng.randint(SAMPLE_MIN, SAMPLE_MAX))

        for node in self.nodes[1:]:
            node.wind_speed = lead.wind_speed + DERIVED_NODE_OFFSET
            node.temperature = lead.temperature + DERIVED_NODE_OFFSET

        return MeasurementBatch(
            version=PROTOCOL_VERSION,
            number_of_nodes=len(self.nodes),
            measurements=[
                NodeMeasurement(
                    wind_speed=node.wind_speed,
                    temperature=node.temperature,
                    node_id=node.node_id,
                )
                for node in self.nodes
            ],
        )

    def simple_sample(self) -> SimplePayload:
        first, second = self._draw_pair()
        return SimplePayload(first=first, second=second)

    def _draw_pair(self) -> Tuple[int, int]:
        return (
            self._rng.randint(SAMPLE_MIN, SAMPLE_MAX),
            self._rng.randint(SAMPLE_MIN, SAMPLE_MAX),
        )
