"""Pydantic schemas for the station wire protocol."""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

PROTOCOL_VERSION = 2


class Variant(str, Enum):
    """Payload shapes the station can emit."""

    structured = "structured"
    simple = "simple"


class NodeMeasurement(BaseModel):
    """One node's reading inside a batch."""

    model_config = ConfigDict(populate_by_name=True)

    wind_speed: float = Field(..., alias="windSpeed")
    temperature: float
    node_id: int = Field(..., alias="nodeId", ge=0)


class MeasurementBatch(BaseModel):
    """Snapshot of every node's reading for a single tick."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = PROTOCOL_VERSION
    number_of_nodes: int = Field(..., alias="numberOfNodes", ge=0)
    measurements: List[NodeMeasurement] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_node_count(self) -> "MeasurementBatch":
        if self.number_of_nodes != len(self.measurements):
            raise ValueError(
                f"numberOfNodes is {self.number_of_nodes} but "
                f"{len(self.measurements)} measurements were supplied"
            )
        return self

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)


class SimplePayload(BaseModel):
    """Two unlabelled samples carried by the simple variant."""

    first: int = Field(..., ge=1, le=30)
    second: int = Field(..., ge=1, le=30)

    def to_wire(self) -> str:
        return f"{self.first} {self.second}"
