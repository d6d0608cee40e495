"""Exceptions raised by the station transport layer."""

from __future__ import annotations


class StationError(Exception):
    """Base class for station failures."""


class BindError(StationError):
    """The listener could not bind its address."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"Could not listen on {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class WriteAfterCloseError(StationError):
    """A write targeted a connection that is already closed."""

    def __init__(self, peer: str, reason: str = "connection is closed") -> None:
        super().__init__(f"Write to {peer} failed: {reason}")
        self.peer = peer
        self.reason = reason
