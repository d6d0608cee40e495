"""Periodic emission of generated measurements to the current connection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from protocol.framing import encode_payload
from protocol.schemas import Variant
from services.generator import MeasurementGenerator
from station.connection import Connection
from station.errors import WriteAfterCloseError

logger = logging.getLogger(__name__)

ConnectionTarget = Callable[[], Optional[Connection]]


@dataclass
class StreamerHandle:
    """The running emission task and the means to cancel it."""

    task: asyncio.Task[None]

    @property
    def running(self) -> bool:
        return not self.task.done()

    async def cancel(self) -> None:
        """Cancel the emission task and wait for it to finish.

        A cancellation aimed at the caller while it waits still propagates.
        """
        self.task.cancel()
        await asyncio.wait({self.task})
        if not self.task.cancelled() and self.task.exception() is not None:
            raise self.task.exception()


class MeasurementStreamer:
    """Drives the generator on a fixed interval and writes framed payloads.

    The loop sleeps, emits, then sleeps again, so the spacing between frames
    is the interval plus however long the write took. The connection is
    looked up through ``target`` on every fire; whichever connection is
    current at that moment receives the frame.
    """

    def __init__(
        self,
        generator: MeasurementGenerator,
        interval: float = 1.0,
        variant: Variant | str = Variant.structured,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive.")
        self.generator = generator
        self.interval = interval
        self.variant = Variant(variant)
        self.ticks = 0
        self.frames_sent = 0
        self._handle: Optional[StreamerHandle] = None

    @property
    def handle(self) -> Optional[StreamerHandle]:
        return self._handle

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.running

    def start(self, target: ConnectionTarget) -> StreamerHandle:
        if self._handle is not None and self._handle.running:
            return self._handle

        task = asyncio.get_running_loop().create_task(
            self._run(target), name="measurement-streamer"
        )
        self._handle = StreamerHandle(task=task)
        logger.info(
            "Measurement streamer started",
            extra={
                "variant": self.variant.value,
                "interval": self.interval,
                "node_count": self.generator.node_count,
            },
        )
        return self._handle

    async def stop(self) -> None:
        handle = self._handle
        if handle is None:
            return
        await handle.cancel()
        logger.info("Measurement streamer stopped", extra={"tick": self.ticks})

    def build_frame(self) -> bytes:
        if self.variant is Variant.simple:
            return encode_payload(self.generator.simple_sample())
        return encode_payload(self.generator.tick())

    def emit(self, connection: Optional[Connection]) -> bool:
        """Run one tick and write its frame; return whether it was sent."""
        self.ticks += 1
        frame = self.build_frame()

        if connection is None:
            logger.debug("No connection attached, dropping frame", extra={"tick": self.ticks})
            return False

        try:
            connection.send(frame)
        except WriteAfterCloseError as exc:
            logger.warning(
                "Dropping frame for closed connection",
                extra={"peer": exc.peer, "tick": self.ticks, "reason": exc.reason},
            )
            return False

        self.frames_sent += 1
        logger.debug(
            "Frame sent",
            extra={"peer": connection.peer, "tick": self.ticks, "payload_bytes": len(frame)},
        )
        return True

    async def _run(self, target: ConnectionTarget) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.emit(target())
