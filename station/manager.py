"""Accepts client connections and retargets the measurement stream."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from protocol.framing import encode_echo
from services.streamer import MeasurementStreamer
from station.connection import Connection
from station.errors import BindError, WriteAfterCloseError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the listener and the single current connection.

    Every accepted connection becomes the emission target, replacing the
    previous one without closing it. Replaced connections keep their echo
    handler until the peer hangs up.
    """

    def __init__(self, streamer: MeasurementStreamer) -> None:
        self.streamer = streamer
        self.current: Optional[Connection] = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._readers: set[asyncio.Task[None]] = set()
        self._closed = asyncio.Event()

    @property
    def address(self) -> tuple[str, int]:
        if self._server is None or not self._server.sockets:
            raise RuntimeError("Connection manager is not listening.")
        host, port = self._server.sockets[0].getsockname()[:2]
        return host, port

    @property
    def state(self) -> str:
        if self.current is None or self.current.closed:
            return "idle"
        return "connected"

    def current_connection(self) -> Optional[Connection]:
        return self.current

    async def start(self, host: str, port: int) -> None:
        try:
            self._server = await asyncio.start_server(self._handle_client, host, port)
        except OSError as exc:
            raise BindError(host, port, exc.strerror or str(exc)) from exc
        bound_host, bound_port = self.address
        logger.info("Server listening on %s:%s", bound_host, bound_port)

    async def serve_forever(self) -> None:
        """Block until close() is called; the listener is already accepting."""
        if self._server is None:
            raise RuntimeError("Call start() before serve_forever().")
        await self._closed.wait()

    async def close(self) -> None:
        self._closed.set()
        if self._server is not None:
            self._server.close()
        for task in list(self._readers):
            task.cancel()
        if self._readers:
            await asyncio.gather(*self._readers, return_exceptions=True)
        if self.current is not None:
            await self.current.close()
            self.current = None
        if self._server is not None:
            await self._server.wait_closed()
            self._server = None

    def attach(self, connection: Connection) -> None:
        self.current = connection
        logger.info("Connected", extra={"peer": connection.peer})
        if not self.streamer.running:
            self.streamer.start(self.current_connection)

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        connection = Connection(reader, writer)
        self.attach(connection)
        task = asyncio.current_task()
        if task is not None:
            self._readers.add(task)
        try:
            await self._echo_until_closed(connection)
        finally:
            if task is not None:
                self._readers.discard(task)
            await self._release(connection)

    async def _echo_until_closed(self, connection: Connection) -> None:
        while True:
            try:
                data = await connection.read()
            except ConnectionError as exc:
                logger.info("Connection reset", extra={"peer": connection.peer, "reason": str(exc)})
                return
            if not data:
                return

            logger.info(
                "Data received: %s",
                data.decode("utf-8", errors="backslashreplace"),
                extra={"peer": connection.peer, "payload_bytes": len(data)},
            )
            try:
                connection.send(encode_echo(data))
            except WriteAfterCloseError as exc:
                logger.warning(
                    "Dropping echo for closed connection",
                    extra={"peer": exc.peer, "reason": exc.reason},
                )

    async def _release(self, connection: Connection) -> None:
        # The closed connection stays current until the next accept replaces it.
        logger.info("Connection closed", extra={"peer": connection.peer})
        await connection.close()
