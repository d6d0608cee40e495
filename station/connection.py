from __future__ import annotations

import asyncio
from typing import Any

from station.errors import WriteAfterCloseError

READ_CHUNK_SIZE = 4096


def format_peer(peername: Any) -> str:
    if isinstance(peername, (tuple, list)) and len(peername) >= 2:
        return f"{peername[0]}:{peername[1]}"
    return str(peername or "unknown")


class Connection:
    """One accepted client stream."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self.peer = format_peer(writer.get_extra_info("peername"))

    @property
    def closed(self) -> bool:
        return self._writer.is_closing()

    def send(self, data: bytes) -> None:
        """Queue ``data`` on the transport without waiting for it to flush."""
        if self.closed:
            raise WriteAfterCloseError(self.peer)
        try:
            self._writer.write(data)
        except (ConnectionError, RuntimeError) as exc:
            raise WriteAfterCloseError(self.peer, str(exc)) from exc

    async def read(self) -> bytes:
        return await self._reader.read(READ_CHUNK_SIZE)

    async def close(self) -> None:
        if not self._writer.is_closing():
            self._writer.close()
        try:
            await self._writer.wait_closed()
        except ConnectionError:
            pass

    def __repr__(self) -> str:
        return f"Connection(peer={self.peer!r}, closed={self.closed})"
