from __future__ import annotations

import asyncio
from typing import Callable, Optional

import typer

from cli.config import CLIConfig
from protocol.framing import FrameDecoder, FrameError, Payload, parse_body

READ_CHUNK_SIZE = 4096


class StationClient:
    """Minimal TCP client that decodes the station's frame stream."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._decoder = FrameDecoder()

    async def watch(
        self,
        on_payload: Callable[[Payload], None],
        on_error: Callable[[str, FrameError], None],
        count: Optional[int] = None,
    ) -> int:
        """Read frames until the station hangs up or ``count`` payloads arrive."""
        reader, writer = await self._connect()
        received = 0
        try:
            while count is None or received < count:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                for body in self._decoder.feed(chunk):
                    try:
                        payload = parse_body(body)
                    except FrameError as exc:
                        on_error(body, exc)
                        continue
                    on_payload(payload)
                    received += 1
                    if count is not None and received >= count:
                        break
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass
        return received

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        host, port = self._config.host, self._config.port
        try:
            return await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self._config.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            typer.secho(
                f"Could not connect to station at {host}:{port}: {exc or 'timed out'}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
