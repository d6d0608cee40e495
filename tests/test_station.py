"""End-to-end tests against a live listener on the loopback interface."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, List

import pytest

import logging_config
import station.main as station_main
from protocol.framing import FrameDecoder, parse_body
from protocol.schemas import MeasurementBatch, SimplePayload
from services.generator import MeasurementGenerator
from settings import Settings
from station.connection import format_peer
from station.errors import BindError
from station.main import Station, create_station

HOST = "127.0.0.1"
SEED = 2


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


async def _read_frames(reader: asyncio.StreamReader, count: int, timeout: float = 2.0) -> List[str]:
    decoder = FrameDecoder()
    frames: List[str] = []

    async def collect() -> None:
        while len(frames) < count:
            chunk = await reader.read(4096)
            if not chunk:
                break
            frames.extend(decoder.feed(chunk))

    await asyncio.wait_for(collect(), timeout=timeout)
    return frames


def _run(scenario: Callable[[Station], Awaitable[None]], **kwargs) -> None:
    async def main() -> None:
        station = create_station(generator=MeasurementGenerator(rng=random.Random(SEED)), **kwargs)
        await station.start(HOST, 0)
        try:
            await scenario(station)
        finally:
            await station.shutdown()

    asyncio.run(main())


def _is_current(station: Station, writer: asyncio.StreamWriter) -> bool:
    current = station.manager.current
    return current is not None and current.peer == format_peer(writer.get_extra_info("sockname"))


def test_client_receives_periodic_frames() -> None:
    async def scenario(station: Station) -> None:
        host, port = station.manager.address
        reader, writer = await asyncio.open_connection(host, port)

        frames = await _read_frames(reader, 3)

        batches = [parse_body(body) for body in frames]
        assert len(batches) >= 3
        assert station.streamer.frames_sent >= len(batches)
        # A generator seeded the same way yields the ticks in emission order.
        replay = MeasurementGenerator(rng=random.Random(SEED))
        assert batches == [replay.tick() for _ in batches]
        for batch in batches:
            assert isinstance(batch, MeasurementBatch)
            assert batch.number_of_nodes == len(batch.measurements)
            assert [m.node_id for m in batch.measurements] == list(range(batch.number_of_nodes))
        for previous, current in zip(batches, batches[1:]):
            step = current.measurements[0].temperature - previous.measurements[0].temperature
            assert abs(step) < 1.0
        writer.close()
        await writer.wait_closed()

    _run(scenario, interval=0.05)


def test_simple_variant_over_the_wire() -> None:
    async def scenario(station: Station) -> None:
        reader, writer = await asyncio.open_connection(*station.manager.address)

        frames = await _read_frames(reader, 2)

        assert all(isinstance(parse_body(body), SimplePayload) for body in frames)
        writer.close()
        await writer.wait_closed()

    _run(scenario, interval=0.05, variant="simple")


def test_echo_reply() -> None:
    async def scenario(station: Station) -> None:
        reader, writer = await asyncio.open_connection(*station.manager.address)
        writer.write(b"ping")
        await writer.drain()

        received = b""
        while b'You said "ping"' not in received:
            chunk = await asyncio.wait_for(reader.read(4096), timeout=2.0)
            assert chunk
            received += chunk

        writer.close()
        await writer.wait_closed()

    # A long interval keeps periodic frames out of the way.
    _run(scenario, interval=60)


def test_second_client_takes_over_emission() -> None:
    async def scenario(station: Station) -> None:
        address = station.manager.address
        first_reader, first_writer = await asyncio.open_connection(*address)
        await _wait_for(lambda: _is_current(station, first_writer))

        station.streamer.emit(station.manager.current_connection())
        assert len(await _read_frames(first_reader, 1)) == 1

        second_reader, second_writer = await asyncio.open_connection(*address)
        await _wait_for(lambda: _is_current(station, second_writer))

        station.streamer.emit(station.manager.current_connection())
        station.streamer.emit(station.manager.current_connection())
        assert len(await _read_frames(second_reader, 2)) == 2

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(first_reader.read(4096), timeout=0.2)
        assert not first_writer.is_closing()

        for writer in (first_writer, second_writer):
            writer.close()
            await writer.wait_closed()

    _run(scenario, interval=60)


def test_disconnect_keeps_station_running() -> None:
    async def scenario(station: Station) -> None:
        reader, writer = await asyncio.open_connection(*station.manager.address)
        await _wait_for(lambda: station.manager.state == "connected")

        writer.close()
        await writer.wait_closed()
        await _wait_for(lambda: station.manager.state == "idle")

        assert station.manager.current is not None
        assert station.streamer.emit(station.manager.current_connection()) is False
        ticks = station.streamer.ticks
        await _wait_for(lambda: station.streamer.ticks >= ticks + 2)
        assert station.streamer.running

    _run(scenario, interval=0.02)


def test_bind_failure_raises_bind_error() -> None:
    async def scenario(station: Station) -> None:
        _, port = station.manager.address
        other = create_station()
        with pytest.raises(BindError) as excinfo:
            await other.start(HOST, port)
        assert excinfo.value.port == port

    _run(scenario, interval=60)


def test_echo_replies_stay_intact_between_periodic_frames() -> None:
    async def scenario(station: Station) -> None:
        reader, writer = await asyncio.open_connection(*station.manager.address)
        received = b""

        for index in range(5):
            message = f"ping{index}".encode()
            writer.write(message)
            await writer.drain()
            expected = b'You said "' + message + b'"'
            while expected not in received:
                chunk = await asyncio.wait_for(reader.read(4096), timeout=2.0)
                assert chunk
                received += chunk

        while len(FrameDecoder().feed(received)) < 3:
            chunk = await asyncio.wait_for(reader.read(4096), timeout=2.0)
            assert chunk
            received += chunk

        frames = FrameDecoder().feed(received)
        for body in frames:
            assert isinstance(parse_body(body), MeasurementBatch)
        assert station.streamer.frames_sent >= len(frames)

        writer.close()
        await writer.wait_closed()

    _run(scenario, interval=0.01)


def test_run_station_serves_until_cancelled(monkeypatch) -> None:
    created: List[Station] = []
    build = station_main.create_station

    def capture_station(*args, **kwargs) -> Station:
        station = build(*args, **kwargs)
        created.append(station)
        return station

    monkeypatch.setattr(station_main, "create_station", capture_station)
    monkeypatch.setattr(logging_config, "_configured", False)
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level

    settings = Settings(
        host=HOST, port=0, interval=0.01, variant="structured", log_level="WARNING"
    )

    async def scenario() -> Station:
        task = asyncio.get_running_loop().create_task(station_main.run_station(settings))
        await _wait_for(lambda: bool(created) and created[0].manager._server is not None)
        station = created[0]

        reader, writer = await asyncio.open_connection(*station.manager.address)
        frames = await _read_frames(reader, 1)
        assert isinstance(parse_body(frames[0]), MeasurementBatch)
        assert not task.done()
        assert root.level == logging.WARNING

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not station.streamer.running
        with pytest.raises(RuntimeError):
            station.manager.address
        with pytest.raises(OSError):
            await asyncio.open_connection(HOST, writer.get_extra_info("peername")[1])

        writer.close()
        return station

    try:
        asyncio.run(scenario())
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
