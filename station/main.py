from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from logging_config import configure_logging
from protocol.schemas import Variant
from services.generator import MeasurementGenerator
from services.streamer import MeasurementStreamer
from settings import Settings, get_settings
from station.manager import ConnectionManager

logger = logging.getLogger(__name__)


@dataclass
class Station:
    generator: MeasurementGenerator
    streamer: MeasurementStreamer
    manager: ConnectionManager

    async def start(self, host: str, port: int) -> None:
        await self.manager.start(host, port)

    async def shutdown(self) -> None:
        await self.streamer.stop()
        await self.manager.close()


def create_station(
    interval: Optional[float] = None,
    variant: Optional[str] = None,
    generator: Optional[MeasurementGenerator] = None,
) -> Station:
    """Wire the generator, streamer and connection manager together."""
    settings = get_settings()
    generator = generator or MeasurementGenerator()
    streamer = MeasurementStreamer(
        generator,
        interval=interval if interval is not None else settings.interval,
        variant=Variant(variant or settings.variant),
    )
    manager = ConnectionManager(streamer)
    return Station(generator=generator, streamer=streamer, manager=manager)


async def run_station(settings: Settings) -> None:
    """Bind the listener and serve until cancelled."""
    configure_logging(settings.log_level, force=True)
    station = create_station(interval=settings.interval, variant=settings.variant)
    await station.start(settings.host, settings.port)
    try:
        await station.manager.serve_forever()
    finally:
        logger.info("Shutting down station")
        await station.shutdown()
