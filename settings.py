from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_HOST_ENV = "STATION_HOST"
_PORT_ENV = "STATION_PORT"
_INTERVAL_ENV = "STATION_INTERVAL"
_VARIANT_ENV = "STATION_VARIANT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

VARIANTS = ("structured", "simple")


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    interval: float
    variant: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 <= parsed <= 65535 else default


def _read_interval(default: float) -> float:
    value = os.getenv(_INTERVAL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_variant(default: str) -> str:
    candidate = _read_str_env(_VARIANT_ENV, default).lower()
    return candidate if candidate in VARIANTS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_port(3000),
        interval=_read_interval(1.0),
        variant=_read_variant("structured"),
        log_level=_read_log_level("INFO"),
    )
