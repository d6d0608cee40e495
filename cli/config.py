from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT = 10.0

_HOST_ENV = "STATION_WATCH_HOST"
_PORT_ENV = "STATION_WATCH_PORT"
_TIMEOUT_ENV = "STATION_WATCH_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    connect_timeout: float = DEFAULT_TIMEOUT


def _read_float(value: Optional[str], default: float) -> float:
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


def _read_port(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    candidate = value.strip()
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed <= 65535 else default


def load_config(
    host: Optional[str] = None,
    port: Optional[int] = None,
    connect_timeout: Optional[float] = None,
) -> CLIConfig:
    target_host = host or (os.getenv(_HOST_ENV) or "").strip() or DEFAULT_HOST
    if port is None:
        port = _read_port(os.getenv(_PORT_ENV), DEFAULT_PORT)
    if connect_timeout is None:
        connect_timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    return CLIConfig(
        host=target_host,
        port=port,
        connect_timeout=connect_timeout,
    )
