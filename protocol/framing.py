"""Frame encoding and incremental decoding for the station stream."""

from __future__ import annotations

from typing import List, Union

from pydantic import ValidationError

from protocol.schemas import MeasurementBatch, SimplePayload

FRAME_START = b"start_"
FRAME_END = b"_end"

Payload = Union[MeasurementBatch, SimplePayload]


class FrameError(ValueError):
    """Raised when a frame body matches neither payload grammar."""


def encode_frame(body: str) -> bytes:
    return FRAME_START + body.encode("utf-8") + FRAME_END


def encode_payload(payload: Payload) -> bytes:
    return encode_frame(payload.to_wire())


def encode_echo(data: bytes) -> bytes:
    """Build the verbatim echo reply; it carries no framing."""
    return b'You said "' + data + b'"'


def parse_body(body: str) -> Payload:
    candidate = body.strip()
    if not candidate:
        raise FrameError("Frame body is empty.")

    if candidate.startswith("{"):
        try:
            return MeasurementBatch.model_validate_json(candidate)
        except ValidationError as exc:
            raise FrameError(f"Invalid measurement batch: {exc}") from exc

    parts = candidate.split()
    if len(parts) != 2:
        raise FrameError(f"Expected two samples, got {len(parts)}.")
    try:
        first, second = (int(part) for part in parts)
    except ValueError as exc:
        raise FrameError(f"Samples must be integers: {candidate!r}") from exc
    try:
        return SimplePayload(first=first, second=second)
    except ValidationError as exc:
        raise FrameError(f"Samples out of range: {candidate!r}") from exc


class FrameDecoder:
    """Reassembles ``start_<body>_end`` frames from arbitrarily chunked bytes.

    Bytes outside a frame (echo replies, for instance) are discarded. A frame
    split across chunks stays buffered until its end sentinel arrives.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, data: bytes) -> List[str]:
        self._buffer.extend(data)
        frames: List[str] = []

        while True:
            start = self._buffer.find(FRAME_START)
            if start == -1:
                # Keep a tail that may be the beginning of a split sentinel.
                keep = len(FRAME_START) - 1
                if len(self._buffer) > keep:
                    del self._buffer[: len(self._buffer) - keep]
                break

            if start:
                del self._buffer[:start]

            end = self._buffer.find(FRAME_END, len(FRAME_START))
            if end == -1:
                break

            # A stray start sentinel inside noise must not swallow the real frame.
            body_start = self._buffer.rfind(FRAME_START, 0, end)
            body = bytes(self._buffer[body_start + len(FRAME_START) : end])
            del self._buffer[: end + len(FRAME_END)]
            frames.append(body.decode("utf-8", errors="replace"))

        return frames
