"""Send and receive frames over a pair of asyncio streams."""

from __future__ import annotations

import asyncio

from .errors import MiniRedisError
from .frame import (
    Array,
    Bulk,
    ErrorFrame,
    Frame,
    Incomplete,
    Integer,
    Null,
    Simple,
    check,
    parse,
)

__all__ = ["Connection", "ConnectionResetError_", "encode"]

_READ_SIZE = 4 * 1024
_CRLF = b"\r\n"


class ConnectionResetError_(MiniRedisError):
    """The peer closed the connection in the middle of a frame."""

    def __init__(self, message: str = "connection reset by peer") -> None:
        super().__init__(message)


def _decimal(value: int) -> bytes:
    return str(value).encode("ascii") + _CRLF


def _encode_value(frame: Frame) -> bytes:
    if isinstance(frame, Simple):
        return b"+" + frame.value.encode("utf-8") + _CRLF
    if isinstance(frame, ErrorFrame):
        return b"-" + frame.value.encode("utf-8") + _CRLF
    if isinstance(frame, Integer):
        return b":" + _decimal(frame.value)
    if isinstance(frame, Null):
        return b"$-1\r\n"
    if isinstance(frame, Bulk):
        return b"$" + _decimal(len(frame.value)) + frame.value + _CRLF
    if isinstance(frame, Array):
        raise ValueError("nested array frames cannot be encoded")
    raise TypeError(f"not a frame: {frame!r}")


def encode(frame: Frame) -> bytes:
    """Return the wire encoding of ``frame``.

    Arrays are encoded one level deep; an array nested inside another
    raises ValueError.
    """
    if isinstance(frame, Array):
        parts = [b"*", _decimal(len(frame.items))]
        parts.extend(_encode_value(entry) for entry in frame.items)
        return b"".join(parts)
    return _encode_value(frame)


class Connection:
    """Reads and writes frames on a stream reader/writer pair.

    Incoming bytes are buffered until a whole frame is available; any
    bytes beyond that frame are kept for the next call to ``read_frame``.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._buffer = bytearray()

    def _parse_frame(self) -> Frame | None:
        data = bytes(self._buffer)
        try:
            end = check(data)
        except Incomplete:
            return None
        frame, _ = parse(data)
        del self._buffer[:end]
        return frame

    async def read_frame(self) -> Frame | None:
        """Read one frame, or return None if the peer closed cleanly.

        Raises ConnectionResetError_ if the stream ends part way through a
        frame, and ProtocolError if the data is not a valid frame.
        """
        while True:
            frame = self._parse_frame()
            if frame is not None:
                return frame
            chunk = await self._reader.read(_READ_SIZE)
            if not chunk:
                if not self._buffer:
                    return None
                raise ConnectionResetError_()
            self._buffer.extend(chunk)

    async def write_frame(self, frame: Frame) -> None:
        """Encode ``frame`` and write it to the stream, flushing it."""
        self._writer.write(encode(frame))
        await self._writer.drain()

    async def close(self) -> None:
        """Close the underlying stream."""
        self._writer.close()
        await self._writer.wait_closed()