"""Cursor-style extraction of command arguments from an array frame."""

from __future__ import annotations

from .errors import MiniRedisError
from .frame import Array, Bulk, Frame, Integer, Simple, _atoi

__all__ = ["EndOfStream", "Parse", "ParseError"]


class ParseError(MiniRedisError):
    """Error encountered while parsing a command frame."""


class EndOfStream(ParseError):
    """The frame was fully consumed before a value could be extracted."""

    def __init__(self, message: str = "protocol error; unexpected end of stream") -> None:
        super().__init__(message)


class Parse:
    """Walks the entries of an array frame, one token at a time."""

    def __init__(self, frame: Frame) -> None:
        if not isinstance(frame, Array):
            raise ParseError(f"protocol error; expected array, got {frame!r}")
        self._parts = iter(frame.items)

    def _next(self) -> Frame:
        try:
            return next(self._parts)
        except StopIteration:
            raise EndOfStream() from None

    def next_string(self) -> str:
        """Return the next entry as a string."""
        frame = self._next()
        if isinstance(frame, Simple):
            return frame.value
        if isinstance(frame, Bulk):
            try:
                return frame.value.decode("utf-8")
            except UnicodeDecodeError:
                raise ParseError("protocol error; invalid string") from None
        raise ParseError(
            f"protocol error; expected simple frame or bulk frame, got {frame!r}"
        )

    def next_bytes(self) -> bytes:
        """Return the next entry as raw bytes."""
        frame = self._next()
        if isinstance(frame, Simple):
            return frame.value.encode("utf-8")
        if isinstance(frame, Bulk):
            return frame.value
        raise ParseError(
            f"protocol error; expected simple frame or bulk frame, got {frame!r}"
        )

    def next_int(self) -> int:
        """Return the next entry as an unsigned integer."""
        frame = self._next()
        if isinstance(frame, Integer):
            return frame.value
        if isinstance(frame, (Simple, Bulk)):
            data = frame.value.encode("utf-8") if isinstance(frame, Simple) else frame.value
            value = _atoi(data)
            if value is None:
                raise ParseError("protocol error; invalid number")
            return value
        raise ParseError(f"protocol error; expected int frame but got {frame!r}")

    def finish(self) -> None:
        """Ensure there are no more entries in the array."""
        if next(self._parts, None) is not None:
            raise ParseError("protocol error; expected end of frame, but there was more")