"""Redis protocol frames and utilities for parsing them from bytes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .errors import MiniRedisError

__all__ = [
    "Array",
    "Bulk",
    "ErrorFrame",
    "Frame",
    "FrameError",
    "Incomplete",
    "Integer",
    "Null",
    "ProtocolError",
    "Simple",
    "check",
    "parse",
]

INVALID_FORMAT = "protocol error; invalid frame format"

_U64_MAX = 2**64 - 1
_DECIMAL = re.compile(rb"([+-]?)([0-9]+)")

_SIMPLE = ord("+")
_ERROR = ord("-")
_INTEGER = ord(":")
_BULK = ord("$")
_ARRAY = ord("*")


class FrameError(MiniRedisError):
    """Failure to decode a frame."""


class Incomplete(FrameError):
    """Not enough data is available to parse a message."""

    def __init__(self, message: str = "stream ended early") -> None:
        super().__init__(message)


class ProtocolError(FrameError):
    """The buffered data is not a valid frame encoding."""


class Frame:
    """A frame in the Redis protocol."""

    def to_error(self) -> MiniRedisError:
        """Return an "unexpected frame" error describing this frame."""
        return MiniRedisError(f"unexpected frame: {self}")

    def matches(self, text: str) -> bool:
        """Return True if this is a simple or bulk frame holding ``text``."""
        return False


@dataclass
class Simple(Frame):
    value: str

    def matches(self, text: str) -> bool:
        return self.value == text

    def __str__(self) -> str:
        return self.value


@dataclass
class ErrorFrame(Frame):
    value: str

    def __str__(self) -> str:
        return f"error: {self.value}"


@dataclass
class Integer(Frame):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class Bulk(Frame):
    value: bytes

    def __post_init__(self) -> None:
        self.value = bytes(self.value)

    def matches(self, text: str) -> bool:
        return self.value == text.encode()

    def __str__(self) -> str:
        try:
            return self.value.decode("utf-8")
        except UnicodeDecodeError:
            return _bytes_debug(self.value)


@dataclass
class Null(Frame):
    def __str__(self) -> str:
        return "(nil)"


@dataclass
class Array(Frame):
    items: list[Frame] = field(default_factory=list)

    def push_bulk(self, data: bytes) -> None:
        """Append a bulk frame holding ``data``."""
        self.items.append(Bulk(data))

    def push_int(self, value: int) -> None:
        """Append an integer frame holding ``value``."""
        self.items.append(Integer(value))

    def __str__(self) -> str:
        return " ".join(str(part) for part in self.items)


def _bytes_debug(data: bytes) -> str:
    escapes = {ord("\n"): "\\n", ord("\r"): "\\r", ord("\t"): "\\t",
               ord("\\"): "\\\\", ord('"'): '\\"'}
    parts = []
    for byte in data:
        if byte in escapes:
            parts.append(escapes[byte])
        elif 0x20 <= byte < 0x7F:
            parts.append(chr(byte))
        else:
            parts.append(f"\\x{byte:02x}")
    return 'b"' + "".join(parts) + '"'


def _atoi(data: bytes) -> int | None:
    """Parse a leading unsigned decimal, or return None."""
    found = _DECIMAL.match(data)
    if found is None:
        return None
    sign, digits = found.groups()
    value = int(digits)
    if sign == b"-":
        return 0 if value == 0 else None
    if value > _U64_MAX:
        return None
    return value


def _get_u8(buf: bytes, pos: int) -> tuple[int, int]:
    if pos >= len(buf):
        raise Incomplete()
    return buf[pos], pos + 1


def _peek_u8(buf: bytes, pos: int) -> int:
    if pos >= len(buf):
        raise Incomplete()
    return buf[pos]


def _skip(buf: bytes, pos: int, n: int) -> int:
    if len(buf) - pos < n:
        raise Incomplete()
    return pos + n


def _get_line(buf: bytes, pos: int) -> tuple[bytes, int]:
    end = buf.find(b"\r\n", pos)
    if end < 0:
        raise Incomplete()
    return buf[pos:end], end + 2


def _get_decimal(buf: bytes, pos: int) -> tuple[int, int]:
    line, pos = _get_line(buf, pos)
    value = _atoi(line)
    if value is None:
        raise ProtocolError(INVALID_FORMAT)
    return value, pos


def _decode(line: bytes) -> str:
    try:
        return line.decode("utf-8")
    except UnicodeDecodeError:
        raise ProtocolError(INVALID_FORMAT) from None


def _invalid_type(kind: int) -> ProtocolError:
    return ProtocolError(f"protocol error; invalid frame type byte `{kind}`")


def _check(buf: bytes, pos: int) -> int:
    kind, pos = _get_u8(buf, pos)
    if kind in (_SIMPLE, _ERROR):
        _, pos = _get_line(buf, pos)
        return pos
    if kind == _INTEGER:
        _, pos = _get_decimal(buf, pos)
        return pos
    if kind == _BULK:
        if _peek_u8(buf, pos) == _ERROR:
            return _skip(buf, pos, 4)
        length, pos = _get_decimal(buf, pos)
        return _skip(buf, pos, length + 2)
    if kind == _ARRAY:
        length, pos = _get_decimal(buf, pos)
        for _ in range(length):
            pos = _check(buf, pos)
        return pos
    raise _invalid_type(kind)


def _parse(buf: bytes, pos: int) -> tuple[Frame, int]:
    kind, pos = _get_u8(buf, pos)
    if kind == _SIMPLE:
        line, pos = _get_line(buf, pos)
        return Simple(_decode(line)), pos
    if kind == _ERROR:
        line, pos = _get_line(buf, pos)
        return ErrorFrame(_decode(line)), pos
    if kind == _INTEGER:
        value, pos = _get_decimal(buf, pos)
        return Integer(value), pos
    if kind == _BULK:
        if _peek_u8(buf, pos) == _ERROR:
            line, pos = _get_line(buf, pos)
            if line != b"-1":
                raise ProtocolError(INVALID_FORMAT)
            return Null(), pos
        length, pos = _get_decimal(buf, pos)
        if len(buf) - pos < length + 2:
            raise Incomplete()
        data = buf[pos:pos + length]
        return Bulk(data), pos + length + 2
    if kind == _ARRAY:
        length, pos = _get_decimal(buf, pos)
        items = []
        for _ in range(length):
            item, pos = _parse(buf, pos)
            items.append(item)
        return Array(items), pos
    raise _invalid_type(kind)


def check(buf: bytes, pos: int = 0) -> int:
    """Check that a whole frame starts at ``pos``; return the offset after it.

    Raises Incomplete if more data is needed and ProtocolError if the data
    is not a valid frame.
    """
    return _check(bytes(buf), pos)


def parse(buf: bytes, pos: int = 0) -> tuple[Frame, int]:
    """Decode the frame starting at ``pos``; return it and the offset after it."""
    return _parse(bytes(buf), pos)