# miniredis

The building blocks of a small Redis-compatible server, written for
`asyncio`.

## Modules

- `miniredis.errors`: `MiniRedisError`, the base of every exception the
  package raises.
- `miniredis.frame`: the RESP frame types `Simple`, `ErrorFrame`,
  `Integer`, `Bulk`, `Null` and `Array` (all subclasses of `Frame`), and
  the functions `check(buf, pos=0)` and `parse(buf, pos=0)`.
  - `check` returns the offset just past a whole frame starting at `pos`.
  - `parse` returns the decoded frame and that offset.
  - A buffer that holds only part of a frame raises `Incomplete`; a
    malformed one raises `ProtocolError`. Both derive from `FrameError`.
  - `Frame.matches(text)` is true for a `Simple` or `Bulk` frame holding
    `text`; `Frame.to_error()` returns a `MiniRedisError` reading
    `unexpected frame: ...`.
  - `Array.push_bulk(data)` and `Array.push_int(value)` append entries.
- `miniredis.parse`: `Parse(frame)` walks the entries of an array frame.
  - `next_string()`, `next_bytes()` and `next_int()` pull out the next
    argument, and `finish()` checks that nothing is left over.
  - Running out of entries raises `EndOfStream`; other problems raise
    `ParseError`.
- `miniredis.connection`: `Connection(reader, writer)` reads and writes
  whole frames on an `asyncio` stream pair.
  - `read_frame()` returns the next frame, or `None` when the peer closed
    cleanly between frames. If the stream ends part way through a frame it
    raises `ConnectionResetError_`.
  - `write_frame(frame)` sends a frame and drains the writer, and
    `close()` closes the stream.
  - `encode(frame)` returns a frame's wire bytes. Arrays are encoded one
    level deep; an array nested inside another raises `ValueError`.
- `miniredis.shutdown`: `Shutdown(event)` wraps a shared `asyncio.Event`.
  `await recv()` waits for the signal and `is_shutdown()` reports whether
  it has been received.
- `miniredis.db`: `Db` is the shared key/value store, with per-key expiry
  and pub/sub channels.
  - Creating a `Db` needs a running event loop, because it starts a
    background task that removes expired keys.
  - `set(key, value, expire=None)` takes `expire` in seconds or as a
    `datetime.timedelta`. `get(key)` returns the bytes or `None`.
  - `subscribe(key)` returns a `BroadcastReceiver`, and
    `publish(key, value)` returns how many receivers got the message.
  - A receiver keeps at most `CHANNEL_CAPACITY` (1024) unread messages.
    When more arrive the oldest are dropped, and the next `recv()` raises
    `Lagged`, whose `skipped` attribute gives the number lost.
  - `DbDropGuard` owns a `Db`, hands it out through `db()`, and stops the
    purge task on `close()` or when used as a context manager.

## Install

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Frames

```python
from miniredis.frame import Array, Bulk, parse
from miniredis.connection import encode

buf = b"*2\r\n$3\r\nGET\r\n$5\r\nhello\r\n"
frame, end = parse(buf, 0)
assert frame == Array([Bulk(b"GET"), Bulk(b"hello")])
assert end == len(buf)
assert encode(frame) == buf
```

## Store

```python
import asyncio
from miniredis.db import DbDropGuard

async def main():
    with DbDropGuard() as guard:
        db = guard.db()
        db.set("hello", b"world", 1.0)   # expires after one second
        assert db.get("hello") == b"world"

        receiver = db.subscribe("news")
        assert db.publish("news", b"hi") == 1
        assert await receiver.recv() == b"hi"

asyncio.run(main())
```

## What it does not do

The package provides the pieces a server is built from, not a server. It
has no listener that accepts connections, no command table that turns
parsed frames into GET, SET, PUBLISH or SUBSCRIBE operations, no client,
and no command-line program.