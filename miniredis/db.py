"""Shared server state: the key/value store, key expiry and pub/sub channels."""

from __future__ import annotations

import asyncio
import bisect
import logging
import time
import weakref
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta

from .errors import MiniRedisError

__all__ = ["BroadcastReceiver", "Db", "DbDropGuard", "Lagged", "CHANNEL_CAPACITY"]

log = logging.getLogger(__name__)

CHANNEL_CAPACITY = 1024


class Lagged(MiniRedisError):
    """The receiver fell behind and older messages were dropped."""

    def __init__(self, skipped: int) -> None:
        super().__init__(f"channel lagged by {skipped}")
        self.skipped = skipped


class BroadcastReceiver:
    """Receiving end of a pub/sub channel.

    Holds at most ``capacity`` unread messages; when more arrive the oldest
    are dropped and the next ``recv`` raises Lagged with the number lost.
    """

    def __init__(self, capacity: int = CHANNEL_CAPACITY) -> None:
        self._capacity = capacity
        self._queue: deque[bytes] = deque()
        self._missed = 0
        self._ready = asyncio.Event()

    def _push(self, value: bytes) -> None:
        self._queue.append(value)
        if len(self._queue) > self._capacity:
            self._queue.popleft()
            self._missed += 1
        self._ready.set()

    async def recv(self) -> bytes:
        """Wait for and return the next message."""
        while True:
            if self._missed:
                skipped, self._missed = self._missed, 0
                raise Lagged(skipped)
            if self._queue:
                return self._queue.popleft()
            self._ready.clear()
            await self._ready.wait()


class _Broadcast:
    """Sending side of a pub/sub channel; tracks live receivers."""

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._receivers: weakref.WeakSet[BroadcastReceiver] = weakref.WeakSet()

    def subscribe(self) -> BroadcastReceiver:
        receiver = BroadcastReceiver(self._capacity)
        self._receivers.add(receiver)
        return receiver

    def send(self, value: bytes) -> int:
        receivers = list(self._receivers)
        for receiver in receivers:
            receiver._push(value)
        return len(receivers)


@dataclass
class _Entry:
    data: bytes
    expires_at: float | None


@dataclass
class _Shared:
    entries: dict[str, _Entry] = field(default_factory=dict)
    pub_sub: dict[str, _Broadcast] = field(default_factory=dict)
    expirations: list[tuple[float, str]] = field(default_factory=list)
    shutdown: bool = False
    background_task: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None

    def next_expiration(self) -> float | None:
        return self.expirations[0][0] if self.expirations else None

    def remove_expiration(self, when: float, key: str) -> None:
        index = bisect.bisect_left(self.expirations, (when, key))
        if index < len(self.expirations) and self.expirations[index] == (when, key):
            del self.expirations[index]

    def purge_expired_keys(self) -> float | None:
        """Drop expired keys and return when the next key expires."""
        if self.shutdown:
            return None
        now = time.monotonic()
        while self.expirations:
            when, key = self.expirations[0]
            if when > now:
                return when
            self.entries.pop(key, None)
            del self.expirations[0]
        return None


async def _purge_expired_tasks(shared: _Shared) -> None:
    while not shared.shutdown:
        when = shared.purge_expired_keys()
        if when is not None:
            try:
                await asyncio.wait_for(
                    shared.background_task.wait(),
                    timeout=max(0.0, when - time.monotonic()),
                )
            except asyncio.TimeoutError:
                pass
        else:
            await shared.background_task.wait()
        shared.background_task.clear()
    log.debug("Purge background task shut down")


def _seconds(expire: float | timedelta) -> float:
    if isinstance(expire, timedelta):
        return expire.total_seconds()
    return float(expire)


class Db:
    """Handle to the state shared by all connections.

    Creating a Db starts a background task, on the running event loop,
    that removes keys once their expiry time has passed.
    """

    def __init__(self) -> None:
        loop = asyncio.get_running_loop()
        self._shared = _Shared()
        self._shared.task = loop.create_task(_purge_expired_tasks(self._shared))

    def get(self, key: str) -> bytes | None:
        """Return the value stored at ``key``, or None."""
        entry = self._shared.entries.get(key)
        return None if entry is None else entry.data

    def set(self, key: str, value: bytes, expire: float | timedelta | None = None) -> None:
        """Store ``value`` at ``key``, expiring after ``expire`` seconds if given.

        Any previous value and its expiry are discarded.
        """
        shared = self._shared
        notify = False
        expires_at = None
        if expire is not None:
            expires_at = time.monotonic() + _seconds(expire)
            following = shared.next_expiration()
            notify = following is None or following > expires_at

        previous = shared.entries.get(key)
        shared.entries[key] = _Entry(bytes(value), expires_at)

        if previous is not None and previous.expires_at is not None:
            shared.remove_expiration(previous.expires_at, key)
        if expires_at is not None:
            bisect.insort(shared.expirations, (expires_at, key))

        if notify:
            shared.background_task.set()

    def subscribe(self, key: str) -> BroadcastReceiver:
        """Return a receiver for messages published on channel ``key``."""
        channel = self._shared.pub_sub.get(key)
        if channel is None:
            channel = self._shared.pub_sub[key] = _Broadcast(CHANNEL_CAPACITY)
        return channel.subscribe()

    def publish(self, key: str, value: bytes) -> int:
        """Send ``value`` on channel ``key``; return the number of subscribers."""
        channel = self._shared.pub_sub.get(key)
        if channel is None:
            return 0
        return channel.send(bytes(value))

    def shutdown_purge_task(self) -> None:
        """Signal the background expiry task to stop."""
        self._shared.shutdown = True
        self._shared.background_task.set()


class DbDropGuard:
    """Owns a Db and stops its expiry task when closed."""

    def __init__(self) -> None:
        self._db = Db()

    def db(self) -> Db:
        """Return the shared database handle."""
        return self._db

    def close(self) -> None:
        """Stop the background expiry task."""
        self._db.shutdown_purge_task()

    def __enter__(self) -> DbDropGuard:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()