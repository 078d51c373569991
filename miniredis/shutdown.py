"""Listening for the server shutdown signal."""

from __future__ import annotations

import asyncio

__all__ = ["Shutdown"]


class Shutdown:
    """Tracks whether the shared shutdown signal has been received.

    The signal is an ``asyncio.Event`` shared by every connection; once it
    is set, the server is shutting down.
    """

    def __init__(self, notify: asyncio.Event) -> None:
        self._notify = notify
        self._is_shutdown = False

    def is_shutdown(self) -> bool:
        """Return True once the shutdown signal has been received."""
        return self._is_shutdown

    async def recv(self) -> None:
        """Wait for the shutdown signal if it has not been received yet."""
        if self._is_shutdown:
            return
        await self._notify.wait()
        self._is_shutdown = True