"""
Server-side round timer.

A round is bounded by a single fixed-duration timer. When it expires the
callback finishes the round; the session cancels it when the room is deleted.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class RoundTimer:
    """Cancellable deferred action backed by an asyncio task."""

    def __init__(self) -> None:
        self._active_task: asyncio.Task[None] | None = None

    @property
    def is_pending(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    def start(self, duration_seconds: float, on_timeout: Callable[[], Awaitable[None]]) -> None:
        """Schedule on_timeout after duration_seconds, replacing any pending action."""
        self.cancel()
        self._active_task = asyncio.create_task(self._run(duration_seconds, on_timeout))

    def cancel(self) -> None:
        """Cancel the pending action, if any."""
        if self._active_task is not None and not self._active_task.done():
            self._active_task.cancel()
        self._active_task = None

    async def _run(self, seconds: float, on_timeout: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(seconds)
            await on_timeout()
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("round timer callback failed")
