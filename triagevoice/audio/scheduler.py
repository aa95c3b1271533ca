"""Cooperative timers for the recording controller.

Both classes run on a single asyncio event loop and never block it. Any
object with ``call_later(delay_seconds, callback, *args)`` returning a
handle with ``cancel()`` can stand in for the loop.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class FrameScheduler:
    """Restartable, cancellable per-frame sampling loop.

    Every ``start`` opens a new generation; a tick carrying an older
    generation is dropped, so a cancelled loop never delivers a late sample.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None,
                 interval_ms: float = 1000.0 / 60.0):
        self.loop = loop or asyncio.get_event_loop()
        self.interval_ms = interval_ms
        self.generation = 0
        self.frames_delivered = 0
        self._callback: Optional[Callable[[], None]] = None
        self._handle = None

    @property
    def is_running(self) -> bool:
        return self._callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` now and then once per frame until cancelled."""
        self.cancel()
        self._callback = callback
        self.frames_delivered = 0
        logger.debug(f"Frame loop started (generation {self.generation})")
        self._tick(self.generation)

    def cancel(self) -> None:
        """Stop the loop. Pending ticks of this generation become stale."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._callback is not None:
            logger.debug(f"Frame loop cancelled (generation {self.generation})")
        self._callback = None
        self.generation += 1

    def _tick(self, generation: int) -> None:
        if generation != self.generation or self._callback is None:
            return

        self._handle = None
        self.frames_delivered += 1
        self._callback()

        # The callback may have cancelled or restarted the loop
        if generation == self.generation and self._callback is not None:
            self._handle = self.loop.call_later(self.interval_ms / 1000.0, self._tick, generation)


class DelayedAction:
    """A cancellable one-shot timer with at most one pending run."""

    def __init__(self, name: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.name = name
        self.loop = loop or asyncio.get_event_loop()
        self._handle = None
        self.armed_at: Optional[float] = None

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay_ms: float, callback: Callable[[], None],
            armed_at: Optional[float] = None) -> bool:
        """Schedule ``callback`` after ``delay_ms``; no-op if already armed.

        Returns:
            True if a new timer was armed
        """
        if self._handle is not None:
            return False

        def fire():
            self._handle = None
            self.armed_at = None
            callback()

        self.armed_at = armed_at
        self._handle = self.loop.call_later(delay_ms / 1000.0, fire)
        logger.debug(f"{self.name} armed for {delay_ms:.0f}ms")
        return True

    def cancel(self) -> bool:
        """Cancel the pending run, if any.

        Returns:
            True if a pending run was cancelled
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self.armed_at = None
        logger.debug(f"{self.name} cancelled")
        return True
