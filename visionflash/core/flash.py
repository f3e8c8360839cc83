"""
Flash pattern playback.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from .morse import FlashBit, FlashPattern

logger = logging.getLogger(__name__)


class FlashState(Enum):
    BRIGHT = "bright"
    DARK = "dark"


class RecordingFlashOutput:
    """Flash output that keeps the (state, duration_ms) commands it receives.

    Used headless and in tests; FlashWindow is the on-screen output.
    """

    def __init__(self, initial: FlashState = FlashState.DARK):
        self.state = initial
        self.commands: List[Tuple[FlashState, int]] = []

    def apply(self, state: FlashState, duration_ms: int) -> None:
        self.state = state
        self.commands.append((state, duration_ms))

    def restore(self, state: FlashState) -> None:
        self.state = state


class FlashPlayer:
    """Plays one flash pattern at a time on a flash output.

    While a pattern plays the player is busy, and offers of new patterns are
    dropped rather than queued.
    """

    def __init__(self, output, sleep: Callable[[float], Awaitable] = asyncio.sleep):
        self.output = output
        self._sleep = sleep
        self._busy = False
        self._task: Optional[asyncio.Task] = None
        self._busy_listeners: List[Callable[[bool], None]] = []
        self.patterns_played = 0
        self.patterns_dropped = 0

    @property
    def busy(self) -> bool:
        return self._busy

    def add_busy_listener(self, listener: Callable[[bool], None]) -> None:
        """Call `listener(busy)` whenever the busy flag changes."""
        self._busy_listeners.append(listener)

    def _set_busy(self, busy: bool) -> None:
        self._busy = busy
        for listener in self._busy_listeners:
            listener(busy)

    def offer(self, pattern: FlashPattern) -> bool:
        """Start playing `pattern` unless a pattern is already playing."""
        if self._busy:
            self.patterns_dropped += 1
            logger.info("⚡ Flash busy; dropping new pattern")
            return False
        if not pattern.bits:
            return False
        self._set_busy(True)
        self._task = asyncio.create_task(self._play(pattern))
        return True

    async def play(self, pattern: FlashPattern) -> bool:
        """Offer `pattern` and wait for its playback to finish."""
        if not self.offer(pattern):
            return False
        await self.wait_idle()
        return True

    async def wait_idle(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await task

    async def _play(self, pattern: FlashPattern) -> None:
        previous = self.output.state
        hold = pattern.unit_duration_ms / 1000.0
        logger.debug(f"⚡ Playing {len(pattern)} bits at {pattern.unit_duration_ms}ms/unit")
        try:
            for bit in pattern.bits:
                state = FlashState.BRIGHT if bit is FlashBit.ON else FlashState.DARK
                self.output.apply(state, pattern.unit_duration_ms)
                await self._sleep(hold)
            self.patterns_played += 1
        except Exception as e:
            logger.error(f"❌ Flash output failed: {e}", exc_info=True)
        finally:
            self.output.restore(previous)
            self._set_busy(False)
