from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional

from shared.log import get_logger

logger = get_logger(__name__)

SendText = Callable[[str], Awaitable[object]]
Sleep = Callable[[float], Awaitable[None]]


class TypingScheduler:
    """
    Emits text as a run of growing prefixes, pausing between characters so
    other occupants see it being typed.

    Runs are not serialised here; callers start them through an OutputSlot.
    """

    def __init__(
        self,
        send: SendText,
        *,
        base_delay_ms: float = 28,
        jitter_ms: float = 40,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._send = send
        self.base_delay_ms = base_delay_ms
        self.jitter_ms = jitter_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

    def next_delay(self, base_delay_ms: Optional[float] = None) -> float:
        """Pause before the next character, in seconds."""
        base = self.base_delay_ms if base_delay_ms is None else base_delay_ms
        return (base + self._rng.uniform(0, self.jitter_ms)) / 1000.0

    async def emit(self, text: str, base_delay_ms: Optional[float] = None) -> int:
        """Type ``text`` out. Returns the number of frames sent."""
        frames = 0
        for end in range(1, len(text) + 1):
            await self._send(text[:end])
            frames += 1
            await self._sleep(self.next_delay(base_delay_ms))
        return frames


class OutputSlot:
    """
    Single-slot task guard: at most one output task runs at a time and a start
    request made while one is active is skipped, not queued.
    """

    def __init__(self, name: str = "output") -> None:
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, factory: Callable[[], Awaitable[object]]) -> Optional[asyncio.Task]:
        """Run ``factory()`` as a task unless the slot is taken."""
        if self.busy:
            logger.debug("%s slot busy; skipping run", self.name)
            return None
        task = asyncio.create_task(self._run(factory))
        self._task = task

        def _release(done: asyncio.Task) -> None:
            if self._task is done:
                self._task = None

        task.add_done_callback(_release)
        return task

    async def _run(self, factory: Callable[[], Awaitable[object]]) -> None:
        try:
            await factory()
        except asyncio.CancelledError:
            logger.debug("%s run abandoned", self.name)
            raise
        except Exception as e:
            logger.error("%s run failed: %s", self.name, e)

    def cancel(self) -> None:
        if self.busy:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the active run, if any, to finish."""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
