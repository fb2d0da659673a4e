#!/usr/bin/env python3
"""
Session countdown.
Runs as its own asyncio task so an outstanding tutor request never delays it.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SessionTimer:
    """Counts down once per tick and calls `on_expire` at zero"""

    def __init__(
        self,
        seconds: float,
        on_expire: Callable[[], None],
        on_tick: Optional[Callable[[float], None]] = None,
        tick: float = 1.0,
    ):
        self.duration = seconds
        self.remaining = float(seconds)
        self.on_expire = on_expire
        self.on_tick = on_tick
        self.tick = tick
        self.expired = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the countdown on the running loop"""
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return self._task

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def format_remaining(self) -> str:
        seconds = max(0, int(self.remaining))
        return f"{seconds // 60:02d}:{seconds % 60:02d}"

    async def _run(self):
        while self.remaining > 0:
            await asyncio.sleep(self.tick)
            self.remaining = max(0.0, round(self.remaining - self.tick, 6))
            if self.on_tick is not None:
                self.on_tick(self.remaining)

        self.expired = True
        logger.info("Session timer expired after %ss", self.duration)
        self.on_expire()
