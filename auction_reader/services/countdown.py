#!/usr/bin/env python3
"""
Local countdown to an immutable on-chain deadline.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

FINISHED_LABEL = "Auction finished"
TICK_INTERVAL = 1.0


def format_time_left(seconds: int) -> str:
    """'{d}d {h}h {m}m {s}s' for a positive number of seconds"""
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{days}d {hours}h {minutes}m {secs}s"


def compute_time_left(end_time: int, now: float) -> Tuple[str, bool]:
    """(time_left, is_finished) at wall-clock time now"""
    remaining = int(end_time) - int(now)
    if remaining <= 0:
        return FINISHED_LABEL, True
    return format_time_left(remaining), False


class Countdown:
    """Repeating one-second task that recomputes time left until the deadline passes.

    Once finished the task stops itself and the result is frozen; cancel()
    must be called by the owner when the deadline stops being relevant.
    """

    def __init__(
        self,
        end_time: int,
        on_tick: Callable[[str, bool], None],
        interval: float = TICK_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.end_time = int(end_time)
        self._on_tick = on_tick
        self._interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self.time_left = ""
        self.is_finished = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _recompute(self) -> Tuple[str, bool]:
        if not self.is_finished:
            self.time_left, self.is_finished = compute_time_left(self.end_time, self._clock())
        return self.time_left, self.is_finished

    def start(self) -> Tuple[str, bool]:
        """Compute the initial value and schedule ticks unless already finished.

        Needs a running event loop when the deadline is still ahead.
        """
        time_left, finished = self._recompute()
        if not finished and not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return time_left, finished

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            time_left, finished = self._recompute()
            try:
                self._on_tick(time_left, finished)
            except Exception as e:
                logger.error(f"Countdown tick callback failed: {e}", exc_info=True)
            if finished:
                logger.debug(f"Countdown to {self.end_time} finished")
                return

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
