"""Repeating refresh timer with generation-tagged ticks.

A RefreshScheduler drives one pipeline. States:

- IDLE: no timer. ``start()`` moves to ARMED.
- ARMED: a tick ran immediately on start and a loop task repeats it every
  ``interval`` seconds. ``stop()`` (or a restart) moves back to IDLE.

Every start/stop bumps the generation counter. A tick remembers the
generation it was launched under and its result is only committed if that
generation is still current, so a fetch that completes after a symbol
switch cannot overwrite state for the new symbol.

Failures inside a tick are logged and handed to ``on_error``; they never
stop the timer. There is no backoff: the next tick runs on schedule.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Generic, TypeVar

from byagent.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SchedulerState(str, Enum):
    """Lifecycle state of a RefreshScheduler."""

    IDLE = "idle"
    ARMED = "armed"


class RefreshScheduler(Generic[T]):
    """Runs compute -> commit on a fixed period for one pipeline.

    Args:
        name: Pipeline name used in log events.
        interval: Seconds between ticks.
        compute: Fetch and compute step. May raise.
        commit: Publishes the computed result; only called for current-generation ticks.
        on_error: Reports a failed tick; only called for current-generation ticks.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        compute: Callable[[], Awaitable[T]],
        commit: Callable[[T], Awaitable[None]],
        on_error: Callable[[Exception], Awaitable[None]],
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._name = name
        self._interval = interval
        self._compute = compute
        self._commit = commit
        self._on_error = on_error
        self._state = SchedulerState.IDLE
        self._generation = 0
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._inflight_generation: int | None = None
        # Loop tasks of stopped generations still finishing an in-flight tick
        self._draining: set[asyncio.Task] = set()  # type: ignore[type-arg]

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def interval(self) -> float:
        return self._interval

    async def start(self, interval: float | None = None) -> None:
        """Cancel any existing timer, run one tick now, then arm the repeating timer.

        Args:
            interval: New tick period in seconds; keeps the current one when None.
        """
        if interval is not None:
            if interval <= 0:
                raise ValueError(f"interval must be positive, got {interval}")
            self._interval = interval

        await self.stop()
        self._generation += 1
        generation = self._generation
        self._state = SchedulerState.ARMED
        logger.info(
            "scheduler_started",
            scheduler=self._name,
            generation=generation,
            interval=self._interval,
        )

        await self._tick(generation)

        # stop() or another start() may have run while the first tick awaited
        if self._generation == generation:
            self._task = asyncio.create_task(self._loop(generation))

    async def stop(self) -> None:
        """Cancel the timer. An in-flight tick finishes but its result is discarded."""
        was_armed = self._state is SchedulerState.ARMED
        stopped_generation = self._generation
        self._generation += 1
        self._state = SchedulerState.IDLE

        task = self._task
        self._task = None
        if task is not None and not task.done():
            if self._inflight_generation == stopped_generation:
                self._draining.add(task)
                task.add_done_callback(self._draining.discard)
            else:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if was_armed:
            logger.info("scheduler_stopped", scheduler=self._name, generation=stopped_generation)

    async def run_once(self) -> bool:
        """Run an extra tick for the current generation outside the timer.

        Returns:
            True if the tick committed a result, False if it was skipped,
            failed, or the scheduler is idle.
        """
        if self._state is not SchedulerState.ARMED:
            return False
        return await self._tick(self._generation)

    async def _loop(self, generation: int) -> None:
        """Sleep, tick, repeat until the generation is superseded."""
        while self._generation == generation:
            await asyncio.sleep(self._interval)
            if self._generation != generation:
                break
            await self._tick(generation)

    async def _tick(self, generation: int) -> bool:
        """Run one compute/commit cycle tagged with ``generation``."""
        if self._inflight_generation == generation:
            logger.debug("tick_skipped_in_flight", scheduler=self._name, generation=generation)
            return False

        self._inflight_generation = generation
        try:
            result = await self._compute()
            if self._generation != generation:
                logger.debug("stale_tick_discarded", scheduler=self._name, generation=generation)
                return False
            await self._commit(result)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "refresh_tick_failed",
                scheduler=self._name,
                generation=generation,
                error=str(e),
                exc_info=True,
            )
            if self._generation == generation:
                try:
                    await self._on_error(e)
                except Exception:
                    logger.warning("tick_error_report_failed", scheduler=self._name, exc_info=True)
            return False
        finally:
            if self._inflight_generation == generation:
                self._inflight_generation = None
