"""Automation controller: periodic news sync with pause/resume.

Lifecycle is ``stopped -> running <-> paused`` and ``stop()`` returns to
``stopped`` from anywhere. Pausing only stops new job creation; jobs already
handed to the executor keep running.

The timer is injected so tests can fire ticks by hand instead of waiting.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

STOPPED = "stopped"
RUNNING = "running"
PAUSED = "paused"

TickCallback = Callable[[], Awaitable[object]]
CreateJob = Callable[[str], Awaitable[object]]


class IntervalTimer(ABC):
    """Repeating timer that awaits a callback every interval seconds."""

    @abstractmethod
    def start(self, interval: float, callback: TickCallback) -> None:
        """Arm the timer. Must be a no-op if already armed."""
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    async def drain(self) -> None:
        """Wait for ticks that are still running after stop()."""

    @property
    @abstractmethod
    def armed(self) -> bool:
        ...


class AsyncioIntervalTimer(IntervalTimer):
    """IntervalTimer backed by an asyncio task.

    Each tick runs in its own task, so stopping the timer never cancels a
    cycle that is already creating a job.
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval: float, callback: TickCallback) -> None:
        if self.armed:
            return
        self._task = asyncio.create_task(self._loop(interval, callback), name="automation-timer")

    async def _loop(self, interval: float, callback: TickCallback) -> None:
        while True:
            await asyncio.sleep(interval)
            tick = asyncio.create_task(callback())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def drain(self) -> None:
        if self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)


class TopicRotation:
    """Round-robin over the configured sync topics."""

    def __init__(self, topics: Sequence[str]):
        topics = [t.strip() for t in topics if t and t.strip()]
        if not topics:
            raise ValueError("TopicRotation needs at least one topic")
        self.topics = topics
        self._index = 0

    def next(self) -> str:
        topic = self.topics[self._index % len(self.topics)]
        self._index += 1
        return topic

    def __len__(self) -> int:
        return len(self.topics)


@dataclass
class AutomationStats:
    cycles: int = 0
    jobs_created: int = 0
    failures: int = 0
    last_cycle_at: Optional[datetime] = None
    last_job_id: Optional[str] = None
    last_error: Optional[str] = None


class AutomationController:
    """Owns the sync timer and the pause switch.

    Args:
        create_job: Async callable taking a topic and returning the new job id
            (store create plus executor submit)
        topics: Topics rotated through, one per cycle
        timer: IntervalTimer; defaults to AsyncioIntervalTimer
        interval: Seconds between scheduled cycles
    """

    def __init__(
        self,
        create_job: CreateJob,
        topics: Sequence[str],
        timer: Optional[IntervalTimer] = None,
        interval: float = 3600.0,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.create_job = create_job
        self.rotation = TopicRotation(topics)
        self.timer = timer or AsyncioIntervalTimer()
        self.interval = interval
        self.stats = AutomationStats()
        self._state = STOPPED

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_paused(self) -> bool:
        return self._state == PAUSED

    def start(self) -> None:
        """Arm the timer. Idempotent; a paused controller stays paused."""
        if self._state != STOPPED:
            logger.debug(f"Automation start ignored in state {self._state}")
            return
        self._state = RUNNING
        self.timer.start(self.interval, self.tick)
        logger.info(f"Automation started (every {self.interval:.0f}s, topics: {self.rotation.topics})")

    def pause(self) -> None:
        if self._state != RUNNING:
            return
        self.timer.stop()
        self._state = PAUSED
        logger.info("Automation paused")

    def resume(self) -> None:
        if self._state != PAUSED:
            return
        self._state = RUNNING
        self.timer.start(self.interval, self.tick)
        logger.info("Automation resumed")

    def stop(self) -> None:
        self.timer.stop()
        self._state = STOPPED
        logger.info("Automation stopped")

    async def aclose(self) -> None:
        """Stop and wait until no scheduled cycle is still creating a job."""
        self.stop()
        await self.timer.drain()

    async def tick(self):
        """Timer callback: run a cycle only while running."""
        if self._state != RUNNING:
            logger.debug(f"Tick skipped (automation {self._state})")
            return None
        return await self._run_cycle("scheduled")

    async def trigger_now(self):
        """Run one cycle immediately, regardless of state; the timer is untouched."""
        return await self._run_cycle("manual")

    async def _run_cycle(self, reason: str):
        topic = self.rotation.next()
        self.stats.cycles += 1
        self.stats.last_cycle_at = datetime.now(timezone.utc)
        logger.info(f"News sync cycle ({reason}) for topic '{topic}'")
        try:
            job_id = await self.create_job(topic)
        except Exception as e:
            self.stats.failures += 1
            self.stats.last_error = str(e) or type(e).__name__
            logger.exception(f"News sync cycle for '{topic}' failed: {e}")
            return None

        self.stats.jobs_created += 1
        self.stats.last_job_id = str(job_id)
        self.stats.last_error = None
        logger.info(f"  Created job {job_id}")
        return job_id

    def status(self) -> dict:
        return {
            "state": self._state,
            "interval_seconds": self.interval,
            "topics": list(self.rotation.topics),
            "timer_armed": self.timer.armed,
            "stats": asdict(self.stats),
        }
