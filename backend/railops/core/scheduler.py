# backend/railops/core/scheduler.py

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from railops.core.config import Settings, settings as default_settings
from railops.core.state import RailwayState

logger = logging.getLogger(__name__)


# ============================================================
# PERIODIC JOB
# ============================================================

class PeriodicJob:
    def __init__(self, name: str, interval: float, action: Callable[[], Awaitable[object]]):
        self.name = name
        self.interval = interval
        self.action = action
        self.task: Optional[asyncio.Task] = None
        self.running = False
        self.ticks = 0

    async def _run_loop(self):
        try:
            while self.running:
                await asyncio.sleep(self.interval)
                try:
                    await self.action()
                    self.ticks += 1
                except Exception as ex:
                    # one failed tick must not stop the job
                    logger.error(f"Error in background job {self.name}: {ex}", exc_info=True)

        except asyncio.CancelledError:
            pass

        finally:
            self.running = False


# ============================================================
# BACKGROUND TICKER
# ============================================================

class BackgroundTicker:
    """Runs the weather, safety and AI recompute passes on fixed intervals."""

    def __init__(self, state: RailwayState, config: Optional[Settings] = None):
        config = config or default_settings
        self.jobs: Dict[str, PeriodicJob] = {}
        for name, interval, action in (
            ("weather", config.WEATHER_UPDATE_INTERVAL_SECONDS, state.tick_weather),
            ("safety", config.SAFETY_CHECK_INTERVAL_SECONDS, state.tick_safety),
            ("analysis", config.AI_ANALYSIS_INTERVAL_SECONDS, state.tick_analysis),
        ):
            if interval > 0:
                self.jobs[name] = PeriodicJob(name, interval, action)

    def start(self):
        for job in self.jobs.values():
            if job.running:
                continue
            job.running = True
            job.task = asyncio.create_task(job._run_loop())
            logger.info(f"Background job {job.name} started (every {job.interval}s)")

    async def stop(self):
        tasks: List[asyncio.Task] = []
        for job in self.jobs.values():
            job.running = False
            if job.task:
                job.task.cancel()
                tasks.append(job.task)
                job.task = None
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info(f"Stopped {len(tasks)} background job(s)")
