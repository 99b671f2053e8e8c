"""Wiring of store, adapters, pipeline, executor and automation controller.

Both the API and the CLI build one Services object and go through it, so a
job created from either surface is claimed and run the same way.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from autonews.db.models import Job
from autonews.orchestrator.executor import JobExecutor
from autonews.orchestrator.pipeline import JobPipeline
from autonews.orchestrator.scheduler import AutomationController, IntervalTimer
from autonews.schemas.jobs import JobSpec
from autonews.services.adapters import Adapters, build_adapters
from autonews.services.job_store import JobStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: JobStore
    adapters: Adapters
    pipeline: JobPipeline
    executor: JobExecutor
    controller: Optional[AutomationController] = None
    sync_language: str = "en"
    sync_target_length: int = 150
    sync_auto_publish: bool = False

    @classmethod
    def build(
        cls,
        settings,
        *,
        store: Optional[JobStore] = None,
        adapters: Optional[Adapters] = None,
        timer: Optional[IntervalTimer] = None,
    ) -> "Services":
        """Assemble services from settings; tests pass their own store/adapters/timer."""
        store = store or JobStore()
        adapters = adapters or build_adapters(settings)
        pipeline = JobPipeline(store, adapters)
        automation = settings.automation
        services = cls(
            store=store,
            adapters=adapters,
            pipeline=pipeline,
            executor=JobExecutor(pipeline),
            sync_language=automation.language,
            sync_target_length=automation.target_length,
            sync_auto_publish=automation.auto_publish,
        )
        services.controller = AutomationController(
            services.sync_topic,
            automation.topics,
            timer=timer,
            interval=automation.interval_seconds,
        )
        return services

    async def create_job(self, spec: JobSpec) -> Job:
        """Persist a new job and hand it to the executor; returns immediately."""
        job = await self.store.create(spec)
        self.executor.submit(job.id)
        return job

    async def sync_topic(self, topic: str) -> str:
        """Automation cycle body: one job for topic with the sync defaults."""
        spec = JobSpec(
            topic=topic,
            language=self.sync_language,
            target_length=self.sync_target_length,
            auto_publish=self.sync_auto_publish,
        )
        job = await self.create_job(spec)
        return str(job.id)

    async def aclose(self) -> None:
        if self.controller is not None:
            await self.controller.aclose()
        await self.executor.shutdown()
        await self.adapters.aclose()
        logger.info("Services closed")
