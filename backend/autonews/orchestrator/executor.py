"""In-process executor that runs pipeline jobs as background asyncio tasks.

submit() returns as soon as the task is scheduled. The executor keeps one
task per job id; the store's atomic claim is what guarantees a job runs only
once across executors and processes.
"""

import asyncio
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class JobExecutor:
    """Tracks in-flight pipeline tasks.

    Args:
        pipeline: JobPipeline whose process() is launched per job
    """

    def __init__(self, pipeline):
        self.pipeline = pipeline
        self._tasks: Dict[str, asyncio.Task] = {}

    def submit(self, job_id) -> asyncio.Task:
        """Launch processing for job_id without waiting for it.

        Submitting a job that is already in flight returns the existing task.
        """
        job_id = str(job_id)
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            logger.info(f"Job {job_id} already in flight; not resubmitting")
            return existing

        task = asyncio.create_task(self._run(job_id), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._forget(job_id, t))
        logger.info(f"Submitted job {job_id} ({len(self._tasks)} in flight)")
        return task

    async def _run(self, job_id: str):
        try:
            return await self.pipeline.process(job_id)
        except asyncio.CancelledError:
            logger.warning(f"Job {job_id} task cancelled")
            raise
        except Exception:
            # process() records stage failures itself; this only catches store outages
            logger.exception(f"Job {job_id} task crashed")
            return None

    def _forget(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

    def active_jobs(self) -> list[str]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    def is_active(self, job_id) -> bool:
        task = self._tasks.get(str(job_id))
        return task is not None and not task.done()

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for every in-flight task to finish."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        if not tasks:
            return
        logger.info(f"Draining {len(tasks)} in-flight job(s)")
        await asyncio.wait(tasks, timeout=timeout)

    async def shutdown(self, timeout: Optional[float] = 30.0) -> None:
        """Drain with a timeout, then cancel whatever is still running."""
        await self.drain(timeout=timeout)
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} job task(s) at shutdown")
            await asyncio.gather(*pending, return_exceptions=True)
