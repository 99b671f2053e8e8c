"""Job pipeline orchestrator with per-stage timing and failure persistence.

Drives one job through fetch -> summarize -> synthesize -> render, then
optionally publishes:
- Atomic claim before any work, so a job runs at most once
- Progress written at each stage boundary (10/25/50/75/100)
- Artifacts persisted as each stage finishes and kept when a later stage fails
- Stage errors are recorded on the job and never re-raised
- Progress callback interface for CLI/API integration
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from autonews.errors import NoArticlesFound, NotFound, RenderResponseIncomplete
from autonews.orchestrator.state import (
    COMPLETED,
    FAILED,
    RUNNING,
    STAGE_PROGRESS,
)
from autonews.schemas.jobs import Publication, RenderRequest
from autonews.services.fingerprint import content_fingerprint

logger = logging.getLogger(__name__)

# Defaults stored when the speech service does not report them
DEFAULT_SAMPLE_RATE = 44100
DEFAULT_AUDIO_SIZE = 0

ProgressCallback = Callable[[str, int], None]


@dataclass
class PipelineRunResult:
    """Outcome of one process() call."""

    job_id: str
    status: Optional[str]
    claimed: bool = True
    timings: Dict[str, float] = field(default_factory=dict)
    total_seconds: float = 0.0
    error: Optional[str] = None
    publication: Optional[Publication] = None
    publish_error: Optional[str] = None


class JobPipeline:
    """Runs the article -> video pipeline for single jobs.

    Args:
        store: JobStore used for every status and artifact write
        adapters: Adapters registry (news_source, summarizer, synthesizer,
            renderer, publisher)
    """

    def __init__(self, store, adapters):
        self.store = store
        self.adapters = adapters

    async def _advance(
        self,
        job_id: str,
        stage: str,
        message: str,
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        progress = STAGE_PROGRESS[stage]
        if stage != "fetch":
            # fetch progress is written by the claim itself
            await self.store.update_status(job_id, RUNNING, progress=progress)
        logger.info(f"[{job_id}] {message} ({progress}%)")
        if progress_callback:
            progress_callback(message, progress)

    async def process(
        self,
        job_id,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PipelineRunResult:
        """Run a pending job to a terminal status.

        Args:
            job_id: Id of a job in ``pending``
            progress_callback: Optional callable receiving (message, progress)

        Returns:
            PipelineRunResult; ``claimed`` is False when another run owns the
            job or it is not pending, in which case nothing was touched.

        Side effects:
            - Creates Article, Summary, Audio and Video rows in order
            - Sets status ``completed`` or ``failed`` (with error_message),
              including when the task is cancelled mid-run
            - Records publication or publish_error when auto-publish is on
        """
        job_id = str(job_id)
        try:
            claimed = await self.store.claim(job_id)
        except NotFound:
            claimed = False
        if not claimed:
            job = await self.store.get(job_id)
            status = job.status if job else None
            logger.info(f"[{job_id}] Not claimed (status: {status}); skipping")
            return PipelineRunResult(job_id=job_id, status=status, claimed=False)

        result = PipelineRunResult(job_id=job_id, status=RUNNING)
        pipeline_start = time.monotonic()
        stage = "fetch"

        try:
            job = await self.store.require(job_id)
            logger.info(
                f"[{job_id}] Starting pipeline for topic '{job.topic}' "
                f"({job.language}, target {job.target_length})"
            )

            # Step 1: Fetch article
            step_start = time.monotonic()
            await self._advance(job_id, stage, "Fetching article", progress_callback)
            candidates = await self.adapters.news_source.fetch(job.topic, job.language)
            if not candidates:
                raise NoArticlesFound(f"No articles found for topic '{job.topic}'")
            candidate = candidates[0]
            content = candidate.body
            article = await self.store.create_article(
                job_id,
                source=candidate.source,
                url=candidate.url,
                title=candidate.title,
                content=content,
                content_hash=content_fingerprint(content),
                media_url=candidate.image,
                published_at=candidate.published_at,
            )
            result.timings[stage] = time.monotonic() - step_start

            # Step 2: Summarize
            stage = "summarize"
            step_start = time.monotonic()
            await self._advance(job_id, stage, "Generating summary", progress_callback)
            summary_text = await self.adapters.summarizer.summarize(
                f"{article.title}\n\n{article.content}", job.target_length
            )
            summary = await self.store.create_summary(
                job_id,
                text=summary_text,
                word_count=len(summary_text.split()),
                language=job.language,
                quality_flags={},
            )
            result.timings[stage] = time.monotonic() - step_start

            # Step 3: Speech synthesis
            stage = "synthesize"
            step_start = time.monotonic()
            await self._advance(job_id, stage, "Converting text to speech", progress_callback)
            speech = await self.adapters.synthesizer.synthesize(summary.text, job.language)
            audio = await self.store.create_audio(
                job_id,
                url=speech.audio_url,
                duration=speech.duration,
                sample_rate=speech.sample_rate or DEFAULT_SAMPLE_RATE,
                format=speech.format,
                size=speech.size or DEFAULT_AUDIO_SIZE,
            )
            result.timings[stage] = time.monotonic() - step_start

            # Step 4: Render video
            stage = "render"
            step_start = time.monotonic()
            await self._advance(job_id, stage, "Rendering video", progress_callback)
            rendered = await self.adapters.renderer.render(
                RenderRequest(
                    summary_text=summary.text,
                    audio_url=audio.url,
                    duration=audio.duration,
                    images=[article.media_url] if article.media_url else [],
                    title=article.title,
                )
            )
            if not rendered.video_url:
                raise RenderResponseIncomplete("Video service did not return urlMp4")
            video = await self.store.create_video(
                job_id,
                url_mp4=rendered.video_url,
                url_srt=rendered.subtitle_url,
                url_thumb=rendered.thumbnail_url,
                width=rendered.width,
                height=rendered.height,
                duration=rendered.duration,
                size=rendered.size,
            )
            result.timings[stage] = time.monotonic() - step_start

            # Step 5: Finalize
            stage = "finalize"
            await self.store.update_status(job_id, COMPLETED, progress=STAGE_PROGRESS[stage])
            result.status = COMPLETED
            if progress_callback:
                progress_callback("Completed", STAGE_PROGRESS[stage])

        except asyncio.CancelledError:
            message = f"Cancelled during {stage}"
            logger.warning(f"[{job_id}] {message}; marking job failed")
            try:
                await asyncio.shield(self.store.update_status(job_id, FAILED, error=message))
            except Exception as persist_err:
                logger.error(f"[{job_id}] Could not record cancellation: {persist_err}")
            raise

        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"[{job_id}] Pipeline failed at {stage}: {type(e).__name__}: {message}")
            result.status = FAILED
            result.error = message
            result.total_seconds = time.monotonic() - pipeline_start
            try:
                await self.store.update_status(job_id, FAILED, error=message)
            except Exception as persist_err:
                logger.error(f"[{job_id}] Could not record failure: {persist_err}")
            return result

        result.total_seconds = time.monotonic() - pipeline_start
        logger.info(f"[{job_id}] Pipeline completed in {result.total_seconds:.2f}s")

        # Step 6: Auto-publish (never reverts completed)
        if job.auto_publish:
            await self._publish(job, video, result)
        return result

    async def publish(self, job_id) -> PipelineRunResult:
        """Publish an already completed job's video on demand."""
        job_id = str(job_id)
        job = await self.store.require(job_id)
        video = await self.store.get_video(job_id)
        if video is None:
            raise NotFound(f"Job {job_id} has no video to publish")
        result = PipelineRunResult(job_id=job_id, status=job.status, claimed=False)
        await self._publish(job, video, result)
        return result

    async def _publish(self, job, video, result: PipelineRunResult) -> None:
        step_start = time.monotonic()
        logger.info(f"[{job.id}] Publishing video")
        try:
            publication = await self.adapters.publisher.publish(job, video)
            await self.store.record_publication(job.id, publication)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"[{job.id}] Publish failed: {type(e).__name__}: {message}")
            result.publish_error = message
            try:
                await self.store.record_publish_error(job.id, message)
            except Exception as persist_err:
                logger.error(f"[{job.id}] Could not record publish error: {persist_err}")
        else:
            result.publication = publication
            logger.info(f"[{job.id}] Published: {publication.public_url}")
        result.timings["publish"] = time.monotonic() - step_start
