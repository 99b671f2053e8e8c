"""Durable job and artifact store.

The store is the only shared mutable resource in the system. Every public
method opens its own short-lived session, so no session or lock is held
across adapter calls. Invariants enforced here:

- progress never decreases and terminal statuses are never overwritten
- each job has at most one Article, Summary, Audio and Video, created in that
  order
- claim() is the single atomic pending -> running step; only the caller that
  wins it may run the pipeline for that job
"""

import logging
import uuid
from typing import Optional, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autonews.db.models import Article, Audio, Job, Summary, Video
from autonews.errors import ArtifactOrderError, InvalidTransition, NotFound
from autonews.orchestrator.state import (
    JOB_STATES,
    PENDING,
    RUNNING,
    STAGE_PROGRESS,
    can_transition,
    is_terminal,
)
from autonews.schemas.jobs import JobSpec, Publication

logger = logging.getLogger(__name__)

JobId = Union[str, uuid.UUID]

# Artifacts in creation order; each requires its predecessor
ARTIFACT_ORDER = (Article, Summary, Audio, Video)

MAX_PAGE_SIZE = 100


def _coerce_id(job_id: JobId) -> uuid.UUID:
    if isinstance(job_id, uuid.UUID):
        return job_id
    try:
        return uuid.UUID(str(job_id))
    except ValueError:
        raise NotFound(f"Job {job_id} not found")


class JobStore:
    """Async job repository backed by SQLAlchemy."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_factory is None:
            from autonews.db.engine import async_session

            session_factory = async_session
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def create(self, spec: JobSpec) -> Job:
        async with self._session_factory() as session:
            job = Job(
                topic=spec.topic,
                language=spec.language,
                target_length=spec.target_length,
                auto_publish=spec.auto_publish,
                status=PENDING,
                progress=0,
            )
            session.add(job)
            await session.commit()
            await session.refresh(job)
            logger.info(f"Created job {job.id} for topic '{job.topic}' ({job.language})")
            return job

    async def get(self, job_id: JobId) -> Optional[Job]:
        try:
            key = _coerce_id(job_id)
        except NotFound:
            return None
        async with self._session_factory() as session:
            return await session.get(Job, key)

    async def require(self, job_id: JobId) -> Job:
        """Like get(), but raises NotFound for a missing job."""
        job = await self.get(job_id)
        if job is None:
            raise NotFound(f"Job {job_id} not found")
        return job

    async def list(
        self,
        page: int = 1,
        limit: int = 10,
        filters: Optional[dict] = None,
    ) -> list[Job]:
        """List jobs newest first.

        Args:
            page: 1-based page number
            limit: Page size, clamped to 1..100
            filters: Optional ``status`` (exact) and ``topic`` (case-insensitive
                substring) filters
        """
        page = max(1, page)
        limit = max(1, min(MAX_PAGE_SIZE, limit))
        filters = filters or {}

        stmt = select(Job)
        if filters.get("status"):
            stmt = stmt.where(Job.status == filters["status"])
        if filters.get("topic"):
            stmt = stmt.where(Job.topic.icontains(filters["topic"], autoescape=True))
        stmt = stmt.order_by(Job.created_at.desc()).offset((page - 1) * limit).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def update_status(
        self,
        job_id: JobId,
        status: str,
        error: Optional[str] = None,
        progress: Optional[int] = None,
    ) -> Job:
        """Move a job through the state machine.

        Raises:
            NotFound: job does not exist
            InvalidTransition: the status change is not allowed, the job is
                already terminal, or progress would decrease
        """
        if status not in JOB_STATES:
            raise InvalidTransition(f"Unknown status '{status}'")

        key = _coerce_id(job_id)
        async with self._session_factory() as session:
            job = await session.get(Job, key)
            if job is None:
                raise NotFound(f"Job {job_id} not found")

            if is_terminal(job.status):
                raise InvalidTransition(
                    f"Job {job_id} is already {job.status}; cannot set '{status}'"
                )
            if not can_transition(job.status, status):
                raise InvalidTransition(
                    f"Job {job_id}: transition {job.status} -> {status} not allowed"
                )
            if progress is not None:
                if progress < job.progress:
                    raise InvalidTransition(
                        f"Job {job_id}: progress cannot decrease ({job.progress} -> {progress})"
                    )
                job.progress = progress

            job.status = status
            if error is not None:
                job.error_message = error

            await session.commit()
            await session.refresh(job)
            return job

    async def claim(self, job_id: JobId, progress: int = STAGE_PROGRESS["fetch"]) -> bool:
        """Atomically move a pending job to running.

        Returns True if this caller won the claim. A job that is missing or
        not pending is never claimed.
        """
        key = _coerce_id(job_id)
        async with self._session_factory() as session:
            result = await session.execute(
                update(Job)
                .where(Job.id == key, Job.status == PENDING)
                .values(status=RUNNING, progress=progress)
            )
            await session.commit()
            won = result.rowcount == 1
        if not won:
            logger.warning(f"Claim for job {job_id} lost (missing or not pending)")
        return won

    async def delete(self, job_id: JobId) -> None:
        """Delete a job together with all of its artifacts."""
        key = _coerce_id(job_id)
        async with self._session_factory() as session:
            job = await session.get(Job, key)
            if job is None:
                raise NotFound(f"Job {job_id} not found")
            for model in reversed(ARTIFACT_ORDER):
                await session.execute(delete(model).where(model.job_id == key))
            await session.delete(job)
            await session.commit()
        logger.info(f"Deleted job {job_id}")

    async def record_publication(self, job_id: JobId, publication: Publication) -> Job:
        key = _coerce_id(job_id)
        async with self._session_factory() as session:
            job = await session.get(Job, key)
            if job is None:
                raise NotFound(f"Job {job_id} not found")
            job.publication = publication.model_dump(mode="json")
            job.publish_error = None
            await session.commit()
            await session.refresh(job)
            return job

    async def record_publish_error(self, job_id: JobId, message: str) -> Job:
        """Store a publish failure message. Status is left untouched."""
        key = _coerce_id(job_id)
        async with self._session_factory() as session:
            job = await session.get(Job, key)
            if job is None:
                raise NotFound(f"Job {job_id} not found")
            job.publish_error = message
            await session.commit()
            await session.refresh(job)
            return job

    async def metrics(self) -> dict:
        """Job counts per status plus published total."""
        async with self._session_factory() as session:
            rows = await session.execute(
                select(Job.status, func.count(Job.id)).group_by(Job.status)
            )
            by_status = {status: 0 for status in JOB_STATES}
            for status, count in rows.all():
                by_status[status] = count
            published = await session.scalar(
                select(func.count(Job.id)).where(Job.publication.is_not(None))
            )
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "published": published or 0,
        }

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def _add_artifact(self, model, job_id: JobId, **fields):
        key = _coerce_id(job_id)
        name = model.__tablename__
        async with self._session_factory() as session:
            if await session.get(Job, key) is None:
                raise NotFound(f"Job {job_id} not found")

            existing = await session.scalar(select(model.id).where(model.job_id == key))
            if existing is not None:
                raise ArtifactOrderError(f"Job {job_id} already has a {name} record")

            position = ARTIFACT_ORDER.index(model)
            if position > 0:
                predecessor = ARTIFACT_ORDER[position - 1]
                found = await session.scalar(
                    select(predecessor.id).where(predecessor.job_id == key)
                )
                if found is None:
                    raise ArtifactOrderError(
                        f"Job {job_id}: cannot create {name} before {predecessor.__tablename__}"
                    )

            artifact = model(job_id=key, **fields)
            session.add(artifact)
            await session.commit()
            await session.refresh(artifact)
            return artifact

    async def _get_artifact(self, model, job_id: JobId):
        try:
            key = _coerce_id(job_id)
        except NotFound:
            return None
        async with self._session_factory() as session:
            result = await session.execute(select(model).where(model.job_id == key))
            return result.scalar_one_or_none()

    async def create_article(
        self,
        job_id: JobId,
        *,
        url: str,
        title: str,
        content: str,
        content_hash: str,
        media_url: Optional[str] = None,
        published_at=None,
        source: str = "gnews",
    ) -> Article:
        return await self._add_artifact(
            Article,
            job_id,
            source=source,
            url=url,
            title=title,
            content=content,
            content_hash=content_hash,
            media_url=media_url,
            published_at=published_at,
        )

    async def create_summary(
        self,
        job_id: JobId,
        *,
        text: str,
        word_count: int,
        language: str,
        quality_flags: Optional[dict] = None,
    ) -> Summary:
        return await self._add_artifact(
            Summary,
            job_id,
            text=text,
            word_count=word_count,
            language=language,
            quality_flags=quality_flags or {},
        )

    async def create_audio(
        self,
        job_id: JobId,
        *,
        url: str,
        duration: float,
        sample_rate: int,
        format: str,
        size: int,
    ) -> Audio:
        return await self._add_artifact(
            Audio,
            job_id,
            url=url,
            duration=duration,
            sample_rate=sample_rate,
            format=format,
            size=size,
        )

    async def create_video(
        self,
        job_id: JobId,
        *,
        url_mp4: str,
        url_thumb: Optional[str],
        width: int,
        height: int,
        duration: float,
        size: int,
        url_srt: Optional[str] = None,
    ) -> Video:
        return await self._add_artifact(
            Video,
            job_id,
            url_mp4=url_mp4,
            url_srt=url_srt,
            url_thumb=url_thumb,
            width=width,
            height=height,
            duration=duration,
            size=size,
        )

    async def get_article(self, job_id: JobId) -> Optional[Article]:
        return await self._get_artifact(Article, job_id)

    async def get_summary(self, job_id: JobId) -> Optional[Summary]:
        return await self._get_artifact(Summary, job_id)

    async def get_audio(self, job_id: JobId) -> Optional[Audio]:
        return await self._get_artifact(Audio, job_id)

    async def get_video(self, job_id: JobId) -> Optional[Video]:
        return await self._get_artifact(Video, job_id)

    async def get_artifacts(self, job_id: JobId) -> dict:
        """All artifacts of a job keyed by table name; missing ones are None."""
        return {
            model.__tablename__: await self._get_artifact(model, job_id)
            for model in ARTIFACT_ORDER
        }
