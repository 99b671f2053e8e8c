"""API route handlers and Pydantic response schemas."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel

from autonews.orchestrator.state import COMPLETED
from autonews.schemas.jobs import JobSpec, Publication, ServiceStatus
from autonews.services.adapters import check_services
from autonews.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ============================================================================
# Response Schemas
# ============================================================================

class JobResponse(BaseModel):
    """Job row as returned by list/create endpoints."""
    id: str
    topic: str
    language: str
    target_length: int
    auto_publish: bool
    status: str
    progress: int
    error_message: Optional[str] = None
    publication: Optional[dict] = None
    publish_error: Optional[str] = None
    created_at: str
    updated_at: str


class ArticleResponse(BaseModel):
    source: str
    url: str
    title: str
    content: str
    content_hash: str
    media_url: Optional[str] = None
    published_at: Optional[str] = None


class SummaryResponse(BaseModel):
    text: str
    word_count: int
    language: str
    quality_flags: dict


class AudioResponse(BaseModel):
    url: str
    duration: float
    sample_rate: int
    format: str
    size: int


class VideoResponse(BaseModel):
    url_mp4: str
    url_srt: Optional[str] = None
    url_thumb: Optional[str] = None
    width: int
    height: int
    duration: float
    size: int


class JobDetail(JobResponse):
    """Job plus whichever artifacts exist so far."""
    article: Optional[ArticleResponse] = None
    summary: Optional[SummaryResponse] = None
    audio: Optional[AudioResponse] = None
    video: Optional[VideoResponse] = None


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    page: int
    limit: int


class PublishResponse(BaseModel):
    job_id: str
    publication: Publication


class SyncResponse(BaseModel):
    message: str
    job_id: str


class AutomationResponse(BaseModel):
    message: str
    state: str


class SystemStatusResponse(BaseModel):
    services: dict[str, ServiceStatus]
    automation: dict
    active_jobs: list[str]


# ============================================================================
# Helpers
# ============================================================================

def get_services(request: Request) -> Services:
    return request.app.state.services


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _job_fields(job) -> dict:
    return dict(
        id=str(job.id),
        topic=job.topic,
        language=job.language,
        target_length=job.target_length,
        auto_publish=job.auto_publish,
        status=job.status,
        progress=job.progress,
        error_message=job.error_message,
        publication=job.publication,
        publish_error=job.publish_error,
        created_at=job.created_at.isoformat(),
        updated_at=job.updated_at.isoformat(),
    )


def _job_detail(job, artifacts: dict) -> JobDetail:
    article = artifacts["articles"]
    summary = artifacts["summaries"]
    audio = artifacts["audio"]
    video = artifacts["videos"]
    return JobDetail(
        **_job_fields(job),
        article=ArticleResponse(
            source=article.source,
            url=article.url,
            title=article.title,
            content=article.content,
            content_hash=article.content_hash,
            media_url=article.media_url,
            published_at=_iso(article.published_at),
        ) if article else None,
        summary=SummaryResponse(
            text=summary.text,
            word_count=summary.word_count,
            language=summary.language,
            quality_flags=summary.quality_flags or {},
        ) if summary else None,
        audio=AudioResponse(
            url=audio.url,
            duration=audio.duration,
            sample_rate=audio.sample_rate,
            format=audio.format,
            size=audio.size,
        ) if audio else None,
        video=VideoResponse(
            url_mp4=video.url_mp4,
            url_srt=video.url_srt,
            url_thumb=video.url_thumb,
            width=video.width,
            height=video.height,
            duration=video.duration,
            size=video.size,
        ) if video else None,
    )


def _require_controller(services: Services):
    if services.controller is None:
        raise HTTPException(status_code=503, detail="Automation is not configured")
    return services.controller


# ============================================================================
# Endpoint Handlers
# ============================================================================

@router.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/metrics")
async def metrics(services: Services = Depends(get_services)):
    """Job counts by status plus executor and automation state."""
    counts = await services.store.metrics()
    counts["active_jobs"] = len(services.executor.active_jobs())
    counts["automation"] = services.controller.state if services.controller else "disabled"
    return counts


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    topic: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """List jobs newest first, optionally filtered by status and topic substring."""
    jobs = await services.store.list(
        page=page, limit=limit, filters={"status": status, "topic": topic}
    )
    return JobListResponse(
        jobs=[JobResponse(**_job_fields(job)) for job in jobs],
        page=page,
        limit=limit,
    )


@router.get("/jobs/{job_id}", response_model=JobDetail)
async def get_job(job_id: str, services: Services = Depends(get_services)):
    job = await services.store.require(job_id)
    artifacts = await services.store.get_artifacts(job_id)
    return _job_detail(job, artifacts)


@router.post("/jobs", status_code=201, response_model=JobResponse)
async def create_job(request: JobSpec, services: Services = Depends(get_services)):
    """Create a job and start processing it in the background.

    Returns 201 with the pending job; poll GET /api/jobs/{id} for progress.
    """
    job = await services.create_job(request)
    logger.info(f"Job {job.id} created via API for topic '{job.topic}'")
    return JobResponse(**_job_fields(job))


@router.post("/jobs/{job_id}/publish", response_model=PublishResponse)
async def publish_job(job_id: str, services: Services = Depends(get_services)):
    """Publish a completed job's video.

    Returns 409 unless the job is completed and 404 when it has no video.
    A publish failure is recorded on the job and returned as 502.
    """
    job = await services.store.require(job_id)
    if job.status != COMPLETED:
        raise HTTPException(
            status_code=409,
            detail=f"Only completed jobs can be published, got '{job.status}'",
        )
    if await services.store.get_video(job_id) is None:
        raise HTTPException(status_code=404, detail="Video not found")

    result = await services.pipeline.publish(job_id)
    if result.publication is None:
        raise HTTPException(status_code=502, detail=f"Publish failed: {result.publish_error}")
    return PublishResponse(job_id=str(job.id), publication=result.publication)


@router.delete("/jobs/{job_id}", status_code=204)
async def delete_job(job_id: str, services: Services = Depends(get_services)):
    """Delete a job and its artifacts. Returns 409 while the job is being processed."""
    await services.store.require(job_id)
    if services.executor.is_active(job_id):
        raise HTTPException(status_code=409, detail="Job is still being processed")
    await services.store.delete(job_id)
    return Response(status_code=204)


@router.get("/system/status", response_model=SystemStatusResponse)
async def system_status(services: Services = Depends(get_services)):
    statuses = await check_services(services.adapters)
    automation = services.controller.status() if services.controller else {"state": "disabled"}
    return SystemStatusResponse(
        services=statuses,
        automation=automation,
        active_jobs=services.executor.active_jobs(),
    )


@router.post("/system/sync", response_model=SyncResponse)
async def trigger_sync(services: Services = Depends(get_services)):
    """Run one news sync cycle now, even while automation is paused."""
    controller = _require_controller(services)
    job_id = await controller.trigger_now()
    if job_id is None:
        raise HTTPException(
            status_code=502, detail=f"News sync failed: {controller.stats.last_error}"
        )
    return SyncResponse(message="News sync triggered successfully", job_id=str(job_id))


@router.post("/system/pause", response_model=AutomationResponse)
async def pause_automation(services: Services = Depends(get_services)):
    controller = _require_controller(services)
    controller.pause()
    return AutomationResponse(message="Automation paused successfully", state=controller.state)


@router.post("/system/resume", response_model=AutomationResponse)
async def resume_automation(services: Services = Depends(get_services)):
    controller = _require_controller(services)
    controller.resume()
    return AutomationResponse(message="Automation resumed successfully", state=controller.state)
