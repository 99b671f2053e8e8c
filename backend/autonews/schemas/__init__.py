"""Pydantic schemas for AutoNews."""

from autonews.schemas.jobs import (
    ArticleCandidate,
    JobSpec,
    Publication,
    RenderRequest,
    RenderResult,
    ServiceStatus,
    SpeechResult,
)

__all__ = [
    "ArticleCandidate",
    "JobSpec",
    "Publication",
    "RenderRequest",
    "RenderResult",
    "ServiceStatus",
    "SpeechResult",
]
