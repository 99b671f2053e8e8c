"""Pydantic schemas for job specs and the payloads exchanged with adapters.

Adapters translate wire formats into these models; the orchestrator only
sees these types, never raw JSON.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from autonews.errors import JobValidationError


class JobSpec(BaseModel):
    """Input for creating a job."""

    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(min_length=1, max_length=200)
    language: str = Field(default="en", pattern=r"^[a-z]{2}(-[A-Z]{2})?$")
    target_length: int = Field(default=150, ge=50, le=1000, alias="targetLength")
    auto_publish: bool = Field(default=False, alias="autoPublish")

    @field_validator("topic", mode="before")
    @classmethod
    def strip_topic(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @classmethod
    def from_input(cls, data: dict) -> "JobSpec":
        """Validate raw input, raising JobValidationError on malformed specs."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise JobValidationError(str(e)) from e


class ArticleCandidate(BaseModel):
    """One result from the article source."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    source: str = "gnews"

    @property
    def body(self) -> str:
        """Text used as the article content: description, else content, else title."""
        return self.description or self.content or self.title


class SpeechResult(BaseModel):
    """Synthesized narration. sample_rate and size are None when not reported."""

    audio_url: str
    duration: float
    format: str = "mp3"
    sample_rate: Optional[int] = None
    size: Optional[int] = None


class RenderRequest(BaseModel):
    summary_text: str
    audio_url: str
    duration: float
    images: list[str] = Field(default_factory=list)
    title: str
    theme: Optional[str] = None


class RenderResult(BaseModel):
    """Render service output. video_url is None only for an incomplete response."""

    video_url: Optional[str] = None
    subtitle_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    width: int = 0
    height: int = 0
    duration: float = 0.0
    size: int = 0


class Publication(BaseModel):
    remote_id: str
    public_url: str
    published_at: datetime


class ServiceStatus(BaseModel):
    """Health of one external service as reported on the status endpoint."""

    status: str  # operational | degraded | down
    message: Optional[str] = None
