"""Speech synthesis and video render adapters for the media service.

Both capabilities live behind the same HTTP service (``/tts`` and
``/render``) but are separate adapters so each keeps its own timeout.
"""

import logging
from typing import Optional

import httpx

from autonews.config import MediaServiceConfig
from autonews.errors import (
    RenderResponseIncomplete,
    UpstreamBadResponse,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from autonews.schemas.jobs import RenderRequest, RenderResult, ServiceStatus, SpeechResult
from autonews.services.adapters.base import ServiceAdapter, describe_http_error

logger = logging.getLogger(__name__)


class _MediaServiceAdapter(ServiceAdapter):
    """Shared request/health logic for the media service endpoints."""

    def __init__(
        self,
        config: MediaServiceConfig,
        timeout: float,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config.service_url, timeout=timeout, client=client)
        self.config = config

    async def _post(self, path: str, payload: dict, label: str) -> dict:
        try:
            response = await self.client.post(path, json=payload, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"{label} timed out after {self.timeout:.0f}s") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailable(f"{label} unreachable: {e}") from e

        if not response.is_success:
            raise UpstreamBadResponse(f"{label} error: {describe_http_error(response)}")
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamBadResponse(f"{label} returned a non-JSON body") from e

    async def health_check(self) -> ServiceStatus:
        try:
            response = await self.client.get("/health", timeout=self.config.health_timeout)
        except httpx.HTTPError as e:
            return ServiceStatus(status="down", message=str(e) or type(e).__name__)
        if response.is_success:
            return ServiceStatus(status="operational")
        return ServiceStatus(status="degraded", message=f"HTTP {response.status_code}")


class SpeechSynthesizer(_MediaServiceAdapter):
    name = "tts"

    def __init__(self, config: MediaServiceConfig, *, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config, config.tts_timeout, client=client)

    async def call(self, payload: dict) -> SpeechResult:
        return await self.synthesize(payload["text"], payload.get("language", "en"))

    async def synthesize(self, text: str, language: str = "en") -> SpeechResult:
        """Narrate text; returns the audio URL and its duration in seconds."""
        logger.info(f"TTS: {len(text)} chars ({language})")
        result = await self._post(
            "/tts",
            {
                "text": text,
                "language": language,
                "voice": self.config.voice,
                "speed": self.config.speed,
                "format": self.config.audio_format,
            },
            "TTS service",
        )
        if not result.get("audio_url") or result.get("duration") is None:
            raise UpstreamBadResponse("TTS service did not return audio_url and duration")

        return SpeechResult(
            audio_url=result["audio_url"],
            duration=float(result["duration"]),
            format=result.get("format") or self.config.audio_format,
            sample_rate=result.get("sample_rate"),
            size=result.get("size"),
        )


class VideoRenderer(_MediaServiceAdapter):
    name = "video"

    def __init__(self, config: MediaServiceConfig, *, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config, config.render_timeout, client=client)

    async def call(self, payload: RenderRequest) -> RenderResult:
        return await self.render(payload)

    async def render(self, request: RenderRequest) -> RenderResult:
        """Render the narrated video.

        Raises:
            RenderResponseIncomplete: the service answered without urlMp4
        """
        logger.info(f"Render: '{request.title}' ({request.duration:.1f}s audio)")
        result = await self._post(
            "/render",
            {
                "summary": request.summary_text,
                "audioUrl": request.audio_url,
                "duration": request.duration,
                "images": request.images,
                "title": request.title,
                "theme": request.theme,
            },
            "Video service",
        )
        if not result.get("urlMp4"):
            logger.error(f"Render response missing urlMp4: {result}")
            raise RenderResponseIncomplete("Video service did not return urlMp4")

        return RenderResult(
            video_url=result["urlMp4"],
            subtitle_url=result.get("urlSrt") or None,
            thumbnail_url=result.get("urlThumb"),
            width=result.get("width") or 0,
            height=result.get("height") or 0,
            duration=result.get("duration") or request.duration,
            size=result.get("size") or 0,
        )
