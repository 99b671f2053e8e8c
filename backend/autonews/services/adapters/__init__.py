"""External service adapters and the registry the orchestrator is built with."""

import asyncio
import logging
from dataclasses import dataclass

from autonews.schemas.jobs import ServiceStatus
from autonews.services.adapters.base import ServiceAdapter
from autonews.services.adapters.media_service import SpeechSynthesizer, VideoRenderer
from autonews.services.adapters.news_source import GNewsSource
from autonews.services.adapters.publisher import YouTubePublisher
from autonews.services.adapters.summarizer import HuggingFaceSummarizer

logger = logging.getLogger(__name__)

__all__ = [
    "Adapters",
    "GNewsSource",
    "HuggingFaceSummarizer",
    "ServiceAdapter",
    "SpeechSynthesizer",
    "VideoRenderer",
    "YouTubePublisher",
    "build_adapters",
    "check_services",
]


@dataclass
class Adapters:
    """One adapter per external capability."""

    news_source: ServiceAdapter
    summarizer: ServiceAdapter
    synthesizer: ServiceAdapter
    renderer: ServiceAdapter
    publisher: ServiceAdapter

    def all(self) -> list[ServiceAdapter]:
        return [
            self.news_source,
            self.summarizer,
            self.synthesizer,
            self.renderer,
            self.publisher,
        ]

    async def aclose(self) -> None:
        for adapter in self.all():
            await adapter.aclose()


def build_adapters(settings) -> Adapters:
    """Construct the production adapters from application settings."""
    return Adapters(
        news_source=GNewsSource(settings.news_source),
        summarizer=HuggingFaceSummarizer(settings.summarizer),
        synthesizer=SpeechSynthesizer(settings.media_service),
        renderer=VideoRenderer(settings.media_service),
        publisher=YouTubePublisher(settings.publisher, settings.storage.tmp_dir),
    )


async def check_services(adapters: Adapters) -> dict:
    """Run every adapter health check concurrently.

    Returns a map of service name to ServiceStatus. A health check that
    raises is reported as down rather than failing the whole map.
    """
    services = adapters.all()
    results = await asyncio.gather(
        *(adapter.health_check() for adapter in services), return_exceptions=True
    )

    statuses = {}
    for adapter, result in zip(services, results):
        if isinstance(result, Exception):
            logger.warning(f"Health check for {adapter.name} raised: {result}")
            result = ServiceStatus(status="down", message=str(result) or type(result).__name__)
        statuses[adapter.name] = result
    return statuses
