# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory database and fake adapters; nothing here
talks to a real external service.
"""

import os
from datetime import datetime, timezone
from typing import Optional

import pytest
import pytest_asyncio

# Keep the module-level engine off the working directory
os.environ.setdefault("AUTONEWS_STORAGE__DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from autonews.config import settings
from autonews.db import build_engine, build_session_factory, init_database
from autonews.errors import UpstreamTimeout
from autonews.orchestrator.scheduler import IntervalTimer
from autonews.schemas.jobs import (
    ArticleCandidate,
    JobSpec,
    Publication,
    RenderResult,
    ServiceStatus,
    SpeechResult,
)
from autonews.services.adapters import Adapters
from autonews.services.container import Services
from autonews.services.job_store import JobStore


# ---------------------------------------------------------------------------
# Fake adapters
# ---------------------------------------------------------------------------

class FakeAdapter:
    name = "fake"

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = []

    async def health_check(self) -> ServiceStatus:
        return ServiceStatus(status="operational")

    async def aclose(self) -> None:
        pass

    def _record(self, *args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error


class FakeNewsSource(FakeAdapter):
    name = "gnews"

    def __init__(self, articles=None, error=None):
        super().__init__(error)
        if articles is None:
            articles = [
                ArticleCandidate(
                    url="https://news.example.com/climate-report",
                    title="Climate report warns of record heat",
                    description="Scientists published a new climate assessment on Monday.",
                    image="https://news.example.com/climate.jpg",
                    published_at=datetime(2024, 6, 3, 9, 30, tzinfo=timezone.utc),
                )
            ]
        self.articles = articles

    async def fetch(self, topic, language="en"):
        self._record(topic, language)
        return list(self.articles)


class FakeSummarizer(FakeAdapter):
    name = "nlp"

    def __init__(self, text="A new climate assessment warns of record heat this summer.", error=None):
        super().__init__(error)
        self.text = text

    async def summarize(self, text, target_length=200):
        self._record(text, target_length)
        return self.text


class FakeSynthesizer(FakeAdapter):
    name = "tts"

    def __init__(self, result: Optional[SpeechResult] = None, error=None):
        super().__init__(error)
        self.result = result or SpeechResult(
            audio_url="http://media.local/audio/1.mp3", duration=12.5, format="mp3"
        )

    async def synthesize(self, text, language="en"):
        self._record(text, language)
        return self.result


class FakeRenderer(FakeAdapter):
    name = "video"

    def __init__(self, result: Optional[RenderResult] = None, error=None):
        super().__init__(error)
        self.result = result or RenderResult(
            video_url="http://media.local/video/1.mp4",
            subtitle_url="http://media.local/video/1.srt",
            thumbnail_url="http://media.local/video/1.jpg",
            width=1920,
            height=1080,
            duration=12.5,
            size=2_048_000,
        )

    async def render(self, request):
        self._record(request)
        return self.result


class FakePublisher(FakeAdapter):
    name = "youtube"

    async def publish(self, job, video):
        self._record(job.id, video.url_mp4)
        return Publication(
            remote_id="yt-123",
            public_url="https://www.youtube.com/watch?v=yt-123",
            published_at=datetime(2024, 6, 3, 10, 0, tzinfo=timezone.utc),
        )


class ManualTimer(IntervalTimer):
    """IntervalTimer fired by the test instead of the clock."""

    def __init__(self):
        self.callback = None
        self.interval = None
        self.start_calls = 0
        self._armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    def start(self, interval, callback):
        if self._armed:
            return
        self.start_calls += 1
        self.interval = interval
        self.callback = callback
        self._armed = True

    def stop(self):
        self._armed = False

    async def fire(self):
        """Deliver one tick, even if the timer was stopped after arming."""
        if self.callback is None:
            return None
        return await self.callback()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with the schema created."""
    eng = build_engine("sqlite+aiosqlite:///:memory:")
    await init_database(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def store(engine):
    return JobStore(build_session_factory(engine))


@pytest.fixture
def fakes():
    """Fake adapters keyed by role, so tests can reconfigure one before use."""
    return {
        "news_source": FakeNewsSource(),
        "summarizer": FakeSummarizer(),
        "synthesizer": FakeSynthesizer(),
        "renderer": FakeRenderer(),
        "publisher": FakePublisher(),
    }


@pytest.fixture
def adapters(fakes):
    return Adapters(**fakes)


@pytest.fixture
def timer():
    return ManualTimer()


@pytest_asyncio.fixture
async def services(store, adapters, timer):
    built = Services.build(settings, store=store, adapters=adapters, timer=timer)
    yield built
    await built.aclose()


@pytest.fixture
def climate_spec():
    return JobSpec.from_input(
        {"topic": "climate", "language": "en", "targetLength": 150, "autoPublish": False}
    )


@pytest.fixture
def timeout_error():
    return UpstreamTimeout("media service timed out after 60s")
