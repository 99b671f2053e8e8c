"""
Tests for YouTubePublisher with a stubbed YouTube API client.
"""

import json
from types import SimpleNamespace

import httpx
import pytest

from autonews.config import PublisherConfig
from autonews.errors import PublishError
from autonews.services.adapters.publisher import YouTubePublisher


class FakeInsertRequest:
    def __init__(self, responses):
        self.responses = list(responses)

    def next_chunk(self):
        step = self.responses.pop(0)
        if isinstance(step, Exception):
            raise step
        return None, step


class FakeYouTube:
    """Mimics youtube.videos().insert(...).next_chunk()."""

    def __init__(self, responses=({"id": "yt-abc123"},)):
        self.responses = responses
        self.inserts = []
        self.credentials = None

    def videos(self):
        return self

    def insert(self, part, body, media_body):
        self.inserts.append({"part": part, "body": body, "media": media_body})
        return FakeInsertRequest(self.responses)


@pytest.fixture
def token_file(tmp_path):
    path = tmp_path / "youtube-tokens.json"
    path.write_text(json.dumps({"token": "access", "refresh_token": "refresh"}))
    return path


@pytest.fixture
def job():
    return SimpleNamespace(id="job-1", topic="climate")


@pytest.fixture
def video():
    return SimpleNamespace(url_mp4="http://media.local/video/1.mp4")


def make_publisher(tmp_path, token_file, youtube, *, client_id="cid", client_secret="secret", handler=None):
    config = PublisherConfig(client_id=client_id, client_secret=client_secret, token_file=token_file)
    downloads = []

    def default_handler(request):
        downloads.append(request)
        return httpx.Response(200, content=b"\x00\x00\x00\x18ftypmp42")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler or default_handler))

    def factory(credentials):
        youtube.credentials = credentials
        return youtube

    publisher = YouTubePublisher(
        config, tmp_path / "tmp", client=client, youtube_factory=factory
    )
    return publisher, downloads


class TestPublish:
    @pytest.mark.asyncio
    async def test_uploads_and_returns_publication(self, tmp_path, token_file, job, video):
        youtube = FakeYouTube()
        publisher, downloads = make_publisher(tmp_path, token_file, youtube)

        publication = await publisher.publish(job, video)

        assert publication.remote_id == "yt-abc123"
        assert publication.public_url == "https://www.youtube.com/watch?v=yt-abc123"
        assert publication.published_at.tzinfo is not None
        assert str(downloads[0].url) == "http://media.local/video/1.mp4"

        body = youtube.inserts[0]["body"]
        assert youtube.inserts[0]["part"] == "snippet,status"
        assert body["snippet"]["title"] == "climate - AutoNews Summary"
        assert body["snippet"]["tags"] == ["climate", "news", "AI summary", "AutoNews"]
        assert body["snippet"]["categoryId"] == "25"
        assert body["status"]["privacyStatus"] == "public"

        assert youtube.credentials.refresh_token == "refresh"
        assert youtube.credentials.client_id == "cid"

    @pytest.mark.asyncio
    async def test_temp_file_removed(self, tmp_path, token_file, job, video):
        publisher, _ = make_publisher(tmp_path, token_file, FakeYouTube())
        await publisher.publish(job, video)
        assert list((tmp_path / "tmp").iterdir()) == []

    @pytest.mark.asyncio
    async def test_temp_file_removed_on_upload_failure(self, tmp_path, token_file, job, video):
        publisher, _ = make_publisher(tmp_path, token_file, FakeYouTube(responses=[{"kind": "odd"}]))
        with pytest.raises(PublishError, match="Unexpected YouTube response"):
            await publisher.publish(job, video)
        assert list((tmp_path / "tmp").iterdir()) == []

    @pytest.mark.asyncio
    async def test_download_failure(self, tmp_path, token_file, job, video):
        publisher, _ = make_publisher(
            tmp_path, token_file, FakeYouTube(),
            handler=lambda request: httpx.Response(404, text="gone"),
        )
        with pytest.raises(PublishError, match="download failed"):
            await publisher.publish(job, video)

    @pytest.mark.asyncio
    async def test_missing_client_credentials(self, tmp_path, token_file, job, video):
        youtube = FakeYouTube()
        publisher, downloads = make_publisher(tmp_path, token_file, youtube, client_id=None)
        with pytest.raises(PublishError, match="not configured"):
            await publisher.publish(job, video)
        assert downloads == []
        assert youtube.inserts == []

    @pytest.mark.asyncio
    async def test_missing_token_file(self, tmp_path, job, video):
        publisher, _ = make_publisher(tmp_path, tmp_path / "absent.json", FakeYouTube())
        with pytest.raises(PublishError, match="token file not found"):
            await publisher.publish(job, video)


class TestPublisherHealth:
    @pytest.mark.asyncio
    async def test_operational(self, tmp_path, token_file):
        publisher, _ = make_publisher(tmp_path, token_file, FakeYouTube())
        assert (await publisher.health_check()).status == "operational"

    @pytest.mark.asyncio
    async def test_needs_authentication(self, tmp_path):
        publisher, _ = make_publisher(tmp_path, tmp_path / "absent.json", FakeYouTube())
        status = await publisher.health_check()
        assert status.status == "degraded"
        assert status.message == "Authentication required"

    @pytest.mark.asyncio
    async def test_not_configured(self, tmp_path, token_file):
        publisher, _ = make_publisher(tmp_path, token_file, FakeYouTube(), client_secret=None)
        assert (await publisher.health_check()).status == "down"
