"""YouTube publishing adapter.

Downloads the rendered MP4 to the tmp dir and uploads it with the YouTube
Data API v3 resumable upload. Credentials come from an authorized-user token
file (access + refresh token) written by an out-of-band OAuth consent flow.
The Google client is synchronous, so uploads run in a worker thread.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from autonews.config import PublisherConfig
from autonews.errors import PublishError
from autonews.schemas.jobs import Publication, ServiceStatus
from autonews.services.adapters.base import ServiceAdapter, describe_http_error

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/youtube",
]

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

MAX_CHUNK_ERRORS = 3


def _build_youtube(credentials: Credentials):
    return build("youtube", "v3", credentials=credentials, cache_discovery=False)


class YouTubePublisher(ServiceAdapter):
    name = "youtube"

    def __init__(
        self,
        config: PublisherConfig,
        tmp_dir: Path,
        *,
        client: Optional[httpx.AsyncClient] = None,
        youtube_factory: Callable[[Credentials], Any] = _build_youtube,
    ):
        super().__init__("https://www.googleapis.com", timeout=300.0, client=client)
        self.config = config
        self.tmp_dir = Path(tmp_dir)
        self._youtube_factory = youtube_factory
        self._youtube = None

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.config.client_id and self.config.client_secret)

    def is_authenticated(self) -> bool:
        return self.config.token_file.exists()

    def _load_credentials(self) -> Credentials:
        if not self.has_client_credentials:
            raise PublishError("YouTube OAuth credentials not configured")
        if not self.is_authenticated():
            raise PublishError(f"YouTube token file not found: {self.config.token_file}")

        try:
            info = json.loads(self.config.token_file.read_text())
        except (OSError, ValueError) as e:
            raise PublishError(f"Could not load YouTube tokens: {e}") from e

        # Token files written by the consent flow may omit the client pair
        info.setdefault("client_id", self.config.client_id)
        info.setdefault("client_secret", self.config.client_secret)
        try:
            return Credentials.from_authorized_user_info(info, SCOPES)
        except ValueError as e:
            raise PublishError(f"Invalid YouTube token file: {e}") from e

    def _get_youtube(self):
        if self._youtube is None:
            self._youtube = self._youtube_factory(self._load_credentials())
            logger.info("YouTube API client ready")
        return self._youtube

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def call(self, payload: dict) -> Publication:
        return await self.publish(payload["job"], payload["video"])

    async def publish(self, job, video) -> Publication:
        """Upload a job's rendered video.

        Args:
            job: Job row (topic and id are used for metadata)
            video: Video row; url_mp4 is downloaded and uploaded

        Raises:
            PublishError: on any download, credential or upload failure
        """
        title = f"{job.topic} - AutoNews Summary"
        description = f"Automated news summary about {job.topic}\n\nGenerated by AutoNews AI"
        tags = [job.topic, "news", "AI summary", "AutoNews"]

        logger.info(f"Publishing job {job.id} to YouTube: '{title}'")
        self._get_youtube()
        video_path = await self._download(video.url_mp4, job.id)
        try:
            video_id = await asyncio.to_thread(
                self._upload, video_path, title, description, tags
            )
        finally:
            video_path.unlink(missing_ok=True)

        public_url = WATCH_URL.format(video_id=video_id)
        logger.info(f"  Uploaded {video_id}: {public_url}")
        return Publication(
            remote_id=video_id,
            public_url=public_url,
            published_at=datetime.now(timezone.utc),
        )

    async def _download(self, url: str, job_id) -> Path:
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        path = self.tmp_dir / f"upload_{job_id}_{uuid.uuid4().hex[:8]}.mp4"
        try:
            async with self.client.stream("GET", url) as response:
                if not response.is_success:
                    await response.aread()
                    raise PublishError(
                        f"Video download failed: {describe_http_error(response)}"
                    )
                with open(path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            path.unlink(missing_ok=True)
            raise PublishError(f"Video download failed: {e}") from e
        except PublishError:
            path.unlink(missing_ok=True)
            raise

        size_mb = path.stat().st_size / 1024 / 1024
        logger.info(f"  Downloaded {url} ({size_mb:.2f} MB)")
        return path

    def _upload(self, video_path: Path, title: str, description: str, tags: list) -> str:
        """Blocking resumable upload; returns the remote video id."""
        body = {
            "snippet": {
                "title": title,
                "description": description,
                "tags": tags,
                "categoryId": self.config.category_id,
            },
            "status": {"privacyStatus": self.config.privacy_status},
        }
        media = MediaFileUpload(
            str(video_path), chunksize=-1, resumable=True, mimetype="video/mp4"
        )

        try:
            request = self._get_youtube().videos().insert(
                part=",".join(body.keys()), body=body, media_body=media
            )
        except HttpError as e:
            raise PublishError(f"YouTube upload rejected: {e}") from e

        response = None
        errors = 0
        while response is None:
            try:
                status, response = request.next_chunk()
            except HttpError as e:
                errors += 1
                if errors > MAX_CHUNK_ERRORS:
                    raise PublishError(f"YouTube upload failed after {errors} errors: {e}") from e
                logger.warning(f"  Upload chunk error ({errors}/{MAX_CHUNK_ERRORS}): {e}")
                continue
            if response is None and status is not None:
                logger.debug(f"  Upload progress: {int(status.progress() * 100)}%")

        if "id" not in response:
            raise PublishError(f"Unexpected YouTube response: {response}")
        return response["id"]

    async def health_check(self) -> ServiceStatus:
        if not self.has_client_credentials:
            return ServiceStatus(status="down", message="OAuth credentials not configured")
        if not self.is_authenticated():
            return ServiceStatus(status="degraded", message="Authentication required")
        return ServiceStatus(status="operational")
