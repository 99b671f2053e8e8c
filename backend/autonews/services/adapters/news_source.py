"""GNews article source adapter.

Searches recent articles for a topic. An empty result list is a valid
answer; deciding that it is fatal is the orchestrator's job.
"""

import logging
from typing import Optional

import httpx

from autonews.config import NewsSourceConfig
from autonews.errors import UpstreamBadResponse, UpstreamTimeout, UpstreamUnavailable
from autonews.schemas.jobs import ArticleCandidate, ServiceStatus
from autonews.services.adapters.base import ServiceAdapter, describe_http_error

logger = logging.getLogger(__name__)


class GNewsSource(ServiceAdapter):
    name = "gnews"

    def __init__(self, config: NewsSourceConfig, *, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config.base_url, timeout=config.timeout, client=client)
        self.api_key = config.api_key
        self.max_results = config.max_results

    async def call(self, payload: dict) -> list[ArticleCandidate]:
        return await self.fetch(payload["topic"], payload.get("language", "en"))

    async def fetch(self, topic: str, language: str = "en") -> list[ArticleCandidate]:
        """Search articles for topic in language.

        Raises:
            UpstreamUnavailable: no API key, or the key was rejected
            UpstreamTimeout: request timed out
            UpstreamBadResponse: any other error response or malformed body
        """
        if not self.api_key:
            raise UpstreamUnavailable("GNEWS API key not configured")

        params = {
            "q": topic,
            "lang": language,
            "max": self.max_results,
            "sortby": "publishedAt",
            "apikey": self.api_key,
        }
        logger.info("GET %s/search q=%r lang=%s", self.base_url, topic, language)
        try:
            response = await self.client.get("/search", params=params)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"GNews request timed out: {e}") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailable(f"GNews unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise UpstreamUnavailable(f"GNews rejected credentials: {describe_http_error(response)}")
        if response.status_code != 200:
            raise UpstreamBadResponse(f"GNews API error: {describe_http_error(response)}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamBadResponse("GNews returned a non-JSON body") from e

        articles = []
        for raw in data.get("articles") or []:
            if not raw.get("url") or not raw.get("title"):
                logger.debug("Skipping GNews article without url/title: %s", raw)
                continue
            articles.append(
                ArticleCandidate(
                    url=raw["url"],
                    title=raw["title"],
                    description=raw.get("description"),
                    content=raw.get("content"),
                    image=raw.get("image"),
                    published_at=raw.get("publishedAt"),
                )
            )
        logger.info("  %d articles for topic %r", len(articles), topic)
        return articles

    async def health_check(self) -> ServiceStatus:
        if not self.api_key:
            return ServiceStatus(status="down", message="API key not configured")
        try:
            response = await self.client.get(
                "/top-headlines", params={"max": 1, "apikey": self.api_key}, timeout=5.0
            )
        except httpx.HTTPError as e:
            return ServiceStatus(status="down", message=str(e) or type(e).__name__)
        if response.status_code == 200:
            return ServiceStatus(status="operational")
        return ServiceStatus(status="degraded", message=f"HTTP {response.status_code}")
