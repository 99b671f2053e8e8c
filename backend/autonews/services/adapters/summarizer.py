"""HuggingFace inference summarizer with escalating-timeout retries.

Retry policy:
- up to ``max_attempts`` attempts (5 by default)
- attempt n gets a request timeout of n * base_timeout
- only a gateway timeout (HTTP 504) or a client-side timeout is retried,
  after waiting n * backoff_seconds (linear, not exponential)
- any other failure is raised immediately; once attempts run out the last
  observed error is raised

Health checks are cached for ``health_cache_seconds``. A check that times
out falls back to the last cached answer so the status endpoint stays
available while the model is slow.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from autonews.config import SummarizerConfig
from autonews.errors import SummarizerError, SummarizerTimeout, SummarizerUnavailable
from autonews.schemas.jobs import ServiceStatus
from autonews.services.adapters.base import ServiceAdapter, describe_http_error

logger = logging.getLogger(__name__)


class HuggingFaceSummarizer(ServiceAdapter):
    name = "nlp"

    def __init__(
        self,
        config: SummarizerConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        headers = {"Authorization": f"Bearer {config.api_key}"} if config.api_key else {}
        super().__init__(
            config.base_url, timeout=config.base_timeout, headers=headers, client=client
        )
        self.api_key = config.api_key
        self.model = config.model
        self.max_attempts = config.max_attempts
        self.base_timeout = config.base_timeout
        self.backoff_seconds = config.backoff_seconds
        self.min_length = config.min_length
        self.health_cache_seconds = config.health_cache_seconds
        self.health_timeout = config.health_timeout
        self._sleep = sleep
        self._clock = clock

        # Health cache; refreshes are serialized by _health_lock
        self._last_health: bool = True
        self._last_health_time: Optional[float] = None
        self._health_lock = asyncio.Lock()

    @property
    def _endpoint(self) -> str:
        return f"/models/{self.model}"

    async def call(self, payload: dict) -> str:
        return await self.summarize(payload["text"], payload.get("target_length", 200))

    async def summarize(self, text: str, target_length: int = 200) -> str:
        """Summarize text to at most target_length tokens.

        Raises:
            SummarizerUnavailable: no API key configured or service unreachable
            SummarizerTimeout: every attempt timed out
            SummarizerError: error response or unusable payload
        """
        if not self.api_key:
            raise SummarizerUnavailable("HUGGINGFACE_API_KEY not configured")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception_type(SummarizerTimeout),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                return await self._request_summary(text, target_length, number)

    async def _request_summary(self, text: str, target_length: int, attempt: int) -> str:
        timeout = self.base_timeout * attempt
        logger.info(
            "Summarize attempt %d/%d - timeout %.0fs", attempt, self.max_attempts, timeout
        )
        payload = {
            "inputs": text,
            "parameters": {
                "max_length": target_length,
                "min_length": min(self.min_length, target_length),
                "do_sample": False,
            },
            "options": {"wait_for_model": True, "use_cache": False},
        }
        try:
            response = await self.client.post(
                self._endpoint,
                json=payload,
                headers=self._headers,
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as e:
            raise SummarizerTimeout(
                f"Summarizer request timed out after {timeout:.0f}s (attempt {attempt})"
            ) from e
        except httpx.TransportError as e:
            raise SummarizerUnavailable(f"Summarizer unreachable: {e}") from e

        if response.status_code == 504:
            raise SummarizerTimeout(f"Hugging Face API error: {describe_http_error(response)}")
        if not response.is_success:
            raise SummarizerError(f"Hugging Face API error: {describe_http_error(response)}")

        try:
            result = response.json()
        except ValueError as e:
            raise SummarizerError("Summarizer returned a non-JSON body") from e

        if isinstance(result, dict) and result.get("error"):
            raise SummarizerError(f"Summarization error: {result['error']}")
        if isinstance(result, list) and result and isinstance(result[0], dict):
            if result[0].get("summary_text"):
                return result[0]["summary_text"]
        if isinstance(result, dict) and result.get("summary_text"):
            return result["summary_text"]

        raise SummarizerError("Unexpected response format")

    def _cached_health(self) -> Optional[bool]:
        if (
            self._last_health_time is not None
            and self._clock() - self._last_health_time < self.health_cache_seconds
        ):
            return self._last_health
        return None

    async def check_health(self) -> bool:
        """Return whether the model answers, using the cached result when fresh.

        Concurrent callers that miss the cache share one remote check.
        """
        if not self.api_key:
            return False

        cached = self._cached_health()
        if cached is not None:
            return cached

        async with self._health_lock:
            cached = self._cached_health()
            if cached is not None:
                return cached
            return await self._refresh_health()

    async def _refresh_health(self) -> bool:
        now = self._clock()
        try:
            response = await self.client.post(
                self._endpoint,
                json={
                    "inputs": "health check test",
                    "parameters": {"max_length": 20, "min_length": 10},
                    "options": {"wait_for_model": True, "use_cache": True},
                },
                headers=self._headers,
                timeout=httpx.Timeout(self.health_timeout),
            )
        except httpx.TimeoutException:
            logger.warning("Summarizer health check timed out - using cached status")
            return self._last_health
        except httpx.HTTPError as e:
            logger.warning(f"Summarizer health check failed: {type(e).__name__}: {e}")
            healthy = False
        else:
            healthy = response.is_success

        self._last_health = healthy
        self._last_health_time = now
        return healthy

    async def health_check(self) -> ServiceStatus:
        if await self.check_health():
            return ServiceStatus(status="operational")
        return ServiceStatus(status="down", message="Service unavailable")
