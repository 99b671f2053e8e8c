"""Abstract base class for external service adapters.

Every adapter wraps one external capability behind a uniform async call
plus a health check, owns its own timeout/retry policy, and never touches
the job store.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from autonews.schemas.jobs import ServiceStatus

logger = logging.getLogger(__name__)


class ServiceAdapter(ABC):
    """Base class for HTTP-backed service adapters.

    Subclasses implement call() and health_check(). The underlying
    httpx.AsyncClient is created lazily; tests inject one built on
    httpx.MockTransport.
    """

    #: Short service name used in logs and on the status endpoint
    name: str = "service"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        headers: Optional[dict] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = headers or {}
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                follow_redirects=True,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
            )
        return self._client

    @abstractmethod
    async def call(self, payload: Any) -> Any:
        """Perform the adapter's single external capability."""
        ...

    @abstractmethod
    async def health_check(self) -> ServiceStatus:
        """Report whether the external service is usable."""
        ...

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def describe_http_error(response: httpx.Response, limit: int = 200) -> str:
    """Format an error response for messages without dumping the whole body."""
    return f"HTTP {response.status_code} - {response.text[:limit]}"
