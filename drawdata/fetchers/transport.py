"""
Retrying Transport - httpx retrieval with exponential backoff.

Every request carries the collector's fixed identifying User-Agent. Any
non-2xx response or transport error counts as a failed attempt; after the
last attempt a RetrievalExhausted error carrying the last error is raised.

The wait after failed attempt n is backoff_base * 2 ** (n - 1) seconds
(1s, 2s, 4s with the defaults). Waiting goes through an injectable sleep
coroutine so that only the current task is blocked.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

from django.conf import settings

from drawdata.utils.delimited import tokenize

logger = logging.getLogger(__name__)


class RetrievalExhausted(Exception):
    """Raised when every retrieval attempt for a URL has failed."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to retrieve {url} after {attempts} attempts: {last_error}"
        )


class RetryingTransport:
    """
    Async HTTP retrieval with a fixed header set and bounded retries.

    Features:
    - Shared httpx.AsyncClient with connection pooling and redirects
    - Fixed identifying User-Agent on every request
    - Exponential backoff through an injectable sleep coroutine
    - Typed failure after exhausting attempts
    """

    ACCEPT = "text/html,application/xhtml+xml,text/csv,*/*"

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        user_agent: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the transport.

        Args:
            timeout: Request timeout in seconds (default from settings)
            max_attempts: Attempts per URL (default from settings)
            backoff_base: Seconds waited after the first failure
            user_agent: Identifying User-Agent header
            sleep: Coroutine used for backoff waits
            client: Pre-built httpx client (tests inject a MockTransport)
        """
        self.timeout = timeout or getattr(settings, "DRAWDATA_REQUEST_TIMEOUT", 30)
        self.max_attempts = max_attempts or getattr(settings, "DRAWDATA_MAX_ATTEMPTS", 3)
        self.backoff_base = (
            backoff_base
            if backoff_base is not None
            else getattr(settings, "DRAWDATA_BACKOFF_BASE", 1.0)
        )
        self.user_agent = user_agent or getattr(
            settings, "DRAWDATA_USER_AGENT", "DrawDataCollector/1.0"
        )
        self._sleep = sleep
        self._http_client = client

    @property
    def headers(self):
        return {"User-Agent": self.user_agent, "Accept": self.ACCEPT}

    async def __aenter__(self):
        self._init_http_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _init_http_client(self):
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )

    async def close(self):
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        return self.backoff_base * 2 ** (attempt - 1)

    async def retrieve(self, url: str, max_attempts: Optional[int] = None) -> str:
        """Retrieve a URL and return the decoded body text."""
        response = await self._retrieve_with_retry(url, max_attempts)
        return response.text

    async def retrieve_bytes(self, url: str, max_attempts: Optional[int] = None) -> bytes:
        """Retrieve a URL and return the raw body bytes (PDF, XLSX, ...)."""
        response = await self._retrieve_with_retry(url, max_attempts)
        return response.content

    async def retrieve_delimited(
        self, url: str, delimiter: str = ",", max_attempts: Optional[int] = None
    ) -> List[List[str]]:
        """Retrieve a delimited text file and tokenize it into rows."""
        text = await self.retrieve(url, max_attempts)
        return tokenize(text, delimiter)

    async def _retrieve_with_retry(
        self, url: str, max_attempts: Optional[int] = None
    ) -> httpx.Response:
        self._init_http_client()
        attempts = max_attempts or self.max_attempts
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self._http_client.get(url, headers=self.headers)
                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    f"HTTP {e.response.status_code} for {url} "
                    f"(attempt {attempt}/{attempts})"
                )

            except httpx.HTTPError as e:
                last_error = e
                logger.warning(
                    f"Error retrieving {url}: {e!r} (attempt {attempt}/{attempts})"
                )

            if attempt < attempts:
                await self._sleep(self.backoff_delay(attempt))

        raise RetrievalExhausted(url, attempts, last_error)
