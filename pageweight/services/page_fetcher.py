import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from ..config import settings
from ..core.exceptions import FetchError, NetworkError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FetchedPage:
    url: str
    final_url: str
    status_code: int
    html: str
    load_time_ms: int
    content_type: Optional[str] = None

    @property
    def html_size(self) -> int:
        """UTF-8 size of the decoded HTML in bytes."""
        return len(self.html.encode("utf-8"))


class PageFetcher:
    """
    Downloads raw page HTML and times the round trip.

    The underlying ``httpx.AsyncClient`` is created on first use and shared
    between requests until :meth:`close` is called. A client can be injected
    for testing; an injected client is never closed by the fetcher.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, max_html_size: Optional[int] = None):
        self._client = client
        self._owns_client = client is None
        self.max_html_size = max_html_size or settings.max_html_size

    @staticmethod
    def default_headers() -> Dict[str, str]:
        return {
            'User-Agent': settings.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
            'Accept-Language': settings.accept_language,
            'Accept-Encoding': 'gzip, deflate',
            'Connection': 'keep-alive',
        }

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout),
            follow_redirects=settings.follow_redirects,
            max_redirects=settings.max_redirects,
            headers=self.default_headers(),
        )

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = self._build_client()
            self._owns_client = True
        return self._client

    async def fetch(self, url: str) -> FetchedPage:
        """
        Fetch ``url`` and return its decoded HTML.

        The body is streamed and abandoned as soon as it is known to be
        larger than ``max_html_size``.

        Raises:
            ValidationError: If httpx cannot parse the URL
            FetchError: On a non-2xx status or an oversized body
            NetworkError: On connection failures and timeouts
        """
        logger.info(f"Fetching {url}")
        start_time = time.perf_counter()

        try:
            async with self.client.stream("GET", url) as response:
                self._check_status(url, response)
                self._check_declared_size(url, response)
                body = await self._read_body(url, response)
        except httpx.InvalidURL as e:
            raise ValidationError("Invalid URL format", field="url", details={"reason": str(e)})
        except httpx.TimeoutException as e:
            logger.error(f"Timed out fetching {url}: {e}")
            raise NetworkError(url=url, timeout=True, reason=str(e) or type(e).__name__)
        except httpx.RequestError as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise NetworkError(url=url, reason=str(e) or type(e).__name__)

        load_time_ms = int((time.perf_counter() - start_time) * 1000)

        page = FetchedPage(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=body.decode(response.encoding or "utf-8", errors="replace"),
            load_time_ms=load_time_ms,
            content_type=response.headers.get("content-type"),
        )
        logger.info(f"Fetched {url} ({response.status_code}, {page.html_size} bytes) in {load_time_ms}ms")
        return page

    def _check_status(self, url: str, response: httpx.Response) -> None:
        if not response.is_success:
            reason = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.warning(f"Fetching {url} failed with {reason}")
            raise FetchError(url=url, status_code=response.status_code, reason=reason)

    def _too_large(self, url: str, response: httpx.Response) -> FetchError:
        logger.warning(f"Rejecting {url}: body larger than {self.max_html_size} bytes")
        return FetchError(
            url=url,
            status_code=response.status_code,
            reason=f"Response body exceeds {self.max_html_size} bytes"
        )

    def _check_declared_size(self, url: str, response: httpx.Response) -> None:
        content_length = response.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_html_size:
            raise self._too_large(url, response)

    async def _read_body(self, url: str, response: httpx.Response) -> bytes:
        """Read the (decompressed) body, stopping once it passes the size cap."""
        chunks = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > self.max_html_size:
                raise self._too_large(url, response)
            chunks.append(chunk)
        return b"".join(chunks)

    async def close(self) -> None:
        """Close the shared client if this fetcher created it."""
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            logger.info("HTTP client closed")
        if self._owns_client:
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# Singleton instance for global use
page_fetcher = PageFetcher()
