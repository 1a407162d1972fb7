import httpx
import pytest

from pageweight.config import settings
from pageweight.core.exceptions import (
    FETCH_FAILED_MESSAGE,
    FetchError,
    NetworkError,
    ValidationError,
)
from pageweight.services.page_fetcher import FetchedPage, PageFetcher


PAGE = "<html><head><title>Hello</title></head><body><p>héllo</p></body></html>"


def make_fetcher(handler, **kwargs) -> PageFetcher:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        headers=PageFetcher.default_headers(),
    )
    return PageFetcher(client=client, **kwargs)


class ChunkedBody(httpx.AsyncByteStream):
    """Response body served in fixed chunks, counting how many were pulled."""

    def __init__(self, chunk: bytes, chunks: int):
        self.chunk = chunk
        self.chunks = chunks
        self.chunks_sent = 0

    async def __aiter__(self):
        for _ in range(self.chunks):
            self.chunks_sent += 1
            yield self.chunk


def html_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text=PAGE, headers={"content-type": "text/html; charset=utf-8"})


class TestFetchedPage:

    def test_html_size_counts_utf8_bytes(self):
        page = FetchedPage(
            url="https://example.com",
            final_url="https://example.com/",
            status_code=200,
            html="<p>é</p>",
            load_time_ms=5,
        )
        assert page.html_size == len("<p>é</p>") + 1


class TestPageFetcher:
    """Fetching, timing and error mapping."""

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        fetcher = make_fetcher(html_response)

        page = await fetcher.fetch("https://example.com/")

        assert page.url == "https://example.com/"
        assert page.final_url == "https://example.com/"
        assert page.status_code == 200
        assert page.html == PAGE
        assert page.html_size == len(PAGE.encode("utf-8"))
        assert page.load_time_ms >= 0
        assert page.content_type.startswith("text/html")

    @pytest.mark.asyncio
    async def test_sends_browser_like_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update({key: request.headers[key] for key in ("user-agent", "accept-language", "accept")})
            return html_response(request)

        await make_fetcher(handler).fetch("https://example.com/")

        assert seen["user-agent"] == settings.user_agent
        assert seen["accept-language"] == settings.accept_language
        assert "text/html" in seen["accept"]

    @pytest.mark.asyncio
    async def test_non_success_status_raises_fetch_error(self):
        fetcher = make_fetcher(lambda request: httpx.Response(404, text="missing"))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/missing")

        error = exc_info.value
        assert error.message == FETCH_FAILED_MESSAGE
        assert error.error_code == "FETCH_ERROR"
        assert error.details["status_code"] == 404
        assert error.details["reason"] == "HTTP 404: Not Found"
        assert error.details["url"] == "https://example.com/missing"

    @pytest.mark.asyncio
    async def test_server_error_raises_fetch_error(self):
        fetcher = make_fetcher(lambda request: httpx.Response(503))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/")

        assert exc_info.value.details["reason"] == "HTTP 503: Service Unavailable"

    @pytest.mark.asyncio
    async def test_connection_error_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await make_fetcher(handler).fetch("https://unreachable.example")

        error = exc_info.value
        assert error.message == FETCH_FAILED_MESSAGE
        assert error.details["timeout"] is False
        assert error.details["reason"] == "Connection refused"

    @pytest.mark.asyncio
    async def test_timeout_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await make_fetcher(handler).fetch("https://slow.example")

        assert exc_info.value.details["timeout"] is True

    @pytest.mark.asyncio
    async def test_oversized_body_raises_fetch_error(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="x" * 100), max_html_size=10)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/huge")

        assert "exceeds 10 bytes" in exc_info.value.details["reason"]

    @pytest.mark.asyncio
    async def test_streamed_body_abandoned_once_over_limit(self):
        body = ChunkedBody(b"x" * 1024, chunks=1000)
        fetcher = make_fetcher(lambda request: httpx.Response(200, stream=body), max_html_size=10)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/endless")

        assert "exceeds 10 bytes" in exc_info.value.details["reason"]
        assert body.chunks_sent == 1

    @pytest.mark.asyncio
    async def test_declared_length_rejected_before_reading(self):
        body = ChunkedBody(b"x" * 1024, chunks=5)
        fetcher = make_fetcher(
            lambda request: httpx.Response(200, headers={"content-length": "5120"}, stream=body),
            max_html_size=1024,
        )

        with pytest.raises(FetchError):
            await fetcher.fetch("https://example.com/big")

        assert body.chunks_sent == 0

    @pytest.mark.asyncio
    async def test_streamed_body_within_limit(self):
        body = ChunkedBody(b"<p>ok</p>", chunks=3)
        fetcher = make_fetcher(lambda request: httpx.Response(200, stream=body), max_html_size=27)

        page = await fetcher.fetch("https://example.com/")

        assert page.html == "<p>ok</p>" * 3
        assert body.chunks_sent == 3

    @pytest.mark.asyncio
    async def test_body_decoded_with_declared_charset(self):
        fetcher = make_fetcher(lambda request: httpx.Response(
            200,
            content="<p>café</p>".encode("iso-8859-1"),
            headers={"content-type": "text/html; charset=iso-8859-1"},
        ))

        page = await fetcher.fetch("https://example.com/")

        assert page.html == "<p>café</p>"

    @pytest.mark.asyncio
    async def test_invalid_url_raises_validation_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        with pytest.raises(ValidationError) as exc_info:
            await make_fetcher(handler).fetch("https://example.com/")

        assert exc_info.value.message == "Invalid URL format"
        assert exc_info.value.details["field"] == "url"

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self):
        fetcher = make_fetcher(html_response)
        await fetcher.fetch("https://example.com/")

        await fetcher.close()

        assert fetcher.is_open

    @pytest.mark.asyncio
    async def test_owned_client_created_lazily_and_closed(self):
        fetcher = PageFetcher()
        assert not fetcher.is_open

        client = fetcher.client
        assert fetcher.is_open
        assert client.follow_redirects == settings.follow_redirects

        async with fetcher:
            pass

        assert not fetcher.is_open
        assert client.is_closed
