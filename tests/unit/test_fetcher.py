"""Unit tests for repocontext.fetcher."""

from __future__ import annotations

import httpx
import pytest
import respx

from repocontext.config import FetcherSettings
from repocontext.errors import ErrorCode, NotFoundError, RetrievalError
from repocontext.fetcher import Fetcher, auth_headers, build_http_client

# ---------------------------------------------------------------------------
# build_http_client / auth_headers
# ---------------------------------------------------------------------------


class TestBuildHttpClient:
    def test_client_configuration(self) -> None:
        client = build_http_client(FetcherSettings(user_agent="test-agent/1", max_redirects=2))
        assert isinstance(client, httpx.AsyncClient)
        assert client.follow_redirects is True
        assert client.max_redirects == 2
        assert client.headers["User-Agent"] == "test-agent/1"


class TestAuthHeaders:
    def test_bearer_token(self) -> None:
        assert auth_headers("ghp_x") == {"Authorization": "Bearer ghp_x"}

    def test_anonymous(self) -> None:
        assert auth_headers(None) == {}
        assert auth_headers("") == {}


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class TestFetcher:
    async def test_successful_fetch(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/README.md").mock(
                return_value=httpx.Response(200, text="# Widgets")
            )
            assert await fetcher.fetch_text("https://example.com/README.md") == "# Widgets"

    async def test_headers_are_sent(self, fetcher: Fetcher) -> None:
        with respx.mock:
            route = respx.get("https://example.com/a").mock(
                return_value=httpx.Response(200, text="ok")
            )
            await fetcher.fetch_text("https://example.com/a", auth_headers("tok"))
            assert route.calls.last.request.headers["Authorization"] == "Bearer tok"

    async def test_fetch_json(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/tree").mock(
                return_value=httpx.Response(200, json={"tree": []})
            )
            assert await fetcher.fetch_json("https://example.com/tree") == {"tree": []}

    async def test_invalid_json(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/tree").mock(
                return_value=httpx.Response(200, text="<html>rate limited</html>")
            )
            with pytest.raises(RetrievalError) as exc_info:
                await fetcher.fetch_json("https://example.com/tree")
            assert exc_info.value.code == ErrorCode.INVALID_RESPONSE

    async def test_404_raises_not_found(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/missing").mock(return_value=httpx.Response(404))
            with pytest.raises(NotFoundError) as exc_info:
                await fetcher.fetch_text("https://example.com/missing")
            assert exc_info.value.code == ErrorCode.NOT_FOUND
            assert not isinstance(exc_info.value, RetrievalError)

    async def test_500_raises_retrieval_error(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/error").mock(return_value=httpx.Response(500))
            with pytest.raises(RetrievalError) as exc_info:
                await fetcher.fetch_text("https://example.com/error")
            assert exc_info.value.status_code == 500
            assert exc_info.value.code == ErrorCode.UPSTREAM_ERROR
            assert exc_info.value.recoverable is True

    async def test_403_is_not_recoverable(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/private").mock(return_value=httpx.Response(403))
            with pytest.raises(RetrievalError) as exc_info:
                await fetcher.fetch_text("https://example.com/private")
            assert exc_info.value.status_code == 403
            assert exc_info.value.recoverable is False

    async def test_network_error_raises_retrieval_error(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/timeout").mock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            with pytest.raises(RetrievalError) as exc_info:
                await fetcher.fetch_text("https://example.com/timeout")
            assert exc_info.value.status_code is None
            assert exc_info.value.code == ErrorCode.NETWORK_ERROR
            assert exc_info.value.recoverable is True

    async def test_redirect_followed(self, fetcher: Fetcher) -> None:
        with respx.mock:
            respx.get("https://example.com/old").mock(
                return_value=httpx.Response(301, headers={"location": "https://example.com/new"})
            )
            respx.get("https://example.com/new").mock(
                return_value=httpx.Response(200, text="Redirected content")
            )
            assert await fetcher.fetch_text("https://example.com/old") == "Redirected content"

    async def test_too_many_redirects(self) -> None:
        settings = FetcherSettings(max_redirects=3)
        with respx.mock:
            for i in range(4):
                respx.get(f"https://example.com/r{i}").mock(
                    return_value=httpx.Response(
                        301, headers={"location": f"https://example.com/r{i + 1}"}
                    )
                )
            respx.get("https://example.com/r4").mock(return_value=httpx.Response(200, text="Final"))
            async with build_http_client(settings) as client:
                fetcher = Fetcher(client, settings)
                with pytest.raises(RetrievalError) as exc_info:
                    await fetcher.fetch_text("https://example.com/r0")
                assert exc_info.value.status_code is None
