"""Shared HTTP access for the listing, raw-content and documentation hosts.

Every outbound request goes through ``Fetcher`` so that status handling is
identical everywhere: 404 becomes ``NotFoundError``, any other non-2xx
becomes ``RetrievalError`` carrying the upstream status, and transport
failures become ``RetrievalError`` with no status.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from repocontext.config import FetcherSettings
from repocontext.errors import ErrorCode, NotFoundError, RetrievalError

log = structlog.get_logger()


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the process-wide HTTP client."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
    )


def auth_headers(token: str | None) -> dict[str, str]:
    """Bearer header for the listing/content services. Empty when anonymous."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


class Fetcher:
    """Thin wrapper around ``httpx.AsyncClient`` with uniform error mapping."""

    def __init__(self, client: httpx.AsyncClient, settings: FetcherSettings | None = None) -> None:
        self._client = client
        self._settings = settings or FetcherSettings()

    async def fetch_text(self, url: str, headers: dict[str, str] | None = None) -> str:
        response = await self._get(url, headers)
        return response.text

    async def fetch_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        response = await self._get(url, headers)
        try:
            return response.json()
        except ValueError as exc:
            raise RetrievalError(
                f"Invalid JSON from {url}",
                status_code=response.status_code,
                code=ErrorCode.INVALID_RESPONSE,
            ) from exc

    async def _get(self, url: str, headers: dict[str, str] | None) -> httpx.Response:
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.TooManyRedirects as exc:
            raise RetrievalError(
                f"Exceeded {self._settings.max_redirects} redirects fetching {url}"
            ) from exc
        except httpx.HTTPError as exc:
            log.warning("fetch_network_error", url=url, error=str(exc))
            raise RetrievalError(f"Network error fetching {url}: {exc}") from exc

        if response.status_code == 404:
            log.debug("fetch_not_found", url=url)
            raise NotFoundError(url)
        if not response.is_success:
            log.warning("fetch_http_error", url=url, status_code=response.status_code)
            raise RetrievalError(
                f"HTTP {response.status_code} fetching {url}",
                status_code=response.status_code,
            )
        return response
