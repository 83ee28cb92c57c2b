"""Documentation page fetching and HTML-to-text reduction.

Raw HTML is kept in the store's in-process tier only: pages change more
often than repository files and are cheap to fetch again after a restart.
Holding the HTML lets the assembler read the root page twice (once as text,
once for link extraction) with a single request.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from repocontext.errors import NotFoundError, RetrievalError

if TYPE_CHECKING:
    from repocontext.cache import TieredCacheStore
    from repocontext.fetcher import Fetcher

log = structlog.get_logger()

_SCRIPT = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """Visible text of ``html`` with whitespace collapsed."""
    text = _SCRIPT.sub("", html)
    text = _STYLE.sub("", text)
    text = _TAG.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def doc_cache_key(url: str) -> str:
    return f"doc:{url}"


class DocsFetcher:
    def __init__(self, fetcher: Fetcher, store: TieredCacheStore, char_limit: int = 12000) -> None:
        self._fetcher = fetcher
        self._store = store
        self._char_limit = char_limit

    async def fetch_html(self, url: str) -> str:
        """Raw HTML of ``url``. Raises ``RetrievalError``/``NotFoundError``."""
        key = doc_cache_key(url)
        async with self._store.lock(key):
            cached = await self._store.get(key)
            if cached is not None:
                return cached
            html = await self._fetcher.fetch_text(url)
            await self._store.put(key, html, persist=False)
            log.info("doc_fetched", url=url, chars=len(html))
            return html

    async def fetch_text(self, url: str) -> str | None:
        """Page text capped at ``char_limit``; ``None`` when unavailable."""
        try:
            html = await self.fetch_html(url)
        except NotFoundError:
            log.debug("doc_not_found", url=url)
            return None
        except RetrievalError as exc:
            log.warning("doc_fetch_failed", url=url, status_code=exc.status_code, error=exc.message)
            return None
        return html_to_text(html)[: self._char_limit]
