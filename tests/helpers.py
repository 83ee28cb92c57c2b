"""Constants and test doubles shared across test modules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import respx

from repocontext.errors import PersistenceError
from repocontext.models.cache import CacheEntry

API_BASE = "https://api.test"
RAW_BASE = "https://raw.test"
DOCS_BASE = "https://docs.test/widgets"
OWNER = "acme"
REPO = "widgets"
BRANCH = "main"

TREE_URL = f"{API_BASE}/repos/{OWNER}/{REPO}/git/trees/{BRANCH}?recursive=1"


def raw_url(path: str) -> str:
    return f"{RAW_BASE}/{OWNER}/{REPO}/{BRANCH}/{path}"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FailingBackend:
    """Persistent tier that fails every operation, like a read-only sandbox."""

    def __init__(self) -> None:
        self.writes = 0
        self.reads = 0

    async def read(self, key: str) -> CacheEntry | None:
        self.reads += 1
        raise PersistenceError(f"read-only filesystem: {key}")

    async def write(self, entry: CacheEntry) -> None:
        self.writes += 1
        raise PersistenceError(f"read-only filesystem: {entry.key}")

    async def clear(self) -> None:
        raise PersistenceError("read-only filesystem")


def serve(
    router: respx.MockRouter,
    *,
    tree: dict[str, Any] | None = None,
    tree_status: int = 200,
    files: dict[str, str] | None = None,
    docs: dict[str, str] | None = None,
) -> dict[str, respx.Route]:
    """Register upstream responses, then a catch-all 404.

    Anything a test does not serve behaves like a missing file. Returns the
    routes keyed by ``"tree"``, repository path or documentation URL.
    """
    routes: dict[str, respx.Route] = {}
    if tree is not None or tree_status != 200:
        routes["tree"] = router.get(TREE_URL).mock(
            return_value=httpx.Response(tree_status, json=tree or {})
        )
    for path, text in (files or {}).items():
        routes[path] = router.get(raw_url(path)).mock(return_value=httpx.Response(200, text=text))
    for url, html in (docs or {}).items():
        routes[url] = router.get(url).mock(return_value=httpx.Response(200, text=html))
    router.route().mock(return_value=httpx.Response(404))
    return routes
