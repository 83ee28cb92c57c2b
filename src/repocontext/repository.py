"""Cached access to a remote repository's file listing and file contents.

Listings (``tree:{owner}/{repo}/{branch}``) are fresh for a fixed window,
24 hours by default, and are replaced wholesale once stale. File contents
(``file:{owner}/{repo}/{branch}/{path}``) never expire: once cached, a path
is not fetched again by this process or, with a persistent backend, by any
later one. There is no hash or ETag check, so upstream edits are only
picked up after ``TieredCacheStore.clear()``.

A missing file (404) is not cached. Asking for it again costs another
network call.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import structlog
from pydantic import ValidationError

from repocontext.errors import ErrorCode, NotFoundError, RetrievalError
from repocontext.fetcher import Fetcher, auth_headers
from repocontext.models.cache import EntryKind, FileContent, FileTreeSnapshot, TreeEntry

if TYPE_CHECKING:
    from repocontext.cache import TieredCacheStore

log = structlog.get_logger()

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=24)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def tree_cache_key(owner: str, repo: str, branch: str) -> str:
    return f"tree:{owner}/{repo}/{branch}"


def file_cache_key(owner: str, repo: str, branch: str, path: str) -> str:
    return f"file:{owner}/{repo}/{branch}/{path}"


def parse_tree(data: Any, branch: str, fetched_at: datetime) -> FileTreeSnapshot:
    """Build a snapshot from a ``git/trees?recursive=1`` response body.

    Only blobs are kept; directories and submodules are dropped, and so are
    items without a usable path or size.
    """
    if not isinstance(data, dict) or not isinstance(data.get("tree"), list):
        raise RetrievalError(
            "Tree response has no 'tree' list",
            status_code=200,
            code=ErrorCode.INVALID_RESPONSE,
        )

    entries = []
    skipped = 0
    for item in data["tree"]:
        if not isinstance(item, dict) or item.get("type") != "blob":
            continue
        try:
            entries.append(
                TreeEntry(path=item["path"], kind=EntryKind.FILE, size_bytes=item.get("size") or 0)
            )
        except (KeyError, ValidationError):
            skipped += 1
    if skipped:
        log.warning("tree_items_skipped", skipped=skipped)

    sha = data.get("sha")
    return FileTreeSnapshot(
        entries=entries,
        fetched_at=fetched_at,
        revision=sha if isinstance(sha, str) else None,
        branch=branch,
    )


class RemoteTreeFetcher:
    """Full recursive listing of a repository, cached for ``freshness_window``."""

    def __init__(
        self,
        fetcher: Fetcher,
        store: TieredCacheStore,
        api_base_url: str = "https://api.github.com",
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        clock: Clock = _utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._api_base_url = api_base_url.rstrip("/")
        self._freshness_window = freshness_window
        self._clock = clock

    async def get_file_tree(
        self,
        token: str | None,
        owner: str,
        repo: str,
        branch: str = "master",
    ) -> FileTreeSnapshot:
        """Return a fresh snapshot, from cache when possible.

        Raises ``RetrievalError`` when the listing service fails. Nothing is
        cached in that case and no retry is attempted.
        """
        key = tree_cache_key(owner, repo, branch)
        async with self._store.lock(key):
            cached = await self._load_cached(key)
            if cached is not None:
                age = self._clock() - cached.fetched_at
                if age < self._freshness_window:
                    log.debug("tree_cache_hit", key=key, age_seconds=int(age.total_seconds()))
                    return cached
                log.info("tree_cache_stale", key=key, age_seconds=int(age.total_seconds()))

            url = f"{self._api_base_url}/repos/{owner}/{repo}/git/trees/{quote(branch)}?recursive=1"
            headers = {"Accept": "application/vnd.github+json", **auth_headers(token)}
            try:
                data = await self._fetcher.fetch_json(url, headers)
            except NotFoundError as exc:
                raise RetrievalError(
                    f"Repository tree not found: {owner}/{repo}@{branch}",
                    status_code=404,
                ) from exc

            snapshot = parse_tree(data, branch, self._clock())
            if isinstance(data, dict) and data.get("truncated"):
                log.warning("tree_truncated", key=key, files=len(snapshot.entries))

            await self._store.put(key, snapshot.model_dump(mode="json"))
            log.info(
                "tree_fetched", key=key, files=len(snapshot.entries), revision=snapshot.revision
            )
            return snapshot

    async def _load_cached(self, key: str) -> FileTreeSnapshot | None:
        value = await self._store.get(key)
        if value is None:
            return None
        try:
            return FileTreeSnapshot.model_validate(value)
        except ValidationError:
            log.warning("tree_cache_invalid", key=key, exc_info=True)
            return None


class RemoteFileFetcher:
    """Raw file contents, cached forever once fetched."""

    def __init__(
        self,
        fetcher: Fetcher,
        store: TieredCacheStore,
        raw_base_url: str = "https://raw.githubusercontent.com",
        clock: Clock = _utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._raw_base_url = raw_base_url.rstrip("/")
        self._clock = clock

    async def get_file_content(
        self,
        token: str | None,
        owner: str,
        repo: str,
        path: str,
        branch: str = "master",
    ) -> str | None:
        """Return the file's text, or ``None`` if the file does not exist.

        Raises ``RetrievalError`` for any other upstream failure.
        """
        key = file_cache_key(owner, repo, branch, path)
        async with self._store.lock(key):
            cached = await self._store.get(key)
            if cached is not None:
                try:
                    text = FileContent.model_validate(cached).text
                except ValidationError:
                    log.warning("file_cache_invalid", key=key, exc_info=True)
                else:
                    log.debug("file_cache_hit", key=key)
                    return text

            url = f"{self._raw_base_url}/{owner}/{repo}/{quote(branch)}/{quote(path)}"
            try:
                text = await self._fetcher.fetch_text(url, auth_headers(token))
            except NotFoundError:
                log.debug("file_not_found", key=key)
                return None

            content = FileContent(path=path, text=text, fetched_at=self._clock(), branch=branch)
            await self._store.put(key, content.model_dump(mode="json"))
            log.info("file_fetched", key=key, chars=len(text))
            return text
