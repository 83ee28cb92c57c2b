"""Process-wide component wiring.

``create_app_state`` builds the HTTP client, cache store, fetchers and
assembler once per process and tears them down on exit. Nothing in the
package keeps module-level caches, so two ``AppState`` instances (two test
cases, say) never share state.
"""

from __future__ import annotations

import shutil
import tempfile
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from repocontext.assembler import ContextAssembler
from repocontext.cache import CacheBackend, DirectoryBackend, SqliteBackend, TieredCacheStore
from repocontext.docs import DocsFetcher
from repocontext.fetcher import Fetcher, build_http_client
from repocontext.logging_config import setup_logging
from repocontext.repository import RemoteFileFetcher, RemoteTreeFetcher

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from repocontext.config import Settings

log = structlog.get_logger()


@dataclass
class AppState:
    settings: Settings
    http_client: httpx.AsyncClient
    store: TieredCacheStore
    fetcher: Fetcher
    tree_fetcher: RemoteTreeFetcher
    file_fetcher: RemoteFileFetcher
    docs_fetcher: DocsFetcher
    assembler: ContextAssembler


async def _open_backend(settings: Settings, stack: AsyncExitStack) -> CacheBackend | None:
    cache = settings.cache
    if cache.backend == "memory":
        return None
    if cache.backend == "temp":
        root = tempfile.mkdtemp(prefix="repocontext-")
        stack.callback(shutil.rmtree, root, ignore_errors=True)
        return DirectoryBackend(root)
    if cache.backend == "directory":
        return DirectoryBackend(cache.dir)

    db_path = Path(cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await stack.enter_async_context(aiosqlite.connect(db_path))
    backend = SqliteBackend(db)
    await backend.init_db()
    return backend


@asynccontextmanager
async def create_app_state(settings: Settings) -> AsyncIterator[AppState]:
    """Configure logging and build every component; close them on exit."""
    setup_logging(settings.logging)
    async with AsyncExitStack() as stack:
        backend = await _open_backend(settings, stack)
        store = TieredCacheStore(backend)
        http_client = await stack.enter_async_context(build_http_client(settings.fetcher))
        fetcher = Fetcher(http_client, settings.fetcher)

        tree_fetcher = RemoteTreeFetcher(
            fetcher,
            store,
            api_base_url=settings.repository.api_base_url,
            freshness_window=timedelta(hours=settings.cache.tree_ttl_hours),
        )
        file_fetcher = RemoteFileFetcher(
            fetcher,
            store,
            raw_base_url=settings.repository.raw_base_url,
        )
        docs_fetcher = DocsFetcher(fetcher, store, char_limit=settings.docs.page_char_limit)
        assembler = ContextAssembler(settings, tree_fetcher, file_fetcher, docs_fetcher)

        log.info("app_state_ready", cache_backend=settings.cache.backend)
        yield AppState(
            settings=settings,
            http_client=http_client,
            store=store,
            fetcher=fetcher,
            tree_fetcher=tree_fetcher,
            file_fetcher=file_fetcher,
            docs_fetcher=docs_fetcher,
            assembler=assembler,
        )
