"""Unit-specific fixtures (no I/O beyond in-memory SQLite and tmp_path)."""

from __future__ import annotations

import aiosqlite
import httpx
import pytest

from repocontext.cache import SqliteBackend, TieredCacheStore
from repocontext.fetcher import Fetcher, build_http_client


@pytest.fixture()
def store() -> TieredCacheStore:
    """Memory-only store."""
    return TieredCacheStore()


@pytest.fixture()
async def sqlite_backend():
    """In-memory SQLite backend for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        backend = SqliteBackend(db)
        await backend.init_db()
        yield backend


@pytest.fixture()
async def fetcher():
    client: httpx.AsyncClient = build_http_client()
    async with client:
        yield Fetcher(client)
