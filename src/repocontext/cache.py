"""Two-tier key/value cache: an in-process dict backed by an optional
persistent backend.

The in-process tier is authoritative for the life of the process. The
persistent tier is best-effort: backends raise ``PersistenceError`` and the
store recovers locally. Read failures are reported as misses. The first
write failure switches the store to memory-only writes for the rest of the
process (for read-only filesystems and sandboxes); the switch never reverts.

The store is TTL-agnostic. Callers embed timestamps in the values they put
and compare them against their own freshness window.

The backend is chosen by whoever constructs the store (see
``repocontext.state``); nothing here probes the filesystem to guess.
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import os
import re
import weakref
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Protocol

import aiosqlite
import structlog
from pydantic import ValidationError

from repocontext.errors import PersistenceError
from repocontext.models.cache import CacheEntry

log = structlog.get_logger()

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_MAX_STEM = 150


def normalize_path(value: str) -> str:
    """Replace every non-alphanumeric character with ``_``. Idempotent."""
    return _NON_ALNUM.sub("_", value)


class PutOutcome(StrEnum):
    PERSISTED = "persisted"  # both tiers written
    MEMORY_ONLY = "memory_only"  # persistence off, or not requested
    DEGRADED = "degraded"  # persistent write failed just now; memory-only from here on


class CacheBackend(Protocol):
    async def read(self, key: str) -> CacheEntry | None: ...

    async def write(self, entry: CacheEntry) -> None: ...

    async def clear(self) -> None: ...


# ----------------------------------------------------------------------
# Store
# ----------------------------------------------------------------------


class TieredCacheStore:
    """In-process cache with an optional persistent tier behind it."""

    def __init__(self, backend: CacheBackend | None = None) -> None:
        self._memory: dict[str, CacheEntry] = {}
        self._backend = backend
        self._writes_enabled = backend is not None
        # Entries vanish once no holder or waiter references the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def persistent(self) -> bool:
        """Whether writes still reach the persistent tier."""
        return self._writes_enabled

    def lock(self, key: str) -> asyncio.Lock:
        """Per-key lock. Hold it around check-fetch-put to coalesce fetches."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on miss or read failure."""
        entry = self._memory.get(key)
        if entry is not None:
            return entry.value
        if self._backend is None:
            return None

        try:
            entry = await self._backend.read(key)
        except PersistenceError:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None
        if entry is None:
            return None

        self._memory[key] = entry
        log.debug("cache_promoted", key=key)
        return entry.value

    async def put(self, key: str, value: Any, *, persist: bool = True) -> PutOutcome:
        """Store ``value`` under ``key``. Never raises for persistence failures."""
        entry = CacheEntry(key=key, value=value, stored_at=datetime.now(UTC))
        self._memory[key] = entry

        if not (persist and self._writes_enabled and self._backend is not None):
            return PutOutcome.MEMORY_ONLY

        try:
            await self._backend.write(entry)
        except PersistenceError:
            if self._writes_enabled:
                self._writes_enabled = False
                log.warning("cache_persistence_disabled", key=key, exc_info=True)
            return PutOutcome.DEGRADED
        return PutOutcome.PERSISTED

    async def clear(self) -> None:
        """Drop every entry from both tiers. Backend failures are logged."""
        self._memory.clear()
        if self._backend is None:
            return
        try:
            await self._backend.clear()
        except PersistenceError:
            log.warning("cache_clear_error", exc_info=True)
        else:
            log.info("cache_cleared")


# ----------------------------------------------------------------------
# Directory backend
# ----------------------------------------------------------------------


class DirectoryBackend:
    """One JSON record per key under ``root``.

    Record names are the normalized key plus a short digest of the raw key,
    so keys that normalize identically (``a/b`` and ``a_b``) stay distinct.
    Writes go through a temp file and ``os.replace`` so concurrent processes
    see either the old record or the new one (last write wins).
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

    def record_path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]
        stem = normalize_path(key)[:_MAX_STEM]
        return self.root / f"{stem}-{digest}.json"

    async def read(self, key: str) -> CacheEntry | None:
        return await asyncio.to_thread(self._read, key)

    async def write(self, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._write, entry)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    def _read(self, key: str) -> CacheEntry | None:
        path = self.record_path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Cannot read {path}: {exc}") from exc

        try:
            entry = CacheEntry.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Corrupt cache record {path}") from exc
        if entry.key != key:
            return None
        return entry

    def _write(self, entry: CacheEntry) -> None:
        path = self.record_path(entry.key)
        tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write {path}: {exc}") from exc

    def _clear(self) -> None:
        if not self.root.exists():
            return
        try:
            for path in self.root.glob("*.json"):
                path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot clear {self.root}: {exc}") from exc


# ----------------------------------------------------------------------
# SQLite backend
# ----------------------------------------------------------------------

_CREATE_ENTRY_TABLE = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    stored_at  TEXT NOT NULL
)
"""


class SqliteBackend:
    """Single-table SQLite backend on a shared ``aiosqlite`` connection."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_ENTRY_TABLE)
        await self._db.commit()

    async def read(self, key: str) -> CacheEntry | None:
        try:
            cursor = await self._db.execute(
                "SELECT key, value, stored_at FROM cache_entries WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Cannot read {key!r}: {exc}") from exc
        if row is None:
            return None

        try:
            value = json.loads(row[1])
            stored_at = datetime.fromisoformat(row[2])
        except ValueError as exc:
            raise PersistenceError(f"Corrupt cache row {key!r}") from exc
        return CacheEntry(key=row[0], value=value, stored_at=stored_at)

    async def write(self, entry: CacheEntry) -> None:
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value, stored_at) VALUES (?, ?, ?)",
                (entry.key, json.dumps(entry.value), entry.stored_at.isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Cannot write {entry.key!r}: {exc}") from exc

    async def clear(self) -> None:
        try:
            await self._db.execute("DELETE FROM cache_entries")
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Cannot clear cache table: {exc}") from exc

