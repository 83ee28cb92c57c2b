from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """A single record held by the cache store, replaced wholesale on write."""

    key: str
    value: Any  # JSON-compatible payload; callers embed their own timestamps
    stored_at: datetime


class EntryKind(StrEnum):
    FILE = "file"
    OTHER = "other"


class TreeEntry(BaseModel):
    """One path from a repository listing."""

    model_config = ConfigDict(frozen=True)

    path: str
    kind: EntryKind = EntryKind.FILE
    size_bytes: int = 0


class FileTreeSnapshot(BaseModel):
    """Full file listing of one (owner, repo, branch), filtered to files."""

    entries: list[TreeEntry]
    fetched_at: datetime
    revision: str | None = None  # Upstream tree SHA
    branch: str


class FileContent(BaseModel):
    """Raw text of one repository file. Cached without expiry."""

    path: str
    text: str
    fetched_at: datetime
    branch: str
