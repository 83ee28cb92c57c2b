from __future__ import annotations

from repocontext.models.cache import (
    CacheEntry,
    EntryKind,
    FileContent,
    FileTreeSnapshot,
    TreeEntry,
)
from repocontext.models.context import ContextBundle, RankedCandidate

__all__ = [
    # cache
    "CacheEntry",
    "EntryKind",
    "TreeEntry",
    "FileTreeSnapshot",
    "FileContent",
    # context
    "RankedCandidate",
    "ContextBundle",
]
