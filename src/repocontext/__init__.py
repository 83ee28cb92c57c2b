"""Context retrieval and caching for questions about a remote project."""

from __future__ import annotations

from repocontext.assembler import ContextAssembler
from repocontext.cache import DirectoryBackend, PutOutcome, SqliteBackend, TieredCacheStore
from repocontext.errors import NotFoundError, PersistenceError, RetrievalError
from repocontext.links import extract_links
from repocontext.ranking import rank
from repocontext.repository import RemoteFileFetcher, RemoteTreeFetcher
from repocontext.state import AppState, create_app_state

__version__ = "0.1.0"

__all__ = [
    "AppState",
    "ContextAssembler",
    "DirectoryBackend",
    "NotFoundError",
    "PersistenceError",
    "PutOutcome",
    "RemoteFileFetcher",
    "RemoteTreeFetcher",
    "RetrievalError",
    "SqliteBackend",
    "TieredCacheStore",
    "create_app_state",
    "extract_links",
    "rank",
]
