"""Lexical relevance ranking of repository paths.

Scoring, per file entry:

* ``+10`` for each keyword that appears in the path (case-insensitive);
* ``+2`` for each remaining keyword whose first three characters appear;
* ``+3`` for ``.ts``/``.tsx``, ``+2`` for ``.js``/``.jsx``;
* ``+1`` when the base name is an ``index.*`` entry point;
* ``-5`` when the file is larger than 50 000 bytes.

Entries scoring zero or less are dropped. The sort is stable, so ties keep
listing order and the same input always ranks the same way.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable, Sequence

from repocontext.models.cache import EntryKind, FileTreeSnapshot, TreeEntry
from repocontext.models.context import RankedCandidate

FULL_MATCH_WEIGHT = 10
PREFIX_MATCH_WEIGHT = 2
PREFIX_LENGTH = 3
STRONGLY_TYPED_EXTENSIONS = (".ts", ".tsx")
STRONGLY_TYPED_BONUS = 3
LOOSELY_TYPED_EXTENSIONS = (".js", ".jsx")
LOOSELY_TYPED_BONUS = 2
ENTRY_POINT_BONUS = 1
LARGE_FILE_BYTES = 50000
LARGE_FILE_PENALTY = 5


def _normalize_keywords(keywords: Iterable[str]) -> list[str]:
    return [k.lower() for k in keywords if k]


def _score(entry: TreeEntry, keywords: Sequence[str]) -> int:
    path = entry.path.lower()
    score = 0
    for keyword in keywords:
        if keyword in path:
            score += FULL_MATCH_WEIGHT
        elif keyword[:PREFIX_LENGTH] in path:
            score += PREFIX_MATCH_WEIGHT

    if path.endswith(STRONGLY_TYPED_EXTENSIONS):
        score += STRONGLY_TYPED_BONUS
    elif path.endswith(LOOSELY_TYPED_EXTENSIONS):
        score += LOOSELY_TYPED_BONUS
    if posixpath.basename(path).startswith("index."):
        score += ENTRY_POINT_BONUS

    if entry.size_bytes > LARGE_FILE_BYTES:
        score -= LARGE_FILE_PENALTY
    return score


def score_entry(entry: TreeEntry, keywords: Iterable[str]) -> int:
    """Relevance score of a single entry against ``keywords``."""
    return _score(entry, _normalize_keywords(keywords))


def rank_candidates(
    entries: FileTreeSnapshot | Iterable[TreeEntry],
    keywords: Iterable[str],
    limit: int,
) -> list[RankedCandidate]:
    """Top ``limit`` file entries with their scores, best first."""
    if isinstance(entries, FileTreeSnapshot):
        entries = entries.entries
    normalized = _normalize_keywords(keywords)

    scored = []
    for entry in entries:
        if entry.kind is not EntryKind.FILE:
            continue
        score = _score(entry, normalized)
        if score > 0:
            scored.append(RankedCandidate(entry=entry, score=score))

    scored.sort(key=lambda candidate: candidate.score, reverse=True)
    return scored[: max(limit, 0)]


def rank(
    entries: FileTreeSnapshot | Iterable[TreeEntry],
    keywords: Iterable[str],
    limit: int,
) -> list[TreeEntry]:
    """Top ``limit`` file entries for ``keywords``, best first."""
    return [candidate.entry for candidate in rank_candidates(entries, keywords, limit)]
