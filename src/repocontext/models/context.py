from __future__ import annotations

from pydantic import BaseModel

from repocontext.models.cache import TreeEntry


class RankedCandidate(BaseModel):
    """A tree entry with its relevance score. Never persisted."""

    entry: TreeEntry
    score: int


class ContextBundle(BaseModel):
    """Text fragments assembled to ground a single question."""

    fragments: list[str]
    total_size: int

    def render(self) -> str:
        return "\n".join(self.fragments)
