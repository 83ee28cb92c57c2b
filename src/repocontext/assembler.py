"""Per-question context assembly.

One call runs two branches concurrently and joins them at ``Assembled``::

    docs: Start -> DocsFetched -> LinksFetched
    repo: Start -> RepoCoreFetched -> CandidatesRanked -> CandidatesFetched

Every step is best-effort. A ``RetrievalError`` drops that step's
contribution and the walk continues, so ``Assembled`` is always reached.
Independent fetches inside a step run concurrently; the per-key locks in
the cache store keep duplicate requests from reaching the network twice.

Output order is documentation first, then repository information, cut at
``assembler.max_total_chars``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from repocontext.errors import RepoContextError, RetrievalError
from repocontext.keywords import derive_doc_keywords, derive_repo_keywords
from repocontext.links import extract_links
from repocontext.models.context import ContextBundle
from repocontext.ranking import LARGE_FILE_BYTES, rank

if TYPE_CHECKING:
    from repocontext.config import Settings
    from repocontext.docs import DocsFetcher
    from repocontext.models.cache import FileTreeSnapshot, TreeEntry
    from repocontext.repository import RemoteFileFetcher, RemoteTreeFetcher

log = structlog.get_logger()

LARGE_CANDIDATE_CHARS = 2000
CANDIDATE_CHARS = 5000

# Tried in order when the listing is unavailable and the question is about components.
FALLBACK_COMPONENT_FILES = (
    "src/components/index.ts",
    "src/components/index.tsx",
    "src/components/index.js",
)

# Tried in order when no linked sub-page matched the question.
COMMON_DOC_PAGES = ("getting-started", "getting_started", "getting-started/", "getting_started/")


@dataclass
class _Assembly:
    """Mutable state of one ``assemble`` call."""

    question: str
    docs: list[str] = field(default_factory=list)
    repo: list[str] = field(default_factory=list)
    fetched_paths: set[str] = field(default_factory=set)
    root_html: str | None = None
    tree: FileTreeSnapshot | None = None
    candidates: list[TreeEntry] = field(default_factory=list)


class ContextAssembler:
    """Builds a size-bounded ``ContextBundle`` for a question."""

    def __init__(
        self,
        settings: Settings,
        tree_fetcher: RemoteTreeFetcher,
        file_fetcher: RemoteFileFetcher,
        docs_fetcher: DocsFetcher,
    ) -> None:
        self._settings = settings
        self._tree_fetcher = tree_fetcher
        self._file_fetcher = file_fetcher
        self._docs_fetcher = docs_fetcher

    @property
    def docs_root_url(self) -> str:
        return self._settings.docs.base_url.rstrip("/") + "/"

    async def assemble(self, question: str) -> ContextBundle | None:
        """Context for ``question``, or ``None`` when nothing could be fetched."""
        state = _Assembly(question=question)
        _transition("Start")

        await asyncio.gather(self._collect_docs(state), self._collect_repo(state))

        bundle = self._bundle(state.docs + state.repo)
        _transition("Assembled", fragments=len(bundle.fragments) if bundle else 0)
        if bundle is None:
            log.error("context_unavailable", question_chars=len(question))
        else:
            log.info("context_assembled", fragments=len(bundle.fragments), chars=bundle.total_size)
        return bundle

    async def _collect_docs(self, state: _Assembly) -> None:
        await self._fetch_docs_root(state)
        _transition("DocsFetched", fragments=len(state.docs))

        await self._fetch_doc_subpages(state)
        _transition("LinksFetched", fragments=len(state.docs))

    async def _collect_repo(self, state: _Assembly) -> None:
        await self._fetch_repo_core(state)
        _transition("RepoCoreFetched", fragments=len(state.repo))

        await self._rank_candidates(state)
        _transition("CandidatesRanked", candidates=len(state.candidates))

        await self._fetch_candidates(state)
        _transition("CandidatesFetched", fragments=len(state.repo))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _fetch_docs_root(self, state: _Assembly) -> None:
        url = self.docs_root_url
        text = await self._docs_fetcher.fetch_text(url)
        if not text:
            return
        state.docs.append(f"## Official Documentation ({url}):\n{text}\n")
        # Served from the in-process tier: fetch_text just stored it.
        try:
            state.root_html = await self._docs_fetcher.fetch_html(url)
        except RepoContextError:
            log.warning("doc_links_unavailable", url=url, exc_info=True)

    async def _fetch_repo_core(self, state: _Assembly) -> None:
        limit = self._settings.assembler.core_file_char_limit
        readme, manifest = await asyncio.gather(
            self._file("README.md"),
            self._file("package.json"),
        )
        if readme:
            state.repo.append(f"## Repository README:\n{readme[:limit]}\n")
            state.fetched_paths.add("README.md")
        if manifest:
            state.repo.append(f"## Package Configuration (package.json):\n{manifest[:limit]}\n")
            state.fetched_paths.add("package.json")

        # First hit wins; tried one at a time so a hit stops further requests.
        for path in self._settings.assembler.entry_points:
            content = await self._file(path)
            if not content:
                continue
            state.repo.append(self._entry_point_fragment(path, content[:limit]))
            state.fetched_paths.add(path)
            break

    async def _rank_candidates(self, state: _Assembly) -> None:
        repo = self._settings.repository
        try:
            state.tree = await self._tree_fetcher.get_file_tree(
                repo.token, repo.owner, repo.name, repo.branch
            )
        except RetrievalError as exc:
            log.warning("tree_unavailable", status_code=exc.status_code, error=exc.message)
            return

        keywords = derive_repo_keywords(state.question)
        if not keywords:
            return
        ranked = rank(state.tree, keywords, self._settings.assembler.candidate_limit)
        state.candidates = [entry for entry in ranked if entry.path not in state.fetched_paths]
        log.info("candidates_ranked", keywords=keywords, candidates=len(state.candidates))

    async def _fetch_candidates(self, state: _Assembly) -> None:
        if state.tree is None:
            await self._fetch_fallback_components(state)
            return

        contents = await asyncio.gather(*(self._file(entry.path) for entry in state.candidates))
        for entry, content in zip(state.candidates, contents, strict=True):
            if not content:
                continue
            cap = LARGE_CANDIDATE_CHARS if entry.size_bytes > LARGE_FILE_BYTES else CANDIDATE_CHARS
            state.repo.append(f"## {entry.path}:\n{content[:cap]}\n")
            state.fetched_paths.add(entry.path)

    async def _fetch_fallback_components(self, state: _Assembly) -> None:
        if "component" not in state.question.lower():
            return
        limit = self._settings.assembler.entry_point_char_limit
        for path in FALLBACK_COMPONENT_FILES:
            content = await self._file(path)
            if content:
                state.repo.append(f"## Component Structure ({path}):\n{content[:limit]}\n")
                state.fetched_paths.add(path)
                return

    async def _fetch_doc_subpages(self, state: _Assembly) -> None:
        if state.root_html is None:
            return
        keywords = derive_doc_keywords(state.question)
        if not keywords:
            return

        links = extract_links(state.root_html, self._settings.docs.base_url)
        quota = self._settings.docs.max_subpages
        fetched = 0
        for link in links:
            if fetched >= quota:
                break
            lowered = link.lower()
            if not any(keyword in lowered for keyword in keywords):
                continue
            text = await self._docs_fetcher.fetch_text(link)
            if text and text.strip():
                state.docs.append(f"\n## From {link}:\n{text}\n")
                fetched += 1
        log.info("doc_subpages_fetched", links=len(links), fetched=fetched)

        if fetched == 0:
            await self._fetch_common_doc_page(state)

    async def _fetch_common_doc_page(self, state: _Assembly) -> None:
        for page in COMMON_DOC_PAGES:
            url = self.docs_root_url + page
            text = await self._docs_fetcher.fetch_text(url)
            if text and text.strip():
                state.docs.append(f"\n## From {url}:\n{text}\n")
                return

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _file(self, path: str) -> str | None:
        repo = self._settings.repository
        try:
            return await self._file_fetcher.get_file_content(
                repo.token, repo.owner, repo.name, path, repo.branch
            )
        except RetrievalError as exc:
            log.warning(
                "file_unavailable", path=path, status_code=exc.status_code, error=exc.message
            )
            return None

    def _entry_point_fragment(self, path: str, content: str) -> str:
        limits = self._settings.assembler
        if "index" in path or "main" in path:
            return f"## Project Entry Point ({path}):\n{content[: limits.entry_point_char_limit]}\n"
        return f"## Configuration File ({path}):\n{content[: limits.config_file_char_limit]}\n"

    def _bundle(self, fragments: list[str]) -> ContextBundle | None:
        ceiling = self._settings.assembler.max_total_chars
        kept: list[str] = []
        total = 0
        for fragment in fragments:
            room = ceiling - total
            if room <= 0:
                log.info("context_truncated", dropped=len(fragments) - len(kept))
                break
            fragment = fragment[:room]
            kept.append(fragment)
            total += len(fragment)
        if not kept:
            return None
        return ContextBundle(fragments=kept, total_size=total)


def _transition(state: str, **details: int) -> None:
    log.debug("assembly_state", state=state, **details)
