# File: site_lens/query.py
"""site_lens.query: Keyword search and page listing over a live crawl.

Query semantics
---------------
* Matching is case-insensitive substring containment.
* The query is split on whitespace; a page qualifies only if it contains
  *every* term (AND).
* Results are ordered by discovery sequence; ``match_count`` is reported for
  display but does not affect ordering.
* An empty query returns every indexed page; no match returns ``[]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from site_lens.crawler.models import CrawlProgress, PageNode, PageStatus, ProgressSnapshot
from site_lens.errors import IndexInconsistency
from site_lens.graph import CrawlGraph
from site_lens.index import TextIndex, fold

__all__ = ["Snippet", "SearchResult", "PageSummary", "QueryEngine", "split_query"]


@dataclass(frozen=True, slots=True)
class Snippet:
    """Excerpt of page text around one match; offsets index the page text."""

    text: str
    start: int
    end: int
    match_start: int
    match_end: int

    @property
    def match(self) -> str:
        return self.text[self.match_start - self.start : self.match_end - self.start]


@dataclass(frozen=True, slots=True)
class SearchResult:
    page: PageNode
    snippets: List[Snippet] = field(default_factory=list)
    match_count: int = 0


@dataclass(frozen=True, slots=True)
class PageSummary:
    url: str
    title: str
    status: PageStatus
    depth: int
    sequence: int
    links: int
    reason: str = ""


def split_query(query: str) -> List[str]:
    """Distinct folded terms of *query*, in order of first appearance."""
    return list(dict.fromkeys(fold(query).split()))


def _find_all(haystack: str, needle: str) -> List[int]:
    """Start offsets of non-overlapping occurrences of *needle*."""
    hits: List[int] = []
    pos = haystack.find(needle)
    while pos != -1:
        hits.append(pos)
        pos = haystack.find(needle, pos + len(needle))
    return hits


class QueryEngine:
    """Read-only facade over the crawl graph and text index."""

    def __init__(
        self,
        graph: CrawlGraph,
        index: TextIndex,
        progress: Optional[CrawlProgress] = None,
        *,
        snippet_context: int = 40,
        max_snippets: int = 3,
    ) -> None:
        self.graph = graph
        self.index = index
        self._progress = progress or CrawlProgress()
        self.snippet_context = snippet_context
        self.max_snippets = max_snippets

    # ------------------------------------------------------------------ #
    # Listing                                                             #
    # ------------------------------------------------------------------ #

    def list_pages(self, include_failed: bool = True) -> List[PageSummary]:
        status = None if include_failed else PageStatus.FETCHED
        return [
            PageSummary(
                url=node.url,
                title=node.title,
                status=node.status,
                depth=node.depth,
                sequence=node.sequence,
                links=len(self.graph.neighbors(node.url)),
                reason=node.reason,
            )
            for node in self.graph.all_pages(status)
        ]

    def page_text(self, url: str) -> Optional[str]:
        node = self.graph.get(url)
        return node.text if node else None

    def progress(self) -> ProgressSnapshot:
        return self._progress.snapshot()

    # ------------------------------------------------------------------ #
    # Search                                                              #
    # ------------------------------------------------------------------ #

    def _indexed_node(self, url: str) -> PageNode:
        node = self.graph.get(url)
        if node is None or node.status is not PageStatus.FETCHED:
            raise IndexInconsistency(f"index references {url}, which is not a fetched page")
        return node

    def search(self, query: str) -> List[SearchResult]:
        terms = split_query(query)
        if not terms:
            nodes = [self._indexed_node(url) for url in self.index.indexed_urls()]
            return [SearchResult(page=n) for n in sorted(nodes, key=lambda n: n.sequence)]

        candidates = set(self.index.candidates(terms[0]))
        for term in terms[1:]:
            if not candidates:
                break
            candidates &= self.index.candidates(term)

        results: List[SearchResult] = []
        for url in candidates:
            node = self._indexed_node(url)
            spans = self._term_spans(node.text, terms)
            if spans is None:
                continue
            results.append(
                SearchResult(
                    page=node,
                    snippets=self._snippets(node.text, spans),
                    match_count=len(spans),
                )
            )
        results.sort(key=lambda r: r.page.sequence)
        return results

    def highlight(self, url: str, query: str) -> List[Tuple[int, int]]:
        """Every match span of *query* terms in the page text, merged and sorted."""
        text = self.page_text(url)
        terms = split_query(query)
        if not text or not terms:
            return []
        return _merge(self._term_spans(text, terms, require_all=False) or [])

    def _term_spans(
        self, text: str, terms: Sequence[str], require_all: bool = True
    ) -> Optional[List[Tuple[int, int]]]:
        """Match spans of *terms*, as offsets into the original *text*."""
        folded, offsets = _fold_with_offsets(text)
        spans: List[Tuple[int, int]] = []
        for term in terms:
            hits = _find_all(folded, term)
            if not hits and require_all:
                return None
            spans.extend((offsets[pos], offsets[pos + len(term) - 1] + 1) for pos in hits)
        spans.sort()
        return spans

    def _snippets(self, text: str, spans: List[Tuple[int, int]]) -> List[Snippet]:
        snippets: List[Snippet] = []
        covered = -1
        for match_start, match_end in spans:
            if match_start < covered:
                continue
            start = max(0, match_start - self.snippet_context)
            end = min(len(text), match_end + self.snippet_context)
            snippets.append(Snippet(text[start:end], start, end, match_start, match_end))
            covered = end
            if len(snippets) >= self.max_snippets:
                break
        return snippets


def _fold_with_offsets(text: str) -> Tuple[str, List[int]]:
    """Folded *text* plus, per folded character, its index in *text*."""
    folded = fold(text)
    if len(folded) == len(text):
        return folded, list(range(len(text)))
    # some characters grow when folded ("İ" -> "i̇"); fold one at a time
    parts: List[str] = []
    offsets: List[int] = []
    for i, ch in enumerate(text):
        piece = fold(ch)
        parts.append(piece)
        offsets.extend([i] * len(piece))
    return "".join(parts), offsets


def _merge(spans: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged
