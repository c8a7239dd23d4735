# File: site_lens/aggregator.py
"""site_lens.aggregator: Builds the crawl report consumed by the CLI and the report renderers."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence, TypedDict

from site_lens.query import QueryEngine


class PageInfo(TypedDict):
    """One crawled page."""

    url: str
    title: str
    status: str
    depth: int
    sequence: int
    links: List[str]
    reason: str


class SnippetInfo(TypedDict):
    text: str
    start: int
    end: int
    match_start: int
    match_end: int


class HitInfo(TypedDict):
    url: str
    title: str
    match_count: int
    snippets: List[SnippetInfo]


class SearchInfo(TypedDict):
    """Results of one keyword query."""

    query: str
    hits: List[HitInfo]


@dataclass(slots=True)
class CrawlReport:
    """Pages, link targets, failures and searches of one crawl."""

    pages: List[PageInfo] = field(default_factory=list)
    failures: List[PageInfo] = field(default_factory=list)
    searches: List[SearchInfo] = field(default_factory=list)
    progress: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def _pages(engine: QueryEngine) -> List[PageInfo]:
    pages: List[PageInfo] = []
    for summary in engine.list_pages():
        pages.append(
            {
                "url": summary.url,
                "title": summary.title,
                "status": summary.status.value,
                "depth": summary.depth,
                "sequence": summary.sequence,
                "links": sorted(engine.graph.neighbors(summary.url)),
                "reason": summary.reason,
            }
        )
    return pages


def _search(engine: QueryEngine, query: str) -> SearchInfo:
    hits: List[HitInfo] = []
    for result in engine.search(query):
        hits.append(
            {
                "url": result.page.url,
                "title": result.page.title,
                "match_count": result.match_count,
                "snippets": [
                    {
                        "text": s.text,
                        "start": s.start,
                        "end": s.end,
                        "match_start": s.match_start,
                        "match_end": s.match_end,
                    }
                    for s in result.snippets
                ],
            }
        )
    return {"query": query, "hits": hits}


def build_report(engine: QueryEngine, queries: Sequence[str] = ()) -> CrawlReport:
    """Collect all report sections from a (finished or running) crawl."""
    pages = _pages(engine)
    return CrawlReport(
        pages=pages,
        failures=[p for p in pages if p["status"] == "failed"],
        searches=[_search(engine, q) for q in queries],
        progress=asdict(engine.progress()),
    )
