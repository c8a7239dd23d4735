# File: site_lens/index.py
"""site_lens.index: Incremental inverted index over page text.

Terms are lower-cased ``\\w+`` tokens. Each term maps to the pages that
contain it and the character offsets of every occurrence. A page's postings
are computed outside the lock and merged in one step, so readers see a page
either completely indexed or not at all.
"""

from __future__ import annotations

import re
import threading
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Set

from site_lens.crawler.models import PageStatus
from site_lens.logger import logger

if TYPE_CHECKING:
    from site_lens.graph import CrawlGraph

__all__ = ["TextIndex", "tokenize", "fold"]

TOKEN_RE = re.compile(r"\w+")


def fold(text: str) -> str:
    """Case folding used on both page text and queries."""
    return text.lower()


def tokenize(text: str) -> List[tuple[str, int]]:
    """``(term, offset)`` pairs of the folded *text*."""
    return [(m.group(), m.start()) for m in TOKEN_RE.finditer(fold(text))]


class TextIndex:
    """Append-only keyword index; holds URL keys only, never page content."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._postings: Dict[str, Dict[str, List[int]]] = {}
        self._urls: Set[str] = set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def index_page(self, url: str, text: str) -> bool:
        """Index *text* under *url*; False if the URL is already indexed."""
        local: Dict[str, List[int]] = {}
        for term, offset in tokenize(text):
            local.setdefault(term, []).append(offset)
        with self._lock:
            if url in self._urls:
                return False
            for term, offsets in local.items():
                self._postings.setdefault(term, {})[url] = offsets
            self._urls.add(url)
        logger.debug("Indexed %s: %d distinct terms", url, len(local))
        return True

    def indexed_urls(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._urls)

    def terms(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._postings)

    def occurrences(self, term: str, url: str) -> List[int]:
        """Offsets of the exact token *term* in the page at *url*."""
        with self._lock:
            return list(self._postings.get(fold(term), {}).get(url, ()))

    def candidates(self, keyword: str) -> FrozenSet[str]:
        """
        URLs whose text may contain *keyword* as a substring.

        A keyword made only of word characters can only occur inside a
        single token, so scanning the vocabulary is exact. Anything else
        (punctuation, spaces) cannot be answered from tokens and returns
        every indexed URL for the caller to verify.
        """
        needle = fold(keyword)
        with self._lock:
            if not TOKEN_RE.fullmatch(needle):
                return frozenset(self._urls)
            found: Set[str] = set()
            for term, pages in self._postings.items():
                if needle in term:
                    found.update(pages)
            return frozenset(found)

    def rebuild(self, graph: "CrawlGraph") -> int:
        """Discard everything and re-index all fetched pages from *graph*."""
        pages = graph.all_pages(PageStatus.FETCHED)
        with self._lock:
            self._postings.clear()
            self._urls.clear()
            for page in pages:
                self.index_page(page.url, page.text)
        logger.info("Text index rebuilt from %d pages", len(pages))
        return len(pages)
