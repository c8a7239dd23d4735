# File: site_lens/graph.py
"""site_lens.graph: Crawl graph, the single owner of pages and links.

Pages are stored in an arena keyed by normalized URL; edges are sets of URL
keys, so cyclic link structures never become cyclic object references. All
methods take one re-entrant lock, which makes every read a consistent
snapshot even while workers keep committing from the event loop.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from site_lens.crawler.models import PageNode, PageStatus

__all__ = ["CrawlGraph"]


class CrawlGraph:
    """Pages in commit order plus the directed link relation between them."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: Dict[str, PageNode] = {}
        self._order: List[PageNode] = []
        self._edges: Dict[str, Set[str]] = {}
        self._reverse: Dict[str, Set[str]] = {}
        self._next_seq = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._nodes

    def commit_page(self, node: PageNode, edges: Iterable[str] = ()) -> bool:
        """
        Insert *node* in its terminal state together with its outgoing edges.

        The discovery sequence number is assigned here, under the graph lock.
        Returns False and changes nothing if the URL was already committed.
        """
        if not node.status.terminal:
            raise ValueError(f"cannot commit {node.url} in non-terminal state {node.status}")
        targets = set(edges)
        with self._lock:
            if node.url in self._nodes:
                return False
            committed = replace(node, sequence=self._next_seq)
            self._next_seq += 1
            self._nodes[node.url] = committed
            self._order.append(committed)
            if targets:
                self._edges.setdefault(node.url, set()).update(targets)
                for target in targets:
                    self._reverse.setdefault(target, set()).add(node.url)
            return True

    def get(self, url: str) -> Optional[PageNode]:
        with self._lock:
            return self._nodes.get(url)

    def status_of(self, url: str) -> Optional[PageStatus]:
        node = self.get(url)
        return node.status if node else None

    def is_unreachable(self, url: str) -> bool:
        """True for a link target whose fetch failed."""
        return self.status_of(url) is PageStatus.FAILED

    def neighbors(self, url: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._edges.get(url, ()))

    def referrers(self, url: str) -> FrozenSet[str]:
        """Pages that link to *url*."""
        with self._lock:
            return frozenset(self._reverse.get(url, ()))

    def edge_count(self) -> int:
        with self._lock:
            return sum(len(targets) for targets in self._edges.values())

    def all_pages(self, status: Optional[PageStatus] = None) -> List[PageNode]:
        """Committed pages in ascending discovery order, optionally filtered by status."""
        with self._lock:
            if status is None:
                return list(self._order)
            return [n for n in self._order if n.status is status]

    def pending_targets(self) -> FrozenSet[str]:
        """Edge targets that never got a node (dropped by a bound or never fetched)."""
        with self._lock:
            return frozenset(t for t in self._reverse if t not in self._nodes)
