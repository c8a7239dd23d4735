# site_lens/crawler/frontier.py
"""
Frontier and visited registry: the only mutable state shared by workers.

Both live behind one :class:`asyncio.Condition`, so the "seen before?" check,
the bound checks, the enqueue, the claim and the quiescence test are each a
single atomic step with respect to every other worker.
"""
from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Dict, Optional

from site_lens.crawler.models import CrawlProgress, FrontierEntry, PageStatus
from site_lens.errors import InvariantViolation
from site_lens.logger import logger

__all__ = ("VisitedRegistry", "Frontier")

_TRANSITIONS = {
    PageStatus.QUEUED: (PageStatus.FETCHING,),
    PageStatus.FETCHING: (PageStatus.FETCHED, PageStatus.FAILED),
}


class VisitedRegistry:
    """Every URL ever admitted to the frontier, with its current state."""

    def __init__(self) -> None:
        self._states: Dict[str, PageStatus] = {}

    def __contains__(self, url: object) -> bool:
        return url in self._states

    def __len__(self) -> int:
        return len(self._states)

    def state(self, url: str) -> Optional[PageStatus]:
        return self._states.get(url)

    def admit(self, url: str) -> bool:
        """Record *url* as queued; False when it was already known."""
        if url in self._states:
            return False
        self._states[url] = PageStatus.QUEUED
        return True

    def transition(self, url: str, status: PageStatus) -> None:
        current = self._states.get(url)
        if current is None or status not in _TRANSITIONS.get(current, ()):
            raise InvariantViolation(f"illegal transition {current} -> {status} for {url}")
        self._states[url] = status

    def count(self, status: PageStatus) -> int:
        return sum(1 for s in self._states.values() if s is status)


class Frontier:
    """Work queue of URLs awaiting fetch, bounded by depth and page count."""

    def __init__(
        self,
        *,
        max_depth: Optional[int] = None,
        max_pages: Optional[int] = None,
        progress: Optional[CrawlProgress] = None,
    ) -> None:
        self.max_depth = max_depth
        self.max_pages = max_pages
        self.registry = VisitedRegistry()
        self.progress = progress or CrawlProgress()
        #: links discovered but never admitted, with the bound that stopped them
        self.dropped: Dict[str, str] = {}
        self._queue: Deque[FrontierEntry] = deque()
        self._in_flight = 0
        self._closed = False
        self._cond = asyncio.Condition()
        self._quiescent = asyncio.Event()

    # ------------------------------------------------------------------ #
    # Introspection                                                       #
    # ------------------------------------------------------------------ #

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def __len__(self) -> int:
        return len(self._queue)

    async def wait_quiescent(self) -> None:
        await self._quiescent.wait()

    def is_quiescent(self) -> bool:
        return self._quiescent.is_set()

    # ------------------------------------------------------------------ #
    # Producer side                                                       #
    # ------------------------------------------------------------------ #

    async def offer(self, url: str, depth: int, referrer: Optional[str] = None) -> bool:
        """Enqueue *url* unless it is known, out of bounds or the frontier is closed."""
        async with self._cond:
            if self._closed or url in self.registry:
                return False
            if self.max_depth is not None and depth > self.max_depth:
                self._drop(url, "depth")
                return False
            if self.max_pages is not None and len(self.registry) >= self.max_pages:
                self._drop(url, "page-limit")
                return False
            self.registry.admit(url)
            if self.dropped.pop(url, None) is not None:
                self.progress.dropped(-1)
            self._queue.append(FrontierEntry(url, depth, referrer))
            self.progress.enqueued()
            self._cond.notify()
            return True

    def _drop(self, url: str, reason: str) -> None:
        if url not in self.dropped:
            self.dropped[url] = reason
            self.progress.dropped()
            logger.debug("Dropped %s (%s bound)", url, reason)

    # ------------------------------------------------------------------ #
    # Worker side                                                         #
    # ------------------------------------------------------------------ #

    async def claim(self) -> Optional[FrontierEntry]:
        """
        Next entry to fetch, marked FETCHING; ``None`` once the crawl is over.

        Waits while the queue is empty but other workers are still fetching,
        since they may discover more links.
        """
        async with self._cond:
            while True:
                if self._closed:
                    return None
                if self._queue:
                    entry = self._queue.popleft()
                    self.registry.transition(entry.url, PageStatus.FETCHING)
                    self._in_flight += 1
                    self.progress.claimed()
                    return entry
                if self._in_flight == 0:
                    self._mark_quiescent()
                    return None
                await self._cond.wait()

    async def done(self, entry: FrontierEntry, status: PageStatus) -> None:
        """Record the terminal state of a claimed entry."""
        async with self._cond:
            self.registry.transition(entry.url, status)
            self._in_flight -= 1
            self.progress.completed(status)
            if self._in_flight == 0 and not self._queue:
                self._mark_quiescent()
            self._cond.notify_all()

    async def close(self) -> int:
        """Stop handing out entries; returns the number of queued URLs discarded."""
        async with self._cond:
            self._closed = True
            discarded = len(self._queue)
            self._queue.clear()
            self.progress.discarded(discarded)
            self._cond.notify_all()
            return discarded

    def _mark_quiescent(self) -> None:
        if not self._quiescent.is_set():
            self._quiescent.set()
            self._cond.notify_all()
            logger.debug("Frontier reached quiescence (%d URLs admitted)", len(self.registry))
