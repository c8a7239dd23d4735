# site_lens/crawler/models.py
"""
Data models for the SiteLens crawler.
"""
from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Optional


class PageStatus(str, enum.Enum):
    """Lifecycle of one URL within a crawl."""

    QUEUED = "queued"
    FETCHING = "fetching"
    FETCHED = "fetched"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PageStatus.FETCHED, PageStatus.FAILED)


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    """URL waiting for a worker, with its hop count and referring page."""

    url: str
    depth: int
    referrer: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PageNode:
    """A page in its terminal state; ``sequence`` is assigned by the graph."""

    url: str
    status: PageStatus
    depth: int
    text: str = ""
    title: str = ""
    referrer: Optional[str] = None
    reason: str = ""
    sequence: int = -1


@dataclass(frozen=True, slots=True)
class RenderedPage:
    """HTML snapshot returned by a render backend."""

    url: str
    html: str
    status: int = 200


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    queued: int = 0
    fetching: int = 0
    fetched: int = 0
    failed: int = 0
    dropped: int = 0
    finished: bool = False
    cancelled: bool = False

    @property
    def discovered(self) -> int:
        return self.queued + self.fetching + self.fetched + self.failed


class CrawlProgress:
    """Live crawl counters shared with the presentation layer.

    Updated by the frontier and the workers; :meth:`snapshot` may be called
    from any thread and always returns a consistent set of counts.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queued = 0
        self._fetching = 0
        self._fetched = 0
        self._failed = 0
        self._dropped = 0
        self._finished = False
        self._cancelled = False

    def enqueued(self) -> None:
        with self._lock:
            self._queued += 1

    def claimed(self) -> None:
        with self._lock:
            self._queued -= 1
            self._fetching += 1

    def completed(self, status: PageStatus) -> None:
        with self._lock:
            self._fetching -= 1
            if status is PageStatus.FETCHED:
                self._fetched += 1
            else:
                self._failed += 1

    def discarded(self, count: int) -> None:
        """Queued entries thrown away by a cancellation."""
        with self._lock:
            self._queued -= count

    def dropped(self, count: int = 1) -> None:
        with self._lock:
            self._dropped += count

    def finish(self, *, cancelled: bool = False) -> None:
        with self._lock:
            self._finished = True
            self._cancelled = self._cancelled or cancelled

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                queued=self._queued,
                fetching=self._fetching,
                fetched=self._fetched,
                failed=self._failed,
                dropped=self._dropped,
                finished=self._finished,
                cancelled=self._cancelled,
            )
