# File: site_lens/errors.py
"""site_lens.errors: Exception hierarchy of the crawl engine.

Per-URL problems (:class:`RenderFailure`, a discovered :class:`MalformedUrl`)
stay local to that URL; only configuration-time errors abort a crawl.
"""

from __future__ import annotations

__all__ = [
    "CrawlError",
    "MalformedUrl",
    "RenderFailure",
    "RenderServiceUnavailable",
    "InvariantViolation",
    "IndexInconsistency",
]


class CrawlError(Exception):
    """Base class for every error raised by site_lens."""


class MalformedUrl(CrawlError, ValueError):
    """URL cannot be normalized (bad scheme, missing host, invalid port)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"malformed URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class RenderFailure(CrawlError):
    """Render backend could not produce HTML for one URL."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"render failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class RenderServiceUnavailable(CrawlError):
    """Render backend is unusable at startup."""


class InvariantViolation(CrawlError, RuntimeError):
    """Internal state machine or bookkeeping went wrong."""


class IndexInconsistency(InvariantViolation):
    """Text index references a page the crawl graph does not hold as fetched."""
