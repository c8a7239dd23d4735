# File: tests/conftest.py
import asyncio
from collections import Counter
from typing import Dict, Optional

import pytest

from site_lens.config import CrawlConfig
from site_lens.crawler.models import RenderedPage
from site_lens.errors import RenderFailure

SEED = "http://example.com/"


class FakeRenderer:
    """In-memory render backend: URL -> HTML, with optional failures and delays."""

    def __init__(
        self,
        pages: Dict[str, str],
        failures: Optional[Dict[str, str]] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.pages = pages
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: Counter = Counter()
        self.in_flight = 0
        self.max_in_flight = 0
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def render(self, url: str) -> RenderedPage:
        self.calls[url] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            if url in self.failures:
                raise RenderFailure(url, self.failures[url])
            if url not in self.pages:
                raise RenderFailure(url, "HTTP 404")
            return RenderedPage(url, self.pages[url])
        finally:
            self.in_flight -= 1


def links_page(*hrefs: str, text: str = "") -> str:
    anchors = "".join(f'<a href="{h}">{h}</a>' for h in hrefs)
    return f"<html><body><p>{text}</p>{anchors}</body></html>"


@pytest.fixture()
def make_config():
    """Factory for CrawlConfig with test-friendly defaults."""

    def _make(**kwargs) -> CrawlConfig:
        params = {
            "seed_url": SEED,
            "concurrency": 4,
            "fetch_timeout": 2.0,
            "shutdown_grace": 0.5,
        }
        params.update(kwargs)
        return CrawlConfig(**params)

    return _make


@pytest.fixture()
def basic_config(make_config) -> CrawlConfig:
    return make_config()
