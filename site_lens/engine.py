# File: site_lens/engine.py
"""site_lens.engine: Orchestration layer that runs a crawl and hands back the query API."""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from site_lens.aggregator import CrawlReport, build_report
from site_lens.config import CrawlConfig
from site_lens.crawler.crawler import AsyncCrawler
from site_lens.crawler.renderer import Renderer
from site_lens.logger import logger
from site_lens.query import QueryEngine

__all__ = ["Engine", "start_crawl"]


async def start_crawl(cfg: CrawlConfig, renderer: Optional[Renderer] = None) -> QueryEngine:
    """
    Run a complete crawl for *cfg* and return the query engine over its results.

    Configuration problems (bad seed, unreachable render service) are raised
    before any page is fetched.
    """
    async with AsyncCrawler(cfg, renderer=renderer) as crawler:
        await crawler.crawl()
    return crawler.query


class Engine:
    """Synchronous facade: crawl with a ready config and build the report."""

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self.query: Optional[QueryEngine] = None

    def run(self, queries: Sequence[str] = ()) -> CrawlReport:
        """Crawl synchronously and return the aggregated report."""
        logger.info("Starting crawl of %s", self.config.seed_url)
        try:
            self.query = asyncio.run(start_crawl(self.config))
        except Exception as exc:
            logger.error("Crawl failed: %s", exc)
            raise
        return build_report(self.query, queries)
