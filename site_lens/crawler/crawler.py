# === FILE: site_lens/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import time
from typing import List, Optional

from site_lens.config import CrawlConfig
from site_lens.crawler.frontier import Frontier
from site_lens.crawler.link_extractor import Extraction, extract
from site_lens.crawler.models import CrawlProgress, FrontierEntry, PageNode, PageStatus
from site_lens.crawler.renderer import Renderer, build_renderer
from site_lens.crawler.urls import normalize_url, origin_of
from site_lens.errors import RenderFailure
from site_lens.graph import CrawlGraph
from site_lens.index import TextIndex
from site_lens.logger import logger
from site_lens.query import QueryEngine

__all__ = ("AsyncCrawler",)


class AsyncCrawler:
    """Same-origin crawler: a pool of workers draining one shared frontier.

    Usage::

        async with AsyncCrawler(config) as crawler:
            await crawler.crawl()
        crawler.query.search("keyword")

    ``graph``, ``index``, ``progress`` and ``query`` are usable while the
    crawl runs; results are live and grow until quiescence.
    """

    def __init__(self, config: CrawlConfig, renderer: Optional[Renderer] = None) -> None:
        self.config = config
        self.seed = normalize_url(str(config.seed_url))
        self.origin = origin_of(self.seed)
        self.renderer: Renderer = renderer or build_renderer(config)
        self.progress = CrawlProgress()
        self.frontier = Frontier(
            max_depth=config.max_depth,
            max_pages=config.max_pages,
            progress=self.progress,
        )
        self.graph = CrawlGraph()
        self.index = TextIndex()
        self.query = QueryEngine(
            self.graph,
            self.index,
            self.progress,
            snippet_context=config.snippet_context,
            max_snippets=config.max_snippets,
        )
        self._render_slots = asyncio.Semaphore(config.effective_render_concurrency)
        self._opened = False

    async def __aenter__(self) -> AsyncCrawler:
        await self.renderer.open()
        self._opened = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._opened = False
        await self.renderer.close()

    # ------------------------------------------------------------------ #
    # Orchestration                                                       #
    # ------------------------------------------------------------------ #

    async def crawl(self) -> List[PageNode]:
        """Run until quiescence, cancellation or ``crawl_timeout``; return all pages."""
        if not self._opened:
            raise RuntimeError("AsyncCrawler must be used as an async context manager")
        logger.info("Crawl started: %s", self.seed)
        start = time.monotonic()
        await self.frontier.offer(self.seed, 0)
        workers = [
            asyncio.create_task(self._worker(), name=f"site-lens-worker-{i}")
            for i in range(self.config.concurrency)
        ]
        cancelled = False
        try:
            quiescent = asyncio.ensure_future(self.frontier.wait_quiescent())
            try:
                finished, _ = await asyncio.wait(
                    [quiescent, *workers],
                    timeout=self.config.crawl_timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                quiescent.cancel()
            crashed = [
                t for t in finished
                if t is not quiescent and not t.cancelled() and t.exception() is not None
            ]
            if crashed:
                await self._shutdown(workers)
                raise crashed[0].exception()  # type: ignore[misc]
            # a closed frontier also drains to quiescence; that is still a cancel
            if self.frontier.is_quiescent() and not self.frontier.closed:
                await asyncio.gather(*workers)
            else:
                if not self.frontier.closed:
                    logger.warning("Crawl timeout of %s s reached; stopping", self.config.crawl_timeout)
                cancelled = True
                await self._shutdown(workers)
        except asyncio.CancelledError:
            cancelled = True
            await asyncio.shield(self._shutdown(workers))
            raise
        finally:
            self.progress.finish(cancelled=cancelled)
            snap = self.progress.snapshot()
            duration = time.monotonic() - start
            logger.info(
                "Crawl finished: %d fetched, %d failed, %d dropped in %.2f s",
                snap.fetched,
                snap.failed,
                snap.dropped,
                duration,
            )
        return self.graph.all_pages()

    async def cancel(self) -> None:
        """Stop claiming new URLs; in-flight fetches still get ``shutdown_grace``."""
        discarded = await self.frontier.close()
        logger.info("Crawl cancelled; %d queued URLs discarded", discarded)

    async def _shutdown(self, workers: List[asyncio.Task]) -> None:
        await self.frontier.close()
        pending = [w for w in workers if not w.done()]
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self.config.shutdown_grace)
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Worker                                                              #
    # ------------------------------------------------------------------ #

    async def _worker(self) -> None:
        while True:
            entry = await self.frontier.claim()
            if entry is None:
                return
            status = PageStatus.FAILED
            try:
                status = await self._process(entry)
            except asyncio.CancelledError:
                self._record_failure(entry, "cancelled")
                raise
            finally:
                await asyncio.shield(self.frontier.done(entry, status))

    async def _process(self, entry: FrontierEntry) -> PageStatus:
        try:
            async with self._render_slots:
                page = await asyncio.wait_for(
                    self.renderer.render(entry.url), timeout=self.config.fetch_timeout
                )
        except asyncio.TimeoutError:
            return self._record_failure(entry, "timeout")
        except RenderFailure as exc:
            return self._record_failure(entry, exc.reason)

        result: Extraction = await asyncio.to_thread(extract, page.html, page.url, self.origin)
        if result.degraded and result.empty:
            return self._record_failure(entry, "unparseable content")

        for link in sorted(result.links):
            await self.frontier.offer(link, entry.depth + 1, entry.url)

        node = PageNode(
            url=entry.url,
            status=PageStatus.FETCHED,
            depth=entry.depth,
            text=result.text,
            title=result.title,
            referrer=entry.referrer,
        )
        if self.graph.commit_page(node, result.links):
            self.index.index_page(entry.url, result.text)
        logger.debug("Fetched %s (depth %d, %d links)", entry.url, entry.depth, len(result.links))
        return PageStatus.FETCHED

    def _record_failure(self, entry: FrontierEntry, reason: str) -> PageStatus:
        logger.warning("Failed %s: %s", entry.url, reason)
        self.graph.commit_page(
            PageNode(
                url=entry.url,
                status=PageStatus.FAILED,
                depth=entry.depth,
                referrer=entry.referrer,
                reason=reason,
            )
        )
        return PageStatus.FAILED
