# File: tests/test_frontier.py
import asyncio

import pytest

from site_lens.crawler.frontier import Frontier, VisitedRegistry
from site_lens.crawler.models import PageStatus
from site_lens.errors import InvariantViolation

A = "http://example.com/a"
B = "http://example.com/b"


@pytest.mark.asyncio()
async def test_offer_admits_each_url_once():
    frontier = Frontier()
    results = await asyncio.gather(*(frontier.offer(A, 1) for _ in range(50)))
    assert results.count(True) == 1
    assert len(frontier) == 1
    assert frontier.progress.snapshot().queued == 1


@pytest.mark.asyncio()
async def test_claimed_url_is_not_readmitted():
    frontier = Frontier()
    await frontier.offer(A, 0)
    entry = await frontier.claim()
    assert entry.url == A
    assert frontier.registry.state(A) is PageStatus.FETCHING
    assert await frontier.offer(A, 3) is False
    await frontier.done(entry, PageStatus.FETCHED)
    assert await frontier.offer(A, 1) is False


@pytest.mark.asyncio()
async def test_depth_bound_drops_links():
    frontier = Frontier(max_depth=1)
    assert await frontier.offer(A, 1)
    assert not await frontier.offer(B, 2)
    assert frontier.dropped == {B: "depth"}
    assert frontier.progress.snapshot().dropped == 1


@pytest.mark.asyncio()
async def test_dropped_url_admitted_later_at_shallower_depth():
    frontier = Frontier(max_depth=1)
    assert not await frontier.offer(B, 2)
    assert await frontier.offer(B, 1)
    assert B not in frontier.dropped
    assert frontier.progress.snapshot().dropped == 0


@pytest.mark.asyncio()
async def test_page_bound_counts_admitted_urls():
    frontier = Frontier(max_pages=2)
    assert await frontier.offer("http://example.com/1", 0)
    assert await frontier.offer("http://example.com/2", 1)
    assert not await frontier.offer("http://example.com/3", 1)
    assert frontier.dropped["http://example.com/3"] == "page-limit"


@pytest.mark.asyncio()
async def test_claim_returns_none_at_quiescence():
    frontier = Frontier()
    await frontier.offer(A, 0)
    entry = await frontier.claim()

    waiter = asyncio.create_task(frontier.claim())
    await asyncio.sleep(0.01)
    # another worker is still fetching, so the idle one must keep waiting
    assert not waiter.done()

    await frontier.offer(B, 1, A)
    second = await asyncio.wait_for(waiter, 1)
    assert second.url == B and second.referrer == A

    idle = asyncio.create_task(frontier.claim())
    await frontier.done(entry, PageStatus.FETCHED)
    await asyncio.sleep(0.01)
    assert not idle.done()
    await frontier.done(second, PageStatus.FAILED)

    assert await asyncio.wait_for(idle, 1) is None
    assert frontier.is_quiescent()
    snap = frontier.progress.snapshot()
    assert (snap.queued, snap.fetching, snap.fetched, snap.failed) == (0, 0, 1, 1)


@pytest.mark.asyncio()
async def test_empty_frontier_is_quiescent_immediately():
    frontier = Frontier()
    assert await frontier.claim() is None
    await asyncio.wait_for(frontier.wait_quiescent(), 1)


@pytest.mark.asyncio()
async def test_close_discards_queue_and_releases_waiters():
    frontier = Frontier()
    await frontier.offer(A, 0)
    await frontier.offer(B, 0)
    entry = await frontier.claim()
    second = await frontier.claim()
    assert second.url == B

    waiter = asyncio.create_task(frontier.claim())
    await asyncio.sleep(0.01)
    assert await frontier.close() == 0
    assert await asyncio.wait_for(waiter, 1) is None
    assert not await frontier.offer("http://example.com/c", 1)
    await frontier.done(entry, PageStatus.FETCHED)
    assert not frontier.is_quiescent()


def test_registry_rejects_illegal_transitions():
    registry = VisitedRegistry()
    assert registry.admit(A)
    assert not registry.admit(A)
    with pytest.raises(InvariantViolation):
        registry.transition(A, PageStatus.FETCHED)
    registry.transition(A, PageStatus.FETCHING)
    registry.transition(A, PageStatus.FAILED)
    with pytest.raises(InvariantViolation):
        registry.transition(A, PageStatus.FETCHING)
    with pytest.raises(InvariantViolation):
        registry.transition(B, PageStatus.FETCHING)
    assert registry.count(PageStatus.FAILED) == 1
