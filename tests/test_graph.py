# File: tests/test_graph.py
import threading

import pytest

from site_lens.crawler.models import PageNode, PageStatus
from site_lens.graph import CrawlGraph

A = "http://example.com/a"
B = "http://example.com/b"
C = "http://example.com/c"


def fetched(url: str, text: str = "", depth: int = 0) -> PageNode:
    return PageNode(url=url, status=PageStatus.FETCHED, depth=depth, text=text)


def test_commit_assigns_sequence_in_commit_order():
    graph = CrawlGraph()
    assert graph.commit_page(fetched(B), [A])
    assert graph.commit_page(fetched(A), [B, C])
    pages = graph.all_pages()
    assert [p.url for p in pages] == [B, A]
    assert [p.sequence for p in pages] == [0, 1]


def test_commit_is_idempotent_per_url():
    graph = CrawlGraph()
    assert graph.commit_page(fetched(A, "first"), [B])
    assert not graph.commit_page(fetched(A, "second"), [C])
    assert len(graph) == 1
    assert graph.get(A).text == "first"
    assert graph.neighbors(A) == {B}
    assert graph.edge_count() == 1


def test_edges_are_sets_and_may_point_to_pending_pages():
    graph = CrawlGraph()
    graph.commit_page(fetched(A), [B, B, C])
    assert graph.neighbors(A) == frozenset({B, C})
    assert graph.referrers(B) == {A}
    assert graph.pending_targets() == {B, C}
    assert graph.neighbors("http://example.com/unknown") == frozenset()


def test_failed_pages_are_unreachable_targets():
    graph = CrawlGraph()
    graph.commit_page(fetched(A), [B])
    graph.commit_page(PageNode(url=B, status=PageStatus.FAILED, depth=1, reason="HTTP 500"))
    assert graph.is_unreachable(B)
    assert not graph.is_unreachable(A)
    assert graph.status_of(C) is None
    assert [p.url for p in graph.all_pages(PageStatus.FETCHED)] == [A]
    assert [p.url for p in graph.all_pages(PageStatus.FAILED)] == [B]


def test_non_terminal_nodes_are_rejected():
    graph = CrawlGraph()
    with pytest.raises(ValueError):
        graph.commit_page(PageNode(url=A, status=PageStatus.QUEUED, depth=0))


def test_readers_see_whole_nodes_while_writer_commits():
    graph = CrawlGraph()
    total = 500
    errors = []

    def writer():
        for i in range(total):
            url = f"http://example.com/{i}"
            graph.commit_page(fetched(url, f"text {i}"), [f"http://example.com/{i + 1}"])

    def reader():
        while len(graph) < total:
            pages = graph.all_pages()
            for expected_seq, page in enumerate(pages):
                if page.sequence != expected_seq or page.text != f"text {page.url.rsplit('/', 1)[1]}":
                    errors.append(page)

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert not errors
    assert len(graph.all_pages()) == total
