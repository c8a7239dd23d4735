# File: tests/test_report.py
import json

import pytest

from site_lens import engine as engine_module
from site_lens.aggregator import CrawlReport, build_report
from site_lens.engine import Engine, start_crawl
from site_lens.report import render_html, render_json
from tests.conftest import SEED, FakeRenderer, links_page

PAGES = {
    SEED: links_page("/a", "/b", text="Alpha <b>and</b> omega"),
    "http://example.com/a": links_page("/", text="alpha page"),
}


@pytest.mark.asyncio()
async def test_start_crawl_returns_query_engine(basic_config):
    renderer = FakeRenderer(PAGES)
    query = await start_crawl(basic_config, renderer=renderer)
    assert renderer.opened and renderer.closed
    assert [r.page.url for r in query.search("alpha")] == [SEED, "http://example.com/a"]
    assert query.progress().finished


@pytest.mark.asyncio()
async def test_build_report_sections(basic_config):
    query = await start_crawl(basic_config, renderer=FakeRenderer(PAGES))
    report = build_report(query, ["omega", "zzz"])

    assert [p["url"] for p in report.pages][0] == SEED
    assert sorted(report.pages[0]["links"]) == ["http://example.com/a", "http://example.com/b"]
    assert [f["url"] for f in report.failures] == ["http://example.com/b"]
    assert report.failures[0]["reason"] == "HTTP 404"
    assert report.searches[0]["hits"][0]["match_count"] == 1
    assert report.searches[1] == {"query": "zzz", "hits": []}
    assert report.progress["fetched"] == 2
    assert report.progress["failed"] == 1

    data = json.loads(report.json())
    assert set(data) == {"pages", "failures", "searches", "progress"}


@pytest.mark.asyncio()
async def test_report_files(tmp_path, basic_config):
    query = await start_crawl(basic_config, renderer=FakeRenderer(PAGES))
    report = build_report(query, ["omega"])

    json_path = render_json(report, tmp_path / "r" / "crawl.json", pretty=False)
    assert json.loads(json_path.read_text(encoding="utf-8"))["pages"][0]["url"] == SEED

    html_path = render_html(report, tmp_path / "crawl.html")
    html = html_path.read_text(encoding="utf-8")
    assert "<mark>omega</mark>" in html
    assert "HTTP 404" in html


def test_html_report_custom_template(tmp_path):
    (tmp_path / "report.html.j2").write_text("{{ pages | length }} pages, {{ searches | length }} searches", encoding="utf-8")
    report = CrawlReport(pages=[{"url": SEED}], searches=[])
    out = render_html(report, tmp_path / "out.html", template_dir=tmp_path)
    assert out.read_text(encoding="utf-8") == "1 pages, 0 searches"


def test_engine_run_builds_report(monkeypatch, basic_config):
    async def fake_start(cfg):
        return await start_crawl(cfg, renderer=FakeRenderer(PAGES))

    monkeypatch.setattr(engine_module, "start_crawl", fake_start)
    runner = Engine(basic_config)
    report = runner.run(["alpha"])
    assert runner.query is not None
    assert [h["url"] for h in report.searches[0]["hits"]] == [SEED, "http://example.com/a"]
