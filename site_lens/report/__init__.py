# File: site_lens/report/__init__.py
"""site_lens.report: JSON and HTML renderers for the crawl report."""

from __future__ import annotations

from site_lens.report.html_report import render_html
from site_lens.report.json_report import render_json

__all__ = ["render_json", "render_html"]
