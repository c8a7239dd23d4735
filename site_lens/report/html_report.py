"""site_lens.report.html_report: HTML crawl report rendered with Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, PackageLoader, select_autoescape

from site_lens.aggregator import CrawlReport

TEMPLATE_NAME = "report.html.j2"


def render_html(
    report: CrawlReport,
    output_path: Union[Path, str],
    template_dir: Optional[Union[Path, str]] = None,
) -> Path:
    """Render the HTML report and save it to *output_path*.

    Args:
        report: CrawlReport to render.
        output_path: destination HTML file.
        template_dir: directory holding ``report.html.j2``; the template
            shipped with the package is used when omitted.

    Returns:
        Path of the written file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    loader = (
        FileSystemLoader(str(template_dir))
        if template_dir is not None
        else PackageLoader("site_lens", "templates")
    )
    env = Environment(loader=loader, autoescape=select_autoescape(["html", "xml", "j2"]))
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {
        "pages": report.pages,
        "failures": report.failures,
        "searches": report.searches,
        "progress": report.progress,
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
