# site_lens/crawler/link_extractor.py
"""
Link and visible-text extraction for SiteLens.

:func:`extract` never raises on bad markup: when BeautifulSoup gives up, a
regex pass recovers what it can and the result is flagged ``degraded``.
"""
from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_lens.crawler.urls import Origin, normalize_url, origin_of, same_origin
from site_lens.errors import MalformedUrl
from site_lens.logger import logger

__all__ = ("Extraction", "extract")

_SKIP_PREFIXES = ("mailto:", "javascript:", "tel:", "data:")
_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]

_HREF_RE = re.compile(r"""<a\b[^>]*?\bhref\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.I)
_INVISIBLE_RE = re.compile(r"<(script|style|noscript|template)\b.*?</\1\s*>", re.I | re.S)
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_TITLE_RE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.I | re.S)


@dataclass(slots=True)
class Extraction:
    """Outcome of parsing one page."""

    links: Set[str] = field(default_factory=set)
    text: str = ""
    title: str = ""
    degraded: bool = False

    @property
    def empty(self) -> bool:
        return not self.links and not self.text


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _resolve_links(hrefs: Iterable[str], base_url: str, origin: Origin) -> Set[str]:
    links: Set[str] = set()
    for href in hrefs:
        raw = href.strip()
        if not raw or raw.lower().startswith(_SKIP_PREFIXES):
            continue
        try:
            absolute = normalize_url(urljoin(base_url, raw))
        except (MalformedUrl, ValueError):
            logger.debug("Dropping malformed link %r on %s", raw, base_url)
            continue
        if same_origin(absolute, origin):
            links.add(absolute)
    return links


def _parse_soup(markup: str, base_url: str, origin: Origin) -> Extraction:
    soup = BeautifulSoup(markup, "html.parser")

    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag) and isinstance(base_tag.get("href"), str):
        base_url = urljoin(base_url, base_tag["href"].strip())  # type: ignore[union-attr]

    title_tag = soup.find("title")
    title = _collapse(title_tag.get_text()) if title_tag else ""

    hrefs: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if isinstance(href_val, str):
            hrefs.append(href_val)

    for element in soup(_INVISIBLE_TAGS):
        element.decompose()
    root = soup.body or soup
    text = _collapse(" ".join(root.stripped_strings))

    return Extraction(links=_resolve_links(hrefs, base_url, origin), text=text, title=title)


def _recover(markup: str, base_url: str, origin: Origin) -> Extraction:
    """Regex salvage used when the HTML parser fails outright."""
    hrefs = [
        html_lib.unescape(next(g for g in m.groups() if g is not None))
        for m in _HREF_RE.finditer(markup)
    ]
    title_match = _TITLE_RE.search(markup)
    title = _collapse(html_lib.unescape(_TAG_RE.sub(" ", title_match.group(1)))) if title_match else ""
    body = _TITLE_RE.sub(" ", _INVISIBLE_RE.sub(" ", markup))
    text = _collapse(html_lib.unescape(_TAG_RE.sub(" ", body)))
    return Extraction(
        links=_resolve_links(hrefs, base_url, origin),
        text=text,
        title=title,
        degraded=True,
    )


def extract(html: str, base_url: str, origin: Optional[Origin] = None) -> Extraction:
    """
    Extract same-origin links and visible text from *html*.

    Relative hrefs are resolved against *base_url* (or a ``<base href>``),
    normalized and kept only when their origin equals *origin* (the origin
    of *base_url* when omitted). Script, style, noscript and template
    content is excluded from the text; whitespace is collapsed.
    """
    if origin is None:
        origin = origin_of(base_url)
    if not isinstance(html, str):
        html = html.decode("utf-8", errors="replace") if isinstance(html, bytes) else str(html)
    try:
        return _parse_soup(html, base_url, origin)
    except Exception as exc:
        logger.debug("HTML parser failed on %s (%s); falling back to regex recovery", base_url, exc)
    try:
        return _recover(html, base_url, origin)
    except Exception as exc:
        logger.warning("Could not recover anything from %s: %s", base_url, exc)
        return Extraction(degraded=True)

