# site_lens/crawler/urls.py
"""
URL canonicalisation and origin helpers for SiteLens.
"""
from __future__ import annotations

import posixpath
import re
import string
from typing import Tuple
from urllib.parse import quote, urlsplit, urlunsplit

from site_lens.errors import MalformedUrl

__all__ = ("Origin", "normalize_url", "origin_of", "same_origin")

Origin = Tuple[str, str, int]

_DEFAULT_PORTS = {"http": 80, "https": 443}
_PATH_SAFE = "/:@!$&'()*+,;=%"
_QUERY_SAFE = "/:@!$'()*+,;=?%"
_UNRESERVED = frozenset(string.ascii_letters + string.digits + "-._~")
_ESCAPE_RE = re.compile(r"%([0-9A-Fa-f]{2})")
_BARE_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _canonical_escapes(component: str, safe: str) -> str:
    """Decode escaped unreserved characters, upper-case the other escapes.

    Reserved escapes such as ``%2F`` and non-UTF-8 bytes such as ``%FF`` are
    kept, so two URLs only compare equal when they name the same resource.
    """
    component = _BARE_PERCENT_RE.sub("%25", component)

    def _escape(match: re.Match) -> str:
        char = chr(int(match.group(1), 16))
        return char if char in _UNRESERVED else f"%{match.group(1).upper()}"

    return quote(_ESCAPE_RE.sub(_escape, component), safe=safe)


def _canonical_query(query: str) -> str:
    pairs = []
    for part in query.split("&"):
        if not part:
            continue
        key, sep, value = part.partition("=")
        pairs.append((_canonical_escapes(key, _QUERY_SAFE), sep, _canonical_escapes(value, _QUERY_SAFE)))
    pairs.sort()
    return "&".join(f"{k}{sep}{v}" for k, sep, v in pairs)


def normalize_url(url: str) -> str:
    """
    Return the canonical form of an absolute http(s) URL.

    Lower-cases scheme and host, drops the default port and the fragment,
    resolves dot segments, strips the trailing slash (the root stays ``/``)
    and sorts query parameters. Raises MalformedUrl when the URL has no
    usable scheme/host or an invalid port.
    """
    try:
        parsed = urlsplit(url.strip())
        port = parsed.port
    except ValueError as exc:
        raise MalformedUrl(url, str(exc)) from exc

    scheme = parsed.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise MalformedUrl(url, f"unsupported scheme {scheme!r}")
    host = (parsed.hostname or "").lower()
    if not host:
        raise MalformedUrl(url, "missing host")

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = posixpath.normpath(_canonical_escapes(parsed.path or "/", _PATH_SAFE))
    # normpath keeps a leading "//"
    path = "/" + path.lstrip("/")
    if path != "/":
        path = path.rstrip("/")

    query = _canonical_query(parsed.query)
    return urlunsplit((scheme, netloc, path, query, ""))


def origin_of(url: str) -> Origin:
    """Scheme, host and effective port of *url*."""
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError as exc:
        raise MalformedUrl(url, str(exc)) from exc
    scheme = parsed.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parsed.hostname:
        raise MalformedUrl(url, "no origin")
    return scheme, parsed.hostname.lower(), port or _DEFAULT_PORTS[scheme]


def same_origin(url: str, origin: Origin) -> bool:
    try:
        return origin_of(url) == origin
    except MalformedUrl:
        return False
