# site_lens/crawler/renderer.py
"""
Render backends: turn a URL into an HTML snapshot.

* :class:`HttpRenderer` – plain aiohttp GET with retry/backoff.
* :class:`WebDriverRenderer` – a single W3C WebDriver browser session
  (geckodriver, chromedriver, Selenium Grid) driven over its HTTP wire
  protocol; navigations on that session are serialised.

Both raise :class:`~site_lens.errors.RenderFailure` for per-URL problems.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Protocol, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_lens.config import CrawlConfig
from site_lens.crawler.models import RenderedPage
from site_lens.errors import RenderFailure, RenderServiceUnavailable
from site_lens.logger import logger

__all__ = ("Renderer", "HttpRenderer", "WebDriverRenderer", "build_renderer")

_HTML_TYPES = ("text/html", "application/xhtml+xml")


class Renderer(Protocol):
    """Opaque page-fetch service used by the crawler."""

    async def open(self) -> None: ...

    async def render(self, url: str) -> RenderedPage: ...

    async def close(self) -> None: ...


class HttpRenderer:
    """Fetches raw HTML over HTTP, with retries for 429/5xx and a total timeout."""

    RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

    def __init__(self, config: CrawlConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def open(self) -> None:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.fetch_timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def render(self, url: str) -> RenderedPage:
        if self.session is None:
            raise RuntimeError("Session not initialized")
        attempts = 0
        while True:
            try:
                async with self.session.get(url) as resp:
                    if resp.status in self.RETRY_STATUS:
                        raise ClientError(f"retryable status {resp.status}")
                    if resp.status >= 400:
                        raise RenderFailure(url, f"HTTP {resp.status}")
                    mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    if mime and mime not in _HTML_TYPES:
                        raise RenderFailure(url, f"unsupported content type {mime}")
                    text = await resp.text(errors="replace")
                    return RenderedPage(str(resp.url), text, resp.status)
            except asyncio.TimeoutError as exc:
                raise RenderFailure(url, "timeout") from exc
            except ClientError as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    raise RenderFailure(url, str(exc) or type(exc).__name__) from exc
                backoff = min(2**attempts, 60)
                logger.debug("Retry %d/%d for %s after %d s", attempts, self.config.retry_times, url, backoff)
                await asyncio.sleep(backoff)


class WebDriverRenderer:
    """Renders pages in a real browser through the W3C WebDriver protocol."""

    def __init__(self, config: CrawlConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.endpoint = str(config.render_endpoint).rstrip("/")
        self.session = session
        self._owns_session = session is None
        self.session_id: Optional[str] = None
        self._lock = asyncio.Lock()

    def _capabilities(self) -> Dict[str, Any]:
        always: Dict[str, Any] = {}
        if self.config.browser_name:
            always["browserName"] = self.config.browser_name
        return {"capabilities": {"alwaysMatch": always}}

    async def _command(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Send one WebDriver command and return its ``value``."""
        if self.session is None:
            raise RuntimeError("Session not initialized")
        async with self.session.request(method, f"{self.endpoint}{path}", json=payload) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError as exc:
                raise ClientError(f"non-JSON WebDriver reply (HTTP {resp.status})") from exc
            value = body.get("value") if isinstance(body, dict) else None
            if resp.status >= 400 or (isinstance(value, dict) and "error" in value):
                err = value if isinstance(value, dict) else {}
                raise ClientError(f"{err.get('error', f'HTTP {resp.status}')}: {err.get('message', '')}".rstrip(": "))
            return value

    async def open(self) -> None:
        if self.session is None:
            self.session = ClientSession(timeout=ClientTimeout(total=self.config.fetch_timeout))
        try:
            value = await self._command("POST", "/session", self._capabilities())
        except (ClientError, asyncio.TimeoutError) as exc:
            await self.close()
            raise RenderServiceUnavailable(f"cannot start WebDriver session at {self.endpoint}: {exc}") from exc
        session_id = value.get("sessionId") if isinstance(value, dict) else None
        if not session_id:
            await self.close()
            raise RenderServiceUnavailable(f"WebDriver at {self.endpoint} returned no session id")
        self.session_id = session_id
        logger.info("WebDriver session %s started at %s", session_id, self.endpoint)

    async def render(self, url: str) -> RenderedPage:
        if self.session_id is None:
            raise RuntimeError("WebDriver session not started")
        base = f"/session/{self.session_id}"
        async with self._lock:
            try:
                await self._command("POST", f"{base}/url", {"url": url})
                current = await self._command("GET", f"{base}/url")
                source = await self._command("GET", f"{base}/source")
            except asyncio.TimeoutError as exc:
                raise RenderFailure(url, "timeout") from exc
            except ClientError as exc:
                raise RenderFailure(url, str(exc)) from exc
        if not isinstance(source, str):
            raise RenderFailure(url, "page source missing from WebDriver reply")
        return RenderedPage(current if isinstance(current, str) and current else url, source)

    async def close(self) -> None:
        if self.session is None:
            return
        if self.session_id is not None and not self.session.closed:
            try:
                await self._command("DELETE", f"/session/{self.session_id}")
            except (ClientError, asyncio.TimeoutError) as exc:
                logger.warning("Error closing WebDriver session %s: %s", self.session_id, exc)
            self.session_id = None
        if self._owns_session and not self.session.closed:
            await self.session.close()


def build_renderer(config: CrawlConfig) -> Renderer:
    if config.render_backend == "webdriver":
        return WebDriverRenderer(config)
    return HttpRenderer(config)
