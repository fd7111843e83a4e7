# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from site_spider.config import CrawlerConfig
from site_spider.crawler.models import ContentType, PageRecord


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# --------------------------------------------------------------------------- #
#                               Helper utilities                              #
# --------------------------------------------------------------------------- #


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()


def links_html(*hrefs: str, title: str = "", body: str = "") -> str:
    head = f"<title>{title}</title>" if title else ""
    anchors = "".join(f'<a href="{h}">{h}</a>' for h in hrefs)
    return f"<html><head>{head}</head><body>{body}{anchors}</body></html>"


@dataclass
class Route:
    respond: Callable[[], web.StreamResponse]
    delay: float = 0.0
    gated: bool = False


class FakeSite:
    """
    Catch-all aiohttp app whose routes can be changed while it runs.

    Counts hits per path and the peak number of requests handled at once.
    Gated routes wait until :meth:`release` is called.
    """

    def __init__(self) -> None:
        self.base = ""
        self.routes: Dict[str, Route] = {}
        self.hits: Counter[str] = Counter()
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate = asyncio.Event()

    def url(self, path: str = "/") -> str:
        return f"{self.base}{path}"

    def html(self, path: str, text: str, *, delay: float = 0.0, gated: bool = False) -> None:
        self.routes[path] = Route(lambda: web.Response(text=text, content_type="text/html"), delay, gated)

    def content(self, path: str, body: bytes, content_type: str, *, status: int = 200, delay: float = 0.0) -> None:
        self.routes[path] = Route(
            lambda: web.Response(body=body, content_type=content_type, status=status), delay
        )

    def redirect(self, path: str, location: str) -> None:
        def _respond() -> web.StreamResponse:
            raise web.HTTPMovedPermanently(location)

        self.routes[path] = Route(_respond)

    def robots(self, text: str) -> None:
        self.routes["/robots.txt"] = Route(lambda: web.Response(text=text, content_type="text/plain"))

    def sitemap(self, *paths: str, extra: tuple[str, ...] = ()) -> None:
        locs = "".join(f"<url><loc>{self.url(p)}</loc></url>" for p in paths)
        locs += "".join(f"<url><loc>{u}</loc></url>" for u in extra)
        xml = f'<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{locs}</urlset>'
        self.routes["/sitemap.xml"] = Route(lambda: web.Response(text=xml, content_type="application/xml"))

    def release(self) -> None:
        self.gate.set()

    def crawl_hits(self) -> Counter[str]:
        """Hits without robots.txt and sitemap.xml."""
        return Counter({p: n for p, n in self.hits.items() if p not in ("/robots.txt", "/sitemap.xml")})

    async def handle(self, request: web.Request) -> web.StreamResponse:
        path = request.path
        self.hits[path] += 1
        route: Optional[Route] = self.routes.get(path)
        if route is None:
            raise web.HTTPNotFound()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if route.gated:
                await self.gate.wait()
            if route.delay:
                await asyncio.sleep(route.delay)
            return route.respond()
        finally:
            self.in_flight -= 1


# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #


@pytest_asyncio.fixture
async def site(unused_tcp_port: int) -> AsyncIterator[FakeSite]:
    fake = FakeSite()
    app = web.Application()
    app.router.add_route("GET", "/{tail:.*}", fake.handle)
    async for url in _serve_app(app, unused_tcp_port):
        fake.base = url
        yield fake
        fake.release()


@pytest.fixture()
def databases_dir(tmp_path: Path) -> Path:
    return tmp_path / "databases"


@pytest.fixture()
def config(databases_dir: Path) -> CrawlerConfig:
    """
    Return a CrawlerConfig that keeps all databases inside tmp_path.
    """
    return CrawlerConfig(
        user_agent="TestAgent/1.0",
        concurrency=5,
        timeout=5.0,
        databases_dir=databases_dir,
    )


@pytest.fixture()
def make_record():
    """Factory for PageRecord rows used by the store tests."""

    def _make(url: str, **kwargs) -> PageRecord:
        kwargs.setdefault("content_type", ContentType.HTML_PAGE)
        kwargs.setdefault("response_status", 200)
        kwargs.setdefault("response_time", 10)
        return PageRecord(url=url, **kwargs)

    return _make
