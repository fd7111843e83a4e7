# site_spider/crawler/policy.py
"""
robots.txt / sitemap.xml gate for one domain.
"""
from __future__ import annotations

import asyncio
from typing import List
from urllib.parse import urlsplit

from aiohttp import ClientError, ClientSession

from site_spider.logger import logger
from site_spider.parser.robots_parser import RobotsTxtRules
from site_spider.parser.sitemap_parser import SitemapError, parse_sitemap
from site_spider.utils import hostname_of, remove_duplicates


class PolicyGate:
    """Decides whether a URL may be fetched and supplies sitemap seeds.

    Any failure to obtain robots.txt yields an allow-all policy.
    """

    def __init__(self, session: ClientSession, origin: str, user_agent: str) -> None:
        self.session = session
        self.origin = origin.rstrip("/")
        self.domain = hostname_of(self.origin) or ""
        self.user_agent = user_agent
        self.rules: RobotsTxtRules = RobotsTxtRules.allow_all()

    @property
    def robots_url(self) -> str:
        return f"{self.origin}/robots.txt"

    @property
    def sitemap_url(self) -> str:
        return f"{self.origin}/sitemap.xml"

    async def load(self) -> RobotsTxtRules:
        try:
            async with self.session.get(self.robots_url) as resp:
                if resp.status == 200:
                    self.rules = RobotsTxtRules(await resp.text(errors="replace"))
                    logger.info("robots.txt loaded from %s", self.robots_url)
                else:
                    self.rules = RobotsTxtRules.allow_all()
                    logger.warning("robots.txt %s -> HTTP %s, allowing everything", self.robots_url, resp.status)
        except (ClientError, asyncio.TimeoutError, OSError, ValueError) as exc:
            logger.warning("Error loading robots.txt: %s, allowing everything", exc)
            self.rules = RobotsTxtRules.allow_all()
        return self.rules

    def is_allowed(self, url: str) -> bool:
        try:
            parts = urlsplit(url)
        except ValueError:
            return True
        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return self.rules.can_fetch(self.user_agent, path)

    async def seed(self) -> List[str]:
        """Same-domain, allowed ``<loc>`` entries of /sitemap.xml (empty on any failure)."""
        try:
            async with self.session.get(self.sitemap_url) as resp:
                if resp.status != 200:
                    logger.info("sitemap.xml %s -> HTTP %s", self.sitemap_url, resp.status)
                    return []
                content = await resp.read()
        except (ClientError, asyncio.TimeoutError, OSError, ValueError) as exc:
            logger.warning("Error loading sitemap.xml: %s", exc)
            return []

        try:
            locs = parse_sitemap(content)
        except SitemapError as exc:
            logger.warning("Error parsing sitemap.xml: %s", exc)
            return []

        urls = [u for u in locs if hostname_of(u) == self.domain and self.is_allowed(u)]
        logger.info("sitemap.xml: %d of %d URLs accepted", len(urls), len(locs))
        return remove_duplicates(urls)
