# File: site_spider/crawler/session.py
"""site_spider.crawler.session: один обход одного домена.

Сессия владеет всем состоянием обхода (frontier, счётчики, соединение с базой),
поэтому несколько сессий для разных доменов могут жить в одном процессе.

Жизненный цикл: ``pending -> scanning -> completed | error | cancelled``.
Каждый переход сразу записывается в реестр сканирований.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional

from aiohttp import ClientSession, ClientTimeout

from site_spider.config import CrawlerConfig
from site_spider.crawler.fetcher import Fetcher
from site_spider.crawler.frontier import Frontier
from site_spider.crawler.models import (
    STATUS_DISALLOWED,
    STATUS_INTERNAL_ERROR,
    TIME_INTERNAL_ERROR,
    TIME_NOT_FETCHED,
    ContentType,
    PageRecord,
)
from site_spider.crawler.policy import PolicyGate
from site_spider.events import Channel, Event, ProgressReporter
from site_spider.logger import for_domain
from site_spider.parser.html_parser import parse_html
from site_spider.storage.registry import ScanRegistry, ScanStatus
from site_spider.storage.site_store import SiteStore
from site_spider.utils import extract_domain, origin_of
from site_spider.utils import seed_url as normalize_seed

__all__ = ["CrawlAbortedError", "CrawlSession"]


class CrawlAbortedError(RuntimeError):
    """Обход невозможно начать: база не открылась или нечего сканировать."""


class CrawlSession:
    """Асинхронный обход одного домена с ограниченной параллельностью.

    Usage::

        session = CrawlSession(config, "https://example.com/", concurrency=3)
        status = await session.run()
    """

    def __init__(
        self,
        config: CrawlerConfig,
        seed_url: str,
        *,
        overwrite: bool = False,
        concurrency: Optional[int] = None,
        events: Optional[Channel[Event]] = None,
        registry: Optional[ScanRegistry] = None,
    ) -> None:
        self.config = config
        self.seed_url = normalize_seed(seed_url)
        self.domain = extract_domain(self.seed_url)
        self.db_name = self.domain
        self.overwrite = overwrite
        self.concurrency = concurrency if concurrency is not None else config.concurrency
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")

        self.registry = registry or ScanRegistry(config.registry_path)
        self.reporter = ProgressReporter(events, self.db_name)
        self.log = for_domain(self.db_name)
        self.status = ScanStatus.PENDING
        self.error: Optional[BaseException] = None
        self.scanned_count = 0
        self.frontier: Optional[Frontier] = None

        self._store: Optional[SiteStore] = None
        self._gate: Optional[PolicyGate] = None
        self._fetcher: Optional[Fetcher] = None
        self._runner: Optional[asyncio.Task] = None
        self._registered = False

    @property
    def db_path(self) -> Path:
        return self.config.site_db_path(self.db_name)

    # ------------------------------------------------------------------ #
    # lifecycle                                                          #
    # ------------------------------------------------------------------ #

    async def run(self) -> ScanStatus:
        """Выполняет обход до конца и возвращает итоговый статус.

        Ошибки запуска (база, пустой frontier) дают ``error`` без исключения;
        отмена задачи переводит сессию в ``cancelled`` и пробрасывает
        ``CancelledError`` дальше.
        """
        if self._runner is not None:
            raise RuntimeError("session has already been started")
        self._runner = asyncio.current_task()

        try:
            await self._set_status(ScanStatus.PENDING)
            self.reporter.progress(f"Crawl of {self.domain} queued", current_url=self.seed_url)
            timeout = ClientTimeout(total=self.config.timeout)
            async with ClientSession(
                timeout=timeout,
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            ) as http:
                await self._crawl(http)
        except asyncio.CancelledError:
            await self._finish(ScanStatus.CANCELLED)
            self.reporter.cancelled()
            raise
        except CrawlAbortedError as exc:
            self.error = exc
            await self._finish(ScanStatus.ERROR)
            self.reporter.error(str(exc))
            return self.status
        except Exception as exc:
            self.error = exc
            self.log.exception("Unexpected failure while crawling")
            await self._finish(ScanStatus.ERROR)
            self.reporter.error(f"{exc.__class__.__name__}: {exc}")
            raise

        await self._finish(ScanStatus.COMPLETED)
        self.reporter.completed()
        return self.status

    def stop(self) -> bool:
        """Отменяет работающий обход; False, если отменять нечего."""
        if self._runner is None or self._runner.done():
            return False
        self._runner.cancel()
        return True

    async def _set_status(self, status: ScanStatus) -> None:
        if self.status.is_terminal:
            raise RuntimeError(f"session already finished with status {self.status.value}")
        self.status = status
        if self._registered:
            await self.registry.update_status(self.db_name, status)
        else:
            # первая запись в реестр; при отмене до неё сюда приходит уже cancelled
            await self.registry.upsert(self.db_name, self.domain, self.seed_url, status)
            self._registered = True

    async def _finish(self, status: ScanStatus) -> None:
        if not self.status.is_terminal:
            await self._set_status(status)

    # ------------------------------------------------------------------ #
    # crawl                                                              #
    # ------------------------------------------------------------------ #

    async def _open_store(self) -> SiteStore:
        try:
            return await SiteStore.open(self.db_path, overwrite=self.overwrite)
        except Exception as exc:
            raise CrawlAbortedError(f"cannot open database {self.db_path}: {exc}") from exc

    async def _crawl(self, http: ClientSession) -> None:
        self._store = await self._open_store()
        try:
            frontier = await self._prepare_frontier(http)
            await self._set_status(ScanStatus.SCANNING)
            self.reporter.progress(
                f"Scanning {self.domain}",
                current_url=self.seed_url,
                total_urls_known=frontier.total_known,
                scanned_count=self.scanned_count,
            )
            await self._schedule(frontier)
        finally:
            await self._store.close()

    async def _prepare_frontier(self, http: ClientSession) -> Frontier:
        """Восстанавливает frontier из базы и дополняет его из sitemap или стартового URL."""
        store = self._store
        visited = await store.scanned_urls()
        frontier = Frontier(self.domain, visited)
        self.frontier = frontier
        if visited:
            resumed = frontier.seed(await store.all_destination_urls())
            self.reporter.log(
                "info", f"Resuming {self.domain}: {len(visited)} pages stored, {resumed} URLs pending"
            )

        self._gate = PolicyGate(http, origin_of(self.seed_url), self.config.user_agent)
        self._fetcher = Fetcher(http)
        self.reporter.progress("Loading robots.txt", current_url=self._gate.robots_url)
        await self._gate.load()

        if not frontier:
            self.reporter.progress("Loading sitemap.xml", current_url=self._gate.sitemap_url)
            added = frontier.seed(await self._gate.seed())
            if added:
                self.reporter.log("info", f"Seeded {added} URLs from sitemap.xml")

        if not frontier:
            if not self._gate.is_allowed(self.seed_url):
                raise CrawlAbortedError(f"no URLs to crawl: {self.seed_url} is disallowed by robots.txt")
            if frontier.seed([self.seed_url]):
                self.reporter.progress("No sitemap URLs, starting from the seed URL", current_url=self.seed_url)
        return frontier

    async def _schedule(self, frontier: Frontier) -> None:
        """Главный цикл: не более ``concurrency`` задач одновременно.

        Frontier и счётчики меняет только этот цикл; задачи лишь возвращают
        найденные ссылки.
        """
        active: Dict[asyncio.Task, str] = {}
        try:
            while frontier or active:
                while frontier and len(active) < self.concurrency:
                    url = frontier.next()
                    active[asyncio.create_task(self._process(url))] = url

                done, _ = await asyncio.wait(active, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    url = active.pop(task)
                    for link in task.result():
                        frontier.discover(link)
                    self.scanned_count += 1
                    self.reporter.progress(
                        f"Scanned {url}",
                        current_url=url,
                        total_urls_known=frontier.total_known,
                        scanned_count=self.scanned_count,
                    )
        finally:
            for task in active:
                task.cancel()
            # база закрывается после цикла, поэтому отменённые записи должны успеть откатиться
            await asyncio.gather(*active, return_exceptions=True)

    async def _process(self, url: str) -> List[str]:
        """Обрабатывает один URL; любая ошибка записывается как INTERNAL_ERROR."""
        try:
            return await self._visit(url)
        except Exception as exc:
            self.log.exception("Internal error while processing %s", url)
            self.reporter.log("error", f"Internal error on {url}: {exc}")
            try:
                await self._store.save_page(
                    PageRecord(url, ContentType.INTERNAL_ERROR, STATUS_INTERNAL_ERROR, TIME_INTERNAL_ERROR)
                )
            except Exception:
                self.log.exception("Cannot record internal error for %s", url)
            return []

    async def _visit(self, url: str) -> List[str]:
        store = self._store
        if not self._gate.is_allowed(url):
            await store.save_page(PageRecord(url, ContentType.DISALLOWED, STATUS_DISALLOWED, TIME_NOT_FETCHED))
            self.reporter.log("info", f"Disallowed by robots.txt: {url}")
            return []

        result = await self._fetcher.fetch(url)
        discovered = [result.final_url] if result.redirected else []

        if not result.is_html:
            await store.save_page(
                PageRecord(url, ContentType.NON_HTML_OR_ERROR, result.status, result.elapsed_ms)
            )
            return discovered

        parsed = parse_html(result.body, result.final_url)
        record = PageRecord(
            url,
            ContentType.HTML_PAGE,
            result.status,
            result.elapsed_ms,
            meta_title=parsed.title,
            meta_description=parsed.description,
        )
        await store.save_crawled_page(record, parsed.headings, parsed.links)
        return discovered + parsed.links
