# File: site_spider/engine.py
"""site_spider.engine: Orchestration layer для запуска сессий обхода и чтения результатов."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from site_spider.config import CrawlerConfig, load_config
from site_spider.crawler.session import CrawlSession
from site_spider.events import Channel, Command, Event, ProgressReporter, StartCommand, StopCommand
from site_spider.logger import logger
from site_spider.storage.query import PageListing, list_pages
from site_spider.storage.registry import ScanRegistry, ScanRegistryEntry, ScanStatus

__all__ = ["Engine"]


class Engine:
    """Фасад для CLI, API и тестов: команды start/stop, реестр и чтение страниц."""

    @staticmethod
    def load_config(path: Optional[str]) -> CrawlerConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(self, config: CrawlerConfig) -> None:
        self.config = config
        self.registry = ScanRegistry(config.registry_path)
        self.sessions: Dict[str, CrawlSession] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._reconciled = False

    @property
    def active(self) -> List[str]:
        """Домены, у которых сессия ещё работает."""
        return [name for name, task in self._tasks.items() if not task.done()]

    async def startup(self) -> List[str]:
        """Помечает зависшие записи реестра как error (один раз на процесс)."""
        if self._reconciled:
            return []
        self._reconciled = True
        stale = await self.registry.reconcile_stale(self.active)
        if stale:
            logger.info("Reconciled %d stale scan(s): %s", len(stale), ", ".join(stale))
        return stale

    # ------------------------------------------------------------------ #
    # commands                                                           #
    # ------------------------------------------------------------------ #

    def start(self, command: StartCommand, events: Optional[Channel[Event]] = None) -> Optional[asyncio.Task]:
        """Создаёт сессию и запускает её задачей; None, если старт отклонён."""
        try:
            session = CrawlSession(
                self.config,
                command.seed_url,
                overwrite=command.overwrite,
                concurrency=command.concurrency,
                events=events,
                registry=self.registry,
            )
        except ValueError as exc:
            ProgressReporter(events).error(f"Cannot start crawl of {command.seed_url!r}: {exc}")
            return None

        if session.db_name in self.active:
            ProgressReporter(events, session.db_name).log(
                "warning", f"Crawl of {session.db_name} is already running"
            )
            return None

        task = asyncio.create_task(session.run(), name=f"crawl:{session.db_name}")
        self.sessions[session.db_name] = session
        self._tasks[session.db_name] = task
        return task

    def stop(self, db_name: Optional[str] = None) -> int:
        """Останавливает сессию домена (или все при db_name=None); возвращает число отменённых."""
        names = self.active if db_name is None else [n for n in self.active if n == db_name]
        stopped = sum(1 for name in names if self.sessions[name].stop())
        if not stopped:
            logger.info("Nothing to stop%s", f" for {db_name}" if db_name else "")
        return stopped

    async def wait(self) -> Dict[str, Any]:
        """Ждёт завершения всех запущенных сессий; результат или исключение по домену."""
        names = list(self._tasks)
        results = await asyncio.gather(*(self._tasks[n] for n in names), return_exceptions=True)
        outcome = dict(zip(names, results))
        for name, result in outcome.items():
            if isinstance(result, Exception):
                logger.error("Crawl of %s failed: %s", name, result)
        return outcome

    async def serve(self, commands: Channel[Command], events: Channel[Event]) -> None:
        """Читает команды, пока канал не закрыт, затем дожидается сессий и закрывает events."""
        await self.startup()
        try:
            async for command in commands:
                if isinstance(command, StartCommand):
                    self.start(command, events)
                elif isinstance(command, StopCommand):
                    self.stop(command.db_name)
                else:
                    logger.warning("Unknown command ignored: %r", command)
            await self.wait()
        finally:
            pending = [task for task in self._tasks.values() if not task.done()]
            for task in pending:
                task.cancel()
            # сессии должны успеть записать cancelled до закрытия events
            await asyncio.gather(*pending, return_exceptions=True)
            events.close()

    # ------------------------------------------------------------------ #
    # shortcuts                                                          #
    # ------------------------------------------------------------------ #

    async def crawl(
        self,
        seed_url: str,
        *,
        overwrite: bool = False,
        concurrency: Optional[int] = None,
        events: Optional[Channel[Event]] = None,
    ) -> ScanStatus:
        """Один обход в текущей задаче; возвращает итоговый статус."""
        await self.startup()
        session = CrawlSession(
            self.config,
            seed_url,
            overwrite=overwrite,
            concurrency=concurrency,
            events=events,
            registry=self.registry,
        )
        self.sessions[session.db_name] = session
        return await session.run()

    async def status(self, db_name: str) -> Optional[ScanRegistryEntry]:
        return await self.registry.get(db_name)

    async def sites(self) -> List[ScanRegistryEntry]:
        return await self.registry.list_all()

    async def pages(self, db_name: str, **query: Any) -> PageListing:
        """Страница результатов домена (см. PageQuery.list_pages)."""
        return await list_pages(
            self.config.site_db_path(db_name), limit_max=self.config.query_limit_max, **query
        )
