# site_spider/storage/site_store.py
"""
Per-domain writer: pages, headers and outgoing links of one crawl.

All writes go through a single aiosqlite connection owned by the crawl
session; an ``asyncio.Lock`` keeps concurrent fetch tasks from interleaving
their transactions. The database runs in WAL mode so :mod:`.query` can read
through its own read-only connection while a crawl is writing.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import aiosqlite

from site_spider.crawler.models import PageRecord
from site_spider.logger import logger
from site_spider.storage.schema import SITE_SCHEMA
from site_spider.utils import utc_now

_SIDE_FILES = ("-wal", "-shm", "-journal")

_INSERT_PAGE = """
INSERT OR IGNORE INTO pages
  (url, meta_title, meta_description, scanned_at, content_type, response_status, response_time)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""
_INSERT_HEADER = "INSERT INTO headers (page_id, level, text) VALUES (?, ?, ?)"
_INSERT_LINK = "INSERT OR IGNORE INTO outgoing_links (page_id, destination_url) VALUES (?, ?)"


def remove_database(path: Path) -> bool:
    """Delete a domain database and its SQLite side files; True if it existed."""
    existed = path.exists()
    for candidate in (path, *(path.with_name(path.name + s) for s in _SIDE_FILES)):
        candidate.unlink(missing_ok=True)
    return existed


class SiteStore:
    """Durable store of one domain's crawl results."""

    def __init__(self, path: Path, conn: aiosqlite.Connection) -> None:
        self.path = path
        self._conn = conn
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, path: Path, *, overwrite: bool = False) -> SiteStore:
        """Open (creating if needed) the store at *path*; *overwrite* starts from scratch."""
        path.parent.mkdir(parents=True, exist_ok=True)
        if overwrite and remove_database(path):
            logger.info("Удалена существующая база сайта: %s", path)
        conn = await aiosqlite.connect(path)
        try:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            await conn.executescript(SITE_SCHEMA)
            await conn.commit()
        except BaseException:
            await conn.close()
            raise
        logger.debug("Site store ready: %s", path)
        return cls(path, conn)

    async def close(self) -> None:
        await self._conn.close()

    async def __aenter__(self) -> SiteStore:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # writes                                                             #
    # ------------------------------------------------------------------ #

    async def _insert_page(self, record: PageRecord) -> Optional[int]:
        cursor = await self._conn.execute(
            _INSERT_PAGE,
            (
                record.url,
                record.meta_title,
                record.meta_description,
                utc_now(),
                record.content_type.value,
                record.response_status,
                record.response_time,
            ),
        )
        return cursor.lastrowid if cursor.rowcount == 1 else None

    async def save_page(self, record: PageRecord) -> Optional[int]:
        """Insert-or-ignore a page; returns the new id, or None if the URL already exists."""
        async with self._lock:
            page_id = await self._insert_page(record)
            await self._conn.commit()
        return page_id

    async def save_header(self, page_id: int, level: str, text: str) -> None:
        async with self._lock:
            await self._conn.execute(_INSERT_HEADER, (page_id, level, text))
            await self._conn.commit()

    async def save_outgoing_link(self, page_id: int, destination_url: str) -> None:
        async with self._lock:
            await self._conn.execute(_INSERT_LINK, (page_id, destination_url))
            await self._conn.commit()

    async def save_crawled_page(
        self,
        record: PageRecord,
        headings: Sequence[Tuple[str, str]] = (),
        links: Iterable[str] = (),
    ) -> Optional[int]:
        """Write a page with its headers and links in one transaction.

        Nothing is written for the children when the page row already
        existed. On failure the transaction is rolled back and the error
        propagates.
        """
        async with self._lock:
            try:
                page_id = await self._insert_page(record)
                if page_id is not None:
                    await self._conn.executemany(
                        _INSERT_HEADER, [(page_id, level, text) for level, text in headings]
                    )
                    await self._conn.executemany(_INSERT_LINK, [(page_id, url) for url in links])
                await self._conn.commit()
            except BaseException:
                await self._conn.rollback()
                raise
        return page_id

    # ------------------------------------------------------------------ #
    # resume                                                             #
    # ------------------------------------------------------------------ #

    async def scanned_urls(self) -> List[str]:
        async with self._conn.execute("SELECT url FROM pages ORDER BY id") as cur:
            return [row[0] for row in await cur.fetchall()]

    async def all_destination_urls(self) -> List[str]:
        """Distinct link targets in first-discovered order."""
        async with self._conn.execute(
            "SELECT destination_url FROM outgoing_links GROUP BY destination_url ORDER BY MIN(id)"
        ) as cur:
            return [row[0] for row in await cur.fetchall()]

    async def page_count(self) -> int:
        async with self._conn.execute("SELECT COUNT(*) FROM pages") as cur:
            row = await cur.fetchone()
        return int(row[0]) if row else 0
