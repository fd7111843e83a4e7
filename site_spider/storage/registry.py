# File: site_spider/storage/registry.py
"""site_spider.storage.registry: реестр сканирований всех доменов.

Отдельная база (``sites_registry.db``), чтобы список сканирований не требовал
открывать базу каждого домена. Одна строка на домен; повторное сканирование
обновляет существующую строку (upsert).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Collection, Dict, List, Optional, Union

import aiosqlite

from site_spider.logger import logger
from site_spider.storage.schema import REGISTRY_SCHEMA
from site_spider.utils import utc_now


class ScanStatus(str, Enum):
    PENDING = "pending"
    SCANNING = "scanning"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.ERROR, ScanStatus.CANCELLED)


_LIVE_STATUSES = (ScanStatus.PENDING.value, ScanStatus.SCANNING.value)


@dataclass(slots=True)
class ScanRegistryEntry:
    """Строка реестра."""

    db_name: str
    domain: str
    start_url: Optional[str]
    status: str
    scanned_at: str

    def to_dict(self) -> Dict[str, Any]:
        """Ключи в camelCase, как у страниц в выдаче ``pages``."""
        return {
            "dbName": self.db_name,
            "domain": self.domain,
            "startUrl": self.start_url,
            "status": self.status,
            "scannedAt": self.scanned_at,
        }


class ScanRegistry:
    """Асинхронный доступ к таблице scan_registry."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            await db.executescript(REGISTRY_SCHEMA)
            yield db

    async def upsert(
        self, db_name: str, domain: str, start_url: Optional[str], status: Union[ScanStatus, str]
    ) -> None:
        """Создаёт запись или обновляет домен, стартовый URL, статус и время."""
        status = ScanStatus(status)
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO scan_registry (db_name, domain, start_url, status, scanned_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(db_name) DO UPDATE SET
                  domain = excluded.domain,
                  start_url = excluded.start_url,
                  status = excluded.status,
                  scanned_at = excluded.scanned_at
                """,
                (db_name, domain, start_url, status.value, utc_now()),
            )
            await db.commit()
        logger.debug("Registry: %s -> %s", db_name, status.value)

    async def update_status(self, db_name: str, status: Union[ScanStatus, str]) -> bool:
        """Меняет только статус (и время); False, если записи нет."""
        status = ScanStatus(status)
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE scan_registry SET status = ?, scanned_at = ? WHERE db_name = ?",
                (status.value, utc_now(), db_name),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.debug("Registry: %s -> %s", db_name, status.value)
        else:
            logger.warning("Registry: нет записи для %s, статус %s не сохранён", db_name, status.value)
        return updated

    async def get(self, db_name: str) -> Optional[ScanRegistryEntry]:
        async with self._connect() as db:
            async with db.execute(
                "SELECT db_name, domain, start_url, status, scanned_at FROM scan_registry WHERE db_name = ?",
                (db_name,),
            ) as cur:
                row = await cur.fetchone()
        return ScanRegistryEntry(**dict(row)) if row else None

    async def list_all(self) -> List[ScanRegistryEntry]:
        """Все записи, самые свежие первыми."""
        async with self._connect() as db:
            async with db.execute(
                "SELECT db_name, domain, start_url, status, scanned_at FROM scan_registry "
                "ORDER BY scanned_at DESC, id DESC"
            ) as cur:
                rows = await cur.fetchall()
        return [ScanRegistryEntry(**dict(row)) for row in rows]

    async def reconcile_stale(self, active: Collection[str] = ()) -> List[str]:
        """Переводит pending/scanning записи без живой сессии в error.

        Возвращает имена исправленных записей.
        """
        async with self._connect() as db:
            async with db.execute(
                "SELECT db_name FROM scan_registry WHERE status IN (?, ?)", _LIVE_STATUSES
            ) as cur:
                stale = [row["db_name"] for row in await cur.fetchall() if row["db_name"] not in active]
            now = utc_now()
            await db.executemany(
                "UPDATE scan_registry SET status = ?, scanned_at = ? WHERE db_name = ?",
                [(ScanStatus.ERROR.value, now, name) for name in stale],
            )
            await db.commit()
        for name in stale:
            logger.warning("Найдено зависшее сканирование для %s, статус -> error", name)
        return stale
