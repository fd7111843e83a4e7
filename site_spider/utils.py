# File: site_spider/utils.py
"""site_spider.utils: Утилиты для работы с URL, доменами и именами баз данных."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Collection, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from site_spider.logger import logger

__all__: Sequence[str] = (
    "extract_domain",
    "hostname_of",
    "origin_of",
    "seed_url",
    "safe_db_name",
    "remove_duplicates",
    "utc_now",
)

_UNSAFE_DB_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


def hostname_of(url: str) -> Optional[str]:
    """Возвращает hostname в нижнем регистре или None для непарсибельного URL."""
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def extract_domain(url: str) -> str:
    """Домен (hostname) стартового URL; бросает ValueError, если его нет."""
    parsed = urlsplit(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Некорректный URL для сканирования: {url!r}")
    return parsed.hostname


def origin_of(url: str) -> str:
    """scheme://netloc без пути, например https://example.com"""
    parsed = urlsplit(url)
    return urlunsplit((parsed.scheme, parsed.netloc, "", "", ""))


def seed_url(url: str) -> str:
    """Стартовый URL как есть, только пустой путь заменяется на "/"."""
    parsed = urlsplit(url.strip())
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path or "/", parsed.query, parsed.fragment))


def safe_db_name(name: str) -> str:
    """Имя файла базы: всё кроме [a-zA-Z0-9_.-] заменяется на "_"."""
    return _UNSAFE_DB_CHARS.sub("_", name)


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def utc_now() -> str:
    """Текущее время UTC в ISO-формате (микросекунды сохраняются для сортировки)."""
    return datetime.now(timezone.utc).isoformat()
