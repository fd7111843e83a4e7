# site_spider/storage/query.py
"""
Read side of a domain store: paginated, sorted and filtered page listings.

Every query text here is fixed at import time. User input only picks a key
from :data:`SORT_COLUMNS` / :data:`SORT_DIRECTIONS` or travels as a bound
parameter, and the details of one result page (headers, outgoing links,
incoming links) are loaded with three batched ``IN (...)`` queries. Rows come
back with the camelCase keys of the query interface (``metaTitle``,
``incomingLinks``, ...), the same names the sort keys use.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiosqlite

from site_spider.crawler.models import ContentType

SORT_COLUMNS: Dict[str, str] = {
    "url": "url",
    "metaTitle": "meta_title",
    "metaDescription": "meta_description",
    "responseStatus": "response_status",
    "responseTime": "response_time",
}
SORT_DIRECTIONS: Dict[str, str] = {"ascending": "ASC", "descending": "DESC"}

_ORDER_BY: Dict[tuple[str, str], str] = {
    (key, direction): f"ORDER BY {column} {sql}, id {sql}"
    for key, column in SORT_COLUMNS.items()
    for direction, sql in SORT_DIRECTIONS.items()
}

_WHERE = r"""
WHERE (:pattern IS NULL
       OR url LIKE :pattern ESCAPE '\'
       OR meta_title LIKE :pattern ESCAPE '\'
       OR meta_description LIKE :pattern ESCAPE '\')
  AND (:content_type IS NULL OR content_type = :content_type)
"""
_COUNT_SQL = "SELECT COUNT(*) FROM pages" + _WHERE
_PAGE_COLUMNS = (
    "id, url, meta_title AS metaTitle, meta_description AS metaDescription, scanned_at AS scannedAt, "
    "content_type AS contentType, response_status AS responseStatus, response_time AS responseTime"
)
_LIST_SQL: Dict[tuple[str, str], str] = {
    key: f"SELECT {_PAGE_COLUMNS} FROM pages {_WHERE} {order_by} LIMIT :limit OFFSET :offset"
    for key, order_by in _ORDER_BY.items()
}


class InvalidQueryError(ValueError):
    """Sort key, direction, content type or paging outside what is accepted."""


class StoreNotFoundError(FileNotFoundError):
    """No database exists for the requested domain."""


@dataclass(slots=True)
class PageListing:
    pages: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"pages": self.pages, "total": self.total}


def _like_pattern(search: Optional[str]) -> Optional[str]:
    if search is None or not search.strip():
        return None
    escaped = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _placeholders(count: int) -> str:
    return ",".join("?" * count)


class PageQuery:
    """Read-only view of one domain store.

    Usage::

        async with PageQuery(path) as q:
            listing = await q.list_pages(sort_key="responseTime", sort_direction="descending")
    """

    def __init__(self, path: Path, *, limit_max: int = 1000) -> None:
        self.path = Path(path)
        self.limit_max = limit_max
        self._conn: Optional[aiosqlite.Connection] = None

    async def __aenter__(self) -> PageQuery:
        if not self.path.is_file():
            raise StoreNotFoundError(f"database not found: {self.path}")
        uri = self.path.resolve().as_uri() + "?mode=ro"
        self._conn = await aiosqlite.connect(uri, uri=True)
        self._conn.row_factory = aiosqlite.Row
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("PageQuery used outside of 'async with'")
        return self._conn

    def _validate(
        self, sort_key: str, sort_direction: str, page: int, limit: int, content_type: Optional[str]
    ) -> None:
        if sort_key not in SORT_COLUMNS:
            raise InvalidQueryError(f"unsupported sort key: {sort_key!r}")
        if sort_direction not in SORT_DIRECTIONS:
            raise InvalidQueryError(f"unsupported sort direction: {sort_direction!r}")
        if page < 1:
            raise InvalidQueryError("page must be >= 1")
        if not 1 <= limit <= self.limit_max:
            raise InvalidQueryError(f"limit must be between 1 and {self.limit_max}")
        if content_type is not None and content_type not in ContentType.__members__:
            raise InvalidQueryError(f"unknown content type: {content_type!r}")

    async def list_pages(
        self,
        *,
        search: Optional[str] = None,
        content_type: Optional[str] = None,
        sort_key: str = "url",
        sort_direction: str = "ascending",
        page: int = 1,
        limit: int = 100,
    ) -> PageListing:
        content_type = content_type or None
        self._validate(sort_key, sort_direction, page, limit, content_type)
        params: Dict[str, Any] = {"pattern": _like_pattern(search), "content_type": content_type}

        async with self.conn.execute(_COUNT_SQL, params) as cur:
            total = int((await cur.fetchone())[0])

        params.update(limit=limit, offset=(page - 1) * limit)
        async with self.conn.execute(_LIST_SQL[(sort_key, sort_direction)], params) as cur:
            pages = [dict(row) for row in await cur.fetchall()]

        await self._attach_details(pages)
        return PageListing(pages=pages, total=total)

    async def _attach_details(self, pages: List[Dict[str, Any]]) -> None:
        if not pages:
            return
        ids = [p["id"] for p in pages]
        urls = [p["url"] for p in pages]

        headers: Dict[int, List[Dict[str, str]]] = defaultdict(list)
        async with self.conn.execute(
            f"SELECT page_id, level, text FROM headers WHERE page_id IN ({_placeholders(len(ids))}) "
            "ORDER BY page_id, id",
            ids,
        ) as cur:
            for row in await cur.fetchall():
                headers[row["page_id"]].append({"level": row["level"], "text": row["text"]})

        outgoing: Dict[int, List[str]] = defaultdict(list)
        async with self.conn.execute(
            f"SELECT page_id, destination_url FROM outgoing_links "
            f"WHERE page_id IN ({_placeholders(len(ids))}) ORDER BY page_id, id",
            ids,
        ) as cur:
            for row in await cur.fetchall():
                outgoing[row["page_id"]].append(row["destination_url"])

        incoming: Dict[str, List[str]] = defaultdict(list)
        async with self.conn.execute(
            f"SELECT DISTINCT ol.destination_url AS target, p.url AS source "
            f"FROM outgoing_links ol JOIN pages p ON p.id = ol.page_id "
            f"WHERE ol.destination_url IN ({_placeholders(len(urls))}) ORDER BY target, source",
            urls,
        ) as cur:
            for row in await cur.fetchall():
                incoming[row["target"]].append(row["source"])

        for p in pages:
            p["headers"] = headers.get(p["id"], [])
            p["outgoingLinks"] = outgoing.get(p["id"], [])
            p["incomingLinks"] = incoming.get(p["url"], [])


async def list_pages(path: Path, *, limit_max: int = 1000, **kwargs: Any) -> PageListing:
    """One-shot helper: open a read-only connection, list, close."""
    async with PageQuery(path, limit_max=limit_max) as q:
        return await q.list_pages(**kwargs)


__all__: Sequence[str] = (
    "SORT_COLUMNS",
    "SORT_DIRECTIONS",
    "InvalidQueryError",
    "StoreNotFoundError",
    "PageListing",
    "PageQuery",
    "list_pages",
)
