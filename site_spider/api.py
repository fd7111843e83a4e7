# File: site_spider/api.py
"""site_spider.api: HTTP-интерфейс чтения результатов (aiohttp.web).

Маршруты:
  GET /api/data/{db_name}  страницы домена: page, limit, sortKey, sortDirection,
                           searchQuery (или search), contentType
  GET /api/sites           реестр сканирований, самые свежие первыми
"""

from __future__ import annotations

from typing import Optional

from aiohttp import web

from site_spider.config import CrawlerConfig
from site_spider.engine import Engine
from site_spider.logger import logger
from site_spider.storage.query import InvalidQueryError, StoreNotFoundError

__all__ = ["create_app", "ENGINE_KEY"]

ENGINE_KEY = web.AppKey("engine", Engine)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _int_param(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} must be an integer, got {raw!r}") from None


def _str_param(request: web.Request, name: str) -> Optional[str]:
    value = request.query.get(name)
    return value if value else None


async def get_pages(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    db_name = request.match_info["db_name"]
    try:
        listing = await engine.pages(
            db_name,
            page=_int_param(request, "page", DEFAULT_PAGE),
            limit=_int_param(request, "limit", DEFAULT_LIMIT),
            sort_key=request.query.get("sortKey", "url"),
            sort_direction=request.query.get("sortDirection", "ascending"),
            search=_str_param(request, "searchQuery") or _str_param(request, "search"),
            content_type=_str_param(request, "contentType"),
        )
    except InvalidQueryError as exc:
        return _error(400, str(exc))
    except StoreNotFoundError:
        return _error(404, f"no data for {db_name}")
    return web.json_response(listing.to_dict())


async def get_sites(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    entries = await engine.sites()
    return web.json_response([entry.to_dict() for entry in entries])


def create_app(config: CrawlerConfig) -> web.Application:
    """Собирает приложение; при старте исправляет зависшие записи реестра."""
    app = web.Application()
    app[ENGINE_KEY] = Engine(config)

    async def _on_startup(app: web.Application) -> None:
        await app[ENGINE_KEY].startup()
        logger.info("Query API ready, databases in %s", config.databases_dir)

    app.on_startup.append(_on_startup)
    app.router.add_get("/api/data/{db_name}", get_pages)
    app.router.add_get("/api/sites", get_sites)
    return app
