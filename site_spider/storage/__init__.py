# File: site_spider/storage/__init__.py
"""site_spider.storage: базы доменов (запись и чтение) и общий реестр сканирований."""

from .query import InvalidQueryError, PageListing, PageQuery, StoreNotFoundError, list_pages
from .registry import ScanRegistry, ScanRegistryEntry, ScanStatus
from .site_store import SiteStore, remove_database

__all__ = [
    "InvalidQueryError",
    "PageListing",
    "PageQuery",
    "StoreNotFoundError",
    "list_pages",
    "ScanRegistry",
    "ScanRegistryEntry",
    "ScanStatus",
    "SiteStore",
    "remove_database",
]
