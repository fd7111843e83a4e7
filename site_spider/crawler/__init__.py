# site_spider/crawler/__init__.py
"""Обход домена: политика robots/sitemap, загрузка, frontier и сессия."""

from .fetcher import Fetcher, classify_error
from .frontier import Frontier
from .models import ContentType, FetchResult, PageRecord, ParsedPage
from .policy import PolicyGate
from .session import CrawlAbortedError, CrawlSession

__all__ = [
    "ContentType",
    "CrawlAbortedError",
    "CrawlSession",
    "FetchResult",
    "Fetcher",
    "Frontier",
    "PageRecord",
    "ParsedPage",
    "PolicyGate",
    "classify_error",
]
