# site_spider/crawler/models.py
"""
Data models shared by the crawler, the extractor and the store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

# Sentinel values stored in ``response_status`` when no HTTP status exists.
STATUS_DNS_FAILURE = 0
STATUS_DISALLOWED = 0
STATUS_NETWORK_ERROR = -1
STATUS_INTERNAL_ERROR = -1
STATUS_CONNECTION_REFUSED = -2
STATUS_MALFORMED_URL = -3

TIME_NOT_FETCHED = 0
TIME_INTERNAL_ERROR = -1


class ContentType(str, Enum):
    """Classification tag written to ``pages.content_type``."""

    HTML_PAGE = "HTML_PAGE"
    NON_HTML_OR_ERROR = "NON_HTML_OR_ERROR"
    DISALLOWED = "DISALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(slots=True)
class FetchResult:
    """Outcome of one GET: body only for successful HTML responses."""

    url: str
    final_url: str
    status: int
    elapsed_ms: int
    body: str = ""
    content_type: str = ""

    @property
    def redirected(self) -> bool:
        return self.final_url != self.url

    @property
    def is_html(self) -> bool:
        """2xx with a ``text/html`` Content-Type; an empty body still counts."""
        return 200 <= self.status < 300 and "text/html" in self.content_type.lower()


@dataclass(slots=True)
class ParsedPage:
    """Structural metadata extracted from one HTML document."""

    title: Optional[str] = None
    description: Optional[str] = None
    headings: List[Tuple[str, str]] = field(default_factory=list)
    links: List[str] = field(default_factory=list)


@dataclass(slots=True)
class PageRecord:
    """One row of the ``pages`` table as written by the crawler."""

    url: str
    content_type: ContentType
    response_status: int
    response_time: int
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
