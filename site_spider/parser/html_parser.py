# === FILE: site_spider/parser/html_parser.py ===
"""HTML metadata extraction for SiteSpider.

:func:`parse_html` turns one static HTML document into a
:class:`~site_spider.crawler.models.ParsedPage`:

* title: ``<title>`` text, falling back to ``og:title``.
* description: ``<meta name="description">``, falling back to ``og:description``.
* headings: every ``h1``..``h6`` in document order as ``("H2", "text")``;
  headings with no text are dropped.
* links: every ``<a href>`` resolved against the page URL, de-duplicated
  in document order. Hrefs that cannot be resolved are skipped silently.

No scripts are executed; only the markup the server returned is inspected.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_spider.crawler.models import ParsedPage

__all__: Sequence[str] = ("parse_html", "resolve_link")

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
_NETWORK_SCHEMES = ("http", "https")


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if not isinstance(tag, Tag):
        return None
    content = tag.get("content")
    if not isinstance(content, str):
        return None
    return content.strip() or None


def resolve_link(href: str, base_url: str) -> Optional[str]:
    """Resolve *href* against *base_url*; ``None`` when the result is unusable."""
    try:
        absolute = urljoin(base_url, href.strip())
        parsed = urlsplit(absolute)
    except ValueError:
        return None
    if not parsed.scheme:
        return None
    if parsed.scheme in _NETWORK_SCHEMES:
        try:
            host, _port = parsed.hostname, parsed.port
        except ValueError:
            return None
        if not host:
            return None
    return absolute


def parse_html(html: str, base_url: str) -> ParsedPage:
    """Extract title, description, headings and links from *html*.

    Parameters
    ----------
    html
        Raw markup as returned by the server.
    base_url
        URL the document was finally served from; relative hrefs are
        resolved against it.
    """
    soup = BeautifulSoup(html, "html.parser")

    title: Optional[str] = None
    if soup.title is not None:
        title = soup.title.get_text().strip() or None
    if title is None:
        title = _meta_content(soup, property="og:title")

    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )

    headings: list[tuple[str, str]] = []
    for tag in soup.find_all(_HEADING_TAGS):
        text = tag.get_text().strip()
        if text:
            headings.append((tag.name.upper(), text))

    seen: set[str] = set()
    links: list[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href = tag.get("href")
        if not isinstance(href, str):
            continue
        absolute = resolve_link(href, base_url)
        if absolute is None or absolute in seen:
            continue
        seen.add(absolute)
        links.append(absolute)

    return ParsedPage(title=title, description=description, headings=headings, links=links)
