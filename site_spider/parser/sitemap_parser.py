# File: site_spider/parser/sitemap_parser.py
"""site_spider.parser.sitemap_parser: Модуль для парсинга sitemap.xml и извлечения URL."""

from __future__ import annotations

from typing import List, Union

from lxml import etree

__all__ = ("SitemapError", "parse_sitemap")


class SitemapError(ValueError):
    """sitemap.xml не удалось разобрать."""


def parse_sitemap(xml_content: Union[str, bytes]) -> List[str]:
    """Разбирает sitemap и возвращает URL из ``<urlset><url><loc>``.

    Args:
        xml_content: содержимое sitemap.xml (str или bytes).

    Returns:
        Список URL в порядке документа. Индекс sitemap (``<sitemapindex>``)
        и прочие корневые элементы дают пустой список.

    Raises:
        SitemapError: если документ пустой или не является XML.

    Пример:
    ```python
    from site_spider.parser.sitemap_parser import parse_sitemap

    urls = parse_sitemap('<urlset><url><loc>https://example.com/</loc></url></urlset>')
    ```
    """
    data = xml_content.encode("utf-8") if isinstance(xml_content, str) else xml_content
    if not data.strip():
        raise SitemapError("empty sitemap document")

    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise SitemapError(str(exc)) from exc
    if root is None:
        raise SitemapError("sitemap is not an XML document")

    if etree.QName(root).localname != "urlset":
        return []
    locs = root.findall("{*}url/{*}loc")
    return [loc.text.strip() for loc in locs if loc.text and loc.text.strip()]
