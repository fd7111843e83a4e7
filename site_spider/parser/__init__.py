# site_spider/parser/__init__.py
from .html_parser import parse_html, resolve_link
from .robots_parser import RobotsTxtRules
from .sitemap_parser import SitemapError, parse_sitemap

__all__ = ["parse_html", "resolve_link", "RobotsTxtRules", "SitemapError", "parse_sitemap"]
