# File: tests/test_parsers.py
"""Тесты разбора HTML, robots.txt и sitemap.xml."""
import pytest

from site_spider.parser.html_parser import parse_html, resolve_link
from site_spider.parser.robots_parser import RobotsTxtRules
from site_spider.parser.sitemap_parser import SitemapError, parse_sitemap

BASE = "http://example.com/dir/page"


# --------------------------------------------------------------------------- #
#                                  HTML                                       #
# --------------------------------------------------------------------------- #


def test_parse_html_full_document():
    html = """
    <html><head>
      <title>  Main title </title>
      <meta name="description" content=" About us ">
    </head><body>
      <h1>Hello</h1>
      <h3>  </h3>
      <div><h2>World <b>bold</b></h2></div>
      <h6>Tiny</h6>
      <a href="/a">A</a>
      <a href="b">B</a>
      <a href="/a">A again</a>
      <a href="https://other.org/x">External</a>
      <a href="mailto:me@example.com">Mail</a>
      <a>No href</a>
    </body></html>
    """
    parsed = parse_html(html, BASE)
    assert parsed.title == "Main title"
    assert parsed.description == "About us"
    assert parsed.headings == [("H1", "Hello"), ("H2", "World bold"), ("H6", "Tiny")]
    assert parsed.links == [
        "http://example.com/a",
        "http://example.com/dir/b",
        "https://other.org/x",
        "mailto:me@example.com",
    ]


def test_parse_html_open_graph_fallback():
    html = """
    <html><head>
      <title> </title>
      <meta property="og:title" content="OG title">
      <meta property="og:description" content="OG description">
    </head><body></body></html>
    """
    parsed = parse_html(html, BASE)
    assert parsed.title == "OG title"
    assert parsed.description == "OG description"


def test_parse_html_missing_metadata():
    parsed = parse_html("<p>plain</p>", BASE)
    assert parsed.title is None
    assert parsed.description is None
    assert parsed.headings == []
    assert parsed.links == []


def test_parse_html_fragment_links_kept_verbatim():
    parsed = parse_html('<a href="#top">t</a><a href="/p/">p</a><a href="/p">p</a>', BASE)
    assert parsed.links == ["http://example.com/dir/page#top", "http://example.com/p/", "http://example.com/p"]


@pytest.mark.parametrize(
    "href,expected",
    [
        ("/x", "http://example.com/x"),
        ("../up", "http://example.com/up"),
        ("http://[::1", None),
        ("http://example.com:notaport/", None),
        ("https:///nohost", None),
        ("javascript:void(0)", "javascript:void(0)"),
    ],
)
def test_resolve_link(href, expected):
    assert resolve_link(href, BASE) == expected


# --------------------------------------------------------------------------- #
#                                robots.txt                                   #
# --------------------------------------------------------------------------- #


def test_robots_allow_all():
    rules = RobotsTxtRules.allow_all()
    assert rules.can_fetch("AnyBot", "/anything")


def test_robots_longest_match_and_agents():
    text = """
    # comment
    User-agent: TestAgent
    Disallow: /private
    Allow: /private/public

    User-agent: *
    Disallow: /
    """
    rules = RobotsTxtRules(text)
    assert not rules.can_fetch("TestAgent/1.0", "/private/secret")
    assert rules.can_fetch("TestAgent/1.0", "/private/public/page")
    assert rules.can_fetch("TestAgent/1.0", "/other")
    assert not rules.can_fetch("OtherBot", "/other")


def test_robots_empty_disallow_allows_everything():
    rules = RobotsTxtRules("User-agent: *\nDisallow:")
    assert rules.can_fetch("TestAgent/1.0", "/page1")


def test_robots_wildcards():
    rules = RobotsTxtRules("User-agent: *\nDisallow: /*.pdf$\nDisallow: /tmp*")
    assert not rules.can_fetch("Bot", "/files/doc.pdf")
    assert rules.can_fetch("Bot", "/files/doc.pdf?x=1")
    assert not rules.can_fetch("Bot", "/tmpfile")


def test_robots_shared_group_for_consecutive_agents():
    rules = RobotsTxtRules("User-agent: a\nUser-agent: b\nDisallow: /x")
    assert not rules.can_fetch("a", "/x")
    assert not rules.can_fetch("b", "/x")
    assert rules.can_fetch("c", "/x")


# --------------------------------------------------------------------------- #
#                               sitemap.xml                                   #
# --------------------------------------------------------------------------- #


def test_parse_sitemap_namespaced():
    xml = b"""<?xml version="1.0" encoding="UTF-8"?>
    <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
      <url><loc> http://example.com/ </loc></url>
      <url><loc>http://example.com/about</loc></url>
      <url><loc></loc></url>
    </urlset>"""
    assert parse_sitemap(xml) == ["http://example.com/", "http://example.com/about"]


def test_parse_sitemap_without_namespace():
    xml = "<urlset><url><loc>http://example.com/a</loc></url></urlset>"
    assert parse_sitemap(xml) == ["http://example.com/a"]


def test_parse_sitemap_index_is_ignored():
    xml = "<sitemapindex><sitemap><loc>http://example.com/s1.xml</loc></sitemap></sitemapindex>"
    assert parse_sitemap(xml) == []


@pytest.mark.parametrize("content", ["", "   ", "not xml at all"])
def test_parse_sitemap_errors(content):
    with pytest.raises(SitemapError):
        parse_sitemap(content)
