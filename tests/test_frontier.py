# File: tests/test_frontier.py
import pytest

from site_spider.crawler.frontier import Frontier
from site_spider.utils import extract_domain, origin_of, remove_duplicates, safe_db_name, seed_url


def test_fifo_order_and_visited_at_dispatch():
    frontier = Frontier("example.com")
    assert frontier.seed(["http://example.com/a", "http://example.com/b"]) == 2
    assert frontier.next() == "http://example.com/a"
    assert "http://example.com/a" in frontier.visited
    # the in-flight URL is not queued a second time
    assert not frontier.discover("http://example.com/a")
    assert frontier.next() == "http://example.com/b"
    assert frontier.next() is None
    assert not frontier


def test_domain_scoping():
    frontier = Frontier("Example.com")
    assert frontier.discover("http://example.com/x")
    assert frontier.discover("https://EXAMPLE.com/y")
    assert not frontier.discover("http://sub.example.com/")
    assert not frontier.discover("http://other.org/")
    assert not frontier.discover("mailto:me@example.com")
    assert frontier.pending() == ["http://example.com/x", "https://EXAMPLE.com/y"]


def test_no_duplicates_and_exact_string_identity():
    frontier = Frontier("example.com", visited=["http://example.com/"])
    assert not frontier.discover("http://example.com/")
    assert frontier.discover("http://example.com")
    assert not frontier.discover("http://example.com")
    assert frontier.discover("http://example.com/#frag")
    assert len(frontier) == 2
    assert frontier.total_known == 3


def test_resume_seed_is_difference_of_destinations_and_visited():
    visited = ["http://example.com/", "http://example.com/a"]
    destinations = [
        "http://example.com/a",
        "http://example.com/b",
        "http://other.org/",
        "http://example.com/c",
    ]
    frontier = Frontier("example.com", visited)
    assert frontier.seed(destinations) == 2
    assert frontier.pending() == ["http://example.com/b", "http://example.com/c"]


# --------------------------------------------------------------------------- #
#                                  utils                                      #
# --------------------------------------------------------------------------- #


def test_seed_url_adds_root_path_only():
    assert seed_url("https://example.com") == "https://example.com/"
    assert seed_url(" https://example.com/page?q=1 ") == "https://example.com/page?q=1"


@pytest.mark.parametrize("url", ["example.com", "ftp://example.com/", "http:///path", ""])
def test_extract_domain_rejects(url):
    with pytest.raises(ValueError):
        extract_domain(url)


def test_domain_helpers():
    assert extract_domain("https://Example.COM:8443/x") == "example.com"
    assert origin_of("https://example.com:8443/x?y") == "https://example.com:8443"
    assert safe_db_name("exa mple.com:80") == "exa_mple.com_80"
    assert remove_duplicates(["a", "b", "a"]) == ["a", "b"]
