# site_spider/crawler/frontier.py
"""
URL frontier: FIFO queue of discovered URLs plus the visited set.
"""
from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Optional, Set

from site_spider.utils import hostname_of


class Frontier:
    """Owns ``visited`` and the pending queue of a single-domain crawl.

    URLs are compared as exact strings. A URL is marked visited when it is
    handed out by :meth:`next`, not when its fetch completes, so an in-flight
    URL is never dispatched twice.
    """

    def __init__(self, domain: str, visited: Iterable[str] = ()) -> None:
        self.domain = domain.lower()
        self.visited: Set[str] = set(visited)
        self._queue: Deque[str] = deque()
        self._queued: Set[str] = set()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    @property
    def total_known(self) -> int:
        """Visited plus pending URLs."""
        return len(self.visited) + len(self._queue)

    def pending(self) -> list[str]:
        return list(self._queue)

    def in_scope(self, url: str) -> bool:
        return hostname_of(url) == self.domain

    def seed(self, urls: Iterable[str]) -> int:
        """Queue every in-scope, unseen URL; returns how many were added."""
        return sum(1 for url in urls if self.discover(url))

    def discover(self, url: str) -> bool:
        if url in self.visited or url in self._queued or not self.in_scope(url):
            return False
        self._queue.append(url)
        self._queued.add(url)
        return True

    def next(self) -> Optional[str]:
        if not self._queue:
            return None
        url = self._queue.popleft()
        self._queued.discard(url)
        self.visited.add(url)
        return url
