# site_spider/crawler/fetcher.py
"""
Fetcher module: one HTTP GET per URL, redirects followed, latency measured,
transport failures mapped to sentinel status codes.
"""
from __future__ import annotations

import asyncio
import errno
import socket
import time

from aiohttp import (
    ClientConnectorDNSError,
    ClientConnectorError,
    ClientError,
    ClientSession,
    InvalidURL,
)

from site_spider.crawler.models import (
    STATUS_CONNECTION_REFUSED,
    STATUS_DNS_FAILURE,
    STATUS_MALFORMED_URL,
    STATUS_NETWORK_ERROR,
    FetchResult,
)
from site_spider.logger import logger


def classify_error(exc: BaseException) -> int:
    """Map a transport exception to the sentinel stored in ``response_status``."""
    if isinstance(exc, (InvalidURL, ValueError)):
        return STATUS_MALFORMED_URL
    if isinstance(exc, ClientConnectorDNSError):
        return STATUS_DNS_FAILURE
    if isinstance(exc, ClientConnectorError):
        os_error = exc.os_error
        if isinstance(os_error, socket.gaierror):
            return STATUS_DNS_FAILURE
        if isinstance(os_error, ConnectionRefusedError) or os_error.errno == errno.ECONNREFUSED:
            return STATUS_CONNECTION_REFUSED
    return STATUS_NETWORK_ERROR


class Fetcher:
    """Issues GET requests through a shared :class:`aiohttp.ClientSession`.

    The session carries the User-Agent header and the per-request timeout;
    redirects are always followed to completion.
    """

    def __init__(self, session: ClientSession) -> None:
        self.session = session

    async def fetch(self, url: str) -> FetchResult:
        """
        GET *url* and return a :class:`FetchResult`.

        The body is filled only for a 2xx response whose Content-Type
        contains ``text/html``. Never raises for network problems.
        """
        start = time.monotonic()
        try:
            async with self.session.get(url, allow_redirects=True) as resp:
                status = resp.status
                final_url = str(resp.url)
                ctype = resp.headers.get("Content-Type", "")
                body = ""
                if 200 <= status < 300 and "text/html" in ctype.lower():
                    body = await resp.text(errors="replace")
                return FetchResult(
                    url=url,
                    final_url=final_url,
                    status=status,
                    elapsed_ms=_elapsed_ms(start),
                    body=body,
                    content_type=ctype,
                )
        except (ClientError, asyncio.TimeoutError, OSError, ValueError) as exc:
            status = classify_error(exc)
            logger.warning("Fetch failed %s: %s (%s)", url, exc.__class__.__name__, status)
            return FetchResult(url=url, final_url=url, status=status, elapsed_ms=_elapsed_ms(start))


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))
