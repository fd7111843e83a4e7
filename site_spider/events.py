# File: site_spider/events.py
"""site_spider.events: typed commands and events exchanged with the supervising side.

Commands flow in (``start``/``stop``), events flow out (``progress``, ``log``,
``completed``, ``error``, ``cancelled``). Both are plain dataclasses tagged by
a ``type`` field; :func:`to_message` / :func:`command_from_message` convert
them to and from dicts for any transport. :class:`Channel` is the in-process
transport, a closable ``asyncio.Queue``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, ClassVar, Dict, Generic, Optional, TypeVar, Union

from site_spider.logger import for_domain

T = TypeVar("T")


# --------------------------------------------------------------------------- #
# Commands                                                                    #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class StartCommand:
    seed_url: str
    overwrite: bool = False
    concurrency: Optional[int] = None
    type: ClassVar[str] = "start"


@dataclass(frozen=True, slots=True)
class StopCommand:
    db_name: Optional[str] = None
    type: ClassVar[str] = "stop"


Command = Union[StartCommand, StopCommand]


# --------------------------------------------------------------------------- #
# Events                                                                      #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    message: str
    current_url: Optional[str] = None
    total_urls_known: Optional[int] = None
    scanned_count: Optional[int] = None
    db_name: Optional[str] = None
    type: ClassVar[str] = "progress"


@dataclass(frozen=True, slots=True)
class LogEvent:
    level: str
    message: str
    db_name: Optional[str] = None
    type: ClassVar[str] = "log"


@dataclass(frozen=True, slots=True)
class CompletedEvent:
    db_name: Optional[str] = None
    type: ClassVar[str] = "completed"


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    message: str
    db_name: Optional[str] = None
    type: ClassVar[str] = "error"


@dataclass(frozen=True, slots=True)
class CancelledEvent:
    db_name: Optional[str] = None
    type: ClassVar[str] = "cancelled"


Event = Union[ProgressEvent, LogEvent, CompletedEvent, ErrorEvent, CancelledEvent]

_COMMANDS: Dict[str, type] = {cls.type: cls for cls in (StartCommand, StopCommand)}


def to_message(item: Union[Command, Event]) -> Dict[str, Any]:
    """Dict form with the ``type`` tag, e.g. for JSON transports."""
    return {"type": item.type, **asdict(item)}


def command_from_message(message: Dict[str, Any]) -> Command:
    """Build a command from its dict form; unknown tags raise ``ValueError``."""
    payload = dict(message)
    tag = payload.pop("type", None)
    cls = _COMMANDS.get(tag)  # type: ignore[arg-type]
    if cls is None:
        raise ValueError(f"unknown command type: {tag!r}")
    return cls(**payload)


# --------------------------------------------------------------------------- #
# Channel                                                                     #
# --------------------------------------------------------------------------- #


class Channel(Generic[T]):
    """Single-consumer queue that can be closed; iterate with ``async for``."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[T]] = asyncio.Queue()
        self._closed = False

    def send(self, item: T) -> None:
        if self._closed:
            raise RuntimeError("channel is closed")
        self._queue.put_nowait(item)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self) -> Optional[T]:
        """Next item, or ``None`` once the channel is closed and drained."""
        item = await self._queue.get()
        if item is None:
            # keep the sentinel for any later receive()
            self._queue.put_nowait(None)
        return item

    def drain(self) -> list[T]:
        """All items currently buffered (non-blocking)."""
        items: list[T] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is None:
                self._queue.put_nowait(None)
                break
            items.append(item)
        return items

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            item = await self.receive()
            if item is None:
                return
            yield item


# --------------------------------------------------------------------------- #
# Progress reporter                                                           #
# --------------------------------------------------------------------------- #


class ProgressReporter:
    """Publishes session events to a channel and mirrors them into the log."""

    def __init__(self, channel: Optional[Channel[Event]] = None, db_name: Optional[str] = None) -> None:
        self.channel = channel
        self.db_name = db_name
        self._log = for_domain(db_name)

    def _emit(self, event: Event) -> None:
        if self.channel is not None and not self.channel.closed:
            self.channel.send(event)

    def progress(
        self,
        message: str,
        current_url: Optional[str] = None,
        total_urls_known: Optional[int] = None,
        scanned_count: Optional[int] = None,
    ) -> None:
        self._log.debug("%s %s (%s/%s)", message, current_url or "", scanned_count or 0, total_urls_known or 0)
        self._emit(ProgressEvent(message, current_url, total_urls_known, scanned_count, self.db_name))

    def log(self, level: str, message: str) -> None:
        self._log.log(logging.getLevelNamesMapping().get(level.upper(), logging.INFO), message)
        self._emit(LogEvent(level.lower(), message, self.db_name))

    def completed(self) -> None:
        self._log.info("Crawl completed")
        self._emit(CompletedEvent(self.db_name))

    def error(self, message: str) -> None:
        self._log.error("Crawl failed: %s", message)
        self._emit(ErrorEvent(message, self.db_name))

    def cancelled(self) -> None:
        self._log.warning("Crawl cancelled")
        self._emit(CancelledEvent(self.db_name))


__all__ = [
    "StartCommand",
    "StopCommand",
    "Command",
    "ProgressEvent",
    "LogEvent",
    "CompletedEvent",
    "ErrorEvent",
    "CancelledEvent",
    "Event",
    "Channel",
    "ProgressReporter",
    "to_message",
    "command_from_message",
]
