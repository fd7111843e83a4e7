# === FILE: site_spider/logger.py ===
"""Logging for **SiteSpider**.

Several crawls can share one process, so every record carries the domain it
belongs to in ``%(db_name)s`` ("-" for records outside a crawl)::

    from site_spider.logger import logger, for_domain
    logger.info("API ready")                      # ... | - | API ready
    for_domain("example.com").info("Scanned /")   # ... | example.com | Scanned /

The CLI calls :func:`init_logging` once per invocation with ``--log-level``,
``--log-file`` and ``--log-format``.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, MutableMapping, Optional, Tuple, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(db_name)s | %(message)s"
LOGGER_NAME: Final[str] = "SiteSpider"
NO_DOMAIN: Final[str] = "-"

# rotation of --log-file: 5 MB, three old files kept
LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


class DomainFilter(logging.Filter):
    """Fills ``record.db_name`` for records logged without a domain."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "db_name"):
            record.db_name = NO_DOMAIN
        return True


class DomainAdapter(logging.LoggerAdapter):
    """Project logger bound to one crawled domain."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), "db_name": self.extra["db_name"]}
        return msg, kwargs


def for_domain(db_name: Optional[str]) -> Union[logging.Logger, DomainAdapter]:
    """Logger for one crawl; the plain project logger when *db_name* is empty."""
    lg = logging.getLogger(LOGGER_NAME)
    if not db_name:
        return lg
    return DomainAdapter(lg, {"db_name": db_name})


def _handler(handler: logging.Handler, fmt: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(DomainFilter())
    return handler


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Replace the handlers of the project logger.

    Console output goes to stdout; *log_file* adds a rotating file (its
    directory is created). Old handlers are closed so repeated CLI runs in one
    process do not leak file descriptors.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)
    for old in list(lg.handlers):
        lg.removeHandler(old)
        old.close()
    if not any(isinstance(f, DomainFilter) for f in lg.filters):
        lg.addFilter(DomainFilter())

    lg.addHandler(_handler(logging.StreamHandler(sys.stdout), log_format))
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        lg.addHandler(
            _handler(
                RotatingFileHandler(
                    filename=str(path),
                    maxBytes=LOG_FILE_MAX_BYTES,
                    backupCount=LOG_FILE_BACKUPS,
                    encoding="utf-8",
                ),
                log_format,
            )
        )

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI."""
    return configure(level=level, log_file=log_file, log_format=log_format)


logger: logging.Logger = init_logging()

__all__ = [
    "logger",
    "configure",
    "init_logging",
    "for_domain",
    "DomainAdapter",
    "DomainFilter",
    "DEFAULT_FORMAT",
    "LOGGER_NAME",
]
