# SPDX-License-Identifier: MIT
"""Logging utilities for lorekeeper.

Two concerns live here: the package's own diagnostics loggers, and the
:class:`KeeperHandler` that lets the standard :mod:`logging` module write
into a keeper.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

# Cache of named loggers for quick reuse
_LOGGERS: Dict[str, logging.Logger] = {}

PACKAGE_LOGGER = "lorekeeper"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a cached logger with ``name``."""
    if name not in _LOGGERS:
        _LOGGERS[name] = logging.getLogger(name)
    return _LOGGERS[name]


class ExcludePackageRecords(logging.Filter):
    """Reject records from the ``lorekeeper`` logger hierarchy.

    Keepers log while holding their own lock; a handler writing into a keeper
    must never see those records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        return not (name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."))


class KeeperHandler(logging.Handler):
    """Logging handler appending formatted records to a keeper.

    The keeper is any object with a ``write(bytes) -> int`` method; formatting
    stays with the handler's formatter, the keeper only sees bytes.
    """

    terminator = "\n"

    def __init__(self, keeper: Any, *, encoding: str = "utf-8", level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.keeper = keeper
        self.encoding = encoding
        self._emitting = threading.local()
        # Runs in handle() before the handler lock is taken.
        self.addFilter(ExcludePackageRecords())

    def emit(self, record: logging.LogRecord) -> None:
        # A record logged from inside keeper.write on this thread would re-enter it.
        if getattr(self._emitting, "active", False):
            return
        self._emitting.active = True
        try:
            text = self.format(record) + self.terminator
            self.keeper.write(text.encode(self.encoding, errors="backslashreplace"))
        except Exception:
            self.handleError(record)
        finally:
            self._emitting.active = False

    def flush(self) -> None:
        flush = getattr(self.keeper, "flush", None)
        if flush is not None and not getattr(self.keeper, "closed", False):
            flush()

    def __repr__(self) -> str:
        level = logging.getLevelName(self.level)
        return f"<{self.__class__.__name__} {getattr(self.keeper, 'name', self.keeper)!s} ({level})>"


def setup_keeper_logging(
    keeper: Any,
    *,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
    fmt: str = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
    date_fmt: str = "%Y-%m-%d %H:%M:%S",
) -> logging.Logger:
    """Attach a :class:`KeeperHandler` writing into ``keeper`` on the given logger.

    Calling it twice with the same keeper does not add a second handler.
    """
    target = logger or logging.getLogger()
    target.setLevel(level)
    if not any(isinstance(h, KeeperHandler) and h.keeper is keeper for h in target.handlers):
        handler = KeeperHandler(keeper, level=level)
        handler.setFormatter(logging.Formatter(fmt, datefmt=date_fmt))
        target.addHandler(handler)
    return target


__all__ = ["get_logger", "ExcludePackageRecords", "KeeperHandler", "setup_keeper_logging"]
