# SPDX-License-Identifier: MIT
"""Exception hierarchy raised by lorekeeper.

Configuration problems are ``ValueError`` subclasses; failures touching the
filesystem are ``OSError`` subclasses so callers already handling I/O errors
keep working. The original exception is always chained as ``__cause__``.
"""
from __future__ import annotations


class LorekeeperError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(LorekeeperError, ValueError):
    """Invalid folder, template, time format, schedule, compression or config file."""


class TemplateError(ConfigurationError):
    """Archive name template could not be compiled."""


class WriteError(LorekeeperError, OSError):
    """Appending to the current file failed. The keeper stays open."""


class RotateError(LorekeeperError, OSError):
    """A rotation failed part way; the keeper may have no open current file."""


class ScanError(LorekeeperError, OSError):
    """The archive folder could not be fully inventoried."""


class ClosedError(LorekeeperError):
    """The keeper was closed; it can no longer be used."""


__all__ = [
    "LorekeeperError",
    "ConfigurationError",
    "TemplateError",
    "WriteError",
    "RotateError",
    "ScanError",
    "ClosedError",
]
