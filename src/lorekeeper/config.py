# SPDX-License-Identifier: MIT
"""Keeper configuration.

Defines the dataclass controlling where the current file lives, when it is
rotated, how archives are named, compressed and evicted.
"""
from __future__ import annotations

import dataclasses
import glob
import os
import re
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .compression import Compressor, get_compressor
from .errors import ConfigurationError
from .sizes import MiB
from .template import NameTemplate, check_time_format
from .triggers import ScheduleTrigger, TriggerFactory, normalize_schedule

DEFAULT_EXTENSION = ".log"
DEFAULT_TIME_FORMAT = "%Y%m%dT%H%M%S.%N%Z"
DEFAULT_MAX_SIZE = 15 * MiB
DEFAULT_ARCHIVE_TEMPLATE = "{time}-{name}{extension}"


def normalize_name(name: str) -> str:
    """Lowercase ``name`` and turn whitespace runs into hyphens."""
    return re.sub(r"\s+", "-", name.strip().lower())


def default_name() -> str:
    """Name derived from the running program, e.g. ``lorekeeper-worker.py``."""
    program = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else ""
    if not program or program.startswith("-"):
        return "lorekeeper"
    return normalize_name(f"lorekeeper-{program}")


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigurationError(msg)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class KeeperConfig:
    """Dataclass configuration for one keeper."""

    # Where and what
    folder: Union[str, Path] = field(default_factory=tempfile.gettempdir)  # Must already exist
    name: str = field(default_factory=default_name)  # Logical name; registry key
    extension: str = DEFAULT_EXTENSION  # Current file is <folder>/<name><extension>

    # Archive naming
    time_format: str = DEFAULT_TIME_FORMAT  # strftime directives plus %N (nanoseconds)
    archive_template: str = DEFAULT_ARCHIVE_TEMPLATE  # {time} {name} {extension}

    # Triggers
    max_size: int = DEFAULT_MAX_SIZE  # Bytes per current file, <= 0 disables
    schedule: Optional[str] = None  # e.g. "daily at 00:00", see lorekeeper.triggers
    trigger_factory: TriggerFactory = field(default=ScheduleTrigger, repr=False)

    # Retention
    max_archive_count: int = 0  # <= 0 disables
    max_total_archive_bytes: int = 0  # <= 0 disables

    # Compression: a Compressor, a codec name ("gzip", "bz2") or None
    compression: Union[Compressor, str, None] = None

    # ------------------------------------------------------------------
    @property
    def size_rotation_enabled(self) -> bool:
        return self.max_size > 0

    @property
    def retention_enabled(self) -> bool:
        return self.max_archive_count > 0 or self.max_total_archive_bytes > 0

    @property
    def current_path(self) -> Path:
        return Path(self.folder) / f"{self.name}{self.extension}"

    def template(self) -> NameTemplate:
        return NameTemplate.compile(self.archive_template)

    def archive_glob(self) -> str:
        """Glob matching every archive this configuration can produce."""
        pattern = self.template().glob(self.name, self.extension)
        return os.path.join(glob.escape(str(self.folder)), pattern)

    def replace(self, **changes: Any) -> "KeeperConfig":
        return dataclasses.replace(self, **changes)

    # ------------------------------------------------------------------
    def validate(self) -> "KeeperConfig":
        """Return a normalized copy, raising :class:`ConfigurationError` on bad values.

        Checks run in order: folder, name, extension, integer limits, time
        format, template, compression, schedule.
        """
        _assert(isinstance(self.folder, (str, os.PathLike)), "folder must be a path")
        folder = Path(self.folder).expanduser()
        _assert(folder.is_dir(), f"log folder {str(folder)!r} does not exist or is not a directory")
        folder = Path(os.path.abspath(folder))

        _assert(isinstance(self.name, str), "name must be a string")
        name = normalize_name(self.name) or default_name()
        _assert(
            not any(sep in name for sep in (os.sep, os.altsep, "/") if sep),
            f"name {name!r} must not contain a path separator",
        )

        _assert(isinstance(self.extension, str), "extension must be a string")
        extension = self.extension.strip()
        if extension and not extension.startswith("."):
            extension = "." + extension
        _assert("/" not in extension and os.sep not in extension, "extension must not contain a path separator")

        for key in ("max_size", "max_archive_count", "max_total_archive_bytes"):
            _assert(_is_int(getattr(self, key)), f"{key} must be an integer")

        _assert(isinstance(self.time_format, str), "time_format must be a string")
        check_time_format(self.time_format)

        _assert(isinstance(self.archive_template, str), "archive_template must be a string")
        NameTemplate.compile(self.archive_template)

        compression = self.compression
        if isinstance(compression, str):
            compression = get_compressor(compression)
        _assert(
            compression is None or isinstance(compression, Compressor),
            f"compression must provide 'suffix' and 'open(path)', got {compression!r}",
        )

        schedule = self.schedule
        if schedule is not None:
            _assert(isinstance(schedule, str), "schedule must be a string")
            schedule = normalize_schedule(schedule) or None
        if schedule is not None:
            _assert(callable(self.trigger_factory), "trigger_factory must be callable")
            # Building a trigger parses the schedule; it is not started.
            try:
                self.trigger_factory(schedule)
            except ConfigurationError:
                raise
            except Exception as exc:
                raise ConfigurationError(f"invalid rotation schedule {schedule!r}: {exc}") from exc

        return dataclasses.replace(
            self,
            folder=folder,
            name=name,
            extension=extension,
            compression=compression,
            schedule=schedule,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dictionary representation of this config."""
        compression = self.compression
        if compression is not None and not isinstance(compression, str):
            compression = {
                "suffix": compression.suffix,
                "level": getattr(compression, "level", None),
            }
        return {
            "folder": str(self.folder),
            "name": self.name,
            "extension": self.extension,
            "time_format": self.time_format,
            "archive_template": self.archive_template,
            "max_size": self.max_size,
            "schedule": self.schedule,
            "max_archive_count": self.max_archive_count,
            "max_total_archive_bytes": self.max_total_archive_bytes,
            "compression": compression,
        }


__all__ = [
    "KeeperConfig",
    "DEFAULT_EXTENSION",
    "DEFAULT_TIME_FORMAT",
    "DEFAULT_MAX_SIZE",
    "DEFAULT_ARCHIVE_TEMPLATE",
    "default_name",
    "normalize_name",
]
