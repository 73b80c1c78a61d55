# SPDX-License-Identifier: MIT
# lorekeeper: rotating log files
# Provides the file-lifecycle layer beneath a logging frontend:
# - Size and schedule triggered rotation of one current file
# - Templated archive names, optional gzip/bz2 compression
# - Retention by archive count and/or total archive bytes
# - One shared keeper per logical name within a process
# - A logging.Handler adapter and a small maintenance CLI (Typer)
from .archives import ArchiveRecord, ArchiveSet, list_archives
from .compression import Bz2Compressor, Compressor, GzipCompressor, get_compressor
from .config import (
    DEFAULT_ARCHIVE_TEMPLATE,
    DEFAULT_EXTENSION,
    DEFAULT_MAX_SIZE,
    DEFAULT_TIME_FORMAT,
    KeeperConfig,
)
from .config_loader import load_config, load_config_dict
from .errors import (
    ClosedError,
    ConfigurationError,
    LorekeeperError,
    RotateError,
    ScanError,
    TemplateError,
    WriteError,
)
from .keeper import Keeper, new_keeper
from .logger import KeeperHandler, get_logger, setup_keeper_logging
from .registry import Registry, default_registry
from .sizes import GB, GiB, KB, KiB, MB, MiB, parse_size
from .template import NameTemplate, format_time
from .triggers import PeriodicTrigger, ScheduleTrigger

__version__ = "0.3.0"

__all__ = [
    "new_keeper",
    "Keeper",
    "KeeperConfig",
    "load_config",
    "load_config_dict",
    "DEFAULT_ARCHIVE_TEMPLATE",
    "DEFAULT_EXTENSION",
    "DEFAULT_MAX_SIZE",
    "DEFAULT_TIME_FORMAT",
    "ArchiveRecord",
    "ArchiveSet",
    "list_archives",
    "NameTemplate",
    "format_time",
    "Registry",
    "default_registry",
    "Compressor",
    "GzipCompressor",
    "Bz2Compressor",
    "get_compressor",
    "PeriodicTrigger",
    "ScheduleTrigger",
    "KeeperHandler",
    "setup_keeper_logging",
    "get_logger",
    "LorekeeperError",
    "ConfigurationError",
    "TemplateError",
    "WriteError",
    "RotateError",
    "ScanError",
    "ClosedError",
    "KB",
    "MB",
    "GB",
    "KiB",
    "MiB",
    "GiB",
    "parse_size",
]
