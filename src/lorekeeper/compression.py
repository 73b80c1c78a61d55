# SPDX-License-Identifier: MIT
"""Compression strategies for archived log files.

A strategy only has to know its file suffix and how to open a writable
binary sink at a path; the keeper streams the archive into that sink.
"""
from __future__ import annotations

import bz2
import gzip
import shutil
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from .errors import ConfigurationError

CHUNK_SIZE = 1024 * 1024


@runtime_checkable
class Compressor(Protocol):
    """Capability interface: produce a write-then-close sink for a path."""

    suffix: str

    def open(self, path: Path) -> BinaryIO:
        ...


class GzipCompressor:
    """gzip strategy; ``level`` ranges from 0 (store) to 9 (best)."""

    suffix = ".gz"

    def __init__(self, level: int = 9) -> None:
        if not isinstance(level, int) or not 0 <= level <= 9:
            raise ConfigurationError(f"gzip compression level must be within [0, 9], got {level!r}")
        self.level = level

    def open(self, path: Path) -> BinaryIO:
        return gzip.open(path, "wb", compresslevel=self.level)  # type: ignore[return-value]

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.level == self.level  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.level))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(level={self.level})"


class Bz2Compressor(GzipCompressor):
    """bzip2 strategy; ``level`` ranges from 1 to 9."""

    suffix = ".bz2"

    def __init__(self, level: int = 9) -> None:
        if not isinstance(level, int) or not 1 <= level <= 9:
            raise ConfigurationError(f"bz2 compression level must be within [1, 9], got {level!r}")
        self.level = level

    def open(self, path: Path) -> BinaryIO:
        return bz2.open(path, "wb", compresslevel=self.level)  # type: ignore[return-value]


CODECS = {
    "gzip": GzipCompressor,
    "gz": GzipCompressor,
    "bz2": Bz2Compressor,
    "bzip2": Bz2Compressor,
}


def get_compressor(codec: str, level: int | None = None) -> Compressor:
    """Build a strategy from its codec name, e.g. ``get_compressor("gzip", 6)``."""
    try:
        factory = CODECS[codec.lower()]
    except KeyError:
        raise ConfigurationError(
            f"unknown compression codec {codec!r}; expected one of {', '.join(sorted(CODECS))}"
        ) from None
    return factory() if level is None else factory(level)


def compress_file(compressor: Compressor, source: Path, target: Path) -> None:
    """Stream ``source`` into ``target`` through ``compressor``."""
    with open(source, "rb") as src, compressor.open(target) as dst:
        shutil.copyfileobj(src, dst, CHUNK_SIZE)


__all__ = ["Compressor", "GzipCompressor", "Bz2Compressor", "CODECS", "get_compressor", "compress_file"]
