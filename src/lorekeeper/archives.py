# SPDX-License-Identifier: MIT
"""Inventory of rotated-out log files.

:func:`list_archives` rebuilds the inventory from disk by globbing the
archive pattern; :class:`ArchiveSet` keeps it up to date afterwards so a
rotation never has to rescan the folder.
"""
from __future__ import annotations

import glob
import heapq
import itertools
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import ScanError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ArchiveRecord:
    """Path, size and modification time of one archive."""

    path: Path
    size: int
    mtime_ns: int

    @classmethod
    def from_path(cls, path: os.PathLike | str) -> "ArchiveRecord":
        st = os.stat(path)
        return cls(path=Path(path), size=st.st_size, mtime_ns=st.st_mtime_ns)


def _stat_matches(pattern: str, exclude: Iterable[Path]) -> Iterator[ArchiveRecord]:
    excluded = {os.path.abspath(p) for p in exclude}
    # Sorted so archives sharing a modification time keep a stable order.
    for match in sorted(glob.glob(pattern)):
        if os.path.abspath(match) in excluded:
            continue
        try:
            st = os.stat(match)
        except OSError as exc:
            raise ScanError(f"failed to stat archive {match}: {exc}") from exc
        if not stat.S_ISREG(st.st_mode):
            continue
        yield ArchiveRecord(path=Path(match), size=st.st_size, mtime_ns=st.st_mtime_ns)


def list_archives(
    pattern: str, exclude: Iterable[Path] = ()
) -> Tuple[List[ArchiveRecord], int]:
    """Return the files matching ``pattern`` oldest first, and their total size.

    Paths listed in ``exclude`` (the current file) are left out. Any stat
    failure aborts the scan with :class:`ScanError`: an incomplete inventory
    would make later evictions delete the wrong files.
    """
    heap: List[Tuple[int, int, ArchiveRecord]] = []
    for seq, record in enumerate(_stat_matches(pattern, exclude)):
        heapq.heappush(heap, (record.mtime_ns, seq, record))

    records: List[ArchiveRecord] = []
    total = 0
    while heap:
        _, _, record = heapq.heappop(heap)
        records.append(record)
        total += record.size
    logger.debug("scanned %d archive(s), %d bytes, matching %s", len(records), total, pattern)
    return records, total


class ArchiveSet:
    """Archives ordered by modification time with a running byte total.

    Not thread-safe on its own; the owning keeper guards it with its lock.
    """

    def __init__(self, records: Iterable[ArchiveRecord] = ()) -> None:
        self._heap: List[Tuple[int, int, ArchiveRecord]] = []
        self._counter = itertools.count()
        self.total_bytes = 0
        for record in records:
            self.push(record)

    @classmethod
    def scan(cls, pattern: str, exclude: Iterable[Path] = ()) -> "ArchiveSet":
        records, _ = list_archives(pattern, exclude)
        return cls(records)

    def push(self, record: ArchiveRecord) -> None:
        heapq.heappush(self._heap, (record.mtime_ns, next(self._counter), record))
        self.total_bytes += record.size

    def pop_oldest(self) -> ArchiveRecord:
        if not self._heap:
            raise IndexError("pop from an empty archive set")
        _, _, record = heapq.heappop(self._heap)
        self.total_bytes -= record.size
        return record

    def peek_oldest(self) -> Optional[ArchiveRecord]:
        return self._heap[0][2] if self._heap else None

    def records(self) -> List[ArchiveRecord]:
        """Tracked archives, oldest first."""
        return [entry[2] for entry in sorted(self._heap)]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __iter__(self) -> Iterator[ArchiveRecord]:
        return iter(self.records())

    def __repr__(self) -> str:
        return f"ArchiveSet(count={len(self)}, total_bytes={self.total_bytes})"


__all__ = ["ArchiveRecord", "ArchiveSet", "list_archives"]
