# SPDX-License-Identifier: MIT
"""The rotation engine.

A :class:`Keeper` owns one current file, ``<folder>/<name><extension>``, and
the archives rotated out of it. Writers hand it raw bytes; before an append
that would push the current file past ``max_size`` it rotates:

1. close the current file,
2. render a fresh archive name from the template and the rotation time,
3. rename the closed file to that name,
4. optionally compress it and delete the uncompressed copy,
5. record the archive in the in-memory archive set,
6. evict the oldest archives while a retention limit is exceeded,
7. open a new current file.

All of it runs under one lock per keeper, so a scheduled rotation never
interleaves with a write. Keepers are shared by name through a
:class:`~lorekeeper.registry.Registry`; build them with :func:`new_keeper`.
"""
from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from typing import Any, BinaryIO, Callable, List, Optional, Tuple, Type

from .archives import ArchiveRecord, ArchiveSet
from .compression import compress_file
from .config import KeeperConfig
from .errors import (
    ClosedError,
    ConfigurationError,
    LorekeeperError,
    RotateError,
    WriteError,
)
from .logger import get_logger
from .registry import Registry, default_registry
from .template import format_time
from .triggers import PeriodicTrigger

logger = get_logger(__name__)


def _open_current(path: Path, error: Type[LorekeeperError]) -> Tuple[BinaryIO, int]:
    """Open ``path`` for appending and return it with its size on disk."""
    try:
        handle = open(path, "ab", buffering=0)
    except OSError as exc:
        raise error(f"failed to open current file {path}: {exc}") from exc
    try:
        size = os.fstat(handle.fileno()).st_size
    except OSError as exc:
        handle.close()
        raise error(f"failed to stat current file {path}: {exc}") from exc
    return handle, size  # type: ignore[return-value]


class Keeper:
    """Size- and schedule-rotated append-only log file.

    Implements the byte-sink half of the file protocol (``write``, ``flush``,
    ``close``, ``writable``, ``closed``) so any frontend writing bytes can use
    it. Safe to share between threads; not between processes.
    """

    def __init__(
        self,
        config: KeeperConfig,
        *,
        registry: Optional[Registry[Any]] = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        cfg = config.validate()
        self._lock = threading.RLock()
        self._registry = registry if registry is not None else default_registry()
        self._clock = clock
        self._last_rotation_ns = 0
        self._closed = False
        self._trigger: Optional[PeriodicTrigger] = None

        self._config = cfg
        self._template = cfg.template()
        self._current_path = cfg.current_path
        self._archive_glob = cfg.archive_glob()
        self._archives = (
            ArchiveSet.scan(self._archive_glob, exclude=[self._current_path])
            if cfg.retention_enabled
            else ArchiveSet()
        )
        self._file: Optional[BinaryIO]
        self._file, self._size = _open_current(self._current_path, ConfigurationError)
        logger.debug(
            "keeper %s opened %s (%d bytes, %d archive(s) tracked)",
            cfg.name,
            self._current_path,
            self._size,
            len(self._archives),
        )

    # ------------------------------------------------------------------
    # properties
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> KeeperConfig:
        return self._config

    @property
    def current_path(self) -> Path:
        return self._current_path

    @property
    def current_size(self) -> int:
        """Bytes in the current file; always equal to its length on disk."""
        return self._size

    @property
    def archive_glob(self) -> str:
        return self._archive_glob

    @property
    def closed(self) -> bool:
        return self._closed

    def archives(self) -> List[ArchiveRecord]:
        """Archives tracked for retention, oldest first."""
        with self._lock:
            return self._archives.records()

    @property
    def archive_bytes(self) -> int:
        return self._archives.total_bytes

    def writable(self) -> bool:
        return not self._closed

    # ------------------------------------------------------------------
    # byte sink
    # ------------------------------------------------------------------
    def write(self, data: Any) -> int:
        """Append ``data`` (any bytes-like object), rotating first if it would overflow.

        Returns the number of bytes written, which is always ``len(data)``;
        anything less raises :class:`WriteError`.
        """
        view = memoryview(data).cast("B")
        with self._lock:
            self._check_open()
            if self._file is None:
                raise WriteError(
                    f"keeper {self.name} has no open current file; rotate() or close() to recover"
                )
            cfg = self._config
            if cfg.size_rotation_enabled and self._size > 0 and self._size + len(view) > cfg.max_size:
                logger.debug(
                    "keeper %s: %d + %d bytes would exceed %d, rotating",
                    cfg.name,
                    self._size,
                    len(view),
                    cfg.max_size,
                )
                self._rotate(reopen=True)
            return self._append(view)

    def _append(self, view: memoryview) -> int:
        assert self._file is not None
        written = 0
        try:
            while written < len(view):
                count = self._file.write(view[written:])
                if not count:
                    raise OSError(f"short write after {written} of {len(view)} bytes")
                written += count
        except OSError as exc:
            raise WriteError(
                f"failed to append {len(view)} bytes to {self._current_path}: {exc}"
            ) from exc
        finally:
            self._size += written
        return written

    def flush(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.flush()

    # ------------------------------------------------------------------
    # rotation
    # ------------------------------------------------------------------
    def rotate(self) -> None:
        """Archive the current file now and continue in a fresh one."""
        with self._lock:
            self._check_open()
            self._rotate(reopen=True)

    def _rotate(self, *, reopen: bool) -> None:
        cfg = self._config
        if self._file is not None:
            handle, self._file = self._file, None
            self._size = 0
            try:
                handle.close()
            except OSError as exc:
                raise RotateError(f"failed to close {self._current_path}: {exc}") from exc

        # No current file on disk after an earlier failed rotation: nothing to archive.
        if self._current_path.exists():
            archive = self._archive_current()
            try:
                record = ArchiveRecord.from_path(archive)
            except OSError as exc:
                raise RotateError(f"failed to stat archive {archive}: {exc}") from exc
            self._archives.push(record)
            logger.info("keeper %s archived %s (%d bytes)", cfg.name, archive, record.size)

        self._evict()

        if reopen:
            self._file, self._size = _open_current(self._current_path, RotateError)

    def _next_timestamp(self) -> int:
        stamp = max(self._clock(), self._last_rotation_ns + 1)
        self._last_rotation_ns = stamp
        return stamp

    def _free_target(self, target: Path) -> Path:
        """Return ``target``, or ``target.1``, ``target.2`` ... when it is taken."""
        suffix = self._config.compression.suffix if self._config.compression else ""

        def taken(path: Path) -> bool:
            return path.exists() or (bool(suffix) and path.with_name(path.name + suffix).exists())

        candidate, n = target, 0
        while taken(candidate):
            n += 1
            candidate = target.with_name(f"{target.name}.{n}")
        return candidate

    def _archive_current(self) -> Path:
        cfg = self._config
        stamp = format_time(cfg.time_format, self._next_timestamp())
        try:
            name = self._template.render(stamp, cfg.name, cfg.extension)
        except (KeyError, ValueError) as exc:
            raise RotateError(f"failed to render archive name: {exc}") from exc
        target = self._free_target(self._current_path.parent / name)
        try:
            os.rename(self._current_path, target)
        except OSError as exc:
            raise RotateError(f"failed to move {self._current_path} to {target}: {exc}") from exc

        if cfg.compression is None:
            return target
        compressed = target.with_name(target.name + cfg.compression.suffix)
        try:
            compress_file(cfg.compression, target, compressed)
            os.remove(target)
        except Exception as exc:
            raise RotateError(f"failed to compress {target} into {compressed}: {exc}") from exc
        return compressed

    def _evict(self) -> None:
        cfg = self._config
        archives = self._archives

        def over_limit() -> bool:
            too_big = cfg.max_total_archive_bytes > 0 and archives.total_bytes > cfg.max_total_archive_bytes
            too_many = cfg.max_archive_count > 0 and len(archives) > cfg.max_archive_count
            return too_big or too_many

        while archives and over_limit():
            record = archives.pop_oldest()
            try:
                os.remove(record.path)
            except FileNotFoundError:
                logger.warning("keeper %s: archive %s was already removed", cfg.name, record.path)
            except OSError as exc:
                raise RotateError(f"failed to evict archive {record.path}: {exc}") from exc
            else:
                logger.info("keeper %s evicted %s (%d bytes)", cfg.name, record.path, record.size)

    def _scheduled_rotate(self) -> None:
        try:
            self.rotate()
        except ClosedError:
            logger.debug("keeper %s closed before its scheduled rotation", self.name)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def _check_open(self) -> None:
        if self._closed:
            raise ClosedError(f"keeper {self.name} is closed")

    def _arm(self) -> None:
        """Start the periodic trigger, if configured. Called once registered."""
        with self._lock:
            if self._config.schedule and self._trigger is None and not self._closed:
                self._trigger = self._config.trigger_factory(self._config.schedule)
                self._trigger.start(self._scheduled_rotate)

    def close(self) -> None:
        """Archive the current file, unregister, stop the trigger, release the handle.

        A failed final rotation raises :class:`RotateError` and leaves the
        keeper open, so ``close`` can be retried.
        """
        with self._lock:
            self._check_open()
            self._rotate(reopen=False)
            self._closed = True
            trigger, self._trigger = self._trigger, None
            self._registry.remove(self._config.name, self)
        # Outside the lock: the trigger thread may be waiting on it.
        if trigger is not None:
            trigger.stop()
        logger.info("keeper %s closed", self.name)

    def release(self) -> None:
        """Stop without archiving; the current file is reused by the next keeper.

        Idempotent, unlike :meth:`close`.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            trigger, self._trigger = self._trigger, None
            handle, self._file = self._file, None
            self._registry.remove(self._config.name, self)
            if handle is not None:
                handle.close()
        if trigger is not None:
            trigger.stop()
        logger.debug("keeper %s released %s", self.name, self._current_path)

    def reconfigure(self, config: KeeperConfig) -> None:
        """Apply ``config`` in place.

        Everything that can fail (validation, opening a moved current file,
        rescanning archives, building a new trigger) happens before anything
        is committed, so on error the previous configuration stays in effect.
        """
        new = config.validate()
        old_trigger: Optional[PeriodicTrigger] = None
        with self._lock:
            self._check_open()
            old = self._config
            if new.name != old.name:
                raise ConfigurationError(
                    f"cannot rename keeper {old.name!r} to {new.name!r}; build a new keeper instead"
                )

            template = new.template()
            archive_glob = new.archive_glob()
            current_path = new.current_path
            moved = current_path != self._current_path
            schedule_changed = (
                new.schedule != old.schedule or new.trigger_factory is not old.trigger_factory
            )

            archives = self._archives
            if new.retention_enabled:
                archives = ArchiveSet.scan(archive_glob, exclude=[current_path])

            opened: Optional[Tuple[BinaryIO, int]] = None
            if moved:
                opened = _open_current(current_path, ConfigurationError)
            try:
                new_trigger = (
                    new.trigger_factory(new.schedule) if schedule_changed and new.schedule else None
                )
            except BaseException:
                if opened is not None:
                    opened[0].close()
                raise

            # Commit
            if opened is not None:
                previous, (self._file, self._size) = self._file, opened
                if previous is not None:
                    previous.close()
                logger.warning(
                    "keeper %s moved its current file from %s to %s; the old file is no longer managed",
                    new.name,
                    self._current_path,
                    current_path,
                )
            if new.archive_template != old.archive_template or new.extension != old.extension:
                logger.warning(
                    "keeper %s archive pattern is now %s; archives matching the old pattern are orphaned",
                    new.name,
                    archive_glob,
                )
            self._config = new
            self._template = template
            self._archive_glob = archive_glob
            self._current_path = current_path
            self._archives = archives
            if schedule_changed:
                old_trigger, self._trigger = self._trigger, new_trigger
                if new_trigger is not None:
                    new_trigger.start(self._scheduled_rotate)
            logger.debug("keeper %s reconfigured: %s", new.name, new.to_dict())
        if old_trigger is not None:
            old_trigger.stop()

    # ------------------------------------------------------------------
    def __enter__(self) -> "Keeper":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if not self._closed:
            self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Keeper {self.name!r} {state} current={str(self._current_path)!r} size={self._size}>"


def new_keeper(
    config: Optional[KeeperConfig] = None,
    *,
    registry: Optional[Registry[Any]] = None,
    **overrides: Any,
) -> Keeper:
    """Return the keeper registered under the configured name, creating it if needed.

    Keyword ``overrides`` replace fields of ``config`` (or of the defaults),
    e.g. ``new_keeper(folder="logs", name="api", max_size=10 * MiB)``. When a
    keeper with that name already exists, the configuration is applied to it
    with :meth:`Keeper.reconfigure` and the existing instance is returned.
    """
    base = config if config is not None else KeeperConfig()
    if overrides:
        base = base.replace(**overrides)
    cfg = base.validate()
    registry = registry if registry is not None else default_registry()

    while True:
        shared = registry.get(cfg.name)
        if shared is None:
            candidate = Keeper(cfg, registry=registry)
            shared, inserted = registry.get_or_insert(cfg.name, candidate)
            if inserted:
                candidate._arm()
                logger.info("keeper %s created at %s", cfg.name, candidate.current_path)
                return candidate
            # Lost the race: drop our handle, adopt the winner.
            candidate.release()
        try:
            shared.reconfigure(cfg)
        except ClosedError:
            registry.remove(cfg.name, shared)
            continue
        return shared


__all__ = ["Keeper", "new_keeper"]
