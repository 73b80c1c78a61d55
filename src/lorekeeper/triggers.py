# SPDX-License-Identifier: MIT
"""Periodic rotation triggers.

A trigger calls back on its own schedule, independently of writers; the
keeper hands it its ``rotate`` method. :class:`ScheduleTrigger` is the
shipped implementation, built on the ``schedule`` library with a private
:class:`schedule.Scheduler` and one daemon thread per trigger.

Schedule grammar understood by :class:`ScheduleTrigger`::

    every 30 seconds | every 5 minutes | every hour | every 2 days | every week
    hourly
    daily | daily at 00:00 | daily at 23:59:30
    weekly
    monday | monday at 08:00        (any weekday)
"""
from __future__ import annotations

import re
import threading
from typing import Callable, Optional, Protocol

import schedule

from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

_UNITS = ("second", "minute", "hour", "day", "week")
_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_TIME = r"(?:\s+at\s+(?P<at>\d{1,2}:\d{2}(?::\d{2})?))?"

_EVERY = re.compile(rf"^every\s+(?:(?P<n>\d+)\s+)?(?P<unit>{'|'.join(_UNITS)})s?$")
_DAILY = re.compile(rf"^daily{_TIME}$")
_WEEKDAY = re.compile(rf"^(?P<day>{'|'.join(_WEEKDAYS)}){_TIME}$")


class PeriodicTrigger(Protocol):
    """Capability interface: invoke a callback on a schedule until stopped."""

    def start(self, callback: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...


TriggerFactory = Callable[[str], PeriodicTrigger]


def normalize_schedule(spec: str) -> str:
    return " ".join(spec.lower().split())


def _build_job(scheduler: schedule.Scheduler, spec: str) -> schedule.Job:
    """Translate ``spec`` into an unscheduled job on ``scheduler``."""
    match = _EVERY.match(spec)
    if match:
        interval = int(match.group("n") or 1)
        if interval < 1:
            raise ConfigurationError(f"schedule interval must be at least 1 in {spec!r}")
        job = scheduler.every(interval)
        return getattr(job, match.group("unit") + ("s" if interval > 1 else ""))
    if spec == "hourly":
        return scheduler.every().hour.at(":00")
    if spec == "weekly":
        return scheduler.every().week
    match = _DAILY.match(spec)
    if match:
        job = scheduler.every().day
        return job.at(match.group("at")) if match.group("at") else job
    match = _WEEKDAY.match(spec)
    if match:
        job = getattr(scheduler.every(), match.group("day"))
        return job.at(match.group("at")) if match.group("at") else job
    raise ConfigurationError(f"unrecognised rotation schedule {spec!r}")


class ScheduleTrigger:
    """Run a callback on a ``schedule``-library job from a daemon thread.

    The schedule is parsed when the trigger is built, so an invalid spec is
    rejected at configuration time rather than when the thread starts.
    """

    def __init__(self, spec: str, *, poll_interval: float = 1.0) -> None:
        self.spec = normalize_schedule(spec)
        self.poll_interval = poll_interval
        self._scheduler = schedule.Scheduler()
        self._callback: Optional[Callable[[], None]] = None
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        try:
            self._job = _build_job(self._scheduler, self.spec).do(self._fire)
        except (schedule.ScheduleError, ValueError, TypeError) as exc:
            if isinstance(exc, ConfigurationError):
                raise
            raise ConfigurationError(f"invalid rotation schedule {spec!r}: {exc}") from exc

    def _fire(self) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("scheduled rotation (%s) failed", self.spec)

    def _loop(self) -> None:
        while not self._stopped.is_set():
            self._scheduler.run_pending()
            idle = self._scheduler.idle_seconds
            timeout = self.poll_interval if idle is None else min(max(idle, 0.0), self.poll_interval)
            self._stopped.wait(timeout)

    def start(self, callback: Callable[[], None]) -> None:
        if self._thread is not None:
            raise RuntimeError("trigger already started")
        self._callback = callback
        self._thread = threading.Thread(
            target=self._loop, name=f"lorekeeper-trigger[{self.spec}]", daemon=True
        )
        self._thread.start()
        logger.debug("rotation trigger started: %s (next run %s)", self.spec, self._job.next_run)

    def stop(self) -> None:
        self._stopped.set()
        self._callback = None
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)
        self._scheduler.clear()
        logger.debug("rotation trigger stopped: %s", self.spec)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    @property
    def next_run(self):
        return self._job.next_run

    def __repr__(self) -> str:
        return f"ScheduleTrigger({self.spec!r})"


__all__ = ["PeriodicTrigger", "TriggerFactory", "ScheduleTrigger", "normalize_schedule"]
