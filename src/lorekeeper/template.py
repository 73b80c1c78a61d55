# SPDX-License-Identifier: MIT
"""Archive file name templates.

A template is literal text with ``{time}``, ``{name}`` and ``{extension}``
placeholders (``{{`` and ``}}`` stand for literal braces). It is compiled once
into segments and then rendered two ways:

* concretely, producing the file name of a new archive, and
* as a glob, matching every file name the template can ever produce for a
  given name and extension. ``{time}`` becomes ``*`` and a trailing ``*`` is
  always present so compressed archives (``.gz`` ...) are matched as well.
"""
from __future__ import annotations

import glob as _glob
import os
import re
import string
from dataclasses import dataclass
from datetime import datetime
from typing import List, Tuple

from .errors import ConfigurationError, TemplateError

VARIABLES = ("time", "name", "extension")
WILDCARD = "*"

_SEPARATORS = tuple(sep for sep in (os.sep, os.altsep, "/") if sep)
_TIME_DIRECTIVES = re.compile(r"%[%N]")


@dataclass(frozen=True)
class Segment:
    """One piece of a compiled template: literal text or a variable reference."""

    text: str
    is_variable: bool = False


class NameTemplate:
    """A compiled archive name template."""

    def __init__(self, source: str, segments: Tuple[Segment, ...]) -> None:
        self.source = source
        self.segments = segments

    @classmethod
    def compile(cls, source: str) -> "NameTemplate":
        """Parse ``source`` into segments, raising :class:`TemplateError` if invalid."""
        if not source:
            raise TemplateError("archive name template must not be empty")
        segments: List[Segment] = []
        try:
            parsed = list(string.Formatter().parse(source))
        except ValueError as exc:
            raise TemplateError(f"invalid archive name template {source!r}: {exc}") from exc
        for literal, field, spec, conversion in parsed:
            if literal:
                if any(sep in literal for sep in _SEPARATORS):
                    raise TemplateError(
                        f"archive name template {source!r} must not contain a path separator"
                    )
                segments.append(Segment(literal))
            if field is None:
                continue
            if field not in VARIABLES:
                raise TemplateError(
                    f"unknown variable {{{field}}} in archive name template {source!r}; "
                    f"expected one of {', '.join(VARIABLES)}"
                )
            if spec or conversion:
                raise TemplateError(
                    f"format specs and conversions are not supported in {source!r}"
                )
            segments.append(Segment(field, is_variable=True))
        return cls(source, tuple(segments))

    def render(self, time: str, name: str, extension: str) -> str:
        """Return the concrete archive file name."""
        values = {"time": time, "name": name, "extension": extension}
        return "".join(values[s.text] if s.is_variable else s.text for s in self.segments)

    def glob(self, name: str, extension: str) -> str:
        """Return a glob pattern matching every name :meth:`render` can produce."""
        values = {"time": WILDCARD, "name": _glob.escape(name), "extension": _glob.escape(extension)}
        pattern = "".join(
            values[s.text] if s.is_variable else _glob.escape(s.text) for s in self.segments
        )
        if not pattern.endswith(WILDCARD):
            pattern += WILDCARD
        return pattern

    @property
    def variables(self) -> Tuple[str, ...]:
        return tuple(s.text for s in self.segments if s.is_variable)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NameTemplate) and other.source == self.source

    def __hash__(self) -> int:
        return hash(self.source)

    def __repr__(self) -> str:
        return f"NameTemplate({self.source!r})"


def format_time(time_format: str, timestamp_ns: int) -> str:
    """Format a nanosecond timestamp in local time.

    Accepts every :meth:`datetime.strftime` directive plus ``%N``, the
    9-digit nanosecond fraction of the second.
    """
    seconds, nanos = divmod(timestamp_ns, 1_000_000_000)

    def _directive(match: "re.Match[str]") -> str:
        return "%%" if match.group() == "%%" else f"{nanos:09d}"

    moment = datetime.fromtimestamp(seconds).astimezone()
    return moment.strftime(_TIME_DIRECTIVES.sub(_directive, time_format))


def check_time_format(time_format: str) -> None:
    """Raise :class:`ConfigurationError` if ``time_format`` cannot name a file."""
    if not time_format:
        raise ConfigurationError("time format must not be empty")
    sample = format_time(time_format, 1_234_567_890_123_456_789)
    if any(sep in sample for sep in _SEPARATORS):
        raise ConfigurationError(
            f"time format {time_format!r} renders a path separator ({sample!r})"
        )


__all__ = ["NameTemplate", "Segment", "VARIABLES", "WILDCARD", "format_time", "check_time_format"]
