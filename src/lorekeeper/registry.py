# SPDX-License-Identifier: MIT
"""Process-wide map from logical name to the keeper owning it.

Every keeper constructed through :func:`lorekeeper.new_keeper` is registered
here so that two parts of a program asking for the same name share a single
instance, and with it a single lock and a single current file.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class Registry(Generic[T]):
    """Thread-safe name to instance map.

    The registry lock is never held while calling into an instance, so it
    does not contend with any keeper's own lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, T] = {}

    def get_or_insert(self, name: str, candidate: T) -> Tuple[T, bool]:
        """Register ``candidate`` unless ``name`` is taken.

        Returns the shared instance and whether ``candidate`` became it. A
        caller whose candidate lost must release the candidate's resources.
        """
        with self._lock:
            current = self._entries.get(name)
            if current is not None:
                return current, False
            self._entries[name] = candidate
            return candidate, True

    def get(self, name: str) -> Optional[T]:
        with self._lock:
            return self._entries.get(name)

    def remove(self, name: str, instance: Optional[T] = None) -> bool:
        """Drop ``name``; when ``instance`` is given only if it is still the one registered."""
        with self._lock:
            current = self._entries.get(name)
            if current is None or (instance is not None and current is not instance):
                return False
            del self._entries[name]
            return True

    def names(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_DEFAULT: Optional[Registry[Any]] = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> Registry[Any]:
    """Return the process-wide registry, creating it on first use."""
    global _DEFAULT
    if _DEFAULT is None:
        with _DEFAULT_LOCK:
            if _DEFAULT is None:
                _DEFAULT = Registry()
    return _DEFAULT


__all__ = ["Registry", "default_registry"]
