"""Thread-safe get-or-compute map shared by the accessor and scan caches."""

from __future__ import annotations

from threading import Lock, get_ident
from typing import TYPE_CHECKING, final

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

__all__ = ["SingleFlightCache"]


@final
class SingleFlightCache[K: Hashable, V]:
    """Process-wide memo table with single-flight computation per key.

    Completed entries are read without locking. A miss takes the structure
    lock only long enough to find or create the key's own lock, so a slow
    computation for one key never blocks lookups or computations for other
    keys. Entries are immutable once written; a factory that raises leaves
    the key unpopulated and the next caller computes it again.

    A factory that asks for its own key again on the same thread (a module
    that scans its own package while being imported by that scan) gets a
    fresh, uncached computation instead of waiting on itself.
    """

    __slots__ = ("_computing", "_entries", "_key_locks", "_lock", "_name")

    def __init__(self, name: str = "cache") -> None:
        self._name = name
        self._entries: dict[K, V] = {}
        self._key_locks: dict[K, Lock] = {}
        self._computing: dict[K, int] = {}
        self._lock = Lock()

    @property
    def name(self) -> str:
        """Return the diagnostic name of this cache."""
        return self._name

    def get_or_compute(self, key: K, factory: Callable[[], V]) -> V:
        """Return the value cached for ``key``, computing it at most once.

        Parameters
        ----------
        key : K
            Cache key.
        factory : Callable[[], V]
            Zero-argument callable producing the value on a miss.

        Returns
        -------
        V
            Cached or freshly computed value. Concurrent callers for the same
            key all receive the object produced by the single computation.
        """
        try:
            return self._entries[key]
        except KeyError:
            pass

        with self._lock:
            if key in self._entries:
                return self._entries[key]
            reentrant = self._computing.get(key) == get_ident()
            key_lock = self._key_locks.setdefault(key, Lock())

        if reentrant:
            return factory()

        with key_lock:
            if key in self._entries:
                return self._entries[key]
            with self._lock:
                self._computing[key] = get_ident()
            try:
                value = factory()
            finally:
                with self._lock:
                    self._computing.pop(key, None)
            with self._lock:
                self._entries[key] = value
                self._key_locks.pop(key, None)
            return value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop every entry. Intended for test isolation only."""
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()
            self._computing.clear()
