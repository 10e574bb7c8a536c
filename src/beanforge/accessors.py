"""Memoized property accessors keyed by ``(type, property name)``.

The first lookup for a key scans the type's declared properties; the outcome,
including "no such property", is remembered for the life of the process.
Correctness depends on a class's member set not changing after it is loaded.

Examples
--------
>>> from dataclasses import dataclass
>>> from beanforge.accessors import read_property
>>> @dataclass
... class Point:
...     x: int
>>> read_property(Point(3), "x")
3
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING

from beanforge.caching import SingleFlightCache
from beanforge.introspection import default_introspector
from beanforge_common.errors import InvalidPropertyError

if TYPE_CHECKING:
    from beanforge.introspection import TypeIntrospector

__all__ = [
    "AccessorCache",
    "PropertyAccessor",
    "default_accessor_cache",
    "get_accessor",
    "read_property",
]


@dataclass(frozen=True, slots=True)
class PropertyAccessor:
    """Reads one named property off instances of ``owner``."""

    owner: type
    name: str

    def get(self, instance: object) -> object:
        """Return the property value of ``instance``."""
        return getattr(instance, self.name)


@dataclass(frozen=True, slots=True)
class _Lookup:
    """Completed lookup; ``accessor`` is None when the property is confirmed absent."""

    accessor: PropertyAccessor | None


class AccessorCache:
    """Shared cache of property accessors.

    A key with no entry has never been queried. A key whose entry holds no
    accessor was queried and the property does not exist. Both answer in
    constant time on repeat without touching the introspector.

    Parameters
    ----------
    introspector : TypeIntrospector | None, optional
        Source of member property lists. Defaults to the process-wide
        :class:`~beanforge.introspection.PythonIntrospector`.
    """

    def __init__(self, introspector: TypeIntrospector | None = None) -> None:
        self._introspector = introspector if introspector is not None else default_introspector()
        self._entries: SingleFlightCache[tuple[type, str], _Lookup]
        self._entries = SingleFlightCache(name="accessors")

    def get_accessor(self, cls: type, name: str) -> PropertyAccessor | None:
        """Return the accessor for ``name`` on ``cls``, or None when absent."""
        return self._entries.get_or_compute((cls, name), lambda: self._resolve(cls, name)).accessor

    def _resolve(self, cls: type, name: str) -> _Lookup:
        if name in self._introspector.member_properties(cls):
            return _Lookup(PropertyAccessor(cls, name))
        return _Lookup(None)

    def read_property(self, instance: object, name: str) -> object:
        """Read ``name`` off ``instance``.

        Raises
        ------
        InvalidPropertyError
            If the instance's type declares no such property, or the
            instance never assigned an attribute its ``__init__`` may set.
        """
        cls = type(instance)
        accessor = self.get_accessor(cls, name)
        if accessor is None:
            raise InvalidPropertyError(cls.__qualname__, name)
        try:
            return accessor.get(instance)
        except AttributeError as exc:
            raise InvalidPropertyError(cls.__qualname__, name, cause=exc) from exc

    def __contains__(self, key: object) -> bool:
        return key in self._entries


_default_cache: AccessorCache | None = None
_default_cache_lock = Lock()


def default_accessor_cache() -> AccessorCache:
    """Return the process-wide :class:`AccessorCache`, creating it on first use."""
    global _default_cache  # noqa: PLW0603
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = AccessorCache()
        return _default_cache


def get_accessor(cls: type, name: str) -> PropertyAccessor | None:
    """Look up ``name`` on ``cls`` in the process-wide cache."""
    return default_accessor_cache().get_accessor(cls, name)


def read_property(instance: object, name: str) -> object:
    """Read ``name`` off ``instance`` through the process-wide cache.

    Raises
    ------
    InvalidPropertyError
        If the instance's type declares no such property.
    """
    return default_accessor_cache().read_property(instance, name)
