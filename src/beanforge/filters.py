"""Capability filter over scan results."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from beanforge.introspection import default_introspector
from beanforge.scanner import find_types

if TYPE_CHECKING:
    from collections.abc import Iterable

    from beanforge.context import SearchContext
    from beanforge.introspection import TypeIntrospector

__all__ = ["filter_assignable", "find_implementations"]


def filter_assignable[T](
    types: Iterable[type],
    target: type[T],
    *,
    introspector: TypeIntrospector | None = None,
) -> list[type[T]]:
    """Keep the classes assignable to ``target``, preserving input order.

    ``target`` may be a base class or a ``runtime_checkable`` protocol.

    Examples
    --------
    >>> class Plugin: ...
    >>> class Csv(Plugin): ...
    >>> filter_assignable([Csv, int], Plugin) == [Csv]
    True
    """
    introspector = introspector if introspector is not None else default_introspector()
    return [cast("type[T]", cls) for cls in types if introspector.is_assignable(cls, target)]


def find_implementations[T](
    prefix: str,
    target: type[T],
    context: SearchContext | None = None,
) -> list[type[T]]:
    """Scan ``prefix`` (cached) and keep the classes assignable to ``target``."""
    return filter_assignable(find_types(prefix, context), target)
