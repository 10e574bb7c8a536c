"""Default text-to-value deserializer used by the bean builder.

The builder only depends on the :class:`Deserializer` call shape; anything
with that shape can be passed instead. The default covers what flat string
maps usually carry:

* ``str`` targets receive the text unchanged.
* ``type`` and ``type[Base]`` targets resolve a dotted class name through the
  loader context, and must be assignable to ``Base``.
* Enum targets accept a member name, then fall back to member values.
* Everything else goes through a cached :class:`pydantic.TypeAdapter` in lax
  mode (``"9"`` to ``9``, ``"true"`` to ``True``, ISO dates, UUIDs, paths),
  then through the same adapter as JSON (lists, dicts, models).

Text that does not convert returns None rather than raising.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, Protocol, get_args, get_origin

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from beanforge.context import default_search_context
from beanforge.introspection import is_enum_class
from beanforge_common.errors import TypeLoadError, UnsupportedTypeError

if TYPE_CHECKING:
    from beanforge.context import SearchContext

__all__ = ["Deserializer", "deserialize", "type_adapter"]


class Deserializer(Protocol):
    """Converts parameter text into a value of the declared type."""

    def __call__(
        self, text: str, target: object, loader_context: SearchContext | None
    ) -> object | None:
        """Return the converted value, or None when ``text`` cannot be converted."""
        ...


def _build_adapter(target: object) -> TypeAdapter[Any]:
    try:
        return TypeAdapter(target)
    except PydanticSchemaGenerationError as exc:
        raise UnsupportedTypeError(target, cause=exc) from exc


_cached_adapter = functools.lru_cache(maxsize=512)(_build_adapter)


def type_adapter(target: object) -> TypeAdapter[Any]:
    """Return a (cached when hashable) pydantic adapter for ``target``.

    Raises
    ------
    UnsupportedTypeError
        If pydantic cannot build a validation schema for ``target``.
    """
    try:
        return _cached_adapter(target)
    except TypeError:
        # Unhashable annotation metadata
        return _build_adapter(target)


def _deserialize_class(
    text: str, target: object, loader_context: SearchContext | None
) -> type | None:
    context = loader_context if loader_context is not None else default_search_context()
    try:
        cls = context.load_type(text)
    except TypeLoadError:
        return None
    bounds = get_args(target)
    if bounds and isinstance(bounds[0], type) and not issubclass(cls, bounds[0]):
        return None
    return cls


def deserialize(
    text: str, target: object, loader_context: SearchContext | None = None
) -> object | None:
    """Convert ``text`` to a value of ``target``.

    Parameters
    ----------
    text : str
        Raw parameter text.
    target : object
        Declared type of the parameter (``None`` already removed).
    loader_context : SearchContext | None, optional
        Context used to resolve class names. Defaults to the process-wide
        ``sys.path`` context.

    Returns
    -------
    object | None
        Converted value, or None when ``text`` is not a valid ``target``.

    Raises
    ------
    UnsupportedTypeError
        If ``target`` is not something pydantic can validate.

    Examples
    --------
    >>> deserialize("9", int)
    9
    >>> deserialize("nine", int) is None
    True
    """
    if target is str:
        return text
    if (get_origin(target) or target) is type:
        return _deserialize_class(text, target, loader_context)
    if is_enum_class(target):
        member = target.__members__.get(text)  # type: ignore[attr-defined]
        if member is not None:
            return member

    adapter = type_adapter(target)
    try:
        return adapter.validate_python(text)
    except ValidationError:
        pass
    try:
        return adapter.validate_json(text)
    except ValidationError:
        return None
