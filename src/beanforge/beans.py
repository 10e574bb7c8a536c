"""Reflective bean builder: bind a flat string map to a constructor and call it.

Flat maps (form posts, query strings, CLI pairs) cannot express "null" or
"not given" natively, so three signals are distinguished per parameter:

========================  =============================================
parameter map entry       binding
========================  =============================================
``"null"``                ``None`` when the parameter is nullable
``""`` (non-str type)     ``None`` when nullable, else the default
any other text            the deserialized value; failure is an error
absent                    the default, else ``None`` when nullable
========================  =============================================

Anything left without a binding raises
:class:`~beanforge_common.errors.MissingArgumentError`, which embedding
applications should report as a client error.

Examples
--------
>>> from dataclasses import dataclass
>>> from beanforge.beans import build_bean
>>> @dataclass
... class Person:
...     tag: str
...     name: str | None
...     age: int = 9
>>> build_bean(Person, {"tag": "x", "name": "null", "age": ""})
Person(tag='x', name=None, age=9)
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from beanforge.context import default_search_context
from beanforge.introspection import ParameterRole, default_introspector
from beanforge.serialization import deserialize
from beanforge_common.errors import BeanDefinitionError, MissingArgumentError
from beanforge_common.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from beanforge.context import SearchContext
    from beanforge.introspection import ParameterDescriptor, TypeIntrospector
    from beanforge.serialization import Deserializer

__all__ = [
    "bound_receiver",
    "build_bean",
    "build_bean_by_name",
    "resolve_and_call",
]

logger = get_logger(__name__)

_NULL_TEXT = "null"


@dataclass(frozen=True, slots=True)
class _Binding:
    """Explicit value for one parameter; ``None`` is a legitimate value."""

    value: object


def bound_receiver(target: Callable[..., object]) -> object | None:
    """Return the receiver ``target`` is bound to, if any.

    That is the ``__self__`` of a bound method, or the singleton instance
    of the class owning a plain member function.
    """
    return default_introspector().bound_receiver(target)


def _resolve_parameter(  # noqa: PLR0913
    param: ParameterDescriptor,
    target: Callable[..., object],
    params: Mapping[str, str],
    loader_context: SearchContext | None,
    deserializer: Deserializer,
    introspector: TypeIntrospector,
) -> _Binding | None:
    """Return the binding for ``param``, or None to let the callable use its default."""
    if param.role is ParameterRole.RECEIVER:
        receiver = introspector.bound_receiver(target)
        if receiver is None:
            msg = (
                f"Cannot resolve receiver '{param.name}' of {target!r}: "
                "bind the callable or decorate its class with @singleton"
            )
            raise BeanDefinitionError(msg)
        return _Binding(receiver)

    raw = params.get(param.name)
    if raw == _NULL_TEXT and param.nullable:
        return _Binding(None)
    if raw == "" and param.raw_type is not str:
        if param.nullable:
            return _Binding(None)
        if param.optional:
            return None
    if raw is not None:
        value = deserializer(raw, param.declared_type, loader_context)
        if value is None:
            msg = f"Bad argument {param.name}='{raw}'"
            raise MissingArgumentError(msg, parameter=param.name, raw_value=raw)
        return _Binding(value)
    if param.optional:
        return None
    if param.nullable:
        return _Binding(None)
    msg = f"Required argument '{param.name}' is missing, available params: {dict(params)}"
    raise MissingArgumentError(msg, parameter=param.name)


def resolve_and_call[R](
    target: Callable[..., R],
    params: Mapping[str, str],
    loader_context: SearchContext | None = None,
    *,
    deserializer: Deserializer | None = None,
    introspector: TypeIntrospector | None = None,
) -> R:
    """Bind ``params`` to the parameters of ``target`` and call it.

    Parameters
    ----------
    target : Callable[..., R]
        Class, function, or bound method.
    params : Mapping[str, str]
        Flat parameter map keyed by parameter name. Unknown keys are ignored.
    loader_context : SearchContext | None, optional
        Passed through to the deserializer for class-name resolution.
    deserializer : Deserializer | None, optional
        Text-to-value conversion. Defaults to
        :func:`beanforge.serialization.deserialize`.
    introspector : TypeIntrospector | None, optional
        Source of parameter metadata and receivers. Defaults to the
        process-wide :class:`~beanforge.introspection.PythonIntrospector`.

    Returns
    -------
    R
        Whatever ``target`` returns.

    Raises
    ------
    MissingArgumentError
        If a parameter has no usable binding.
    BeanDefinitionError
        If the receiver slot cannot be resolved or the bindings cannot be
        expressed as a call.
    """
    introspector = introspector if introspector is not None else default_introspector()
    deserializer = deserializer if deserializer is not None else deserialize

    args: list[object] = []
    kwargs: dict[str, object] = {}
    defaulted_positional: str | None = None
    for param in introspector.parameters(target):
        binding = _resolve_parameter(
            param, target, params, loader_context, deserializer, introspector
        )
        if not param.positional_only:
            if binding is not None:
                kwargs[param.name] = binding.value
            continue
        if binding is None:
            defaulted_positional = defaulted_positional or param.name
            continue
        if defaulted_positional is not None:
            msg = (
                f"Positional-only parameter '{param.name}' of {target!r} is bound "
                f"but earlier parameter '{defaulted_positional}' was left to its default"
            )
            raise BeanDefinitionError(msg)
        args.append(binding.value)

    call_target = target.__func__ if inspect.ismethod(target) else target
    return cast("R", call_target(*args, **kwargs))


def build_bean[T](
    cls: type[T],
    params: Mapping[str, str],
    loader_context: SearchContext | None = None,
    *,
    deserializer: Deserializer | None = None,
    introspector: TypeIntrospector | None = None,
) -> T:
    """Construct ``cls`` from a flat parameter map.

    Singleton-style classes return their sole instance and ignore
    ``params``. Other classes are constructed through their designated
    constructor with :func:`resolve_and_call`.

    Raises
    ------
    MissingArgumentError
        If a constructor parameter has no usable binding.
    BeanDefinitionError
        If ``cls`` has no designated constructor (abstract classes,
        protocols, unreadable signatures).
    """
    introspector = introspector if introspector is not None else default_introspector()
    if introspector.is_singleton(cls):
        return cast("T", introspector.singleton_instance(cls))

    constructor = introspector.designated_constructor(cls)
    if constructor is None:
        msg = f"{cls.__qualname__} has no designated constructor and is not a singleton"
        raise BeanDefinitionError(msg, context={"type": f"{cls.__module__}.{cls.__qualname__}"})

    logger.debug(
        "Building bean",
        extra={"operation": "build", "type": cls.__qualname__, "params": sorted(params)},
    )
    return cast(
        "T",
        resolve_and_call(
            constructor,
            params,
            loader_context,
            deserializer=deserializer,
            introspector=introspector,
        ),
    )


def build_bean_by_name(
    qualified_name: str,
    params: Mapping[str, str],
    context: SearchContext | None = None,
    *,
    deserializer: Deserializer | None = None,
) -> object:
    """Load ``qualified_name`` through ``context`` and construct it.

    Unlike scanning, a load failure here is fatal: the caller asked for this
    specific class.

    Raises
    ------
    TypeLoadError
        If the class cannot be loaded.
    MissingArgumentError
        If a constructor parameter has no usable binding.
    """
    context = context if context is not None else default_search_context()
    cls = context.load_type(qualified_name)
    return build_bean(cls, params, context, deserializer=deserializer)
