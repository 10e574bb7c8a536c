"""Type system introspection consumed by the accessor cache and bean builder.

Everything beanforge needs to know about a class or callable goes through the
:class:`TypeIntrospector` protocol. :class:`PythonIntrospector` implements it
on top of :mod:`inspect` and :mod:`typing`; tests substitute counting fakes.

Parameter metadata is read once per callable and cached. Each parameter is
tagged with a :class:`ParameterRole` so the builder never re-derives whether
a slot is the bound receiver.
"""

from __future__ import annotations

import dataclasses
import dis
import enum
import functools
import inspect
import sys
import types
import typing
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol, Union, get_args, get_origin

from beanforge.caching import SingleFlightCache
from beanforge_common.errors import BeanDefinitionError, UnsupportedTypeError

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "ParameterDescriptor",
    "ParameterRole",
    "PythonIntrospector",
    "TypeIntrospector",
    "default_introspector",
    "is_enum_class",
    "singleton",
]

_SINGLETON_ATTR = "__beanforge_singleton__"
_NONE_TYPE = type(None)
_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class ParameterRole(enum.Enum):
    """Role of a parameter in a callable's binding protocol."""

    RECEIVER = "receiver"
    ORDINARY = "ordinary"


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """Binding metadata for one declared parameter.

    Attributes
    ----------
    name : str
        Parameter name, used as the key into the parameter map.
    declared_type : object
        Annotation with ``None`` removed from unions. Passed to the deserializer.
    raw_type : type
        Class used for the textual-type test. Generic aliases reduce to their
        origin; unions and literals reduce to ``object``.
    nullable : bool
        Whether ``None`` is an accepted value.
    optional : bool
        Whether the callable supplies a default.
    role : ParameterRole
        Receiver slot or ordinary parameter.
    positional_only : bool
        Whether the parameter must be passed by position.
    """

    name: str
    declared_type: object
    raw_type: type
    nullable: bool
    optional: bool
    role: ParameterRole = ParameterRole.ORDINARY
    positional_only: bool = False


class TypeIntrospector(Protocol):
    """Introspection capability over loaded classes and callables."""

    def parameters(self, target: Callable[..., object]) -> tuple[ParameterDescriptor, ...]:
        """Return binding metadata for ``target`` in declaration order."""
        ...

    def member_properties(self, cls: type) -> tuple[str, ...]:
        """Return the readable property names declared on ``cls``."""
        ...

    def is_assignable(self, cls: type, target: type) -> bool:
        """Return whether ``cls`` is-a ``target``."""
        ...

    def is_singleton(self, cls: type) -> bool:
        """Return whether ``cls`` is a singleton-style type."""
        ...

    def singleton_instance(self, cls: type) -> object:
        """Return the sole instance of a singleton-style type."""
        ...

    def bound_receiver(self, target: Callable[..., object]) -> object | None:
        """Return the receiver ``target`` is bound to, if any."""
        ...

    def designated_constructor(self, cls: type) -> Callable[..., object] | None:
        """Return the callable that constructs ``cls``, if there is one."""
        ...


def singleton[T](cls: type[T]) -> type[T]:
    """Mark ``cls`` as a singleton-style type and create its sole instance.

    The instance is created immediately with no arguments. Building the class
    through :func:`beanforge.build_bean` returns that instance and ignores the
    parameter map. Subclasses are not singletons unless decorated themselves.

    Examples
    --------
    >>> @singleton
    ... class Clock:
    ...     pass
    >>> default_introspector().singleton_instance(Clock) is default_introspector().singleton_instance(Clock)
    True
    """
    setattr(cls, _SINGLETON_ATTR, cls())
    return cls


def is_enum_class(cls: object) -> bool:
    """Return whether ``cls`` is an :class:`enum.Enum` subclass."""
    return isinstance(cls, type) and issubclass(cls, enum.Enum)


def _split_nullable(annotation: object) -> tuple[object, bool]:
    if get_origin(annotation) not in (Union, types.UnionType):
        return annotation, False
    args = get_args(annotation)
    non_none = tuple(arg for arg in args if arg is not _NONE_TYPE)
    if len(non_none) == len(args):
        return annotation, False
    if len(non_none) == 1:
        return non_none[0], True
    return Union[non_none], True  # noqa: UP007


def _raw_type(declared: object) -> type:
    if isinstance(declared, type):
        return declared
    origin = get_origin(declared)
    if origin is typing.Annotated:
        return _raw_type(get_args(declared)[0])
    if origin in (Union, types.UnionType, Literal):
        return object
    if isinstance(origin, type):
        return origin
    supertype = getattr(declared, "__supertype__", None)
    if supertype is not None:
        return _raw_type(supertype)
    raise UnsupportedTypeError(declared)


def _owner_class(func: object) -> type | None:
    qualname = getattr(func, "__qualname__", "")
    module = sys.modules.get(getattr(func, "__module__", None) or "")
    parts = qualname.split(".")[:-1]
    if module is None or not parts or "<locals>" in parts:
        return None
    owner: object = module
    for part in parts:
        owner = getattr(owner, part, None)
        if owner is None:
            return None
    return owner if inspect.isclass(owner) else None


def _assigned_in_init(klass: type) -> list[str]:
    init = vars(klass).get("__init__")
    if not inspect.isfunction(init):
        return []
    return [
        instruction.argval
        for instruction in dis.get_instructions(init)
        if instruction.opname == "STORE_ATTR" and not instruction.argval.startswith("_")
    ]


def _type_hints(target: object) -> dict[str, Any]:
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError, AttributeError):
        return {}


class PythonIntrospector:
    """:class:`TypeIntrospector` backed by :mod:`inspect` and :mod:`typing`.

    Annotations are resolved with :func:`typing.get_type_hints` against the
    callable first and, for classes, against the class body (dataclass,
    pydantic and attrs style fields). Unannotated and ``Any`` parameters are
    textual. Variadic parameters are never part of the binding set.
    """

    def __init__(self) -> None:
        self._parameters: SingleFlightCache[tuple[object, bool], tuple[ParameterDescriptor, ...]]
        self._parameters = SingleFlightCache(name="parameters")

    def parameters(self, target: Callable[..., object]) -> tuple[ParameterDescriptor, ...]:
        """Return binding metadata for ``target``, read once and cached.

        Parameters
        ----------
        target : Callable[..., object]
            Class, function, or bound method.

        Returns
        -------
        tuple[ParameterDescriptor, ...]
            Descriptors in declaration order. Bound methods and plain
            functions defined in a class body lead with a receiver slot.

        Raises
        ------
        BeanDefinitionError
            If the signature cannot be read.
        UnsupportedTypeError
            If an annotation cannot be mapped to a target type.
        """
        if inspect.ismethod(target):
            return self._parameters.get_or_compute(
                (target.__func__, True),
                lambda: self._read_parameters(target.__func__, receiver=object),
            )
        return self._parameters.get_or_compute(
            (target, False),
            lambda: self._read_parameters(target, receiver=self._receiver_type(target)),
        )

    def _receiver_type(self, target: object) -> type | None:
        if not inspect.isfunction(target):
            return None
        owner = _owner_class(target)
        if owner is None:
            return None
        if isinstance(inspect.getattr_static(owner, target.__name__, None), staticmethod):
            return None
        return owner

    def _read_parameters(
        self, target: Callable[..., object], *, receiver: type | None
    ) -> tuple[ParameterDescriptor, ...]:
        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError) as exc:
            msg = f"Cannot read the signature of {target!r}"
            raise BeanDefinitionError(msg, cause=exc) from exc

        hints = _type_hints(target.__init__ if inspect.isclass(target) else target)
        if inspect.isclass(target):
            hints = {**_type_hints(target), **hints}

        descriptors: list[ParameterDescriptor] = []
        for index, param in enumerate(signature.parameters.values()):
            if param.kind in _VARIADIC:
                continue
            positional_only = param.kind is inspect.Parameter.POSITIONAL_ONLY
            if index == 0 and receiver is not None and param.kind in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            ):
                descriptors.append(
                    ParameterDescriptor(
                        name=param.name,
                        declared_type=receiver,
                        raw_type=receiver,
                        nullable=False,
                        optional=False,
                        role=ParameterRole.RECEIVER,
                        positional_only=True,
                    )
                )
                continue
            descriptors.append(self._describe(param, hints.get(param.name), positional_only))
        return tuple(descriptors)

    @staticmethod
    def _describe(
        param: inspect.Parameter, hint: object, positional_only: bool
    ) -> ParameterDescriptor:
        annotation = hint if hint is not None else param.annotation
        if annotation is inspect.Parameter.empty or annotation is Any:
            annotation = str
        if isinstance(annotation, str):
            # Forward reference get_type_hints could not resolve
            raise UnsupportedTypeError(annotation)
        declared, nullable = _split_nullable(annotation)
        return ParameterDescriptor(
            name=param.name,
            declared_type=declared,
            raw_type=_raw_type(declared),
            nullable=nullable,
            optional=param.default is not inspect.Parameter.empty,
            positional_only=positional_only,
        )

    def member_properties(self, cls: type) -> tuple[str, ...]:
        """Return readable property names declared across the MRO of ``cls``.

        Dataclass fields, class annotations, ``property`` and
        ``functools.cached_property`` members, ``__slots__`` entries and
        public attributes assigned in a class's own ``__init__``
        (``self.x = x``) are included. Dunder names are not.
        """
        names: dict[str, None] = {}
        if dataclasses.is_dataclass(cls):
            names.update((field.name, None) for field in dataclasses.fields(cls))
        for klass in cls.__mro__:
            if klass is object:
                continue
            names.update((name, None) for name in inspect.get_annotations(klass))
            names.update((name, None) for name in _assigned_in_init(klass))
            for name, value in vars(klass).items():
                if isinstance(value, (property, functools.cached_property)):
                    names[name] = None
            slots = vars(klass).get("__slots__", ())
            names.update((slot, None) for slot in ((slots,) if isinstance(slots, str) else slots))
        return tuple(name for name in names if not name.startswith("__"))

    def is_assignable(self, cls: type, target: type) -> bool:
        """Return whether ``cls`` is a class assignable to ``target``."""
        return isinstance(cls, type) and issubclass(cls, target)

    def is_singleton(self, cls: type) -> bool:
        """Return whether ``cls`` was decorated with :func:`singleton`."""
        return isinstance(cls, type) and _SINGLETON_ATTR in vars(cls)

    def singleton_instance(self, cls: type) -> object:
        """Return the sole instance of a singleton-style type.

        Raises
        ------
        BeanDefinitionError
            If ``cls`` is not singleton-style.
        """
        if not self.is_singleton(cls):
            msg = f"{cls!r} is not a singleton-style type"
            raise BeanDefinitionError(msg)
        return vars(cls)[_SINGLETON_ATTR]

    def bound_receiver(self, target: Callable[..., object]) -> object | None:
        """Return the receiver ``target`` is bound to.

        A bound method reports its ``__self__``. A plain function defined in
        the body of a singleton-style class reports that class's instance.
        Anything else has no receiver.
        """
        if inspect.ismethod(target):
            return target.__self__
        owner = self._receiver_type(target)
        if owner is not None and self.is_singleton(owner):
            return self.singleton_instance(owner)
        return None

    def designated_constructor(self, cls: type) -> Callable[..., object] | None:
        """Return ``cls`` when it is concrete and its signature is readable."""
        if not inspect.isclass(cls) or inspect.isabstract(cls):
            return None
        if getattr(cls, "_is_protocol", False):
            return None
        try:
            inspect.signature(cls)
        except (TypeError, ValueError):
            return None
        return cls


@functools.cache
def default_introspector() -> PythonIntrospector:
    """Return the process-wide :class:`PythonIntrospector`."""
    return PythonIntrospector()
