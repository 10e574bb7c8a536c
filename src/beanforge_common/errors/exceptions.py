"""Typed exception hierarchy with Problem Details support.

All beanforge exceptions inherit from BeanforgeError, which provides
structured fields and RFC 9457 Problem Details mapping.

Errors fall into two families. Caller-data errors (``MissingArgumentError``)
describe a bad parameter map and map to HTTP 400. Everything else describes
an inconsistent environment or a programming mistake and maps to HTTP 500.

Examples
--------
>>> from beanforge_common.errors import ErrorCode, MissingArgumentError
>>> try:
...     raise MissingArgumentError("Bad argument age='x'", parameter="age", raw_value="x")
... except MissingArgumentError as e:
...     assert e.code == ErrorCode.MISSING_ARGUMENT
...     assert e.http_status == 400
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, cast

from beanforge_common.errors.codes import ErrorCode, get_type_uri
from beanforge_common.problem_details import build_problem_details

if TYPE_CHECKING:
    from beanforge_common.problem_details import JsonValue, ProblemDetails

__all__ = [
    "BeanDefinitionError",
    "BeanforgeError",
    "InvalidPropertyError",
    "MissingArgumentError",
    "ScanRootError",
    "SettingsError",
    "TypeLoadError",
    "UnsupportedTypeError",
]


class BeanforgeError(Exception):
    """Base exception for all beanforge errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode, optional
        Stable error code. Defaults to ``ErrorCode.RUNTIME_ERROR``.
    http_status : int, optional
        HTTP status for Problem Details responses. Defaults to 500.
    log_level : int, optional
        Level embedding applications should log this error at. Defaults to
        ``logging.ERROR``.
    cause : Exception | None, optional
        Underlying exception, exposed as ``__cause__``. Defaults to None.
    context : Mapping[str, object] | None, optional
        Additional structured details. Defaults to None.

    Attributes
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode
        Error code enum value.
    http_status : int
        HTTP status code.
    log_level : int
        Logging level.
    context : dict[str, object]
        Additional structured details.
    """

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.RUNTIME_ERROR,
        http_status: int = 500,
        log_level: int = logging.ERROR,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status
        self.log_level = log_level
        self.context = dict(context) if context else {}
        if cause is not None:
            self.__cause__ = cause

    def to_problem_details(
        self,
        instance: str | None = None,
        title: str | None = None,
    ) -> ProblemDetails:
        """Convert to RFC 9457 Problem Details JSON.

        Parameters
        ----------
        instance : str | None, optional
            URI identifying the specific occurrence. Defaults to None.
        title : str | None, optional
            Short summary. Defaults to the exception class name.

        Returns
        -------
        ProblemDetails
            Problem Details object with type, title, status, detail, code,
            instance and, when context is present, extensions.

        Examples
        --------
        >>> error = BeanforgeError("Not found", code=ErrorCode.TYPE_LOAD_FAILED)
        >>> details = error.to_problem_details(instance="urn:beanforge:load:app.Widget")
        >>> assert details["type"] == "https://beanforge.dev/problems/type-load-failed"
        """
        return build_problem_details(
            problem_type=get_type_uri(self.code),
            title=title or self.__class__.__name__,
            status=self.http_status,
            detail=self.message,
            instance=instance or "urn:beanforge:error",
            code=self.code.value,
            extensions=cast(
                "Mapping[str, JsonValue] | None", self.context if self.context else None
            ),
        )

    def __str__(self) -> str:
        """Return formatted error string.

        Returns
        -------
        str
            Formatted error string (e.g., "TypeLoadError[type-load-failed]: ...").
        """
        base = f"{self.__class__.__name__}[{self.code.value}]: {self.message}"
        if self.__cause__:
            base += f" (caused by: {type(self.__cause__).__name__})"
        return base


class MissingArgumentError(BeanforgeError):
    """A required parameter has no usable binding.

    Raised when a parameter is absent from the parameter map and has neither
    a default nor a nullable type, or when it is present but the deserializer
    could not turn its text into a value.

    Parameters
    ----------
    message : str
        Human-readable error message.
    parameter : str
        Name of the offending parameter.
    raw_value : str | None, optional
        Raw text supplied for the parameter, when there was one.
    """

    def __init__(self, message: str, *, parameter: str, raw_value: str | None = None) -> None:
        context: dict[str, object] = {"parameter": parameter}
        if raw_value is not None:
            context["raw_value"] = raw_value
        super().__init__(
            message,
            code=ErrorCode.MISSING_ARGUMENT,
            http_status=400,
            log_level=logging.WARNING,
            context=context,
        )
        self.parameter = parameter
        self.raw_value = raw_value


class InvalidPropertyError(BeanforgeError):
    """Requested property does not exist on the queried type."""

    def __init__(
        self, type_name: str, property_name: str, *, cause: Exception | None = None
    ) -> None:
        super().__init__(
            f"Invalid property {property_name} on type {type_name}",
            code=ErrorCode.INVALID_PROPERTY,
            cause=cause,
            context={"type": type_name, "property": property_name},
        )
        self.type_name = type_name
        self.property_name = property_name


class TypeLoadError(BeanforgeError):
    """A module or class name could not be loaded through a search context.

    During scans this error is logged and the entry skipped. Anywhere else it
    propagates.
    """

    def __init__(self, name: str, *, cause: Exception | None = None) -> None:
        super().__init__(
            f"Unable to load {name}",
            code=ErrorCode.TYPE_LOAD_FAILED,
            cause=cause,
            context={"name": name},
        )
        self.name = name


class ScanRootError(BeanforgeError):
    """A search root could not be opened."""

    def __init__(self, root: str, *, cause: Exception | None = None) -> None:
        super().__init__(
            f"Unable to open search root {root}",
            code=ErrorCode.SCAN_ROOT_UNAVAILABLE,
            cause=cause,
            context={"root": root},
        )
        self.root = root


class BeanDefinitionError(BeanforgeError):
    """A type or callable does not match a supported construction shape.

    These are programmer errors: a receiver that cannot be resolved, an
    abstract target class, a parameter layout that cannot be expressed as a
    call. They are never caused by the contents of a parameter map.
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.BEAN_DEFINITION_ERROR,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, code=code, cause=cause, context=context)


class UnsupportedTypeError(BeanDefinitionError):
    """A parameter annotation cannot be mapped to a deserialization target."""

    def __init__(self, annotation: object, *, cause: Exception | None = None) -> None:
        super().__init__(
            f"Unsupported type {annotation!r}",
            code=ErrorCode.UNSUPPORTED_TYPE,
            cause=cause,
            context={"annotation": repr(annotation)},
        )
        self.annotation = annotation


class SettingsError(BeanforgeError):
    """Error raised when runtime settings validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message describing the settings validation failure.
    errors : list[dict[str, object]] | None, optional
        Validation error dictionaries with field/issue details. Defaults to None.
    cause : Exception | None, optional
        Underlying exception that caused the validation failure. Defaults to None.
    context : Mapping[str, object] | None, optional
        Additional context dictionary for error details. Defaults to None.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, object]] | None = None,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        merged: dict[str, object] = dict(context) if context else {}
        if errors:
            merged["errors"] = errors
        super().__init__(
            message,
            code=ErrorCode.CONFIGURATION_ERROR,
            cause=cause,
            context=merged,
        )
