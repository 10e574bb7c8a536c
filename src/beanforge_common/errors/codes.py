"""Error code registry and type URIs for Problem Details.

Codes and URIs are stable across releases; embedding applications key their
HTTP mapping and alerting off these values.

Examples
--------
>>> from beanforge_common.errors.codes import ErrorCode, get_type_uri
>>> get_type_uri(ErrorCode.MISSING_ARGUMENT)
'https://beanforge.dev/problems/missing-argument'
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

__all__ = [
    "BASE_TYPE_URI",
    "ErrorCode",
    "get_type_uri",
]


BASE_TYPE_URI: Final[str] = "https://beanforge.dev/problems"


class ErrorCode(StrEnum):
    """Stable error codes for beanforge exceptions.

    Codes are organized by the layer that raises them:
    - caller data: bad or missing values in a parameter map
    - environment: scan roots and module loading
    - structure: callables or annotations the builder cannot handle
    - configuration and runtime

    Attributes
    ----------
    MISSING_ARGUMENT
        A required parameter has no usable binding.
    INVALID_PROPERTY
        A property name does not exist on the queried type.
    TYPE_LOAD_FAILED
        A module or class could not be loaded through a search context.
    SCAN_ROOT_UNAVAILABLE
        A search root could not be opened.
    BEAN_DEFINITION_ERROR
        A type or callable does not match a supported construction shape.
    UNSUPPORTED_TYPE
        A parameter annotation cannot be mapped to a target type.
    CONFIGURATION_ERROR
        Settings failed validation.
    RUNTIME_ERROR
        Any other failure.
    """

    # Caller data
    MISSING_ARGUMENT = "missing-argument"
    INVALID_PROPERTY = "invalid-property"

    # Environment
    TYPE_LOAD_FAILED = "type-load-failed"
    SCAN_ROOT_UNAVAILABLE = "scan-root-unavailable"

    # Structure
    BEAN_DEFINITION_ERROR = "bean-definition-error"
    UNSUPPORTED_TYPE = "unsupported-type"

    # Configuration & Runtime
    CONFIGURATION_ERROR = "configuration-error"
    RUNTIME_ERROR = "runtime-error"

    def __str__(self) -> str:
        """Return the code value as a string.

        Returns
        -------
        str
            The error code value (e.g., "missing-argument").
        """
        return self.value


def get_type_uri(code: ErrorCode) -> str:
    """Get the RFC 9457 type URI for an error code.

    Parameters
    ----------
    code : ErrorCode
        Error code enum value.

    Returns
    -------
    str
        Complete type URI (e.g., "https://beanforge.dev/problems/type-load-failed").
    """
    return f"{BASE_TYPE_URI}/{code.value}"
