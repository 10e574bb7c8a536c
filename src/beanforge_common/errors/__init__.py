"""Exception hierarchy and Problem Details support.

Examples
--------
>>> from beanforge_common.errors import BeanforgeError, ErrorCode
>>> try:
...     raise BeanforgeError("Operation failed", code=ErrorCode.RUNTIME_ERROR)
... except BeanforgeError as e:
...     details = e.to_problem_details(instance="urn:beanforge:scan")
...     assert details["type"] == "https://beanforge.dev/problems/runtime-error"
"""

from __future__ import annotations

from beanforge_common.errors.codes import BASE_TYPE_URI, ErrorCode, get_type_uri
from beanforge_common.errors.exceptions import (
    BeanDefinitionError,
    BeanforgeError,
    InvalidPropertyError,
    MissingArgumentError,
    ScanRootError,
    SettingsError,
    TypeLoadError,
    UnsupportedTypeError,
)

__all__ = [
    "BASE_TYPE_URI",
    "BeanDefinitionError",
    "BeanforgeError",
    "ErrorCode",
    "InvalidPropertyError",
    "MissingArgumentError",
    "ScanRootError",
    "SettingsError",
    "TypeLoadError",
    "UnsupportedTypeError",
    "get_type_uri",
]
