"""Reflective bean construction and namespace scanning.

beanforge discovers the classes defined under a dotted package prefix,
narrows them by base class or protocol, reads their properties by name
through a memoized accessor cache, and constructs them from flat
``str -> str`` parameter maps such as form posts, query strings or CLI pairs.

Examples
--------
>>> from dataclasses import dataclass
>>> import beanforge
>>> @dataclass
... class Endpoint:
...     host: str
...     port: int = 80
>>> beanforge.build_bean(Endpoint, {"host": "example.org", "port": "8080"})
Endpoint(host='example.org', port=8080)
"""

from __future__ import annotations

from beanforge.accessors import AccessorCache, PropertyAccessor, get_accessor, read_property
from beanforge.beans import bound_receiver, build_bean, build_bean_by_name, resolve_and_call
from beanforge.context import SearchContext, default_search_context
from beanforge.filters import filter_assignable, find_implementations
from beanforge.introspection import (
    ParameterDescriptor,
    ParameterRole,
    PythonIntrospector,
    TypeIntrospector,
    singleton,
)
from beanforge.scanner import find_types, is_synthetic_name, scan_for_types
from beanforge.serialization import Deserializer, deserialize

__all__ = [
    "AccessorCache",
    "Deserializer",
    "ParameterDescriptor",
    "ParameterRole",
    "PropertyAccessor",
    "PythonIntrospector",
    "SearchContext",
    "TypeIntrospector",
    "bound_receiver",
    "build_bean",
    "build_bean_by_name",
    "default_search_context",
    "deserialize",
    "filter_assignable",
    "find_implementations",
    "find_types",
    "get_accessor",
    "is_synthetic_name",
    "read_property",
    "resolve_and_call",
    "scan_for_types",
    "singleton",
]
