"""Shared infrastructure for beanforge.

Logging, the error hierarchy with Problem Details mapping, and runtime
settings live here so the scanning and building modules import one cohesive
namespace.
"""

from __future__ import annotations

from beanforge_common import errors, logging, problem_details, settings, types

__all__ = [
    "errors",
    "logging",
    "problem_details",
    "settings",
    "types",
]
