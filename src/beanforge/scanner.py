"""Namespace scanner: discover the classes defined under a dotted prefix.

For every root of a :class:`~beanforge.context.SearchContext` the scanner
lists module files under the prefix (walking directories, reading the entry
table of zip archives), derives each module's dotted name, loads it through
the context and collects the classes the module defines.

Modules that raise while importing are logged and skipped so one stale file
cannot abort discovery. ``__main__`` modules are never imported: running one
runs the package as a program. A root that cannot be read at all raises
:class:`~beanforge_common.errors.ScanRootError`.

Examples
--------
>>> from beanforge.scanner import find_types
>>> types = find_types("json")  # doctest: +SKIP
"""

from __future__ import annotations

import inspect
import os
import re
import zipfile
from typing import TYPE_CHECKING, Final

from beanforge.caching import SingleFlightCache
from beanforge.context import RootKind, SearchContext, SearchRoot, default_search_context
from beanforge_common.errors import ScanRootError, TypeLoadError
from beanforge_common.logging import LoggerAdapter, get_logger, measure_duration, with_fields
from beanforge_common.settings import ScannerConfig, get_settings

if TYPE_CHECKING:
    from types import ModuleType

__all__ = [
    "ScanCache",
    "find_types",
    "is_synthetic_name",
    "module_name_from_path",
    "scan_for_types",
]

logger = get_logger(__name__)

_INIT_MODULE: Final[str] = "__init__"
_MAIN_MODULE: Final[str] = "__main__"
_LOCAL_MARKER: Final[str] = "<locals>"

type ScanCache = SingleFlightCache[tuple[SearchContext, str], tuple[type, ...]]

_SCAN_CACHE: ScanCache = SingleFlightCache(name="scan")


def is_synthetic_name(name: str, separator: str = "$") -> bool:
    """Return whether ``name`` follows the generated-name convention.

    A name is synthetic when ``separator`` is immediately followed by a digit
    anywhere in it: ``Outer$1`` and ``Outer$1Inner`` are synthetic,
    ``Outer$Inner`` is not.
    """
    return re.search(f"{re.escape(separator)}[0-9]", name) is not None


def _is_entry_point(module_path: str, suffix: str) -> bool:
    return module_path.removesuffix(suffix).rpartition("/")[2] == _MAIN_MODULE


def _join_module(prefix: str, tail: str) -> str:
    parts = [prefix, *tail.split(".")] if tail else [prefix]
    if parts[-1] == _INIT_MODULE:
        parts.pop()
    return ".".join(parts)


def module_name_from_path(
    path: str, prefix: str, *, suffix: str = ".py", sep: str = os.sep
) -> str:
    """Derive a dotted module name from the path of a module file under ``prefix``.

    The prefix is converted to its segment form (``app.models`` becomes
    ``app``, ``models``) and matched against whole directory segments of
    ``path``; occurrences may overlap, so ``/app/app/`` holds two. When the
    prefix occurs exactly once the name is taken from what follows it;
    otherwise from what follows its last occurrence, so a root directory that
    happens to be named like the package does not shift the package
    boundary. ``__init__`` files map to their package.

    Parameters
    ----------
    path : str
        Absolute path of the module file.
    prefix : str
        Dotted namespace prefix the file was found under.
    suffix : str, optional
        Module file suffix to strip. Defaults to ``".py"``.
    sep : str, optional
        Path separator used in ``path``. Defaults to :data:`os.sep`.

    Returns
    -------
    str
        Dotted module name starting with ``prefix``.

    Raises
    ------
    ValueError
        If the prefix path does not occur in ``path``.

    Examples
    --------
    >>> module_name_from_path("/srv/app/src/app/models/user.py", "app", sep="/")
    'app.models.user'
    """
    segments = path.split(sep)
    needle = prefix.split(".")
    width = len(needle)
    # Only directory segments count; the file name is the last segment
    starts = [
        index
        for index in range(len(segments) - width)
        if segments[index : index + width] == needle
    ]
    if not starts:
        msg = f"{path!r} is not under the path of prefix {prefix!r}"
        raise ValueError(msg)
    start = starts[0] if len(starts) == 1 else starts[-1]
    tail = ".".join(segments[start + width :])
    return _join_module(prefix, tail.removesuffix(suffix))


def _scan_directory(root: SearchRoot, prefix: str, config: ScannerConfig) -> list[str]:
    base = root.location.joinpath(*prefix.split("."))
    single = base.with_name(base.name + config.module_suffix)
    if not base.is_dir():
        return [prefix] if single.is_file() else []

    try:
        files = sorted(path for path in base.rglob(f"*{config.module_suffix}") if path.is_file())
    except OSError as exc:
        raise ScanRootError(str(root.location), cause=exc) from exc

    names: list[str] = []
    for file in files:
        if is_synthetic_name(file.name, config.synthetic_separator):
            continue
        if file.stem == _MAIN_MODULE:
            continue
        names.append(
            module_name_from_path(
                os.path.abspath(file), prefix, suffix=config.module_suffix
            )
        )
    return names


def _scan_archive(root: SearchRoot, prefix: str, config: ScannerConfig) -> list[str]:
    prefix_path = root.inner + prefix.replace(".", "/") + "/"
    single = prefix_path.removesuffix("/") + config.module_suffix
    try:
        with zipfile.ZipFile(root.location) as archive:
            entries = archive.infolist()
    except (OSError, zipfile.BadZipFile) as exc:
        raise ScanRootError(str(root.location), cause=exc) from exc

    names: list[str] = []
    for entry in entries:
        if entry.is_dir() or not entry.filename.endswith(config.module_suffix):
            continue
        if entry.filename == single:
            names.append(prefix)
            continue
        if not entry.filename.startswith(prefix_path):
            continue
        if is_synthetic_name(entry.filename, config.synthetic_separator):
            continue
        if _is_entry_point(entry.filename, config.module_suffix):
            continue
        tail = entry.filename[len(prefix_path) :].removesuffix(config.module_suffix)
        names.append(_join_module(prefix, tail.replace("/", ".")))
    return names


def _module_types(module: ModuleType, separator: str) -> list[type]:
    classes = (
        value
        for value in vars(module).values()
        if inspect.isclass(value)
        and value.__module__ == module.__name__
        and _LOCAL_MARKER not in value.__qualname__
        and not is_synthetic_name(value.__qualname__, separator)
    )
    # Aliases bind the same class under several names
    return list(dict.fromkeys(classes))


def _load_types(
    name: str, context: SearchContext, config: ScannerConfig, scan_logger: LoggerAdapter
) -> list[type]:
    scan_logger.debug("Loading module", extra={"module_name": name})
    try:
        module = context.load_module(name)
    except Exception as exc:  # noqa: BLE001
        scan_logger.log_failure(
            "Scan for classes could not load requested module",
            exception=TypeLoadError(name, cause=exc),
            module_name=name,
        )
        return []
    return _module_types(module, config.synthetic_separator)


def scan_for_types(
    prefix: str, context: SearchContext, *, config: ScannerConfig | None = None
) -> tuple[type, ...]:
    """Scan every root of ``context`` for classes under ``prefix``, uncached.

    Parameters
    ----------
    prefix : str
        Dotted package (or module) name.
    context : SearchContext
        Roots to traverse and loader to import through.
    config : ScannerConfig | None, optional
        Module suffix and synthetic-name separator. Defaults to the process
        settings.

    Returns
    -------
    tuple[type, ...]
        Classes in scan order, each once. Classes defined inside functions
        and classes with synthetic names are excluded.

    Raises
    ------
    ValueError
        If ``prefix`` is not a dotted name.
    ScanRootError
        If a root cannot be read.
    """
    if not prefix or any(not part for part in prefix.split(".")):
        msg = f"prefix must be a non-empty dotted name, got {prefix!r}"
        raise ValueError(msg)
    config = config if config is not None else get_settings().scanner
    started = measure_duration()

    with with_fields(logger, operation="scan", prefix=prefix, context=context.name) as scan_logger:
        module_names: list[str] = []
        for root in context.search_roots():
            scan_logger.debug(
                "Scanning classes in root",
                extra={"root": str(root.location), "kind": root.kind.value},
            )
            if root.kind is RootKind.DIRECTORY:
                module_names.extend(_scan_directory(root, prefix, config))
            elif root.kind is RootKind.ARCHIVE:
                module_names.extend(_scan_archive(root, prefix, config))

        found: dict[type, None] = {}
        for name in dict.fromkeys(module_names):
            found.update(dict.fromkeys(_load_types(name, context, config, scan_logger)))

        scan_logger.debug(
            "Scan complete",
            extra={
                "modules": len(module_names),
                "types": len(found),
                "duration_ms": round((measure_duration() - started) * 1000, 3),
            },
        )
    return tuple(found)


def find_types(
    prefix: str,
    context: SearchContext | None = None,
    *,
    cache: ScanCache | None = None,
    config: ScannerConfig | None = None,
) -> tuple[type, ...]:
    """Return the classes under ``prefix``, cached per ``(context, prefix)``.

    The first call for a key runs :func:`scan_for_types`; concurrent callers
    for the same key wait for that single scan and share its result. Later
    calls return the identical tuple. Entries are never invalidated.

    Parameters
    ----------
    prefix : str
        Dotted package (or module) name.
    context : SearchContext | None, optional
        Search context. Defaults to the process-wide ``sys.path`` context.
    cache : ScanCache | None, optional
        Cache to use. Defaults to the process-wide scan cache.
    config : ScannerConfig | None, optional
        Scanner configuration used when the key is computed.

    Returns
    -------
    tuple[type, ...]
        Cached scan result.
    """
    context = context if context is not None else default_search_context()
    cache = cache if cache is not None else _SCAN_CACHE
    return cache.get_or_compute(
        (context, prefix), lambda: scan_for_types(prefix, context, config=config)
    )
