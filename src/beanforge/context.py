"""Search contexts: ordered scan roots bound to a module loader.

A :class:`SearchContext` is compared and hashed by identity. Two contexts with
the same roots are still different cache keys, mirroring how two class
loaders over the same path are different loaders.
"""

from __future__ import annotations

import enum
import functools
import importlib
import importlib.machinery
import importlib.util
import os
import sys
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from beanforge_common.errors import TypeLoadError
from beanforge_common.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from types import ModuleType

__all__ = [
    "RootKind",
    "SearchContext",
    "SearchRoot",
    "classify_root",
    "default_search_context",
]

logger = get_logger(__name__)


class RootKind(enum.Enum):
    """How a scan root is traversed."""

    DIRECTORY = "directory"
    ARCHIVE = "archive"
    MISSING = "missing"


@dataclass(frozen=True, slots=True)
class SearchRoot:
    """A classified scan root.

    Attributes
    ----------
    location : Path
        The directory, or the archive file for archive roots.
    kind : RootKind
        Traversal strategy.
    inner : str
        Entry-path prefix inside the archive (``"lib/"`` for a root such as
        ``bundle.zip/lib``); empty otherwise.
    """

    location: Path
    kind: RootKind
    inner: str = ""


def classify_root(root: Path) -> SearchRoot:
    """Classify ``root`` as a directory, a zip archive, or missing.

    A path that does not exist but lies inside an existing zip file is an
    archive root with an inner prefix, the same layout :mod:`zipimport`
    accepts on ``sys.path``.
    """
    if root.is_dir():
        return SearchRoot(root, RootKind.DIRECTORY)
    if root.is_file():
        kind = RootKind.ARCHIVE if zipfile.is_zipfile(root) else RootKind.MISSING
        return SearchRoot(root, kind)
    for parent in root.parents:
        if parent.is_file():
            if zipfile.is_zipfile(parent):
                inner = root.relative_to(parent).as_posix().strip("/") + "/"
                return SearchRoot(parent, RootKind.ARCHIVE, inner)
            break
    return SearchRoot(root, RootKind.MISSING)


@dataclass(eq=False, slots=True)
class SearchContext:
    """Ordered scan roots plus the loader used to import what is found.

    Parameters
    ----------
    roots : Iterable[str | os.PathLike[str]]
        Directories and zip archives, in search order.
    loader : Callable[[str], ModuleType] | None, optional
        Imports a module by dotted name. By default top-level packages are
        looked up in the roots first and only then on ``sys.path``, so roots
        need not be importable themselves. Modules already imported are
        reused.
    name : str, optional
        Diagnostic label used in log entries.
    """

    roots: Iterable[str | os.PathLike[str]]
    loader: Callable[[str], ModuleType] | None = None
    name: str = "default"

    def __post_init__(self) -> None:
        self.roots = tuple(Path(root) for root in self.roots)

    @classmethod
    def from_sys_path(cls, *, name: str = "sys.path") -> SearchContext:
        """Build a context over the current ``sys.path`` entries."""
        return cls(tuple(entry or os.getcwd() for entry in sys.path), name=name)

    def search_roots(self) -> tuple[SearchRoot, ...]:
        """Return the roots classified for traversal, in search order."""
        return tuple(classify_root(Path(root)) for root in self.roots)

    def load_module(self, name: str) -> ModuleType:
        """Import ``name`` through this context's loader."""
        if self.loader is not None:
            return self.loader(name)
        return self._import_from_roots(name)

    def _import_from_roots(self, name: str) -> ModuleType:
        top, _, _ = name.partition(".")
        if top not in sys.modules:
            spec = importlib.machinery.PathFinder.find_spec(
                top, [str(root) for root in self.roots]
            )
            if spec is not None and spec.loader is not None:
                _execute(top, spec)
        # Submodules resolve through the parent package's __path__
        return importlib.import_module(name)

    def load_type(self, qualified_name: str) -> type:
        """Load a class by its dotted name, such as ``app.models.Widget``.

        The longest importable module prefix is imported and the remaining
        segments are resolved as attributes, so nested classes
        (``app.models.Outer.Inner``) load as well.

        Raises
        ------
        TypeLoadError
            If no prefix imports, an attribute is missing, or the resolved
            object is not a class.
        """
        parts = qualified_name.split(".")
        first_error: Exception | None = None
        for split in range(len(parts) - 1, 0, -1):
            try:
                target: object = self.load_module(".".join(parts[:split]))
            except Exception as exc:  # noqa: BLE001
                first_error = first_error or exc
                continue
            for attribute in parts[split:]:
                target = getattr(target, attribute, None)
                if target is None:
                    break
            if isinstance(target, type):
                return target
            break
        raise TypeLoadError(qualified_name, cause=first_error)


def _execute(name: str, spec: importlib.machinery.ModuleSpec) -> ModuleType:
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)  # type: ignore[union-attr]
    except BaseException:
        sys.modules.pop(name, None)
        raise
    logger.debug(
        "Imported package from search root",
        extra={"operation": "load", "module_name": name, "origin": spec.origin},
    )
    return module


@functools.cache
def default_search_context() -> SearchContext:
    """Return the process-wide context over ``sys.path`` as of first use."""
    context = SearchContext.from_sys_path()
    logger.debug(
        "Created default search context",
        extra={"operation": "context", "roots": [str(root) for root in context.roots]},
    )
    return context
