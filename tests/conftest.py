"""Shared pytest fixtures.

This module provides reusable fixtures for:
- Importable package trees written under ``tmp_path``
- Package trees reachable only through a search context
- Search contexts over those trees with a counting loader
- Root logger isolation for logging configuration tests
"""

from __future__ import annotations

import importlib
import logging
import sys
import textwrap
import uuid
import zipfile
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from beanforge.context import SearchContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path
    from types import ModuleType


@dataclass
class PackageTree:
    """A uniquely named top-level package under an importable root."""

    root: Path
    name: str

    def write(self, relative: str, source: str = "") -> Path:
        """Write a module below the package, creating parent directories."""
        path = self.root / self.name / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        importlib.invalidate_caches()
        return path

    def qualified(self, dotted: str) -> str:
        """Return ``dotted`` prefixed with the package name."""
        return f"{self.name}.{dotted}" if dotted else self.name


@dataclass
class CountingLoader:
    """Module loader that records every import request."""

    calls: list[str] = field(default_factory=list)

    def __call__(self, name: str) -> ModuleType:
        self.calls.append(name)
        return importlib.import_module(name)


def _unique_name() -> str:
    return f"bfpkg_{uuid.uuid4().hex[:10]}"


def _forget_modules(name: str) -> None:
    for module in [m for m in sys.modules if m == name or m.startswith(f"{name}.")]:
        sys.modules.pop(module, None)


@pytest.fixture
def package_tree(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[PackageTree]:
    """Provide an empty importable package; modules are unloaded afterwards."""
    name = _unique_name()
    root = tmp_path / "src"
    (root / name).mkdir(parents=True)
    (root / name / "__init__.py").write_text("", encoding="utf-8")
    monkeypatch.syspath_prepend(str(root))
    yield PackageTree(root=root, name=name)
    _forget_modules(name)


@pytest.fixture
def detached_tree(tmp_path: Path) -> Iterator[PackageTree]:
    """Provide a package whose root is named like it and is not on ``sys.path``.

    This is the flat project layout (``<name>/<name>/__init__.py``); only a
    search context over the root can import it.
    """
    name = _unique_name()
    root = tmp_path / name
    (root / name).mkdir(parents=True)
    (root / name / "__init__.py").write_text("", encoding="utf-8")
    yield PackageTree(root=root, name=name)
    _forget_modules(name)


@pytest.fixture
def counting_loader() -> CountingLoader:
    """Provide a fresh import-counting loader."""
    return CountingLoader()


@pytest.fixture
def tree_context(package_tree: PackageTree, counting_loader: CountingLoader) -> SearchContext:
    """Provide a search context over the package tree root."""
    return SearchContext([package_tree.root], loader=counting_loader, name="test")


@dataclass
class ArchiveTree:
    """A zip archive holding a uniquely named package."""

    path: Path
    name: str
    inner: str


@pytest.fixture
def make_archive(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Callable[..., ArchiveTree]]:
    """Provide a factory writing ``{relative: source}`` into a zip on ``sys.path``."""
    names: list[str] = []

    def _make(files: dict[str, str], *, inner: str = "") -> ArchiveTree:
        name = _unique_name()
        names.append(name)
        path = tmp_path / f"{name}.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr(f"{inner}{name}/__init__.py", "")
            for relative, source in files.items():
                archive.writestr(f"{inner}{name}/{relative}", textwrap.dedent(source))
        monkeypatch.syspath_prepend(str(path / inner.rstrip("/")) if inner else str(path))
        return ArchiveTree(path=path, name=name, inner=inner)

    yield _make
    for name in names:
        _forget_modules(name)


@pytest.fixture
def isolated_root_logger() -> Iterator[logging.Logger]:
    """Restore root logger handlers and level after the test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
