"""Tests for beanforge.filters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from beanforge.context import SearchContext
from beanforge.filters import filter_assignable, find_implementations

if TYPE_CHECKING:
    from conftest import PackageTree


class Plugin:
    pass


class CsvPlugin(Plugin):
    pass


class JsonPlugin(Plugin):
    pass


class Unrelated:
    pass


@runtime_checkable
class Closeable(Protocol):
    def close(self) -> None: ...


class Handle:
    def close(self) -> None:
        pass


class TestFilterAssignable:
    """Tests for the capability filter."""

    def test_keeps_assignable_in_input_order(self) -> None:
        """Survivors keep their relative order."""
        found = filter_assignable([JsonPlugin, Unrelated, Plugin, CsvPlugin], Plugin)
        assert found == [JsonPlugin, Plugin, CsvPlugin]

    def test_protocol_target(self) -> None:
        """Runtime-checkable protocols select structurally."""
        assert filter_assignable([Unrelated, Handle, CsvPlugin], Closeable) == [Handle]

    def test_empty_input(self) -> None:
        """No candidates, no survivors."""
        assert filter_assignable([], Plugin) == []


class TestFindImplementations:
    """Tests for scan plus filter."""

    def test_scans_and_filters(self, package_tree: PackageTree) -> None:
        """Only classes assignable to the loaded base survive."""
        package_tree.write("base.py", "class Exporter:\n    pass\n")
        package_tree.write(
            "impls.py",
            f"""
            from {package_tree.name}.base import Exporter


            class PdfExporter(Exporter):
                pass


            class Helper:
                pass
            """,
        )
        context = SearchContext([package_tree.root])
        base = context.load_type(package_tree.qualified("base.Exporter"))

        found = find_implementations(package_tree.name, base, context)

        assert [cls.__qualname__ for cls in found] == ["Exporter", "PdfExporter"]
