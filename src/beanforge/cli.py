"""Command line surface over the scanner and the bean builder.

``beanforge scan`` lists the classes under a package; ``beanforge build``
constructs a class from ``KEY=VALUE`` pairs and prints its public properties.
Both print JSON on stdout. Failures print RFC 9457 Problem Details on stderr
and exit with 1 for bad input or 2 for everything else.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, NoReturn

import typer

from beanforge.accessors import default_accessor_cache
from beanforge.beans import build_bean_by_name
from beanforge.context import SearchContext, default_search_context
from beanforge.filters import filter_assignable
from beanforge.introspection import default_introspector
from beanforge.scanner import find_types
from beanforge_common.errors import (
    BeanforgeError,
    MissingArgumentError,
    TypeLoadError,
)
from beanforge_common.logging import get_logger, setup_logging
from beanforge_common.problem_details import build_problem_details, render_problem
from beanforge_common.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["app", "build", "scan"]

LOGGER = get_logger(__name__)

EXIT_CALLER_ERROR = 1
EXIT_STRUCTURAL_ERROR = 2

_CALLER_ERRORS = (MissingArgumentError, TypeLoadError)

app = typer.Typer(
    help="Discover classes by package and build them from flat key/value input.",
    no_args_is_help=True,
    add_completion=False,
)

RootsOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--root",
        "-r",
        help="Directory or zip archive to search; repeatable. Defaults to sys.path.",
        metavar="PATH",
    ),
]


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log JSON entries to stderr.")
    ] = False,
) -> None:
    """Configure logging for the invoked command."""
    if verbose:
        setup_logging(get_settings().observability.log_level, stream=sys.stderr)


def _qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _search_context(roots: Sequence[Path] | None) -> SearchContext:
    if not roots:
        return default_search_context()
    return SearchContext([root.resolve() for root in roots], name="cli")


def _fail(error: Exception, *, command: str) -> NoReturn:
    exit_code = EXIT_CALLER_ERROR
    if isinstance(error, BeanforgeError):
        problem = error.to_problem_details(instance=f"urn:beanforge:cli:{command}")
        if not isinstance(error, _CALLER_ERRORS):
            exit_code = EXIT_STRUCTURAL_ERROR
    else:
        problem = build_problem_details(
            problem_type="https://beanforge.dev/problems/invalid-input",
            title="Invalid input",
            status=400,
            detail=str(error),
            instance=f"urn:beanforge:cli:{command}",
        )
    LOGGER.warning(
        "Command failed",
        extra={"operation": command, "error_type": type(error).__name__, "exit_code": exit_code},
    )
    typer.echo(render_problem(problem), err=True)
    raise typer.Exit(code=exit_code) from error


def _parse_pairs(pairs: Sequence[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key:
            msg = f"expected KEY=VALUE, got {pair!r}"
            raise typer.BadParameter(msg, param_hint="PARAMS")
        params[key] = value
    return params


@app.command()
def scan(
    prefix: Annotated[str, typer.Argument(help="Dotted package name, e.g. app.plugins.")],
    roots: RootsOption = None,
    implements: Annotated[
        str | None,
        typer.Option(
            "--implements",
            "-i",
            help="Only list classes assignable to this dotted class name.",
            metavar="CLASS",
        ),
    ] = None,
) -> None:
    """Print the qualified names of the classes under PREFIX as a JSON list."""
    context = _search_context(roots)
    try:
        types: Sequence[type] = find_types(prefix, context)
        if implements is not None:
            types = filter_assignable(types, context.load_type(implements))
    except (BeanforgeError, ValueError) as exc:
        _fail(exc, command="scan")
    typer.echo(json.dumps([_qualified_name(cls) for cls in types]))


@app.command()
def build(
    target: Annotated[str, typer.Argument(help="Dotted class name to construct.")],
    pairs: Annotated[
        list[str] | None,
        typer.Argument(help="Constructor parameters as KEY=VALUE.", metavar="PARAMS"),
    ] = None,
    roots: RootsOption = None,
) -> None:
    """Construct TARGET from KEY=VALUE pairs and print its public properties as JSON."""
    params = _parse_pairs(pairs or [])
    context = _search_context(roots)
    try:
        bean = build_bean_by_name(target, params, context)
        accessors = default_accessor_cache()
        properties = {
            name: accessors.read_property(bean, name)
            for name in default_introspector().member_properties(type(bean))
            if not name.startswith("_")
        }
    except BeanforgeError as exc:
        _fail(exc, command="build")
    typer.echo(json.dumps(properties, default=str, ensure_ascii=False))


if __name__ == "__main__":  # pragma: no cover - manual execution entrypoint
    app()
