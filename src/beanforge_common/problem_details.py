"""RFC 9457 Problem Details helpers with schema validation.

Payloads validate against the canonical schema shipped at
``beanforge_common/schema/problem_details.json`` (JSON Schema 2020-12).

Examples
--------
>>> from beanforge_common.problem_details import build_problem_details, render_problem
>>> problem = build_problem_details(
...     problem_type="https://beanforge.dev/problems/missing-argument",
...     title="MissingArgumentError",
...     status=400,
...     detail="Required argument 'tag' is missing, available params: {}",
...     instance="urn:beanforge:build:example.Widget",
... )
>>> assert "missing-argument" in render_problem(problem)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Final, TypedDict, cast

from jsonschema import Draft202012Validator, SchemaError, ValidationError

from beanforge_common.types import JsonPrimitive, JsonValue

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "JsonPrimitive",
    "JsonValue",
    "ProblemDetails",
    "ProblemDetailsValidationError",
    "build_problem_details",
    "render_problem",
    "validate_problem_details",
]

_SCHEMA_PATH: Final[Path] = Path(__file__).parent / "schema" / "problem_details.json"

# JSON Schema type for cached schema objects
JsonSchema = dict[str, object]


class ProblemDetails(TypedDict, total=False):
    """TypedDict for RFC 9457 Problem Details responses."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
    code: str  # NotRequired via total=False
    extensions: dict[str, JsonValue]  # NotRequired via total=False


class ProblemDetailsValidationError(Exception):
    """Raised when a Problem Details payload fails schema validation.

    Parameters
    ----------
    message : str
        Human-readable summary.
    validation_errors : list[str] | None, optional
        Individual constraint violations. Defaults to None.
    """

    def __init__(self, message: str, validation_errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.validation_errors = validation_errors or []


_SCHEMA_CACHE: dict[str, JsonSchema] = {}


def _load_schema() -> JsonSchema:
    """Return the cached Problem Details JSON Schema.

    Returns
    -------
    JsonSchema
        Parsed schema dictionary conforming to JSON Schema 2020-12.

    Raises
    ------
    ProblemDetailsValidationError
        If the schema file is missing, is not valid JSON, or fails
        meta-schema validation.
    """
    cached = _SCHEMA_CACHE.get("problem_details")
    if cached is not None:
        return cached

    try:
        schema_obj: JsonSchema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Failed to load Problem Details schema: {exc}"
        raise ProblemDetailsValidationError(msg) from exc

    try:
        Draft202012Validator.check_schema(schema_obj)
    except SchemaError as exc:
        msg = f"Invalid Problem Details schema: {exc}"
        raise ProblemDetailsValidationError(msg) from exc

    _SCHEMA_CACHE["problem_details"] = schema_obj
    return schema_obj


def validate_problem_details(payload: Mapping[str, JsonValue]) -> None:
    """Validate a Problem Details payload against the canonical schema.

    Parameters
    ----------
    payload : Mapping[str, JsonValue]
        Payload with the required fields type, title, status, detail, instance.

    Raises
    ------
    ProblemDetailsValidationError
        If the payload violates the schema. ``validation_errors`` lists the
        violated constraint and the JSON path where it failed.
    """
    validator = Draft202012Validator(_load_schema())
    try:
        validator.validate(payload)
    except ValidationError as exc:
        errors = [exc.message]
        if exc.absolute_path:
            path_str = ".".join(str(p) for p in exc.absolute_path)
            errors.append(f"at path: {path_str}")
        msg = f"Problem Details validation failed: {'; '.join(errors)}"
        raise ProblemDetailsValidationError(msg, validation_errors=errors) from exc


def build_problem_details(  # noqa: PLR0913
    *,
    problem_type: str,
    title: str,
    status: int,
    detail: str,
    instance: str,
    code: str | None = None,
    extensions: Mapping[str, JsonValue] | None = None,
) -> ProblemDetails:
    """Build and validate an RFC 9457 Problem Details payload.

    Parameters
    ----------
    problem_type : str
        Type URI identifying the problem class.
    title : str
        Short summary of the problem.
    status : int
        HTTP status code.
    detail : str
        Human-readable explanation of this occurrence.
    instance : str
        URI identifying this occurrence.
    code : str | None, optional
        Stable kebab-case error code. Defaults to None.
    extensions : Mapping[str, JsonValue] | None, optional
        Additional structured context. Defaults to None.

    Returns
    -------
    ProblemDetails
        Validated payload.
    """
    payload: dict[str, object] = {
        "type": problem_type,
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance,
    }
    if code is not None:
        payload["code"] = code
    if extensions:
        payload["extensions"] = dict(extensions)

    validate_problem_details(cast("Mapping[str, JsonValue]", payload))
    return cast("ProblemDetails", payload)


def render_problem(problem: ProblemDetails | dict[str, object]) -> str:
    """Render Problem Details as a minified JSON string.

    Parameters
    ----------
    problem : ProblemDetails | dict[str, object]
        Payload to serialize.

    Returns
    -------
    str
        JSON text without a trailing newline; non-ASCII characters preserved.
    """
    return json.dumps(problem, default=str, ensure_ascii=False)
