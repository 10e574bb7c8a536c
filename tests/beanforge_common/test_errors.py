"""Tests for the beanforge_common error hierarchy and Problem Details helpers."""

from __future__ import annotations

import json
import logging

import pytest

from beanforge_common.errors import (
    BeanDefinitionError,
    BeanforgeError,
    ErrorCode,
    InvalidPropertyError,
    MissingArgumentError,
    ScanRootError,
    SettingsError,
    TypeLoadError,
    UnsupportedTypeError,
    get_type_uri,
)
from beanforge_common.problem_details import (
    ProblemDetailsValidationError,
    build_problem_details,
    render_problem,
    validate_problem_details,
)


class TestErrorHierarchy:
    """Tests for codes, statuses and formatting."""

    @pytest.mark.parametrize(
        ("error", "code", "status"),
        [
            (MissingArgumentError("m", parameter="p"), ErrorCode.MISSING_ARGUMENT, 400),
            (InvalidPropertyError("T", "p"), ErrorCode.INVALID_PROPERTY, 500),
            (TypeLoadError("a.B"), ErrorCode.TYPE_LOAD_FAILED, 500),
            (ScanRootError("/srv"), ErrorCode.SCAN_ROOT_UNAVAILABLE, 500),
            (BeanDefinitionError("m"), ErrorCode.BEAN_DEFINITION_ERROR, 500),
            (UnsupportedTypeError(object), ErrorCode.UNSUPPORTED_TYPE, 500),
            (SettingsError("m"), ErrorCode.CONFIGURATION_ERROR, 500),
        ],
    )
    def test_codes_and_statuses(self, error: BeanforgeError, code: ErrorCode, status: int) -> None:
        """Each error carries its stable code and HTTP status."""
        assert error.code is code
        assert error.http_status == status
        assert isinstance(error, BeanforgeError)

    def test_missing_argument_is_a_warning(self) -> None:
        """Caller-data errors are logged at WARNING and carry the raw value."""
        error = MissingArgumentError("Bad argument age='x'", parameter="age", raw_value="x")

        assert error.log_level == logging.WARNING
        assert error.context == {"parameter": "age", "raw_value": "x"}

    def test_unsupported_type_is_a_definition_error(self) -> None:
        """Unsupported annotations are structural faults."""
        assert issubclass(UnsupportedTypeError, BeanDefinitionError)

    def test_str_includes_code_and_cause(self) -> None:
        """String form shows the class, code and cause type."""
        error = TypeLoadError("app.Widget", cause=ModuleNotFoundError("app"))

        assert str(error) == (
            "TypeLoadError[type-load-failed]: Unable to load app.Widget "
            "(caused by: ModuleNotFoundError)"
        )
        assert isinstance(error.__cause__, ModuleNotFoundError)

    def test_to_problem_details(self) -> None:
        """Errors convert to schema-valid Problem Details."""
        error = InvalidPropertyError("Point", "z")

        problem = error.to_problem_details(instance="urn:beanforge:read:Point")

        assert problem["type"] == "https://beanforge.dev/problems/invalid-property"
        assert problem["title"] == "InvalidPropertyError"
        assert problem["detail"] == "Invalid property z on type Point"
        assert problem["code"] == "invalid-property"
        assert problem["extensions"] == {"type": "Point", "property": "z"}

    def test_settings_error_carries_field_errors(self) -> None:
        """Validation errors are exposed in the Problem Details extensions."""
        error = SettingsError("invalid", errors=[{"loc": "scanner.module_suffix", "msg": "bad"}])

        problem = error.to_problem_details()

        assert problem["extensions"]["errors"] == [{"loc": "scanner.module_suffix", "msg": "bad"}]
        assert problem["instance"] == "urn:beanforge:error"

    def test_type_uri(self) -> None:
        """Type URIs live under the beanforge problem namespace."""
        assert get_type_uri(ErrorCode.SCAN_ROOT_UNAVAILABLE) == (
            "https://beanforge.dev/problems/scan-root-unavailable"
        )
        assert str(ErrorCode.RUNTIME_ERROR) == "runtime-error"


class TestProblemDetails:
    """Tests for building and validating payloads."""

    def test_build_and_render(self) -> None:
        """Minimal payloads validate and render as compact JSON."""
        problem = build_problem_details(
            problem_type="https://beanforge.dev/problems/runtime-error",
            title="Runtime Error",
            status=500,
            detail="Operation failed",
            instance="urn:beanforge:error",
            code="runtime-error",
        )

        assert "extensions" not in problem
        assert json.loads(render_problem(problem)) == problem

    def test_invalid_status_rejected(self) -> None:
        """Statuses outside the HTTP range fail validation."""
        with pytest.raises(ProblemDetailsValidationError) as excinfo:
            build_problem_details(
                problem_type="https://beanforge.dev/problems/runtime-error",
                title="Runtime Error",
                status=42,
                detail="x",
                instance="urn:beanforge:error",
            )
        assert excinfo.value.validation_errors

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "t", "title": "t", "status": 500, "detail": "d"},
            {"type": "t", "title": "t", "status": 500, "detail": "d", "instance": "i", "x": 1},
            {"type": "t", "title": "t", "status": 500, "detail": "d", "instance": "i", "code": "Bad"},
        ],
    )
    def test_schema_violations(self, payload: dict[str, object]) -> None:
        """Missing members, unknown members and malformed codes are rejected."""
        with pytest.raises(ProblemDetailsValidationError):
            validate_problem_details(payload)  # type: ignore[arg-type]
