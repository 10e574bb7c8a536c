"""Runtime settings with typed configuration and fail-fast validation.

Settings are read from ``BEANFORGE_*`` environment variables through
pydantic-settings. Validation failures surface as :class:`SettingsError`
carrying Problem Details context instead of raw pydantic errors.

Examples
--------
>>> from beanforge_common.settings import load_settings
>>> settings = load_settings()
>>> settings.scanner.module_suffix
'.py'
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from beanforge_common.errors import SettingsError
from beanforge_common.logging import get_logger

__all__ = [
    "ObservabilityConfig",
    "RuntimeSettings",
    "ScannerConfig",
    "get_settings",
    "load_settings",
]

logger = get_logger(__name__)


class ScannerConfig(BaseSettings):
    """Namespace scanner configuration (``BEANFORGE_SCANNER_*``)."""

    model_config = SettingsConfigDict(env_prefix="BEANFORGE_SCANNER_", extra="forbid")

    module_suffix: str = Field(
        default=".py", description="File suffix identifying loadable module files"
    )
    synthetic_separator: str = Field(
        default="$",
        description="Character that marks a generated name when followed by a digit",
    )

    @field_validator("module_suffix")
    @classmethod
    def _suffix_has_dot(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:  # noqa: PLR2004
            msg = f"module_suffix must look like '.py', got {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("synthetic_separator")
    @classmethod
    def _single_character(cls, value: str) -> str:
        if len(value) != 1:
            msg = f"synthetic_separator must be a single character, got {value!r}"
            raise ValueError(msg)
        return value


class ObservabilityConfig(BaseSettings):
    """Logging toggles (``BEANFORGE_*`` namespace)."""

    model_config = SettingsConfigDict(env_prefix="BEANFORGE_", extra="forbid")

    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )


class RuntimeSettings(BaseSettings):
    """Aggregate runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BEANFORGE_",
        env_nested_delimiter="__",
        extra="forbid",
        case_sensitive=False,
    )

    scanner: ScannerConfig = Field(
        default_factory=ScannerConfig, description="Namespace scanner configuration"
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )

    def __init__(self, **overrides: object) -> None:
        """Initialise settings with fail-fast validation."""
        try:
            super().__init__(**overrides)  # type: ignore[arg-type]
        except ValidationError as exc:
            msg = f"Configuration validation failed: {exc}"
            logger.exception(
                "Settings validation failed",
                extra={"operation": "settings", "error_type": type(exc).__name__},
            )
            raise SettingsError(
                msg,
                errors=[
                    {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                    for err in exc.errors()
                ],
                cause=exc,
            ) from exc


def load_settings(**overrides: object) -> RuntimeSettings:
    """Load :class:`RuntimeSettings` with optional overrides.

    Parameters
    ----------
    **overrides : object
        Field values taking precedence over the environment.

    Returns
    -------
    RuntimeSettings
        Validated settings.

    Raises
    ------
    SettingsError
        If any field fails validation.
    """
    return RuntimeSettings(**overrides)


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return process-wide settings, loaded on first use.

    Returns
    -------
    RuntimeSettings
        Cached settings instance.
    """
    return load_settings()
