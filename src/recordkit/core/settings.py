"""Settings for the recordkit core.

Value inference in the text grammar and the merge helpers depend on a few
locale-flavoured knobs (which decimal separators to try, which date layouts
to accept, how far apart two timestamps may be before they count as
different). ``RecordkitSettings`` keeps them in one validated place.

Features:
    - **RecordkitSettings:** log level, JSON logs, service name, parsing knobs
    - **env_prefix:** ``RECORDKIT_`` environment variables
    - **.env file support:** Automatic loading via pydantic-settings
    - **get_settings():** cached accessor, ``clear_settings_cache()`` for tests

Examples:
    >>> from recordkit.core.settings import get_settings
    >>> get_settings().date_tolerance_hours
    5

Tags:
    settings, configuration, pydantic, environment, recordkit
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecordkitSettings(BaseSettings):
    """Recordkit configuration.

    Fields
    ──────
    log_level            : Structlog log level
    json_logs            : JSON output (None = auto-detect from TTY)
    service_name         : ``service.name`` stamped on log events
    default_primary_key  : Key name used when nothing better can be inferred
    date_tolerance_hours : Window inside which two timestamps are "the same"
    reference_text_limit : Max display text length kept in a reference
    number_formats       : Ordered (decimal, group) separator pairs
    date_formats         : Ordered ``strptime`` layouts for loose dates
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "recordkit"

    # ── Schema ───────────────────────────────────────────────────
    default_primary_key: str = "Id"

    # ── Value parsing ────────────────────────────────────────────
    date_tolerance_hours: int = Field(default=5, ge=0)
    reference_text_limit: int = Field(default=1024, gt=0)
    number_formats: list[tuple[str, str]] = Field(
        default_factory=lambda: [(".", ","), (",", " "), (",", "."), (".", " ")],
        description="Decimal/group separator pairs, tried in order",
    )
    date_formats: list[str] = Field(
        default_factory=lambda: [
            "%Y-%m-%d %H:%M:%S",
            "%Y-%m-%d %H:%M",
            "%Y-%m-%d",
            "%d.%m.%Y %H:%M:%S",
            "%d.%m.%Y %H:%M",
            "%d.%m.%Y",
            "%m/%d/%Y %H:%M:%S",
            "%m/%d/%Y %I:%M:%S %p",
            "%m/%d/%Y",
        ],
        description="strptime layouts, tried in order",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


_settings_cache: dict[str, RecordkitSettings] = {}


def get_settings(*, _force_reload: bool = False) -> RecordkitSettings:
    """Load, validate, and cache a :class:`RecordkitSettings` instance."""
    if _force_reload or "default" not in _settings_cache:
        _settings_cache["default"] = RecordkitSettings()
    return _settings_cache["default"]


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "RecordkitSettings",
    "get_settings",
    "clear_settings_cache",
]
