"""Parser settings and backend selection."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exclude import parse_excludes
from .formats import CaddyParser, LineParser, PatternParser

CADDY_FORMAT = "caddy"
DEFAULT_FORMAT = "combined"

_ENV_KEYS: Mapping[str, str] = {
    "format": "ACCESS_LOG_FORMAT",
    "date": "ACCESS_LOG_DATE",
    "time": "ACCESS_LOG_TIME",
    "datetime": "ACCESS_LOG_DATETIME",
    "datetime_format": "ACCESS_LOG_DATETIME_FORMAT",
    "exclude": "ACCESS_LOG_EXCLUDE",
}


class ParserSettings(BaseModel):
    """Validated parser configuration, fixed once built."""

    model_config = ConfigDict(frozen=True)

    format: str = Field(min_length=1, description="'caddy', a preset name, or a $placeholder format.")
    date: str = Field(default="", description="strptime layout for $date.")
    time: str = Field(default="", description="strptime layout for $time.")
    datetime: str = Field(default="", description="strptime layout for $datetime.")
    datetime_format: str = Field(
        default="",
        description="Caddy ts decoding: unix_seconds_float, unix_milli_float, unix_nano or a layout.",
    )
    exclude: tuple[str, ...] = Field(default=(), description="Exclusion rules, [!]field:[glob:|re:]pattern.")

    @field_validator("exclude", mode="before")
    @classmethod
    def _split_exclude(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(part for part in value.split(",") if part.strip())
        return value

    @field_validator("exclude")
    @classmethod
    def _check_exclude(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        parse_excludes(value)
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> ParserSettings:
        """Build settings from ACCESS_LOG_* variables; keyword overrides win.

        ``format`` falls back to DEFAULT_FORMAT when neither source sets it.
        """
        data: dict[str, Any] = {}
        for key, env_name in _ENV_KEYS.items():
            env = os.getenv(env_name)
            if env:
                data[key] = env
        data.update({k: v for k, v in overrides.items() if v is not None})
        data.setdefault("format", DEFAULT_FORMAT)
        return cls(**data)

    @property
    def is_caddy(self) -> bool:
        return self.format == CADDY_FORMAT


def build_parser(settings: ParserSettings) -> LineParser:
    """Construct the backend selected by ``settings.format``.

    Raises FormatError when the format or a layout is rejected.
    """
    rules = tuple(parse_excludes(settings.exclude))
    if settings.is_caddy:
        return CaddyParser(datetime_format=settings.datetime_format, exclude=rules)
    return PatternParser.from_format(
        settings.format,
        date=settings.date,
        time=settings.time,
        datetime=settings.datetime,
        exclude=rules,
    )
