"""Caddy structured (JSON) access-log backend.

See https://caddyserver.com/docs/caddyfile/directives/log for the log shape.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import LineDecodeError
from ..exclude import is_excluded
from ..models import ExclusionRule
from ..models import Field as LogField
from ..timestamps import from_caddy_ts

LOGGER = logging.getLogger(__name__)

_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _first(values: Sequence[str] | None) -> str:
    return values[0] if values else ""


class CaddyHeaders(BaseModel):
    """The header arrays the normalizer reads; other headers are ignored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, strict=True)

    user_agent: list[str] | None = Field(default=None, alias="User-Agent")
    referer: list[str] | None = Field(default=None, alias="Referer")
    content_type: list[str] | None = Field(default=None, alias="Content-Type")
    x_forwarded_for: list[str] | None = Field(default=None, alias="X-Forwarded-For")
    accept_language: list[str] | None = Field(default=None, alias="Accept-Language")


class CaddyRequest(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    remote_addr: str = ""
    proto: str = ""
    method: str = ""
    host: str = ""
    uri: str = ""
    headers: CaddyHeaders = Field(default_factory=CaddyHeaders)

    @field_validator("headers", mode="before")
    @classmethod
    def _null_headers(cls, value: object) -> object:
        return CaddyHeaders() if value is None else value


class CaddyLogEntry(BaseModel):
    """One decoded Caddy access-log line."""

    # Numbers must be JSON numbers; NaN and Infinity are rejected.
    model_config = ConfigDict(frozen=True, populate_by_name=True, strict=True, allow_inf_nan=False)

    ts: float | str | None = None
    request: CaddyRequest = Field(default_factory=CaddyRequest)
    duration: float = 0.0
    bytes_sent: int = Field(default=0, alias="size")
    status_code: int = Field(default=0, alias="status")
    resp_headers: CaddyHeaders = Field(default_factory=CaddyHeaders)

    @field_validator("request", mode="before")
    @classmethod
    def _null_request(cls, value: object) -> object:
        return CaddyRequest() if value is None else value

    @field_validator("resp_headers", mode="before")
    @classmethod
    def _null_resp_headers(cls, value: object) -> object:
        return CaddyHeaders() if value is None else value

    @property
    def host(self) -> str:
        return self.request.host

    @property
    def remote_addr(self) -> str:
        return self.request.remote_addr

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def http(self) -> str:
        return self.request.proto

    @property
    def status(self) -> int:
        return self.status_code

    @property
    def size(self) -> int:
        return self.bytes_sent

    @property
    def path(self) -> str:
        """Decoded path of the request URI, or "" if it is not a request URI."""
        uri = self.request.uri
        if not uri:
            return ""
        target = uri.split("?", 1)[0]
        if not target.startswith("/"):
            try:
                parts = urlsplit(target)
            except ValueError:
                return ""
            if not parts.scheme:
                return ""
            target = parts.path
        if _BAD_ESCAPE_RE.search(target):
            return ""
        return unquote(target)

    @property
    def query(self) -> str:
        uri = self.request.uri
        # an undecodable path invalidates the whole URI; query escapes are kept raw
        if _BAD_ESCAPE_RE.search(uri.split("?", 1)[0]):
            return ""
        try:
            return urlsplit(uri).query
        except ValueError:
            return ""

    @property
    def timing(self) -> timedelta:
        try:
            return timedelta(seconds=self.duration)
        except (OverflowError, ValueError):
            return timedelta(0)

    @property
    def xff(self) -> str:
        return _first(self.request.headers.x_forwarded_for)

    @property
    def referrer(self) -> str:
        return _first(self.request.headers.referer)

    @property
    def user_agent(self) -> str:
        return _first(self.request.headers.user_agent)

    @property
    def content_type(self) -> str:
        return _first(self.request.headers.content_type)

    @property
    def language(self) -> str:
        return _first(self.request.headers.accept_language)

    def field_value(self, field: LogField) -> str:
        return _FIELD_GETTERS[field](self)


_FIELD_GETTERS: dict[LogField, Callable[[CaddyLogEntry], str]] = {
    LogField.HOST: lambda e: e.host,
    LogField.REMOTE_ADDR: lambda e: e.remote_addr,
    LogField.METHOD: lambda e: e.method,
    LogField.HTTP: lambda e: e.http,
    LogField.PATH: lambda e: e.path,
    LogField.QUERY: lambda e: e.query,
    LogField.REFERRER: lambda e: e.referrer,
    LogField.USER_AGENT: lambda e: e.user_agent,
    LogField.CONTENT_TYPE: lambda e: e.content_type,
    LogField.STATUS: lambda e: str(e.status),
    LogField.SIZE: lambda e: str(e.size),
    LogField.XFF: lambda e: e.xff,
    LogField.ACCEPT_LANGUAGE: lambda e: e.language,
}
_MISSING_GETTERS = set(LogField) - set(_FIELD_GETTERS)
if _MISSING_GETTERS:
    raise RuntimeError(f"no Caddy getter for fields: {sorted(f.value for f in _MISSING_GETTERS)}")


@dataclass(frozen=True, slots=True)
class CaddyParser:
    """Parse Caddy JSON access logs (one JSON object per line).

    ``datetime_format`` selects how ``ts`` is decoded: "" or
    ``unix_seconds_float`` (Caddy's default), ``unix_milli_float``,
    ``unix_nano``, a named layout such as ``rfc3339``, or a strptime layout.
    """

    datetime_format: str = ""
    exclude: tuple[ExclusionRule, ...] = ()

    def parse(self, line: str) -> CaddyLogEntry | None:
        """Decode a line; return None if an exclusion rule drops it.

        Raises LineDecodeError when the line is not a valid Caddy JSON object.
        """
        try:
            entry = CaddyLogEntry.model_validate_json(line)
        except ValidationError as exc:
            LOGGER.warning("Error decoding Caddy log line: %s", exc)
            raise LineDecodeError(f"invalid Caddy log line: {exc}", line) from exc

        if is_excluded(entry, self.exclude):
            return None
        return entry

    def timestamp(self, record: CaddyLogEntry) -> datetime:
        """Return the record's instant in UTC; raises TimestampError."""
        return from_caddy_ts(record.ts, self.datetime_format)
