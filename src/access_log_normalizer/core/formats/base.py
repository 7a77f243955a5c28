"""Record and parser interfaces shared by the backends."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from ..models import Field


class AccessLine(Protocol):
    """Canonical accessors every normalized record exposes.

    String accessors return "" when the value is absent; ``status`` and
    ``size`` return 0; ``timing`` returns a zero timedelta.
    """

    @property
    def host(self) -> str: ...

    @property
    def remote_addr(self) -> str: ...

    @property
    def method(self) -> str: ...

    @property
    def http(self) -> str: ...

    @property
    def path(self) -> str: ...

    @property
    def query(self) -> str: ...

    @property
    def referrer(self) -> str: ...

    @property
    def user_agent(self) -> str: ...

    @property
    def content_type(self) -> str: ...

    @property
    def status(self) -> int: ...

    @property
    def size(self) -> int: ...

    @property
    def xff(self) -> str: ...

    @property
    def language(self) -> str: ...

    @property
    def timing(self) -> timedelta: ...

    def field_value(self, field: Field) -> str:
        """Return the string form of a canonical field."""
        ...


class LineParser(Protocol):
    """Parser interface: return a record, or None if the line is excluded."""

    def parse(self, line: str) -> AccessLine | None:
        """Parse one raw line."""
        ...

    def timestamp(self, record: AccessLine) -> datetime:
        """Return the record's instant in UTC; raises TimestampError."""
        ...


def canonical_fields(line: AccessLine) -> dict[str, str | int]:
    """Return the canonical fields of a record as a plain dict."""
    return {
        Field.HOST.value: line.host,
        Field.REMOTE_ADDR.value: line.remote_addr,
        Field.METHOD.value: line.method,
        Field.HTTP.value: line.http,
        Field.PATH.value: line.path,
        Field.QUERY.value: line.query,
        Field.REFERRER.value: line.referrer,
        Field.USER_AGENT.value: line.user_agent,
        Field.CONTENT_TYPE.value: line.content_type,
        Field.STATUS.value: line.status,
        Field.SIZE.value: line.size,
        Field.XFF.value: line.xff,
        Field.ACCEPT_LANGUAGE.value: line.language,
    }
