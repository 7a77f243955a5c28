"""Core data models for access-log normalization."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class Field(str, Enum):
    """Canonical field identifiers shared by both backends and exclusion rules."""

    HOST = "host"
    REMOTE_ADDR = "remote_addr"
    METHOD = "method"
    HTTP = "http"
    PATH = "path"
    QUERY = "query"
    REFERRER = "referrer"
    USER_AGENT = "user_agent"
    CONTENT_TYPE = "content_type"
    STATUS = "status"
    SIZE = "size"
    XFF = "xff"
    ACCEPT_LANGUAGE = "accept_language"


class MatchKind(str, Enum):
    """How an exclusion rule compares its pattern with a field value."""

    SUBSTRING = "substring"
    GLOB = "glob"
    REGEX = "re"


# Returned when a record carries no timestamp at all.
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)

# Best-effort instant returned alongside a timestamp decode failure.
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class ExclusionRule:
    """Predicate over one canonical field; a match drops the record."""

    field: Field
    pattern: str
    kind: MatchKind = MatchKind.SUBSTRING
    negate: bool = False
    regex: re.Pattern[str] | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "field", Field(self.field))
        except ValueError as exc:
            valid = ", ".join(f.value for f in Field)
            raise ValueError(f"invalid field {self.field!r}; valid fields: {valid}") from exc
        object.__setattr__(self, "kind", MatchKind(self.kind))

        if self.kind is MatchKind.REGEX:
            try:
                compiled = re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid regular expression {self.pattern!r}: {exc}") from exc
            object.__setattr__(self, "regex", compiled)
