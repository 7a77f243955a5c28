"""Free-form access-log backend.

A format string such as ``$remote_addr - - [$datetime] "$method $path $http"``
is compiled once into a single whole-line regular expression with one named
group per placeholder.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType

from ..errors import FormatError
from ..exclude import is_excluded
from ..models import ExclusionRule, Field
from ..timestamps import TIME_CAPTURES, check_layout, from_captures

# Placeholder name -> regex fragment. Every placeholder except $ignore
# becomes a named group.
FORMAT_FRAGMENTS: Mapping[str, str] = MappingProxyType(
    {
        "ignore": r".*?",
        Field.HOST.value: r"(?:xn--)?[a-zA-Z0-9.-]+",
        Field.REMOTE_ADDR.value: r"[0-9a-fA-F:.]+",
        Field.XFF.value: r"[0-9a-fA-F:. ,]+",
        Field.METHOD.value: r"[A-Z]{3,10}",
        Field.STATUS.value: r"\d{3}",
        Field.HTTP.value: r"HTTP/[\d.]+",
        Field.PATH.value: r"/.*?",
        "timing_sec": r"[\d.]+",
        "timing_milli": r"\d+",
        "timing_micro": r"\d+",
        Field.SIZE.value: r"(?:\d+|-)",
        Field.REFERRER.value: r".*?",
        Field.USER_AGENT.value: r".*?",
        Field.QUERY.value: r".+?",
        Field.CONTENT_TYPE.value: r".+?",
        "date": r".+?",
        "time": r".+?",
        "datetime": r".+?",
    }
)

COMMON_LOG_LAYOUT = "%d/%b/%Y:%H:%M:%S %z"

# Preset name -> (format string, default datetime layout).
NAMED_FORMATS: Mapping[str, tuple[str, str]] = MappingProxyType(
    {
        "common": (
            '$remote_addr $ignore $ignore [$datetime] "$method $path $http" $status $size',
            COMMON_LOG_LAYOUT,
        ),
        "common-vhost": (
            '$host:$ignore $remote_addr $ignore $ignore [$datetime] "$method $path $http" $status $size',
            COMMON_LOG_LAYOUT,
        ),
        "combined": (
            '$remote_addr $ignore $ignore [$datetime] "$method $path $http" $status $size '
            '"$referrer" "$user_agent"',
            COMMON_LOG_LAYOUT,
        ),
        "combined-vhost": (
            '$host:$ignore $remote_addr $ignore $ignore [$datetime] "$method $path $http" '
            '$status $size "$referrer" "$user_agent"',
            COMMON_LOG_LAYOUT,
        ),
    }
)

# Matches an escaped "$name" in the output of re.escape().
_PLACEHOLDER_RE = re.compile(r"\\\$(\w+)")


def compile_format(fmt: str, layouts: Mapping[str, str] | None = None) -> re.Pattern[str]:
    """Compile a format string into an anchored whole-line pattern.

    ``layouts`` maps date/time/datetime to strptime layouts; each one is
    required (and smoke-tested) only if its placeholder is used.

    Raises FormatError on an unknown placeholder, a missing or invalid
    layout, or a pattern that does not compile.
    """
    layouts = layouts or {}

    def _fragment(m: re.Match[str]) -> str:
        name = m.group(1)
        frag = FORMAT_FRAGMENTS.get(name)
        if frag is None:
            raise FormatError(f"unknown format specifier: ${name}")
        if name == "ignore":
            return frag
        if name in TIME_CAPTURES:
            check_layout(name, layouts.get(name, ""))
        return f"(?P<{name}>{frag})"

    pat = _PLACEHOLDER_RE.sub(_fragment, re.escape(fmt))
    try:
        return re.compile(f"^{pat}$")
    except re.error as exc:
        raise FormatError(f"invalid format {fmt!r}: {exc}") from exc


def _to_int(s: str) -> int:
    try:
        return int(s)
    except ValueError:
        return 0


@dataclass(frozen=True, slots=True)
class FieldMap:
    """Values captured from one line, keyed by placeholder name."""

    values: Mapping[str, str] = field(default_factory=dict)

    def get(self, name: str) -> str:
        return self.values.get(name, "")

    @property
    def host(self) -> str:
        return self.get(Field.HOST)

    @property
    def remote_addr(self) -> str:
        return self.get(Field.REMOTE_ADDR)

    @property
    def method(self) -> str:
        return self.get(Field.METHOD)

    @property
    def http(self) -> str:
        return self.get(Field.HTTP)

    @property
    def path(self) -> str:
        return self.get(Field.PATH)

    @property
    def query(self) -> str:
        return self.get(Field.QUERY)

    @property
    def referrer(self) -> str:
        return self.get(Field.REFERRER)

    @property
    def user_agent(self) -> str:
        return self.get(Field.USER_AGENT)

    @property
    def content_type(self) -> str:
        return self.get(Field.CONTENT_TYPE)

    @property
    def xff(self) -> str:
        return self.get(Field.XFF)

    @property
    def language(self) -> str:
        return self.get(Field.ACCEPT_LANGUAGE)

    @property
    def status(self) -> int:
        return _to_int(self.get(Field.STATUS))

    @property
    def size(self) -> int:
        return _to_int(self.get(Field.SIZE))

    @property
    def timing(self) -> timedelta:
        """First present of timing_sec, timing_milli, timing_micro."""
        if "timing_sec" in self.values:
            try:
                return timedelta(seconds=float(self.values["timing_sec"]))
            except ValueError:
                return timedelta(0)
        if "timing_milli" in self.values:
            return timedelta(milliseconds=_to_int(self.values["timing_milli"]))
        if "timing_micro" in self.values:
            return timedelta(microseconds=_to_int(self.values["timing_micro"]))
        return timedelta(0)

    def field_value(self, field: Field) -> str:
        return self.get(field)


@dataclass(frozen=True, slots=True)
class PatternParser:
    """Parse lines with a compiled whole-line pattern.

    A line that does not match yields an empty FieldMap rather than an error.
    """

    regex: re.Pattern[str]
    layouts: Mapping[str, str] = field(default_factory=dict)
    exclude: tuple[ExclusionRule, ...] = ()

    @classmethod
    def from_format(
        cls,
        fmt: str,
        *,
        date: str = "",
        time: str = "",
        datetime: str = "",
        exclude: Sequence[ExclusionRule] = (),
    ) -> PatternParser:
        """Build a parser from a format string or a NAMED_FORMATS preset."""
        preset = NAMED_FORMATS.get(fmt)
        if preset is not None:
            fmt, default_datetime = preset
            datetime = datetime or default_datetime
        elif "$" not in fmt:
            raise FormatError(f"unknown format: {fmt}")

        layouts = {"date": date, "time": time, "datetime": datetime}
        regex = compile_format(fmt, layouts)
        used = {name: layouts[name] for name in TIME_CAPTURES if name in regex.groupindex}
        return cls(regex=regex, layouts=MappingProxyType(used), exclude=tuple(exclude))

    @property
    def names(self) -> tuple[str, ...]:
        """Capture names in pattern order."""
        return tuple(self.regex.groupindex)

    def parse(self, line: str) -> FieldMap | None:
        """Extract captures from a line; return None if an exclusion rule drops it."""
        values: dict[str, str] = {}
        m = self.regex.fullmatch(line)
        if m is not None:
            for name, value in m.groupdict().items():
                if value is None:
                    continue
                # "-" is the usual placeholder for a blank value.
                values[name] = "" if value == "-" else value

        record = FieldMap(values=MappingProxyType(values))
        if is_excluded(record, self.exclude):
            return None
        return record

    def timestamp(self, record: FieldMap) -> datetime:
        """Return the record's instant in UTC; raises TimestampError."""
        return from_captures(record.values, self.layouts)
