"""Datetime normalization.

Turns the raw timestamp data decoded by either backend into a timezone-aware
UTC ``datetime``. Layout strings are ``strptime`` directive strings.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from .errors import FormatError, TimestampError
from .models import EPOCH, ZERO_TIME

UNIX_SECONDS_FLOAT = "unix_seconds_float"
UNIX_MILLI_FLOAT = "unix_milli_float"
UNIX_NANO = "unix_nano"

# Caddy time_format names that have a strptime equivalent.
NAMED_LAYOUTS: Mapping[str, str] = {
    "iso8601": "%Y-%m-%dT%H:%M:%S.%f%z",
    "rfc3339": "%Y-%m-%dT%H:%M:%S%z",
    "wall": "%Y/%m/%d %H:%M:%S",
    "wall_milli": "%Y/%m/%d %H:%M:%S.%f",
    "common_log": "%d/%b/%Y:%H:%M:%S %z",
}

# Rendered with a layout and parsed back to smoke-test it.
_REFERENCE = datetime(2006, 1, 2, 15, 4, 5, 123456, tzinfo=UTC)

# Capture names that carry a timestamp, in lookup order.
TIME_CAPTURES: tuple[str, ...] = ("date", "time", "datetime")


def resolve_layout(datetime_format: str) -> str:
    """Map a named layout to its strptime string; other values pass through."""
    return NAMED_LAYOUTS.get(datetime_format, datetime_format)


def check_layout(name: str, layout: str) -> None:
    """Reject an empty layout or one that cannot parse its own output."""
    if not layout:
        raise FormatError(f"${name} used but the {name} layout is empty")
    try:
        datetime.strptime(_REFERENCE.strftime(layout), layout)
    except ValueError as exc:
        raise FormatError(f"invalid {name} layout {layout!r}: {exc}") from exc


def parse_layout(value: str, layout: str) -> datetime:
    """Parse ``value`` with ``layout``; naive results are taken as UTC."""
    ts = datetime.strptime(value, layout)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def _from_unix(seconds: float) -> datetime:
    frac, sec = math.modf(seconds)
    nanos = int(frac * 1e9)
    return EPOCH + timedelta(seconds=int(sec), microseconds=int(nanos / 1000))


def _as_number(raw: object, datetime_format: str) -> float:
    # bool is an int subclass but never a valid timestamp.
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise TimestampError(f"{datetime_format} timestamp must be a number, got {raw!r}")
    return float(raw)


def from_caddy_ts(raw: object, datetime_format: str = "") -> datetime:
    """Decode a Caddy ``ts`` value according to the configured selector.

    - ``""``/``unix_seconds_float``: float seconds since the epoch.
    - ``unix_milli_float``: float milliseconds; divided by 1000 before the
      integer/fraction split.
    - ``unix_nano``: divided by 1000 and read as microseconds since the epoch.
    - anything else: a layout (or named layout) applied to a string ``ts``.

    Raises TimestampError (with ``fallback`` set to the epoch) on failure.
    """
    if datetime_format in ("", UNIX_SECONDS_FLOAT, UNIX_MILLI_FLOAT, UNIX_NANO):
        seconds = _as_number(raw, datetime_format or UNIX_SECONDS_FLOAT)
        try:
            if datetime_format == UNIX_MILLI_FLOAT:
                return _from_unix(seconds / 1000)
            if datetime_format == UNIX_NANO:
                return EPOCH + timedelta(microseconds=int(seconds / 1000))
            return _from_unix(seconds)
        except (OverflowError, ValueError) as exc:
            # non-finite, or outside the datetime range
            raise TimestampError(f"timestamp {raw!r} is out of range") from exc

    layout = resolve_layout(datetime_format)
    if not isinstance(raw, str):
        raise TimestampError(f"timestamp for layout {layout!r} must be a string, got {raw!r}")
    try:
        return parse_layout(raw, layout)
    except (OverflowError, ValueError) as exc:
        raise TimestampError(f"cannot parse timestamp {raw!r} with {layout!r}: {exc}") from exc


def from_captures(captures: Mapping[str, str], layouts: Mapping[str, str]) -> datetime:
    """Decode the first present of the date/time/datetime captures.

    Returns ZERO_TIME when none of them were captured.
    """
    for name in TIME_CAPTURES:
        if name not in captures:
            continue
        value = captures[name]
        layout = layouts.get(name, "")
        try:
            return parse_layout(value, layout)
        except (OverflowError, ValueError) as exc:
            raise TimestampError(f"cannot parse ${name} {value!r} with {layout!r}: {exc}") from exc
    return ZERO_TIME
