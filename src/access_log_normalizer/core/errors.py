"""Exceptions raised by the normalization core."""

from __future__ import annotations

from datetime import datetime

from .models import EPOCH


class FormatError(ValueError):
    """A format string or layout string was rejected at construction time."""


class LineDecodeError(ValueError):
    """A structured log line could not be decoded."""

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line


class TimestampError(ValueError):
    """A record's timestamp could not be decoded.

    ``fallback`` holds the instant callers may use when they only care about
    the rest of the record.
    """

    def __init__(self, message: str, fallback: datetime = EPOCH) -> None:
        super().__init__(message)
        self.fallback = fallback
