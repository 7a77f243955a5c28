"""Access-log backends.

Contains the Caddy JSON backend and the free-form pattern backend.
"""

from __future__ import annotations

from .base import AccessLine, LineParser, canonical_fields
from .caddy import CaddyHeaders, CaddyLogEntry, CaddyParser, CaddyRequest
from .pattern import FORMAT_FRAGMENTS, NAMED_FORMATS, FieldMap, PatternParser, compile_format

__all__ = [
    "AccessLine",
    "CaddyHeaders",
    "CaddyLogEntry",
    "CaddyParser",
    "CaddyRequest",
    "FORMAT_FRAGMENTS",
    "FieldMap",
    "LineParser",
    "NAMED_FORMATS",
    "PatternParser",
    "canonical_fields",
    "compile_format",
]
