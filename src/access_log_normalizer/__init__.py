"""Normalize access-log lines from Caddy JSON and free-form formats."""

from __future__ import annotations

__version__ = "0.1.0"
