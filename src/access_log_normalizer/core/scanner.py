"""Read a log file and yield normalized records.

This is a thin line-supply loop around a LineParser: it reads plain or gzip
files, hands every non-blank line to the parser and keeps counters.
"""

from __future__ import annotations

import gzip
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiofiles
from aiofiles.threadpool import wrap

from .errors import LineDecodeError, TimestampError
from .formats import AccessLine, LineParser

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScannedLine:
    """A normalized record with its source line number and instant."""

    line_no: int
    record: AccessLine
    timestamp: datetime


@dataclass(slots=True)
class ScanStats:
    """Per-scan counters."""

    lines: int = 0
    parsed: int = 0
    skipped: int = 0
    failed: int = 0
    bad_timestamps: int = 0


@asynccontextmanager
async def _open_text(path: Path, *, encoding: str, decode_errors: str):
    """Open a log file for async text reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


async def _enumerate_async(iterable, start: int = 0):
    """Async enumerate helper for async iterators."""
    index = start
    async for item in iterable:
        yield index, item
        index += 1


async def iter_lines(
    log_path: str | Path,
    parser: LineParser,
    *,
    stats: ScanStats | None = None,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
) -> AsyncIterator[ScannedLine]:
    """Yield a ScannedLine for every line the parser keeps.

    Excluded lines are counted as skipped; undecodable lines are counted as
    failed and logged. A timestamp that cannot be decoded is replaced by the
    error's fallback instant.
    """
    path = Path(log_path)
    if not path.is_file():
        raise FileNotFoundError(f"Log file not found: {path}")

    stats = stats if stats is not None else ScanStats()

    async with _open_text(path, encoding=encoding, decode_errors=decode_errors) as f:
        async for line_no, line in _enumerate_async(f, start=1):
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            stats.lines += 1

            try:
                record = parser.parse(line)
            except LineDecodeError:
                stats.failed += 1
                LOGGER.debug("Line %d of %s could not be decoded", line_no, path)
                continue
            if record is None:
                stats.skipped += 1
                continue

            try:
                ts = parser.timestamp(record)
            except TimestampError as exc:
                stats.bad_timestamps += 1
                LOGGER.warning("Line %d of %s: %s", line_no, path, exc)
                ts = exc.fallback

            stats.parsed += 1
            yield ScannedLine(line_no=line_no, record=record, timestamp=ts)

    LOGGER.debug(
        "Scanned %s: lines=%d parsed=%d skipped=%d failed=%d",
        path,
        stats.lines,
        stats.parsed,
        stats.skipped,
        stats.failed,
    )


async def collect_lines(log_path: str | Path, parser: LineParser, **kwargs) -> list[ScannedLine]:
    """Collect iter_lines into a list."""
    return [line async for line in iter_lines(log_path, parser, **kwargs)]
