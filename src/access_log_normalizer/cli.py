from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from access_log_normalizer.core.config import ParserSettings, build_parser
from access_log_normalizer.core.formats import LineParser, canonical_fields
from access_log_normalizer.core.scanner import ScannedLine, ScanStats, iter_lines

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    level_name = os.getenv("ACCESS_LOG_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _line_to_dict(line: ScannedLine) -> dict[str, Any]:
    d: dict[str, Any] = {"line_no": line.line_no}
    d.update(canonical_fields(line.record))
    d["timing_ms"] = line.record.timing.total_seconds() * 1000
    d["datetime"] = line.timestamp.isoformat()
    return d


async def _run(path: Path, parser: LineParser, *, limit: int | None, stats: ScanStats) -> int:
    count = 0
    async for line in iter_lines(path, parser, stats=stats):
        print(json.dumps(_line_to_dict(line)))
        count += 1
        if limit is not None and count >= limit:
            break
    return count


def main(argv: Sequence[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Normalize access-log lines into canonical JSON records.")
    p.add_argument("log_path")
    p.add_argument(
        "--format",
        default=None,
        help="'caddy', a preset (common, common-vhost, combined, combined-vhost) "
        "or a $placeholder format string. Default: combined",
    )
    p.add_argument("--date", default=None, help="strptime layout for $date")
    p.add_argument("--time", default=None, help="strptime layout for $time")
    p.add_argument("--datetime", default=None, help="strptime layout for $datetime")
    p.add_argument(
        "--datetime-format",
        default=None,
        help="Caddy ts decoding: unix_seconds_float (default), unix_milli_float, unix_nano or a layout",
    )
    p.add_argument(
        "--exclude",
        action="append",
        default=None,
        help="Exclusion rule [!]field:[glob:|re:]pattern, or 'static'/'redirect'. Repeatable.",
    )
    p.add_argument("--limit", type=int, default=None, help="Stop after N records (default: no cap)")

    args = p.parse_args(argv)
    _configure_logging()

    try:
        settings = ParserSettings.from_env(
            format=args.format,
            date=args.date,
            time=args.time,
            datetime=args.datetime,
            datetime_format=args.datetime_format,
            exclude=args.exclude,
        )
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    stats = ScanStats()
    try:
        parser = build_parser(settings)
        count = asyncio.run(_run(Path(args.log_path), parser, limit=args.limit, stats=stats))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    print(
        f"\n{count} records ({stats.skipped} excluded, {stats.failed} failed).",
        file=sys.stderr,
    )


if __name__ == "__main__":
    main()
