from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

CADDY_LINE: dict[str, Any] = {
    "level": "info",
    "ts": 1706797921.656359195,
    "logger": "http.log.access",
    "msg": "handled request",
    "request": {
        "remote_ip": "1.2.3.4",
        "remote_port": "5678",
        "remote_addr": "1.2.3.4:5678",
        "proto": "HTTP/1.1",
        "method": "GET",
        "host": "host.example.com",
        "uri": "/absolute_uri.html?queryparam=value",
        "headers": {
            "User-Agent": ["This is the user agent"],
            "Referer": ["https://another.example.com/", "https://ignored.example.com/"],
            "Accept-Language": ["en"],
        },
    },
    "duration": 0.001234567,
    "size": 2803,
    "status": 200,
    "resp_headers": {"Content-Type": ["text/html; charset=utf-8"]},
}

COMBINED_LINES = [
    '127.0.0.1 - - [10/Oct/2000:13:55:36 -0700] "GET /apache_pb.gif HTTP/1.0" 200 2326 '
    '"http://www.example.com/start.html" "Mozilla/4.08 [en] (Win98; I ;Nav)"',
    '10.0.0.2 - frank [10/Oct/2000:13:55:37 -0700] "POST /login HTTP/1.1" 302 - "-" "curl/8.5.0"',
    '10.0.0.3 - - [10/Oct/2000:13:55:38 -0700] "GET /robots.txt HTTP/1.1" 404 153 "-" "Googlebot/2.1"',
]


@pytest.fixture
def caddy_line() -> Callable[..., str]:
    """Return a Caddy JSON line, optionally with top-level keys overridden."""

    def _line(**overrides: Any) -> str:
        obj = json.loads(json.dumps(CADDY_LINE))
        obj.update(overrides)
        return json.dumps(obj)

    return _line


@pytest.fixture
def write_lines() -> Callable[[Path, list[str]], None]:
    def _write(path: Path, lines: list[str]) -> None:
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    return _write


@pytest.fixture
def combined_lines() -> list[str]:
    return list(COMBINED_LINES)
