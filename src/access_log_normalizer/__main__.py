"""Module entrypoint.

Allows:
    python -m access_log_normalizer
"""

from __future__ import annotations

from access_log_normalizer.cli import main

if __name__ == "__main__":
    main()
