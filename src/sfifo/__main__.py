"""Allow ``python -m sfifo``."""

from __future__ import annotations

from sfifo.cli import main

if __name__ == "__main__":
    main()
