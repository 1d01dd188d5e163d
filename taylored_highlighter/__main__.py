"""Command-line entry point for Taylored Highlighter."""

from __future__ import annotations

import sys

from .cli import main


def run() -> None:
    """Entry point used by the ``taylored-highlighter`` console script."""

    sys.exit(main())


if __name__ == "__main__":
    run()
