"""Taylored Highlighter package initialization."""

from __future__ import annotations

from typing import Sequence

from ._version import __version__

__all__ = ["main", "__version__"]


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point that dispatches to the CLI/GUI implementation."""

    from .cli import main as _main

    return _main(argv)
