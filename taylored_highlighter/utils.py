"""Utility helpers shared by the scanner, CLI and GUI."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Tuple

from charset_normalizer import from_bytes

APP_NAME = "Taylored Highlighter"
PATCH_DIR = ".taylored"
PATCH_EXTENSION = ".taylored"

_BOM_PREFIXES = [
    (b"\xef\xbb\xbf", "utf-8-sig"),
    (b"\xff\xfe", "utf-16"),
    (b"\xfe\xff", "utf-16"),
]


def detect_encoding(data: bytes) -> Tuple[str, bool]:
    """Return the detected encoding for ``data`` and whether it was a fallback."""

    for bom, encoding in _BOM_PREFIXES:
        if data.startswith(bom):
            try:
                data.decode(encoding)
            except (LookupError, UnicodeDecodeError):
                continue
            return encoding, False

    if not data:
        return "utf-8", False

    match = from_bytes(data).best()
    if match is not None and match.encoding:
        encoding = match.encoding
        try:
            data.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            pass
        else:
            return encoding, False

    return "utf-8", True


def decode_bytes(data: bytes) -> Tuple[str, str, bool]:
    """Decode ``data`` and return the text, encoding, and fallback flag."""

    encoding, used_fallback = detect_encoding(data)
    if used_fallback:
        text = data.decode(encoding, errors="replace")
    else:
        text = data.decode(encoding)
    return text, encoding, used_fallback


def normalize_newlines(text: str) -> str:
    """Turn ``"\r\n"`` line endings into ``"\n"``.

    A lone ``"\r"`` is line content, not a line break, and is kept.
    """

    return text.replace("\r\n", "\n")


def display_path(path: Path | str) -> str:
    """Return ``path`` with the home directory collapsed to ``~`` when possible."""

    candidate = Path(path)
    try:
        relative = candidate.expanduser().resolve().relative_to(Path.home().resolve())
    except (ValueError, OSError, RuntimeError):
        return str(candidate)
    return str(Path("~") / relative) if relative.parts else "~"


def display_relative_path(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` using forward slashes when possible."""

    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except (ValueError, OSError):
        return os.fspath(path)


__all__ = [
    "APP_NAME",
    "PATCH_DIR",
    "PATCH_EXTENSION",
    "decode_bytes",
    "detect_encoding",
    "display_path",
    "display_relative_path",
    "normalize_newlines",
]
