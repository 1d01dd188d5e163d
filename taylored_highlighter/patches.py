"""Loading and parsing of patch files into :mod:`~taylored_highlighter.models` entries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from unidiff import PatchSet
from unidiff.constants import LINE_TYPE_ADDED, LINE_TYPE_CONTEXT, LINE_TYPE_REMOVED
from unidiff.errors import UnidiffParseError
from unidiff.patch import Hunk as UnidiffHunk

from .localization import gettext as _
from .models import Change, ChangeKind, DiffFileEntry, Hunk
from .utils import decode_bytes, normalize_newlines

logger = logging.getLogger(__name__)

__all__ = [
    "PatchParseError",
    "entries_from_patchset",
    "load_patch_file",
    "parse_patch_text",
]

_LINE_KINDS = {
    LINE_TYPE_ADDED: ChangeKind.ADD,
    LINE_TYPE_REMOVED: ChangeKind.DELETE,
    LINE_TYPE_CONTEXT: ChangeKind.CONTEXT,
    "": ChangeKind.CONTEXT,
}


class PatchParseError(Exception):
    """Raised when a patch file cannot be read or is not a valid unified diff."""

    def __init__(self, source_label: str, message: str) -> None:
        super().__init__(message)
        self.source_label = source_label
        self.message = message

    def __str__(self) -> str:
        return f"{self.source_label}: {self.message}"


def _convert_hunk(hunk: UnidiffHunk) -> Hunk:
    changes: List[Change] = []
    for line in hunk:
        kind = _LINE_KINDS.get(line.line_type)
        if kind is None:
            # "\ No newline at end of file" markers are not changes.
            continue
        changes.append(Change(kind=kind, content=line.value))
    return Hunk(
        old_start=hunk.source_start,
        new_start=hunk.target_start,
        changes=tuple(changes),
    )


def entries_from_patchset(patch: PatchSet, source_label: str) -> List[DiffFileEntry]:
    """Convert a parsed :class:`unidiff.PatchSet` into diff file entries."""

    entries: List[DiffFileEntry] = []
    for patched_file in patch:
        hunks = tuple(_convert_hunk(hunk) for hunk in patched_file)
        entries.append(
            DiffFileEntry(
                old_path=patched_file.source_file,
                new_path=patched_file.target_file,
                hunks=hunks,
                source_label=source_label,
            )
        )
    return entries


def parse_patch_text(text: str, source_label: str) -> List[DiffFileEntry]:
    """Parse unified-diff ``text``; blank content yields no entries."""

    normalized = normalize_newlines(text)
    if not normalized.strip():
        return []
    try:
        patch = PatchSet(normalized)
    except UnidiffParseError as exc:
        raise PatchParseError(source_label, str(exc)) from exc
    return entries_from_patchset(patch, source_label)


def load_patch_file(path: Path) -> List[DiffFileEntry]:
    """Read ``path``, detect its encoding, and parse it into diff file entries."""

    label = path.name
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise PatchParseError(
            label, _("Cannot read {path}: {error}").format(path=path, error=exc)
        ) from exc

    text, encoding, used_fallback = decode_bytes(raw)
    if used_fallback:
        logger.warning(
            _(
                "Decoded patch %s using fallback UTF-8 (original encoding %s); "
                "the content may contain substituted characters."
            ),
            label,
            encoding,
        )
    return parse_patch_text(text, label)
