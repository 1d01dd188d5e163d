"""Human-readable overviews of scan results."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from .localization import gettext as _
from .scanner import ScanResult
from .utils import display_relative_path

_MAX_LISTED = 5


def _format_listing(items: Sequence[str], separator: str = ", ") -> str:
    if not items:
        return _("(none)")
    shown = list(items[:_MAX_LISTED])
    if len(items) > len(shown):
        shown.append(_("… (+{count} more)").format(count=len(items) - len(shown)))
    return separator.join(shown)


def _file_label(path: Path, result: ScanResult) -> str:
    annotations = result.annotations[path]
    return _("{name} (+{added}/-{removed})").format(
        name=display_relative_path(path, result.workspace_root),
        added=len(annotations.added),
        removed=len(annotations.removed),
    )


def build_local_summary(result: ScanResult) -> str:
    """Produce a concise textual overview of ``result``."""

    highlighted = [
        path for path, annotations in sorted(result.annotations.items())
        if not annotations.is_empty
    ]
    added_blocks = sum(len(item.added) for item in result.annotations.values())
    removed_blocks = sum(len(item.removed) for item in result.annotations.values())

    lines = [
        _("Highlight summary"),
        _("Patch files processed: {count}").format(count=len(result.patch_files)),
        _("Files with highlights: {count}").format(count=len(highlighted)),
        _("Added blocks: {count}").format(count=added_blocks),
        _("Removed blocks: {count}").format(count=removed_blocks),
        _("Highlighted files: {details}").format(
            details=_format_listing([_file_label(path, result) for path in highlighted])
        ),
        _("Failed patch files: {details}").format(
            details=_format_listing(
                [
                    _("{name} – {reason}").format(
                        name=error.patch_file.name, reason=error.message
                    )
                    for error in result.errors
                ],
                separator="; ",
            )
        ),
        _("Missing source files: {details}").format(
            details=_format_listing(
                [
                    _("{path} (from {source})").format(
                        path=item.path, source=item.source_label
                    )
                    for item in result.unresolved
                ]
            )
        ),
    ]

    if not result.patch_files:
        lines.append(_("No patch files found to process."))
    elif not highlighted:
        lines.append(_("No applicable changes found in patch files to highlight."))

    return "\n".join(lines)


__all__ = ["build_local_summary"]
