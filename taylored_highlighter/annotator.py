"""Map parsed diff hunks onto line annotations of the current file content.

Consecutive changes of the same kind are collapsed into one block whose
annotation sits on a single zero-based line of the *new* file version:

* an ``add`` run is anchored on its first added line;
* a ``delete`` run is anchored on the line that now occupies the position
  where the removed lines used to be (the new-file counter captured before
  the run, minus one).

Anchors that would be negative are dropped. When two blocks want the same
line for the same kind, the first one processed wins and the later one is
discarded silently.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, Iterable, Optional, TypeVar

from .models import (
    Annotation,
    AnnotationKind,
    ChangeKind,
    DiffFileEntry,
    Hunk,
    LineCounters,
    TargetAnnotations,
)

logger = logging.getLogger(__name__)

TargetKey = TypeVar("TargetKey", bound=Hashable)

__all__ = ["annotate", "annotate_entry", "annotate_hunk"]


def annotate_hunk(
    hunk: Hunk, source_label: str, target: TargetAnnotations
) -> LineCounters:
    """Record the blocks of ``hunk`` into ``target`` and return the final counters."""

    counters = LineCounters(old_line=hunk.old_start, new_line=hunk.new_start)
    changes = hunk.changes
    total = len(changes)
    index = 0

    while index < total:
        kind = changes[index].kind

        if kind is ChangeKind.CONTEXT:
            counters.old_line += 1
            counters.new_line += 1
            index += 1
            continue

        anchor = counters.new_line - 1
        block_length = 0
        while index < total and changes[index].kind is kind:
            if kind is ChangeKind.ADD:
                counters.new_line += 1
            else:
                counters.old_line += 1
            block_length += 1
            index += 1

        if anchor < 0:
            logger.debug(
                "Discarding %s block of %s line(s) from %s with negative anchor",
                kind.value,
                block_length,
                source_label,
            )
            continue

        annotation_kind = (
            AnnotationKind.ADDED if kind is ChangeKind.ADD else AnnotationKind.REMOVED
        )
        recorded = target.record(
            annotation_kind,
            Annotation(line=anchor, block_length=block_length, source_label=source_label),
        )
        if not recorded:
            logger.debug(
                "Line %s already carries a %s annotation; skipping block from %s",
                anchor,
                annotation_kind.value,
                source_label,
            )

    return counters


def annotate_entry(entry: DiffFileEntry, target: TargetAnnotations) -> None:
    """Annotate every hunk of ``entry`` in source order."""

    for hunk in entry.hunks:
        annotate_hunk(hunk, entry.source_label, target)


def _target_path(entry: DiffFileEntry) -> Optional[str]:
    return entry.target_path


def annotate(
    entries: Iterable[DiffFileEntry],
    resolve: Optional[Callable[[DiffFileEntry], Optional[TargetKey]]] = None,
) -> Dict[TargetKey, TargetAnnotations]:
    """Return the annotation sets of every resolved target in ``entries``.

    ``resolve`` maps an entry to the key of its target file (for instance a
    concrete :class:`~pathlib.Path`); entries it maps to ``None`` are skipped.
    By default the raw target path of the entry is used. Entries pointing at
    the "no file" sentinel never contribute annotations.
    """

    resolver = resolve if resolve is not None else _target_path
    results: Dict[TargetKey, TargetAnnotations] = {}

    for entry in entries:
        if entry.target_path is None:
            continue
        key = resolver(entry)  # type: ignore[arg-type]
        if key is None:
            continue
        target = results.get(key)  # type: ignore[arg-type]
        if target is None:
            target = TargetAnnotations()
            results[key] = target  # type: ignore[index]
        annotate_entry(entry, target)

    return results
