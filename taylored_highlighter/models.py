"""Data structures describing parsed patches and the annotations derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

NO_FILE = "/dev/null"


class ChangeKind(str, Enum):
    """Kind of a single diff line."""

    CONTEXT = "context"
    ADD = "add"
    DELETE = "delete"


class AnnotationKind(str, Enum):
    """Kind of block an annotation stands for."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class Change:
    kind: ChangeKind
    content: str = ""


@dataclass(frozen=True)
class Hunk:
    """Ordered changes starting at 1-based ``old_start``/``new_start``."""

    old_start: int
    new_start: int
    changes: Tuple[Change, ...] = ()


@dataclass(frozen=True)
class DiffFileEntry:
    """One file section of a patch, labelled with the patch file it came from."""

    old_path: Optional[str]
    new_path: Optional[str]
    hunks: Tuple[Hunk, ...] = ()
    source_label: str = ""

    @property
    def target_path(self) -> Optional[str]:
        """Return the path annotations belong to, or ``None`` for the sentinel."""

        raw = self.new_path or self.old_path
        if not raw or raw.strip() == NO_FILE:
            return None
        return raw


@dataclass
class LineCounters:
    """1-based line numbers the next change would occupy in each file version."""

    old_line: int
    new_line: int


@dataclass(frozen=True)
class Annotation:
    line: int
    block_length: int
    source_label: str


@dataclass
class TargetAnnotations:
    """Added/removed annotations of one target file keyed by zero-based line."""

    added: Dict[int, Annotation] = field(default_factory=dict)
    removed: Dict[int, Annotation] = field(default_factory=dict)

    def record(self, kind: AnnotationKind, annotation: Annotation) -> bool:
        """Store ``annotation`` unless its line is already taken for ``kind``."""

        bucket = self.added if kind is AnnotationKind.ADDED else self.removed
        if annotation.line in bucket:
            return False
        bucket[annotation.line] = annotation
        return True

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def to_json(self) -> dict[str, object]:
        return {
            "added": [
                {
                    "line": item.line,
                    "block_length": item.block_length,
                    "source": item.source_label,
                }
                for item in sorted(self.added.values(), key=lambda a: a.line)
            ],
            "removed": [
                {
                    "line": item.line,
                    "block_length": item.block_length,
                    "source": item.source_label,
                }
                for item in sorted(self.removed.values(), key=lambda a: a.line)
            ],
        }


__all__ = [
    "NO_FILE",
    "Annotation",
    "AnnotationKind",
    "Change",
    "ChangeKind",
    "DiffFileEntry",
    "Hunk",
    "LineCounters",
    "TargetAnnotations",
]
