"""Resolve paths referenced by patch files to files of the current workspace."""

from __future__ import annotations

import logging
import os
import re
import time
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import DefaultDict, Iterable, Optional, Sequence

from .models import NO_FILE

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = ("node_modules", ".git")

_DIFF_PREFIX_RE = re.compile(r"^[ab]/")


def clean_diff_path(raw_path: str) -> str:
    """Strip whitespace and the conventional ``a/``/``b/`` diff prefix."""

    return _DIFF_PREFIX_RE.sub("", raw_path.strip(), count=1)


@dataclass
class FileIndexMetrics:
    """Statistics collected while building the file index."""

    build_duration: float = 0.0
    scanned_files: int = 0
    skipped_directories: int = 0


def _normalize_excludes(exclude_dirs: Sequence[str]) -> list[tuple[str, ...]]:
    normalized: list[tuple[str, ...]] = []
    for raw in exclude_dirs:
        if not raw:
            continue
        parts = tuple(part for part in Path(raw).parts if part not in ("", "."))
        if parts:
            normalized.append(parts)
    return normalized


class FileIndex:
    """Index of workspace files keyed by their path suffixes."""

    def __init__(self, project_root: Path, exclude_dirs: Sequence[str]):
        self.project_root = project_root
        self.exclude_dirs = tuple(exclude_dirs)
        self._normalized_excludes = _normalize_excludes(exclude_dirs)
        self.metrics = FileIndexMetrics()
        self._suffix_map: DefaultDict[tuple[str, ...], list[Path]] = defaultdict(list)
        self._build()

    def lookup(self, rel_path: str) -> list[Path]:
        """Return files whose trailing path components equal ``rel_path``.

        Shallower files come first, ties are broken alphabetically.
        """

        parts = tuple(part for part in Path(rel_path.strip()).parts if part not in ("", "/"))
        if not parts:
            return []
        matches = self._suffix_map.get(parts, [])
        return sorted(matches, key=lambda path: (len(path.parts), str(path)))

    def _build(self) -> None:
        start = time.perf_counter()
        root = self.project_root
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            current = Path(dirpath)
            try:
                relative_parts = current.relative_to(root).parts
            except ValueError:
                relative_parts = ()

            keep_dirs: list[str] = []
            for dirname in dirnames:
                if self._should_exclude(relative_parts + (dirname,)):
                    self.metrics.skipped_directories += 1
                    continue
                keep_dirs.append(dirname)
            dirnames[:] = sorted(keep_dirs)

            for filename in filenames:
                path = current / filename
                parts = relative_parts + (filename,)
                self.metrics.scanned_files += 1
                for depth in range(1, len(parts) + 1):
                    self._suffix_map[parts[-depth:]].append(path)

        self.metrics.build_duration = time.perf_counter() - start
        logger.debug(
            "Indexed %s file(s) under %s in %.3fs (%s director(ies) skipped)",
            self.metrics.scanned_files,
            root,
            self.metrics.build_duration,
            self.metrics.skipped_directories,
        )

    def _should_exclude(self, parts: Iterable[str]) -> bool:
        if not self._normalized_excludes:
            return False
        tuple_parts = tuple(parts)
        for pattern in self._normalized_excludes:
            window = len(pattern)
            for idx in range(len(tuple_parts) - window + 1):
                if tuple_parts[idx : idx + window] == pattern:
                    return True
        return False


class PathResolver:
    """Resolve a diff path to a concrete file, or ``None`` when not found.

    Lookup order: relative to the workspace root, then as an absolute path,
    then the first match of ``**/<path>`` outside the excluded directories.
    Found paths are returned resolved, so every spelling of one file maps to
    the same key.
    """

    def __init__(
        self,
        workspace_root: Path,
        exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
    ) -> None:
        self.workspace_root = workspace_root
        self.exclude_dirs = tuple(exclude_dirs)
        self._index: FileIndex | None = None

    @property
    def index(self) -> FileIndex:
        if self._index is None:
            self._index = FileIndex(self.workspace_root, self.exclude_dirs)
        return self._index

    def resolve(self, raw_path: Optional[str]) -> Optional[Path]:
        if not raw_path or raw_path.strip() == NO_FILE:
            return None
        cleaned = clean_diff_path(raw_path)
        if not cleaned:
            return None

        candidate = self.workspace_root / cleaned
        if candidate.is_file():
            return candidate.resolve()

        as_path = Path(cleaned)
        if as_path.is_absolute() and as_path.is_file():
            return as_path.resolve()

        matches = self.index.lookup(cleaned.lstrip("/"))
        if matches:
            return matches[0].resolve()

        logger.debug("File not found: %s (relative to %s)", cleaned, self.workspace_root)
        return None


__all__ = [
    "DEFAULT_EXCLUDE_DIRS",
    "FileIndex",
    "FileIndexMetrics",
    "PathResolver",
    "clean_diff_path",
]
