"""Poll the patch directory (and settings file) for changes that require a rescan."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

_Stamp = Tuple[int, int]


class WatchEventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class WatchEvent:
    kind: WatchEventKind
    path: Path


WatchCallback = Callable[[List[WatchEvent]], None]


def _stamp(path: Path) -> Optional[_Stamp]:
    try:
        stat = path.stat()
    except OSError:
        return None
    return stat.st_mtime_ns, stat.st_size


class PatchDirectoryWatcher:
    """Detect created, modified and deleted patch files between two polls.

    ``extra_paths`` are individual files (typically the settings file) whose
    changes are reported the same way.
    """

    def __init__(
        self,
        directory: Path,
        extension: str = ".taylored",
        *,
        extra_paths: Sequence[Path] = (),
    ) -> None:
        self.directory = directory
        self.extension = extension
        self.extra_paths = tuple(extra_paths)
        self._snapshot: Dict[Path, _Stamp] = self._take_snapshot()

    def _candidates(self) -> Iterable[Path]:
        try:
            children = list(self.directory.iterdir())
        except OSError:
            children = []
        for child in children:
            if child.name.endswith(self.extension) and child.is_file():
                yield child
        yield from self.extra_paths

    def _take_snapshot(self) -> Dict[Path, _Stamp]:
        snapshot: Dict[Path, _Stamp] = {}
        for path in self._candidates():
            stamp = _stamp(path)
            if stamp is not None:
                snapshot[path] = stamp
        return snapshot

    def poll(self) -> List[WatchEvent]:
        """Return the changes since the previous poll, sorted by path."""

        current = self._take_snapshot()
        previous = self._snapshot
        events: List[WatchEvent] = []
        for path in sorted(set(previous) | set(current)):
            before = previous.get(path)
            after = current.get(path)
            if before is None:
                events.append(WatchEvent(WatchEventKind.CREATED, path))
            elif after is None:
                events.append(WatchEvent(WatchEventKind.DELETED, path))
            elif before != after:
                events.append(WatchEvent(WatchEventKind.MODIFIED, path))
        self._snapshot = current
        for event in events:
            logger.debug("Patch watcher: %s %s", event.kind.value, event.path)
        return events

    def run(
        self,
        callback: WatchCallback,
        *,
        interval: float = 1.0,
        stop_event: threading.Event,
    ) -> None:
        """Poll every ``interval`` seconds until ``stop_event`` is set."""

        while not stop_event.wait(interval):
            events = self.poll()
            if events:
                callback(events)


__all__ = [
    "PatchDirectoryWatcher",
    "WatchCallback",
    "WatchEvent",
    "WatchEventKind",
]
