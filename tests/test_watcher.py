from __future__ import annotations

import threading
from pathlib import Path
from typing import List

from taylored_highlighter.watcher import (
    PatchDirectoryWatcher,
    WatchEvent,
    WatchEventKind,
)


def _kinds(events: List[WatchEvent]) -> List[tuple[WatchEventKind, str]]:
    return [(event.kind, event.path.name) for event in events]


def test_poll_reports_created_modified_deleted(tmp_path: Path) -> None:
    patch_dir = tmp_path / ".taylored"
    patch_dir.mkdir()
    existing = patch_dir / "a.taylored"
    existing.write_text("one", encoding="utf-8")
    doomed = patch_dir / "b.taylored"
    doomed.write_text("two", encoding="utf-8")
    watcher = PatchDirectoryWatcher(patch_dir)

    assert watcher.poll() == []

    existing.write_text("one plus more", encoding="utf-8")
    doomed.unlink()
    (patch_dir / "c.taylored").write_text("three", encoding="utf-8")

    assert _kinds(watcher.poll()) == [
        (WatchEventKind.MODIFIED, "a.taylored"),
        (WatchEventKind.DELETED, "b.taylored"),
        (WatchEventKind.CREATED, "c.taylored"),
    ]
    assert watcher.poll() == []


def test_poll_ignores_other_extensions(tmp_path: Path) -> None:
    patch_dir = tmp_path / ".taylored"
    patch_dir.mkdir()
    watcher = PatchDirectoryWatcher(patch_dir)

    (patch_dir / "notes.md").write_text("x", encoding="utf-8")

    assert watcher.poll() == []


def test_missing_directory_appears_later(tmp_path: Path) -> None:
    patch_dir = tmp_path / ".taylored"
    watcher = PatchDirectoryWatcher(patch_dir)

    assert watcher.poll() == []

    patch_dir.mkdir()
    (patch_dir / "new.taylored").write_text("x", encoding="utf-8")

    assert _kinds(watcher.poll()) == [(WatchEventKind.CREATED, "new.taylored")]


def test_extra_paths_are_watched(tmp_path: Path) -> None:
    settings = tmp_path / "settings.toml"
    watcher = PatchDirectoryWatcher(tmp_path / ".taylored", extra_paths=[settings])

    settings.write_text('theme = "dark"\n', encoding="utf-8")

    assert watcher.poll() == [WatchEvent(WatchEventKind.CREATED, settings)]


def test_run_stops_when_event_is_set(tmp_path: Path) -> None:
    patch_dir = tmp_path / ".taylored"
    patch_dir.mkdir()
    watcher = PatchDirectoryWatcher(patch_dir)
    stop_event = threading.Event()
    batches: List[List[WatchEvent]] = []

    def on_events(events: List[WatchEvent]) -> None:
        batches.append(events)
        stop_event.set()

    (patch_dir / "x.taylored").write_text("x", encoding="utf-8")
    thread = threading.Thread(
        target=watcher.run,
        args=(on_events,),
        kwargs={"interval": 0.01, "stop_event": stop_event},
    )
    thread.start()
    thread.join(timeout=10)

    assert not thread.is_alive()
    assert _kinds(batches[0]) == [(WatchEventKind.CREATED, "x.taylored")]
