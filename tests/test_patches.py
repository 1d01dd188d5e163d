from __future__ import annotations

import logging
from pathlib import Path

import pytest

from taylored_highlighter.annotator import annotate
from taylored_highlighter.models import NO_FILE, ChangeKind
from taylored_highlighter.patches import (
    PatchParseError,
    load_patch_file,
    parse_patch_text,
)
from tests._helpers import SIMPLE_PATCH

NO_NEWLINE_PATCH = """\
--- a/notes.txt
+++ b/notes.txt
@@ -1,2 +1,2 @@
 first
-second
\\ No newline at end of file
+changed
\\ No newline at end of file
"""

TWO_FILES_PATCH = """\
--- a/one.txt
+++ b/one.txt
@@ -1,1 +1,2 @@
 keep
+added
--- a/two.txt
+++ /dev/null
@@ -1,2 +0,0 @@
-gone
-gone too
"""


def test_parse_simple_patch() -> None:
    entries = parse_patch_text(SIMPLE_PATCH, "simple.taylored")

    assert len(entries) == 1
    entry = entries[0]
    assert entry.old_path == "a/src/app.txt"
    assert entry.new_path == "b/src/app.txt"
    assert entry.source_label == "simple.taylored"
    assert len(entry.hunks) == 1
    hunk = entry.hunks[0]
    assert (hunk.old_start, hunk.new_start) == (1, 1)
    assert [change.kind for change in hunk.changes] == [
        ChangeKind.CONTEXT,
        ChangeKind.DELETE,
        ChangeKind.ADD,
        ChangeKind.ADD,
        ChangeKind.CONTEXT,
        ChangeKind.CONTEXT,
    ]


def test_blank_text_yields_no_entries() -> None:
    assert parse_patch_text("", "empty.taylored") == []
    assert parse_patch_text("  \n\n", "empty.taylored") == []


def test_crlf_patches_are_normalised() -> None:
    entries = parse_patch_text(SIMPLE_PATCH.replace("\n", "\r\n"), "crlf.taylored")

    assert len(entries[0].hunks[0].changes) == 6


def test_lone_carriage_return_stays_inside_its_line() -> None:
    text = "--- a/notes.txt\n+++ b/notes.txt\n@@ -1,1 +1,2 @@\n a\r b\n+c\n"

    entries = parse_patch_text(text, "cr.taylored")

    changes = entries[0].hunks[0].changes
    kinds = [change.kind for change in changes]
    assert kinds == [ChangeKind.CONTEXT, ChangeKind.ADD]
    assert changes[0].content.startswith("a\r b")
    assert list(annotate(entries)["b/notes.txt"].added) == [1]


def test_no_newline_markers_are_not_changes() -> None:
    entries = parse_patch_text(NO_NEWLINE_PATCH, "nl.taylored")

    kinds = [change.kind for change in entries[0].hunks[0].changes]
    assert kinds == [ChangeKind.CONTEXT, ChangeKind.DELETE, ChangeKind.ADD]

    result = annotate(entries)
    assert set(result["b/notes.txt"].added) == {1}
    assert set(result["b/notes.txt"].removed) == {1}


def test_deleted_file_points_at_sentinel() -> None:
    entries = parse_patch_text(TWO_FILES_PATCH, "two.taylored")

    assert [entry.target_path for entry in entries] == ["b/one.txt", None]
    assert entries[1].new_path == NO_FILE


def test_malformed_hunk_raises_parse_error() -> None:
    broken = "--- a/x.txt\n+++ b/x.txt\n@@ -1,3 +1,3 @@\n context\n"

    with pytest.raises(PatchParseError) as excinfo:
        parse_patch_text(broken, "broken.taylored")

    assert excinfo.value.source_label == "broken.taylored"
    assert str(excinfo.value).startswith("broken.taylored: ")


def test_load_patch_file_uses_file_name_as_label(tmp_path: Path) -> None:
    patch_file = tmp_path / "feature.taylored"
    patch_file.write_text(SIMPLE_PATCH, encoding="utf-8")

    entries = load_patch_file(patch_file)

    assert entries[0].source_label == "feature.taylored"


def test_load_patch_file_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(PatchParseError) as excinfo:
        load_patch_file(tmp_path / "missing.taylored")

    assert excinfo.value.source_label == "missing.taylored"


def test_load_patch_file_handles_utf8_bom(tmp_path: Path) -> None:
    patch_file = tmp_path / "bom.taylored"
    patch_file.write_bytes(b"\xef\xbb\xbf" + SIMPLE_PATCH.encode("utf-8"))

    entries = load_patch_file(patch_file)

    assert entries[0].new_path == "b/src/app.txt"


def test_load_patch_file_warns_on_lossy_decoding(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    patch_file = tmp_path / "odd.taylored"
    patch_file.write_text(SIMPLE_PATCH, encoding="utf-8")
    monkeypatch.setattr(
        "taylored_highlighter.patches.decode_bytes",
        lambda data: (data.decode("utf-8"), "utf-8", True),
    )
    caplog.set_level(logging.WARNING, logger="taylored_highlighter.patches")

    load_patch_file(patch_file)

    assert "fallback UTF-8" in caplog.text
