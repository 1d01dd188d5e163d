"""Builders for patch files and workspaces used across the tests."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Dict, List, Tuple


def write_patch(root: Path, name: str, text: str) -> Path:
    patch_dir = root / ".taylored"
    patch_dir.mkdir(exist_ok=True)
    path = patch_dir / name
    path.write_text(text, encoding="utf-8")
    return path


def write_file(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


Response = Tuple[int, str, str]


class FakeRunner:
    """Record commands and answer them from a table keyed by the first flag."""

    def __init__(self, responses: Dict[str, Response] | None = None) -> None:
        self.responses = responses or {}
        self.calls: List[List[str]] = []
        self.kwargs: List[Dict[str, Any]] = []

    def __call__(
        self, command: List[str], **kwargs: Any
    ) -> "subprocess.CompletedProcess[str]":
        self.calls.append(command)
        self.kwargs.append(kwargs)
        code, stdout, stderr = self.responses.get(command[1], (0, "", ""))
        return subprocess.CompletedProcess(command, code, stdout=stdout, stderr=stderr)


SIMPLE_PATCH = """\
diff --git a/src/app.txt b/src/app.txt
--- a/src/app.txt
+++ b/src/app.txt
@@ -1,4 +1,5 @@
 one
-two
+TWO
+three
 four
 five
"""


__all__ = ["FakeRunner", "SIMPLE_PATCH", "write_file", "write_patch"]
