from __future__ import annotations

from pathlib import Path
from typing import Any, List

import pytest

from taylored_highlighter.tool import (
    TayloredTool,
    ToolError,
    ToolResult,
    ToolUnavailableError,
)
from tests._helpers import FakeRunner


def _missing_executable(command: List[str], **kwargs: Any) -> Any:
    raise FileNotFoundError(2, "No such file or directory", command[0])


def test_availability_is_probed_once(tmp_path: Path) -> None:
    runner = FakeRunner()
    tool = TayloredTool(tmp_path, runner=runner)

    assert tool.available
    assert tool.available
    assert runner.calls == [["taylored", "--help"]]
    assert runner.kwargs[0]["cwd"] == str(tmp_path)
    assert runner.kwargs[0]["check"] is False


def test_missing_executable_is_unavailable(tmp_path: Path) -> None:
    tool = TayloredTool(tmp_path, runner=_missing_executable)

    assert not tool.available
    with pytest.raises(ToolUnavailableError):
        tool.add("feature")


def test_failing_probe_is_unavailable(tmp_path: Path) -> None:
    tool = TayloredTool(tmp_path, runner=FakeRunner({"--help": (1, "", "boom")}))

    assert not tool.available


def test_operations_map_to_flags(tmp_path: Path) -> None:
    runner = FakeRunner()
    tool = TayloredTool(tmp_path, "my-taylored", runner=runner)

    tool.add("feat")
    tool.remove("feat")
    tool.verify_add("feat")
    tool.verify_remove("feat")
    tool.save("main")
    tool.offset("feat")
    tool.offset("feat", "Update offsets")
    tool.data("feat")

    assert runner.calls[1:] == [
        ["my-taylored", "--add", "feat"],
        ["my-taylored", "--remove", "feat"],
        ["my-taylored", "--verify-add", "feat"],
        ["my-taylored", "--verify-remove", "feat"],
        ["my-taylored", "--save", "main"],
        ["my-taylored", "--offset", "feat"],
        ["my-taylored", "--offset", "feat", "--message", "Update offsets"],
        ["my-taylored", "--data", "feat"],
    ]


def test_result_flags(tmp_path: Path) -> None:
    runner = FakeRunner({"--add": (0, "applied\n", ""), "--remove": (1, "", "conflict\n")})
    tool = TayloredTool(tmp_path, runner=runner)

    added = tool.add("feat")
    removed = tool.remove("feat")
    verified = tool.verify_add("feat")

    assert added.ok and added.mutates_patches
    assert added.output == "applied"
    assert not removed.ok and not removed.mutates_patches
    assert removed.output == "conflict"
    assert verified.ok and not verified.mutates_patches


def test_mutating_operations() -> None:
    for operation in ("add", "remove", "save", "offset"):
        assert ToolResult(operation, (), 0).mutates_patches
    for operation in ("verify_add", "verify_remove", "data"):
        assert not ToolResult(operation, (), 0).mutates_patches


def test_list_patches_strips_extension(tmp_path: Path) -> None:
    runner = FakeRunner({"--list": (0, "one.taylored\n\ntwo.taylored\nthree\n", "")})
    tool = TayloredTool(tmp_path, runner=runner)

    assert tool.list_patches() == ["one", "two", "three"]


def test_list_patches_missing_directory_is_empty(tmp_path: Path) -> None:
    runner = FakeRunner(
        {"--list": (1, "", "Error: '.taylored' directory not found.\n")}
    )
    tool = TayloredTool(tmp_path, runner=runner)

    assert tool.list_patches() == []


def test_list_patches_other_failures_raise(tmp_path: Path) -> None:
    runner = FakeRunner({"--list": (2, "", "permission denied\n")})
    tool = TayloredTool(tmp_path, runner=runner)

    with pytest.raises(ToolError, match="permission denied"):
        tool.list_patches()
