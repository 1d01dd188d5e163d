"""Wrapper around the external ``taylored`` command-line tool."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from .localization import gettext as _
from .utils import PATCH_EXTENSION

logger = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]

# Operations after which the patch directory may have changed.
MUTATING_OPERATIONS = frozenset({"add", "remove", "save", "offset"})

_MISSING_DIR_MARKERS = (
    "'.taylored' directory not found",
    "no such file or directory",
)

__all__ = [
    "MUTATING_OPERATIONS",
    "TayloredTool",
    "ToolError",
    "ToolResult",
    "ToolUnavailableError",
]


class ToolError(RuntimeError):
    """Raised when the companion tool reports an unexpected failure."""


class ToolUnavailableError(ToolError):
    """Raised when an operation needs the companion tool but it is not installed."""


@dataclass(frozen=True)
class ToolResult:
    operation: str
    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def mutates_patches(self) -> bool:
        return self.ok and self.operation in MUTATING_OPERATIONS

    @property
    def output(self) -> str:
        return (self.stderr or self.stdout).strip()


class TayloredTool:
    """Run ``taylored`` operations inside ``workspace_root``.

    Availability is probed once, the first time it is queried, and cached.
    """

    def __init__(
        self,
        workspace_root: Path,
        executable: str = "taylored",
        *,
        runner: Optional[Runner] = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.executable = executable
        self._runner: Runner = runner or subprocess.run
        self._available: Optional[bool] = None

    @property
    def available(self) -> bool:
        if self._available is None:
            self._available = self._probe()
            if self._available:
                logger.info("Companion tool %r found.", self.executable)
            else:
                logger.warning(
                    "Companion tool %r not found; patch actions are disabled.",
                    self.executable,
                )
        return self._available

    def _probe(self) -> bool:
        try:
            completed = self._invoke(["--help"])
        except OSError as exc:
            logger.debug("Probing %s failed: %s", self.executable, exc)
            return False
        return completed.returncode == 0

    def _invoke(self, args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
        command = [self.executable, *args]
        logger.debug("Running %s in %s", " ".join(command), self.workspace_root)
        kwargs: dict[str, Any] = {
            "cwd": str(self.workspace_root),
            "check": False,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.PIPE,
            "text": True,
        }
        return self._runner(command, **kwargs)

    def _run(self, operation: str, args: Sequence[str]) -> ToolResult:
        if not self.available:
            raise ToolUnavailableError(
                _("The '{tool}' tool is not available on PATH.").format(
                    tool=self.executable
                )
            )
        try:
            completed = self._invoke(args)
        except OSError as exc:
            return ToolResult(
                operation=operation, args=tuple(args), returncode=127, stderr=str(exc)
            )
        result = ToolResult(
            operation=operation,
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if result.ok:
            logger.info("%s %s succeeded", self.executable, " ".join(args))
        else:
            logger.error(
                "%s %s failed (exit code %s): %s",
                self.executable,
                " ".join(args),
                result.returncode,
                result.output,
            )
        return result

    def add(self, name: str) -> ToolResult:
        return self._run("add", ["--add", name])

    def remove(self, name: str) -> ToolResult:
        return self._run("remove", ["--remove", name])

    def verify_add(self, name: str) -> ToolResult:
        return self._run("verify_add", ["--verify-add", name])

    def verify_remove(self, name: str) -> ToolResult:
        return self._run("verify_remove", ["--verify-remove", name])

    def save(self, branch: str) -> ToolResult:
        return self._run("save", ["--save", branch])

    def offset(self, name: str, message: Optional[str] = None) -> ToolResult:
        args = ["--offset", name]
        if message:
            args.extend(["--message", message])
        return self._run("offset", args)

    def data(self, name: str) -> ToolResult:
        return self._run("data", ["--data", name])

    def list_patches(self) -> list[str]:
        """Return the available patch names without their extension.

        A missing patch directory is reported by the tool as an error and is
        treated as an empty list.
        """

        result = self._run("list", ["--list"])
        if not result.ok:
            details = result.stderr.lower()
            if any(marker in details for marker in _MISSING_DIR_MARKERS):
                return []
            raise ToolError(
                _("Error listing patch files: {details}").format(
                    details=result.output or result.returncode
                )
            )
        names: list[str] = []
        for line in result.stdout.splitlines():
            name = line.strip()
            if name.endswith(PATCH_EXTENSION):
                name = name[: -len(PATCH_EXTENSION)].strip()
            if name:
                names.append(name)
        return names
