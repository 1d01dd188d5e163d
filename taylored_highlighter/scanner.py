"""Scan the patch directory of a workspace and coordinate repeated scans."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .annotator import annotate
from .config import AppConfig
from .localization import gettext as _
from .models import DiffFileEntry, TargetAnnotations
from .patches import PatchParseError, load_patch_file
from .resolver import PathResolver, clean_diff_path
from .tool import TayloredTool, ToolResult
from .utils import APP_NAME, display_relative_path

logger = logging.getLogger(__name__)

ScanListener = Callable[["ScanResult"], None]
ToolOutcome = Tuple[ToolResult, Optional["Future[ScanResult]"]]

TOOL_OPERATIONS = frozenset(
    {"add", "remove", "verify_add", "verify_remove", "save", "offset", "data"}
)

__all__ = [
    "TOOL_OPERATIONS",
    "PatchFileError",
    "ScanCoordinator",
    "ScanResult",
    "ToolOutcome",
    "UnresolvedTarget",
    "list_patch_files",
    "scan_workspace",
]


@dataclass(frozen=True)
class PatchFileError:
    patch_file: Path
    message: str


@dataclass(frozen=True)
class UnresolvedTarget:
    path: str
    source_label: str


@dataclass
class ScanResult:
    """Outcome of one scan pass: annotations per resolved file plus failures."""

    workspace_root: Path
    sequence: int = 0
    started_at: float = field(default_factory=time.time)
    patch_files: List[Path] = field(default_factory=list)
    annotations: Dict[Path, TargetAnnotations] = field(default_factory=dict)
    errors: List[PatchFileError] = field(default_factory=list)
    unresolved: List[UnresolvedTarget] = field(default_factory=list)

    @property
    def has_highlights(self) -> bool:
        return any(not item.is_empty for item in self.annotations.values())

    def annotations_for(self, path: Path) -> Optional[TargetAnnotations]:
        found = self.annotations.get(path)
        if found is not None:
            return found
        try:
            resolved = path.resolve()
        except OSError:
            return None
        for key, value in self.annotations.items():
            if key.resolve() == resolved:
                return value
        return None

    def to_json(self) -> dict[str, object]:
        return {
            "workspace_root": str(self.workspace_root),
            "sequence": self.sequence,
            "started_at": datetime.fromtimestamp(self.started_at).isoformat(),
            "patch_files": [path.name for path in self.patch_files],
            "files": [
                {
                    "file": display_relative_path(path, self.workspace_root),
                    "abs_path": str(path),
                    **annotations.to_json(),
                }
                for path, annotations in sorted(self.annotations.items())
            ],
            "errors": [
                {"patch_file": error.patch_file.name, "message": error.message}
                for error in self.errors
            ],
            "unresolved": [
                {"path": item.path, "source": item.source_label}
                for item in self.unresolved
            ],
        }

    def to_txt(self) -> str:
        lines = [
            _("Report – {app_name}").format(app_name=APP_NAME),
            _("Started: {when}").format(when=datetime.fromtimestamp(self.started_at)),
            _("Workspace: {root}").format(root=self.workspace_root),
            _("Patch files: {count}").format(count=len(self.patch_files)),
            "",
        ]
        for path, annotations in sorted(self.annotations.items()):
            lines.append(
                _("File: {path}").format(
                    path=display_relative_path(path, self.workspace_root)
                )
            )
            for item in sorted(annotations.added.values(), key=lambda a: a.line):
                lines.append(
                    _("  + line {line}: {count} added ({source})").format(
                        line=item.line + 1,
                        count=item.block_length,
                        source=item.source_label,
                    )
                )
            for item in sorted(annotations.removed.values(), key=lambda a: a.line):
                lines.append(
                    _("  - line {line}: {count} removed ({source})").format(
                        line=item.line + 1,
                        count=item.block_length,
                        source=item.source_label,
                    )
                )
            lines.append("")
        for error in self.errors:
            lines.append(
                _("Error processing {name}: {message}").format(
                    name=error.patch_file.name, message=error.message
                )
            )
        for item in self.unresolved:
            lines.append(
                _("Source file not found in workspace: {path} (referenced in {source})").format(
                    path=item.path, source=item.source_label
                )
            )
        return "\n".join(lines).rstrip("\n")


def list_patch_files(
    workspace_root: Path,
    patch_dir: str = ".taylored",
    extension: str = ".taylored",
) -> List[Path]:
    """Return the patch files of ``workspace_root`` sorted by name."""

    directory = workspace_root / patch_dir
    try:
        children = list(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sorted(
        (path for path in children if path.is_file() and path.name.endswith(extension)),
        key=lambda path: path.name,
    )


def scan_workspace(
    workspace_root: Path,
    config: AppConfig | None = None,
    *,
    sequence: int = 0,
    resolver: PathResolver | None = None,
) -> ScanResult:
    """Parse every patch file of ``workspace_root`` and annotate its targets.

    A patch file that cannot be read or parsed is recorded in
    :attr:`ScanResult.errors` and the remaining files are still processed.
    """

    cfg = config or AppConfig()
    path_resolver = resolver or PathResolver(workspace_root, cfg.exclude_dirs)
    result = ScanResult(workspace_root=workspace_root, sequence=sequence)
    result.patch_files = list_patch_files(
        workspace_root, cfg.patch_dir, cfg.patch_extension
    )

    entries: List[DiffFileEntry] = []
    for patch_file in result.patch_files:
        try:
            entries.extend(load_patch_file(patch_file))
        except PatchParseError as exc:
            logger.error(_("Error processing %s: %s"), patch_file.name, exc.message)
            result.errors.append(PatchFileError(patch_file, exc.message))

    def _resolve(entry: DiffFileEntry) -> Optional[Path]:
        target = entry.target_path
        assert target is not None
        resolved = path_resolver.resolve(target)
        if resolved is None:
            logger.warning(
                _("Source file not found in workspace: %s (referenced in %s)"),
                clean_diff_path(target),
                entry.source_label,
            )
            result.unresolved.append(
                UnresolvedTarget(clean_diff_path(target), entry.source_label)
            )
        return resolved

    result.annotations = annotate(entries, _resolve)
    logger.info(
        "Scan #%s: %s patch file(s), %s annotated file(s), %s error(s)",
        sequence,
        len(result.patch_files),
        len(result.annotations),
        len(result.errors),
    )
    return result


class ScanCoordinator:
    """Own the latest scan results of a workspace and serialize rescans.

    Every :meth:`request_scan` call takes the next sequence number; a result is
    only published when no result with a higher sequence number has been
    published before it, so a slow older scan never overwrites a newer one.
    """

    def __init__(
        self,
        workspace_root: Path,
        config: AppConfig | None = None,
        *,
        tool: TayloredTool | None = None,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.config = config or AppConfig()
        self.tool = tool
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="taylored-scan"
        )
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()
        self._latest: Optional[ScanResult] = None
        self._listeners: List[ScanListener] = []
        self._disposed = False

    def __enter__(self) -> "ScanCoordinator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    @property
    def latest(self) -> Optional[ScanResult]:
        with self._lock:
            return self._latest

    @property
    def tool_available(self) -> bool:
        return self.tool is not None and self.tool.available

    def add_listener(self, listener: ScanListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ScanListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def annotations_for(self, path: Path) -> Optional[TargetAnnotations]:
        latest = self.latest
        return latest.annotations_for(path) if latest is not None else None

    def request_scan(self, reason: str = "manual") -> "Future[ScanResult]":
        """Schedule a scan and return a future resolving to its result."""

        if self._disposed:
            raise RuntimeError(_("The scan coordinator has been disposed."))
        with self._lock:
            sequence = next(self._sequence)
            config = self.config
        logger.debug("Scheduling scan #%s (%s)", sequence, reason)
        return self._executor.submit(self._run_scan, sequence, config)

    def scan_now(self, reason: str = "manual") -> ScanResult:
        """Run a scan synchronously and publish it."""

        return self.request_scan(reason).result()

    def _run_scan(self, sequence: int, config: AppConfig) -> ScanResult:
        result = scan_workspace(self.workspace_root, config, sequence=sequence)
        self.publish(result)
        return result

    def publish(self, result: ScanResult) -> bool:
        """Replace the current results with ``result`` unless it is stale."""

        with self._lock:
            if self._latest is not None and result.sequence < self._latest.sequence:
                logger.debug(
                    "Discarding stale scan #%s (already published #%s)",
                    result.sequence,
                    self._latest.sequence,
                )
                return False
            self._latest = result
            listeners = list(self._listeners)
        for listener in listeners:
            listener(result)
        return True

    def update_config(self, config: AppConfig) -> Optional["Future[ScanResult]"]:
        """Install ``config`` and rescan when an option affecting output changed."""

        with self._lock:
            previous = self.config
            self.config = config
        if previous == config:
            return None
        logger.info("Configuration changed, reprocessing highlights")
        return self.request_scan("config")

    def _check_tool_operation(self, operation: str) -> None:
        if self.tool is None:
            raise RuntimeError(_("No companion tool configured."))
        if operation not in TOOL_OPERATIONS:
            raise ValueError(
                _("Unknown tool operation: {operation}").format(operation=operation)
            )

    def run_tool(self, operation: str, *args: str) -> ToolOutcome:
        """Run a companion tool operation and rescan when it changed patches."""

        self._check_tool_operation(operation)
        method = getattr(self.tool, operation)
        tool_result: ToolResult = method(*args)
        future = self.request_scan(operation) if tool_result.mutates_patches else None
        return tool_result, future

    def submit_tool(self, operation: str, *args: str) -> "Future[ToolOutcome]":
        """Schedule :meth:`run_tool` on the scan worker and return its future.

        The operation is validated before scheduling; failures of the tool
        itself surface through the returned future.
        """

        self._check_tool_operation(operation)
        if self._disposed:
            raise RuntimeError(_("The scan coordinator has been disposed."))
        logger.debug("Scheduling tool operation %s %s", operation, args)
        return self._executor.submit(self.run_tool, operation, *args)

    def dispose(self) -> None:
        """Stop the worker and drop every result and listener."""

        if self._disposed:
            return
        self._disposed = True
        self._executor.shutdown(wait=True)
        with self._lock:
            self._latest = None
            self._listeners.clear()
