"""Graphical viewer showing the highlights of a workspace."""

from __future__ import annotations

import logging
import sys
from concurrent.futures import Future
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from PySide6 import QtCore, QtGui, QtWidgets
from PySide6.QtWidgets import QMainWindow

from .config import AppConfig, default_config_path, load_config
from .highlighter import AnnotationHighlighter, resolve_theme
from .localization import gettext as _
from .logging_utils import configure_logging
from .rendering import styles_from_config
from .scanner import ScanCoordinator, ScanResult, ToolOutcome
from .tool import TayloredTool, ToolError
from .utils import APP_NAME, decode_bytes, display_relative_path
from .watcher import PatchDirectoryWatcher, WatchEvent

if TYPE_CHECKING:

    class _QMainWindowBase(QMainWindow):
        """Concrete ``QMainWindow`` subclass with a stable static type for mypy."""

else:
    _QMainWindowBase = QMainWindow

logger = logging.getLogger(__name__)

_PATH_ROLE = QtCore.Qt.ItemDataRole.UserRole


class HighlightViewer(_QMainWindowBase):
    """Main window listing highlighted files and underlining their blocks."""

    scan_finished = QtCore.Signal(object)
    tool_finished = QtCore.Signal(str, object)

    def __init__(
        self,
        workspace_root: Path,
        config: AppConfig,
        *,
        config_path: Path | None = None,
        coordinator: ScanCoordinator | None = None,
    ) -> None:
        super().__init__()
        self.workspace_root = workspace_root
        self.config_path = config_path or default_config_path()
        self.coordinator = coordinator or ScanCoordinator(
            workspace_root,
            config,
            tool=TayloredTool(workspace_root, config.tool_executable),
        )
        self.current_file: Optional[Path] = None

        self.setWindowTitle(APP_NAME)
        self.resize(1000, 700)

        self.file_list = QtWidgets.QListWidget()
        self.file_list.currentItemChanged.connect(self._on_file_selected)
        self.editor = QtWidgets.QPlainTextEdit()
        self.editor.setReadOnly(True)
        self.editor.setLineWrapMode(QtWidgets.QPlainTextEdit.LineWrapMode.NoWrap)
        self.editor.viewport().installEventFilter(self)
        self.highlighter = AnnotationHighlighter(
            self.editor.document(),
            styles_from_config(config),
            theme=resolve_theme(config.theme, self.palette()),
        )

        splitter = QtWidgets.QSplitter()
        splitter.addWidget(self.file_list)
        splitter.addWidget(self.editor)
        splitter.setStretchFactor(1, 3)
        self.setCentralWidget(splitter)

        self.reload_action = QtGui.QAction(_("Reload Highlights"), self)
        self.reload_action.setShortcut(QtGui.QKeySequence.StandardKey.Refresh)
        self.reload_action.triggered.connect(self.reload_highlights)
        toolbar = self.addToolBar(_("Highlights"))
        toolbar.addAction(self.reload_action)
        self._build_actions_menu()

        self.scan_finished.connect(self._on_scan_finished)
        self.tool_finished.connect(self._on_tool_finished)
        self.coordinator.add_listener(self._forward_scan)

        self.watcher = PatchDirectoryWatcher(
            workspace_root / config.patch_dir,
            config.patch_extension,
            extra_paths=[self.config_path],
        )
        self.watch_timer = QtCore.QTimer(self)
        self.watch_timer.setInterval(int(config.watch_interval * 1000))
        self.watch_timer.timeout.connect(self._poll_watcher)
        self.watch_timer.start()

        self.reload_highlights()

    def _build_actions_menu(self) -> None:
        menu = self.menuBar().addMenu(_("Actions"))
        self.actions_menu = menu
        self.tool_actions: List[QtGui.QAction] = []
        entries = (
            (_("Add patch…"), "add"),
            (_("Remove patch…"), "remove"),
            (_("Verify add…"), "verify_add"),
            (_("Verify remove…"), "verify_remove"),
            (_("Show patch data…"), "data"),
            (_("Save branch as patch…"), "save"),
            (_("Offset patch…"), "offset"),
        )
        for label, operation in entries:
            action = QtGui.QAction(label, self)
            action.triggered.connect(
                lambda _checked=False, op=operation: self._run_tool_action(op)
            )
            menu.addAction(action)
            self.tool_actions.append(action)

        available = self.coordinator.tool_available
        self._set_tool_actions_enabled(available)
        if not available:
            menu.setToolTip(_("The 'taylored' tool is not installed."))

    def _set_tool_actions_enabled(self, enabled: bool) -> None:
        self.actions_menu.setEnabled(enabled)
        for action in self.tool_actions:
            action.setEnabled(enabled)

    def _forward_scan(self, result: ScanResult) -> None:
        # Listeners run on the scan worker; the signal hops to the GUI thread.
        self.scan_finished.emit(result)

    def reload_highlights(self) -> None:
        self.statusBar().showMessage(_("Scanning patch files…"))
        self.coordinator.request_scan("manual")

    def _poll_watcher(self) -> None:
        events = self.watcher.poll()
        if events:
            self._handle_watch_events(events)

    def _handle_watch_events(self, events: List[WatchEvent]) -> None:
        if any(event.path == self.config_path for event in events):
            config = load_config(self.config_path)
            previous = self.coordinator.config
            if config.rendering_signature() != previous.rendering_signature():
                self.highlighter.set_styles(
                    styles_from_config(config),
                    theme=resolve_theme(config.theme, self.palette()),
                )
            self.watch_timer.setInterval(int(config.watch_interval * 1000))
            self.coordinator.update_config(config)
        if any(event.path != self.config_path for event in events):
            self.coordinator.request_scan("watch")

    def _on_scan_finished(self, result: ScanResult) -> None:
        selected = self.current_file
        self.file_list.blockSignals(True)
        self.file_list.clear()
        for path in sorted(result.annotations):
            annotations = result.annotations[path]
            if annotations.is_empty:
                continue
            label = _("{name} (+{added}/-{removed})").format(
                name=display_relative_path(path, self.workspace_root),
                added=len(annotations.added),
                removed=len(annotations.removed),
            )
            item = QtWidgets.QListWidgetItem(label)
            item.setData(_PATH_ROLE, str(path))
            self.file_list.addItem(item)
            if path == selected:
                self.file_list.setCurrentItem(item)
        self.file_list.blockSignals(False)

        if selected is not None:
            self.highlighter.set_annotations(result.annotations_for(selected))
        highlighted = sum(
            1 for item in result.annotations.values() if not item.is_empty
        )
        self.statusBar().showMessage(
            _("Files with highlights: {count}").format(count=highlighted), 5000
        )

    def _on_file_selected(
        self,
        current: Optional[QtWidgets.QListWidgetItem],
        _previous: Optional[QtWidgets.QListWidgetItem],
    ) -> None:
        if current is None:
            return
        self.open_file(Path(current.data(_PATH_ROLE)))

    def open_file(self, path: Path) -> None:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            QtWidgets.QMessageBox.warning(
                self,
                _("Cannot open file"),
                _("Cannot read {path}: {error}").format(path=path, error=exc),
            )
            return
        text, _encoding, _fallback = decode_bytes(raw)
        self.current_file = path
        self.editor.setPlainText(text)
        self.highlighter.set_annotations(self.coordinator.annotations_for(path))

    def eventFilter(  # noqa: N802 (Qt signature)
        self, watched: QtCore.QObject, event: QtCore.QEvent
    ) -> bool:
        if (
            watched is self.editor.viewport()
            and event.type() == QtCore.QEvent.Type.ToolTip
        ):
            assert isinstance(event, QtGui.QHelpEvent)
            cursor = self.editor.cursorForPosition(event.pos())
            message = self.highlighter.tooltip_for(cursor.blockNumber())
            if message:
                QtWidgets.QToolTip.showText(event.globalPos(), message, self.editor)
            else:
                QtWidgets.QToolTip.hideText()
            return True
        return super().eventFilter(watched, event)

    def _ask_patch_name(self) -> Optional[str]:
        tool = self.coordinator.tool
        assert tool is not None
        try:
            names = tool.list_patches()
        except ToolError as exc:
            QtWidgets.QMessageBox.warning(self, APP_NAME, str(exc))
            return None
        if not names:
            QtWidgets.QMessageBox.information(
                self, APP_NAME, _("No patch files found in the patch directory.")
            )
            return None
        name, accepted = QtWidgets.QInputDialog.getItem(
            self, APP_NAME, _("Patch:"), names, 0, False
        )
        return name if accepted and name else None

    def _run_tool_action(self, operation: str) -> None:
        args: List[str] = []
        if operation == "save":
            branch, accepted = QtWidgets.QInputDialog.getText(
                self, APP_NAME, _("Branch to save as a patch:")
            )
            if not accepted or not branch.strip():
                return
            args.append(branch.strip())
        else:
            name = self._ask_patch_name()
            if name is None:
                return
            args.append(name)
            if operation == "offset":
                message, accepted = QtWidgets.QInputDialog.getText(
                    self, APP_NAME, _("Commit message (optional):")
                )
                if accepted and message.strip():
                    args.append(message.strip())

        logger.info("Running %s %s from the Actions menu", operation, args)
        try:
            future = self.coordinator.submit_tool(operation, *args)
        except RuntimeError as exc:
            QtWidgets.QMessageBox.warning(self, APP_NAME, str(exc))
            return
        self._set_tool_actions_enabled(False)
        self.statusBar().showMessage(
            _("Running {operation}…").format(operation=operation)
        )
        # Runs on the scan worker; the signal hops to the GUI thread.
        future.add_done_callback(
            lambda done, op=operation: self.tool_finished.emit(op, done)
        )

    def _on_tool_finished(
        self, operation: str, future: "Future[ToolOutcome]"
    ) -> None:
        self._set_tool_actions_enabled(self.coordinator.tool_available)
        self.statusBar().clearMessage()
        try:
            result, _rescan = future.result()
        except RuntimeError as exc:
            logger.error("Tool operation %s failed: %s", operation, exc)
            QtWidgets.QMessageBox.warning(self, APP_NAME, str(exc))
            return
        if result.ok:
            QtWidgets.QMessageBox.information(
                self, APP_NAME, result.output or _("Operation completed.")
            )
        else:
            QtWidgets.QMessageBox.warning(
                self,
                APP_NAME,
                _("The operation failed:\n{details}").format(
                    details=result.output or result.returncode
                ),
            )

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # noqa: N802
        self.watch_timer.stop()
        self.coordinator.remove_listener(self._forward_scan)
        self.coordinator.dispose()
        super().closeEvent(event)


def main(
    workspace_root: Path | None = None,
    config: AppConfig | None = None,
    *,
    config_path: Path | None = None,
) -> int:
    app_config = config or load_config(config_path)
    configure_logging(
        level=app_config.log_level,
        log_file=app_config.log_file,
        max_bytes=app_config.log_max_bytes,
        backup_count=app_config.log_backup_count,
    )
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    window = HighlightViewer(
        (workspace_root or Path.cwd()).resolve(),
        app_config,
        config_path=config_path,
    )
    window.show()
    return app.exec()


__all__ = ["HighlightViewer", "main"]
