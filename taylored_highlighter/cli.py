"""Command-line front-end: scan, show, watch, companion tool actions and config."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import IO, Callable, Dict, List, Optional, Sequence

from .config import (
    THEMES,
    UNDERLINE_STYLES,
    AppConfig,
    default_config_path,
    load_config,
    save_config,
)
from .localization import gettext as _
from .logging_utils import configure_console_logging, configure_logging
from .models import TargetAnnotations
from .parser import (
    _LOG_LEVEL_CHOICES,
    CONFIG_KEYS,
    bootstrap_config_path,
    build_config_parser,
    build_parser,
)
from .rendering import build_decorations, render_text, styles_from_config
from .scanner import ScanCoordinator, ScanResult, scan_workspace
from .summaries import build_local_summary
from .tool import TayloredTool, ToolError
from .utils import decode_bytes, display_path
from .watcher import PatchDirectoryWatcher, WatchEvent

__all__ = [
    "CLIError",
    "ConfigCommandError",
    "config_reset",
    "config_set",
    "config_show",
    "main",
    "run_config",
]

logger = logging.getLogger(__name__)


class CLIError(Exception):
    """Raised for recoverable CLI usage errors."""


class ConfigCommandError(Exception):
    """Raised when a configuration sub-command cannot be completed."""


CommandHandler = Callable[[argparse.Namespace, AppConfig], int]


def main(argv: Sequence[str] | None = None) -> int:
    """Parse ``argv`` and dispatch to the requested command."""

    argument_list = list(sys.argv[1:] if argv is None else argv)
    if argument_list and argument_list[0] == "config":
        return run_config(argument_list[1:])

    config_path = bootstrap_config_path(argument_list)
    if config_path is not None and config_path.is_dir():
        print(
            _("Error: configuration path {path} points to a directory.").format(
                path=display_path(config_path)
            ),
            file=sys.stderr,
        )
        return 1
    config = load_config(config_path)

    parser = build_parser(config)
    args = parser.parse_args(argument_list)

    configure_logging(
        level=args.log_level,
        log_file=config.log_file,
        max_bytes=config.log_max_bytes,
        backup_count=config.log_backup_count,
    )
    configure_console_logging()

    args.root = args.root.expanduser()
    if not args.root.is_dir():
        parser.exit(
            1,
            _("Error: workspace root {root} is not a directory.\n").format(
                root=args.root
            ),
        )

    handler = _COMMANDS[args.command]
    try:
        return handler(args, config)
    except CLIError as exc:
        parser.exit(1, _("Error: {message}\n").format(message=exc))


def _summary_formats(raw: Optional[List[str]]) -> List[str]:
    if not raw:
        return ["text"]
    if "none" in raw:
        if len(raw) > 1:
            raise CLIError(_("The 'none' summary format cannot be combined with others."))
        return []
    return list(dict.fromkeys(raw))


def _emit_result(result: ScanResult, formats: Sequence[str], stream: IO[str]) -> None:
    for fmt in formats:
        if fmt == "text":
            print(result.to_txt(), file=stream)
        elif fmt == "json":
            print(json.dumps(result.to_json(), ensure_ascii=False), file=stream)
        elif fmt == "summary":
            print(build_local_summary(result), file=stream)


def run_scan(args: argparse.Namespace, config: AppConfig) -> int:
    formats = _summary_formats(args.summary_format)
    result = scan_workspace(args.root, config, sequence=1)
    _emit_result(result, formats, sys.stdout)
    return 0 if not result.errors else 1


def _locate_file(candidate: Path, root: Path) -> Path:
    expanded = candidate.expanduser()
    if expanded.is_file():
        return expanded
    if not expanded.is_absolute() and (root / expanded).is_file():
        return root / expanded
    raise CLIError(_("File not found: {path}").format(path=candidate))


def run_show(args: argparse.Namespace, config: AppConfig) -> int:
    target = _locate_file(args.file, args.root)
    result = scan_workspace(args.root, config, sequence=1)
    annotations = result.annotations_for(target) or TargetAnnotations()

    try:
        raw = target.read_bytes()
    except OSError as exc:
        raise CLIError(
            _("Cannot read {path}: {error}").format(path=target, error=exc)
        ) from exc
    text, _encoding, _fallback = decode_bytes(raw)
    lines = text.splitlines()

    decorations = build_decorations(annotations, line_count=len(lines))
    use_color = args.color if args.color is not None else sys.stdout.isatty()
    print(
        render_text(
            lines,
            decorations,
            styles=styles_from_config(config),
            use_color=use_color,
        )
    )
    notes = sorted(
        (*decorations.added, *decorations.removed), key=lambda item: item.line
    )
    if notes:
        print()
        for item in notes:
            print(
                _("line {line}: {message}").format(
                    line=item.line + 1, message=item.hover_message
                )
            )
    return 0


def _print_scan(result: ScanResult) -> None:
    print(build_local_summary(result), flush=True)


def run_watch(args: argparse.Namespace, config: AppConfig) -> int:
    config_path = args.config_path or default_config_path()
    patch_dir = args.root / config.patch_dir
    watcher = PatchDirectoryWatcher(
        patch_dir, config.patch_extension, extra_paths=[config_path]
    )
    stop_event = threading.Event()

    with ScanCoordinator(args.root, config) as coordinator:
        coordinator.add_listener(_print_scan)
        coordinator.scan_now("startup")

        def _on_events(events: List[WatchEvent]) -> None:
            if any(event.path == config_path for event in events):
                future = coordinator.update_config(load_config(config_path))
                if future is not None:
                    future.result()
            if any(event.path != config_path for event in events):
                for event in events:
                    logger.info(
                        _("Patch file %s: %s"), event.kind.value, event.path.name
                    )
                coordinator.request_scan("watch").result()

        print(
            _("Watching {path} (press Ctrl+C to stop)").format(path=patch_dir),
            flush=True,
        )
        try:
            watcher.run(_on_events, interval=args.interval, stop_event=stop_event)
        except KeyboardInterrupt:
            stop_event.set()
    return 0


def run_tool(args: argparse.Namespace, config: AppConfig) -> int:
    tool = TayloredTool(args.root, config.tool_executable)
    if not tool.available:
        raise CLIError(
            _(
                "The '{tool}' tool is not available; install it to use patch actions."
            ).format(tool=config.tool_executable)
        )

    if args.action == "list":
        try:
            names = tool.list_patches()
        except ToolError as exc:
            raise CLIError(str(exc)) from exc
        if not names:
            print(_("No patch files found in the patch directory."))
        for name in names:
            print(name)
        return 0

    if not args.name:
        raise CLIError(
            _("The '{action}' action requires a name.").format(action=args.action)
        )
    operation = args.action.replace("-", "_")
    extra: List[str] = [args.name]
    if operation == "offset" and args.message:
        extra.append(args.message)

    with ScanCoordinator(args.root, config, tool=tool) as coordinator:
        tool_result, future = coordinator.run_tool(operation, *extra)
        if tool_result.stdout.strip():
            print(tool_result.stdout.rstrip())
        if not tool_result.ok:
            print(
                _("'{action}' failed for {name}: {details}").format(
                    action=args.action,
                    name=args.name,
                    details=tool_result.output or tool_result.returncode,
                ),
                file=sys.stderr,
            )
            return 1
        if future is not None:
            _print_scan(future.result())
    return 0


def run_gui(args: argparse.Namespace, config: AppConfig) -> int:
    try:
        from .app import main as gui_main
    except ImportError as exc:
        print(
            _(
                "PySide6 is not installed. Install the GUI dependencies with "
                "'pip install .[gui]'."
            ),
            file=sys.stderr,
        )
        print(_("Original details: {error}").format(error=exc), file=sys.stderr)
        return 1
    return gui_main(args.root, config, config_path=args.config_path)


_COMMANDS: Dict[str, CommandHandler] = {
    "scan": run_scan,
    "show": run_show,
    "watch": run_watch,
    "tool": run_tool,
    "gui": run_gui,
}


def run_config(argv: Sequence[str] | None = None) -> int:
    """Entry-point for ``taylored-highlighter config`` sub-commands."""

    parser = build_config_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        if args.command == "show":
            return config_show(path=args.config_path)
        if args.command == "set":
            return config_set(args.key, args.values, path=args.config_path)
        return config_reset(args.key, path=args.config_path)
    except ConfigCommandError as exc:
        parser.exit(1, _("Error: {message}\n").format(message=str(exc)))


def config_show(*, path: Path | None = None, stream: IO[str] | None = None) -> int:
    """Print the current configuration in JSON format."""

    mapping = load_config(path).to_mapping()
    output = stream or sys.stdout
    json.dump(mapping, output, indent=2, sort_keys=True)
    output.write("\n")
    return 0


def config_set(
    key: str,
    values: Sequence[str],
    *,
    path: Path | None = None,
    stream: IO[str] | None = None,
) -> int:
    """Update ``key`` with ``values`` and persist the configuration."""

    config = load_config(path)
    _apply_config_value(config, key, values)
    save_config(config, path)
    output = stream or sys.stdout
    output.write(_("{key} updated.\n").format(key=key))
    return 0


def config_reset(
    key: str | None = None,
    *,
    path: Path | None = None,
    stream: IO[str] | None = None,
) -> int:
    """Reset ``key`` (or the entire configuration) to the default values."""

    if key is None:
        save_config(AppConfig(), path)
        message = _("Configuration reset to defaults.")
    else:
        if key not in CONFIG_KEYS:
            raise ConfigCommandError(
                _("Unknown configuration key: {key}").format(key=key)
            )
        config = load_config(path)
        setattr(config, key, getattr(AppConfig(), key))
        save_config(config, path)
        message = _("{key} reset to default.").format(key=key)

    output = stream or sys.stdout
    output.write(f"{message}\n")
    return 0


def _single_value(key: str, values: Sequence[str]) -> str:
    if len(values) != 1:
        raise ConfigCommandError(
            _("The {key} key expects exactly one value.").format(key=key)
        )
    value = values[0].strip()
    if not value:
        raise ConfigCommandError(
            _("The {key} key expects a non-empty value.").format(key=key)
        )
    return value


def _apply_config_value(config: AppConfig, key: str, values: Sequence[str]) -> None:
    if key not in CONFIG_KEYS:
        raise ConfigCommandError(_("Unknown configuration key: {key}").format(key=key))

    if key == "exclude_dirs":
        parsed: List[str] = []
        for raw in values:
            parsed.extend(item.strip() for item in raw.split(",") if item.strip())
        config.exclude_dirs = tuple(dict.fromkeys(parsed))
        return

    value = _single_value(key, values)

    if key.endswith("_underline_style"):
        choice = value.lower()
        if choice not in UNDERLINE_STYLES:
            raise ConfigCommandError(
                _("Unsupported underline style: {value}.").format(value=value)
            )
        setattr(config, key, choice)
    elif key == "theme":
        choice = value.lower()
        if choice not in THEMES:
            raise ConfigCommandError(
                _("Unsupported theme: {value}.").format(value=value)
            )
        config.theme = choice
    elif key == "log_level":
        choice = value.lower()
        if choice not in _LOG_LEVEL_CHOICES:
            raise ConfigCommandError(
                _("Unsupported log level: {value}.").format(value=value)
            )
        config.log_level = choice
    elif key == "log_file":
        config.log_file = Path(value).expanduser()
    elif key in {"log_max_bytes", "log_backup_count"}:
        setattr(config, key, _parse_non_negative_int(value, key=key))
    elif key == "watch_interval":
        config.watch_interval = _parse_positive_float(value, key=key)
    elif key == "patch_extension":
        config.patch_extension = value if value.startswith(".") else f".{value}"
    else:
        setattr(config, key, value)


def _parse_non_negative_int(value: str, *, key: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ConfigCommandError(
            _("The {key} key expects a non-negative integer.").format(key=key)
        ) from exc
    if parsed < 0:
        raise ConfigCommandError(
            _("The {key} key expects a non-negative integer.").format(key=key)
        )
    return parsed


def _parse_positive_float(value: str, *, key: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigCommandError(
            _("The {key} key expects a positive number.").format(key=key)
        ) from exc
    if parsed <= 0:
        raise ConfigCommandError(
            _("The {key} key expects a positive number.").format(key=key)
        )
    return parsed
