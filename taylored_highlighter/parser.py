"""Helpers for building the command-line argument parsers."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from ._version import __version__
from .config import AppConfig, load_config
from .localization import gettext as _
from .utils import APP_NAME

_LOG_LEVEL_CHOICES = ("critical", "error", "warning", "info", "debug")
_SUMMARY_FORMATS = ("text", "json", "summary", "none")
# Minimum width dedicated to the help text itself (excluding the option column).
_MINIMUM_HELP_WIDTH = 80

TOOL_ACTIONS = (
    "add",
    "remove",
    "verify-add",
    "verify-remove",
    "save",
    "offset",
    "data",
    "list",
)

CONFIG_KEYS = (
    "patch_dir",
    "patch_extension",
    "exclude_dirs",
    "added_underline_style",
    "added_underline_color",
    "added_underline_color_light",
    "added_underline_color_dark",
    "removed_underline_style",
    "removed_underline_color",
    "removed_underline_color_light",
    "removed_underline_color_dark",
    "theme",
    "log_level",
    "log_file",
    "log_max_bytes",
    "log_backup_count",
    "watch_interval",
    "tool_executable",
)

__all__ = [
    "CONFIG_KEYS",
    "TOOL_ACTIONS",
    "_LOG_LEVEL_CHOICES",
    "bootstrap_config_path",
    "build_config_parser",
    "build_parser",
    "interval_value",
]


class _HelpFormatter(argparse.ArgumentDefaultsHelpFormatter):
    """Help formatter that keeps ample width for long descriptions."""

    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=36)
        minimum_total_width = self._max_help_position + _MINIMUM_HELP_WIDTH
        self._width = max(self._width, minimum_total_width)


def interval_value(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            _("The interval must be a decimal number.")
        ) from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(_("The interval must be greater than 0."))
    return parsed


def _add_common_options(
    parser: argparse.ArgumentParser, config: AppConfig
) -> None:
    parser.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help=_("Workspace root that contains the patch directory."),
    )
    parser.add_argument(
        "--config-path",
        type=Path,
        default=None,
        help=_(
            "Override the configuration file path (default: use the standard location)."
        ),
    )
    parser.add_argument(
        "--log-level",
        default=config.log_level,
        choices=_LOG_LEVEL_CHOICES,
        help=_(
            "Logging level to emit on stderr (debug, info, warning, error, critical)."
        ),
    )


def build_parser(config: AppConfig | None = None) -> argparse.ArgumentParser:
    """Create the top-level parser with its ``scan``/``show``/``watch``/``tool`` commands."""

    resolved_config = config or load_config()
    parser = argparse.ArgumentParser(
        prog="taylored-highlighter",
        description=_(
            "{app_name}: highlight lines added or removed by patch files in the "
            "current content of the files they target."
        ).format(app_name=APP_NAME),
        formatter_class=_HelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=__version__,
        help=_("Show the version number and exit."),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help=_("Scan the patch directory and print the highlights."),
        formatter_class=_HelpFormatter,
    )
    _add_common_options(scan_parser, resolved_config)
    scan_parser.add_argument(
        "--summary-format",
        action="append",
        choices=_SUMMARY_FORMATS,
        help=_(
            "Choose one or more output formats (defaults to text). Repeat the option "
            "to combine formats; use 'none' to suppress output."
        ),
    )

    show_parser = subparsers.add_parser(
        "show",
        help=_("Print a file with its highlighted blocks marked."),
        formatter_class=_HelpFormatter,
    )
    _add_common_options(show_parser, resolved_config)
    show_parser.add_argument("file", type=Path, help=_("File to display."))
    color_group = show_parser.add_mutually_exclusive_group()
    color_group.add_argument(
        "--color",
        dest="color",
        action="store_true",
        default=None,
        help=_("Underline highlighted lines using terminal escapes."),
    )
    color_group.add_argument(
        "--no-color",
        dest="color",
        action="store_false",
        help=_("Disable terminal escapes."),
    )

    watch_parser = subparsers.add_parser(
        "watch",
        help=_("Rescan whenever patch files or the configuration change."),
        formatter_class=_HelpFormatter,
    )
    _add_common_options(watch_parser, resolved_config)
    watch_parser.add_argument(
        "--interval",
        type=interval_value,
        default=resolved_config.watch_interval,
        help=_("Polling interval in seconds."),
    )

    tool_parser = subparsers.add_parser(
        "tool",
        help=_("Run a companion tool action and rescan when patches changed."),
        formatter_class=_HelpFormatter,
    )
    _add_common_options(tool_parser, resolved_config)
    tool_parser.add_argument("action", choices=TOOL_ACTIONS)
    tool_parser.add_argument(
        "name",
        nargs="?",
        help=_("Patch name (or branch name for 'save')."),
    )
    tool_parser.add_argument(
        "--message",
        default=None,
        help=_("Commit message used by the 'offset' action."),
    )

    gui_parser = subparsers.add_parser(
        "gui",
        help=_("Open the graphical viewer (requires the 'gui' extra)."),
        formatter_class=_HelpFormatter,
    )
    _add_common_options(gui_parser, resolved_config)

    return parser


def build_config_parser() -> argparse.ArgumentParser:
    """Return an ``ArgumentParser`` configured for the ``config`` commands."""

    parser = argparse.ArgumentParser(
        prog="taylored-highlighter config",
        description=_("Inspect or modify the persistent configuration."),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _config_path_option(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--config-path",
            type=Path,
            default=None,
            help=_(
                "Override the configuration file path (default: use the standard location)."
            ),
        )

    show_parser = subparsers.add_parser(
        "show", help=_("Display the current configuration values.")
    )
    _config_path_option(show_parser)

    set_parser = subparsers.add_parser("set", help=_("Update a configuration key."))
    set_parser.add_argument("key", choices=CONFIG_KEYS)
    set_parser.add_argument(
        "values",
        nargs="+",
        help=_("New value for the key. Provide multiple values for exclude_dirs."),
    )
    _config_path_option(set_parser)

    reset_parser = subparsers.add_parser(
        "reset",
        help=_("Reset one key or the entire configuration to the defaults."),
    )
    reset_parser.add_argument("key", choices=CONFIG_KEYS, nargs="?")
    _config_path_option(reset_parser)

    return parser


def bootstrap_config_path(argv: list[str]) -> Optional[Path]:
    """Extract ``--config-path`` before the full parser is built."""

    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument("--config-path", type=Path, default=None)
    known, _remaining = bootstrap.parse_known_args(argv)
    path = known.config_path
    return path.expanduser() if path is not None else None
