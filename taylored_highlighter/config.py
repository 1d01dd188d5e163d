"""Persistent configuration handling for Taylored Highlighter."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover - exercised on Python 3.10 only
    import tomli as tomllib

from .resolver import DEFAULT_EXCLUDE_DIRS
from .utils import PATCH_DIR, PATCH_EXTENSION

_CONFIG_SECTION = "taylored_highlighter"
_CONFIG_FILENAME = "settings.toml"
_DEFAULT_LOG_LEVEL = "warning"
_DEFAULT_LOG_FILE_NAME = ".taylored_highlighter.log"
_DEFAULT_LOG_MAX_BYTES = 0
_DEFAULT_LOG_BACKUP_COUNT = 0
_DEFAULT_WATCH_INTERVAL = 1.0
_DEFAULT_TOOL_EXECUTABLE = "taylored"

UNDERLINE_STYLES: tuple[str, ...] = ("solid", "dashed", "dotted", "double", "wavy")
THEMES: tuple[str, ...] = ("auto", "light", "dark")

# Option names that only influence how annotations are drawn.
RENDERING_KEYS: tuple[str, ...] = (
    "added_underline_style",
    "added_underline_color",
    "added_underline_color_light",
    "added_underline_color_dark",
    "removed_underline_style",
    "removed_underline_color",
    "removed_underline_color_light",
    "removed_underline_color_dark",
    "theme",
)


def _default_log_file() -> Path:
    return Path.home() / _DEFAULT_LOG_FILE_NAME


DEFAULT_LOG_FILE: Path = _default_log_file()
DEFAULT_LOG_MAX_BYTES: int = _DEFAULT_LOG_MAX_BYTES
DEFAULT_LOG_BACKUP_COUNT: int = _DEFAULT_LOG_BACKUP_COUNT


__all__ = [
    "AppConfig",
    "DEFAULT_LOG_BACKUP_COUNT",
    "DEFAULT_LOG_FILE",
    "DEFAULT_LOG_MAX_BYTES",
    "RENDERING_KEYS",
    "THEMES",
    "UNDERLINE_STYLES",
    "default_config_dir",
    "default_config_path",
    "load_config",
    "save_config",
]


@dataclass
class AppConfig:
    """Dataclass representing the persisted configuration values."""

    patch_dir: str = PATCH_DIR
    patch_extension: str = PATCH_EXTENSION
    exclude_dirs: tuple[str, ...] = field(
        default_factory=lambda: tuple(DEFAULT_EXCLUDE_DIRS)
    )
    added_underline_style: str = "dotted"
    added_underline_color: str = "green"
    added_underline_color_light: str = "darkgreen"
    added_underline_color_dark: str = "lightgreen"
    removed_underline_style: str = "dashed"
    removed_underline_color: str = "red"
    removed_underline_color_light: str = "#990000"
    removed_underline_color_dark: str = "#ff7f7f"
    theme: str = "auto"
    log_level: str = _DEFAULT_LOG_LEVEL
    log_file: Path = field(default_factory=_default_log_file)
    log_max_bytes: int = DEFAULT_LOG_MAX_BYTES
    log_backup_count: int = DEFAULT_LOG_BACKUP_COUNT
    watch_interval: float = _DEFAULT_WATCH_INTERVAL
    tool_executable: str = _DEFAULT_TOOL_EXECUTABLE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Create an :class:`AppConfig` instance from ``data``."""

        base = cls()
        return cls(
            patch_dir=_coerce_str(data.get("patch_dir"), base.patch_dir),
            patch_extension=_coerce_extension(
                data.get("patch_extension"), base.patch_extension
            ),
            exclude_dirs=_coerce_exclude_dirs(
                data.get("exclude_dirs"), base.exclude_dirs
            ),
            added_underline_style=_coerce_choice(
                data.get("added_underline_style"),
                base.added_underline_style,
                UNDERLINE_STYLES,
            ),
            added_underline_color=_coerce_str(
                data.get("added_underline_color"), base.added_underline_color
            ),
            added_underline_color_light=_coerce_str(
                data.get("added_underline_color_light"),
                base.added_underline_color_light,
            ),
            added_underline_color_dark=_coerce_str(
                data.get("added_underline_color_dark"),
                base.added_underline_color_dark,
            ),
            removed_underline_style=_coerce_choice(
                data.get("removed_underline_style"),
                base.removed_underline_style,
                UNDERLINE_STYLES,
            ),
            removed_underline_color=_coerce_str(
                data.get("removed_underline_color"), base.removed_underline_color
            ),
            removed_underline_color_light=_coerce_str(
                data.get("removed_underline_color_light"),
                base.removed_underline_color_light,
            ),
            removed_underline_color_dark=_coerce_str(
                data.get("removed_underline_color_dark"),
                base.removed_underline_color_dark,
            ),
            theme=_coerce_choice(data.get("theme"), base.theme, THEMES),
            log_level=_coerce_log_level(data.get("log_level"), base.log_level),
            log_file=_coerce_path(data.get("log_file"), base.log_file),
            log_max_bytes=_coerce_non_negative_int(
                data.get("log_max_bytes"), base.log_max_bytes
            ),
            log_backup_count=_coerce_non_negative_int(
                data.get("log_backup_count"), base.log_backup_count
            ),
            watch_interval=_coerce_positive_float(
                data.get("watch_interval"), base.watch_interval
            ),
            tool_executable=_coerce_str(
                data.get("tool_executable"), base.tool_executable
            ),
        )

    def to_mapping(self) -> MutableMapping[str, Any]:
        """Return a mutable mapping suitable for serialization."""

        mapping: MutableMapping[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, Path):
                value = str(value)
            elif isinstance(value, tuple):
                value = list(value)
            mapping[item.name] = value
        return mapping

    def rendering_signature(self) -> tuple[str, ...]:
        """Return the values of every option that affects rendering only."""

        return tuple(str(getattr(self, key)) for key in RENDERING_KEYS)


def default_config_dir() -> Path:
    """Return the default directory that stores the configuration file."""

    if sys.platform.startswith("win"):
        base = os.getenv("APPDATA") or os.getenv("LOCALAPPDATA")
        if base:
            return Path(base) / "Taylored Highlighter"
        return Path.home() / "AppData" / "Roaming" / "Taylored Highlighter"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Taylored Highlighter"
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "taylored-highlighter"
    return Path.home() / ".config" / "taylored-highlighter"


def default_config_path() -> Path:
    """Return the fully-qualified configuration file path."""

    return default_config_dir() / _CONFIG_FILENAME


def load_config(path: Path | None = None) -> AppConfig:
    """Load the configuration from ``path`` or the default location."""

    target = Path(path) if path is not None else default_config_path()
    if not target.is_file():
        return AppConfig()
    try:
        raw_data = target.read_bytes()
    except OSError:
        return AppConfig()

    try:
        parsed = tomllib.loads(raw_data.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError):
        return AppConfig()

    section = parsed.get(_CONFIG_SECTION)
    data = section if isinstance(section, Mapping) else parsed
    return AppConfig.from_mapping(data)


def save_config(config: AppConfig, path: Path | None = None) -> Path:
    """Persist ``config`` to ``path`` or the default location atomically."""

    target = Path(path) if path is not None else default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)

    content_lines = [f"[{_CONFIG_SECTION}]"]
    for key, value in config.to_mapping().items():
        content_lines.append(f"{key} = {_toml_value(value)}")
    content_lines.append("")

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write("\n".join(content_lines))
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    return target


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format(value, ".6g") if not value.is_integer() else f"{value:.1f}"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    return json.dumps(str(value))


def _coerce_str(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    candidate = value.strip()
    return candidate or default


def _coerce_extension(value: Any, default: str) -> str:
    candidate = _coerce_str(value, default)
    return candidate if candidate.startswith(".") else f".{candidate}"


def _coerce_choice(value: Any, default: str, choices: tuple[str, ...]) -> str:
    if not isinstance(value, str):
        return default
    candidate = value.strip().lower()
    return candidate if candidate in choices else default


def _coerce_exclude_dirs(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return tuple(default)
    candidates: list[str] = []
    fallback_to_default = False
    if isinstance(value, (list, tuple, set)):
        iterator = value
    elif isinstance(value, str):
        iterator = [part.strip() for part in value.split(",")]
        fallback_to_default = True
    else:
        return tuple(default)
    for item in iterator:
        if not isinstance(item, str):
            continue
        normalized = item.strip()
        if normalized and normalized not in candidates:
            candidates.append(normalized)
    if candidates:
        return tuple(candidates)
    return tuple(default) if fallback_to_default else tuple()


def _coerce_path(value: Any, default: Path) -> Path:
    if isinstance(value, os.PathLike):
        return Path(value).expanduser()
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned:
            return Path(cleaned).expanduser()
    return default


def _coerce_log_level(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    candidate = value.strip()
    return candidate.lower() if candidate else default


def _coerce_non_negative_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, float) and value.is_integer():
        candidate = int(value)
        return candidate if candidate >= 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed >= 0 else default
    return default


def _coerce_positive_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        candidate = float(value)
    except (TypeError, ValueError):
        return default
    return candidate if candidate > 0 else default
