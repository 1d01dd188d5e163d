from pathlib import Path

import pytest

import taylored_highlighter.config as config_module
from taylored_highlighter.config import (
    AppConfig,
    default_config_path,
    load_config,
    save_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    loaded = load_config(path=tmp_path / "settings.toml")

    assert loaded == AppConfig()
    assert loaded.patch_dir == ".taylored"
    assert loaded.patch_extension == ".taylored"
    assert loaded.exclude_dirs == ("node_modules", ".git")
    assert loaded.added_underline_style == "dotted"
    assert loaded.removed_underline_style == "dashed"


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.toml"
    original = AppConfig(
        patch_dir="patches",
        patch_extension=".diff",
        exclude_dirs=("vendor", "dist"),
        added_underline_style="wavy",
        added_underline_color="#00ff00",
        removed_underline_color_dark="pink",
        theme="dark",
        log_level="debug",
        log_file=tmp_path / "custom.log",
        log_max_bytes=1048576,
        log_backup_count=3,
        watch_interval=0.5,
        tool_executable="/opt/bin/taylored",
    )

    save_config(original, path=config_path)
    loaded = load_config(path=config_path)

    assert loaded == original
    assert config_path.read_text(encoding="utf-8").startswith(
        "[taylored_highlighter]\n"
    )


def test_invalid_values_fall_back_to_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.toml"
    config_path.write_text(
        "[taylored_highlighter]\n"
        'added_underline_style = "sparkly"\n'
        'theme = "neon"\n'
        "log_max_bytes = -5\n"
        "watch_interval = 0\n"
        "patch_dir = 42\n"
        'patch_extension = "patch"\n',
        encoding="utf-8",
    )

    loaded = load_config(path=config_path)
    defaults = AppConfig()

    assert loaded.added_underline_style == defaults.added_underline_style
    assert loaded.theme == defaults.theme
    assert loaded.log_max_bytes == defaults.log_max_bytes
    assert loaded.watch_interval == defaults.watch_interval
    assert loaded.patch_dir == defaults.patch_dir
    assert loaded.patch_extension == ".patch"


def test_top_level_keys_are_accepted(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.toml"
    config_path.write_text('theme = "light"\n', encoding="utf-8")

    assert load_config(path=config_path).theme == "light"


def test_malformed_toml_returns_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.toml"
    config_path.write_text("[taylored_highlighter\ntheme = ", encoding="utf-8")

    assert load_config(path=config_path) == AppConfig()


def test_exclude_dirs_accepts_comma_separated_string(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.toml"
    config_path.write_text(
        '[taylored_highlighter]\nexclude_dirs = "build, dist,build"\n',
        encoding="utf-8",
    )

    assert load_config(path=config_path).exclude_dirs == ("build", "dist")


def test_save_config_atomic_replace_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "settings.toml"
    save_config(AppConfig(theme="light"), path=config_path)
    before = config_path.read_text(encoding="utf-8")

    def failing_replace(src: str, dst: str) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(config_module.os, "replace", failing_replace)

    with pytest.raises(OSError):
        save_config(AppConfig(theme="dark"), path=config_path)

    assert config_path.read_text(encoding="utf-8") == before
    assert [path.name for path in tmp_path.iterdir()] == ["settings.toml"]


def test_default_config_path_honours_xdg(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config_module.sys, "platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert default_config_path() == tmp_path / "taylored-highlighter" / "settings.toml"


def test_rendering_signature_tracks_style_options() -> None:
    base = AppConfig()

    assert base.rendering_signature() == AppConfig().rendering_signature()
    assert (
        AppConfig(removed_underline_color="blue").rendering_signature()
        != base.rendering_signature()
    )
    assert AppConfig(watch_interval=5.0).rendering_signature() == (
        base.rendering_signature()
    )
