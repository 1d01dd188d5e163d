"""Shared test configuration."""

from __future__ import annotations

import logging
import os
from typing import Iterator

import pytest

from taylored_highlighter.localization import LANG_ENV_VAR, clear_translation_cache
from taylored_highlighter.logging_utils import CONSOLE_HANDLER_NAME, LOG_FILE_ENV_VAR
from tests._pytest_typing import typed_fixture

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@typed_fixture(autouse=True)
def isolated_environment(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep log files, settings and translations away from the real home."""

    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv(LOG_FILE_ENV_VAR, str(home / "test.log"))
    monkeypatch.setenv(LANG_ENV_VAR, "en")
    clear_translation_cache()

    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    try:
        yield None
    finally:
        for handler in list(root_logger.handlers):
            if handler not in handlers and (
                isinstance(handler, logging.FileHandler)
                or handler.get_name() == CONSOLE_HANDLER_NAME
            ):
                root_logger.removeHandler(handler)
                handler.close()
        root_logger.setLevel(level)
        clear_translation_cache()

