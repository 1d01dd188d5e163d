from __future__ import annotations

import pytest

from taylored_highlighter import localization


def test_gettext_falls_back_to_source_messages() -> None:
    assert localization.gettext("Highlight summary") == "Highlight summary"
    assert localization.ngettext("line", "lines", 1) == "line"
    assert localization.ngettext("line", "lines", 2) == "lines"


def test_translators_are_cached_per_language(monkeypatch: pytest.MonkeyPatch) -> None:
    first = localization.get_translator("it")
    assert localization.get_translator("it") is first

    monkeypatch.setenv(localization.LANG_ENV_VAR, "de_DE")
    localization.clear_translation_cache()

    assert localization.get_translator("it") is not first
