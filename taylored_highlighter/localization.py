"""Helpers to manage gettext-based translations for user-facing messages."""

from __future__ import annotations

import gettext as _gettext
import locale
import os
from pathlib import Path
from typing import Dict, List, Tuple

DOMAIN = "taylored_highlighter"
LOCALE_DIR = Path(__file__).resolve().parent / "locale"
LANG_ENV_VAR = "TAYLORED_HIGHLIGHTER_LANG"

_CACHE: Dict[Tuple[str, ...], _gettext.NullTranslations] = {}

__all__ = [
    "LANG_ENV_VAR",
    "clear_translation_cache",
    "get_translator",
    "gettext",
    "ngettext",
]


def _system_language() -> str | None:
    try:
        value = locale.getlocale()
    except ValueError:
        return None
    if value and value[0]:
        return str(value[0])
    return None


def _candidate_languages(preferred: str | None) -> List[str]:
    candidates: List[str] = []
    for value in (preferred, os.getenv(LANG_ENV_VAR), _system_language()):
        if not value:
            continue
        normalized = value.replace("-", "_").strip().lower()
        for code in (normalized, normalized.split("_", 1)[0]):
            if code and code not in candidates:
                candidates.append(code)
    if "en" not in candidates:
        candidates.append("en")
    return candidates


def get_translator(locale_code: str | None = None) -> _gettext.NullTranslations:
    """Return (and cache) the gettext translator for ``locale_code``."""

    languages = tuple(_candidate_languages(locale_code))
    translation = _CACHE.get(languages)
    if translation is None:
        translation = _gettext.translation(
            DOMAIN,
            localedir=str(LOCALE_DIR),
            languages=list(languages),
            fallback=True,
        )
        _CACHE[languages] = translation
    return translation


def gettext(message: str, locale_code: str | None = None) -> str:
    """Translate ``message`` using the active translator."""

    return get_translator(locale_code).gettext(message)


def ngettext(singular: str, plural: str, n: int, locale_code: str | None = None) -> str:
    """Return the singular or plural form based on ``n`` using the active translator."""

    return get_translator(locale_code).ngettext(singular, plural, n)


def clear_translation_cache() -> None:
    """Remove cached gettext translators (useful in tests)."""

    _CACHE.clear()
