"""Script-based language detection for catalog item metadata."""

from __future__ import annotations

import re

# Order matters: Japanese mixes kana with kanji, so kana is checked
# before the ideographs that Chinese and Japanese share.
_SCRIPT_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("ko", re.compile(r"[\u3131-\u3163\uac00-\ud7a3]")),  # Hangul jamo + syllables
    ("ja", re.compile(r"[\u3040-\u309f\u30a0-\u30ff]")),  # Hiragana + Katakana
    ("zh", re.compile(r"[\u4e00-\u9fff\u3400-\u4dbf]")),  # CJK ideographs (+ ext. A)
]

DEFAULT_LANGUAGE = "en"


def detect_language(title: str, description: str = "") -> str:
    """Guess the language of an item from the scripts used in its text.

    Returns "ko", "ja" or "zh" when the matching script appears anywhere in
    the title or description, otherwise "en".
    """
    text = f"{title} {description}"
    for lang, pattern in _SCRIPT_PATTERNS:
        if pattern.search(text):
            return lang
    return DEFAULT_LANGUAGE


def needs_translation_language(language: str | None, target_lang: str) -> bool:
    """True if an item in ``language`` should be translated into ``target_lang``.

    Unknown languages are left alone.
    """
    if not language:
        return False
    return language.lower() != target_lang.lower()
