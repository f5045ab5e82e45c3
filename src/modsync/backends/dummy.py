"""Dummy translation backend for testing: prefixes strings with a [XX] tag."""

from __future__ import annotations

from modsync.backends.base import TranslationBackend
from modsync.core.models import TranslationResult


class DummyBackend(TranslationBackend):
    """Offline backend that prefixes each string with the target language tag.

    Example: "铁剑" → "[EN] 铁剑". The reported source language is the
    requested one, if any.
    """

    name = "dummy"

    def __init__(self) -> None:
        self.calls = 0

    def translate_batch(
        self,
        texts: list[str],
        target_lang: str,
        source_lang: str | None = None,
    ) -> list[TranslationResult]:
        self.calls += 1
        tag = f"[{target_lang.upper()}]"
        detected = source_lang.lower() if source_lang else None
        return [TranslationResult(f"{tag} {text}", detected) for text in texts]
