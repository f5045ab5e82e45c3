"""Abstract base class for translation backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from modsync.core.models import TranslationResult


class TranslationBackend(ABC):
    """Interface for remote translation backends.

    One call to :meth:`translate_batch` is one remote request; the
    translation client accounts rate budget per call.
    Implementations raise the :mod:`modsync.core.errors` taxonomy.
    """

    name: str = "backend"

    @abstractmethod
    def translate_batch(
        self,
        texts: list[str],
        target_lang: str,
        source_lang: str | None = None,
    ) -> list[TranslationResult]:
        """Translate a batch of texts in a single remote request.

        Args:
            texts: List of strings to translate.
            target_lang: Target language code (e.g. "en").
            source_lang: Source language code, or None for auto-detect.

        Returns:
            List of results, same length and order as input.
        """
        ...

    def translate(
        self,
        text: str,
        target_lang: str,
        source_lang: str | None = None,
    ) -> TranslationResult:
        """Translate a single text. Default implementation uses translate_batch."""
        results = self.translate_batch([text], target_lang, source_lang)
        return results[0]
