"""DeepL API translation backend."""

from __future__ import annotations

import logging

from modsync.backends.base import TranslationBackend
from modsync.core.errors import (
    ConfigurationError,
    QuotaExceeded,
    Throttled,
    TransientBackendError,
    TranslationFailed,
)
from modsync.core.models import TranslationResult

logger = logging.getLogger(__name__)

# DeepL accepts at most 50 texts per request
MAX_BATCH_SIZE = 50

# DeepL rejects bare "EN"/"PT" as targets
_TARGET_ALIASES = {"EN": "EN-US", "PT": "PT-BR"}


class DeepLBackend(TranslationBackend):
    """Translation backend using the DeepL API.

    Performs exactly one request per :meth:`translate_batch` call and maps
    SDK exceptions onto the modsync error taxonomy. Retrying is left to the
    translation client.
    """

    name = "deepl"
    max_batch_size = MAX_BATCH_SIZE

    def __init__(self, api_key: str, server_url: str | None = None) -> None:
        if not api_key:
            raise ConfigurationError("DeepL API key not configured")
        try:
            import deepl
        except ImportError:
            raise ImportError(
                "DeepL backend requires the 'deepl' package. "
                "Install it with: pip install deepl"
            ) from None
        self._deepl = deepl
        self._translator = deepl.Translator(api_key, server_url=server_url)

    def translate_batch(
        self,
        texts: list[str],
        target_lang: str,
        source_lang: str | None = None,
    ) -> list[TranslationResult]:
        if not texts:
            return []
        if len(texts) > MAX_BATCH_SIZE:
            raise ValueError(f"DeepL accepts at most {MAX_BATCH_SIZE} texts per request")

        target = target_lang.upper()
        target = _TARGET_ALIASES.get(target, target)
        source = source_lang.upper() if source_lang and source_lang != "auto" else None

        logger.debug(
            "DeepL request: %d texts (%d chars) to %s",
            len(texts), sum(len(t) for t in texts), target,
        )
        deepl = self._deepl
        try:
            result = self._translator.translate_text(
                texts, target_lang=target, source_lang=source,
            )
        except deepl.QuotaExceededException as e:
            raise QuotaExceeded(f"DeepL API quota exceeded: {e}", status=456) from e
        except deepl.TooManyRequestsException as e:
            raise Throttled(f"DeepL API rate limit exceeded: {e}", status=429) from e
        except deepl.AuthorizationException as e:
            raise ConfigurationError(
                f"DeepL API authentication failed. Check your API key: {e}", status=403,
            ) from e
        except deepl.ConnectionException as e:
            raise TransientBackendError(f"DeepL connection failed: {e}") from e
        except deepl.DeepLException as e:
            status = getattr(e, "http_status_code", None)
            raise TranslationFailed(f"DeepL API error ({status}): {e}", status=status) from e

        # translate_text returns a list of TextResult when given a list
        if not isinstance(result, list):
            result = [result]
        if len(result) != len(texts):
            raise TranslationFailed(
                f"DeepL returned {len(result)} translations for {len(texts)} texts"
            )
        return [
            TranslationResult(
                r.text,
                (getattr(r, "detected_source_lang", None) or "").lower() or None,
            )
            for r in result
        ]
