"""
Base translator interface and common data structures.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from manuscript_digitizer.config import AUTO_LANGUAGE
from manuscript_digitizer.errors import BackendError, BackendTimeoutError, TranslationError
from manuscript_digitizer.ocr.engine import FALLBACK_LANGUAGE
from manuscript_digitizer.utils import split_for_translation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationResult:
    """Translated text for one (text, source, target) request."""
    translated_text: str
    target_language: str
    source_language: str
    method: str = ""
    chunks: int = 0
    latency_seconds: float = 0.0


def detectable_source(language: Optional[str]) -> Optional[str]:
    """Return None when the source language should be auto-detected."""
    if not language or language in (AUTO_LANGUAGE, FALLBACK_LANGUAGE):
        return None
    return language


class BaseTranslator(ABC):
    """Abstract base for all translation backends."""

    max_chunk_chars: int = 4500

    @property
    @abstractmethod
    def method_name(self) -> str:
        """Human-readable name of this translation method."""
        ...

    @abstractmethod
    def translate_chunk(
        self,
        text: str,
        source_language: Optional[str],
        target_language: str,
    ) -> str:
        """
        Translate one backend-sized chunk.

        Args:
            text: Chunk no longer than `max_chunk_chars`.
            source_language: Source code, or None to auto-detect.
            target_language: Target language code.

        Returns:
            The translated chunk.

        Raises:
            BackendTimeoutError: if the call exceeded its deadline.
            BackendError: for any other backend failure.
            TranslationError: the backend answer is incomplete.
        """
        ...

    def translate(
        self,
        text: str,
        source_language: Optional[str],
        target_language: str,
    ) -> TranslationResult:
        """
        Translate text of any length.

        Long text is split at paragraph and sentence breaks and reassembled
        in its original order.

        Raises:
            BackendTimeoutError: a backend call timed out.
            TranslationError: any other backend failure, or an empty answer.
        """
        if not target_language:
            raise ValueError("target_language is required")

        start = time.time()
        source = detectable_source(source_language)
        reported_source = source or AUTO_LANGUAGE

        if not text.strip():
            return TranslationResult(
                translated_text=text,
                target_language=target_language,
                source_language=reported_source,
                method=self.method_name,
            )

        pieces = split_for_translation(text, self.max_chunk_chars)
        logger.info(
            "%s translation: %d chars in %d chunk(s), %s -> %s",
            self.method_name,
            len(text),
            len(pieces),
            reported_source,
            target_language,
        )

        parts = []
        sent = 0
        for chunk, separator in pieces:
            if chunk.strip():
                translated = self._translate_checked(chunk, source, target_language)
                sent += 1
            else:
                translated = chunk
            parts.append(translated + separator)

        return TranslationResult(
            translated_text="".join(parts),
            target_language=target_language,
            source_language=reported_source,
            method=self.method_name,
            chunks=sent,
            latency_seconds=time.time() - start,
        )

    def _translate_checked(self, chunk: str, source: Optional[str], target: str) -> str:
        try:
            translated = self.translate_chunk(chunk, source, target)
        except BackendTimeoutError:
            raise
        except BackendError as e:
            raise TranslationError(f"{self.method_name} translation failed: {e}") from e

        if not translated or not translated.strip():
            raise TranslationError(f"{self.method_name} returned an empty translation")
        return translated
