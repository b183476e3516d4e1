"""
Translation subsystem: pluggable backends behind one chunking interface.
"""

from manuscript_digitizer.config import DigitizerConfig, TranslationBackend
from manuscript_digitizer.translator.base import BaseTranslator, TranslationResult

__all__ = [
    "BaseTranslator",
    "TranslationResult",
    "ClaudeTranslator",
    "GoogleTranslator",
    "create_translator",
]


def __getattr__(name: str):
    if name == "ClaudeTranslator":
        from manuscript_digitizer.translator.claude_translator import ClaudeTranslator
        return ClaudeTranslator
    if name == "GoogleTranslator":
        from manuscript_digitizer.translator.google_translator import GoogleTranslator
        return GoogleTranslator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def create_translator(config: DigitizerConfig) -> BaseTranslator:
    """Build the configured translation backend. Its API key is required."""
    settings = config.translation
    key = config.translation_key()
    if not key:
        raise ValueError(
            f"No API key configured for the '{settings.backend.value}' translation backend"
        )

    if settings.backend == TranslationBackend.CLAUDE:
        from manuscript_digitizer.translator.claude_translator import ClaudeTranslator
        return ClaudeTranslator(
            key,
            model=settings.claude_model,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            max_chunk_chars=settings.max_chunk_chars,
        )

    from manuscript_digitizer.translator.google_translator import GoogleTranslator
    return GoogleTranslator(
        key,
        endpoint=settings.endpoint,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        max_chunk_chars=settings.max_chunk_chars,
    )
