"""
Claude (Anthropic) translator.

Suited to archival material where context matters:
- Archaic spellings and obsolete vocabulary
- Honorifics, place names and period-specific terms
- Partially illegible passages marked by the OCR step
"""

import logging
from typing import Optional

from manuscript_digitizer.errors import BackendError, BackendTimeoutError, TranslationError
from manuscript_digitizer.translator.base import BaseTranslator
from manuscript_digitizer.utils import language_name, retry_with_backoff

logger = logging.getLogger(__name__)

TRANSLATION_PROMPT = """You are an expert translator of historical and handwritten documents.

The text below was extracted by OCR from a scanned document{source_clause}.
Translate it into {target}.

TRANSLATION GUIDELINES:
1. Preserve the original meaning, tone and register
2. Keep proper nouns, dates and numbers exactly as written
3. Maintain paragraph structure and line breaks
4. Where a word is clearly an OCR error, translate the most likely intended word
5. If a passage is illegible, keep it as-is rather than guessing

IMPORTANT:
- Output ONLY the translation, with no notes or explanations

Text:

{text}"""


class ClaudeTranslator(BaseTranslator):
    """Translation using Anthropic's Claude API."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-6",
        timeout: float = 30.0,
        max_retries: int = 2,
        max_chunk_chars: int = 4500,
    ):
        if not api_key:
            raise ValueError("An Anthropic API key is required")
        try:
            import anthropic
            self._anthropic = anthropic
            # Retries are handled by retry_with_backoff
            self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        except ImportError:
            raise ImportError(
                "anthropic package required. Install with: pip install anthropic"
            )
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_chunk_chars = max_chunk_chars

    @property
    def method_name(self) -> str:
        return "claude"

    @retry_with_backoff(max_retries=2, base_delay=2.0, exceptions=(BackendError,))
    def translate_chunk(
        self,
        text: str,
        source_language: Optional[str],
        target_language: str,
    ) -> str:
        source_clause = f" written in {language_name(source_language)}" if source_language else ""
        prompt = TRANSLATION_PROMPT.format(
            source_clause=source_clause,
            target=language_name(target_language),
            text=text,
        )

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=4096,
                messages=[{"role": "user", "content": prompt}],
            )
        except self._anthropic.APITimeoutError as e:
            raise BackendTimeoutError(f"Claude timed out after {self.timeout:.0f}s") from e
        except self._anthropic.APIStatusError as e:
            raise BackendError(f"Claude API error: {e}", status_code=e.status_code) from e
        except self._anthropic.APIError as e:
            raise BackendError(f"Claude API error: {e}") from e

        translated = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        ).strip()

        logger.info(
            "Claude translation: received %d chars (stop_reason=%s)",
            len(translated),
            message.stop_reason,
        )
        if message.stop_reason == "max_tokens":
            # Partial output loses the end of the chunk
            raise TranslationError(
                f"Claude translation truncated at max_tokens ({len(text)} chars in)"
            )
        return translated
