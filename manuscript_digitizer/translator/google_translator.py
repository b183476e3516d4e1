"""
Google Cloud Translation (v2 REST) translator.

Google's neural MT covers every Indic language the application offers and
is the default backend.
"""

import logging
from typing import Optional

import requests

from manuscript_digitizer.errors import BackendError, BackendTimeoutError
from manuscript_digitizer.translator.base import BaseTranslator
from manuscript_digitizer.utils import retry_with_backoff

logger = logging.getLogger(__name__)


class GoogleTranslator(BaseTranslator):
    """Translation using the Google Cloud Translation API v2."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://translation.googleapis.com/language/translate/v2",
        timeout: float = 30.0,
        max_retries: int = 2,
        max_chunk_chars: int = 4500,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ValueError("A Google Translate API key is required")
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_chunk_chars = max_chunk_chars
        self.session = session or requests.Session()

    @property
    def method_name(self) -> str:
        return "google"

    @retry_with_backoff(max_retries=2, base_delay=1.0, exceptions=(BackendError,))
    def translate_chunk(
        self,
        text: str,
        source_language: Optional[str],
        target_language: str,
    ) -> str:
        params = {
            "q": text,
            "target": target_language,
            "key": self.api_key,
            "format": "text",
        }
        if source_language:
            params["source"] = source_language

        try:
            response = self.session.post(self.endpoint, data=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise BackendTimeoutError(
                f"Google Translate timed out after {self.timeout:.0f}s"
            ) from e
        except requests.RequestException as e:
            raise BackendError(f"Google Translate request failed: {e}") from e

        if not response.ok:
            raise BackendError(
                f"Google Translate returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Google Translate returned invalid JSON: {e}") from e

        translations = data.get("data", {}).get("translations", [])
        if not translations:
            raise BackendError("No translations returned from Google API")

        translated = translations[0].get("translatedText", "")
        logger.debug("Google: received %d chars", len(translated))
        return translated
