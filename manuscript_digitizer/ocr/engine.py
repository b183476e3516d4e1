"""
Text extraction with a cloud OCR backend and a local fallback.

The primary backend is Google Cloud Vision document text detection. When it
fails for any reason (transport error, non-2xx, error payload, timeout) the
locally installed Tesseract engine is tried once. Only when both fail does
extraction fail.
"""

import base64
import io
import logging
import time
from dataclasses import dataclass, replace
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from manuscript_digitizer.config import AUTO_LANGUAGE, DigitizerConfig, OCRConfig, ProcessingMode
from manuscript_digitizer.errors import BackendError, BackendTimeoutError, ExtractionError

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "unknown (fallback)"

# ISO 639-1 -> Tesseract traineddata names
TESSERACT_LANGS = {
    "en": "eng",
    "hi": "hin",
    "bn": "ben",
    "ta": "tam",
    "te": "tel",
    "mr": "mar",
    "gu": "guj",
    "kn": "kan",
    "ml": "mal",
    "pa": "pan",
    "ur": "urd",
    "ar": "ara",
    "fr": "fra",
    "de": "deu",
    "es": "spa",
}


@dataclass(frozen=True)
class ExtractionResult:
    """Output of one extraction. Never mutated after creation."""
    text: str
    detected_language: str = ""
    raw_confidence: Optional[float] = None  # 0.0 to 1.0, backend-reported
    used_fallback: bool = False
    # First page's detected languages, highest confidence first
    languages: tuple[tuple[str, Optional[float]], ...] = ()
    engine: str = ""

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())

    @classmethod
    def merge_pages(cls, pages: list["ExtractionResult"]) -> "ExtractionResult":
        """Combine per-page results of a multi-page document."""
        if not pages:
            return cls(text="")
        if len(pages) == 1:
            return pages[0]

        text = "\n\n".join(p.text.strip() for p in pages if p.has_text)
        used_fallback = any(p.used_fallback for p in pages)

        primary_pages = [p for p in pages if not p.used_fallback and p.detected_language]
        if primary_pages:
            language = primary_pages[0].detected_language
            languages = primary_pages[0].languages
        else:
            language = FALLBACK_LANGUAGE if used_fallback else ""
            languages = ()

        reported = [p.raw_confidence for p in pages if p.raw_confidence is not None]
        raw_confidence = sum(reported) / len(reported) if reported else None

        engines = sorted({p.engine for p in pages if p.engine})
        return cls(
            text=text,
            detected_language=language,
            raw_confidence=raw_confidence,
            used_fallback=used_fallback,
            languages=languages,
            engine="+".join(engines),
        )


class VisionOCR:
    """Google Cloud Vision `images:annotate` client."""

    name = "vision"

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://vision.googleapis.com/v1/images:annotate",
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ValueError("A Google Cloud Vision API key is required")
        self.api_key = api_key
        self.endpoint = endpoint
        self.session = session or requests.Session()

    def build_request(self, image: bytes, hint: str, mode: ProcessingMode) -> dict:
        """Build the annotate payload for one image."""
        request = {
            "image": {"content": base64.b64encode(image).decode("ascii")},
            # Dense-text recognition; also covers handwriting
            "features": [{"type": "DOCUMENT_TEXT_DETECTION"}],
        }

        hints = []
        if hint and hint != AUTO_LANGUAGE:
            hints.append(hint)
            if mode == ProcessingMode.HISTORICAL:
                hints.append(f"{hint}-t-i0-handwrit")
        if hints:
            request["imageContext"] = {"languageHints": hints}

        return {"requests": [request]}

    def extract(
        self,
        image: bytes,
        hint: str = AUTO_LANGUAGE,
        mode: ProcessingMode = ProcessingMode.STANDARD,
        timeout: float = 30.0,
    ) -> ExtractionResult:
        """Send one image to Vision. Single attempt, no retry."""
        payload = self.build_request(image, hint, mode)
        logger.info("Vision OCR: sending %d bytes (mode=%s, hint=%s)", len(image), mode.value, hint)

        try:
            response = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=timeout,
            )
        except requests.Timeout as e:
            raise BackendTimeoutError(f"Vision API timed out after {timeout:.0f}s") from e
        except requests.RequestException as e:
            raise BackendError(f"Vision API request failed: {e}") from e

        if not response.ok:
            raise BackendError(
                f"Vision API returned HTTP {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Vision API returned invalid JSON: {e}") from e

        return self.parse_response(data)

    def parse_response(self, data: dict) -> ExtractionResult:
        responses = data.get("responses") or []
        if not responses:
            raise BackendError("No response from Vision API")

        first = responses[0]
        error = first.get("error")
        if error:
            raise BackendError(f"Vision API error: {error.get('message', error)}")

        # No annotation means nothing was recognized; that is not a failure
        annotation = first.get("fullTextAnnotation") or {}
        text = annotation.get("text", "")

        pages = annotation.get("pages") or []
        detected = pages[0].get("property", {}).get("detectedLanguages", []) if pages else []
        languages = tuple(sorted(
            (
                (d["languageCode"], float(d["confidence"]) if "confidence" in d else None)
                for d in detected
                if d.get("languageCode")
            ),
            key=lambda lang: lang[1] if lang[1] is not None else -1.0,
            reverse=True,
        ))

        detected_language = languages[0][0] if languages else ""
        raw_confidence = languages[0][1] if languages else None

        logger.info(
            "Vision OCR: %d chars, language=%s, confidence=%s",
            len(text),
            detected_language or "n/a",
            f"{raw_confidence:.2f}" if raw_confidence is not None else "n/a",
        )

        return ExtractionResult(
            text=text,
            detected_language=detected_language,
            raw_confidence=raw_confidence,
            used_fallback=False,
            languages=languages,
            engine=self.name,
        )


def _error_message(response: requests.Response) -> str:
    try:
        return response.json().get("error", {}).get("message", response.reason)
    except ValueError:
        return response.reason or ""


class TesseractOCR:
    """Local Tesseract engine, used when the cloud backend is unavailable."""

    name = "tesseract"

    def __init__(self, config: Optional[OCRConfig] = None):
        try:
            import pytesseract
            self.pytesseract = pytesseract
        except ImportError:
            raise ImportError(
                "pytesseract is required. Install with: pip install pytesseract\n"
                "Also install Tesseract binary: sudo apt-get install tesseract-ocr"
            )
        self.config = config or OCRConfig()

    def language_for(self, hint: str) -> str:
        return TESSERACT_LANGS.get(hint, self.config.tesseract_default_lang)

    def extract(
        self,
        image: bytes,
        hint: str = AUTO_LANGUAGE,
        mode: ProcessingMode = ProcessingMode.STANDARD,
        timeout: float = 60.0,
    ) -> ExtractionResult:
        """Extract text with Tesseract, keeping its line structure."""
        try:
            picture = Image.open(io.BytesIO(image))
            picture.load()
        except (UnidentifiedImageError, OSError) as e:
            raise BackendError(f"Tesseract cannot read image: {e}") from e

        lang = self.language_for(hint)
        custom_config = f"--oem {self.config.tesseract_oem} --psm {self.config.tesseract_psm}"
        logger.info("Tesseract OCR: lang=%s, mode=%s", lang, mode.value)

        try:
            data = self.pytesseract.image_to_data(
                picture,
                lang=lang,
                config=custom_config,
                timeout=timeout,
                output_type=self.pytesseract.Output.DICT,
            )
        except RuntimeError as e:
            # pytesseract signals its own timeout as a bare RuntimeError
            if "timeout" in str(e).lower():
                raise BackendTimeoutError(f"Tesseract timed out after {timeout:.0f}s") from e
            raise BackendError(f"Tesseract failed: {e}") from e
        except OSError as e:
            raise BackendError(f"Tesseract unavailable: {e}") from e

        lines: dict[tuple, list[str]] = {}
        confidences = []
        for i, word in enumerate(data["text"]):
            word = str(word).strip()
            if not word:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            conf = float(data["conf"][i])
            if conf >= 0:
                # Tesseract reports confidence as 0-100, normalize to 0-1
                confidences.append(conf / 100.0)

        text = "\n".join(" ".join(words) for words in lines.values())
        avg_confidence = sum(confidences) / len(confidences) if confidences else None

        logger.info(
            "Tesseract OCR: extracted %d lines, avg confidence %s",
            len(lines),
            f"{avg_confidence:.2f}" if avg_confidence is not None else "n/a",
        )

        return ExtractionResult(
            text=text,
            raw_confidence=avg_confidence,
            engine=self.name,
        )


class TextExtractor:
    """
    Primary OCR with a single degraded-mode fallback.

    Strategy:
    1. Call the primary backend once with the mode's timeout
    2. On any failure, call the fallback backend exactly once
    3. If the fallback also fails, raise ExtractionError
    """

    def __init__(self, primary, fallback=None, config: Optional[OCRConfig] = None):
        self.primary = primary
        self.fallback = fallback
        self.config = config or OCRConfig()

    def extract(
        self,
        image: bytes,
        hint: str = AUTO_LANGUAGE,
        mode: ProcessingMode = ProcessingMode.STANDARD,
        timeout: Optional[float] = None,
    ) -> ExtractionResult:
        """
        Extract text from a prepared image.

        Args:
            image: Encoded image bytes.
            hint: Language code or "auto".
            mode: Processing mode; selects the primary timeout.
            timeout: Optional overall budget in seconds for this call,
                shared by the primary and fallback attempts.

        Returns:
            ExtractionResult; `used_fallback` tells which backend produced it.
        """
        started = time.monotonic()
        primary_timeout = self.config.timeout_for(mode)
        if timeout is not None:
            primary_timeout = min(primary_timeout, timeout)

        try:
            return self.primary.extract(image, hint, mode, timeout=primary_timeout)
        except Exception as e:
            primary_error = e
            logger.warning("Primary OCR failed: %s", e)

        if self.fallback is None:
            raise ExtractionError(
                f"Primary OCR failed and no fallback is configured: {primary_error}",
                primary_error=primary_error,
            ) from primary_error

        fallback_timeout = self.config.fallback_timeout
        if timeout is not None:
            remaining = timeout - (time.monotonic() - started)
            fallback_timeout = max(1.0, min(fallback_timeout, remaining))

        logger.info("Falling back to local OCR (%s)", getattr(self.fallback, "name", "fallback"))
        try:
            result = self.fallback.extract(image, hint, mode, timeout=fallback_timeout)
        except Exception as e:
            logger.error("Fallback OCR failed: %s", e)
            raise ExtractionError(
                f"Primary and fallback OCR both failed: {primary_error}; {e}",
                primary_error=primary_error,
            ) from e

        return replace(result, used_fallback=True, detected_language=FALLBACK_LANGUAGE)


def create_extractor(config: DigitizerConfig) -> TextExtractor:
    """Build the Vision + Tesseract extractor from configuration."""
    primary = VisionOCR(config.vision_api_key, endpoint=config.ocr.vision_endpoint)
    fallback = TesseractOCR(config.ocr)
    return TextExtractor(primary, fallback, config.ocr)
