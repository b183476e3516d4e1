"""
Configuration management for the document digitization pipeline.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ProcessingMode(Enum):
    STANDARD = "standard"
    HISTORICAL = "historical"


class TranslationBackend(Enum):
    GOOGLE = "google"
    CLAUDE = "claude"


AUTO_LANGUAGE = "auto"


@dataclass(frozen=True)
class ProcessingOptions:
    """Per-run policy flags. Immutable for the duration of a run."""
    enhance_image: bool = True
    mode: ProcessingMode = ProcessingMode.STANDARD
    language_hint: str = AUTO_LANGUAGE
    # Advisory only: results below it are flagged, never rejected
    confidence_threshold: int = 70
    # When set, DocumentPipeline.process also translates the extracted text
    target_language: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.confidence_threshold <= 100:
            raise ValueError(
                f"confidence_threshold must be within 0..100, got {self.confidence_threshold}"
            )
        if isinstance(self.mode, str):
            object.__setattr__(self, "mode", ProcessingMode(self.mode))
        if not self.language_hint:
            object.__setattr__(self, "language_hint", AUTO_LANGUAGE)


@dataclass
class OCRConfig:
    """OCR backend configuration."""
    vision_endpoint: str = "https://vision.googleapis.com/v1/images:annotate"
    # Primary backend timeouts, seconds
    standard_timeout: float = 30.0
    historical_timeout: float = 45.0
    # Local fallback budget, seconds
    fallback_timeout: float = 60.0
    # Budget for the enhancement stage, counted towards the run deadline
    enhance_timeout: float = 10.0
    # PDF rasterization
    pdf_dpi: int = 200
    # Tesseract-specific
    tesseract_psm: int = 6  # Assume uniform block of text
    tesseract_oem: int = 3  # LSTM + legacy
    tesseract_default_lang: str = "eng"

    def timeout_for(self, mode: ProcessingMode) -> float:
        if mode == ProcessingMode.HISTORICAL:
            return self.historical_timeout
        return self.standard_timeout

    def run_budget(self, mode: ProcessingMode) -> float:
        """Default wall-clock budget for Enhancing + Extracting."""
        return self.enhance_timeout + self.timeout_for(mode) + self.fallback_timeout


@dataclass
class TranslationConfig:
    """Translation backend configuration."""
    backend: TranslationBackend = TranslationBackend.GOOGLE
    endpoint: str = "https://translation.googleapis.com/language/translate/v2"
    timeout: float = 30.0
    max_retries: int = 2
    # Google Translate v2 rejects requests above ~5k characters
    max_chunk_chars: int = 4500
    claude_model: str = "claude-sonnet-4-6"


@dataclass
class DigitizerConfig:
    """Top-level configuration. API keys are loaded from env vars if not set."""
    vision_api_key: Optional[str] = None
    translate_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    ocr: OCRConfig = field(default_factory=OCRConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)

    def __post_init__(self):
        """Load API keys from environment variables if not provided."""
        if not self.vision_api_key:
            self.vision_api_key = os.environ.get("GOOGLE_VISION_API_KEY")
        if not self.translate_api_key:
            self.translate_api_key = os.environ.get("GOOGLE_TRANSLATE_API_KEY")
        if not self.anthropic_api_key:
            self.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")

    def translation_key(self) -> Optional[str]:
        """Return the API key required by the configured translation backend."""
        if self.translation.backend == TranslationBackend.CLAUDE:
            return self.anthropic_api_key
        return self.translate_api_key
