"""
OCR subsystem: image enhancement and text extraction.

Cloud Vision is the primary backend; Tesseract is the local fallback.
"""

from manuscript_digitizer.ocr.engine import (
    FALLBACK_LANGUAGE,
    ExtractionResult,
    TextExtractor,
)


def __getattr__(name: str):
    if name == "ImageEnhancer":
        from manuscript_digitizer.ocr.preprocessor import ImageEnhancer
        return ImageEnhancer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["ExtractionResult", "FALLBACK_LANGUAGE", "ImageEnhancer", "TextExtractor"]
