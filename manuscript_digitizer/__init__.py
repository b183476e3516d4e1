"""
Manuscript Digitizer
====================

Extracts text from scanned historical and handwritten documents, scores the
extraction, optionally translates it, and stores the result for its owner.

Architecture:
    Image/PDF → Enhancement → Cloud OCR (Tesseract fallback)
        → Confidence Estimation → Translation (optional) → Document Store

Failure policy:
    - Enhancement errors fall back to the original image
    - Extraction fails only when both OCR backends fail
    - Translation errors never invalidate a finished extraction
"""

__version__ = "1.0.0"

from manuscript_digitizer.config import DigitizerConfig, ProcessingMode, ProcessingOptions


def __getattr__(name: str):
    """Lazy import for modules that require OpenCV/Pillow."""
    if name == "DocumentPipeline":
        from manuscript_digitizer.pipeline import DocumentPipeline
        return DocumentPipeline
    if name == "SourceFile":
        from manuscript_digitizer.models import SourceFile
        return SourceFile
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "DigitizerConfig",
    "DocumentPipeline",
    "ProcessingMode",
    "ProcessingOptions",
    "SourceFile",
]
