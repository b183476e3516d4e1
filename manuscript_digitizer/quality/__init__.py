"""
Quality estimation for OCR output.
"""

from manuscript_digitizer.quality.confidence import (
    FALLBACK_CONFIDENCE_CAP,
    MAX_CONFIDENCE,
    PAGE_SIZE_UNIT,
    ConfidenceEstimate,
    ConfidenceEstimator,
    estimate_pages,
)

__all__ = [
    "ConfidenceEstimate",
    "ConfidenceEstimator",
    "FALLBACK_CONFIDENCE_CAP",
    "MAX_CONFIDENCE",
    "PAGE_SIZE_UNIT",
    "estimate_pages",
]
