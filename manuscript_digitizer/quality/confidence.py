"""
Confidence estimation for extraction results.

Produces a 0-100 quality score that does not depend on any one OCR
backend's scoring scale, plus a page estimate from the input size.

Formula:
    empty text                  -> 0
    base (backend confidence)   =  round(raw_confidence * 100)
    base (no backend signal)    =  40 + 40 * alnum_ratio + min(10, words / 10)
    + ENHANCEMENT_BONUS if the image was enhanced
    capped at MAX_CONFIDENCE (primary) or FALLBACK_CONFIDENCE_CAP (fallback)

OCR is never certain, so 100 is unreachable.
"""

import logging
import math
from dataclasses import dataclass

from manuscript_digitizer.ocr.engine import ExtractionResult

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 98
FALLBACK_CONFIDENCE_CAP = 85
ENHANCEMENT_BONUS = 10

# Bytes per estimated page. An approximation: there are no real page
# boundaries in a single uploaded image.
PAGE_SIZE_UNIT = 500 * 1024


@dataclass(frozen=True)
class ConfidenceEstimate:
    confidence: int
    pages: int


def estimate_pages(byte_length: int, page_size_unit: int = PAGE_SIZE_UNIT) -> int:
    return max(1, math.ceil(byte_length / page_size_unit))


def text_confidence(text: str) -> float:
    """Heuristic base confidence from character density and word count."""
    chars = [c for c in text if not c.isspace()]
    if not chars:
        return 0.0
    alnum_ratio = sum(1 for c in chars if c.isalnum()) / len(chars)
    word_count = len(text.split())
    return 40 + 40 * alnum_ratio + min(10.0, word_count / 10)


class ConfidenceEstimator:
    """Derives confidence and page count from an extraction."""

    def __init__(
        self,
        enhancement_bonus: int = ENHANCEMENT_BONUS,
        max_confidence: int = MAX_CONFIDENCE,
        fallback_cap: int = FALLBACK_CONFIDENCE_CAP,
        page_size_unit: int = PAGE_SIZE_UNIT,
    ):
        self.enhancement_bonus = enhancement_bonus
        self.max_confidence = max_confidence
        self.fallback_cap = min(fallback_cap, max_confidence)
        self.page_size_unit = page_size_unit

    def estimate(
        self,
        extraction: ExtractionResult,
        source_size: int,
        enhanced: bool,
    ) -> ConfidenceEstimate:
        pages = estimate_pages(source_size, self.page_size_unit)
        confidence = self.score(extraction, enhanced)
        logger.info(
            "Estimated confidence %d over %d page(s) (fallback=%s, enhanced=%s)",
            confidence,
            pages,
            extraction.used_fallback,
            enhanced,
        )
        return ConfidenceEstimate(confidence=confidence, pages=pages)

    def score(self, extraction: ExtractionResult, enhanced: bool) -> int:
        if not extraction.has_text:
            return 0

        if extraction.raw_confidence is not None:
            base = extraction.raw_confidence * 100
        else:
            base = text_confidence(extraction.text)

        if enhanced:
            base += self.enhancement_bonus

        cap = self.fallback_cap if extraction.used_fallback else self.max_confidence
        return int(max(0, min(round(base), cap)))
