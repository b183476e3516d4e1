"""
Main pipeline orchestrator for document digitization.

This is the primary entry point that ties together:
1. Image enhancement (optional, degrades to the original on failure)
2. OCR extraction with local fallback
3. Confidence and page estimation
4. Translation (optional, never invalidates the extraction)

Progress is reported synchronously at stage boundaries:
0 at start, 40 after enhancing, 70 after extracting, 90 after estimating,
100 when the run (and translation, if requested) is complete.
"""

import concurrent.futures
import logging
import threading
import time
from typing import Callable, Optional, Union

from manuscript_digitizer.config import AUTO_LANGUAGE, DigitizerConfig, ProcessingOptions
from manuscript_digitizer.errors import (
    BackendTimeoutError,
    DeadlineExceededError,
    EncodingError,
    ExtractionError,
    PipelineFailed,
    TranslationError,
)
from manuscript_digitizer.models import PipelineOutcome, ProcessingResult, SourceFile
from manuscript_digitizer.ocr.engine import ExtractionResult, TextExtractor, create_extractor
from manuscript_digitizer.ocr.preprocessor import ImageEnhancer, profile_for_mode, rasterize_pdf
from manuscript_digitizer.quality.confidence import ConfidenceEstimator
from manuscript_digitizer.translator import BaseTranslator, TranslationResult, create_translator

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int], None]

PROGRESS_START = 0
PROGRESS_ENHANCED = 40
PROGRESS_EXTRACTED = 70
PROGRESS_ESTIMATED = 90
PROGRESS_COMPLETE = 100


class ProgressReporter:
    """Forwards non-decreasing progress values to a sink until closed."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self.sink = sink
        self.last = -1
        self.closed = False
        self._lock = threading.Lock()

    def report(self, value: int) -> None:
        with self._lock:
            if self.closed or value < self.last:
                return
            self.last = value
        if self.sink is not None:
            self.sink(value)

    def close(self) -> None:
        with self._lock:
            self.closed = True


class DocumentPipeline:
    """
    Complete enhance -> extract -> estimate -> (translate) pipeline.

    Holds configuration and stateless collaborators only, so one instance
    can serve concurrent runs.

    Usage:
        pipeline = DocumentPipeline(DigitizerConfig(vision_api_key="..."))
        result = pipeline.run(
            SourceFile.from_path("letter.jpg"),
            ProcessingOptions(mode=ProcessingMode.HISTORICAL, language_hint="hi"),
            progress=print,
        )
        print(result.text, result.confidence)
    """

    def __init__(
        self,
        config: Optional[DigitizerConfig] = None,
        enhancer: Optional[ImageEnhancer] = None,
        extractor: Optional[TextExtractor] = None,
        estimator: Optional[ConfidenceEstimator] = None,
        translator: Optional[BaseTranslator] = None,
    ):
        self.config = config or DigitizerConfig()
        self.enhancer = enhancer or ImageEnhancer()
        self.extractor = extractor or create_extractor(self.config)
        self.estimator = estimator or ConfidenceEstimator()
        self._translator = translator

    @property
    def translator(self) -> BaseTranslator:
        """Translation backend, built on first use so OCR-only setups need no key."""
        if self._translator is None:
            self._translator = create_translator(self.config)
        return self._translator

    def run(
        self,
        source: SourceFile,
        options: Optional[ProcessingOptions] = None,
        progress: Optional[ProgressSink] = None,
        deadline: Optional[float] = None,
    ) -> ProcessingResult:
        """
        Run enhancement, extraction and estimation for one file.

        Args:
            source: The uploaded file.
            options: Per-run policy flags.
            progress: Called with 0, 40, 70, 90 and 100.
            deadline: Seconds allowed for enhancing + extracting. Defaults
                to the sum of the per-stage budgets.

        Returns:
            ProcessingResult for the file.

        Raises:
            PipelineFailed: extraction failed (stage "extract").
            DeadlineExceededError: the deadline passed before extraction ended.
        """
        options = options or ProcessingOptions()
        reporter = ProgressReporter(progress)
        result, _ = self._extract_and_estimate(source, options, reporter, deadline)
        reporter.report(PROGRESS_COMPLETE)
        return result

    def process(
        self,
        source: SourceFile,
        options: Optional[ProcessingOptions] = None,
        progress: Optional[ProgressSink] = None,
        deadline: Optional[float] = None,
    ) -> PipelineOutcome:
        """
        Run the pipeline and, if `options.target_language` is set, translate.

        A translation failure is captured in the outcome; the extraction
        result stays usable and saveable.
        """
        options = options or ProcessingOptions()
        # Resolve the backend up front so a missing key fails before any OCR spend
        translator = self.translator if options.target_language else None

        reporter = ProgressReporter(progress)
        result, extraction = self._extract_and_estimate(source, options, reporter, deadline)

        translation = None
        translation_error = None
        if translator is not None and result.has_text:
            try:
                translation = self._translate_with(
                    translator, result.text, options.target_language, result.language
                )
            except (TranslationError, BackendTimeoutError) as e:
                logger.error("Translation to %s failed: %s", options.target_language, e)
                translation_error = e

        reporter.report(PROGRESS_COMPLETE)
        return PipelineOutcome(
            result=result,
            extraction=extraction,
            translation=translation,
            translation_error=translation_error,
        )

    def translate(
        self,
        result_or_text: Union[ProcessingResult, str],
        target_language: str,
        source_language: Optional[str] = None,
    ) -> TranslationResult:
        """
        Translate extracted text on its own, e.g. for an already saved document.

        Raises:
            TranslationError: backend failure.
            BackendTimeoutError: backend timeout.
        """
        if isinstance(result_or_text, ProcessingResult):
            text = result_or_text.text
            source_language = source_language or result_or_text.language
        else:
            text = result_or_text
        return self._translate_with(self.translator, text, target_language, source_language)

    def _translate_with(
        self,
        translator: BaseTranslator,
        text: str,
        target_language: str,
        source_language: Optional[str],
    ) -> TranslationResult:
        translation = translator.translate(text, source_language, target_language)
        logger.info(
            "Translated %d chars %s -> %s via %s in %.1fs",
            len(text),
            translation.source_language,
            translation.target_language,
            translation.method,
            translation.latency_seconds,
        )
        return translation

    def _extract_and_estimate(
        self,
        source: SourceFile,
        options: ProcessingOptions,
        reporter: ProgressReporter,
        deadline: Optional[float],
    ) -> tuple[ProcessingResult, ExtractionResult]:
        budget = deadline if deadline is not None else self.config.ocr.run_budget(options.mode)
        started = time.monotonic()
        reporter.report(PROGRESS_START)
        logger.info(
            "Starting run: '%s' (%s, %d bytes, mode=%s, enhance=%s, hint=%s)",
            source.name,
            source.mime_type,
            source.size,
            options.mode.value,
            options.enhance_image,
            options.language_hint,
        )

        # Backend calls cannot be cancelled; the worker is abandoned on expiry
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="digitizer-run"
        )
        future = executor.submit(
            self._enhance_and_extract, source, options, reporter, started + budget
        )
        try:
            extraction, enhanced, preview = future.result(timeout=budget)
        except concurrent.futures.TimeoutError:
            reporter.close()
            logger.error("Run '%s' exceeded its %.1fs budget", source.name, budget)
            raise DeadlineExceededError(
                f"Processing exceeded its {budget:.1f}s budget"
            ) from None
        finally:
            executor.shutdown(wait=False)

        estimate = self.estimator.estimate(extraction, source.size, enhanced)
        below_threshold = estimate.confidence < options.confidence_threshold
        if not extraction.has_text:
            logger.warning("No text found in '%s'", source.name)
        elif below_threshold:
            logger.warning(
                "Confidence %d is below the advisory threshold %d",
                estimate.confidence,
                options.confidence_threshold,
            )

        result = ProcessingResult(
            text=extraction.text,
            confidence=estimate.confidence,
            pages=estimate.pages,
            language=self._result_language(extraction, options),
            used_fallback=extraction.used_fallback,
            enhanced=enhanced,
            below_threshold=below_threshold,
            enhanced_preview=preview,
        )
        reporter.report(PROGRESS_ESTIMATED)

        logger.info(
            "Run complete: %d chars, confidence %d, %d page(s), fallback=%s, %.1fs",
            len(result.text),
            result.confidence,
            result.pages,
            result.used_fallback,
            time.monotonic() - started,
        )
        return result, extraction

    def _enhance_and_extract(
        self,
        source: SourceFile,
        options: ProcessingOptions,
        reporter: ProgressReporter,
        deadline_at: float,
    ) -> tuple[ExtractionResult, bool, Optional[bytes]]:
        if source.is_pdf:
            try:
                images = rasterize_pdf(source.data, dpi=self.config.ocr.pdf_dpi)
            except EncodingError as e:
                raise PipelineFailed("extract", e) from e
        else:
            images = [source.data]

        prepared, enhanced = self._enhance(images, options)
        reporter.report(PROGRESS_ENHANCED)

        pages = []
        for page_number, image in enumerate(prepared, start=1):
            remaining = deadline_at - time.monotonic()
            if remaining <= 0:
                raise DeadlineExceededError(
                    f"No time left to extract page {page_number}/{len(prepared)}"
                )
            try:
                pages.append(
                    self.extractor.extract(
                        image,
                        hint=options.language_hint,
                        mode=options.mode,
                        timeout=remaining,
                    )
                )
            except ExtractionError as e:
                raise PipelineFailed("extract", e) from e

        extraction = ExtractionResult.merge_pages(pages)
        reporter.report(PROGRESS_EXTRACTED)
        preview = prepared[0] if enhanced else None
        return extraction, enhanced, preview

    def _enhance(self, images: list[bytes], options: ProcessingOptions) -> tuple[list[bytes], bool]:
        """Enhance each image; any page that fails keeps its original bytes."""
        if not options.enhance_image:
            return images, False

        profile = profile_for_mode(options.mode)
        prepared = []
        all_enhanced = True
        for image in images:
            try:
                prepared.append(self.enhancer.enhance(image, profile))
            except EncodingError as e:
                logger.warning("Enhancement failed, continuing with original image: %s", e)
                prepared.append(image)
                all_enhanced = False
        return prepared, all_enhanced

    @staticmethod
    def _result_language(extraction: ExtractionResult, options: ProcessingOptions) -> str:
        if extraction.detected_language and not extraction.used_fallback:
            return extraction.detected_language
        if options.language_hint != AUTO_LANGUAGE:
            return options.language_hint
        return extraction.detected_language or AUTO_LANGUAGE
