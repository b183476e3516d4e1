"""
Data carried through a pipeline run.
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from manuscript_digitizer.errors import DigitizerError
from manuscript_digitizer.ocr.engine import ExtractionResult
from manuscript_digitizer.translator.base import TranslationResult

PDF_MIME_TYPE = "application/pdf"


@dataclass(frozen=True)
class SourceFile:
    """Uploaded bytes. Owned by a single run and never persisted verbatim."""
    data: bytes
    mime_type: str
    name: str = ""

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE

    @classmethod
    def from_path(cls, path: str) -> "SourceFile":
        file_path = Path(path)
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            data=file_path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            name=file_path.stem,
        )


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of a successful run, derived from one ExtractionResult."""
    text: str
    confidence: int  # 0..100
    pages: int  # >= 1, size-based estimate
    language: str = ""
    used_fallback: bool = False
    enhanced: bool = False
    below_threshold: bool = False
    enhanced_preview: Optional[bytes] = None

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


@dataclass(frozen=True)
class PipelineOutcome:
    """A run plus its optional translation step."""
    result: ProcessingResult
    extraction: ExtractionResult
    translation: Optional[TranslationResult] = None
    translation_error: Optional[DigitizerError] = None

    @property
    def translated(self) -> bool:
        return self.translation is not None
