"""
Maps pipeline results to persisted document records.

The adapter does not check ownership on reads. Callers that serve content
to a requester pair `get_by_id` with `require_owner`, or use
`get_for_owner`.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from manuscript_digitizer.errors import AccessDeniedError, DocumentNotFoundError
from manuscript_digitizer.models import ProcessingResult
from manuscript_digitizer.store.base import DocumentRecord, DocumentStore
from manuscript_digitizer.translator.base import TranslationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentMetadata:
    """Caller-supplied details that the pipeline does not derive."""
    name: str
    document_type: str = "document"
    # Overrides the detected language when given
    language: Optional[str] = None


def require_owner(record: DocumentRecord, requester_id: str) -> DocumentRecord:
    if record.owner_id != requester_id:
        raise AccessDeniedError(f"Document {record.id} does not belong to the requester")
    return record


class DocumentStoreAdapter:
    """Save/load documents through an object store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def save(
        self,
        owner_id: str,
        result: ProcessingResult,
        translation: Optional[TranslationResult] = None,
        metadata: Optional[DocumentMetadata] = None,
    ) -> str:
        metadata = metadata or DocumentMetadata(name="Untitled document")
        record = DocumentRecord(
            owner_id=owner_id,
            name=metadata.name,
            document_type=metadata.document_type,
            language=metadata.language or result.language,
            content=result.text,
            pages=result.pages,
            confidence=result.confidence,
            translated_content=translation.translated_text if translation else None,
            translation_language=translation.target_language if translation else None,
        )
        document_id = self.store.put(record)
        logger.info(
            "Saved document %s (%s, %d page(s), confidence %d, translated=%s)",
            document_id,
            metadata.name,
            result.pages,
            result.confidence,
            translation is not None,
        )
        return document_id

    def get_by_id(self, document_id: str) -> Optional[DocumentRecord]:
        return self.store.get(document_id)

    def get_for_owner(self, document_id: str, requester_id: str) -> Optional[DocumentRecord]:
        """Return the record only if it exists and belongs to the requester."""
        record = self.store.get(document_id)
        if record is None or record.owner_id != requester_id:
            return None
        return record

    def list_by_owner(self, owner_id: str) -> list[DocumentRecord]:
        return self.store.list_by_owner(owner_id)

    def attach_translation(self, document_id: str, translation: TranslationResult) -> DocumentRecord:
        record = self.store.get(document_id)
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        updated = record.with_translation(translation)
        self.store.update(updated)
        logger.info(
            "Attached %s translation to document %s",
            translation.target_language,
            document_id,
        )
        return updated

    def delete(self, document_id: str) -> bool:
        return self.store.delete(document_id)
