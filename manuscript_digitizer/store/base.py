"""
Persisted document records and the object-store interface.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

from manuscript_digitizer.errors import DocumentNotFoundError
from manuscript_digitizer.translator.base import TranslationResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DocumentRecord:
    """
    A digitized document as persisted by the store.

    `owner_id` is fixed at creation. `translated_content` and
    `translation_language` are either both set or both None.
    """
    owner_id: str
    name: str
    document_type: str
    language: str
    content: str
    pages: int
    confidence: int
    translated_content: Optional[str] = None
    translation_language: Optional[str] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("owner_id is required")
        if (self.translated_content is None) != (self.translation_language is None):
            raise ValueError(
                "translated_content and translation_language must be set together"
            )
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence must be within 0..100, got {self.confidence}")
        if self.pages < 1:
            raise ValueError(f"pages must be >= 1, got {self.pages}")

    @property
    def has_translation(self) -> bool:
        return self.translated_content is not None

    def with_translation(self, translation: TranslationResult) -> "DocumentRecord":
        return replace(
            self,
            translated_content=translation.translated_text,
            translation_language=translation.target_language,
        )

    def to_dict(self) -> dict:
        """Serialize using the persisted field names."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "type": self.document_type,
            "language": self.language,
            "content": self.content,
            "translatedContent": self.translated_content,
            "translationLanguage": self.translation_language,
            "pages": self.pages,
            "confidence": self.confidence,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentRecord":
        return cls(
            id=data.get("id"),
            owner_id=data["ownerId"],
            name=data.get("name", ""),
            document_type=data.get("type", ""),
            language=data.get("language", ""),
            content=data.get("content", ""),
            translated_content=data.get("translatedContent"),
            translation_language=data.get("translationLanguage"),
            pages=int(data.get("pages", 1)),
            confidence=int(data.get("confidence", 0)),
            created_at=datetime.fromisoformat(data["createdAt"]),
        )


class DocumentStore(ABC):
    """Object store collaborator. Implementations must allow concurrent puts."""

    @abstractmethod
    def put(self, record: DocumentRecord) -> str:
        """Persist a new record and return its freshly assigned id."""
        ...

    @abstractmethod
    def get(self, document_id: str) -> Optional[DocumentRecord]:
        ...

    @abstractmethod
    def update(self, record: DocumentRecord) -> None:
        """Replace an existing record. Raises DocumentNotFoundError if absent."""
        ...

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        ...

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[DocumentRecord]:
        """All records of one owner, newest first."""
        ...

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def check_update(existing: Optional[DocumentRecord], record: DocumentRecord) -> None:
        if existing is None:
            raise DocumentNotFoundError(f"Document {record.id} not found")
        if existing.owner_id != record.owner_id:
            raise ValueError("owner_id cannot change after creation")


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dict-backed store."""

    def __init__(self):
        self._records: dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def put(self, record: DocumentRecord) -> str:
        document_id = self.new_id()
        with self._lock:
            self._records[document_id] = replace(record, id=document_id)
        logger.debug("Stored document %s for owner %s", document_id, record.owner_id)
        return document_id

    def get(self, document_id: str) -> Optional[DocumentRecord]:
        with self._lock:
            return self._records.get(document_id)

    def update(self, record: DocumentRecord) -> None:
        with self._lock:
            self.check_update(self._records.get(record.id), record)
            self._records[record.id] = record

    def delete(self, document_id: str) -> bool:
        with self._lock:
            return self._records.pop(document_id, None) is not None

    def list_by_owner(self, owner_id: str) -> list[DocumentRecord]:
        with self._lock:
            records = [r for r in self._records.values() if r.owner_id == owner_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)
