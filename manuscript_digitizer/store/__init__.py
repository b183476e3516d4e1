"""
Document persistence: records, stores and the pipeline-facing adapter.
"""

from manuscript_digitizer.store.adapter import DocumentMetadata, DocumentStoreAdapter, require_owner
from manuscript_digitizer.store.base import DocumentRecord, DocumentStore, InMemoryDocumentStore
from manuscript_digitizer.store.json_store import JsonDirectoryStore

__all__ = [
    "DocumentMetadata",
    "DocumentRecord",
    "DocumentStore",
    "DocumentStoreAdapter",
    "InMemoryDocumentStore",
    "JsonDirectoryStore",
    "require_owner",
]
