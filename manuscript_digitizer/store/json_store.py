"""
Directory-backed document store: one UTF-8 JSON file per record.
"""

import json
import logging
import os
import re
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional

from manuscript_digitizer.store.base import DocumentRecord, DocumentStore

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"[0-9a-f]{32}")


class JsonDirectoryStore(DocumentStore):
    """Stores each record as `<id>.json` under a root directory."""

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        # Serializes read-modify-write in update(); puts touch distinct files
        self._lock = threading.Lock()

    def _path(self, document_id: str) -> Optional[Path]:
        if not _ID_PATTERN.fullmatch(document_id or ""):
            return None
        return self.root / f"{document_id}.json"

    def _write(self, path: Path, record: DocumentRecord) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record.to_dict(), f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)

    def _read(self, path: Path) -> DocumentRecord:
        with open(path, "r", encoding="utf-8") as f:
            return DocumentRecord.from_dict(json.load(f))

    def put(self, record: DocumentRecord) -> str:
        document_id = self.new_id()
        stored = replace(record, id=document_id)
        self._write(self._path(document_id), stored)
        logger.info("Saved document %s to %s", document_id, self.root)
        return document_id

    def get(self, document_id: str) -> Optional[DocumentRecord]:
        path = self._path(document_id)
        if path is None or not path.exists():
            return None
        return self._read(path)

    def update(self, record: DocumentRecord) -> None:
        path = self._path(record.id)
        with self._lock:
            existing = self._read(path) if path is not None and path.exists() else None
            self.check_update(existing, record)
            self._write(path, record)

    def delete(self, document_id: str) -> bool:
        path = self._path(document_id)
        if path is None or not path.exists():
            return False
        path.unlink()
        return True

    def list_by_owner(self, owner_id: str) -> list[DocumentRecord]:
        records = []
        for path in self.root.glob("*.json"):
            if not _ID_PATTERN.fullmatch(path.stem):
                continue
            try:
                record = self._read(path)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable record %s: %s", path.name, e)
                continue
            if record.owner_id == owner_id:
                records.append(record)
        return sorted(records, key=lambda r: r.created_at, reverse=True)
