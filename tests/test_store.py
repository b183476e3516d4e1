"""Tests for document records, stores and the store adapter."""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from manuscript_digitizer.errors import AccessDeniedError, DocumentNotFoundError
from manuscript_digitizer.models import ProcessingResult
from manuscript_digitizer.store import (
    DocumentMetadata,
    DocumentRecord,
    DocumentStoreAdapter,
    InMemoryDocumentStore,
    JsonDirectoryStore,
    require_owner,
)
from manuscript_digitizer.translator.base import TranslationResult

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_record(owner_id="u1", minutes=0, **kwargs):
    values = dict(
        owner_id=owner_id,
        name="Letter",
        document_type="letter",
        language="hi",
        content="प्रिय बहन",
        pages=1,
        confidence=88,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )
    values.update(kwargs)
    return DocumentRecord(**values)


def make_result(**kwargs):
    values = dict(text="प्रिय बहन, नमस्ते", confidence=92, pages=3, language="hi")
    values.update(kwargs)
    return ProcessingResult(**values)


TRANSLATION = TranslationResult(
    translated_text="Dear sister, greetings",
    target_language="en",
    source_language="hi",
)


class TestDocumentRecord:
    def test_owner_required(self):
        with pytest.raises(ValueError):
            make_record(owner_id="")

    def test_translation_fields_set_together(self):
        with pytest.raises(ValueError):
            make_record(translated_content="Dear sister")
        with pytest.raises(ValueError):
            make_record(translation_language="en")

    def test_confidence_range(self):
        with pytest.raises(ValueError):
            make_record(confidence=101)

    def test_pages_positive(self):
        with pytest.raises(ValueError):
            make_record(pages=0)

    def test_with_translation(self):
        record = make_record().with_translation(TRANSLATION)
        assert record.has_translation
        assert record.translated_content == "Dear sister, greetings"
        assert record.translation_language == "en"

    def test_dict_field_names(self):
        data = make_record(id="abc").to_dict()
        assert set(data) == {
            "id",
            "ownerId",
            "name",
            "type",
            "language",
            "content",
            "translatedContent",
            "translationLanguage",
            "pages",
            "confidence",
            "createdAt",
        }
        assert data["ownerId"] == "u1"
        assert data["translatedContent"] is None

    def test_from_dict(self):
        record = make_record(id="abc").with_translation(TRANSLATION)
        assert DocumentRecord.from_dict(record.to_dict()) == record


class TestInMemoryDocumentStore:
    def setup_method(self):
        self.store = InMemoryDocumentStore()

    def test_put_assigns_id(self):
        document_id = self.store.put(make_record())
        stored = self.store.get(document_id)
        assert stored.id == document_id
        assert stored.content == "प्रिय बहन"

    def test_get_missing(self):
        assert self.store.get("missing") is None

    def test_concurrent_puts_get_distinct_ids(self):
        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(lambda i: self.store.put(make_record(minutes=i)), range(50)))
        assert len(set(ids)) == 50
        assert len(self.store.list_by_owner("u1")) == 50

    def test_list_newest_first(self):
        older = self.store.put(make_record(minutes=0))
        newer = self.store.put(make_record(minutes=5))
        self.store.put(make_record(owner_id="u2"))
        assert [r.id for r in self.store.list_by_owner("u1")] == [newer, older]

    def test_owner_cannot_change(self):
        document_id = self.store.put(make_record())
        stored = self.store.get(document_id)
        with pytest.raises(ValueError):
            self.store.update(make_record(owner_id="u2", id=stored.id))

    def test_update_missing(self):
        with pytest.raises(DocumentNotFoundError):
            self.store.update(make_record(id="missing"))

    def test_delete(self):
        document_id = self.store.put(make_record())
        assert self.store.delete(document_id) is True
        assert self.store.delete(document_id) is False
        assert self.store.get(document_id) is None


class TestJsonDirectoryStore:
    def test_round_trip_on_disk(self, tmp_path):
        store = JsonDirectoryStore(str(tmp_path))
        document_id = store.put(make_record())
        path = tmp_path / f"{document_id}.json"
        assert path.exists()
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["ownerId"] == "u1"
        assert data["content"] == "प्रिय बहन"
        assert store.get(document_id).id == document_id

    def test_invalid_id(self, tmp_path):
        store = JsonDirectoryStore(str(tmp_path))
        assert store.get("../../etc/passwd") is None
        assert store.delete("not-an-id") is False

    def test_update_and_list(self, tmp_path):
        store = JsonDirectoryStore(str(tmp_path))
        first = store.put(make_record(minutes=0))
        second = store.put(make_record(minutes=1))
        store.put(make_record(owner_id="u2"))
        store.update(store.get(first).with_translation(TRANSLATION))
        records = store.list_by_owner("u1")
        assert [r.id for r in records] == [second, first]
        assert records[1].translation_language == "en"

    def test_update_missing(self, tmp_path):
        store = JsonDirectoryStore(str(tmp_path))
        with pytest.raises(DocumentNotFoundError):
            store.update(make_record(id="0" * 32))

    def test_list_skips_foreign_and_broken_files(self, tmp_path):
        store = JsonDirectoryStore(str(tmp_path))
        document_id = store.put(make_record())
        (tmp_path / "notes.json").write_text("{}", encoding="utf-8")
        (tmp_path / ("a" * 32 + ".json")).write_text("{}", encoding="utf-8")
        (tmp_path / ("b" * 32 + ".json")).write_text("not json", encoding="utf-8")
        assert [r.id for r in store.list_by_owner("u1")] == [document_id]


class TestDocumentStoreAdapter:
    def setup_method(self):
        self.adapter = DocumentStoreAdapter(InMemoryDocumentStore())

    def test_save_maps_result(self):
        document_id = self.adapter.save(
            "u1", make_result(), metadata=DocumentMetadata(name="Letter to sister", document_type="letter")
        )
        record = self.adapter.get_by_id(document_id)
        assert record.owner_id == "u1"
        assert record.name == "Letter to sister"
        assert record.document_type == "letter"
        assert record.language == "hi"
        assert record.content == "प्रिय बहन, नमस्ते"
        assert record.pages == 3
        assert record.confidence == 92
        assert record.translated_content is None
        assert record.translation_language is None

    def test_save_with_translation(self):
        document_id = self.adapter.save("u1", make_result(), translation=TRANSLATION)
        record = self.adapter.get_by_id(document_id)
        assert record.translated_content == "Dear sister, greetings"
        assert record.translation_language == "en"

    def test_metadata_language_overrides(self):
        document_id = self.adapter.save(
            "u1", make_result(), metadata=DocumentMetadata(name="x", language="mr")
        )
        assert self.adapter.get_by_id(document_id).language == "mr"

    def test_get_by_id_does_not_check_owner(self):
        document_id = self.adapter.save("u1", make_result())
        assert self.adapter.get_by_id(document_id).owner_id == "u1"

    def test_get_for_owner(self):
        document_id = self.adapter.save("u1", make_result())
        assert self.adapter.get_for_owner(document_id, "u1") is not None
        assert self.adapter.get_for_owner(document_id, "u2") is None

    def test_require_owner(self):
        document_id = self.adapter.save("u1", make_result())
        record = self.adapter.get_by_id(document_id)
        assert require_owner(record, "u1") is record
        with pytest.raises(AccessDeniedError):
            require_owner(record, "u2")

    def test_attach_translation(self):
        document_id = self.adapter.save("u1", make_result())
        updated = self.adapter.attach_translation(document_id, TRANSLATION)
        assert updated.owner_id == "u1"
        assert self.adapter.get_by_id(document_id).translated_content == "Dear sister, greetings"

    def test_attach_translation_missing(self):
        with pytest.raises(DocumentNotFoundError):
            self.adapter.attach_translation("missing", TRANSLATION)

    def test_list_and_delete(self):
        document_id = self.adapter.save("u1", make_result())
        assert [r.id for r in self.adapter.list_by_owner("u1")] == [document_id]
        assert self.adapter.delete(document_id) is True
        assert self.adapter.list_by_owner("u1") == []
