"""
Download formats for digitized documents.

Only the content contract is fixed: a plain-text export carries the raw
content, and a translation sheet carries the original section followed by
the translated section, each under its own header.
"""

from manuscript_digitizer.store.base import DocumentRecord
from manuscript_digitizer.utils import language_name

SECTION_RULE = "-" * 24


def export_text(record: DocumentRecord) -> str:
    return record.content


def text_filename(name: str) -> str:
    return f"{name or 'document'}.txt"


def export_translation_sheet(
    original_text: str,
    translated_text: str,
    source_language: str,
    target_language: str,
) -> str:
    """Original text section, then translated text section."""
    return (
        f"ORIGINAL TEXT ({language_name(source_language)})\n"
        f"{SECTION_RULE}\n"
        f"{original_text}\n"
        "\n"
        f"TRANSLATED TEXT ({language_name(target_language)})\n"
        f"{SECTION_RULE}\n"
        f"{translated_text}\n"
    )


def export_record_translation(record: DocumentRecord) -> str:
    if not record.has_translation:
        raise ValueError(f"Document {record.id} has no translation")
    return export_translation_sheet(
        record.content,
        record.translated_content,
        record.language,
        record.translation_language,
    )


def translation_filename(source_language: str, target_language: str) -> str:
    return f"translation-{source_language}-to-{target_language}.txt"
