"""
CLI entry point for document digitization.

Usage:
    # Digitize a scanned letter and save it for user u1
    manuscript-digitizer process letter.jpg --owner u1

    # Faded handwriting in Hindi, translated to English
    manuscript-digitizer process diary.png --owner u1 --mode historical --lang hi --translate en

    # List a user's documents, newest first
    manuscript-digitizer list --owner u1

    # Export the extracted text or the bilingual translation sheet
    manuscript-digitizer export <id> --owner u1 -o letter.txt
    manuscript-digitizer export <id> --owner u1 --translation
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from manuscript_digitizer.config import (
    DigitizerConfig,
    ProcessingMode,
    ProcessingOptions,
    TranslationBackend,
    TranslationConfig,
)
from manuscript_digitizer.errors import DigitizerError
from manuscript_digitizer.export import (
    export_record_translation,
    export_text,
    text_filename,
    translation_filename,
)
from manuscript_digitizer.store import DocumentMetadata, DocumentStoreAdapter, JsonDirectoryStore, require_owner
from manuscript_digitizer.utils import language_name, setup_logging

DEFAULT_STORE_DIR = "./documents"


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="manuscript-digitizer",
        description=(
            "Digitize historical and handwritten documents: OCR with a local "
            "fallback, confidence scoring, optional translation and storage."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables for API keys:
  GOOGLE_VISION_API_KEY    - Google Cloud Vision (OCR)
  GOOGLE_TRANSLATE_API_KEY - Google Cloud Translation
  ANTHROPIC_API_KEY        - Anthropic Claude (translation)
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--store",
        type=str,
        default=DEFAULT_STORE_DIR,
        help=f"Document store directory (default: {DEFAULT_STORE_DIR})",
    )
    # --store is also accepted after the subcommand
    store_option = argparse.ArgumentParser(add_help=False)
    store_option.add_argument("--store", type=str, default=argparse.SUPPRESS, help="Document store directory")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # process
    process = subparsers.add_parser("process", parents=[store_option], help="Digitize an image or PDF")
    process.add_argument("file", type=str, help="Image or PDF to digitize")
    process.add_argument("--owner", required=True, help="Owner user id")
    process.add_argument("--name", type=str, default=None, help="Document name (default: file name)")
    process.add_argument("--type", dest="document_type", default="document", help="Document type")
    process.add_argument(
        "--mode",
        choices=[m.value for m in ProcessingMode],
        default=ProcessingMode.STANDARD.value,
        help="Processing profile (default: standard)",
    )
    process.add_argument("--lang", default="auto", help="Language hint, e.g. hi (default: auto)")
    process.add_argument("--no-enhance", action="store_true", help="Skip image enhancement")
    process.add_argument(
        "--threshold",
        type=int,
        default=70,
        help="Advisory confidence threshold 0-100 (default: 70)",
    )
    process.add_argument("--translate", dest="target_lang", default=None, help="Translate to this language")
    process.add_argument(
        "--translator",
        choices=[b.value for b in TranslationBackend],
        default=TranslationBackend.GOOGLE.value,
        help="Translation backend (default: google)",
    )
    process.add_argument("--timeout", type=float, default=None, help="Overall OCR deadline in seconds")
    process.add_argument("--no-save", action="store_true", help="Do not persist the result")
    process.add_argument("-o", "--output", type=str, default=None, help="Also write extracted text here")

    # list
    listing = subparsers.add_parser("list", parents=[store_option], help="List a user's documents")
    listing.add_argument("--owner", required=True, help="Owner user id")

    # export
    export = subparsers.add_parser("export", parents=[store_option], help="Export a saved document")
    export.add_argument("document_id", help="Document id")
    export.add_argument("--owner", required=True, help="Requesting user id")
    export.add_argument("--translation", action="store_true", help="Export the translation sheet")
    export.add_argument("-o", "--output", type=str, default=None, help="Output file (default: derived name)")

    return parser.parse_args(argv)


def _print_progress(value: int) -> None:
    print(f"  [{value:3d}%]", file=sys.stderr)


def cmd_process(args: argparse.Namespace, adapter: DocumentStoreAdapter) -> int:
    from manuscript_digitizer.models import SourceFile
    from manuscript_digitizer.pipeline import DocumentPipeline

    path = Path(args.file)
    if not path.exists():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    config = DigitizerConfig(translation=TranslationConfig(backend=TranslationBackend(args.translator)))
    if not config.vision_api_key:
        print("Error: GOOGLE_VISION_API_KEY is not set", file=sys.stderr)
        return 1

    options = ProcessingOptions(
        enhance_image=not args.no_enhance,
        mode=ProcessingMode(args.mode),
        language_hint=args.lang,
        confidence_threshold=args.threshold,
        target_language=args.target_lang,
    )
    source = SourceFile.from_path(str(path))

    print(f"Document: {path}")
    print(f"Mode: {options.mode.value} | Enhance: {options.enhance_image} | Language: {language_name(options.language_hint)}")
    print()

    pipeline = DocumentPipeline(config)
    outcome = pipeline.process(source, options, progress=_print_progress, deadline=args.timeout)
    result = outcome.result

    print("=" * 70)
    print("EXTRACTED TEXT")
    print("=" * 70)
    print(result.text or "[No text found]")
    print()

    if outcome.translation is not None:
        print("=" * 70)
        print(f"TRANSLATION ({language_name(outcome.translation.target_language)})")
        print("=" * 70)
        print(outcome.translation.translated_text)
        print()
    elif outcome.translation_error is not None:
        print(f"Warning: translation failed: {outcome.translation_error}", file=sys.stderr)

    print("=" * 70)
    print("PROCESSING SUMMARY")
    print("=" * 70)
    print(f"  Language:        {language_name(result.language)}")
    print(f"  Confidence:      {result.confidence}%{' (below threshold)' if result.below_threshold else ''}")
    print(f"  Pages (est.):    {result.pages}")
    print(f"  Enhanced:        {result.enhanced}")
    print(f"  Fallback OCR:    {result.used_fallback}")

    if args.output:
        Path(args.output).write_text(result.text, encoding="utf-8")
        print(f"  Text saved to:   {args.output}")

    if not args.no_save:
        document_id = adapter.save(
            args.owner,
            result,
            translation=outcome.translation,
            metadata=DocumentMetadata(
                name=args.name or source.name,
                document_type=args.document_type,
            ),
        )
        print(f"  Document id:     {document_id}")

    return 0


def cmd_list(args: argparse.Namespace, adapter: DocumentStoreAdapter) -> int:
    records = adapter.list_by_owner(args.owner)
    if not records:
        print("No documents.")
        return 0
    for record in records:
        translated = f" -> {record.translation_language}" if record.has_translation else ""
        print(
            f"{record.id}  {record.created_at:%Y-%m-%d %H:%M}  {record.confidence:3d}%  "
            f"{record.language}{translated}  {record.name}"
        )
    return 0


def cmd_export(args: argparse.Namespace, adapter: DocumentStoreAdapter) -> int:
    record = adapter.get_by_id(args.document_id)
    if record is None:
        print(f"Error: document not found: {args.document_id}", file=sys.stderr)
        return 1
    require_owner(record, args.owner)

    if args.translation:
        content = export_record_translation(record)
        default_name = translation_filename(record.language, record.translation_language)
    else:
        content = export_text(record)
        default_name = text_filename(record.name)

    output = Path(args.output or default_name)
    output.write_text(content, encoding="utf-8")
    print(f"Exported to: {output}")
    return 0


COMMANDS = {
    "process": cmd_process,
    "list": cmd_list,
    "export": cmd_export,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    adapter = DocumentStoreAdapter(JsonDirectoryStore(args.store))
    try:
        return COMMANDS[args.command](args, adapter)
    except (DigitizerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
