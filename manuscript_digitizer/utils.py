"""
Utility functions for the document digitization pipeline.
"""

import logging
import re
import time
from functools import wraps
from typing import Any, Callable

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "bn": "Bengali",
    "ta": "Tamil",
    "te": "Telugu",
    "mr": "Marathi",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "pa": "Punjabi",
    "ur": "Urdu",
    "auto": "Auto-detected",
}


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def language_name(code: str) -> str:
    """Human-readable name for a language code, or the code itself."""
    return LANGUAGE_NAMES.get(code, code)


def _is_retryable_error(exc: Exception) -> bool:
    """Check if an exception is worth retrying (not a timeout or 4xx client error)."""
    # A timed-out call already consumed its budget
    if isinstance(exc, TimeoutError):
        return False

    # Anthropic SDK errors
    try:
        import anthropic
        if isinstance(exc, (
            anthropic.BadRequestError,
            anthropic.AuthenticationError,
            anthropic.PermissionDeniedError,
            anthropic.NotFoundError,
            anthropic.UnprocessableEntityError,
        )):
            return False
    except ImportError:
        pass

    # HTTP response errors (requests) and BackendError
    status_code = getattr(exc, "status_code", None) or getattr(
        getattr(exc, "response", None), "status_code", None
    )
    if status_code is not None and 400 <= status_code < 500:
        return False

    return True


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exceptions: tuple = (Exception,),
) -> Callable:
    """Decorator for retrying API calls with exponential backoff.

    Client errors (4xx) and timeouts are raised immediately without retrying.
    `max_retries` may be overridden per instance through a `max_retries`
    attribute on the decorated method's owner.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            retries = getattr(args[0], "max_retries", max_retries) if args else max_retries
            last_exception = None
            for attempt in range(retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if not _is_retryable_error(e):
                        logger.error(
                            "%s failed with non-retryable error: %s",
                            func.__name__,
                            str(e),
                        )
                        raise
                    if attempt < retries:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(
                            "Attempt %d/%d for %s failed: %s. Retrying in %.1fs",
                            attempt + 1,
                            retries + 1,
                            func.__name__,
                            str(e),
                            delay,
                        )
                        time.sleep(delay)
            raise last_exception  # type: ignore[misc]

        return wrapper

    return decorator


# Paragraph breaks, then sentence ends (Latin, Devanagari danda, Arabic), then words.
_PARAGRAPH_SPLIT = re.compile(r"(\n[ \t]*\n\s*)")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?;।॥؟])(\s+)")
_WORD_SPLIT = re.compile(r"(\s+)")
_SPLITTERS = (_PARAGRAPH_SPLIT, _SENTENCE_SPLIT, _WORD_SPLIT)


def split_for_translation(text: str, max_chars: int = 4500) -> list[tuple[str, str]]:
    """
    Split text into backend-sized chunks.

    Returns (chunk, separator) pairs; joining `chunk + separator` for every
    pair reproduces the input exactly. Splits prefer paragraph breaks, then
    sentence ends, then whitespace. Only a single word longer than
    `max_chars` is cut mid-word.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    return _split(text, max_chars, 0)


def _split(text: str, max_chars: int, level: int) -> list[tuple[str, str]]:
    if len(text) <= max_chars:
        return [(text, "")]
    if level == len(_SPLITTERS):
        return [(text[i:i + max_chars], "") for i in range(0, len(text), max_chars)]

    parts = _SPLITTERS[level].split(text)
    segments = parts[0::2]
    separators = parts[1::2] + [""]

    units: list[tuple[str, str]] = []
    for segment, separator in zip(segments, separators):
        pieces = _split(segment, max_chars, level + 1)
        pieces[-1] = (pieces[-1][0], separator)
        units.extend(pieces)
    return _pack(units, max_chars)


def _pack(units: list[tuple[str, str]], max_chars: int) -> list[tuple[str, str]]:
    """Greedily merge neighbouring units while they fit in max_chars."""
    chunks = []
    current = None
    current_sep = ""
    for segment, separator in units:
        if current is None:
            current, current_sep = segment, separator
        elif len(current) + len(current_sep) + len(segment) <= max_chars:
            current, current_sep = current + current_sep + segment, separator
        else:
            chunks.append((current, current_sep))
            current, current_sep = segment, separator
    if current is not None:
        chunks.append((current, current_sep))
    return chunks
