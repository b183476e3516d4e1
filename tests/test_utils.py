"""Tests for utility functions."""

import pytest
from manuscript_digitizer.errors import BackendError, BackendTimeoutError
from manuscript_digitizer.utils import (
    _is_retryable_error,
    language_name,
    retry_with_backoff,
    split_for_translation,
)

LETTER = (
    "My dear brother. The harvest was poor this year and the river rose early.\n\n"
    "We have sold two of the cows to pay the landlord. Mother is well.\n\n"
    "Write soon, and send word of the wedding."
)


def reassemble(chunks):
    return "".join(chunk + separator for chunk, separator in chunks)


class TestSplitForTranslation:
    def test_short_text_single_chunk(self):
        assert split_for_translation("Hello world", max_chars=100) == [("Hello world", "")]

    def test_empty_text(self):
        assert split_for_translation("", max_chars=100) == [("", "")]

    def test_reassembly_is_lossless(self):
        chunks = split_for_translation(LETTER, max_chars=80)
        assert len(chunks) > 1
        assert reassemble(chunks) == LETTER

    def test_chunks_respect_limit(self):
        chunks = split_for_translation(LETTER * 5, max_chars=60)
        assert all(len(chunk) <= 60 for chunk, _ in chunks)

    def test_prefers_paragraph_breaks(self):
        chunks = split_for_translation(LETTER, max_chars=90)
        # Each paragraph fits, so every boundary is a paragraph break
        assert chunks[0][0].startswith("My dear brother.")
        assert chunks[0][0].endswith("rose early.")
        assert chunks[0][1] == "\n\n"

    def test_splits_long_paragraph_at_sentence_end(self):
        text = "First sentence here. Second sentence here. Third sentence here."
        chunks = split_for_translation(text, max_chars=45)
        assert chunks[0][0] == "First sentence here. Second sentence here."
        assert reassemble(chunks) == text

    def test_never_splits_mid_word(self):
        text = "alpha beta gamma delta epsilon zeta eta theta iota kappa"
        chunks = split_for_translation(text, max_chars=12)
        words = set(text.split())
        for chunk, _ in chunks:
            for word in chunk.split():
                assert word in words

    def test_hindi_danda_is_sentence_end(self):
        text = "यह पहला वाक्य है। यह दूसरा वाक्य है। यह तीसरा वाक्य है।"
        chunks = split_for_translation(text, max_chars=20)
        assert chunks[0][0] == "यह पहला वाक्य है।"
        assert reassemble(chunks) == text

    def test_oversized_word_is_cut(self):
        chunks = split_for_translation("x" * 25, max_chars=10)
        assert [c for c, _ in chunks] == ["x" * 10, "x" * 10, "x" * 5]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            split_for_translation("text", max_chars=0)


class TestLanguageName:
    def test_known_code(self):
        assert language_name("hi") == "Hindi"

    def test_unknown_code_passthrough(self):
        assert language_name("xx") == "xx"


class TestRetryLogic:
    def test_generic_errors_retryable(self):
        assert _is_retryable_error(Exception("boom")) is True
        assert _is_retryable_error(ConnectionError("reset")) is True

    def test_timeouts_not_retried(self):
        assert _is_retryable_error(TimeoutError("timed out")) is False
        assert _is_retryable_error(BackendTimeoutError("slow")) is False

    def test_status_code_classification(self):
        assert _is_retryable_error(BackendError("bad", status_code=400)) is False
        assert _is_retryable_error(BackendError("quota", status_code=429)) is False
        assert _is_retryable_error(BackendError("down", status_code=503)) is True

    def test_response_object_status_code(self):
        class FakeResponse:
            def __init__(self, status_code):
                self.status_code = status_code

        class HttpError(Exception):
            def __init__(self, response):
                self.response = response
                super().__init__("HTTP error")

        assert _is_retryable_error(HttpError(FakeResponse(404))) is False
        assert _is_retryable_error(HttpError(FakeResponse(500))) is True

    def test_retries_then_succeeds(self, monkeypatch):
        monkeypatch.setattr("manuscript_digitizer.utils.time.sleep", lambda _: None)
        calls = []

        @retry_with_backoff(max_retries=2, exceptions=(BackendError,))
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise BackendError("unavailable", status_code=503)
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_client_error_raised_immediately(self, monkeypatch):
        monkeypatch.setattr("manuscript_digitizer.utils.time.sleep", lambda _: None)
        calls = []

        @retry_with_backoff(max_retries=3, exceptions=(BackendError,))
        def rejected():
            calls.append(1)
            raise BackendError("bad request", status_code=400)

        with pytest.raises(BackendError):
            rejected()
        assert len(calls) == 1
