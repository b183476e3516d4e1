"""Tests for configuration management."""

import pytest
from manuscript_digitizer.config import (
    DigitizerConfig,
    OCRConfig,
    ProcessingMode,
    ProcessingOptions,
    TranslationBackend,
    TranslationConfig,
)

API_KEY_VARS = ["GOOGLE_VISION_API_KEY", "GOOGLE_TRANSLATE_API_KEY", "ANTHROPIC_API_KEY"]


@pytest.fixture
def clean_env(monkeypatch):
    for var in API_KEY_VARS:
        monkeypatch.delenv(var, raising=False)


class TestProcessingOptions:
    def test_defaults(self):
        options = ProcessingOptions()
        assert options.enhance_image is True
        assert options.mode == ProcessingMode.STANDARD
        assert options.language_hint == "auto"
        assert options.target_language is None

    def test_threshold_out_of_range(self):
        with pytest.raises(ValueError):
            ProcessingOptions(confidence_threshold=101)
        with pytest.raises(ValueError):
            ProcessingOptions(confidence_threshold=-1)

    def test_mode_accepts_string(self):
        assert ProcessingOptions(mode="historical").mode == ProcessingMode.HISTORICAL

    def test_empty_hint_becomes_auto(self):
        assert ProcessingOptions(language_hint="").language_hint == "auto"

    def test_immutable(self):
        options = ProcessingOptions()
        with pytest.raises(Exception):
            options.enhance_image = False


class TestOCRConfig:
    def test_mode_timeouts(self):
        config = OCRConfig()
        assert config.timeout_for(ProcessingMode.STANDARD) == 30.0
        assert config.timeout_for(ProcessingMode.HISTORICAL) == 45.0

    def test_run_budget_is_sum_of_stage_budgets(self):
        config = OCRConfig(enhance_timeout=5, historical_timeout=40, fallback_timeout=20)
        assert config.run_budget(ProcessingMode.HISTORICAL) == 65


class TestDigitizerConfig:
    def test_no_default_keys(self, clean_env):
        config = DigitizerConfig()
        assert config.vision_api_key is None
        assert config.translate_api_key is None
        assert config.anthropic_api_key is None

    def test_api_keys_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("GOOGLE_VISION_API_KEY", "vision-key")
        config = DigitizerConfig()
        assert config.vision_api_key == "vision-key"

    def test_explicit_key_overrides_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("GOOGLE_VISION_API_KEY", "env-key")
        config = DigitizerConfig(vision_api_key="explicit-key")
        assert config.vision_api_key == "explicit-key"

    def test_translation_key_follows_backend(self, clean_env):
        google = DigitizerConfig(translate_api_key="g", anthropic_api_key="a")
        assert google.translation_key() == "g"
        claude = DigitizerConfig(
            translate_api_key="g",
            anthropic_api_key="a",
            translation=TranslationConfig(backend=TranslationBackend.CLAUDE),
        )
        assert claude.translation_key() == "a"
