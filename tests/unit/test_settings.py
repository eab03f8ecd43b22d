"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from orgflow.settings import Settings, get_settings


class TestDefaults:
    def test_workflow_defaults(self, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        get_settings.cache_clear()

        settings = get_settings()

        assert settings.environment == "testing"
        assert settings.workflow_strict_references is False
        assert settings.workflow_max_steps == 50

    def test_cached(self):
        assert get_settings() is get_settings()


class TestEnvironment:
    def test_strict_references_from_env(self, monkeypatch):
        monkeypatch.setenv("WORKFLOW_STRICT_REFERENCES", "true")
        get_settings.cache_clear()

        assert get_settings().workflow_strict_references is True

    def test_api_key_aliases(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-alias")
        monkeypatch.setenv("GEMINI_API_KEY", "g-alias")
        get_settings.cache_clear()

        settings = get_settings()

        assert settings.llm_api_key.get_secret_value() == "sk-alias"
        assert settings.google_api_key.get_secret_value() == "g-alias"

    def test_secrets_are_masked(self, test_settings):
        assert "test-api-key" not in repr(test_settings)


class TestBounds:
    def test_max_steps_lower_bound(self):
        with pytest.raises(PydanticValidationError):
            Settings(workflow_max_steps=0)

    def test_unknown_provider(self):
        with pytest.raises(PydanticValidationError):
            Settings(llm_provider="acme")
