"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from crediflow.config import AppSettings, GeminiSettings, StorageSettings, validate_all_settings


class TestSettings:

    def test_app_defaults(self, monkeypatch):
        monkeypatch.delenv("AGGREGATION_WINDOW_MONTHS", raising=False)
        settings = AppSettings()
        assert settings.aggregation_window_months == 2
        assert settings.default_owner == "self"

    def test_window_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("AGGREGATION_WINDOW_MONTHS", "1")
        assert AppSettings().aggregation_window_months == 1

    def test_window_outside_supported_range(self):
        with pytest.raises(ValidationError):
            AppSettings(aggregation_window_months=3)

    def test_storage_backend_must_be_known(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_gemini_key_required(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ValidationError):
            GeminiSettings()

    def test_validate_all_settings_reports_missing_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("STORAGE_BACKEND", "memory")

        results = validate_all_settings()

        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["storage"] is True
        assert "google_sheets" not in results
