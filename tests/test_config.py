"""Tests for configuration management."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from activity_intel.config import (
    DEFAULT_EXCHANGE_TYPES,
    ClassifierSettings,
    EnrichmentSettings,
    PricingSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)


class TestDefaults:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.pricing.nearest_window_minutes == 30
        assert settings.classifier.exchange_types == DEFAULT_EXCHANGE_TYPES
        assert settings.enrichment.amount_bucket_base == pytest.approx(1.1)
        assert settings.aggregation.kpi_window_hours == 24
        assert settings.aggregation.fee_drift_window_days == 7
        assert settings.anomaly_seed.top_routes == 5
        assert settings.anomaly_seed.rapid_repeat_minutes == 60
        assert settings.context.recurrence_rows == 6
        assert settings.log_level == "INFO"

    def test_logging_level(self) -> None:
        assert Settings().get_logging_level() == logging.INFO


class TestEnvironment:
    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRICING_NEAREST_WINDOW_MINUTES", "45")
        monkeypatch.setenv("CLASSIFIER_EXCHANGE_TYPES", "Kraken, coinbase")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.pricing.nearest_window_minutes == 45
        assert settings.classifier.exchange_types == ("kraken", "coinbase")
        assert settings.get_logging_level() == logging.DEBUG

    def test_env_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("AGGREGATION_KPI_WINDOW_HOURS=12\n")
        assert Settings().aggregation.kpi_window_hours == 12

    def test_get_settings_is_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("CONTEXT_DETAIL_ROWS", "3")
        clear_settings_cache()
        assert get_settings().context.detail_rows == 3


class TestValidation:
    def test_bucket_base_must_exceed_one(self) -> None:
        with pytest.raises(ValidationError):
            EnrichmentSettings(ENRICHMENT_AMOUNT_BUCKET_BASE=1.0)

    def test_negative_window_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PricingSettings(PRICING_NEAREST_WINDOW_MINUTES=-1)

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            Settings()

    def test_classifier_tuple_input(self) -> None:
        settings = ClassifierSettings(CLASSIFIER_SOFTWARE_WALLET_TYPES=["Phantom", " "])
        assert settings.software_wallet_types == ("phantom",)


class TestRedactedSummary:
    def test_summary_is_strings(self) -> None:
        summary = Settings().redacted_summary()

        assert summary["log_level"] == "INFO"
        assert summary["pricing"] == {"nearest_window_minutes": "30"}
        assert summary["classifier"]["exchange_types"] == ",".join(DEFAULT_EXCHANGE_TYPES)  # type: ignore[index]
