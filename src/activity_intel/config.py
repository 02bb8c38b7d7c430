"""Configuration management service with Pydantic Settings.

This module provides centralized configuration for the activity
intelligence pipeline: price-resolution windows, entity classification
tables, aggregation windows and the limits used when building the anomaly
seed and AI context. Values load from environment variables (and an
optional ``.env`` file) and are validated at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"

DEFAULT_EXCHANGE_TYPES = ("binance", "bybit", "hyperliquid", "okx")
DEFAULT_SOFTWARE_WALLET_TYPES = ("wallet", "evm", "solana", "aptos", "ton", "zerion")


def _parse_csv(v: object, *, name: str) -> tuple[str, ...]:
    if v is None:
        raise ValueError(f"{name} must be set")
    if isinstance(v, str):
        return tuple(p.strip().lower() for p in v.split(",") if p.strip())
    if isinstance(v, (list, tuple, set, frozenset)):
        return tuple(str(x).strip().lower() for x in v if str(x).strip())
    raise TypeError(f"Invalid {name} type")


class PricingSettings(BaseSettings):
    """Market price resolution settings."""

    model_config = SettingsConfigDict(env_prefix="PRICING_", extra="ignore")

    nearest_window_minutes: int = Field(
        default=30,
        alias="PRICING_NEAREST_WINDOW_MINUTES",
        ge=0,
        le=24 * 60,
        description="Max distance to a same-asset trade sample before falling back to live prices",
    )


class ClassifierSettings(BaseSettings):
    """Entity classification tables for connection integration types."""

    model_config = SettingsConfigDict(env_prefix="CLASSIFIER_", extra="ignore")

    exchange_types: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_EXCHANGE_TYPES,
        alias="CLASSIFIER_EXCHANGE_TYPES",
        description="Connection types treated as exchanges (comma-separated)",
    )
    software_wallet_types: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_SOFTWARE_WALLET_TYPES,
        alias="CLASSIFIER_SOFTWARE_WALLET_TYPES",
        description="Connection types treated as software wallets (comma-separated)",
    )

    @field_validator("exchange_types", mode="before")
    @classmethod
    def _parse_exchange_types(cls, v: object) -> tuple[str, ...]:
        return _parse_csv(v, name="CLASSIFIER_EXCHANGE_TYPES")

    @field_validator("software_wallet_types", mode="before")
    @classmethod
    def _parse_software_wallet_types(cls, v: object) -> tuple[str, ...]:
        return _parse_csv(v, name="CLASSIFIER_SOFTWARE_WALLET_TYPES")


class EnrichmentSettings(BaseSettings):
    """Enrichment pass settings (amount bucketing)."""

    model_config = SettingsConfigDict(env_prefix="ENRICHMENT_", extra="ignore")

    amount_bucket_base: float = Field(
        default=1.1,
        alias="ENRICHMENT_AMOUNT_BUCKET_BASE",
        description="Logarithm base used to bin amounts into recurrence buckets",
    )

    @field_validator("amount_bucket_base")
    @classmethod
    def validate_amount_bucket_base(cls, v: float) -> float:
        if v <= 1.0:
            raise ValueError("ENRICHMENT_AMOUNT_BUCKET_BASE must be > 1")
        return v


class AggregationSettings(BaseSettings):
    """Default windows for the time-windowed reducers."""

    model_config = SettingsConfigDict(env_prefix="AGGREGATION_", extra="ignore")

    kpi_window_hours: int = Field(
        default=24,
        alias="AGGREGATION_KPI_WINDOW_HOURS",
        ge=1,
        le=24 * 365,
        description="Trailing window for the KPI summary when no range is given",
    )
    fee_drift_window_days: int = Field(
        default=7,
        alias="AGGREGATION_FEE_DRIFT_WINDOW_DAYS",
        ge=1,
        le=365,
        description="Current fee-drift window when no range is given (baseline has equal length)",
    )


class AnomalySeedSettings(BaseSettings):
    """Limits for the anomaly seed bundle."""

    model_config = SettingsConfigDict(env_prefix="ANOMALY_SEED_", extra="ignore")

    top_routes: int = Field(
        default=5,
        alias="ANOMALY_SEED_TOP_ROUTES",
        ge=1,
        le=100,
        description="Route matrix rows kept in the seed",
    )
    top_fee_drift: int = Field(
        default=5,
        alias="ANOMALY_SEED_TOP_FEE_DRIFT",
        ge=1,
        le=100,
        description="Fee drift rows kept in the seed",
    )
    max_hour_moves: int = Field(
        default=8,
        alias="ANOMALY_SEED_MAX_HOUR_MOVES",
        ge=1,
        le=100,
        description="Hour-of-day x route histogram cells kept in the seed",
    )
    max_recurrence: int = Field(
        default=8,
        alias="ANOMALY_SEED_MAX_RECURRENCE",
        ge=1,
        le=100,
        description="Rapid-repeat events kept in the seed",
    )
    max_samples: int = Field(
        default=8,
        alias="ANOMALY_SEED_MAX_SAMPLES",
        ge=1,
        le=100,
        description="High-confidence valuation samples kept in the seed",
    )
    rapid_repeat_minutes: int = Field(
        default=60,
        alias="ANOMALY_SEED_RAPID_REPEAT_MINUTES",
        ge=1,
        le=24 * 60,
        description="Recurrence delta (minutes) under which a repeat counts as rapid",
    )


class ContextSettings(BaseSettings):
    """AI context projection limits."""

    model_config = SettingsConfigDict(env_prefix="CONTEXT_", extra="ignore")

    top_routes: int = Field(
        default=5,
        alias="CONTEXT_TOP_ROUTES",
        ge=1,
        le=50,
        description="Routes included in every context object",
    )
    detail_rows: int = Field(
        default=8,
        alias="CONTEXT_DETAIL_ROWS",
        ge=1,
        le=50,
        description="Rows included in the mode-specific section",
    )
    recurrence_rows: int = Field(
        default=6,
        alias="CONTEXT_RECURRENCE_ROWS",
        ge=1,
        le=50,
        description="Recent rapid-repeat events included in memory_signal mode",
    )


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from activity_intel.config import get_settings

        settings = get_settings()
        print(settings.pricing.nearest_window_minutes)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    pricing: PricingSettings = Field(
        default_factory=lambda: PricingSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    classifier: ClassifierSettings = Field(
        default_factory=lambda: ClassifierSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    enrichment: EnrichmentSettings = Field(
        default_factory=lambda: EnrichmentSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    aggregation: AggregationSettings = Field(
        default_factory=lambda: AggregationSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    anomaly_seed: AnomalySeedSettings = Field(
        default_factory=lambda: AnomalySeedSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    context: ContextSettings = Field(
        default_factory=lambda: ContextSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a printable summary of the active settings.

        Returns:
            Dictionary of settings grouped by section, values as strings.
        """
        return {
            "pricing": {
                "nearest_window_minutes": str(self.pricing.nearest_window_minutes),
            },
            "classifier": {
                "exchange_types": ",".join(self.classifier.exchange_types),
                "software_wallet_types": ",".join(self.classifier.software_wallet_types),
            },
            "enrichment": {
                "amount_bucket_base": str(self.enrichment.amount_bucket_base),
            },
            "aggregation": {
                "kpi_window_hours": str(self.aggregation.kpi_window_hours),
                "fee_drift_window_days": str(self.aggregation.fee_drift_window_days),
            },
            "anomaly_seed": {
                "rapid_repeat_minutes": str(self.anomaly_seed.rapid_repeat_minutes),
            },
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
