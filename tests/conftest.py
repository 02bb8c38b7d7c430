"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from activity_intel.config import Settings, clear_settings_cache
from activity_intel.enrichment.models import ActivityEventEnriched, make_route_key
from activity_intel.ingestor.models import TransferActivity

# 2023-11-14T22:13:20Z
BASE_TS_MS = 1_700_000_000_000
MINUTE_MS = 60_000


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run every test from an empty directory so no stray .env is picked up."""
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Default settings."""
    return Settings()


@pytest.fixture
def connections() -> list[dict[str, Any]]:
    """Sample exchange, software wallet and hardware wallet connections."""
    return [
        {"id": "c-binance", "type": "binance", "displayName": "Binance Main"},
        {"id": "c-evm", "type": "evm", "name": "Rabby"},
        {"id": "c-ledger", "type": "evm", "name": "Cold", "hardwareType": "ledger"},
    ]


@pytest.fixture
def make_event() -> Callable[..., ActivityEventEnriched]:
    """Factory for enriched events used by the aggregation tests."""

    def _make(
        *,
        event_id: str = "e1",
        timestamp_ms: int = BASE_TS_MS,
        asset: str = "BTC",
        amount: str = "1",
        from_label: str = "Exchange A",
        to_label: str = "Wallet",
        price: str | None = "100",
        fee_usd: str | None = None,
        confidence: str = "high",
        source_label: str | None = None,
        last_similar_delta_minutes: int | None = None,
        tx_hash: str | None = None,
    ) -> ActivityEventEnriched:
        qty = Decimal(amount)
        market_price = Decimal(price) if price is not None else None
        route_key = make_route_key(from_label, to_label, asset)
        raw = TransferActivity(
            activity_id=event_id,
            timestamp_ms=timestamp_ms,
            symbol=asset,
            amount=qty,
            raw_type="withdraw",
        )
        return ActivityEventEnriched(
            event_id=event_id,
            timestamp_ms=timestamp_ms,
            asset=asset,
            amount=qty,
            activity_type="transfer",
            raw_type="WITHDRAW",
            side=None,
            source_label=source_label or from_label,
            from_label=from_label,
            to_label=to_label,
            from_kind="exchange",
            to_kind="software_wallet",
            route_key=route_key,
            source_connection_id=None,
            destination_connection_id=None,
            tx_hash=tx_hash,
            address=None,
            status=None,
            network=None,
            fee_asset=None,
            fee_amount=None,
            fee_usd=Decimal(fee_usd) if fee_usd is not None else None,
            market_price_usd_at_event=market_price,
            cost_basis_usd_at_event=None,
            market_value_usd_at_event=qty * market_price if market_price is not None else None,
            basis_value_usd_at_event=None,
            valuation_confidence=confidence,  # type: ignore[arg-type]
            bucket_id=f"{route_key}|0",
            raw=raw,
            last_similar_at=(
                timestamp_ms - last_similar_delta_minutes * MINUTE_MS
                if last_similar_delta_minutes is not None
                else None
            ),
            last_similar_delta_minutes=last_similar_delta_minutes,
        )

    return _make
