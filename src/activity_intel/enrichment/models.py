"""Data models for the enrichment module."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Literal

from activity_intel.ingestor.models import Activity, ActivityType

EntityKind = Literal["exchange", "hardware_wallet", "software_wallet", "unknown"]
ValuationConfidence = Literal["high", "medium", "low"]
PriceSource = Literal["trade", "same_minute", "nearest", "live", "none"]

HOUR_MS = 60 * 60 * 1000


def _opt_str(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def make_route_key(from_label: str, to_label: str, asset: str) -> str:
    """Build the directional route key ``"<from>-><to>:<asset>"``."""
    return f"{from_label}->{to_label}:{asset}"


@dataclass(frozen=True)
class RouteResolution:
    """Resolved counterparties for a single activity."""

    from_label: str
    to_label: str
    source_connection_id: str | None = None
    destination_connection_id: str | None = None


@dataclass(frozen=True)
class PriceResolution:
    """A best-effort USD price and how directly it was observed.

    Attributes:
        price: USD price per unit, or None when nothing could be resolved.
        confidence: high (observed), medium (borrowed from a nearby trade)
            or low (live quote, or no price at all).
        source: Which resolution tier produced the price.
    """

    price: Decimal | None
    confidence: ValuationConfidence
    source: PriceSource

    @property
    def has_price(self) -> bool:
        return self.price is not None


@dataclass(frozen=True)
class ActivityEventEnriched:
    """One normalized, classified and valued activity event.

    Produced exclusively by the enrichment pass and read-only afterwards.
    Cost-basis fields reflect the per-asset state *before* this event's own
    transition was applied.

    Attributes:
        event_id: Stable id of the source activity.
        timestamp_ms: Event time in epoch milliseconds.
        asset: Normalized asset symbol (never empty).
        amount: Absolute amount moved (always > 0).
        activity_type: trade, transfer or internal.
        raw_type: Uppercased raw type string from the source.
        route_key: ``"<from_label>-><to_label>:<asset>"``.
        valuation_confidence: Confidence tier of ``market_price_usd_at_event``.
        bucket_id: Route key combined with a log-scaled amount bucket.
        last_similar_at: Timestamp of the previous event in the same bucket.
        last_similar_delta_minutes: Minutes since that previous event.
    """

    event_id: str
    timestamp_ms: int
    asset: str
    amount: Decimal
    activity_type: ActivityType
    raw_type: str
    side: str | None

    # Counterparties
    source_label: str
    from_label: str
    to_label: str
    from_kind: EntityKind
    to_kind: EntityKind
    route_key: str
    source_connection_id: str | None
    destination_connection_id: str | None

    # Chain metadata
    tx_hash: str | None
    address: str | None
    status: str | None
    network: str | None

    # Fees
    fee_asset: str | None
    fee_amount: Decimal | None
    fee_usd: Decimal | None

    # Valuation
    market_price_usd_at_event: Decimal | None
    cost_basis_usd_at_event: Decimal | None
    market_value_usd_at_event: Decimal | None
    basis_value_usd_at_event: Decimal | None
    valuation_confidence: ValuationConfidence

    # Recurrence memory
    bucket_id: str
    raw: Activity
    last_similar_at: int | None = None
    last_similar_delta_minutes: int | None = None

    @property
    def occurred_at(self) -> datetime:
        """Return the event time as a timezone-aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=UTC)

    @property
    def hour_utc(self) -> int:
        """Return the UTC hour of day, valid for any timestamp magnitude."""
        return (self.timestamp_ms // HOUR_MS) % 24

    @property
    def is_high_confidence(self) -> bool:
        return self.valuation_confidence == "high"

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-safe dictionary."""
        return {
            "id": self.event_id,
            "timestamp": self.timestamp_ms,
            "asset": self.asset,
            "amount": str(self.amount),
            "activity_type": self.activity_type,
            "raw_type": self.raw_type,
            "side": self.side,
            "source_label": self.source_label,
            "from_label": self.from_label,
            "to_label": self.to_label,
            "from_kind": self.from_kind,
            "to_kind": self.to_kind,
            "route_key": self.route_key,
            "source_connection_id": self.source_connection_id,
            "destination_connection_id": self.destination_connection_id,
            "tx_hash": self.tx_hash,
            "address": self.address,
            "status": self.status,
            "network": self.network,
            "fee_asset": self.fee_asset,
            "fee_amount": _opt_str(self.fee_amount),
            "fee_usd": _opt_str(self.fee_usd),
            "market_price_usd_at_event": _opt_str(self.market_price_usd_at_event),
            "cost_basis_usd_at_event": _opt_str(self.cost_basis_usd_at_event),
            "market_value_usd_at_event": _opt_str(self.market_value_usd_at_event),
            "basis_value_usd_at_event": _opt_str(self.basis_value_usd_at_event),
            "valuation_confidence": self.valuation_confidence,
            "bucket_id": self.bucket_id,
            "last_similar_at": self.last_similar_at,
            "last_similar_delta_minutes": self.last_similar_delta_minutes,
        }
