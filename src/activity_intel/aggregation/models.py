"""Data models for the aggregation module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal


def current_time_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(datetime.now(UTC).timestamp() * 1000)


def _opt_str(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class TimeRange:
    """Inclusive ``[from_ms, to_ms]`` window; either bound may be open."""

    from_ms: int | None = None
    to_ms: int | None = None

    def contains(self, timestamp_ms: int) -> bool:
        if self.from_ms is not None and timestamp_ms < self.from_ms:
            return False
        if self.to_ms is not None and timestamp_ms > self.to_ms:
            return False
        return True

    def to_dict(self) -> dict[str, int | None]:
        return {"fromMs": self.from_ms, "toMs": self.to_ms}


@dataclass(frozen=True)
class RouteMatrixRow:
    """Totals for one route key within a window."""

    route_key: str
    from_label: str
    to_label: str
    asset: str
    count: int
    total_amount: Decimal
    total_value_usd: Decimal
    total_fee_usd: Decimal
    avg_fee_bps: float
    last_at: int

    def to_dict(self) -> dict[str, object]:
        return {
            "route_key": self.route_key,
            "from_label": self.from_label,
            "to_label": self.to_label,
            "asset": self.asset,
            "count": self.count,
            "total_amount": str(self.total_amount),
            "total_value_usd": str(self.total_value_usd),
            "total_fee_usd": str(self.total_fee_usd),
            "avg_fee_bps": self.avg_fee_bps,
            "last_at": self.last_at,
        }


@dataclass(frozen=True)
class MovementMemoryRow:
    """Recency and running averages for one route key.

    Attributes:
        route_key: Route identity.
        last_at: Most recent event timestamp.
        prev_at: Second most recent event timestamp, if any.
        avg_amount: Mean amount moved.
        avg_fee_usd: Mean fee (events without a fee count as 0).
        avg_market_price_usd: Mean price over events that had one.
        sample_count: Number of events on the route.
    """

    route_key: str
    last_at: int
    prev_at: int | None
    avg_amount: Decimal
    avg_fee_usd: Decimal
    avg_market_price_usd: Decimal | None
    sample_count: int

    @property
    def is_recurring(self) -> bool:
        return self.prev_at is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "route_key": self.route_key,
            "last_at": self.last_at,
            "prev_at": self.prev_at,
            "avg_amount": str(self.avg_amount),
            "avg_fee_usd": str(self.avg_fee_usd),
            "avg_market_price_usd": _opt_str(self.avg_market_price_usd),
            "sample_count": self.sample_count,
        }


@dataclass(frozen=True)
class FeeDriftRow:
    """Fee bps in the current window against an equal-length prior baseline.

    Low sample counts mean low statistical confidence; rows are not
    filtered on them here.
    """

    route_key: str
    asset: str
    from_label: str
    to_label: str
    current_fee_bps: float
    baseline_fee_bps: float
    drift_bps: float
    sample_current: int
    sample_baseline: int

    def to_dict(self) -> dict[str, object]:
        return {
            "route_key": self.route_key,
            "asset": self.asset,
            "from_label": self.from_label,
            "to_label": self.to_label,
            "current_fee_bps": self.current_fee_bps,
            "baseline_fee_bps": self.baseline_fee_bps,
            "drift_bps": self.drift_bps,
            "sample_current": self.sample_current,
            "sample_baseline": self.sample_baseline,
        }


@dataclass(frozen=True)
class ActivityKpiSummary:
    """Headline numbers for a trailing window (24h by default)."""

    moved_usd_24h: Decimal
    fees_usd_24h: Decimal
    top_route: RouteMatrixRow | None
    last_movement_at: int

    def to_dict(self) -> dict[str, object]:
        return {
            "moved_usd_24h": str(self.moved_usd_24h),
            "fees_usd_24h": str(self.fees_usd_24h),
            "top_route": self.top_route.to_dict() if self.top_route else None,
            "last_movement_at": self.last_movement_at,
        }


@dataclass(frozen=True)
class HourRouteCount:
    hour_utc: int
    count: int
    route_key: str
    asset: str

    def to_dict(self) -> dict[str, object]:
        return {
            "hour_utc": self.hour_utc,
            "count": self.count,
            "route_key": self.route_key,
            "asset": self.asset,
        }


@dataclass(frozen=True)
class RecurrenceAnomaly:
    route_key: str
    delta_minutes: int
    asset: str

    def to_dict(self) -> dict[str, object]:
        return {
            "route_key": self.route_key,
            "delta_minutes": self.delta_minutes,
            "asset": self.asset,
        }


@dataclass(frozen=True)
class ValuationSample:
    route_key: str
    asset: str
    amount: Decimal
    market_value_usd_at_event: Decimal | None
    fee_usd: Decimal | None
    timestamp_ms: int

    def to_dict(self) -> dict[str, object]:
        return {
            "route_key": self.route_key,
            "asset": self.asset,
            "amount": str(self.amount),
            "market_value_usd_at_event": _opt_str(self.market_value_usd_at_event),
            "fee_usd": _opt_str(self.fee_usd),
            "timestamp": self.timestamp_ms,
        }


@dataclass(frozen=True)
class ActivityAnomalySeed:
    """Compact bundle of aggregation slices handed to the AI context layer.

    Attributes:
        top_routes_by_notional: Largest routes by total USD value.
        top_fee_drift_routes: Routes with the largest absolute fee drift.
        unusual_hour_moves: Most frequent (hour-of-day, route) cells.
        recurrence_anomalies: Rapid repeats of a similarly-sized movement.
        high_confidence_samples: Events valued from an observed price.
    """

    top_routes_by_notional: tuple[RouteMatrixRow, ...] = field(default_factory=tuple)
    top_fee_drift_routes: tuple[FeeDriftRow, ...] = field(default_factory=tuple)
    unusual_hour_moves: tuple[HourRouteCount, ...] = field(default_factory=tuple)
    recurrence_anomalies: tuple[RecurrenceAnomaly, ...] = field(default_factory=tuple)
    high_confidence_samples: tuple[ValuationSample, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {
            "top_routes_by_notional": [r.to_dict() for r in self.top_routes_by_notional],
            "top_fee_drift_routes": [r.to_dict() for r in self.top_fee_drift_routes],
            "unusual_hour_moves": [r.to_dict() for r in self.unusual_hour_moves],
            "recurrence_anomalies": [r.to_dict() for r in self.recurrence_anomalies],
            "high_confidence_samples": [r.to_dict() for r in self.high_confidence_samples],
        }
