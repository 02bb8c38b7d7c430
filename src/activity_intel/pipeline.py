"""Main pipeline orchestrator for the activity intelligence layer.

This module provides the ActivityIntelPipeline class that wires the
enrichment pass, the caller's filters, every aggregation reducer and the
AI context projector into a single synchronous run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from activity_intel.aggregation.anomaly_seed import build_anomaly_seed
from activity_intel.aggregation.fee_drift import build_fee_drift
from activity_intel.aggregation.kpi import build_kpi_summary
from activity_intel.aggregation.memory import build_movement_memory
from activity_intel.aggregation.models import (
    ActivityAnomalySeed,
    ActivityKpiSummary,
    FeeDriftRow,
    MovementMemoryRow,
    RouteMatrixRow,
    TimeRange,
    current_time_ms,
)
from activity_intel.aggregation.routes import build_route_matrix
from activity_intel.config import Settings, get_settings
from activity_intel.context.projector import ActivityContextProjector
from activity_intel.enrichment.enricher import ActivityEnricher
from activity_intel.enrichment.models import ActivityEventEnriched
from activity_intel.ingestor.models import Activity, Connection, TradeActivity

logger = logging.getLogger(__name__)

ActivityTypeFilter = Literal["all", "trades", "transfers"]

_TRADE_WORDS = frozenset({"buy", "sell"})
_TRADE_SIDES = frozenset({"buy", "sell", "long", "short"})


def matches_activity_type(activity: Activity, activity_type: ActivityTypeFilter) -> bool:
    """Return True if ``activity`` belongs to the requested activity type group."""
    if activity_type == "all":
        return True
    type_lower = activity.type_lower
    if activity_type == "trades":
        return (
            isinstance(activity, TradeActivity)
            or type_lower in _TRADE_WORDS
            or activity.side_lower in _TRADE_SIDES
        )
    return (
        not isinstance(activity, TradeActivity)
        or "deposit" in type_lower
        or "withdraw" in type_lower
    )


@dataclass(frozen=True)
class ActivityIntelFilters:
    """Caller filters applied to enriched events before aggregation.

    Attributes:
        activity_type: all, trades or transfers.
        source: Exact source label to keep, or "all".
        query: Case-insensitive substring over asset, ids, addresses and labels.
        from_ms: Inclusive lower timestamp bound.
        to_ms: Inclusive upper timestamp bound.
    """

    activity_type: ActivityTypeFilter = "all"
    source: str = "all"
    query: str = ""
    from_ms: int | None = None
    to_ms: int | None = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(from_ms=self.from_ms, to_ms=self.to_ms)

    def matches(self, event: ActivityEventEnriched) -> bool:
        """Return True if ``event`` passes every filter."""
        if not matches_activity_type(event.raw, self.activity_type):
            return False
        if self.source and self.source != "all" and event.source_label != self.source:
            return False
        if not self.time_range.contains(event.timestamp_ms):
            return False
        query = self.query.strip().lower()
        if not query:
            return True
        haystack = " ".join(
            [
                event.asset,
                event.event_id,
                event.tx_hash or "",
                event.address or "",
                event.from_label,
                event.to_label,
                event.route_key,
            ]
        ).lower()
        return query in haystack

    def to_dict(self) -> dict[str, object]:
        return {
            "activityType": self.activity_type,
            "source": self.source,
            "query": self.query,
            "fromMs": self.from_ms,
            "toMs": self.to_ms,
        }


@dataclass(frozen=True)
class ActivityTelemetry:
    """Data-quality counters for one pipeline run."""

    rows: int = 0
    low_confidence: int = 0
    missing_market_price: int = 0

    @property
    def low_confidence_ratio(self) -> float:
        return self.low_confidence / self.rows if self.rows else 0.0

    @classmethod
    def from_events(cls, events: Iterable[ActivityEventEnriched]) -> ActivityTelemetry:
        rows = low = missing = 0
        for event in events:
            rows += 1
            if event.valuation_confidence == "low":
                low += 1
            if not event.market_price_usd_at_event:
                missing += 1
        return cls(rows=rows, low_confidence=low, missing_market_price=missing)

    def to_dict(self) -> dict[str, object]:
        return {
            "rows": self.rows,
            "low_confidence": self.low_confidence,
            "missing_market_price": self.missing_market_price,
            "low_confidence_ratio": self.low_confidence_ratio,
        }


@dataclass(frozen=True)
class ActivityIntelResult:
    """Everything one pipeline run produces."""

    events: list[ActivityEventEnriched] = field(default_factory=list)
    matrix: list[RouteMatrixRow] = field(default_factory=list)
    memory: list[MovementMemoryRow] = field(default_factory=list)
    fee_drift: list[FeeDriftRow] = field(default_factory=list)
    kpis: ActivityKpiSummary | None = None
    anomaly_seed: ActivityAnomalySeed = field(default_factory=ActivityAnomalySeed)
    telemetry: ActivityTelemetry = field(default_factory=ActivityTelemetry)
    filters: ActivityIntelFilters = field(default_factory=ActivityIntelFilters)

    def to_dict(self) -> dict[str, object]:
        return {
            "events": [e.to_dict() for e in self.events],
            "matrix": [r.to_dict() for r in self.matrix],
            "memory": [r.to_dict() for r in self.memory],
            "fee_drift": [r.to_dict() for r in self.fee_drift],
            "kpis": self.kpis.to_dict() if self.kpis else None,
            "anomaly_seed": self.anomaly_seed.to_dict(),
            "telemetry": self.telemetry.to_dict(),
        }


class ActivityIntelPipeline:
    """Runs enrichment, filtering and aggregation over an activity batch.

    Pipeline flow:
        Raw activities → Enrichment → Filters → Reducers → AI context

    Example:
        ```python
        from activity_intel.pipeline import ActivityIntelFilters, ActivityIntelPipeline

        pipeline = ActivityIntelPipeline()
        result = pipeline.run(activities, prices, connections,
                              filters=ActivityIntelFilters(activity_type="transfers"))
        context = pipeline.context(result, "route_health")
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._enricher = ActivityEnricher(self._settings)
        self._projector = ActivityContextProjector(
            self._settings.context,
            rapid_repeat_minutes=self._settings.anomaly_seed.rapid_repeat_minutes,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    def run(
        self,
        activities: Iterable[Activity | dict[str, Any]],
        prices: Mapping[str, object] | None = None,
        connections: Iterable[Connection | dict[str, Any]] | None = None,
        *,
        filters: ActivityIntelFilters | None = None,
        now_ms: int | None = None,
    ) -> ActivityIntelResult:
        """Enrich, filter and aggregate one batch.

        Args:
            activities: Raw or parsed activities.
            prices: Latest live USD price per asset symbol.
            connections: Configured connections.
            filters: Optional caller filters; defaults to everything.
            now_ms: Reference time for the trailing windows.

        Returns:
            ActivityIntelResult with events newest-first.
        """
        filters = filters or ActivityIntelFilters()
        now = now_ms if now_ms is not None else current_time_ms()
        aggregation = self._settings.aggregation
        seed = self._settings.anomaly_seed

        base_events = self._enricher.enrich(activities, prices, connections)
        events = [e for e in base_events if filters.matches(e)]
        time_range = filters.time_range

        matrix = build_route_matrix(events, time_range)
        fee_drift = build_fee_drift(
            events,
            time_range,
            now_ms=now,
            window_days=aggregation.fee_drift_window_days,
        )
        memory = build_movement_memory(events, time_range)
        kpis = build_kpi_summary(
            events,
            time_range,
            now_ms=now,
            window_hours=aggregation.kpi_window_hours,
        )
        anomaly_seed = build_anomaly_seed(
            events,
            matrix,
            fee_drift,
            top_routes=seed.top_routes,
            top_fee_drift=seed.top_fee_drift,
            max_hour_moves=seed.max_hour_moves,
            max_recurrence=seed.max_recurrence,
            max_samples=seed.max_samples,
            rapid_repeat_minutes=seed.rapid_repeat_minutes,
        )
        telemetry = ActivityTelemetry.from_events(events)

        logger.info(
            "Activity intel run: events=%d filtered=%d routes=%d drift_rows=%d low_confidence=%.2f",
            len(base_events),
            len(events),
            len(matrix),
            len(fee_drift),
            telemetry.low_confidence_ratio,
        )

        return ActivityIntelResult(
            events=events,
            matrix=matrix,
            memory=memory,
            fee_drift=fee_drift,
            kpis=kpis,
            anomaly_seed=anomaly_seed,
            telemetry=telemetry,
            filters=filters,
        )

    def context(
        self,
        result: ActivityIntelResult,
        mode: str = "overview",
        *,
        now_ms: int | None = None,
    ) -> dict[str, object]:
        """Project ``result`` into the AI context object for ``mode``."""
        return self._projector.project(
            mode,
            events=result.events,
            matrix=result.matrix,
            fee_drift=result.fee_drift,
            memory=result.memory,
            time_range=result.filters.time_range,
            filters=result.filters.to_dict(),
            now_ms=now_ms,
        )
