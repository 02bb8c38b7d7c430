"""Tests for the KPI summary reducer."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

from activity_intel.aggregation.kpi import build_kpi_summary
from activity_intel.aggregation.models import TimeRange
from activity_intel.enrichment.models import ActivityEventEnriched

NOW_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000

EventFactory = Callable[..., ActivityEventEnriched]


class TestBuildKpiSummary:
    def test_empty(self) -> None:
        kpis = build_kpi_summary([], now_ms=NOW_MS)

        assert kpis.moved_usd_24h == Decimal("0")
        assert kpis.fees_usd_24h == Decimal("0")
        assert kpis.top_route is None
        assert kpis.last_movement_at == 0

    def test_trailing_day(self, make_event: EventFactory) -> None:
        events = [
            make_event(event_id="a", timestamp_ms=NOW_MS - HOUR_MS, amount="1", price="100", fee_usd="1"),
            make_event(event_id="b", timestamp_ms=NOW_MS - 2 * HOUR_MS, to_label="Cold", amount="5", price="100"),
            make_event(event_id="old", timestamp_ms=NOW_MS - 25 * HOUR_MS, amount="9", price="100", fee_usd="9"),
        ]
        kpis = build_kpi_summary(events, now_ms=NOW_MS)

        assert kpis.moved_usd_24h == Decimal("600")
        assert kpis.fees_usd_24h == Decimal("1")
        assert kpis.top_route is not None
        assert kpis.top_route.route_key == "Exchange A->Cold:BTC"
        assert kpis.last_movement_at == NOW_MS - HOUR_MS

    def test_custom_window(self, make_event: EventFactory) -> None:
        events = [make_event(timestamp_ms=NOW_MS - 25 * HOUR_MS)]
        assert build_kpi_summary(events, now_ms=NOW_MS, window_hours=48).last_movement_at == NOW_MS - 25 * HOUR_MS

    def test_explicit_range(self, make_event: EventFactory) -> None:
        events = [
            make_event(event_id="a", timestamp_ms=NOW_MS - 30 * HOUR_MS, price="10"),
            make_event(event_id="b", timestamp_ms=NOW_MS - HOUR_MS, price="20"),
        ]
        kpis = build_kpi_summary(
            events,
            TimeRange(from_ms=NOW_MS - 40 * HOUR_MS, to_ms=NOW_MS - 20 * HOUR_MS),
            now_ms=NOW_MS,
        )

        assert kpis.moved_usd_24h == Decimal("10")

    def test_to_dict(self, make_event: EventFactory) -> None:
        data = build_kpi_summary([make_event(timestamp_ms=NOW_MS)], now_ms=NOW_MS).to_dict()

        assert data["moved_usd_24h"] == "100"
        assert data["last_movement_at"] == NOW_MS
