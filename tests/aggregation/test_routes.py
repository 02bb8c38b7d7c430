"""Tests for the route matrix reducer."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import pytest

from activity_intel.aggregation.models import TimeRange
from activity_intel.aggregation.routes import build_route_matrix, fee_bps
from activity_intel.enrichment.models import ActivityEventEnriched

TS_MS = 1_700_000_000_000

EventFactory = Callable[..., ActivityEventEnriched]


class TestFeeBps:
    def test_basic(self) -> None:
        assert fee_bps(Decimal("5"), Decimal("10000")) == pytest.approx(5.0)

    def test_zero_notional_or_fee(self) -> None:
        assert fee_bps(Decimal("5"), Decimal("0")) == 0.0
        assert fee_bps(Decimal("0"), Decimal("100")) == 0.0


class TestBuildRouteMatrix:
    def test_empty(self) -> None:
        assert build_route_matrix([]) == []

    def test_fee_bps_per_route(self, make_event: EventFactory) -> None:
        rows = build_route_matrix([make_event(amount="100", price="100", fee_usd="5")])

        assert len(rows) == 1
        assert rows[0].total_value_usd == Decimal("10000")
        assert rows[0].avg_fee_bps == pytest.approx(5.0)

    def test_groups_and_sorts_by_value(self, make_event: EventFactory) -> None:
        rows = build_route_matrix(
            [
                make_event(event_id="a", timestamp_ms=TS_MS, amount="1", price="100"),
                make_event(event_id="b", timestamp_ms=TS_MS + 5, amount="2", price="100"),
                make_event(event_id="c", to_label="Cold", amount="1", price="1000"),
            ]
        )

        assert [r.route_key for r in rows] == ["Exchange A->Cold:BTC", "Exchange A->Wallet:BTC"]
        wallet = rows[1]
        assert wallet.count == 2
        assert wallet.total_amount == Decimal("3")
        assert wallet.total_value_usd == Decimal("300")
        assert wallet.last_at == TS_MS + 5

    def test_unpriced_events_count_zero_usd(self, make_event: EventFactory) -> None:
        (row,) = build_route_matrix([make_event(price=None), make_event(event_id="b", price="10")])

        assert row.count == 2
        assert row.total_value_usd == Decimal("10")

    def test_time_range_is_inclusive(self, make_event: EventFactory) -> None:
        events = [
            make_event(event_id="a", timestamp_ms=TS_MS),
            make_event(event_id="b", timestamp_ms=TS_MS + 10),
            make_event(event_id="c", timestamp_ms=TS_MS + 20),
        ]
        (row,) = build_route_matrix(events, TimeRange(from_ms=TS_MS, to_ms=TS_MS + 10))

        assert row.count == 2

    def test_idempotent(self, make_event: EventFactory) -> None:
        events = [make_event(event_id="a"), make_event(event_id="b", to_label="Cold")]
        assert build_route_matrix(events) == build_route_matrix(events)
