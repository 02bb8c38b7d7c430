"""Tests for the fee drift heatmap reducer."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from activity_intel.aggregation.fee_drift import build_fee_drift
from activity_intel.aggregation.models import TimeRange
from activity_intel.enrichment.models import ActivityEventEnriched

NOW_MS = 1_700_000_000_000
DAY_MS = 24 * 60 * 60 * 1000

EventFactory = Callable[..., ActivityEventEnriched]


class TestBuildFeeDrift:
    def test_empty(self) -> None:
        assert build_fee_drift([], now_ms=NOW_MS) == []

    def test_drift_against_previous_window(self, make_event: EventFactory) -> None:
        events = [
            make_event(event_id="cur", timestamp_ms=NOW_MS - DAY_MS, amount="100", price="100", fee_usd="10"),
            make_event(event_id="base", timestamp_ms=NOW_MS - 10 * DAY_MS, amount="100", price="100", fee_usd="5"),
        ]
        (row,) = build_fee_drift(events, now_ms=NOW_MS)

        assert row.route_key == "Exchange A->Wallet:BTC"
        assert row.current_fee_bps == pytest.approx(10.0)
        assert row.baseline_fee_bps == pytest.approx(5.0)
        assert row.drift_bps == pytest.approx(5.0)
        assert row.sample_current == 1
        assert row.sample_baseline == 1

    def test_baseline_only_routes_are_absent(self, make_event: EventFactory) -> None:
        events = [
            make_event(event_id="cur", timestamp_ms=NOW_MS - DAY_MS, fee_usd="1"),
            make_event(event_id="old", timestamp_ms=NOW_MS - 10 * DAY_MS, to_label="Cold", fee_usd="1"),
        ]
        rows = build_fee_drift(events, now_ms=NOW_MS)

        assert [r.route_key for r in rows] == ["Exchange A->Wallet:BTC"]

    def test_missing_baseline_counts_as_zero(self, make_event: EventFactory) -> None:
        (row,) = build_fee_drift(
            [make_event(timestamp_ms=NOW_MS - DAY_MS, amount="100", price="100", fee_usd="20")],
            now_ms=NOW_MS,
        )

        assert row.baseline_fee_bps == 0.0
        assert row.sample_baseline == 0
        assert row.drift_bps == pytest.approx(20.0)

    def test_sorted_by_absolute_drift(self, make_event: EventFactory) -> None:
        events = [
            # Wallet route: 10 bps now, 50 bps before -> drift -40
            make_event(event_id="a", timestamp_ms=NOW_MS - DAY_MS, amount="100", price="100", fee_usd="10"),
            make_event(event_id="b", timestamp_ms=NOW_MS - 9 * DAY_MS, amount="100", price="100", fee_usd="50"),
            # Cold route: 20 bps now, nothing before -> drift +20
            make_event(event_id="c", timestamp_ms=NOW_MS - DAY_MS, to_label="Cold", amount="100", price="100", fee_usd="20"),
        ]
        rows = build_fee_drift(events, now_ms=NOW_MS)

        assert [r.route_key for r in rows] == ["Exchange A->Wallet:BTC", "Exchange A->Cold:BTC"]
        assert rows[0].drift_bps == pytest.approx(-40.0)

    def test_explicit_range_sets_baseline_length(self, make_event: EventFactory) -> None:
        time_range = TimeRange(from_ms=NOW_MS - DAY_MS, to_ms=NOW_MS)
        events = [
            make_event(event_id="cur", timestamp_ms=NOW_MS - DAY_MS // 2, amount="100", price="100", fee_usd="10"),
            # Inside the one-day baseline
            make_event(event_id="b1", timestamp_ms=NOW_MS - DAY_MS - DAY_MS // 2, amount="100", price="100", fee_usd="30"),
            # Older than the baseline
            make_event(event_id="b2", timestamp_ms=NOW_MS - 3 * DAY_MS, amount="100", price="100", fee_usd="90"),
        ]
        (row,) = build_fee_drift(events, time_range, now_ms=NOW_MS)

        assert row.baseline_fee_bps == pytest.approx(30.0)
        assert row.sample_baseline == 1
