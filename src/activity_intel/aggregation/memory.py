"""Movement memory reducer: "does this look like a recurring pattern?"."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from activity_intel.aggregation.models import MovementMemoryRow, TimeRange
from activity_intel.aggregation.routes import in_range
from activity_intel.enrichment.models import ActivityEventEnriched

ZERO = Decimal("0")


def _mean(values: list[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / len(values)


def build_movement_memory(
    events: Iterable[ActivityEventEnriched],
    time_range: TimeRange | None = None,
) -> list[MovementMemoryRow]:
    """Summarize each route's two latest movements and average size, fee and price.

    Rows are sorted by most recent movement first.
    """
    by_route: dict[str, list[ActivityEventEnriched]] = defaultdict(list)
    for event in events:
        if in_range(event.timestamp_ms, time_range):
            by_route[event.route_key].append(event)

    rows: list[MovementMemoryRow] = []
    for route_key, route_events in by_route.items():
        times = sorted((e.timestamp_ms for e in route_events), reverse=True)
        prices = [e.market_price_usd_at_event for e in route_events if e.market_price_usd_at_event]
        rows.append(
            MovementMemoryRow(
                route_key=route_key,
                last_at=times[0],
                prev_at=times[1] if len(times) > 1 else None,
                avg_amount=_mean([e.amount for e in route_events]),
                avg_fee_usd=_mean([e.fee_usd or ZERO for e in route_events]),
                avg_market_price_usd=_mean(prices) if prices else None,
                sample_count=len(route_events),
            )
        )

    rows.sort(key=lambda r: r.last_at, reverse=True)
    return rows
