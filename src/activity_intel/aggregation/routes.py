"""Route matrix reducer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from activity_intel.aggregation.models import RouteMatrixRow, TimeRange
from activity_intel.enrichment.models import ActivityEventEnriched

ZERO = Decimal("0")
BPS = Decimal("10000")


def fee_bps(fee_usd: Decimal, notional_usd: Decimal) -> float:
    """Return ``fee / notional`` in basis points, 0 when either side is not positive."""
    if notional_usd <= 0 or fee_usd <= 0:
        return 0.0
    return float(fee_usd / notional_usd * BPS)


def in_range(timestamp_ms: int, time_range: TimeRange | None) -> bool:
    return time_range is None or time_range.contains(timestamp_ms)


@dataclass
class _RouteTotals:
    route_key: str
    from_label: str
    to_label: str
    asset: str
    count: int = 0
    total_amount: Decimal = ZERO
    total_value_usd: Decimal = ZERO
    total_fee_usd: Decimal = ZERO
    last_at: int = 0

    def add(self, event: ActivityEventEnriched) -> None:
        self.count += 1
        self.total_amount += event.amount
        self.total_value_usd += event.market_value_usd_at_event or ZERO
        self.total_fee_usd += event.fee_usd or ZERO
        self.last_at = max(self.last_at, event.timestamp_ms)

    def freeze(self) -> RouteMatrixRow:
        return RouteMatrixRow(
            route_key=self.route_key,
            from_label=self.from_label,
            to_label=self.to_label,
            asset=self.asset,
            count=self.count,
            total_amount=self.total_amount,
            total_value_usd=self.total_value_usd,
            total_fee_usd=self.total_fee_usd,
            avg_fee_bps=fee_bps(self.total_fee_usd, self.total_value_usd),
            last_at=self.last_at,
        )


def build_route_matrix(
    events: Iterable[ActivityEventEnriched],
    time_range: TimeRange | None = None,
) -> list[RouteMatrixRow]:
    """Group events by route key and total amount, USD value and fees.

    Events without a market value contribute 0 USD. Rows are sorted by
    total USD value, largest first.
    """
    grouped: dict[str, _RouteTotals] = {}
    for event in events:
        if not in_range(event.timestamp_ms, time_range):
            continue
        totals = grouped.get(event.route_key)
        if totals is None:
            totals = _RouteTotals(
                route_key=event.route_key,
                from_label=event.from_label,
                to_label=event.to_label,
                asset=event.asset,
            )
            grouped[event.route_key] = totals
        totals.add(event)

    rows = [totals.freeze() for totals in grouped.values()]
    rows.sort(key=lambda r: r.total_value_usd, reverse=True)
    return rows
