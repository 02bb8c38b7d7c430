"""Fee-drift heatmap: per-route fee bps now versus the preceding window."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from activity_intel.aggregation.models import FeeDriftRow, TimeRange, current_time_ms
from activity_intel.aggregation.routes import fee_bps
from activity_intel.enrichment.models import ActivityEventEnriched

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_FEE_DRIFT_WINDOW_DAYS = 7


@dataclass
class _WindowTotals:
    from_label: str
    to_label: str
    asset: str
    fee_usd: Decimal = ZERO
    notional_usd: Decimal = ZERO
    sample: int = 0

    @property
    def bps(self) -> float:
        return fee_bps(self.fee_usd, self.notional_usd)


def _aggregate(events: Sequence[ActivityEventEnriched], from_ms: int, to_ms: int) -> dict[str, _WindowTotals]:
    totals: dict[str, _WindowTotals] = {}
    for event in events:
        if event.timestamp_ms < from_ms or event.timestamp_ms > to_ms:
            continue
        row = totals.get(event.route_key)
        if row is None:
            row = _WindowTotals(from_label=event.from_label, to_label=event.to_label, asset=event.asset)
            totals[event.route_key] = row
        row.fee_usd += event.fee_usd or ZERO
        row.notional_usd += event.market_value_usd_at_event or ZERO
        row.sample += 1
    return totals


def build_fee_drift(
    events: Sequence[ActivityEventEnriched],
    time_range: TimeRange | None = None,
    *,
    now_ms: int | None = None,
    window_days: int = DEFAULT_FEE_DRIFT_WINDOW_DAYS,
) -> list[FeeDriftRow]:
    """Compare each route's fee bps against the immediately preceding window.

    The baseline window has the same length as the current one and ends
    where it starts. Only routes seen in the current window produce rows;
    a missing baseline counts as 0 bps. Rows are sorted by absolute drift,
    largest first.

    Args:
        events: Enriched events.
        time_range: Current window; open bounds default to the last
            ``window_days`` ending at ``now_ms``.
        now_ms: Reference time; defaults to the wall clock.
        window_days: Default current-window length in days.
    """
    if not events:
        return []

    now = now_ms if now_ms is not None else current_time_ms()
    from_ms = time_range.from_ms if time_range and time_range.from_ms is not None else now - window_days * DAY_MS
    to_ms = time_range.to_ms if time_range and time_range.to_ms is not None else now
    baseline_from = from_ms - (to_ms - from_ms)

    current = _aggregate(events, from_ms, to_ms)
    baseline = _aggregate(events, baseline_from, from_ms)

    rows: list[FeeDriftRow] = []
    for route_key, cur in current.items():
        base = baseline.get(route_key)
        baseline_bps = base.bps if base is not None else 0.0
        current_bps = cur.bps
        rows.append(
            FeeDriftRow(
                route_key=route_key,
                asset=cur.asset,
                from_label=cur.from_label,
                to_label=cur.to_label,
                current_fee_bps=current_bps,
                baseline_fee_bps=baseline_bps,
                drift_bps=current_bps - baseline_bps,
                sample_current=cur.sample,
                sample_baseline=base.sample if base is not None else 0,
            )
        )

    rows.sort(key=lambda r: abs(r.drift_bps), reverse=True)
    logger.debug(
        "Fee drift: window=%d..%d baseline_from=%d routes=%d baseline_routes=%d",
        from_ms,
        to_ms,
        baseline_from,
        len(current),
        len(baseline),
    )
    return rows
