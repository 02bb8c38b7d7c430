"""KPI summary reducer over a trailing window."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from activity_intel.aggregation.models import ActivityKpiSummary, TimeRange, current_time_ms
from activity_intel.aggregation.routes import build_route_matrix
from activity_intel.enrichment.models import ActivityEventEnriched

ZERO = Decimal("0")
HOUR_MS = 60 * 60 * 1000
DEFAULT_KPI_WINDOW_HOURS = 24


def build_kpi_summary(
    events: Iterable[ActivityEventEnriched],
    time_range: TimeRange | None = None,
    *,
    now_ms: int | None = None,
    window_hours: int = DEFAULT_KPI_WINDOW_HOURS,
) -> ActivityKpiSummary:
    """Compute moved USD, fees, top route and last movement for a window.

    Args:
        events: Enriched events.
        time_range: Explicit window; open bounds default to
            ``[now - window_hours, now]``.
        now_ms: Reference time; defaults to the wall clock.
        window_hours: Trailing window length used for open bounds.

    Returns:
        ActivityKpiSummary for the window.
    """
    now = now_ms if now_ms is not None else current_time_ms()
    from_ms = time_range.from_ms if time_range and time_range.from_ms is not None else now - window_hours * HOUR_MS
    to_ms = time_range.to_ms if time_range and time_range.to_ms is not None else now

    in_window = [e for e in events if from_ms <= e.timestamp_ms <= to_ms]
    matrix = build_route_matrix(in_window)

    return ActivityKpiSummary(
        moved_usd_24h=sum((e.market_value_usd_at_event or ZERO for e in in_window), ZERO),
        fees_usd_24h=sum((e.fee_usd or ZERO for e in in_window), ZERO),
        top_route=matrix[0] if matrix else None,
        last_movement_at=max((e.timestamp_ms for e in in_window), default=0),
    )
