"""Anomaly seed builder.

A cheap, explainable bundle of the most relevant aggregation slices. This
is a frequency heuristic, not a statistical test; its job is to hand a
small slice of data to the AI context layer.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from activity_intel.aggregation.models import (
    ActivityAnomalySeed,
    FeeDriftRow,
    HourRouteCount,
    RecurrenceAnomaly,
    RouteMatrixRow,
    ValuationSample,
)
from activity_intel.enrichment.models import ActivityEventEnriched

DEFAULT_TOP_ROUTES = 5
DEFAULT_TOP_FEE_DRIFT = 5
DEFAULT_MAX_HOUR_MOVES = 8
DEFAULT_MAX_RECURRENCE = 8
DEFAULT_MAX_SAMPLES = 8
DEFAULT_RAPID_REPEAT_MINUTES = 60


def is_rapid_repeat(event: ActivityEventEnriched, *, threshold_minutes: int = DEFAULT_RAPID_REPEAT_MINUTES) -> bool:
    """Return True if the event repeats its bucket within ``threshold_minutes`` (exclusive)."""
    delta = event.last_similar_delta_minutes or 0
    return 0 < delta < threshold_minutes


def build_anomaly_seed(
    events: Sequence[ActivityEventEnriched],
    matrix: Sequence[RouteMatrixRow],
    fee_drift: Sequence[FeeDriftRow],
    *,
    top_routes: int = DEFAULT_TOP_ROUTES,
    top_fee_drift: int = DEFAULT_TOP_FEE_DRIFT,
    max_hour_moves: int = DEFAULT_MAX_HOUR_MOVES,
    max_recurrence: int = DEFAULT_MAX_RECURRENCE,
    max_samples: int = DEFAULT_MAX_SAMPLES,
    rapid_repeat_minutes: int = DEFAULT_RAPID_REPEAT_MINUTES,
) -> ActivityAnomalySeed:
    """Fold events and aggregation outputs into an ActivityAnomalySeed.

    Args:
        events: Enriched events in the order they should be sampled
            (newest first, as returned by the enrichment pass).
        matrix: Route matrix rows, already sorted by notional.
        fee_drift: Fee drift rows, already sorted by absolute drift.

    Returns:
        ActivityAnomalySeed with top slices, hour-of-day clustering,
        rapid repeats and high-confidence samples.
    """
    hour_counts: Counter[tuple[int, str]] = Counter()
    asset_by_route: dict[str, str] = {}
    recurrence: list[RecurrenceAnomaly] = []
    samples: list[ValuationSample] = []

    for event in events:
        hour_counts[(event.hour_utc, event.route_key)] += 1
        asset_by_route.setdefault(event.route_key, event.asset)

        if len(recurrence) < max_recurrence and is_rapid_repeat(event, threshold_minutes=rapid_repeat_minutes):
            recurrence.append(
                RecurrenceAnomaly(
                    route_key=event.route_key,
                    delta_minutes=event.last_similar_delta_minutes or 0,
                    asset=event.asset,
                )
            )

        if len(samples) < max_samples and event.is_high_confidence:
            samples.append(
                ValuationSample(
                    route_key=event.route_key,
                    asset=event.asset,
                    amount=event.amount,
                    market_value_usd_at_event=event.market_value_usd_at_event,
                    fee_usd=event.fee_usd,
                    timestamp_ms=event.timestamp_ms,
                )
            )

    hour_moves = [
        HourRouteCount(hour_utc=hour, count=count, route_key=route_key, asset=asset_by_route[route_key])
        for (hour, route_key), count in hour_counts.items()
    ]
    hour_moves.sort(key=lambda h: h.count, reverse=True)

    return ActivityAnomalySeed(
        top_routes_by_notional=tuple(matrix[:top_routes]),
        top_fee_drift_routes=tuple(fee_drift[:top_fee_drift]),
        unusual_hour_moves=tuple(hour_moves[:max_hour_moves]),
        recurrence_anomalies=tuple(recurrence),
        high_confidence_samples=tuple(samples),
    )
