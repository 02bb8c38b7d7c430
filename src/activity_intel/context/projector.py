"""AI context projector.

Transforms enriched events and aggregation outputs into a compact,
JSON-serializable object sized for a language-model prompt. Keys are
camelCase, as consumed by the assistant prompt templates; every monetary
and bps value is rounded to 2 decimals.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal, get_args

from activity_intel.aggregation.anomaly_seed import DEFAULT_RAPID_REPEAT_MINUTES, is_rapid_repeat
from activity_intel.aggregation.models import (
    FeeDriftRow,
    MovementMemoryRow,
    RouteMatrixRow,
    TimeRange,
    current_time_ms,
)
from activity_intel.config import ContextSettings
from activity_intel.enrichment.models import ActivityEventEnriched

logger = logging.getLogger(__name__)

ActivityAIContextMode = Literal["overview", "route_health", "fee_drift", "memory_signal"]
CONTEXT_MODES: tuple[str, ...] = get_args(ActivityAIContextMode)

DAY_MS = 24 * 60 * 60 * 1000
_CENT = Decimal("0.01")
_ZERO = Decimal("0")
_ONE = Decimal("1")
_BPS = Decimal("10000")


def compact_number(value: Decimal | float | int | None) -> float:
    """Round to 2 decimals (half up) as a float; None and non-finite become 0."""
    if value is None:
        return 0.0
    dec = value if isinstance(value, Decimal) else Decimal(str(value))
    if not dec.is_finite():
        return 0.0
    try:
        return float(dec.quantize(_CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        result = float(dec)
        return result if math.isfinite(result) else 0.0


def _route_summary(row: RouteMatrixRow) -> dict[str, object]:
    return {
        "route": row.route_key,
        "valueUsd": compact_number(row.total_value_usd),
        "feeUsd": compact_number(row.total_fee_usd),
        "avgFeeBps": compact_number(row.avg_fee_bps),
        "count": row.count,
    }


class ActivityContextProjector:
    """Builds mode-specific AI context objects.

    Supported modes:
    - overview: base fields plus per-event fee anomalies
    - route_health: base fields plus the busiest routes
    - fee_drift: base fields plus the largest fee drifts
    - memory_signal: base fields plus movement memory and rapid repeats

    Unknown modes are projected as ``overview``.
    """

    def __init__(
        self,
        settings: ContextSettings | None = None,
        *,
        rapid_repeat_minutes: int = DEFAULT_RAPID_REPEAT_MINUTES,
    ) -> None:
        settings = settings or ContextSettings()
        self.rapid_repeat_minutes = rapid_repeat_minutes
        self.top_routes = settings.top_routes
        self.detail_rows = settings.detail_rows
        self.recurrence_rows = settings.recurrence_rows

    def project(
        self,
        mode: str,
        *,
        events: Sequence[ActivityEventEnriched],
        matrix: Sequence[RouteMatrixRow],
        fee_drift: Sequence[FeeDriftRow],
        memory: Sequence[MovementMemoryRow],
        time_range: TimeRange | None = None,
        filters: Mapping[str, object] | None = None,
        now_ms: int | None = None,
    ) -> dict[str, object]:
        """Project the analysis outputs for ``mode``.

        Args:
            mode: One of CONTEXT_MODES.
            events: Enriched events (newest first).
            matrix: Route matrix rows.
            fee_drift: Fee drift rows.
            memory: Movement memory rows.
            time_range: Range the caller filtered on.
            filters: Caller filters echoed back to the assistant.
            now_ms: Reference time for the 24h totals.

        Returns:
            JSON-serializable context dictionary.
        """
        if mode not in CONTEXT_MODES:
            logger.warning("Unknown AI context mode %r, projecting overview", mode)
            mode = "overview"

        base = self._build_base(mode, events, matrix, time_range, filters, now_ms)

        if mode == "route_health":
            return {**base, "routes": self._build_routes(matrix)}
        if mode == "fee_drift":
            return {**base, "feeDrift": self._build_fee_drift(fee_drift)}
        if mode == "memory_signal":
            return {
                **base,
                "memory": self._build_memory(memory),
                "recentRecurrence": self._build_recurrence(events),
            }
        return {**base, "anomalies": self._build_fee_anomalies(events)}

    def _build_base(
        self,
        mode: str,
        events: Sequence[ActivityEventEnriched],
        matrix: Sequence[RouteMatrixRow],
        time_range: TimeRange | None,
        filters: Mapping[str, object] | None,
        now_ms: int | None,
    ) -> dict[str, object]:
        now = now_ms if now_ms is not None else current_time_ms()
        recent = [e for e in events if now - e.timestamp_ms <= DAY_MS]
        return {
            "mode": mode,
            "eventCount": len(events),
            "movedUsd24h": compact_number(sum((e.market_value_usd_at_event or _ZERO for e in recent), _ZERO)),
            "feeUsd24h": compact_number(sum((e.fee_usd or _ZERO for e in recent), _ZERO)),
            "topRoutes": [_route_summary(row) for row in matrix[: self.top_routes]],
            "range": (time_range or TimeRange()).to_dict(),
            "filters": dict(filters or {}),
        }

    def _build_routes(self, matrix: Sequence[RouteMatrixRow]) -> list[dict[str, object]]:
        return [
            {
                "route": row.route_key,
                "count": row.count,
                "valueUsd": compact_number(row.total_value_usd),
                "feeUsd": compact_number(row.total_fee_usd),
                "avgFeeBps": compact_number(row.avg_fee_bps),
                "lastAt": row.last_at,
            }
            for row in matrix[: self.detail_rows]
        ]

    def _build_fee_drift(self, fee_drift: Sequence[FeeDriftRow]) -> list[dict[str, object]]:
        return [
            {
                "route": row.route_key,
                "currentFeeBps": compact_number(row.current_fee_bps),
                "baselineFeeBps": compact_number(row.baseline_fee_bps),
                "driftBps": compact_number(row.drift_bps),
                "sampleCurrent": row.sample_current,
                "sampleBaseline": row.sample_baseline,
            }
            for row in fee_drift[: self.detail_rows]
        ]

    def _build_memory(self, memory: Sequence[MovementMemoryRow]) -> list[dict[str, object]]:
        return [
            {
                "route": row.route_key,
                "lastAt": row.last_at,
                "prevAt": row.prev_at,
                "avgAmount": compact_number(row.avg_amount),
                "avgFeeUsd": compact_number(row.avg_fee_usd),
                "avgMarketPriceUsd": compact_number(row.avg_market_price_usd),
                "sampleCount": row.sample_count,
            }
            for row in memory[: self.detail_rows]
        ]

    def _build_recurrence(self, events: Sequence[ActivityEventEnriched]) -> list[dict[str, object]]:
        repeats = [e for e in events if is_rapid_repeat(e, threshold_minutes=self.rapid_repeat_minutes)]
        return [
            {
                "route": e.route_key,
                "asset": e.asset,
                "deltaMinutes": e.last_similar_delta_minutes,
                "amount": compact_number(e.amount),
            }
            for e in repeats[: self.recurrence_rows]
        ]

    def _build_fee_anomalies(self, events: Sequence[ActivityEventEnriched]) -> list[dict[str, object]]:
        rows: list[dict[str, object]] = []
        for e in events:
            if len(rows) >= self.detail_rows:
                break
            fee = e.fee_usd or _ZERO
            value = e.market_value_usd_at_event or _ZERO
            if fee <= 0 or value <= 0:
                continue
            rows.append(
                {
                    "route": e.route_key,
                    "feeBps": compact_number(fee / max(_ONE, value) * _BPS),
                    "confidence": e.valuation_confidence,
                    "timestamp": e.timestamp_ms,
                }
            )
        return rows


def build_activity_ai_context(
    mode: str,
    *,
    events: Sequence[ActivityEventEnriched],
    matrix: Sequence[RouteMatrixRow],
    fee_drift: Sequence[FeeDriftRow],
    memory: Sequence[MovementMemoryRow],
    time_range: TimeRange | None = None,
    filters: Mapping[str, object] | None = None,
    now_ms: int | None = None,
    settings: ContextSettings | None = None,
    rapid_repeat_minutes: int = DEFAULT_RAPID_REPEAT_MINUTES,
) -> dict[str, object]:
    """Build the AI context object for ``mode`` with default limits."""
    return ActivityContextProjector(settings, rapid_repeat_minutes=rapid_repeat_minutes).project(
        mode,
        events=events,
        matrix=matrix,
        fee_drift=fee_drift,
        memory=memory,
        time_range=time_range,
        filters=filters,
        now_ms=now_ms,
    )
