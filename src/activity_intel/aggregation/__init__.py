"""Aggregation layer - Read-only reducers over enriched events."""

from activity_intel.aggregation.anomaly_seed import build_anomaly_seed
from activity_intel.aggregation.fee_drift import build_fee_drift
from activity_intel.aggregation.kpi import build_kpi_summary
from activity_intel.aggregation.memory import build_movement_memory
from activity_intel.aggregation.models import (
    ActivityAnomalySeed,
    ActivityKpiSummary,
    FeeDriftRow,
    HourRouteCount,
    MovementMemoryRow,
    RecurrenceAnomaly,
    RouteMatrixRow,
    TimeRange,
    ValuationSample,
)
from activity_intel.aggregation.routes import build_route_matrix, fee_bps

__all__ = [
    "ActivityAnomalySeed",
    "ActivityKpiSummary",
    "FeeDriftRow",
    "HourRouteCount",
    "MovementMemoryRow",
    "RecurrenceAnomaly",
    "RouteMatrixRow",
    "TimeRange",
    "ValuationSample",
    "build_anomaly_seed",
    "build_fee_drift",
    "build_kpi_summary",
    "build_movement_memory",
    "build_route_matrix",
    "fee_bps",
]
