"""Input boundary - Typed activity records and connection metadata."""

from activity_intel.ingestor.models import (
    Activity,
    Connection,
    InternalActivity,
    TradeActivity,
    TransferActivity,
    coerce_activity,
    coerce_connection,
    parse_activity,
)
from activity_intel.ingestor.normalization import normalize_symbol

__all__ = [
    "Activity",
    "Connection",
    "InternalActivity",
    "TradeActivity",
    "TransferActivity",
    "coerce_activity",
    "coerce_connection",
    "normalize_symbol",
    "parse_activity",
]
