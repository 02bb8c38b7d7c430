"""Tiered market price resolution for activity events.

Trades carry their own execution price. Transfers and internal moves do
not, so they borrow a price from temporally nearby trades of the same
asset before falling back to the (possibly stale) live quote. Every
resolution is tagged with the tier that produced it.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from activity_intel.enrichment.models import PriceResolution
from activity_intel.ingestor.models import Activity, to_decimal
from activity_intel.ingestor.normalization import normalize_symbol

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000
DEFAULT_NEAREST_WINDOW_MINUTES = 30


def minute_bucket(timestamp_ms: int) -> int:
    """Floor an epoch-ms timestamp to the start of its minute."""
    return (timestamp_ms // MINUTE_MS) * MINUTE_MS


def _positive(value: Decimal | None) -> Decimal | None:
    if value is None or not value.is_finite() or value <= 0:
        return None
    return value


@dataclass(frozen=True)
class PriceTick:
    minute: int
    price: Decimal


class TradePriceCache:
    """Per-asset, minute-indexed price samples taken from priced activities.

    Built once per enrichment batch. Later samples in the same minute
    overwrite earlier ones (input order).
    """

    def __init__(self, by_asset_minute: dict[str, dict[int, Decimal]]) -> None:
        self._by_asset_minute = by_asset_minute
        self._minutes: dict[str, list[int]] = {}
        self._ticks: dict[str, list[PriceTick]] = {}
        for asset, minute_map in by_asset_minute.items():
            ticks = [PriceTick(minute=m, price=p) for m, p in sorted(minute_map.items())]
            self._ticks[asset] = ticks
            self._minutes[asset] = [t.minute for t in ticks]

    @classmethod
    def from_activities(cls, activities: Iterable[Activity]) -> TradePriceCache:
        """Build the cache from every activity that carries a positive price."""
        by_asset_minute: dict[str, dict[int, Decimal]] = {}
        for activity in activities:
            asset = normalize_symbol(activity.symbol)
            if not asset:
                continue
            price = _positive(activity.price)
            if price is None:
                continue
            bucket = minute_bucket(activity.timestamp_ms)
            if not bucket:
                continue
            by_asset_minute.setdefault(asset, {})[bucket] = price
        return cls(by_asset_minute)

    def __len__(self) -> int:
        return sum(len(ticks) for ticks in self._ticks.values())

    def exact(self, asset: str, minute: int) -> Decimal | None:
        """Return the sample recorded for ``asset`` in exactly ``minute``."""
        return self._by_asset_minute.get(asset, {}).get(minute)

    def nearest(self, asset: str, minute: int, *, max_distance_ms: int) -> Decimal | None:
        """Return the nearest-in-time sample within ``max_distance_ms``.

        On equal distance the earlier sample wins.
        """
        minutes = self._minutes.get(asset)
        if not minutes:
            return None
        ticks = self._ticks[asset]

        idx = bisect.bisect_left(minutes, minute)
        best: PriceTick | None = None
        best_distance = 0
        for candidate in (idx - 1, idx):
            if 0 <= candidate < len(ticks):
                distance = abs(ticks[candidate].minute - minute)
                if best is None or distance < best_distance:
                    best = ticks[candidate]
                    best_distance = distance

        if best is None or best_distance > max_distance_ms:
            return None
        return best.price


class MarketPriceResolver:
    """Resolve a USD price for an activity with an explicit confidence tier.

    Resolution order (first success wins):
    1. The activity's own trade price (high)
    2. A same-minute sample of the asset from another trade (high)
    3. The nearest sample within the window, default 30 minutes (medium)
    4. The live price for the asset (low)
    5. Nothing: confidence low, price None
    """

    def __init__(
        self,
        cache: TradePriceCache,
        live_prices: Mapping[str, object] | None = None,
        *,
        nearest_window_minutes: int = DEFAULT_NEAREST_WINDOW_MINUTES,
    ) -> None:
        self._cache = cache
        self._window_ms = nearest_window_minutes * MINUTE_MS
        self._live: dict[str, Decimal] = {}
        for symbol, raw_price in (live_prices or {}).items():
            asset = normalize_symbol(str(symbol))
            price = _positive(to_decimal(raw_price))
            if asset and price is not None:
                self._live[asset] = price

    def live_price(self, asset: str) -> Decimal | None:
        return self._live.get(asset)

    def resolve(self, activity: Activity, asset: str) -> PriceResolution:
        """Resolve the price of ``activity`` for its normalized ``asset``."""
        own = _positive(activity.price)
        if own is not None:
            return PriceResolution(price=own, confidence="high", source="trade")

        target = minute_bucket(activity.timestamp_ms)
        exact = _positive(self._cache.exact(asset, target))
        if exact is not None:
            return PriceResolution(price=exact, confidence="high", source="same_minute")

        nearest = _positive(self._cache.nearest(asset, target, max_distance_ms=self._window_ms))
        if nearest is not None:
            return PriceResolution(price=nearest, confidence="medium", source="nearest")

        live = self.live_price(asset)
        if live is not None:
            return PriceResolution(price=live, confidence="low", source="live")

        logger.debug("No price resolvable for %s (%s)", activity.activity_id, asset)
        return PriceResolution(price=None, confidence="low", source="none")
