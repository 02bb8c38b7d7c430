"""Enrichment pass: turns raw activities into ActivityEventEnriched records.

The pass runs the classifier, price resolver and cost-basis tracker over
the batch in ascending time order, then back-fills recurrence memory in a
second linear pass and finally returns the records newest-first.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from activity_intel.config import Settings, get_settings
from activity_intel.enrichment.classifier import ConnectionDirectory, EntityClassifier
from activity_intel.enrichment.cost_basis import CostBasisTracker
from activity_intel.enrichment.models import ActivityEventEnriched, make_route_key
from activity_intel.enrichment.pricing import MINUTE_MS, MarketPriceResolver, TradePriceCache
from activity_intel.ingestor.models import (
    Activity,
    Connection,
    coerce_activity,
    coerce_connection,
)
from activity_intel.ingestor.normalization import normalize_symbol

logger = logging.getLogger(__name__)

_HALF = Decimal("0.5")
MIN_BUCKET_AMOUNT = Decimal("1e-9")


def amount_bucket(amount: Decimal, *, base: float = 1.1) -> int:
    """Return the log-scaled bucket index ``round(ln(amount) / ln(base))``.

    Computed in Decimal so amounts beyond float range still bucket.
    """
    safe = max(MIN_BUCKET_AMOUNT, abs(amount))
    ratio = safe.ln() / Decimal(str(base)).ln()
    return int((ratio + _HALF).to_integral_value(rounding=ROUND_FLOOR))


def _fee_usd(activity: Activity, asset: str, price: Decimal | None) -> Decimal | None:
    if activity.fee_usd is not None and activity.fee_usd > 0:
        return activity.fee_usd
    fee = activity.fee
    if fee is not None and fee > 0 and price is not None and normalize_symbol(activity.fee_asset) == asset:
        return fee * price
    return None


def backfill_recurrence(events: list[ActivityEventEnriched]) -> list[ActivityEventEnriched]:
    """Attach the previous same-bucket timestamp to each event.

    ``events`` must be in ascending time order. Runs in a single pass with
    a side map of the latest timestamp seen per bucket id.
    """
    last_by_bucket: dict[str, int] = {}
    out: list[ActivityEventEnriched] = []
    for event in events:
        prev_ts = last_by_bucket.get(event.bucket_id)
        if prev_ts is not None:
            delta = max(0, (event.timestamp_ms - prev_ts + MINUTE_MS // 2) // MINUTE_MS)
            event = dataclasses.replace(
                event,
                last_similar_at=prev_ts,
                last_similar_delta_minutes=delta,
            )
        last_by_bucket[event.bucket_id] = event.timestamp_ms
        out.append(event)
    return out


class ActivityEnricher:
    """Orchestrates classification, pricing and cost basis over a batch.

    The cost-basis state machine is driven in ascending timestamp order;
    the returned list is re-sorted newest-first afterwards.

    Example:
        ```python
        enricher = ActivityEnricher()
        events = enricher.enrich(activities, prices={"BTC": 64000}, connections=conns)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def enrich(
        self,
        activities: Iterable[Activity | dict[str, Any]],
        prices: Mapping[str, object] | None = None,
        connections: Iterable[Connection | dict[str, Any]] | None = None,
    ) -> list[ActivityEventEnriched]:
        """Enrich a batch of activities.

        Args:
            activities: Raw or parsed activities, in any order.
            prices: Latest live USD price per normalized asset symbol.
            connections: Configured connections (raw or parsed).

        Returns:
            Enriched events sorted by timestamp, newest first.
        """
        parsed = [coerce_activity(item) for item in activities]
        if not parsed:
            return []

        directory = ConnectionDirectory(coerce_connection(c) for c in (connections or []))
        classifier = EntityClassifier(directory, settings=self._settings.classifier)
        resolver = MarketPriceResolver(
            TradePriceCache.from_activities(parsed),
            prices,
            nearest_window_minutes=self._settings.pricing.nearest_window_minutes,
        )
        tracker = CostBasisTracker()
        bucket_base = self._settings.enrichment.amount_bucket_base

        ascending = sorted(parsed, key=lambda a: a.timestamp_ms)
        enriched: list[ActivityEventEnriched] = []
        dropped = 0

        for activity in ascending:
            asset = normalize_symbol(activity.symbol)
            if not asset:
                logger.debug("Dropping activity %s: empty asset symbol", activity.activity_id)
                dropped += 1
                continue
            amount = abs(activity.amount)
            if amount <= 0:
                logger.debug("Dropping activity %s: non-positive amount", activity.activity_id)
                dropped += 1
                continue

            source_label = classifier.source_label(activity)
            route = classifier.resolve_route(activity, source_label)
            route_key = make_route_key(route.from_label, route.to_label, asset)

            resolution = resolver.resolve(activity, asset)
            price = resolution.price
            cost_basis = tracker.cost_basis_at(asset)

            enriched.append(
                ActivityEventEnriched(
                    event_id=activity.activity_id,
                    timestamp_ms=activity.timestamp_ms,
                    asset=asset,
                    amount=amount,
                    activity_type=activity.activity_type,
                    raw_type=(activity.raw_type or activity.activity_type).upper(),
                    side=activity.side_lower or None,
                    source_label=source_label,
                    from_label=route.from_label,
                    to_label=route.to_label,
                    from_kind=classifier.classify(route.from_label, route.source_connection_id),
                    to_kind=classifier.classify(route.to_label, route.destination_connection_id),
                    route_key=route_key,
                    source_connection_id=route.source_connection_id,
                    destination_connection_id=route.destination_connection_id,
                    tx_hash=activity.tx_hash or None,
                    address=activity.address or None,
                    status=activity.status or None,
                    network=activity.network or None,
                    fee_asset=activity.fee_asset or None,
                    fee_amount=activity.fee if activity.fee is not None and activity.fee > 0 else None,
                    fee_usd=_fee_usd(activity, asset, price),
                    market_price_usd_at_event=price,
                    cost_basis_usd_at_event=cost_basis,
                    market_value_usd_at_event=amount * price if price is not None else None,
                    basis_value_usd_at_event=amount * cost_basis if cost_basis is not None else None,
                    valuation_confidence=resolution.confidence,
                    bucket_id=f"{route_key}|{amount_bucket(amount, base=bucket_base)}",
                    raw=activity,
                )
            )

            tracker.advance(asset, activity, price)

        enriched = backfill_recurrence(enriched)
        enriched.sort(key=lambda e: e.timestamp_ms, reverse=True)

        logger.debug(
            "Enriched %d activities (dropped=%d, connections=%d)",
            len(enriched),
            dropped,
            len(directory),
        )
        return enriched


def enrich_activities(
    activities: Iterable[Activity | dict[str, Any]],
    prices: Mapping[str, object] | None = None,
    connections: Iterable[Connection | dict[str, Any]] | None = None,
    *,
    settings: Settings | None = None,
) -> list[ActivityEventEnriched]:
    """Enrich a batch of activities with default or provided settings."""
    return ActivityEnricher(settings).enrich(activities, prices, connections)
