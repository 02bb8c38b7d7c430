"""Enrichment layer - Route classification, valuation and cost basis."""

from activity_intel.enrichment.classifier import ConnectionDirectory, EntityClassifier
from activity_intel.enrichment.cost_basis import BasisState, CostBasisTracker, apply_transition
from activity_intel.enrichment.enricher import ActivityEnricher, amount_bucket, enrich_activities
from activity_intel.enrichment.models import (
    ActivityEventEnriched,
    EntityKind,
    PriceResolution,
    RouteResolution,
    ValuationConfidence,
)
from activity_intel.enrichment.pricing import MarketPriceResolver, TradePriceCache

__all__ = [
    "ActivityEnricher",
    "ActivityEventEnriched",
    "BasisState",
    "ConnectionDirectory",
    "CostBasisTracker",
    "EntityClassifier",
    "EntityKind",
    "MarketPriceResolver",
    "PriceResolution",
    "RouteResolution",
    "TradePriceCache",
    "ValuationConfidence",
    "amount_bucket",
    "apply_transition",
    "enrich_activities",
]
