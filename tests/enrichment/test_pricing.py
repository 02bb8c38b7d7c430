"""Tests for tiered market price resolution."""

from __future__ import annotations

from decimal import Decimal

from activity_intel.enrichment.pricing import (
    MINUTE_MS,
    MarketPriceResolver,
    TradePriceCache,
    minute_bucket,
)
from activity_intel.ingestor.models import Activity, parse_activity

# 2023-11-14T22:13:00Z, minute aligned
T0 = 1_699_999_980_000


def _trade(activity_id: str, ts: int, price: str, symbol: str = "BTC") -> Activity:
    return parse_activity(
        {
            "id": activity_id,
            "activityType": "trade",
            "timestamp": ts,
            "symbol": symbol,
            "side": "buy",
            "amount": "1",
            "price": price,
        }
    )


def _transfer(ts: int, symbol: str = "BTC") -> Activity:
    return parse_activity(
        {"id": "x", "activityType": "transfer", "type": "withdraw", "timestamp": ts, "symbol": symbol, "amount": 1}
    )


class TestMinuteBucket:
    def test_floors_to_minute(self) -> None:
        assert minute_bucket(T0 + 59_999) == T0
        assert minute_bucket(T0 + MINUTE_MS) == T0 + MINUTE_MS


class TestTradePriceCache:
    def test_later_sample_in_same_minute_wins(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0 + 1_000, "10"), _trade("b", T0 + 2_000, "11")])
        assert cache.exact("BTC", T0) == Decimal("11")
        assert len(cache) == 1

    def test_symbols_are_normalized(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10", symbol="btc/usdt")])
        assert cache.exact("BTC", T0) == Decimal("10")

    def test_nearest_within_window(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10"), _trade("b", T0 + 20 * MINUTE_MS, "20")])

        assert cache.nearest("BTC", T0 + 5 * MINUTE_MS, max_distance_ms=30 * MINUTE_MS) == Decimal("10")
        assert cache.nearest("BTC", T0 + 15 * MINUTE_MS, max_distance_ms=30 * MINUTE_MS) == Decimal("20")

    def test_nearest_tie_prefers_earlier(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10"), _trade("b", T0 + 20 * MINUTE_MS, "20")])
        assert cache.nearest("BTC", T0 + 10 * MINUTE_MS, max_distance_ms=30 * MINUTE_MS) == Decimal("10")

    def test_nearest_outside_window(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10")])
        assert cache.nearest("BTC", T0 + 40 * MINUTE_MS, max_distance_ms=30 * MINUTE_MS) is None
        assert cache.nearest("ETH", T0, max_distance_ms=30 * MINUTE_MS) is None


class TestMarketPriceResolver:
    def test_own_trade_price_is_high(self) -> None:
        trade = _trade("a", T0, "10")
        resolver = MarketPriceResolver(TradePriceCache.from_activities([trade]))

        resolution = resolver.resolve(trade, "BTC")
        assert resolution.price == Decimal("10")
        assert resolution.confidence == "high"
        assert resolution.source == "trade"

    def test_same_minute_trade_is_high(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0 + 5_000, "10")])
        resolution = MarketPriceResolver(cache).resolve(_transfer(T0 + 30_000), "BTC")

        assert resolution.price == Decimal("10")
        assert resolution.confidence == "high"
        assert resolution.source == "same_minute"

    def test_nearby_trade_is_medium(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10")])
        resolution = MarketPriceResolver(cache).resolve(_transfer(T0 + 10 * MINUTE_MS), "BTC")

        assert resolution.price == Decimal("10")
        assert resolution.confidence == "medium"

    def test_distant_trade_falls_back_to_live(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10")])
        resolver = MarketPriceResolver(cache, {"btc": 64000})

        resolution = resolver.resolve(_transfer(T0 + 40 * MINUTE_MS), "BTC")
        assert resolution.price == Decimal("64000")
        assert resolution.confidence == "low"
        assert resolution.source == "live"

    def test_nothing_resolvable(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10")])
        resolution = MarketPriceResolver(cache).resolve(_transfer(T0 + 40 * MINUTE_MS), "BTC")

        assert resolution.price is None
        assert resolution.confidence == "low"
        assert resolution.has_price is False

    def test_custom_window(self) -> None:
        cache = TradePriceCache.from_activities([_trade("a", T0, "10")])
        resolver = MarketPriceResolver(cache, nearest_window_minutes=45)

        assert resolver.resolve(_transfer(T0 + 40 * MINUTE_MS), "BTC").confidence == "medium"

    def test_live_price_keys_are_normalized(self) -> None:
        resolver = MarketPriceResolver(TradePriceCache({}), {"weth": "2500", "SOL/USDT": 150})

        assert resolver.live_price("ETH") == Decimal("2500")
        assert resolver.live_price("SOL") == Decimal("150")

    def test_non_positive_live_prices_are_ignored(self) -> None:
        resolver = MarketPriceResolver(TradePriceCache({}), {"BTC": 0, "ETH": "bad", "SOL": "150"})

        assert resolver.live_price("BTC") is None
        assert resolver.live_price("ETH") is None
        assert resolver.live_price("SOL") == Decimal("150")
