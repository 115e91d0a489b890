"""
Unit tests for the Liquidation Zone Detector.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.exceptions import DataUnavailable, InvalidParameter
from src.liquidation.zone_detector import (
    FundingSignal,
    ImbalanceSignal,
    LiquidationZoneDetector,
    analyze_funding_rate,
    build_zones,
    calculate_risk_levels,
    calculate_trading_suggestion,
    generate_heatmap,
    merge_similar_zones,
    order_book_imbalance,
)
from src.models import LiquidationZone, Suggestion, ZoneSide

NO_FUNDING = FundingSignal(extreme=False, side=None, rate=0.0)


def zone(price, side=ZoneSide.LONG, liquidity=10.0, confidence=50.0, reasoning=None):
    return LiquidationZone(
        price=price,
        side=side,
        estimated_liquidity=liquidity,
        confidence=confidence,
        reasoning=list(reasoning or []),
        stop_loss1=price * 0.97,
        stop_loss2=price * 0.94,
        take_profit1=price * 1.02,
        take_profit2=price * 1.04,
    )


def make_provider(
    book=None,
    funding=None,
    open_interest=None,
    price=100.0,
):
    provider = MagicMock()
    provider.fetch_order_book = AsyncMock(
        return_value=book if book is not None else {"bids": [], "asks": []}
    )
    provider.fetch_funding_rate = AsyncMock(return_value=funding)
    provider.fetch_open_interest = AsyncMock(return_value=open_interest)
    provider.fetch_ticker = AsyncMock(return_value={"last_price": price})
    return provider


class TestOrderBookImbalance:
    """Tests for the bid-share imbalance reading."""

    def test_heavy_ask_pressure_gives_long_zone(self):
        signal = order_book_imbalance([(100.0, 1.0)], [(101.0, 3.0)])

        assert signal.ratio == pytest.approx(0.25)
        assert signal.long_price == pytest.approx(98.0)
        assert signal.short_price is None

    def test_heavy_bid_pressure_gives_short_zone(self):
        signal = order_book_imbalance([(100.0, 3.0)], [(101.0, 1.0)])

        assert signal.ratio == pytest.approx(0.75)
        assert signal.short_price == pytest.approx(103.02)
        assert signal.long_price is None

    def test_thresholds_are_exclusive(self):
        assert order_book_imbalance([(100.0, 2.0)], [(101.0, 3.0)]).long_price is None
        assert order_book_imbalance([(100.0, 3.0)], [(101.0, 2.0)]).short_price is None

    def test_empty_book_is_balanced(self):
        signal = order_book_imbalance([], [])

        assert signal.ratio == 0.5
        assert signal.long_price is None
        assert signal.short_price is None


class TestFundingRate:
    def test_missing_rate(self):
        assert analyze_funding_rate(None) == FundingSignal(extreme=False, side=None, rate=0.0)

    def test_boundary_is_not_extreme(self):
        assert not analyze_funding_rate(0.001).extreme
        assert not analyze_funding_rate(-0.001).extreme

    def test_positive_extreme_threatens_longs(self):
        signal = analyze_funding_rate(0.0015)
        assert signal.extreme
        assert signal.side == ZoneSide.LONG

    def test_negative_extreme_threatens_shorts(self):
        signal = analyze_funding_rate(-0.0015)
        assert signal.extreme
        assert signal.side == ZoneSide.SHORT


class TestTradingSuggestion:
    """Tests for the zone trading suggestion."""

    def test_low_confidence_is_neutral(self):
        assert calculate_trading_suggestion(
            ZoneSide.LONG, 99.5, 100.0, 39.0, 0.01
        ) == Suggestion.NEUTRAL

    def test_near_confident_long_zone_is_buy(self):
        assert calculate_trading_suggestion(
            ZoneSide.LONG, 99.0, 100.0, 70.0, 0.0
        ) == Suggestion.BUY

    def test_near_confident_short_zone_is_sell(self):
        assert calculate_trading_suggestion(
            ZoneSide.SHORT, 101.0, 100.0, 61.0, 0.0
        ) == Suggestion.SELL

    def test_crowded_longs_is_sell(self):
        assert calculate_trading_suggestion(
            ZoneSide.LONG, 95.0, 100.0, 70.0, 0.003
        ) == Suggestion.SELL

    def test_crowded_shorts_is_buy(self):
        assert calculate_trading_suggestion(
            ZoneSide.SHORT, 105.0, 100.0, 70.0, -0.003
        ) == Suggestion.BUY

    def test_confidence_60_is_not_high(self):
        assert calculate_trading_suggestion(
            ZoneSide.LONG, 99.0, 100.0, 60.0, 0.0
        ) == Suggestion.NEUTRAL


class TestRiskLevels:
    def test_buy_ladder(self):
        levels = calculate_risk_levels(ZoneSide.LONG, 100.0, Suggestion.BUY)

        assert levels.stop_loss1 == pytest.approx(98.0)
        assert levels.stop_loss2 == pytest.approx(95.0)
        assert levels.take_profit1 == pytest.approx(101.5)
        assert levels.take_profit2 == pytest.approx(103.0)

    def test_sell_ladder(self):
        levels = calculate_risk_levels(ZoneSide.LONG, 100.0, Suggestion.SELL)

        assert levels.stop_loss1 == pytest.approx(102.0)
        assert levels.take_profit2 == pytest.approx(97.0)

    def test_neutral_ladders_follow_side(self):
        long_levels = calculate_risk_levels(ZoneSide.LONG, 100.0, Suggestion.NEUTRAL)
        short_levels = calculate_risk_levels(ZoneSide.SHORT, 100.0, Suggestion.NEUTRAL)

        assert long_levels.stop_loss1 == pytest.approx(97.0)
        assert long_levels.take_profit2 == pytest.approx(104.0)
        assert short_levels.stop_loss1 == pytest.approx(103.0)
        assert short_levels.take_profit2 == pytest.approx(96.0)


class TestHeatmap:
    def test_twenty_ascending_points(self):
        points = generate_heatmap(100.0, 100.0, 80.0)

        assert len(points) == 20
        prices = [p.price for p in points]
        assert prices == sorted(prices)
        assert prices[0] == pytest.approx(95.0)
        assert prices[-1] == pytest.approx(104.5)

    def test_intensity_peaks_at_zone(self):
        points = generate_heatmap(100.0, 100.0, 80.0)
        at_zone = next(p for p in points if p.price == 100.0)

        assert at_zone.intensity == pytest.approx(80.0)
        assert points[0].intensity == pytest.approx(40.0)
        assert all(0 <= p.intensity <= 80.0 for p in points)
        assert all(p.liquidity >= 0 for p in points)


class TestBuildZones:
    """Tests for evidence accumulation."""

    def test_order_book_only(self):
        zones = build_zones(100.0, ImbalanceSignal(0.25, long_price=98.0), NO_FUNDING, None)

        assert len(zones) == 1
        z = zones[0]
        assert z.side == ZoneSide.LONG
        assert z.price == pytest.approx(98.0)
        assert z.confidence == 30
        assert z.estimated_liquidity == pytest.approx(9.8)
        assert z.suggestion == Suggestion.NEUTRAL
        assert z.stop_loss1 == pytest.approx(98.0 * 0.97)
        assert len(z.heatmap) == 20
        assert "heavy ask pressure" in z.reasoning[0]

    def test_open_interest_boosts_every_zone(self):
        funding = analyze_funding_rate(0.0015)
        zones = build_zones(100.0, ImbalanceSignal(0.25, long_price=98.0), funding, 5_000_000.0)

        by_price = {round(z.price, 2): z for z in zones}
        assert set(by_price) == {98.0, 95.0}
        assert by_price[98.0].confidence == 50
        assert by_price[95.0].confidence == 60
        assert all("Open interest" in z.reasoning[-1] for z in zones)

    def test_zero_open_interest_adds_nothing(self):
        zones = build_zones(100.0, ImbalanceSignal(0.25, long_price=98.0), NO_FUNDING, 0.0)
        assert zones[0].confidence == 30

    def test_evidence_on_same_price_accumulates(self):
        # best bid 95 * 0.98 == current 98 * 0.95 == 93.10
        funding = analyze_funding_rate(0.003)
        zones = build_zones(98.0, ImbalanceSignal(0.2, long_price=95.0 * 0.98), funding, 1.0)

        assert len(zones) == 1
        z = zones[0]
        assert z.confidence == 90
        assert len(z.reasoning) == 3
        assert z.estimated_liquidity == pytest.approx(9.31 + 3000.0)
        # Not near, but crowded longs
        assert z.suggestion == Suggestion.SELL
        assert z.stop_loss1 == pytest.approx(z.price * 1.02)

    def test_no_evidence_no_zones(self):
        assert build_zones(100.0, None, NO_FUNDING, 1_000_000.0) == []

    def test_exchange_and_symbol_attached(self):
        zones = build_zones(
            100.0, ImbalanceSignal(0.25, long_price=98.0), NO_FUNDING, None,
            exchange="BINANCE", symbol="BTC/USDT",
        )
        assert zones[0].exchange == "BINANCE"
        assert zones[0].symbol == "BTC/USDT"


class TestMergeSimilarZones:
    """Tests for the adjacent-zone merge sweep."""

    def test_empty(self):
        assert merge_similar_zones([]) == []

    def test_single_zone_unchanged(self):
        z = zone(100.0)
        assert merge_similar_zones([z]) == [z]

    def test_same_side_within_threshold_merges(self):
        a = zone(100.0, liquidity=10.0, confidence=50.0, reasoning=["a", "shared"])
        b = zone(101.5, liquidity=5.0, confidence=70.0, reasoning=["shared", "b"])

        merged = merge_similar_zones([b, a])

        assert len(merged) == 1
        m = merged[0]
        assert m.price == pytest.approx(100.75)
        assert m.estimated_liquidity == pytest.approx(15.0)
        assert m.confidence == 70.0
        assert m.reasoning == ["a", "shared", "b"]
        assert m.stop_loss1 == pytest.approx((100.0 * 0.97 + 101.5 * 0.97) / 2)

    def test_merge_does_not_mutate_inputs(self):
        a = zone(100.0, reasoning=["a"])
        b = zone(101.0, reasoning=["b"])

        merge_similar_zones([a, b])

        assert a.price == 100.0
        assert a.reasoning == ["a"]

    def test_opposite_sides_do_not_merge(self):
        merged = merge_similar_zones([zone(100.0), zone(101.0, side=ZoneSide.SHORT)])
        assert len(merged) == 2

    def test_two_percent_apart_does_not_merge(self):
        merged = merge_similar_zones([zone(100.0), zone(102.0)])
        assert [z.price for z in merged] == [100.0, 102.0]

    def test_distance_measured_from_running_zone(self):
        # 100 + 101.5 -> 100.75; 103 is 2.23% from 100.75
        merged = merge_similar_zones([zone(103.0), zone(101.5), zone(100.0)])

        assert [round(z.price, 2) for z in merged] == [100.75, 103.0]


class TestLiquidationZoneDetector:
    """Tests for one detection cycle against a mocked provider."""

    def test_detects_from_all_sources(self):
        provider = make_provider(
            book={"bids": [[100.0, 1.0]], "asks": [[100.1, 3.0]]},
            funding=0.0005,
            open_interest=1_000_000.0,
        )
        detector = LiquidationZoneDetector(provider)

        zones = asyncio.run(detector.detect_zones("binance", "BTC/USDT"))

        assert len(zones) == 1
        assert zones[0].side == ZoneSide.LONG
        assert zones[0].price == pytest.approx(98.0)
        assert zones[0].confidence == 50
        assert zones[0].exchange == "BINANCE"
        provider.fetch_order_book.assert_awaited_once_with("binance", "BTC/USDT", 100)

    def test_missing_ticker_gives_no_zones(self):
        provider = make_provider(funding=0.005)
        provider.fetch_ticker = AsyncMock(side_effect=DataUnavailable("no ticker"))
        detector = LiquidationZoneDetector(provider)

        assert asyncio.run(detector.detect_zones("BINANCE", "BTC/USDT")) == []

    def test_ticker_connection_error_gives_no_zones(self):
        provider = make_provider(funding=0.005)
        provider.fetch_ticker = AsyncMock(side_effect=ConnectionError("reset"))
        detector = LiquidationZoneDetector(provider)

        assert asyncio.run(detector.detect_zones("BINANCE", "BTC/USDT")) == []

    def test_unparseable_ticker_price_gives_no_zones(self):
        provider = make_provider(funding=0.005)
        provider.fetch_ticker = AsyncMock(return_value={"last_price": "n/a"})
        detector = LiquidationZoneDetector(provider)

        assert asyncio.run(detector.detect_zones("BINANCE", "BTC/USDT")) == []

    def test_zero_price_gives_no_zones(self):
        provider = make_provider(funding=0.005, price=0.0)
        detector = LiquidationZoneDetector(provider)

        assert asyncio.run(detector.detect_zones("BINANCE", "BTC/USDT")) == []

    def test_failed_source_degrades(self):
        provider = make_provider(funding=0.002, open_interest=10.0)
        provider.fetch_order_book = AsyncMock(side_effect=DataUnavailable("book down"))
        detector = LiquidationZoneDetector(provider)

        zones = asyncio.run(detector.detect_zones("BINANCE", "BTC/USDT"))

        assert len(zones) == 1
        assert zones[0].price == pytest.approx(95.0)
        assert zones[0].confidence == 60

    def test_slow_source_times_out(self):
        async def slow_book(*args):
            await asyncio.sleep(1)
            return {"bids": [[100.0, 1.0]], "asks": [[100.1, 3.0]]}

        provider = make_provider(funding=-0.002)
        provider.fetch_order_book = slow_book
        detector = LiquidationZoneDetector(provider, timeout=0.01)

        zones = asyncio.run(detector.detect_zones("BINANCE", "BTC/USDT"))

        assert len(zones) == 1
        assert zones[0].side == ZoneSide.SHORT
        assert zones[0].price == pytest.approx(105.0)

    def test_invalid_exchange_rejected(self):
        detector = LiquidationZoneDetector(make_provider())

        with pytest.raises(InvalidParameter):
            asyncio.run(detector.detect_zones("NOTANEXCHANGE", "BTC/USDT"))

    def test_invalid_symbol_rejected(self):
        detector = LiquidationZoneDetector(make_provider())

        with pytest.raises(InvalidParameter):
            asyncio.run(detector.detect_zones("BINANCE", "BTCUSDT"))
