#!/usr/bin/env python3
"""Unit tests for bullish / bearish setup detection."""

import pytest

from sma_backtest.price_loader import PriceBar
from sma_backtest.signal_detector import BEARISH, BULLISH, Signal, SignalDetector


def make_bar(date, open_p, close, sma20, sma50):
    return PriceBar(
        date=date,
        open=open_p,
        high=max(open_p, close),
        low=min(open_p, close),
        close=close,
        sma20=sma20,
        sma50=sma50,
    )


def bullish_series(signal_open=100.0, signal_close=103.0, sma20=None, sma50=None):
    """Six bars, rising averages, candidate signal at index 4."""
    sma20 = sma20 or [99.0, 100.0, 100.5, 101.0, 102.0, 102.5]
    sma50 = sma50 or [95.0, 95.5, 96.0, 96.5, 97.0, 97.5]
    bars = []
    for i in range(6):
        # Flat candles on the average never satisfy the price condition
        bars.append(make_bar(45000 + i, sma20[i], sma20[i], sma20[i], sma50[i]))
    bars[4] = make_bar(45004, signal_open, signal_close, sma20[4], sma50[4])
    return bars


def bearish_series(signal_open=99.0, signal_close=96.9):
    """Six bars, falling averages, candidate signal at index 4."""
    sma20 = [101.0, 100.0, 99.5, 99.0, 98.0, 97.5]
    sma50 = [105.0, 104.5, 104.0, 103.5, 103.0, 102.5]
    bars = [make_bar(45000 + i, sma20[i], sma20[i], sma20[i], sma50[i]) for i in range(6)]
    bars[4] = make_bar(45004, signal_open, signal_close, sma20[4], sma50[4])
    return bars


@pytest.fixture
def detector():
    return SignalDetector()


class TestBullishSetup:
    """Bullish predicate at a single index."""

    def test_close_too_far_from_sma20(self, detector):
        # |105 - 102| / 102 = 2.94% > 1.5%
        bars = bullish_series(signal_open=100.0, signal_close=105.0)
        assert detector.is_bullish_setup(bars, 4) is False
        assert detector.scan(bars) == []

    def test_cross_above_sma20_within_band(self, detector):
        # |103 - 102| / 102 = 0.98%
        bars = bullish_series(signal_open=100.0, signal_close=103.0)
        assert detector.is_bullish_setup(bars, 4) is True
        assert detector.scan(bars) == [Signal(index=4, date=45004, direction=BULLISH)]

    def test_open_above_sma20_and_green_candle(self, detector):
        bars = bullish_series(signal_open=102.5, signal_close=103.0)
        assert detector.is_bullish_setup(bars, 4) is True

    def test_open_above_sma20_and_red_candle(self, detector):
        bars = bullish_series(signal_open=103.0, signal_close=102.5)
        assert detector.is_bullish_setup(bars, 4) is False

    def test_close_below_sma20(self, detector):
        bars = bullish_series(signal_open=100.0, signal_close=101.5)
        assert detector.is_bullish_setup(bars, 4) is False

    def test_sma20_flat_day_breaks_rise(self, detector):
        bars = bullish_series(sma20=[99.0, 100.0, 101.0, 101.0, 102.0, 102.5])
        assert detector.is_bullish_setup(bars, 4) is False

    def test_sma50_not_rising(self, detector):
        bars = bullish_series(sma50=[95.0, 95.5, 95.4, 96.5, 97.0, 97.5])
        assert detector.is_bullish_setup(bars, 4) is False

    def test_sma20_below_sma50(self, detector):
        bars = bullish_series(sma50=[100.0, 100.5, 101.0, 101.5, 102.5, 103.0])
        assert detector.is_bullish_setup(bars, 4) is False

    def test_band_edges(self, detector):
        # 103.5 -> 1.47% in band; 103.6 -> 1.57% out of band
        assert detector.is_bullish_setup(bullish_series(100.0, 103.5), 4) is True
        assert detector.is_bullish_setup(bullish_series(100.0, 103.6), 4) is False

    def test_custom_band(self):
        wide = SignalDetector(bullish_max_diff_pct=3.0)
        assert wide.is_bullish_setup(bullish_series(100.0, 105.0), 4) is True


class TestBearishSetup:
    """Bearish predicate mirrors bullish with a 1.0-1.5% band."""

    def test_within_band(self, detector):
        # |96.9 - 98| / 98 = 1.12%
        bars = bearish_series(signal_open=99.0, signal_close=96.9)
        assert detector.is_bearish_setup(bars, 4) is True

    def test_too_close_to_sma20(self, detector):
        # |97.5 - 98| / 98 = 0.51%, inside the bullish band but not the bearish one
        bars = bearish_series(signal_open=99.0, signal_close=97.5)
        assert detector.is_bearish_setup(bars, 4) is False

    def test_too_far_from_sma20(self, detector):
        bars = bearish_series(signal_open=99.0, signal_close=96.0)
        assert detector.is_bearish_setup(bars, 4) is False

    def test_open_below_sma20_and_red_candle(self, detector):
        bars = bearish_series(signal_open=97.5, signal_close=96.9)
        assert detector.is_bearish_setup(bars, 4) is True

    def test_bullish_series_is_not_bearish(self, detector):
        assert detector.is_bearish_setup(bullish_series(), 4) is False


class TestScan:
    """Scanning range and direction switches."""

    def test_bearish_disabled_by_default(self, detector):
        assert detector.scan(bearish_series()) == []

    def test_bearish_enabled(self):
        detector = SignalDetector(include_bearish=True)
        assert detector.scan(bearish_series()) == [Signal(index=4, date=45004, direction=BEARISH)]

    def test_bearish_only_ignores_bullish(self):
        detector = SignalDetector(include_bullish=False, include_bearish=True)
        assert detector.scan(bullish_series()) == []

    def test_last_bar_never_scanned(self, detector):
        # Same setup, but index 4 is now the final bar
        bars = bullish_series()[:5]
        assert detector.is_bullish_setup(bars, 4) is True
        assert detector.scan(bars) == []

    def test_too_short_series(self, detector):
        assert detector.scan(bullish_series()[:4]) == []
        assert detector.scan([]) == []

    def test_consecutive_signals_not_debounced(self, detector):
        sma20 = [99.0, 100.0, 100.5, 101.0, 102.0, 102.5, 103.0]
        sma50 = [95.0, 95.5, 96.0, 96.5, 97.0, 97.5, 98.0]
        bars = [make_bar(i, sma20[i], sma20[i], sma20[i], sma50[i]) for i in range(7)]
        bars[4] = make_bar(4, 100.0, 103.0, 102.0, 97.0)
        bars[5] = make_bar(5, 102.0, 103.5, 102.5, 97.5)
        assert [s.index for s in detector.scan(bars)] == [4, 5]


class TestDetectorValidation:
    def test_no_direction_enabled(self):
        with pytest.raises(ValueError):
            SignalDetector(include_bullish=False, include_bearish=False)

    def test_inverted_bearish_band(self):
        with pytest.raises(ValueError):
            SignalDetector(bearish_min_diff_pct=2.0, bearish_max_diff_pct=1.5)

    def test_negative_bullish_band(self):
        with pytest.raises(ValueError):
            SignalDetector(bullish_max_diff_pct=-1.0)
