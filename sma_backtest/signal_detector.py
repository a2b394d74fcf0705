#!/usr/bin/env python3
"""
Signal detector for the SMA trend-following backtest.

Bullish setup at bar i (all required):
- SMA_20 and SMA_50 each rose on three consecutive days (i-3 .. i)
- SMA_20 above SMA_50
- Open below SMA_20 and close above it, or open above SMA_20 and close above open
- Close within 1.5% of SMA_20

Bearish setup mirrors every condition, except the proximity band which is
1.0% to 1.5% rather than 0% to 1.5%.
"""

import logging
from dataclasses import dataclass
from typing import Any, List

from sma_backtest.price_loader import PriceBar

logger = logging.getLogger(__name__)

BULLISH = "Bullish"
BEARISH = "Bearish"

LOOKBACK = 3  # bars of SMA history required before a signal bar


@dataclass(frozen=True)
class Signal:
    index: int  # Position in the filtered (complete-SMA) series
    date: Any
    direction: str  # BULLISH | BEARISH


def _diff_pct(bar: PriceBar) -> float:
    if bar.sma20 == 0:
        return float("inf")
    return abs((bar.close - bar.sma20) / bar.sma20) * 100


class SignalDetector:
    """Scan a complete-SMA series for bullish and/or bearish setups."""

    def __init__(
        self,
        bullish_max_diff_pct: float = 1.5,
        bearish_min_diff_pct: float = 1.0,
        bearish_max_diff_pct: float = 1.5,
        include_bullish: bool = True,
        include_bearish: bool = False,
    ):
        if not include_bullish and not include_bearish:
            raise ValueError("At least one of include_bullish / include_bearish must be enabled")
        if bullish_max_diff_pct < 0:
            raise ValueError(f"bullish_max_diff_pct must be >= 0, got {bullish_max_diff_pct}")
        if bearish_min_diff_pct < 0 or bearish_min_diff_pct > bearish_max_diff_pct:
            raise ValueError(
                f"Invalid bearish band: {bearish_min_diff_pct}-{bearish_max_diff_pct}"
            )

        self.bullish_max_diff_pct = bullish_max_diff_pct
        self.bearish_min_diff_pct = bearish_min_diff_pct
        self.bearish_max_diff_pct = bearish_max_diff_pct
        self.include_bullish = include_bullish
        self.include_bearish = include_bearish

    def is_bullish_setup(self, bars: List[PriceBar], i: int) -> bool:
        cur = bars[i]
        sma20_rising = all(bars[j].sma20 > bars[j - 1].sma20 for j in range(i - 2, i + 1))
        sma50_rising = all(bars[j].sma50 > bars[j - 1].sma50 for j in range(i - 2, i + 1))
        sma20_above_sma50 = cur.sma20 > cur.sma50

        price_condition = (cur.open < cur.sma20 and cur.close > cur.sma20) or (
            cur.open > cur.sma20 and cur.close > cur.open
        )
        close_near_sma20 = _diff_pct(cur) <= self.bullish_max_diff_pct

        return (
            sma20_rising
            and sma50_rising
            and sma20_above_sma50
            and price_condition
            and close_near_sma20
        )

    def is_bearish_setup(self, bars: List[PriceBar], i: int) -> bool:
        cur = bars[i]
        sma20_falling = all(bars[j].sma20 < bars[j - 1].sma20 for j in range(i - 2, i + 1))
        sma50_falling = all(bars[j].sma50 < bars[j - 1].sma50 for j in range(i - 2, i + 1))
        sma20_below_sma50 = cur.sma20 < cur.sma50

        price_condition = (cur.open > cur.sma20 and cur.close < cur.sma20) or (
            cur.open < cur.sma20 and cur.close < cur.open
        )
        diff = _diff_pct(cur)
        close_near_sma20 = self.bearish_min_diff_pct <= diff <= self.bearish_max_diff_pct

        return (
            sma20_falling
            and sma50_falling
            and sma20_below_sma50
            and price_condition
            and close_near_sma20
        )

    def scan(self, bars: List[PriceBar]) -> List[Signal]:
        """Signals in index order over LOOKBACK .. len(bars) - 2.

        The last bar is never a signal bar: entry needs the following open.
        """
        signals: List[Signal] = []
        for i in range(LOOKBACK, len(bars) - 1):
            if self.include_bullish and self.is_bullish_setup(bars, i):
                signals.append(Signal(index=i, date=bars[i].date, direction=BULLISH))
            if self.include_bearish and self.is_bearish_setup(bars, i):
                signals.append(Signal(index=i, date=bars[i].date, direction=BEARISH))

        logger.info(
            f"Scanned {max(len(bars) - LOOKBACK - 1, 0)} bars: "
            f"{sum(1 for s in signals if s.direction == BULLISH)} bullish, "
            f"{sum(1 for s in signals if s.direction == BEARISH)} bearish signals"
        )
        return signals
