#!/usr/bin/env python3
"""Simple moving averages over daily closes.

Provides:
- Fixed-window SMA with None until the window is full
- Enrichment of PriceBars with SMA_20 / SMA_50
- Filtering to bars where both averages exist (the scan series)
"""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from sma_backtest.price_loader import PriceBar

logger = logging.getLogger(__name__)

SHORT_PERIOD = 20
LONG_PERIOD = 50


def compute_sma(closes: Sequence[float], period: int) -> List[Optional[float]]:
    """Trailing arithmetic mean of ``period`` closes, rounded to 2 decimals.

    Output has the same length as ``closes``; indices < period - 1 are None.
    """
    if period < 1:
        raise ValueError(f"SMA period must be >= 1, got {period}")

    result: List[Optional[float]] = []
    for i in range(len(closes)):
        if i < period - 1:
            result.append(None)
        else:
            window_sum = sum(closes[j] for j in range(i - period + 1, i + 1))
            result.append(round(window_sum / period, 2))
    return result


def enrich_with_smas(
    bars: List[PriceBar],
    short_period: int = SHORT_PERIOD,
    long_period: int = LONG_PERIOD,
) -> List[PriceBar]:
    """Return copies of ``bars`` carrying freshly computed sma20 / sma50."""
    closes = [b.close for b in bars]
    short = compute_sma(closes, short_period)
    long_ = compute_sma(closes, long_period)
    enriched = [replace(b, sma20=s, sma50=l) for b, s, l in zip(bars, short, long_)]
    logger.debug(
        f"SMA({short_period})/SMA({long_period}) computed for {len(enriched)} bars, "
        f"{sum(1 for b in enriched if b.has_smas)} complete"
    )
    return enriched


def filter_complete(bars: List[PriceBar]) -> List[PriceBar]:
    """Bars where both averages are present. A 0.0 average is a real value."""
    return [b for b in bars if b.has_smas]
