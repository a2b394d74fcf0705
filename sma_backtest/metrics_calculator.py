#!/usr/bin/env python3
"""
Summary statistics for the SMA backtest.

Computes:
- Trade counts and Profit / Loss percentages
- Average P/L % over profitable and loss-making trades
- Average trade duration overall and per outcome
- Exit reason and skip reason breakdowns

Values are left unrounded; formatting happens in the report.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from sma_backtest.trade_simulator import LOSS, PROFIT, SkippedSignal, TradeResult


@dataclass
class BacktestMetrics:
    total_trades: int
    profitable_trades: int
    loss_making_trades: int
    pct_profitable: float
    pct_loss_making: float
    avg_profit_pct: float  # Mean pnl_pct of Profit trades
    avg_loss_pct: float  # Mean pnl_pct of Loss trades (negative or zero)
    avg_trade_days: float
    avg_profitable_trade_days: float
    avg_loss_making_trade_days: float
    total_pnl_pct: float = 0.0

    # Signal bookkeeping
    total_signals: int = 0
    total_skipped: int = 0
    skip_reasons: Dict[str, int] = field(default_factory=dict)
    exit_reasons: Dict[str, int] = field(default_factory=dict)


def _mean(values: List[float]) -> float:
    """Mean of ``values``; 0.0 for an empty list."""
    if not values:
        return 0.0
    return float(np.mean(values))


class MetricsCalculator:
    """Reduce trade results into a BacktestMetrics summary."""

    def calculate(
        self,
        trades: List[TradeResult],
        skipped: Sequence[SkippedSignal] = (),
    ) -> BacktestMetrics:
        if not trades:
            return self._empty_metrics(skipped)

        total = len(trades)
        profits = [t for t in trades if t.outcome == PROFIT]
        losses = [t for t in trades if t.outcome == LOSS]

        return BacktestMetrics(
            total_trades=total,
            profitable_trades=len(profits),
            loss_making_trades=len(losses),
            pct_profitable=len(profits) / total * 100,
            pct_loss_making=len(losses) / total * 100,
            avg_profit_pct=_mean([t.pnl_pct for t in profits]),
            avg_loss_pct=_mean([t.pnl_pct for t in losses]),
            avg_trade_days=_mean([t.trade_days for t in trades]),
            avg_profitable_trade_days=_mean([t.trade_days for t in profits]),
            avg_loss_making_trade_days=_mean([t.trade_days for t in losses]),
            total_pnl_pct=float(np.sum([t.pnl_pct for t in trades])),
            total_signals=total + len(skipped),
            total_skipped=len(skipped),
            skip_reasons=self._breakdown(s.skip_reason for s in skipped),
            exit_reasons=self._breakdown(t.exit_reason for t in trades),
        )

    @staticmethod
    def _breakdown(keys) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for k in keys:
            counts[k] = counts.get(k, 0) + 1
        return counts

    def _empty_metrics(self, skipped: Sequence[SkippedSignal]) -> BacktestMetrics:
        """All-zero metrics when no trade was emitted."""
        return BacktestMetrics(
            total_trades=0,
            profitable_trades=0,
            loss_making_trades=0,
            pct_profitable=0.0,
            pct_loss_making=0.0,
            avg_profit_pct=0.0,
            avg_loss_pct=0.0,
            avg_trade_days=0.0,
            avg_profitable_trade_days=0.0,
            avg_loss_making_trade_days=0.0,
            total_pnl_pct=0.0,
            total_signals=len(skipped),
            total_skipped=len(skipped),
            skip_reasons=self._breakdown(s.skip_reason for s in skipped),
            exit_reasons={},
        )
