#!/usr/bin/env python3
"""
Trade simulator for the SMA trend-following backtest.

Walks forward from each signal bar:
- Entry at the next bar's open, rejected if below the signal bar's SMA_20/open/close
- Initial stop at the signal bar's SMA_20, target at 2x risk
- Trailing stop follows SMA_20, never against the trade
- Close-based stop/target triggers, filled at the following bar's open
- Forced exit at the last bar's close when data runs out
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

from sma_backtest.price_loader import PriceBar
from sma_backtest.signal_detector import BULLISH, BEARISH, Signal

logger = logging.getLogger(__name__)

PROFIT = "Profit"
LOSS = "Loss"


@dataclass(frozen=True)
class TradeResult:
    signal_date: Any
    direction: str  # "Bullish" | "Bearish"
    entry_date: Any
    entry_price: float  # Open of the bar after the signal
    initial_stop_loss: float  # Signal bar SMA_20
    target_price: float
    exit_date: Any
    exit_price: float
    trade_days: int  # Bars walked, entry bar included
    outcome: str  # "Profit" | "Loss"
    pnl: float  # Points, signed in the trade's favour
    pnl_pct: float
    exit_reason: str  # "stop_loss" | "target" | "end_of_data"
    final_stop_loss: float
    stop_trail: Tuple[float, ...] = ()  # Stop level after each walked bar


@dataclass
class SkippedSignal:
    signal_date: Any
    direction: str
    skip_reason: str  # "no_entry_bar" | "entry_rejected" | "unresolved_exit"


class TradeSimulator:
    """Simulate one trade per signal with a trailing SMA_20 stop."""

    VALID_PENDING_EXIT_MODES = ("last_close", "skip")
    VALID_DIRECTIONS = (BULLISH, BEARISH)

    def __init__(self, reward_multiple: float = 2.0, pending_exit_mode: str = "last_close"):
        if reward_multiple <= 0:
            raise ValueError(f"reward_multiple must be > 0, got {reward_multiple}")
        if pending_exit_mode not in self.VALID_PENDING_EXIT_MODES:
            raise ValueError(
                f"Invalid pending_exit_mode: {pending_exit_mode}. "
                f"Must be one of {self.VALID_PENDING_EXIT_MODES}"
            )
        self.reward_multiple = reward_multiple
        self.pending_exit_mode = pending_exit_mode

    def simulate_all(
        self, bars: List[PriceBar], signals: List[Signal]
    ) -> Tuple[List[TradeResult], List[SkippedSignal]]:
        """Simulate every signal independently.

        Args:
            bars: Complete-SMA series the signals were scanned on
            signals: Output of SignalDetector.scan

        Returns:
            (trade_results, skipped_signals)
        """
        trades = []
        skipped = []
        for signal in signals:
            result = self.simulate(bars, signal)
            if isinstance(result, TradeResult):
                trades.append(result)
            else:
                skipped.append(result)

        logger.info(
            f"Simulated {len(trades)} trades, skipped {len(skipped)} "
            f"({self._skip_summary(skipped)})"
        )
        return trades, skipped

    def simulate(
        self, bars: List[PriceBar], signal: Signal
    ) -> Union[TradeResult, SkippedSignal]:
        """Simulate a single trade from ``signal``."""
        if signal.direction not in self.VALID_DIRECTIONS:
            raise ValueError(f"Invalid direction: {signal.direction}")

        bullish = signal.direction == BULLISH
        s = signal.index

        if s + 1 >= len(bars):
            return SkippedSignal(signal.date, signal.direction, "no_entry_bar")

        signal_bar = bars[s]
        entry_bar = bars[s + 1]
        entry_price = entry_bar.open
        initial_stop = signal_bar.sma20

        if self._entry_rejected(signal_bar, entry_price, bullish):
            logger.debug(
                f"{signal.direction} {signal.date}: entry {entry_price} rejected "
                f"(sma20={signal_bar.sma20}, open={signal_bar.open}, close={signal_bar.close})"
            )
            return SkippedSignal(signal.date, signal.direction, "entry_rejected")

        risk = abs(entry_price - initial_stop)
        if bullish:
            target_price = entry_price + risk * self.reward_multiple
        else:
            target_price = entry_price - risk * self.reward_multiple

        stop = initial_stop
        trail: List[float] = []
        trade_days = 0
        exit_date = None
        exit_price = None
        exit_reason = None

        for i in range(s + 1, len(bars)):
            bar = bars[i]
            trade_days += 1

            # Trailing stop only ratchets in the trade's favour
            if bullish and bar.sma20 > stop:
                stop = bar.sma20
            elif not bullish and bar.sma20 < stop:
                stop = bar.sma20
            trail.append(stop)

            # Stop is checked before target on the same bar
            triggered = None
            if (bullish and bar.close <= stop) or (not bullish and bar.close >= stop):
                triggered = "stop_loss"
            elif (bullish and bar.close >= target_price) or (
                not bullish and bar.close <= target_price
            ):
                triggered = "target"

            if triggered is not None:
                if i + 1 < len(bars):
                    exit_date = bars[i + 1].date
                    exit_price = bars[i + 1].open
                elif self.pending_exit_mode == "skip":
                    logger.debug(
                        f"{signal.direction} {signal.date}: {triggered} on last bar {bar.date}, "
                        "no next open, dropped"
                    )
                    return SkippedSignal(signal.date, signal.direction, "unresolved_exit")
                else:
                    exit_date = bar.date
                    exit_price = bar.close
                    logger.debug(
                        f"{signal.direction} {signal.date}: {triggered} on last bar {bar.date}, "
                        f"filled at close {exit_price}"
                    )
                exit_reason = triggered
                break

            if i == len(bars) - 1:
                exit_date = bar.date
                exit_price = bar.close
                exit_reason = "end_of_data"

        if exit_price is None:
            return SkippedSignal(signal.date, signal.direction, "unresolved_exit")

        pnl = exit_price - entry_price if bullish else entry_price - exit_price
        outcome = PROFIT if pnl > 0 else LOSS

        logger.debug(
            f"{signal.direction} {signal.date}: {exit_reason} at {exit_date}, "
            f"entry={entry_price} exit={exit_price} days={trade_days} {outcome}"
        )

        return TradeResult(
            signal_date=signal.date,
            direction=signal.direction,
            entry_date=entry_bar.date,
            entry_price=entry_price,
            initial_stop_loss=initial_stop,
            target_price=target_price,
            exit_date=exit_date,
            exit_price=exit_price,
            trade_days=trade_days,
            outcome=outcome,
            pnl=pnl,
            pnl_pct=pnl / entry_price * 100,
            exit_reason=exit_reason,
            final_stop_loss=stop,
            stop_trail=tuple(trail),
        )

    @staticmethod
    def _entry_rejected(signal_bar: PriceBar, entry_price: float, bullish: bool) -> bool:
        """Long entries must open at or above the signal bar's SMA_20, open and close.

        Short entries are mirrored: at or below all three.
        """
        levels = (signal_bar.sma20, signal_bar.open, signal_bar.close)
        if bullish:
            return any(entry_price < level for level in levels)
        return any(entry_price > level for level in levels)

    @staticmethod
    def _skip_summary(skipped: List[SkippedSignal]) -> str:
        reasons: Dict[str, int] = {}
        for s in skipped:
            reasons[s.skip_reason] = reasons.get(s.skip_reason, 0) + 1
        return ", ".join(f"{reason}: {count}" for reason, count in sorted(reasons.items()))
