#!/usr/bin/env python3
"""Backtest configuration: strategy parameters plus input/output paths."""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from sma_backtest.trade_simulator import TradeSimulator

logger = logging.getLogger(__name__)

DEFAULT_INPUT_PATH = "files/NIFTY_50_Feb_2015_to_March_2025.xlsx"
DEFAULT_OUTPUT_PATH = "files/BULLISH_SMA_TRADE_STATS.txt"
DEFAULT_ENRICHED_SHEET = "NIFTY50_with_SMA"

INPUT_ENV = "SMA_BACKTEST_INPUT"
OUTPUT_ENV = "SMA_BACKTEST_OUTPUT"


@dataclass(frozen=True)
class BacktestConfig:
    """Frozen parameters for one backtest run."""

    # Moving averages
    short_period: int = 20
    long_period: int = 50

    # Signal proximity bands (% distance of close from SMA_20)
    bullish_max_diff_pct: float = 1.5
    bearish_min_diff_pct: float = 1.0
    bearish_max_diff_pct: float = 1.5
    include_bullish: bool = True
    include_bearish: bool = False

    # Trade management
    reward_multiple: float = 2.0
    pending_exit_mode: str = "last_close"

    # Report
    report_title: str = "NIFTY 50"
    include_signal_dates: bool = False

    # Paths
    input_path: str = DEFAULT_INPUT_PATH
    source_sheet: Optional[str] = None  # None = first sheet
    enriched_sheet: str = DEFAULT_ENRICHED_SHEET
    output_path: str = DEFAULT_OUTPUT_PATH

    def __post_init__(self) -> None:
        if self.short_period < 1 or self.long_period < 1:
            raise ValueError(
                f"SMA periods must be >= 1, got {self.short_period}/{self.long_period}"
            )
        if not self.include_bullish and not self.include_bearish:
            raise ValueError("At least one of include_bullish / include_bearish must be enabled")
        if self.bullish_max_diff_pct < 0:
            raise ValueError(f"bullish_max_diff_pct must be >= 0, got {self.bullish_max_diff_pct}")
        if not 0 <= self.bearish_min_diff_pct <= self.bearish_max_diff_pct:
            raise ValueError(
                f"Invalid bearish band: {self.bearish_min_diff_pct}-{self.bearish_max_diff_pct}"
            )
        if self.reward_multiple <= 0:
            raise ValueError(f"reward_multiple must be > 0, got {self.reward_multiple}")
        if self.pending_exit_mode not in TradeSimulator.VALID_PENDING_EXIT_MODES:
            raise ValueError(
                f"Invalid pending_exit_mode: {self.pending_exit_mode}. "
                f"Must be one of {TradeSimulator.VALID_PENDING_EXIT_MODES}"
            )

    def as_dict(self) -> dict:
        return dict(self.__dict__)


def resolve_paths(
    input_path: Optional[str] = None, output_path: Optional[str] = None
) -> Tuple[str, str]:
    """Resolve paths: explicit argument -> .env / env var -> built-in default."""
    from dotenv import load_dotenv

    load_dotenv()
    resolved_input = input_path or os.getenv(INPUT_ENV) or DEFAULT_INPUT_PATH
    resolved_output = output_path or os.getenv(OUTPUT_ENV) or DEFAULT_OUTPUT_PATH
    if not input_path and os.getenv(INPUT_ENV):
        logger.info("Input path from %s: %s", INPUT_ENV, resolved_input)
    if not output_path and os.getenv(OUTPUT_ENV):
        logger.info("Output path from %s: %s", OUTPUT_ENV, resolved_output)
    return resolved_input, resolved_output
