#!/usr/bin/env python3
"""
SMA Trend Backtest - Main Entry Point

Loads daily OHLC data, adds SMA_20 / SMA_50 (written back as a sheet),
scans for SMA trend setups, simulates trades and writes a text report.

Usage:
    python -m sma_backtest.main --input files/NIFTY_50.xlsx --output files/BULLISH_SMA_TRADE_STATS.txt
"""

import argparse
import logging
import sys

from sma_backtest.config import DEFAULT_ENRICHED_SHEET, BacktestConfig, resolve_paths
from sma_backtest.indicators import enrich_with_smas, filter_complete
from sma_backtest.metrics_calculator import MetricsCalculator
from sma_backtest.price_loader import PriceDataError, load_price_bars, write_enriched_sheet
from sma_backtest.report_generator import ReportGenerator
from sma_backtest.signal_detector import SignalDetector
from sma_backtest.trade_simulator import TradeSimulator

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="SMA Trend-Following Backtest",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--input", default=None, help="Price workbook or CSV (default: $SMA_BACKTEST_INPUT)"
    )
    parser.add_argument(
        "--source-sheet", default=None, help="Sheet with raw OHLC data (default: first sheet)"
    )
    parser.add_argument(
        "--sheet", default=DEFAULT_ENRICHED_SHEET, help="Sheet name for the SMA-enriched data"
    )
    parser.add_argument(
        "--output", default=None, help="Text report path (default: $SMA_BACKTEST_OUTPUT)"
    )
    parser.add_argument(
        "--from-enriched",
        action="store_true",
        help="Read --sheet (already carrying SMA_20/SMA_50) instead of recomputing",
    )
    parser.add_argument(
        "--skip-write-enriched",
        action="store_true",
        help="Do not write the SMA-enriched sheet back to the input file",
    )
    parser.add_argument("--include-bearish", action="store_true", help="Also trade bearish setups")
    parser.add_argument("--bearish-only", action="store_true", help="Trade bearish setups only")
    parser.add_argument("--short-period", type=int, default=20, help="Short SMA period")
    parser.add_argument("--long-period", type=int, default=50, help="Long SMA period")
    parser.add_argument(
        "--reward-multiple", type=float, default=2.0, help="Target distance as a multiple of risk"
    )
    parser.add_argument(
        "--pending-exit",
        default="last_close",
        choices=list(TradeSimulator.VALID_PENDING_EXIT_MODES),
        help="Stop/target hit on the final bar: last_close (fill at its close) or skip (drop trade)",
    )
    parser.add_argument(
        "--signal-dates", action="store_true", help="List signal dates in the text report"
    )
    parser.add_argument("--title", default="NIFTY 50", help="Instrument name for the report header")
    parser.add_argument("--csv", default=None, help="Also write trades to this CSV path")
    parser.add_argument("--html", default=None, help="Also write an HTML report to this path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser.parse_args(argv)


def validate_args(args) -> None:
    """Validate CLI arguments. Exits with code 2 on invalid input."""
    errors = []

    if args.short_period < 1:
        errors.append(f"--short-period must be >= 1, got {args.short_period}")
    if args.long_period < 1:
        errors.append(f"--long-period must be >= 1, got {args.long_period}")
    if args.short_period >= 1 and args.long_period >= 1 and args.short_period >= args.long_period:
        errors.append(
            f"--short-period ({args.short_period}) must be < --long-period ({args.long_period})"
        )
    if args.reward_multiple <= 0:
        errors.append(f"--reward-multiple must be > 0, got {args.reward_multiple}")
    if args.include_bearish and args.bearish_only:
        errors.append("--include-bearish and --bearish-only are mutually exclusive")
    if args.from_enriched and args.source_sheet is not None:
        errors.append("--source-sheet cannot be combined with --from-enriched")
    if not args.sheet:
        errors.append("--sheet must not be empty")

    if errors:
        for e in errors:
            print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_config(args) -> BacktestConfig:
    input_path, output_path = resolve_paths(args.input, args.output)
    return BacktestConfig(
        short_period=args.short_period,
        long_period=args.long_period,
        include_bullish=not args.bearish_only,
        include_bearish=args.include_bearish or args.bearish_only,
        reward_multiple=args.reward_multiple,
        pending_exit_mode=args.pending_exit,
        report_title=args.title,
        include_signal_dates=args.signal_dates,
        input_path=input_path,
        source_sheet=args.source_sheet,
        enriched_sheet=args.sheet,
        output_path=output_path,
    )


def _fail(stage: str, err: Exception):
    logger.error(f"{stage} failed: {err}")
    sys.exit(1)


def _banner(title: str):
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run(config: BacktestConfig, write_enriched: bool = True, from_enriched: bool = False,
        csv_path=None, html_path=None):
    # Step 1: Load price data
    _banner("Step 1: Loading price data")
    try:
        if from_enriched:
            bars = load_price_bars(config.input_path, config.enriched_sheet)
        else:
            bars = load_price_bars(config.input_path, config.source_sheet)
    except (PriceDataError, OSError) as e:
        _fail("Loading price data", e)

    # Step 2: Moving averages
    _banner("Step 2: Computing moving averages")
    if from_enriched and any(b.has_smas for b in bars):
        logger.info(f"Using SMA columns from sheet '{config.enriched_sheet}'")
    else:
        if from_enriched:
            logger.warning(f"Sheet '{config.enriched_sheet}' has no SMA values, recomputing")
        bars = enrich_with_smas(bars, config.short_period, config.long_period)
        if write_enriched:
            try:
                write_enriched_sheet(bars, config.input_path, config.enriched_sheet)
            except (PriceDataError, OSError) as e:
                _fail("Writing enriched sheet", e)

    series = filter_complete(bars)
    logger.info(f"{len(series)} of {len(bars)} bars carry both averages")

    # Step 3: Signals
    _banner("Step 3: Scanning for signals")
    detector = SignalDetector(
        bullish_max_diff_pct=config.bullish_max_diff_pct,
        bearish_min_diff_pct=config.bearish_min_diff_pct,
        bearish_max_diff_pct=config.bearish_max_diff_pct,
        include_bullish=config.include_bullish,
        include_bearish=config.include_bearish,
    )
    signals = detector.scan(series)

    # Step 4: Trades
    _banner("Step 4: Simulating trades")
    simulator = TradeSimulator(
        reward_multiple=config.reward_multiple,
        pending_exit_mode=config.pending_exit_mode,
    )
    trades, skipped = simulator.simulate_all(series, signals)

    # Step 5: Statistics
    _banner("Step 5: Calculating statistics")
    metrics = MetricsCalculator().calculate(trades, skipped)

    # Step 6: Reports
    _banner("Step 6: Writing reports")
    generator = ReportGenerator(
        title=config.report_title,
        include_signal_dates=config.include_signal_dates,
        include_bullish=config.include_bullish,
        include_bearish=config.include_bearish,
    )
    text = generator.render_text(metrics, trades, signals)
    try:
        generator.write_text_report(text, config.output_path)
        if csv_path:
            generator.write_trades_csv(trades, csv_path)
        if html_path:
            generator.write_html_report(metrics, trades, html_path)
    except OSError as e:
        _fail("Writing report", e)

    _banner("BACKTEST COMPLETE")
    logger.info(f"Signals: {len(signals)} (skipped {metrics.total_skipped})")
    logger.info(f"Total Trades: {metrics.total_trades}")
    logger.info(f"Profitable: {metrics.pct_profitable:.2f}%")
    logger.info(f"Avg Profit: {metrics.avg_profit_pct:.2f}% | Avg Loss: {metrics.avg_loss_pct:.2f}%")
    logger.info(f"Report: {config.output_path}")
    return metrics


def main(argv=None):
    args = parse_args(argv)
    validate_args(args)
    setup_logging(args.verbose)

    config = build_config(args)
    run(
        config,
        write_enriched=not args.skip_write_enriched,
        from_enriched=args.from_enriched,
        csv_path=args.csv,
        html_path=args.html,
    )


if __name__ == "__main__":
    main()
