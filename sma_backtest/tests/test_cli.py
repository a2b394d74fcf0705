#!/usr/bin/env python3
"""CLI validation and end-to-end pipeline tests."""

import subprocess
import sys
from pathlib import Path

import pytest

from sma_backtest.config import INPUT_ENV, OUTPUT_ENV, BacktestConfig, resolve_paths
from sma_backtest.main import main

ROOT = Path(__file__).resolve().parent.parent.parent

# Serial 45292 = 01-Jan-24; bullish signal on row 4, target hit on row 6
ENRICHED_ROWS = [
    # open, close, sma20, sma50
    (99.0, 99.0, 99.0, 95.0),
    (100.0, 100.0, 100.0, 95.5),
    (100.5, 100.5, 100.5, 96.0),
    (101.0, 101.0, 101.0, 96.5),
    (100.0, 103.0, 102.0, 97.0),
    (103.5, 103.4, 102.5, 97.5),
    (103.5, 107.0, 103.0, 98.0),
    (108.0, 108.5, 103.5, 98.5),
]


def write_enriched_csv(path: Path) -> Path:
    lines = ["Date,Open,High,Low,Close,SMA_20,SMA_50"]
    for i, (o, c, s20, s50) in enumerate(ENRICHED_ROWS):
        lines.append(f"{45292 + i},{o},{max(o, c)},{min(o, c)},{c},{s20},{s50}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_raw_csv(path: Path, n: int = 70) -> Path:
    lines = ["Date,Open,High,Low,Close"]
    for i in range(n):
        close = 100 + i * 0.5 + (1.5 if i % 4 == 0 else 0.0)
        lines.append(f"{45292 + i},{close - 0.4},{close + 1},{close - 1},{close}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def run_cli(*extra_args: str) -> subprocess.CompletedProcess:
    """Run sma_backtest.main with given args and return the result."""
    return subprocess.run(
        [sys.executable, "-m", "sma_backtest.main", *extra_args],
        capture_output=True,
        text=True,
        cwd=ROOT,
    )


class TestCLIValidation:
    """Invalid args exit with code 2."""

    def test_short_period_not_below_long(self):
        result = run_cli("--short-period", "50", "--long-period", "20")
        assert result.returncode == 2
        assert "--short-period" in result.stderr

    def test_zero_period(self):
        result = run_cli("--short-period", "0")
        assert result.returncode == 2
        assert "--short-period" in result.stderr

    def test_reward_multiple_not_positive(self):
        result = run_cli("--reward-multiple", "0")
        assert result.returncode == 2
        assert "--reward-multiple" in result.stderr

    def test_conflicting_direction_flags(self):
        result = run_cli("--include-bearish", "--bearish-only")
        assert result.returncode == 2
        assert "mutually exclusive" in result.stderr

    def test_source_sheet_with_from_enriched(self):
        result = run_cli("--from-enriched", "--source-sheet", "Raw")
        assert result.returncode == 2
        assert "--source-sheet" in result.stderr

    def test_invalid_pending_exit_choice(self):
        result = run_cli("--pending-exit", "clamp")
        assert result.returncode == 2


class TestPipeline:
    """End-to-end runs on small CSV inputs."""

    def test_from_enriched_single_trade(self, tmp_path):
        source = write_enriched_csv(tmp_path / "nifty.csv")
        report = tmp_path / "report.txt"
        trades_csv = tmp_path / "trades.csv"
        html = tmp_path / "report.html"

        main([
            "--input", str(source), "--output", str(report), "--from-enriched",
            "--csv", str(trades_csv), "--html", str(html),
        ])

        text = report.read_text(encoding="utf-8")
        assert "Total Trades: 1\n" in text
        assert "SIGNAL DATE: 05-Jan-24\n" in text
        assert "ENTRY PRICE: 103.50\n" in text
        assert "INITIAL STOP LOSS: 102.00\n" in text
        assert "TARGET PRICE: 106.50\n" in text
        assert "EXIT PRICE: 108.00\n" in text
        assert "TRADE TIME IN DAYS: 2\n" in text
        assert "P/L: 4.50\n" in text
        assert "P/L PERCENTAGE: 4.35%\n" in text
        assert trades_csv.exists()
        assert html.exists()
        # Enriched input is not rewritten
        assert not (tmp_path / "nifty_NIFTY50_with_SMA.csv").exists()

    def test_raw_input_writes_enriched_sheet(self, tmp_path):
        source = write_raw_csv(tmp_path / "nifty.csv")
        report = tmp_path / "report.txt"

        main(["--input", str(source), "--output", str(report), "--sheet", "WITH_SMA"])

        assert report.read_text(encoding="utf-8").startswith("* NIFTY 50 BULLISH SMA TRADES")
        enriched = (tmp_path / "nifty_WITH_SMA.csv").read_text(encoding="utf-8").splitlines()
        assert enriched[0] == "Date,Open,High,Low,Close,SMA_20,SMA_50"
        assert len(enriched) == 71

    def test_skip_write_enriched(self, tmp_path):
        source = write_raw_csv(tmp_path / "nifty.csv")
        report = tmp_path / "report.txt"
        main(["--input", str(source), "--output", str(report), "--skip-write-enriched"])
        assert report.exists()
        assert not (tmp_path / "nifty_NIFTY50_with_SMA.csv").exists()

    def test_missing_input_exits_without_report(self, tmp_path):
        report = tmp_path / "report.txt"
        with pytest.raises(SystemExit) as exc:
            main(["--input", str(tmp_path / "missing.xlsx"), "--output", str(report)])
        assert exc.value.code == 1
        assert not report.exists()

    def test_signal_dates_in_report(self, tmp_path):
        source = write_enriched_csv(tmp_path / "nifty.csv")
        report = tmp_path / "report.txt"
        main([
            "--input", str(source), "--output", str(report),
            "--from-enriched", "--signal-dates", "--title", "TEST INDEX",
        ])
        text = report.read_text(encoding="utf-8")
        assert text.startswith("* TEST INDEX BULLISH SMA TRADES")
        assert "=== BULLISH SIGNAL DATES ===\n05-Jan-24\n\n" in text


class TestConfig:
    def test_env_paths(self, monkeypatch):
        monkeypatch.setenv(INPUT_ENV, "data/in.xlsx")
        monkeypatch.setenv(OUTPUT_ENV, "data/out.txt")
        assert resolve_paths() == ("data/in.xlsx", "data/out.txt")

    def test_explicit_paths_win(self, monkeypatch):
        monkeypatch.setenv(INPUT_ENV, "data/in.xlsx")
        assert resolve_paths("a.csv", "b.txt") == ("a.csv", "b.txt")

    def test_defaults(self):
        cfg = BacktestConfig()
        assert cfg.short_period == 20
        assert cfg.long_period == 50
        assert cfg.include_bullish and not cfg.include_bearish
        assert cfg.enriched_sheet == "NIFTY50_with_SMA"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"short_period": 0},
            {"include_bullish": False, "include_bearish": False},
            {"bearish_min_diff_pct": 2.0},
            {"reward_multiple": -1.0},
            {"pending_exit_mode": "clamp"},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            BacktestConfig(**kwargs)
