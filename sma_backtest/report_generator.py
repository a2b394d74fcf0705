#!/usr/bin/env python3
"""
Report generator for the SMA backtest.

Generates:
- Plain-text statistics report (primary artifact)
- CSV of individual trades (optional)
- HTML report with a Plotly cumulative-return chart (optional)
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

import plotly.graph_objects as go

from sma_backtest.date_format import format_date
from sma_backtest.metrics_calculator import BacktestMetrics
from sma_backtest.signal_detector import BEARISH, BULLISH, Signal
from sma_backtest.trade_simulator import TradeResult

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Render and write backtest reports."""

    def __init__(
        self,
        title: str = "NIFTY 50",
        include_signal_dates: bool = False,
        include_bullish: bool = True,
        include_bearish: bool = False,
    ):
        self.title = title
        self.include_signal_dates = include_signal_dates
        self.include_bullish = include_bullish
        self.include_bearish = include_bearish

    # ------------------------------------------------------------------ Text
    def _direction_label(self) -> str:
        if self.include_bullish and self.include_bearish:
            return "BULLISH/BEARISH"
        return "BEARISH" if self.include_bearish else "BULLISH"

    def render_text(
        self,
        metrics: BacktestMetrics,
        trades: List[TradeResult],
        signals: Sequence[Signal] = (),
    ) -> str:
        m = metrics
        out = f"* {self.title} {self._direction_label()} SMA TRADES STATISTICAL ANALYSIS RESULTS *\n\n"

        if self.include_signal_dates:
            if self.include_bullish:
                out += self._signal_dates_block("BULLISH", signals, BULLISH)
            if self.include_bearish:
                out += self._signal_dates_block("BEARISH", signals, BEARISH)

        out += "=== OVERALL STATISTICS ===\n\n"
        out += f"Total Trades: {m.total_trades}\n"
        out += f"Profitable Trades: {m.profitable_trades}\n"
        out += f"Loss-Making Trades: {m.loss_making_trades}\n"
        out += f"Percentage of Profitable Trades: {m.pct_profitable:.2f}%\n"
        out += f"Percentage of Loss-Making Trades: {m.pct_loss_making:.2f}%\n"
        out += f"Average Profit Percentage (Profitable Trades): {m.avg_profit_pct:.2f}%\n"
        out += f"Average Loss Percentage (Loss-Making Trades): {m.avg_loss_pct:.2f}%\n"
        out += f"Average Trade Duration (All Trades): {m.avg_trade_days:.1f} days\n"
        out += f"Average Duration of Profitable Trades: {m.avg_profitable_trade_days:.1f} days\n"
        out += f"Average Duration of Loss-Making Trades: {m.avg_loss_making_trade_days:.1f} days\n"

        out += "\n\n=== INDIVIDUAL TRADE DETAILS ===\n\n"
        # Newest first, numbered by chronological position
        for index in range(len(trades) - 1, -1, -1):
            out += self._trade_block(index + 1, trades[index])

        return out

    def _signal_dates_block(self, label: str, signals: Sequence[Signal], direction: str) -> str:
        block = f"=== {label} SIGNAL DATES ===\n"
        for s in signals:
            if s.direction == direction:
                block += format_date(s.date) + "\n"
        return block + "\n"

    def _trade_block(self, number: int, t: TradeResult) -> str:
        header = f"TRADE #{number}"
        if self.include_bullish and self.include_bearish:
            header += f" ({t.direction})"
        return (
            f"{header}:\n"
            f"SIGNAL DATE: {format_date(t.signal_date)}\n"
            f"ENTRY DATE: {format_date(t.entry_date)}\n"
            f"ENTRY PRICE: {t.entry_price:.2f}\n"
            f"INITIAL STOP LOSS: {t.initial_stop_loss:.2f}\n"
            f"TARGET PRICE: {t.target_price:.2f}\n"
            f"EXIT DATE: {format_date(t.exit_date)}\n"
            f"EXIT PRICE: {t.exit_price:.2f}\n"
            f"TRADE TIME IN DAYS: {t.trade_days}\n"
            f"STATUS OF TRADE: {t.outcome}\n"
            f"P/L: {t.pnl:.2f}\n"
            f"P/L PERCENTAGE: {t.pnl_pct:.2f}%\n\n"
        )

    def write_text_report(self, text: str, path: str) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        logger.info(f"Analysis complete. Results saved to: {out}")
        return out

    # ------------------------------------------------------------------ CSV
    def write_trades_csv(self, trades: List[TradeResult], path: str) -> Optional[Path]:
        if not trades:
            return None
        fields = [
            "signal_date", "direction", "entry_date", "entry_price",
            "initial_stop_loss", "target_price", "exit_date", "exit_price",
            "trade_days", "outcome", "pnl", "pnl_pct", "exit_reason",
            "final_stop_loss",
        ]
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w", newline="") as f:
            w = csv.DictWriter(f, fieldnames=fields)
            w.writeheader()
            for t in trades:
                row = {k: getattr(t, k) for k in fields}
                for k in ("signal_date", "entry_date", "exit_date"):
                    row[k] = format_date(row[k])
                for k in ("entry_price", "initial_stop_loss", "target_price",
                          "exit_price", "pnl", "pnl_pct", "final_stop_loss"):
                    row[k] = round(row[k], 2)
                w.writerow(row)
        logger.info(f"Wrote {len(trades)} trades to {out}")
        return out

    # ------------------------------------------------------------------ HTML
    def write_html_report(
        self, m: BacktestMetrics, trades: List[TradeResult], path: str
    ) -> Path:
        generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        title = f"{self.title} {self._direction_label().title()} SMA Backtest"

        html = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{title}</title>
<script src="https://cdn.plot.ly/plotly-2.27.0.min.js"></script>
<style>
body {{ background: #0d1117; color: #e6edf3; font-family: -apple-system, 'Segoe UI', sans-serif; padding: 20px; }}
.kpi-grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 12px; margin-bottom: 24px; }}
.kpi {{ background: #161b22; border: 1px solid #30363d; border-radius: 8px; padding: 16px; text-align: center; }}
.kpi .label {{ font-size: 0.75em; color: #8b949e; text-transform: uppercase; }}
.kpi .value {{ font-size: 1.6em; font-weight: 700; margin-top: 4px; }}
table {{ width: 100%; border-collapse: collapse; font-size: 0.85em; }}
th, td {{ padding: 8px 12px; text-align: left; border-bottom: 1px solid #30363d; }}
th {{ background: #21262d; color: #8b949e; }}
.positive {{ color: #3fb950; }}
.negative {{ color: #f85149; }}
.chart {{ width: 100%; min-height: 400px; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p>Generated: {generated} | Period: {self._trade_period(trades)}</p>

<div class="kpi-grid">
  <div class="kpi"><div class="label">Total Trades</div><div class="value">{m.total_trades}</div></div>
  <div class="kpi"><div class="label">Profitable</div><div class="value">{m.pct_profitable:.2f}%</div></div>
  <div class="kpi"><div class="label">Avg Profit</div><div class="value positive">{m.avg_profit_pct:.2f}%</div></div>
  <div class="kpi"><div class="label">Avg Loss</div><div class="value negative">{m.avg_loss_pct:.2f}%</div></div>
  <div class="kpi"><div class="label">Avg Duration</div><div class="value">{m.avg_trade_days:.1f} d</div></div>
  <div class="kpi"><div class="label">Skipped Signals</div><div class="value">{m.total_skipped}</div></div>
</div>

<div id="cumulative-chart" class="chart"></div>

<h2>Trades ({m.total_trades})</h2>
{self._trades_table_html(trades)}

<script>
{self._cumulative_return_chart(trades)}
</script>
</body>
</html>"""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(html, encoding="utf-8")
        logger.info(f"HTML report written to {out}")
        return out

    def _cumulative_return_chart(self, trades: List[TradeResult]) -> str:
        dates = []
        cum_pct = []
        running = 0.0
        for t in trades:
            running += t.pnl_pct
            dates.append(format_date(t.exit_date))
            cum_pct.append(round(running, 2))

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=dates, y=cum_pct, mode="lines",
            line=dict(color="#58a6ff", width=2),
            fill="tozeroy",
            fillcolor="rgba(88,166,255,0.1)",
            name="Cumulative P/L %",
        ))
        fig.update_layout(
            template="plotly_dark", paper_bgcolor="#161b22", plot_bgcolor="#0d1117",
            margin=dict(l=60, r=20, t=20, b=40),
            xaxis_title="Exit Date", yaxis_title="Cumulative P/L (%)",
            yaxis_ticksuffix="%", height=400,
        )
        return f"Plotly.newPlot('cumulative-chart', {fig.to_json()});"

    def _trades_table_html(self, trades: List[TradeResult]) -> str:
        rows = ""
        for t in trades:
            cls = "positive" if t.pnl > 0 else "negative"
            rows += f"""<tr>
<td>{format_date(t.signal_date)}</td>
<td>{t.direction}</td>
<td>{format_date(t.entry_date)}</td>
<td>{t.entry_price:.2f}</td>
<td>{format_date(t.exit_date)}</td>
<td>{t.exit_price:.2f}</td>
<td class="{cls}">{t.pnl:.2f}</td>
<td class="{cls}">{t.pnl_pct:.2f}%</td>
<td>{t.trade_days}</td>
<td>{t.exit_reason}</td>
</tr>"""
        return f"""<table><thead><tr>
<th>Signal</th><th>Direction</th><th>Entry</th><th>Entry Price</th>
<th>Exit</th><th>Exit Price</th><th>P/L</th><th>P/L %</th><th>Days</th><th>Exit</th>
</tr></thead><tbody>{rows}</tbody></table>"""

    @staticmethod
    def _trade_period(trades: List[TradeResult]) -> str:
        if not trades:
            return "N/A"
        return f"{format_date(trades[0].entry_date)} to {format_date(trades[-1].exit_date)}"
