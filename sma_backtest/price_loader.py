#!/usr/bin/env python3
"""
Price data loader for the SMA backtest.

Reads daily OHLC rows from an Excel workbook or CSV file and writes the
SMA-enriched series back as a named sheet:
- Prices rounded to 2 decimals on load
- Dates kept verbatim (Excel serials stay serials)
- Existing SMA_20 / SMA_50 columns loaded when present
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("Date", "Open", "High", "Low", "Close")
SMA_COLUMNS = ("SMA_20", "SMA_50")
EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")


class PriceDataError(Exception):
    """Price source could not be read or written (missing file, sheet or column)."""


@dataclass
class PriceBar:
    date: Any  # Opaque identifier (Excel serial, ISO string, datetime)
    open: float
    high: float
    low: float
    close: float
    sma20: Optional[float] = None
    sma50: Optional[float] = None

    @property
    def has_smas(self) -> bool:
        return self.sma20 is not None and self.sma50 is not None


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _price(value) -> float:
    """Parse a price cell to 2-decimal precision. Non-numeric input raises ValueError."""
    return round(float(value), 2)


def _optional_price(value) -> Optional[float]:
    if _is_blank(value):
        return None
    return _price(value)


def _plain_date(value):
    """Unwrap numpy scalars so serials compare and serialize as plain numbers."""
    if hasattr(value, "item") and not isinstance(value, pd.Timestamp):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _read_frame(path: Path, sheet_name: Optional[str]) -> pd.DataFrame:
    if not path.exists():
        raise PriceDataError(f"Price file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        try:
            return pd.read_csv(path)
        except (OSError, ValueError) as e:
            raise PriceDataError(f"Failed to read CSV {path}: {e}") from e
    if suffix not in EXCEL_SUFFIXES:
        raise PriceDataError(f"Unsupported price file type: {path.suffix} ({path})")

    try:
        with pd.ExcelFile(path) as book:
            sheets = book.sheet_names
            target = sheet_name if sheet_name is not None else sheets[0]
            if target not in sheets:
                raise PriceDataError(f"Sheet '{target}' not found in {path} (available: {sheets})")
            return book.parse(target)
    except PriceDataError:
        raise
    except (OSError, ValueError) as e:
        raise PriceDataError(f"Failed to read workbook {path}: {e}") from e


def load_price_bars(path: Union[str, Path], sheet_name: Optional[str] = None) -> List[PriceBar]:
    """Load OHLC bars in file order.

    Args:
        path: .xlsx/.xls workbook or .csv file.
        sheet_name: Workbook sheet to read; first sheet when None. Ignored for CSV.

    Returns:
        List of PriceBar, oldest first as stored in the source.
    """
    path = Path(path)
    df = _read_frame(path, sheet_name)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise PriceDataError(f"Missing required columns {missing} in {path}")

    df = df.dropna(how="all")
    has_sma = all(c in df.columns for c in SMA_COLUMNS)

    bars = []
    for row in df.to_dict(orient="records"):
        bars.append(
            PriceBar(
                date=_plain_date(row["Date"]),
                open=_price(row["Open"]),
                high=_price(row["High"]),
                low=_price(row["Low"]),
                close=_price(row["Close"]),
                sma20=_optional_price(row["SMA_20"]) if has_sma else None,
                sma50=_optional_price(row["SMA_50"]) if has_sma else None,
            )
        )

    logger.info(
        f"Loaded {len(bars)} bars from {path}"
        + (f" [{sheet_name}]" if sheet_name else "")
        + (" (with SMA columns)" if has_sma else "")
    )
    return bars


def bars_to_frame(bars: List[PriceBar]) -> pd.DataFrame:
    """Tabular form of the bars with SMA_20 / SMA_50 columns (empty cells for None)."""
    return pd.DataFrame(
        [
            {
                "Date": b.date,
                "Open": b.open,
                "High": b.high,
                "Low": b.low,
                "Close": b.close,
                "SMA_20": b.sma20,
                "SMA_50": b.sma50,
            }
            for b in bars
        ],
        columns=list(REQUIRED_COLUMNS) + list(SMA_COLUMNS),
    )


def write_enriched_sheet(bars: List[PriceBar], path: Union[str, Path], sheet_name: str) -> Path:
    """Persist the enriched series.

    Workbooks get ``sheet_name`` added, replacing a sheet of the same name and
    keeping every other sheet. CSV sources get a sibling ``<stem>_<sheet>.csv``.
    """
    path = Path(path)
    df = bars_to_frame(bars)

    if path.suffix.lower() == ".csv":
        out = path.with_name(f"{path.stem}_{sheet_name}.csv")
        try:
            df.to_csv(out, index=False)
        except OSError as e:
            raise PriceDataError(f"Failed to write {out}: {e}") from e
        logger.info(f"Data with SMA values written to {out}")
        return out

    if path.suffix.lower() not in EXCEL_SUFFIXES:
        raise PriceDataError(f"Unsupported price file type: {path.suffix} ({path})")

    try:
        if path.exists():
            with pd.ExcelWriter(
                path, engine="openpyxl", mode="a", if_sheet_exists="replace"
            ) as writer:
                df.to_excel(writer, sheet_name=sheet_name, index=False)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            with pd.ExcelWriter(path, engine="openpyxl", mode="w") as writer:
                df.to_excel(writer, sheet_name=sheet_name, index=False)
    except (OSError, ValueError) as e:
        raise PriceDataError(f"Failed to write sheet '{sheet_name}' to {path}: {e}") from e

    logger.info(f"Data with SMA values written to sheet '{sheet_name}' in {path}")
    return path
