"""Quote source implementations for fetching historical daily quotes.

This module provides an abstract interface for quote sources and concrete
implementations for Yahoo Finance and CSV files. Sources return raw,
untrusted quotes; :func:`vnchart.data.normalize.normalize_quotes` turns them
into bars.
"""

from __future__ import annotations

import csv
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from vnchart.data.normalize import summarize_quote
from vnchart.exceptions import DataSourceError
from vnchart.types import QuoteSummary, RawQuote, Symbol

logger = logging.getLogger(__name__)

# Suffix Yahoo Finance uses for HOSE/HNX listed tickers.
VN_SUFFIX = ".VN"


def resolve_symbol(ticker: str) -> Symbol:
    """Map a user-entered ticker to a quote-source symbol.

    Bare tickers such as ``fpt`` become ``FPT.VN``. Tickers that already carry
    an exchange suffix, and ``^``-prefixed indices, pass through unchanged.

    :param ticker: Ticker as typed by the user.
    :returns: Upper-cased symbol.
    :raises DataSourceError: If the ticker is empty.
    """
    cleaned = ticker.strip().upper()
    if not cleaned:
        raise DataSourceError("Ticker must not be empty")
    if "." in cleaned or cleaned.startswith("^"):
        return Symbol(cleaned)
    return Symbol(f"{cleaned}{VN_SUFFIX}")


class QuoteSource(ABC):
    """Abstract base class for quote sources.

    All quote source implementations must inherit from this class and
    implement :meth:`fetch_quotes`.
    """

    @abstractmethod
    def fetch_quotes(
        self,
        symbol: Symbol,
        lookback: str = "3mo",
        interval: str = "1d",
    ) -> list[RawQuote]:
        """Fetch historical quotes for one symbol.

        :param symbol: Symbol to fetch.
        :param lookback: Historical range (e.g., "1mo", "3mo", "1y").
        :param interval: Bar interval (e.g., "1d", "1wk").
        :returns: Quotes in chronological order.
        :raises DataSourceError: If fetching fails.
        """
        ...


def _cell(value: Any) -> float | None:
    """Convert a DataFrame cell to float, mapping NaN to None."""
    if value is None:
        return None
    value = float(value)
    if math.isnan(value):
        return None
    return value


class YahooQuoteSource(QuoteSource):
    """Quote source that fetches data from Yahoo Finance via yfinance.

    :param source_params: Optional parameters for configuring the source.
        - timeout: Request timeout in seconds (default: 30)
    """

    VALID_LOOKBACKS = frozenset([
        "1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "10y", "ytd", "max",
    ])

    VALID_INTERVALS = frozenset(["1d", "5d", "1wk", "1mo", "3mo"])

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize Yahoo quote source.

        :param source_params: Optional configuration parameters.
        """
        self.params = source_params or {}
        self.timeout = self.params.get("timeout", 30)

    @staticmethod
    def _import_yfinance() -> Any:
        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install yfinance"
            ) from e
        return yf

    def fetch_quotes(
        self,
        symbol: Symbol,
        lookback: str = "3mo",
        interval: str = "1d",
    ) -> list[RawQuote]:
        """Fetch daily quotes from Yahoo Finance.

        :param symbol: Symbol to fetch.
        :param lookback: Historical range.
        :param interval: Bar interval.
        :returns: Quotes in chronological order (empty when Yahoo has none).
        :raises DataSourceError: If parameters are invalid or fetching fails.
        """
        if lookback not in self.VALID_LOOKBACKS:
            raise DataSourceError(
                f"Unsupported lookback '{lookback}'. "
                f"Supported: {sorted(self.VALID_LOOKBACKS)}"
            )
        if interval not in self.VALID_INTERVALS:
            raise DataSourceError(
                f"Unsupported interval '{interval}'. "
                f"Supported: {sorted(self.VALID_INTERVALS)}"
            )

        yf = self._import_yfinance()

        try:
            ticker = yf.Ticker(str(symbol))
            df = ticker.history(
                period=lookback,
                interval=interval,
                auto_adjust=False,
                timeout=self.timeout,
            )
        except Exception as e:
            raise DataSourceError(
                f"Failed to fetch data for symbol '{symbol}': {e}"
            ) from e

        if df is None or df.empty:
            logger.warning("No quotes returned for %s (%s, %s)", symbol, lookback, interval)
            return []

        has_adj = "Adj Close" in df.columns
        quotes: list[RawQuote] = []
        for timestamp, row in df.iterrows():
            # yfinance returns timezone-aware timestamps
            ts = timestamp.to_pydatetime()
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)

            quotes.append(
                RawQuote(
                    timestamp=ts,
                    open=_cell(row.get("Open")),
                    high=_cell(row.get("High")),
                    low=_cell(row.get("Low")),
                    close=_cell(row.get("Close")),
                    adj_close=_cell(row.get("Adj Close")) if has_adj else None,
                    volume=_cell(row.get("Volume")),
                )
            )
        return quotes

    def fetch_summary(self, symbol: Symbol, ticker: str | None = None) -> QuoteSummary | None:
        """Fetch the latest price and change against the previous close.

        :param symbol: Symbol to look up.
        :param ticker: Ticker to report in the summary (defaults to ``symbol``).
        :returns: Summary, or ``None`` when Yahoo reports no usable prices.
        :raises DataSourceError: If fetching fails.
        """
        yf = self._import_yfinance()
        try:
            info = yf.Ticker(str(symbol)).fast_info
            meta = {
                "regularMarketPrice": info["lastPrice"],
                "previousClose": info["previousClose"],
            }
        except Exception as e:
            raise DataSourceError(
                f"Failed to fetch latest price for symbol '{symbol}': {e}"
            ) from e
        return summarize_quote(meta, ticker or str(symbol))


class CSVQuoteSource(QuoteSource):
    """Quote source that reads daily quotes from a CSV file.

    Expected CSV format (default columns):
    - timestamp: ISO format date or datetime string
    - open, high, low, close: Prices (empty cells allowed)
    - adj_close: Adjusted close (optional column)
    - volume: Trading volume (empty cells allowed)

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - timestamp_col, open_col, high_col, low_col, close_col,
          adj_close_col, volume_col: Column name overrides
        - symbol_col: Column holding the symbol; rows for other symbols are
          skipped (default: no filtering)
        - delimiter: CSV delimiter (default: ",")
        - timestamp_format: strptime format for timestamps (default: ISO format)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize CSV quote source.

        :param source_params: Configuration with file_path and optional column mappings.
        :raises DataSourceError: If file_path is not provided.
        """
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVQuoteSource requires 'file_path' in source_params")

        # Column name mappings with defaults
        self.timestamp_col = self.params.get("timestamp_col", "timestamp")
        self.open_col = self.params.get("open_col", "open")
        self.high_col = self.params.get("high_col", "high")
        self.low_col = self.params.get("low_col", "low")
        self.close_col = self.params.get("close_col", "close")
        self.adj_close_col = self.params.get("adj_close_col", "adj_close")
        self.volume_col = self.params.get("volume_col", "volume")
        self.symbol_col = self.params.get("symbol_col")
        self.delimiter = self.params.get("delimiter", ",")
        self.timestamp_format = self.params.get("timestamp_format")

    def _parse_timestamp(self, ts_str: str) -> datetime:
        try:
            if self.timestamp_format:
                ts = datetime.strptime(ts_str, self.timestamp_format)
            else:
                ts = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
        except ValueError as e:
            raise DataSourceError(f"Failed to parse timestamp '{ts_str}': {e}") from e

        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts

    def _number(self, row: dict[str, str], column: str) -> float | None:
        raw = (row.get(column) or "").strip()
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError as e:
            raise DataSourceError(f"Invalid number '{raw}' in column '{column}'") from e

    def fetch_quotes(
        self,
        symbol: Symbol,
        lookback: str = "3mo",
        interval: str = "1d",
    ) -> list[RawQuote]:
        """Read quotes from the CSV file.

        :param symbol: Symbol to keep when ``symbol_col`` is configured.
        :param lookback: Ignored for CSV source (the file defines the range).
        :param interval: Ignored for CSV source.
        :returns: Quotes in file order.
        :raises DataSourceError: If reading or parsing fails.
        """
        path = Path(self.file_path)
        if not path.exists():
            raise DataSourceError(f"CSV file not found: {self.file_path}")

        quotes: list[RawQuote] = []
        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                for row in reader:
                    if self.symbol_col and row.get(self.symbol_col) != str(symbol):
                        continue

                    ts_str = (row.get(self.timestamp_col) or "").strip()
                    if not ts_str:
                        continue

                    quotes.append(
                        RawQuote(
                            timestamp=self._parse_timestamp(ts_str),
                            open=self._number(row, self.open_col),
                            high=self._number(row, self.high_col),
                            low=self._number(row, self.low_col),
                            close=self._number(row, self.close_col),
                            adj_close=self._number(row, self.adj_close_col),
                            volume=self._number(row, self.volume_col),
                        )
                    )
        except csv.Error as e:
            raise DataSourceError(f"CSV parsing error: {e}") from e
        except OSError as e:
            raise DataSourceError(f"Failed to read CSV file: {e}") from e

        if not quotes:
            logger.warning("No quotes for %s in %s", symbol, path)
        return quotes


def resolve_quote_source(
    data_source: str, source_params: dict[str, Any] | None = None
) -> QuoteSource:
    """Construct a quote source by name.

    :param data_source: Source type ("yahoo" or "csv").
    :param source_params: Source-specific parameters.
    :returns: QuoteSource instance for the specified type.
    :raises DataSourceError: If the source type is unrecognized.
    """
    source_type = data_source.lower()

    if source_type == "yahoo":
        return YahooQuoteSource(source_params)
    elif source_type == "csv":
        return CSVQuoteSource(source_params)
    else:
        raise DataSourceError(
            f"Unrecognized data source type: '{data_source}'. "
            f"Supported types: yahoo, csv"
        )


__all__ = [
    "VN_SUFFIX",
    "resolve_symbol",
    "QuoteSource",
    "YahooQuoteSource",
    "CSVQuoteSource",
    "resolve_quote_source",
]
