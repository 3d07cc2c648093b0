"""Tests for quote source implementations."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vnchart.data.sources import (CSVQuoteSource, QuoteSource,
                                  YahooQuoteSource, resolve_quote_source,
                                  resolve_symbol)
from vnchart.exceptions import DataSourceError
from vnchart.types import Symbol


def _history_frame():
    import pandas as pd

    return pd.DataFrame(
        {
            "Open": [25_000.0, 25_300.0],
            "High": [25_500.0, float("nan")],
            "Low": [24_800.0, 25_100.0],
            "Close": [25_200.0, 25_400.0],
            "Adj Close": [25_150.0, float("nan")],
            "Volume": [1_200_000, 900_000],
        },
        index=pd.DatetimeIndex(
            [
                pd.Timestamp("2024-03-04 00:00:00", tz="Asia/Ho_Chi_Minh"),
                pd.Timestamp("2024-03-05 00:00:00", tz="Asia/Ho_Chi_Minh"),
            ]
        ),
    )


class TestResolveSymbol:
    """Tests for ticker to symbol mapping."""

    @pytest.mark.parametrize(
        "ticker,expected",
        [
            ("FPT", "FPT.VN"),
            ("fpt", "FPT.VN"),
            ("  vnm ", "VNM.VN"),
            ("HPG.VN", "HPG.VN"),
            ("aapl.us", "AAPL.US"),
            ("^vnindex", "^VNINDEX"),
        ],
    )
    def test_mapping(self, ticker: str, expected: str) -> None:
        """Bare tickers get the VN suffix; suffixed tickers and indices pass through."""
        assert resolve_symbol(ticker) == expected

    @pytest.mark.parametrize("ticker", ["", "   "])
    def test_empty_ticker_raises(self, ticker: str) -> None:
        """Blank tickers are rejected."""
        with pytest.raises(DataSourceError, match="must not be empty"):
            resolve_symbol(ticker)


class TestQuoteSourceProtocol:
    """Tests for the QuoteSource abstract base class."""

    def test_quote_source_is_abstract(self) -> None:
        """QuoteSource cannot be instantiated directly."""
        with pytest.raises(TypeError, match="abstract"):
            QuoteSource()  # type: ignore[abstract]

    def test_subclass_must_implement_fetch_quotes(self) -> None:
        """Subclasses must implement fetch_quotes."""

        class IncompleteSource(QuoteSource):
            pass

        with pytest.raises(TypeError, match="abstract"):
            IncompleteSource()


class TestYahooQuoteSource:
    """Tests for YahooQuoteSource."""

    def test_init_with_defaults(self) -> None:
        """YahooQuoteSource initializes with a default timeout."""
        assert YahooQuoteSource().timeout == 30

    def test_init_with_custom_params(self) -> None:
        """YahooQuoteSource accepts a custom timeout."""
        assert YahooQuoteSource({"timeout": 5}).timeout == 5

    def test_unsupported_lookback_raises_error(self) -> None:
        """Unknown ranges are rejected before any request."""
        with pytest.raises(DataSourceError, match="Unsupported lookback"):
            YahooQuoteSource().fetch_quotes(Symbol("FPT.VN"), lookback="7w")

    def test_unsupported_interval_raises_error(self) -> None:
        """Intraday intervals are rejected."""
        with pytest.raises(DataSourceError, match="Unsupported interval"):
            YahooQuoteSource().fetch_quotes(Symbol("FPT.VN"), interval="5m")

    def test_fetch_quotes_returns_raw_quotes(self) -> None:
        """fetch_quotes maps history rows to raw quotes, NaN to None."""
        mock_ticker = MagicMock()
        mock_ticker.history.return_value = _history_frame()

        with patch.dict("sys.modules", {"yfinance": MagicMock()}):
            mock_yf = sys.modules["yfinance"]
            mock_yf.Ticker.return_value = mock_ticker

            source = YahooQuoteSource()
            quotes = source.fetch_quotes(Symbol("FPT.VN"), "1mo", "1d")

        mock_yf.Ticker.assert_called_once_with("FPT.VN")
        mock_ticker.history.assert_called_once_with(
            period="1mo", interval="1d", auto_adjust=False, timeout=30
        )
        assert len(quotes) == 2
        first, second = quotes
        assert first.open == 25_000.0
        assert first.close == 25_200.0
        assert first.adj_close == 25_150.0
        assert first.volume == 1_200_000
        assert first.timestamp.utcoffset().total_seconds() == 7 * 3600
        assert second.high is None
        assert second.adj_close is None

    def test_fetch_quotes_without_adjusted_column(self) -> None:
        """Frames without 'Adj Close' leave adj_close empty."""
        frame = _history_frame().drop(columns=["Adj Close"])
        mock_ticker = MagicMock()
        mock_ticker.history.return_value = frame

        with patch.dict("sys.modules", {"yfinance": MagicMock()}):
            sys.modules["yfinance"].Ticker.return_value = mock_ticker
            quotes = YahooQuoteSource().fetch_quotes(Symbol("FPT.VN"))

        assert all(q.adj_close is None for q in quotes)

    def test_fetch_quotes_empty_data(self) -> None:
        """An empty history is not an error."""
        import pandas as pd

        mock_ticker = MagicMock()
        mock_ticker.history.return_value = pd.DataFrame()

        with patch.dict("sys.modules", {"yfinance": MagicMock()}):
            sys.modules["yfinance"].Ticker.return_value = mock_ticker
            quotes = YahooQuoteSource().fetch_quotes(Symbol("XYZ.VN"))

        assert quotes == []

    def test_fetch_errors_are_wrapped(self) -> None:
        """Upstream failures surface as DataSourceError."""
        mock_ticker = MagicMock()
        mock_ticker.history.side_effect = RuntimeError("connection reset")

        with patch.dict("sys.modules", {"yfinance": MagicMock()}):
            sys.modules["yfinance"].Ticker.return_value = mock_ticker
            with pytest.raises(DataSourceError, match="Failed to fetch data"):
                YahooQuoteSource().fetch_quotes(Symbol("FPT.VN"))

    def test_missing_yfinance(self) -> None:
        """A missing yfinance install is reported, not raised as ImportError."""
        with patch.dict("sys.modules", {"yfinance": None}):
            with pytest.raises(DataSourceError, match="yfinance is not installed"):
                YahooQuoteSource().fetch_quotes(Symbol("FPT.VN"))

    def test_fetch_summary(self) -> None:
        """fetch_summary reads the last and previous close."""
        mock_ticker = MagicMock()
        mock_ticker.fast_info = {"lastPrice": 25_150.4, "previousClose": 25_000.0}

        with patch.dict("sys.modules", {"yfinance": MagicMock()}):
            sys.modules["yfinance"].Ticker.return_value = mock_ticker
            summary = YahooQuoteSource().fetch_summary(Symbol("FPT.VN"), ticker="FPT")

        assert summary is not None
        assert summary.ticker == "FPT"
        assert summary.current_price == 25_150.0
        assert summary.change == 150.4

    def test_fetch_summary_errors_are_wrapped(self) -> None:
        """Missing fast_info keys surface as DataSourceError."""
        mock_ticker = MagicMock()
        mock_ticker.fast_info = {}

        with patch.dict("sys.modules", {"yfinance": MagicMock()}):
            sys.modules["yfinance"].Ticker.return_value = mock_ticker
            with pytest.raises(DataSourceError, match="Failed to fetch latest price"):
                YahooQuoteSource().fetch_summary(Symbol("FPT.VN"))


class TestCSVQuoteSource:
    """Tests for CSVQuoteSource."""

    def test_init_requires_file_path(self) -> None:
        """CSVQuoteSource requires file_path in source_params."""
        with pytest.raises(DataSourceError, match="requires 'file_path'"):
            CSVQuoteSource()

        with pytest.raises(DataSourceError, match="requires 'file_path'"):
            CSVQuoteSource({})

    def test_init_with_defaults(self) -> None:
        """CSVQuoteSource initializes with default column names."""
        source = CSVQuoteSource({"file_path": "quotes.csv"})

        assert source.timestamp_col == "timestamp"
        assert source.close_col == "close"
        assert source.adj_close_col == "adj_close"
        assert source.symbol_col is None
        assert source.delimiter == ","

    def test_fetch_quotes_from_csv(self, tmp_path: Path) -> None:
        """fetch_quotes reads every row, empty cells as None."""
        csv_file = tmp_path / "fpt.csv"
        csv_file.write_text(
            "timestamp,open,high,low,close,adj_close,volume\n"
            "2024-03-04,25000,25500,24800,25200,25150,1200000\n"
            "2024-03-05,,,,25400,,\n",
            encoding="utf-8",
        )

        quotes = CSVQuoteSource({"file_path": str(csv_file)}).fetch_quotes(Symbol("FPT.VN"))

        assert len(quotes) == 2
        assert quotes[0].timestamp == datetime(2024, 3, 4, tzinfo=timezone.utc)
        assert quotes[0].adj_close == 25_150.0
        assert quotes[1].open is None
        assert quotes[1].close == 25_400.0
        assert quotes[1].volume is None

    def test_fetch_quotes_filters_by_symbol(self, tmp_path: Path) -> None:
        """With symbol_col set, only matching rows are kept."""
        csv_file = tmp_path / "multi.csv"
        csv_file.write_text(
            "ticker;date;close\n"
            "FPT.VN;2024-03-04;25200\n"
            "VNM.VN;2024-03-04;70100\n",
            encoding="utf-8",
        )
        source = CSVQuoteSource(
            {
                "file_path": str(csv_file),
                "symbol_col": "ticker",
                "timestamp_col": "date",
                "delimiter": ";",
            }
        )

        quotes = source.fetch_quotes(Symbol("VNM.VN"))

        assert [q.close for q in quotes] == [70_100.0]

    def test_fetch_quotes_with_timestamp_format(self, tmp_path: Path) -> None:
        """A custom strptime format parses local date styles."""
        csv_file = tmp_path / "fpt.csv"
        csv_file.write_text("timestamp,close\n04/03/2024,25200\n", encoding="utf-8")
        source = CSVQuoteSource(
            {"file_path": str(csv_file), "timestamp_format": "%d/%m/%Y"}
        )

        quotes = source.fetch_quotes(Symbol("FPT.VN"))

        assert quotes[0].timestamp == datetime(2024, 3, 4, tzinfo=timezone.utc)

    def test_invalid_number_raises(self, tmp_path: Path) -> None:
        """Non-numeric cells are reported with their column."""
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text("timestamp,close\n2024-03-04,abc\n", encoding="utf-8")

        with pytest.raises(DataSourceError, match="Invalid number 'abc' in column 'close'"):
            CSVQuoteSource({"file_path": str(csv_file)}).fetch_quotes(Symbol("FPT.VN"))

    def test_invalid_timestamp_raises(self, tmp_path: Path) -> None:
        """Unparseable timestamps are reported."""
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text("timestamp,close\nyesterday,25200\n", encoding="utf-8")

        with pytest.raises(DataSourceError, match="Failed to parse timestamp"):
            CSVQuoteSource({"file_path": str(csv_file)}).fetch_quotes(Symbol("FPT.VN"))

    def test_file_not_found(self, tmp_path: Path) -> None:
        """A missing file raises DataSourceError."""
        source = CSVQuoteSource({"file_path": str(tmp_path / "missing.csv")})

        with pytest.raises(DataSourceError, match="CSV file not found"):
            source.fetch_quotes(Symbol("FPT.VN"))


class TestResolveQuoteSource:
    """Tests for resolve_quote_source."""

    def test_resolve_yahoo(self) -> None:
        """'yahoo' resolves to YahooQuoteSource."""
        assert isinstance(resolve_quote_source("yahoo"), YahooQuoteSource)

    def test_resolve_csv(self) -> None:
        """'csv' resolves to CSVQuoteSource with its params."""
        source = resolve_quote_source("csv", {"file_path": "quotes.csv"})

        assert isinstance(source, CSVQuoteSource)
        assert source.file_path == "quotes.csv"

    def test_resolve_case_insensitive(self) -> None:
        """Source names are case-insensitive."""
        assert isinstance(resolve_quote_source("YAHOO"), YahooQuoteSource)

    def test_resolve_unknown_raises_error(self) -> None:
        """Unknown source names raise DataSourceError."""
        with pytest.raises(DataSourceError, match="Unrecognized data source type"):
            resolve_quote_source("bloomberg")
