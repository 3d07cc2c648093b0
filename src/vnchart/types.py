"""Core type definitions for the chart engine.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, NewType

from pydantic import (BaseModel, ConfigDict, Field, field_validator,
                      model_validator)

# Type aliases for domain-specific identifiers
Symbol = NewType("Symbol", str)

# Calendar date of one trading session. Aliased so models can carry a field
# named ``date`` without shadowing the type.
SessionDate = date

# Indicator output aligned index-for-index with a bar sequence. ``None`` marks
# "not enough history yet".
IndicatorSeries = tuple[float | None, ...]

# Display form used for session labels (day/month, zero padded).
LABEL_FORMAT = "%d/%m"

# Level names accepted by the stdlib logging module.
LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class RawQuote(FrozenModel):
    """One untrusted daily quote as delivered by an upstream quote source.

    Every price field may be missing; the normalizer decides what survives.

    :param timestamp: Session timestamp (timezone-aware).
    :param open: Opening price, if reported.
    :param high: Highest price, if reported.
    :param low: Lowest price, if reported.
    :param close: Raw closing price, if reported.
    :param adj_close: Adjusted closing price, if reported.
    :param volume: Traded volume, if reported.
    """

    timestamp: datetime
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    adj_close: float | None = None
    volume: float | None = None


class PriceBar(FrozenModel):
    """Validated OHLCV bar for one trading session.

    :param date: Calendar date of the session in market time.
    :param open: Opening price.
    :param high: Highest price of the session.
    :param low: Lowest price of the session.
    :param close: Closing price (adjusted when the source provides it).
    :param volume: Traded volume.
    """

    date: SessionDate
    open: float = Field(gt=0)
    high: float = Field(gt=0)
    low: float = Field(gt=0)
    close: float = Field(gt=0)
    volume: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> PriceBar:
        if self.low > self.high:
            raise ValueError("low must not exceed high")
        for name in ("open", "close"):
            value = getattr(self, name)
            if not self.low <= value <= self.high:
                raise ValueError(f"{name} must lie within [low, high]")
        return self

    @property
    def label(self) -> str:
        """Short day/month display label, e.g. ``05/03``."""
        return self.date.strftime(LABEL_FORMAT)


class QuoteSummary(FrozenModel):
    """Latest price snapshot for a ticker.

    :param ticker: Ticker as requested by the caller.
    :param current_price: Latest traded price, rounded to the price unit.
    :param change: Absolute change against the previous close.
    :param change_percent: Percentage change against the previous close.
    """

    ticker: str
    current_price: float
    change: float
    change_percent: float


# ---------------------------------------------------------------------------
# Signal Types
# ---------------------------------------------------------------------------


class SignalKind(str, Enum):
    """Direction of a discrete RSI signal."""

    BUY = "BUY"
    SELL = "SELL"


class ZonePolicy(str, Enum):
    """How the signal debounce reacts when RSI returns to the neutral band.

    ``STICKY`` keeps the last emitted kind armed until the opposite extreme
    fires. ``RESET`` clears it as soon as RSI is back inside the band, so a new
    excursion into the same zone can signal again.
    """

    STICKY = "sticky"
    RESET = "reset"


class Signal(FrozenModel):
    """Discrete BUY/SELL marker attached to one bar.

    :param index: Index of the bar in the analysed sequence.
    :param kind: Signal direction.
    :param price: Close price of the bar that triggered the signal.
    :param date: Session date of that bar.
    """

    index: int = Field(ge=0)
    kind: SignalKind
    price: float
    date: SessionDate

    @property
    def label(self) -> str:
        """Short day/month display label of the triggering session."""
        return self.date.strftime(LABEL_FORMAT)


# ---------------------------------------------------------------------------
# Projection Types
# ---------------------------------------------------------------------------


class ChartRecord(FrozenModel):
    """One bar merged with its indicator values and signal, ready to render.

    :param date: Session date.
    :param label: Day/month display label.
    :param price: Plotted price (the close).
    :param open: Opening price.
    :param high: Highest price.
    :param low: Lowest price.
    :param close: Closing price.
    :param volume: Traded volume.
    :param sma: Simple moving average, absent during warm-up or when hidden.
    :param ema: Exponential moving average, absent when hidden.
    :param rsi: RSI rounded for display, absent during warm-up or when hidden.
    :param signal: Price at which a signal marker is drawn, if any.
    :param signal_kind: Kind of the signal marker, if any.
    """

    date: SessionDate
    label: str
    price: float
    open: float
    high: float
    low: float
    close: float
    volume: int
    sma: float | None = None
    ema: float | None = None
    rsi: float | None = None
    signal: float | None = None
    signal_kind: SignalKind | None = None


class ChartView(FrozenModel):
    """Everything the rendering collaborator receives for one analysis.

    :param symbol: Symbol the bars belong to, if known.
    :param records: One record per input bar, in bar order.
    :param signals: All signals in bar order.
    :param recent: Most recent signals, newest first.
    """

    symbol: str | None = None
    records: tuple[ChartRecord, ...] = ()
    signals: tuple[Signal, ...] = ()
    recent: tuple[Signal, ...] = ()


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


class ChartConfig(FrozenModel):
    """Configuration for one chart analysis.

    :param symbol: Ticker to analyse (bare tickers resolve to the VN market).
    :param lookback: Historical range requested from the quote source.
    :param interval: Bar interval requested from the quote source.
    :param data_source: Quote source type ("yahoo" or "csv").
    :param source_params: Source-specific parameters.
    :param sma_period: Window of the simple moving average.
    :param ema_period: Period of the exponential moving average.
    :param rsi_period: Lookback of the RSI.
    :param oversold: RSI level below which a BUY fires.
    :param overbought: RSI level above which a SELL fires.
    :param show_sma: Whether the SMA is derived and projected.
    :param show_ema: Whether the EMA is derived and projected.
    :param show_rsi: Whether RSI values are projected.
    :param show_signals: Whether signals are derived and projected.
    :param zone_policy: Debounce behaviour when RSI re-enters the neutral band.
    :param recent_signal_count: Size of the recent-signals summary.
    :param log_level: Logging level.
    """

    symbol: str = ""
    lookback: str = "3mo"
    interval: str = "1d"
    data_source: str = "yahoo"
    source_params: dict[str, Any] = Field(default_factory=dict)
    sma_period: int = Field(default=20, gt=0)
    ema_period: int = Field(default=10, gt=0)
    rsi_period: int = Field(default=14, gt=0)
    oversold: float = Field(default=30.0, ge=0, le=100)
    overbought: float = Field(default=70.0, ge=0, le=100)
    show_sma: bool = True
    show_ema: bool = False
    show_rsi: bool = True
    show_signals: bool = True
    zone_policy: ZonePolicy = ZonePolicy.STICKY
    recent_signal_count: int = Field(default=3, ge=0)
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: Any) -> Any:
        if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(LOG_LEVELS)}")
        return value.upper()

    @model_validator(mode="after")
    def _check_thresholds(self) -> ChartConfig:
        if self.oversold >= self.overbought:
            raise ValueError("oversold must be below overbought")
        return self


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Type aliases
    "Symbol",
    "SessionDate",
    "IndicatorSeries",
    "LABEL_FORMAT",
    "LOG_LEVELS",
    # Base models
    "FrozenModel",
    # Market data
    "RawQuote",
    "PriceBar",
    "QuoteSummary",
    # Signals
    "SignalKind",
    "ZonePolicy",
    "Signal",
    # Projection
    "ChartRecord",
    "ChartView",
    # Configuration
    "ChartConfig",
]
