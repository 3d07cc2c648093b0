"""Indicator computation over a bar sequence.

Every function returns an :data:`~vnchart.types.IndicatorSeries` aligned
index-for-index with the input bars. Slots without enough history hold
``None``; an empty or short input never raises.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence

from vnchart.types import IndicatorSeries, PriceBar


def round_price(value: float) -> float:
    """Round half-up to the nearest whole price unit."""
    return float(math.floor(value + 0.5))


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError("period must be positive")


def sma(bars: Sequence[PriceBar], period: int = 20) -> IndicatorSeries:
    """Simple moving average of the close, rounded to the price unit.

    :param bars: Bars in ascending date order.
    :param period: Trailing window length.
    :returns: Series with ``None`` for the first ``period - 1`` slots.
    """
    _check_period(period)
    closes = [bar.close for bar in bars]
    values: list[float | None] = []
    for i in range(len(closes)):
        if i < period - 1:
            values.append(None)
            continue
        window = closes[i - period + 1 : i + 1]
        values.append(round_price(sum(window) / period))
    return tuple(values)


def ema(bars: Sequence[PriceBar], period: int = 10) -> IndicatorSeries:
    """Exponential moving average of the close with ``k = 2 / (period + 1)``.

    The recursion is seeded with the first close rather than a period-length
    warm-up, so early values lean toward price. Downstream consumers rely on
    this seeding; keep it.

    :param bars: Bars in ascending date order.
    :param period: Smoothing period.
    :returns: Series defined at every index; index 0 equals the first close.
    """
    _check_period(period)
    k = 2 / (period + 1)
    values: list[float | None] = []
    prev: float | None = None
    for bar in bars:
        if prev is None:
            prev = bar.close
            values.append(bar.close)
            continue
        # Carry the unrounded value forward; only the output is rounded.
        prev = bar.close * k + prev * (1 - k)
        values.append(round_price(prev))
    return tuple(values)


class WilderState(NamedTuple):
    """State carried between RSI steps.

    During the seed band ``avg_gain``/``avg_loss`` hold raw sums; from index
    ``period`` onward they hold Wilder-smoothed averages.
    """

    index: int = 0
    avg_gain: float = 0.0
    avg_loss: float = 0.0


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    # Zero average loss maps to RS = 100 rather than infinity.
    rs = 100.0 if avg_loss == 0 else avg_gain / avg_loss
    return 100 - 100 / (1 + rs)


def wilder_step(
    state: WilderState, delta: float, period: int
) -> tuple[WilderState, float | None]:
    """Advance the RSI fold by one close-to-close delta.

    :param state: State after the previous delta.
    :param delta: ``close[i] - close[i - 1]``.
    :param period: RSI lookback.
    :returns: The new state and the RSI at this index, or ``None`` while
        still inside the seed band.
    """
    index = state.index + 1
    gain = max(delta, 0.0)
    loss = max(-delta, 0.0)

    if index < period:
        return WilderState(index, state.avg_gain + gain, state.avg_loss + loss), None

    if index == period:
        avg_gain = (state.avg_gain + gain) / period
        avg_loss = (state.avg_loss + loss) / period
    else:
        avg_gain = (state.avg_gain * (period - 1) + gain) / period
        avg_loss = (state.avg_loss * (period - 1) + loss) / period

    return WilderState(index, avg_gain, avg_loss), _rsi_from_averages(avg_gain, avg_loss)


def rsi(bars: Sequence[PriceBar], period: int = 14) -> IndicatorSeries:
    """Wilder-smoothed Relative Strength Index of the close.

    Index 0 is always ``None`` (no prior close), as are indices below
    ``period``. Defined values lie in ``[0, 100]``.

    :param bars: Bars in ascending date order.
    :param period: RSI lookback.
    :returns: Series aligned with ``bars``.
    """
    _check_period(period)
    if not bars:
        return ()

    values: list[float | None] = [None]
    state = WilderState()
    for prev_bar, bar in zip(bars, bars[1:]):
        state, value = wilder_step(state, bar.close - prev_bar.close, period)
        values.append(value)
    return tuple(values)


__all__ = ["round_price", "sma", "ema", "rsi", "WilderState", "wilder_step"]
