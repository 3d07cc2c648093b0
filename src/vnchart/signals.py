"""RSI threshold signal generation.

Signals come from a single left-to-right fold over the RSI series. The only
state carried between bars is the kind of the last emitted signal, which
debounces repeats while RSI stays in the same extreme zone.
"""

from __future__ import annotations

from functools import reduce
from typing import NamedTuple, Sequence

from vnchart.types import IndicatorSeries, PriceBar, Signal, SignalKind, ZonePolicy

DEFAULT_OVERSOLD = 30.0
DEFAULT_OVERBOUGHT = 70.0
DEFAULT_RECENT_COUNT = 3


class _Scan(NamedTuple):
    """Fold accumulator: last emitted kind (debounce) and signals so far."""

    last: SignalKind | None
    signals: list[Signal]


def classify(
    value: float | None,
    last: SignalKind | None,
    oversold: float = DEFAULT_OVERSOLD,
    overbought: float = DEFAULT_OVERBOUGHT,
    policy: ZonePolicy = ZonePolicy.STICKY,
) -> tuple[SignalKind | None, SignalKind | None]:
    """Decide the signal for one RSI reading.

    :param value: RSI at this index, or ``None`` when undefined.
    :param last: Kind of the last emitted signal (debounce state).
    :param oversold: Strict lower threshold for BUY.
    :param overbought: Strict upper threshold for SELL.
    :param policy: Neutral-band behaviour of the debounce state.
    :returns: ``(emitted, new_last)`` where ``emitted`` is ``None`` when no
        signal fires.
    """
    if value is None:
        return None, last
    if value < oversold:
        if last is SignalKind.BUY:
            return None, last
        return SignalKind.BUY, SignalKind.BUY
    if value > overbought:
        if last is SignalKind.SELL:
            return None, last
        return SignalKind.SELL, SignalKind.SELL
    if policy is ZonePolicy.RESET:
        return None, None
    return None, last


def generate_signals(
    bars: Sequence[PriceBar],
    rsi_series: IndicatorSeries,
    oversold: float = DEFAULT_OVERSOLD,
    overbought: float = DEFAULT_OVERBOUGHT,
    policy: ZonePolicy = ZonePolicy.STICKY,
) -> tuple[Signal, ...]:
    """Scan RSI once and emit debounced BUY/SELL signals.

    A BUY fires when RSI drops below ``oversold`` unless the last signal was
    already a BUY; SELL mirrors this above ``overbought``. Undefined RSI slots
    never signal and leave the state untouched.

    :param bars: Bars the RSI was computed from.
    :param rsi_series: RSI aligned with ``bars``.
    :param oversold: BUY threshold.
    :param overbought: SELL threshold.
    :param policy: Whether the neutral band re-arms both kinds.
    :returns: Signals in bar order, at most one per index.
    :raises ValueError: If the two sequences are not aligned.
    """
    if len(bars) != len(rsi_series):
        raise ValueError(
            f"RSI series length {len(rsi_series)} does not match {len(bars)} bars"
        )

    def step(scan: _Scan, item: tuple[int, PriceBar, float | None]) -> _Scan:
        index, bar, value = item
        emitted, last = classify(value, scan.last, oversold, overbought, policy)
        if emitted is None:
            return _Scan(last, scan.signals)
        scan.signals.append(
            Signal(index=index, kind=emitted, price=bar.close, date=bar.date)
        )
        return _Scan(last, scan.signals)

    items = ((i, bar, value) for i, (bar, value) in enumerate(zip(bars, rsi_series)))
    return tuple(reduce(step, items, _Scan(None, [])).signals)


def recent_signals(
    signals: Sequence[Signal], count: int = DEFAULT_RECENT_COUNT
) -> tuple[Signal, ...]:
    """Return the ``count`` most recent signals, newest first."""
    if count <= 0:
        return ()
    return tuple(reversed(signals))[:count]


__all__ = [
    "DEFAULT_OVERSOLD",
    "DEFAULT_OVERBOUGHT",
    "DEFAULT_RECENT_COUNT",
    "classify",
    "generate_signals",
    "recent_signals",
]
