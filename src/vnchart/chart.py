"""Chart projection and the indicator pipeline entry point.

:func:`build_chart` runs bars through the indicator library and the signal
generator and merges everything into :class:`~vnchart.types.ChartRecord`
rows. Every call derives fresh series from its input; nothing is cached or
shared between calls.
"""

from __future__ import annotations

from typing import Sequence

from vnchart.indicators import ema, round_price, rsi, sma
from vnchart.signals import generate_signals, recent_signals
from vnchart.types import (ChartConfig, ChartRecord, ChartView,
                           IndicatorSeries, PriceBar, Signal)


def _blank(n: int) -> IndicatorSeries:
    return (None,) * n


def project_records(
    bars: Sequence[PriceBar],
    sma_series: IndicatorSeries | None = None,
    ema_series: IndicatorSeries | None = None,
    rsi_series: IndicatorSeries | None = None,
    signals: Sequence[Signal] = (),
) -> tuple[ChartRecord, ...]:
    """Merge bars, indicator series and signals into chart records.

    Omitted series project as absent values. RSI is rounded for display.

    :param bars: Bars in ascending date order.
    :param sma_series: SMA aligned with ``bars``.
    :param ema_series: EMA aligned with ``bars``.
    :param rsi_series: RSI aligned with ``bars``.
    :param signals: Signals indexed into ``bars``.
    :returns: One record per bar.
    :raises ValueError: If a series is not aligned with ``bars`` or a signal
        points outside them.
    """
    n = len(bars)
    columns = {
        "sma": sma_series if sma_series is not None else _blank(n),
        "ema": ema_series if ema_series is not None else _blank(n),
        "rsi": rsi_series if rsi_series is not None else _blank(n),
    }
    for name, series in columns.items():
        if len(series) != n:
            raise ValueError(f"{name} series length {len(series)} does not match {n} bars")

    by_index: dict[int, Signal] = {}
    for signal in signals:
        if not 0 <= signal.index < n:
            raise ValueError(f"Signal index {signal.index} outside {n} bars")
        by_index[signal.index] = signal

    records = []
    for i, bar in enumerate(bars):
        signal = by_index.get(i)
        rsi_value = columns["rsi"][i]
        records.append(
            ChartRecord(
                date=bar.date,
                label=bar.label,
                price=bar.close,
                open=bar.open,
                high=bar.high,
                low=bar.low,
                close=bar.close,
                volume=bar.volume,
                sma=columns["sma"][i],
                ema=columns["ema"][i],
                rsi=round_price(rsi_value) if rsi_value is not None else None,
                signal=signal.price if signal else None,
                signal_kind=signal.kind if signal else None,
            )
        )
    return tuple(records)


def build_chart(
    bars: Sequence[PriceBar],
    config: ChartConfig | None = None,
    symbol: str | None = None,
) -> ChartView:
    """Run the full indicator pipeline over a bar sequence.

    Toggles in ``config`` decide which series are derived. RSI is derived
    whenever either the RSI panel or signals are enabled, but only projected
    when the panel is.

    :param bars: Normalized bars in ascending date order.
    :param config: Periods, thresholds and toggles (defaults when omitted).
    :param symbol: Symbol to record on the view.
    :returns: Records, all signals and the recent-signal summary.
    """
    config = config or ChartConfig()
    bars = tuple(bars)

    sma_series = sma(bars, config.sma_period) if config.show_sma else None
    ema_series = ema(bars, config.ema_period) if config.show_ema else None
    rsi_series = None
    if config.show_rsi or config.show_signals:
        rsi_series = rsi(bars, config.rsi_period)

    signals: tuple[Signal, ...] = ()
    if config.show_signals and rsi_series is not None:
        signals = generate_signals(
            bars,
            rsi_series,
            oversold=config.oversold,
            overbought=config.overbought,
            policy=config.zone_policy,
        )

    records = project_records(
        bars,
        sma_series=sma_series,
        ema_series=ema_series,
        rsi_series=rsi_series if config.show_rsi else None,
        signals=signals,
    )
    return ChartView(
        symbol=symbol or config.symbol or None,
        records=records,
        signals=signals,
        recent=recent_signals(signals, config.recent_signal_count),
    )


__all__ = ["project_records", "build_chart"]
