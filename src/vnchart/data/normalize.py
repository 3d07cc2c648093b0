"""Series normalization: untrusted upstream quotes to validated price bars.

Records without a usable close are dropped, never interpolated. Everything
else is repaired in place of rejection so that one bad field does not cost a
whole session.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

from vnchart.indicators import round_price
from vnchart.types import PriceBar, QuoteSummary, RawQuote, SessionDate

logger = logging.getLogger(__name__)

# Vietnamese exchanges trade on Indochina Time, which has no DST.
MARKET_TZ = timezone(timedelta(hours=7), name="ICT")


def _usable_price(value: float | None) -> float | None:
    """Return ``value`` if it is a finite positive price, else ``None``."""
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _usable_volume(value: float | None) -> int:
    if value is None:
        return 0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


def _to_bar(quote: RawQuote, tz: timezone) -> PriceBar | None:
    close = _usable_price(quote.adj_close)
    if close is None:
        close = _usable_price(quote.close)
    if close is None:
        return None

    open_ = _usable_price(quote.open) or close
    high = _usable_price(quote.high) or close
    low = _usable_price(quote.low) or close

    # An adjusted close can fall outside the raw session range; widen the
    # range so the bar stays internally consistent.
    high = max(high, open_, close)
    low = min(low, open_, close)

    ts = quote.timestamp
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)

    return PriceBar(
        date=ts.astimezone(tz).date(),
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=_usable_volume(quote.volume),
    )


def normalize_quotes(
    quotes: Iterable[RawQuote],
    tz: timezone = MARKET_TZ,
) -> list[PriceBar]:
    """Convert raw quotes into an ordered, gap-free list of price bars.

    :param quotes: Quotes as returned by a quote source.
    :param tz: Market timezone used to derive each session's calendar date.
    :returns: Bars ascending by date, one per date. Empty input gives ``[]``.
    """
    by_date: dict[SessionDate, PriceBar] = {}
    total = 0
    for quote in quotes:
        total += 1
        bar = _to_bar(quote, tz)
        if bar is None:
            continue
        # Later records for the same session replace earlier ones.
        by_date[bar.date] = bar

    bars = [by_date[d] for d in sorted(by_date)]
    dropped = total - len(bars)
    if dropped:
        logger.debug("Dropped %d of %d quotes during normalization", dropped, total)
    return bars


# ---------------------------------------------------------------------------
# Chart payload adapter
# ---------------------------------------------------------------------------


def _at(values: list[Any] | None, index: int) -> Any:
    if not values or index >= len(values):
        return None
    return values[index]


def parse_chart_payload(payload: Mapping[str, Any] | None) -> list[RawQuote]:
    """Extract raw quotes from a finance chart JSON response.

    Expects the ``chart.result[0]`` layout with a ``timestamp`` array (epoch
    seconds), ``indicators.quote[0]`` OHLCV arrays and an optional
    ``indicators.adjclose[0].adjclose`` array. Arrays shorter than the
    timestamp array are treated as padded with nulls.

    :param payload: Decoded JSON response.
    :returns: Quotes in payload order, or ``[]`` when the payload has no result.
    """
    if not isinstance(payload, Mapping):
        return []
    chart = payload.get("chart")
    if not isinstance(chart, Mapping):
        return []
    results = chart.get("result")
    if not results:
        return []

    result = results[0] or {}
    timestamps = result.get("timestamp") or []
    if not timestamps:
        return []

    indicators = result.get("indicators") or {}
    quote = (indicators.get("quote") or [{}])[0] or {}
    adjclose = ((indicators.get("adjclose") or [{}])[0] or {}).get("adjclose")

    quotes: list[RawQuote] = []
    for i, ts in enumerate(timestamps):
        if ts is None:
            continue
        quotes.append(
            RawQuote(
                timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                open=_at(quote.get("open"), i),
                high=_at(quote.get("high"), i),
                low=_at(quote.get("low"), i),
                close=_at(quote.get("close"), i),
                adj_close=_at(adjclose, i),
                volume=_at(quote.get("volume"), i),
            )
        )
    return quotes


def summarize_quote(meta: Mapping[str, Any] | None, ticker: str) -> QuoteSummary | None:
    """Build a latest-price summary from chart metadata.

    :param meta: Mapping with ``regularMarketPrice`` and ``previousClose``.
    :param ticker: Ticker to report in the summary.
    :returns: Summary, or ``None`` when either price is missing or the
        previous close is zero.
    """
    if not meta:
        return None
    price = meta.get("regularMarketPrice")
    prev_close = meta.get("previousClose")
    if price is None or prev_close is None or prev_close == 0:
        return None

    change = price - prev_close
    return QuoteSummary(
        ticker=ticker,
        current_price=round_price(price),
        change=round(change, 2),
        change_percent=round(change / prev_close * 100, 2),
    )


__all__ = [
    "MARKET_TZ",
    "normalize_quotes",
    "parse_chart_payload",
    "summarize_quote",
]
