"""Quote ingestion and series normalization."""

from vnchart.data.normalize import (MARKET_TZ, normalize_quotes,
                                    parse_chart_payload, summarize_quote)
from vnchart.data.sources import (CSVQuoteSource, QuoteSource,
                                  YahooQuoteSource, resolve_quote_source,
                                  resolve_symbol)

__all__ = [
    "MARKET_TZ",
    "normalize_quotes",
    "parse_chart_payload",
    "summarize_quote",
    "QuoteSource",
    "YahooQuoteSource",
    "CSVQuoteSource",
    "resolve_quote_source",
    "resolve_symbol",
]
