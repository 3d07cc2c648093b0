#!/usr/bin/env python3
"""Command-line interface for the technical chart engine."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from vnchart.types import LOG_LEVELS, ChartConfig, ChartView, ZonePolicy

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

SIGNAL_TEXT = {
    "BUY": "MUA (RSI < {oversold:g})",
    "SELL": "BÁN (RSI > {overbought:g})",
}


def configure_logging(level: str) -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _fmt(value: float | None) -> str:
    return "-" if value is None else f"{value:,.0f}"


def print_view(view: ChartView, config: ChartConfig, rows: int) -> None:
    """Print the tail of a chart view and its recent-signal summary."""
    print("=" * 72)
    print(f"CHART: {view.symbol or config.symbol}")
    print("=" * 72)
    print(
        f"SMA {config.sma_period} | EMA {config.ema_period} | "
        f"RSI {config.rsi_period} | policy={config.zone_policy.value}"
    )
    print(
        f"\n{'Date':<7} {'Close':>12} {'Volume':>12} {'SMA':>12} "
        f"{'EMA':>12} {'RSI':>5} {'Signal':>6}"
    )
    print("-" * 72)
    shown = view.records[-rows:] if rows > 0 else ()
    for record in shown:
        kind = record.signal_kind.value if record.signal_kind else ""
        print(
            f"{record.label:<7} {_fmt(record.close):>12} {record.volume:>12,} "
            f"{_fmt(record.sma):>12} {_fmt(record.ema):>12} "
            f"{_fmt(record.rsi):>5} {kind:>6}"
        )
    if len(view.records) > rows > 0:
        print(f"   ... {len(view.records) - rows} earlier bars not shown")

    print("\n📋 Recent signals:")
    if not view.recent:
        print("   No clear buy/sell signal in this period.")
    for signal in view.recent:
        text = SIGNAL_TEXT[signal.kind.value].format(
            oversold=config.oversold, overbought=config.overbought
        )
        print(f"   {signal.label}  {text:<18} @ {signal.price:,.0f}")


def run_chart(config: ChartConfig, rows: int = 10, as_json: bool = False) -> int:
    """Fetch quotes for ``config.symbol``, build the chart and print it."""
    from vnchart.chart import build_chart
    from vnchart.data import normalize_quotes, resolve_quote_source, resolve_symbol
    from vnchart.exceptions import DataSourceError

    try:
        symbol = resolve_symbol(config.symbol)
        source = resolve_quote_source(config.data_source, config.source_params)
        quotes = source.fetch_quotes(symbol, config.lookback, config.interval)
    except DataSourceError as e:
        print(f"Data source error: {e}")
        return 1

    bars = normalize_quotes(quotes)
    logger.info("Normalized %d of %d quotes for %s", len(bars), len(quotes), symbol)
    if not bars:
        print(f"No price data for {symbol}. Check the ticker and range.")
        return 1

    view = build_chart(bars, config, symbol=str(symbol))
    if as_json:
        print(view.model_dump_json(indent=2))
    else:
        print_view(view, config, rows)
    return 0


def cmd_chart(args: argparse.Namespace) -> int:
    """Build a chart from command-line options."""
    from pydantic import ValidationError

    source_params = {}
    if args.csv_path:
        source_params["file_path"] = args.csv_path

    try:
        config = ChartConfig(
            symbol=args.symbol,
            lookback=args.range,
            interval=args.interval,
            data_source=args.source,
            source_params=source_params,
            sma_period=args.sma,
            ema_period=args.ema,
            rsi_period=args.rsi,
            oversold=args.oversold,
            overbought=args.overbought,
            show_sma=not args.no_sma,
            show_ema=args.show_ema,
            show_rsi=not args.no_rsi,
            show_signals=not args.no_signals,
            zone_policy=ZonePolicy(args.policy),
            recent_signal_count=args.recent,
            log_level=args.log_level,
        )
    except ValidationError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(config.log_level)
    return run_chart(config, rows=args.rows, as_json=args.json)


def cmd_run(args: argparse.Namespace) -> int:
    """Build a chart from a YAML configuration file."""
    from vnchart.commands.chart import load_chart_config
    from vnchart.exceptions import ConfigError

    try:
        config = load_chart_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(config.log_level)
    return run_chart(config, rows=args.rows, as_json=args.json)


def cmd_quote(args: argparse.Namespace) -> int:
    """Print the latest price and daily change for one or more tickers."""
    from vnchart.data import YahooQuoteSource, resolve_symbol
    from vnchart.exceptions import DataSourceError

    source = YahooQuoteSource()
    print(f"{'Ticker':<10} {'Price':>12} {'Change':>10} {'%':>8}")
    print("-" * 44)
    status = 0
    for ticker in args.tickers:
        try:
            summary = source.fetch_summary(resolve_symbol(ticker), ticker=ticker.upper())
        except DataSourceError as e:
            print(f"{ticker.upper():<10} error: {e}")
            status = 1
            continue
        if summary is None:
            print(f"{ticker.upper():<10} {'(no data)':>12}")
            continue
        print(
            f"{summary.ticker:<10} {summary.current_price:>12,.0f} "
            f"{summary.change:>+10.2f} {summary.change_percent:>+7.2f}%"
        )
    return status


def cmd_check_analysis(args: argparse.Namespace) -> int:
    """Validate a saved AI analysis payload."""
    from vnchart.analysis import filter_news, parse_analysis_response
    from vnchart.exceptions import AnalysisResponseError

    path = Path(args.path)
    try:
        payload = path.read_bytes()
    except OSError as e:
        print(f"Failed to read analysis file: {e}")
        return 1

    try:
        result = parse_analysis_response(payload)
    except AnalysisResponseError as e:
        print(f"Invalid analysis: {e}")
        return 1

    forecast = result.price_forecast
    print("=" * 60)
    print("ANALYSIS")
    print("=" * 60)
    print(f"Recommendation: {result.recommendation.value}")
    print(
        f"Forecast:       {forecast.current_price:,.0f} -> {forecast.target_price:,.0f} "
        f"({forecast.upside_percent:+.2f}%, {forecast.timeframe}, {forecast.confidence.value})"
    )
    news = filter_news(result.news, args.category) if args.category else list(result.news)
    print(f"News items:     {len(news)}")
    for item in news[:10]:
        print(f"   [{item.category.value}] {item.title} ({item.source})")
    print(f"Sources:        {len(result.sources)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Technical chart engine for Vietnamese stocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Chart command
    chart_parser = subparsers.add_parser("chart", help="Build a chart for a ticker")
    chart_parser.add_argument("symbol", help="Ticker (e.g., FPT, VNM, HPG.VN)")
    chart_parser.add_argument(
        "--range", default="3mo", help="Historical range (default: 3mo)"
    )
    chart_parser.add_argument(
        "--interval", default="1d", help="Bar interval (default: 1d)"
    )
    chart_parser.add_argument(
        "--source", default="yahoo", choices=["yahoo", "csv"], help="Quote source"
    )
    chart_parser.add_argument("--csv-path", help="CSV file for the csv source")
    chart_parser.add_argument("--sma", type=int, default=20, help="SMA period")
    chart_parser.add_argument("--ema", type=int, default=10, help="EMA period")
    chart_parser.add_argument("--rsi", type=int, default=14, help="RSI period")
    chart_parser.add_argument(
        "--oversold", type=float, default=30, help="Oversold level"
    )
    chart_parser.add_argument(
        "--overbought", type=float, default=70, help="Overbought level"
    )
    chart_parser.add_argument(
        "--policy",
        default=ZonePolicy.STICKY.value,
        choices=[p.value for p in ZonePolicy],
        help="Signal debounce policy in the neutral band (default: sticky)",
    )
    chart_parser.add_argument(
        "--recent", type=int, default=3, help="Number of recent signals to list"
    )
    chart_parser.add_argument("--no-sma", action="store_true", help="Hide the SMA")
    chart_parser.add_argument("--show-ema", action="store_true", help="Show the EMA")
    chart_parser.add_argument("--no-rsi", action="store_true", help="Hide the RSI")
    chart_parser.add_argument(
        "--no-signals", action="store_true", help="Disable buy/sell signals"
    )
    chart_parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=sorted(LOG_LEVELS),
        help="Logging level (default: WARNING)",
    )

    # Run command
    run_parser = subparsers.add_parser(
        "run", help="Build a chart from a configuration file"
    )
    run_parser.add_argument("config", help="Path to YAML configuration file")

    for sub in (chart_parser, run_parser):
        sub.add_argument(
            "-n", "--rows", type=int, default=10, help="Bars to print (default: 10)"
        )
        sub.add_argument("--json", action="store_true", help="Print the view as JSON")

    # Quote command
    quote_parser = subparsers.add_parser(
        "quote", help="Show latest prices for tickers"
    )
    quote_parser.add_argument("tickers", nargs="+", help="Tickers to look up")

    # Check analysis command
    check_parser = subparsers.add_parser(
        "check-analysis", help="Validate a saved AI analysis payload"
    )
    check_parser.add_argument("path", help="Path to the JSON payload")
    check_parser.add_argument("--category", help="Only list news in this category")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "chart":
        return cmd_chart(args)
    elif args.command == "run":
        return cmd_run(args)
    elif args.command == "quote":
        return cmd_quote(args)
    elif args.command == "check-analysis":
        return cmd_check_analysis(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
