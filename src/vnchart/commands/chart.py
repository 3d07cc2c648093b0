"""Configuration loading for the chart command.

Example config file (chart.yaml):

    symbol: "FPT"
    lookback: "6mo"
    interval: "1d"
    data_source: "yahoo"
    source_params: {}
    indicators:
      sma_period: 20
      ema_period: 10
      rsi_period: 14
    signals:
      enabled: true
      oversold: 30
      overbought: 70
      zone_policy: "sticky"   # or "reset"
      recent: 3
    display:
      show_sma: true
      show_ema: false
      show_rsi: true
    logging:
      level: "INFO"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from vnchart.exceptions import ConfigError
from vnchart.types import LOG_LEVELS, ChartConfig, ZonePolicy

# Valid quote source types
VALID_DATA_SOURCES = frozenset(["yahoo", "csv"])

_TOP_LEVEL_KEYS = frozenset([
    "symbol", "lookback", "interval", "data_source", "source_params",
    "indicators", "signals", "display", "logging",
])


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _int_field(section: dict[str, Any], key: str, path: str) -> int | None:
    if key not in section:
        return None
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"'{path}' must be a positive integer")
    return value


def _bool_field(section: dict[str, Any], key: str, path: str) -> bool | None:
    if key not in section:
        return None
    value = section[key]
    if not isinstance(value, bool):
        raise ConfigError(f"'{path}' must be a boolean")
    return value


def _level_field(section: dict[str, Any], key: str, path: str) -> float | None:
    if key not in section:
        return None
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{path}' must be a number")
    if not 0 <= value <= 100:
        raise ConfigError(f"'{path}' must be between 0 and 100")
    return float(value)


def load_chart_config(config_path: str | Path) -> ChartConfig:
    """Parse and validate a chart configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated ChartConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    # Read and parse YAML
    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    unknown = sorted(set(raw_config) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    # Parse symbol (required)
    symbol = raw_config.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        raise ConfigError("'symbol' must be a non-empty string")

    kwargs: dict[str, Any] = {"symbol": symbol.strip()}

    for key in ("lookback", "interval"):
        if key in raw_config:
            value = raw_config[key]
            if not isinstance(value, str) or not value:
                raise ConfigError(f"'{key}' must be a non-empty string")
            kwargs[key] = value

    # Parse data_source
    data_source = raw_config.get("data_source", "yahoo")
    if data_source not in VALID_DATA_SOURCES:
        raise ConfigError(
            f"Invalid data_source '{data_source}'. "
            f"Valid options: {sorted(VALID_DATA_SOURCES)}"
        )
    kwargs["data_source"] = data_source

    # Parse source_params (optional)
    source_params = raw_config.get("source_params", {}) or {}
    if not isinstance(source_params, dict):
        raise ConfigError("'source_params' must be a mapping")
    if data_source == "csv" and not source_params.get("file_path"):
        raise ConfigError("'source_params.file_path' is required for the csv source")
    kwargs["source_params"] = source_params

    # Parse indicators
    indicators = _section(raw_config, "indicators")
    for key in ("sma_period", "ema_period", "rsi_period"):
        value = _int_field(indicators, key, f"indicators.{key}")
        if value is not None:
            kwargs[key] = value

    # Parse signals
    signals = _section(raw_config, "signals")
    enabled = _bool_field(signals, "enabled", "signals.enabled")
    if enabled is not None:
        kwargs["show_signals"] = enabled
    for key in ("oversold", "overbought"):
        value = _level_field(signals, key, f"signals.{key}")
        if value is not None:
            kwargs[key] = value
    if "zone_policy" in signals:
        policy = signals["zone_policy"]
        valid_policies = [p.value for p in ZonePolicy]
        if policy not in valid_policies:
            raise ConfigError(
                f"Invalid signals.zone_policy '{policy}'. Valid options: {valid_policies}"
            )
        kwargs["zone_policy"] = ZonePolicy(policy)
    if "recent" in signals:
        recent = signals["recent"]
        if isinstance(recent, bool) or not isinstance(recent, int) or recent < 0:
            raise ConfigError("'signals.recent' must be a non-negative integer")
        kwargs["recent_signal_count"] = recent

    # Parse display toggles
    display = _section(raw_config, "display")
    for key in ("show_sma", "show_ema", "show_rsi"):
        value = _bool_field(display, key, f"display.{key}")
        if value is not None:
            kwargs[key] = value

    # Parse logging (optional)
    raw_logging = _section(raw_config, "logging")
    log_level = str(raw_logging.get("level", "INFO")).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(
            f"Invalid logging.level '{log_level}'. "
            f"Valid options: {sorted(LOG_LEVELS)}"
        )
    kwargs["log_level"] = log_level

    try:
        return ChartConfig(**kwargs)
    except ValidationError as e:
        raise ConfigError(f"Invalid chart configuration: {e}") from e
