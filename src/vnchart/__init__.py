"""Technical chart engine for Vietnamese stocks."""

from vnchart.chart import build_chart, project_records
from vnchart.exceptions import ChartError, ConfigError
from vnchart.types import ChartConfig, ChartView, PriceBar

__all__ = [
    "build_chart",
    "project_records",
    "ChartConfig",
    "ChartView",
    "PriceBar",
    "ChartError",
    "ConfigError",
]
