"""CLI command implementations.

Each command module provides configuration loading and validation on top of
the core library functions.
"""

from vnchart.commands.chart import load_chart_config

__all__ = [
    "load_chart_config",
]
