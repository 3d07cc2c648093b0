"""Exception hierarchy for the chart engine and its collaborators.

All package-specific exceptions derive from :class:`ChartError` so callers can
catch every chart-related error uniformly. The indicator pipeline itself never
raises for empty or short series; these exceptions belong to the configuration
layer and to the adapters around the pipeline.
"""

from __future__ import annotations


class ChartError(Exception):
    """Base class for chart-related exceptions."""


class ConfigError(ChartError):
    """Raised when configuration files or parameters are invalid."""


class DataSourceError(ChartError):
    """Raised when accessing or processing a quote source fails."""


class DataValidationError(ChartError):
    """Raised when data fails validation checks.

    Named DataValidationError to avoid conflict with pydantic's ValidationError.
    """


class AnalysisResponseError(DataValidationError):
    """Raised when an AI analysis payload is malformed or incomplete."""


__all__ = [
    "ChartError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
    "AnalysisResponseError",
]
