"""Validated schema for AI-generated stock analysis payloads.

The analysis service answers with loosely typed JSON. Everything that crosses
into the application goes through the models here first: required fields
must be present, enumerations must match, and malformed payloads raise
:class:`~vnchart.exceptions.AnalysisResponseError` instead of leaking
half-filled objects to the presentation layer.

Wire names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from pydantic import (BaseModel, ConfigDict, Field, TypeAdapter,
                      ValidationError, field_validator)
from pydantic.alias_generators import to_camel

from vnchart.exceptions import AnalysisResponseError

logger = logging.getLogger(__name__)

# Pseudo-category meaning "no filter" in news listings.
ALL_CATEGORIES = "Tất cả"

DEFAULT_SOURCE_TITLE = "Nguồn tin"

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class WireModel(BaseModel):
    """Frozen model that reads and writes camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Recommendation(str, Enum):
    """Overall call of an analysis."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    NEUTRAL = "NEUTRAL"


class Confidence(str, Enum):
    """Confidence attached to a price forecast."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NewsCategory(str, Enum):
    """Fixed set of news categories."""

    EARNINGS = "Kết quả kinh doanh"
    DIVIDEND = "Cổ tức"
    MACRO = "Vĩ mô"
    TRADING = "Giao dịch"
    GENERAL = "Tin chung"


class FinancialRatios(WireModel):
    """Headline valuation ratios; every field is optional.

    :param pe: Price to earnings.
    :param eps: Earnings per share.
    :param roe: Return on equity, as reported (e.g. ``"18.5%"``).
    :param pb: Price to book.
    :param dividend_yield: Dividend yield, as reported.
    :param market_cap: Market capitalisation, as reported.
    """

    pe: float | None = None
    eps: float | None = None
    roe: str | None = None
    pb: float | None = None
    dividend_yield: str | None = None
    market_cap: str | None = None

    @field_validator("roe", "dividend_yield", "market_cap", mode="before")
    @classmethod
    def _number_to_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class PriceForecast(WireModel):
    """Target price forecast.

    :param target_price: Forecast price at the end of ``timeframe``.
    :param current_price: Price the forecast was made against.
    :param timeframe: Free-text horizon, e.g. ``"3-6 tháng"``.
    :param confidence: Forecast confidence.
    :param reasoning: Short justification.
    """

    target_price: float = Field(gt=0)
    current_price: float = Field(gt=0)
    timeframe: str
    confidence: Confidence
    reasoning: str

    @property
    def upside_percent(self) -> float:
        """Percentage move from current to target price."""
        return (self.target_price - self.current_price) / self.current_price * 100


class NewsItem(WireModel):
    """One news headline.

    Unknown categories fall back to :attr:`NewsCategory.GENERAL`.
    """

    title: str
    source: str
    url: str
    time: str
    category: NewsCategory = NewsCategory.GENERAL

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: Any) -> Any:
        valid = {c.value for c in NewsCategory}
        if not isinstance(value, str) or value not in valid:
            logger.debug("Unknown news category %r, using default", value)
            return NewsCategory.GENERAL
        return value


class GroundingLink(WireModel):
    """Web page the analysis was grounded on."""

    uri: str
    title: str = DEFAULT_SOURCE_TITLE


class MarketIndex(WireModel):
    """Snapshot of one market index (VN-INDEX, HNX-INDEX, ...)."""

    name: str
    value: float
    change: float
    change_percent: float


class AnalysisResult(WireModel):
    """Full AI analysis of one ticker.

    :param summary: Overall summary.
    :param technical_analysis: Technical commentary.
    :param fundamental_analysis: Fundamental commentary.
    :param risks: Key risks.
    :param recommendation: Overall call.
    :param financial_ratios: Headline ratios.
    :param price_forecast: Target price forecast.
    :param news: Related news.
    :param sources: Web pages the analysis was grounded on.
    """

    summary: str
    technical_analysis: str
    fundamental_analysis: str
    risks: str
    recommendation: Recommendation
    financial_ratios: FinancialRatios
    price_forecast: PriceForecast
    news: tuple[NewsItem, ...]
    sources: tuple[GroundingLink, ...] = ()


_MARKET_OVERVIEW = TypeAdapter(list[MarketIndex])
_NEWS_LIST = TypeAdapter(list[NewsItem])


def _load_json(payload: str | bytes | Mapping[str, Any] | Sequence[Any]) -> Any:
    """Decode a payload, tolerating a surrounding markdown code fence."""
    if not isinstance(payload, (str, bytes)):
        return payload
    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise AnalysisResponseError(f"Analysis response is not valid UTF-8: {e}") from e
    else:
        text = payload
    match = _FENCE.match(text)
    if match:
        text = match.group(1)
    if not text.strip():
        raise AnalysisResponseError("Analysis response is empty")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisResponseError(f"Analysis response is not valid JSON: {e}") from e


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def grounding_links(chunks: Iterable[Mapping[str, Any]] | None) -> tuple[GroundingLink, ...]:
    """Extract web grounding links from grounding metadata chunks.

    Chunks without a ``web`` entry or without a URI are skipped.
    """
    links = []
    for chunk in chunks or ():
        web = chunk.get("web") if isinstance(chunk, Mapping) else None
        if not isinstance(web, Mapping) or not web.get("uri"):
            continue
        links.append(
            GroundingLink(uri=web["uri"], title=web.get("title") or DEFAULT_SOURCE_TITLE)
        )
    return tuple(links)


def parse_analysis_response(
    payload: str | bytes | Mapping[str, Any],
    grounding_chunks: Iterable[Mapping[str, Any]] | None = None,
) -> AnalysisResult:
    """Validate an analysis payload and attach its grounding sources.

    :param payload: JSON text (optionally fenced) or an already decoded mapping.
    :param grounding_chunks: Grounding metadata chunks from the same response.
    :returns: Validated analysis.
    :raises AnalysisResponseError: If the payload is not JSON or fails the schema.
    """
    data = _load_json(payload)
    if not isinstance(data, Mapping):
        raise AnalysisResponseError("Analysis response must be a JSON object")

    data = dict(data)
    links = grounding_links(grounding_chunks)
    if links:
        data["sources"] = [link.model_dump() for link in links]

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise AnalysisResponseError(f"Invalid analysis response: {_describe(e)}") from e


def parse_market_overview(payload: str | bytes | Sequence[Any]) -> list[MarketIndex]:
    """Validate a market overview payload (a JSON array of indices).

    :raises AnalysisResponseError: If the payload is malformed.
    """
    data = _load_json(payload)
    try:
        return _MARKET_OVERVIEW.validate_python(data)
    except ValidationError as e:
        raise AnalysisResponseError(f"Invalid market overview: {_describe(e)}") from e


def parse_news_items(payload: str | bytes | Sequence[Any]) -> list[NewsItem]:
    """Validate a news search payload (a JSON array of news items).

    :raises AnalysisResponseError: If the payload is malformed.
    """
    data = _load_json(payload)
    try:
        return _NEWS_LIST.validate_python(data)
    except ValidationError as e:
        raise AnalysisResponseError(f"Invalid news list: {_describe(e)}") from e


def filter_news(items: Iterable[NewsItem], category: str = ALL_CATEGORIES) -> list[NewsItem]:
    """Return the items in ``category``; :data:`ALL_CATEGORIES` keeps everything."""
    if category == ALL_CATEGORIES:
        return list(items)
    return [item for item in items if item.category.value == category]


__all__ = [
    "ALL_CATEGORIES",
    "Recommendation",
    "Confidence",
    "NewsCategory",
    "FinancialRatios",
    "PriceForecast",
    "NewsItem",
    "GroundingLink",
    "MarketIndex",
    "AnalysisResult",
    "grounding_links",
    "parse_analysis_response",
    "parse_market_overview",
    "parse_news_items",
    "filter_news",
]
