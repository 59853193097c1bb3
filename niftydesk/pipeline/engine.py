"""Dashboard engine: wires providers and services from config.yaml.

One engine instance is meant to live for the whole process so that both
services keep their in-memory caches between refreshes. The route layer (or
``run_dashboard.py``) calls :meth:`DashboardEngine.refresh` on each poll.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from niftydesk.core.config import get_setting
from niftydesk.core.errors import AllProvidersFailedError, ConfigError
from niftydesk.core.logger import logger
from niftydesk.core.pacing import RateLimiter
from niftydesk.models.datatypes import MarketSnapshot, ProcessedNewsSignal
from niftydesk.pipeline.market_service import MARKET_CACHE_TTL_SECONDS, MarketDataService
from niftydesk.pipeline.news_service import (
    AI_MIN_INTERVAL_SECONDS,
    MAX_ARTICLES,
    NEWS_CACHE_TTL_SECONDS,
    NewsAggregationService,
)
from niftydesk.providers.history import (
    DEFAULT_HISTORY_DAYS,
    PriceHistorySource,
    SampledHistorySource,
    YFinanceHistorySource,
)
from niftydesk.providers.market import NSEProvider, YahooFinanceProvider
from niftydesk.providers.news import (
    BusinessStandardProvider,
    EconomicTimesProvider,
    MoneyControlProvider,
)
from niftydesk.providers.sentiment import DEFAULT_MODEL, GeminiCompletionBackend, NewsAnalyzer


@dataclass
class DashboardRefresh:
    """Result of one poll. ``market`` is None when no quote could be served."""
    market: Optional[MarketSnapshot]
    signals: List[ProcessedNewsSignal] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market": self.market.to_dict() if self.market else None,
            "signals": [s.to_dict() for s in self.signals],
            "errors": list(self.errors),
        }


def build_history_source(config: Dict[str, Any]) -> PriceHistorySource:
    kind = get_setting(config, "market.history_source", "sampled")
    days = int(get_setting(config, "market.history_days", DEFAULT_HISTORY_DAYS))
    if kind == "sampled":
        return SampledHistorySource(days=days)
    if kind == "yfinance":
        return YFinanceHistorySource(days=days)
    raise ConfigError(f"Unknown market.history_source: '{kind}' (expected 'sampled' or 'yfinance')")


def build_market_service(config: Dict[str, Any]) -> MarketDataService:
    return MarketDataService(
        providers=[NSEProvider(), YahooFinanceProvider()],
        history=build_history_source(config),
        cache_ttl_seconds=float(get_setting(config, "market.cache_ttl_seconds", MARKET_CACHE_TTL_SECONDS)),
    )


def build_news_service(config: Dict[str, Any]) -> NewsAggregationService:
    backend = GeminiCompletionBackend(model=get_setting(config, "ai.model", DEFAULT_MODEL))
    interval_ms = float(get_setting(config, "news.ai_min_interval_ms", AI_MIN_INTERVAL_SECONDS * 1000))
    return NewsAggregationService(
        providers=[EconomicTimesProvider(), MoneyControlProvider(), BusinessStandardProvider()],
        analyzer=NewsAnalyzer(backend),
        limiter=RateLimiter(interval_ms / 1000),
        cache_ttl_seconds=float(get_setting(config, "news.cache_ttl_seconds", NEWS_CACHE_TTL_SECONDS)),
        max_articles=int(get_setting(config, "news.max_articles", MAX_ARTICLES)),
    )


class DashboardEngine:
    """Owns the market and news services for one process.

    Args:
        config: Parsed config.yaml dict.
        market: Pre-built market service (built from config when omitted).
        news: Pre-built news service (built from config when omitted).
    """

    def __init__(
        self,
        config: Dict[str, Any],
        market: Optional[MarketDataService] = None,
        news: Optional[NewsAggregationService] = None,
    ) -> None:
        self.config = config
        self.market = market or build_market_service(config)
        self.news = news or build_news_service(config)

    def refresh(self, use_cache: bool = True) -> DashboardRefresh:
        """Poll both services. A market outage is reported, not raised."""
        errors: List[str] = []
        try:
            snapshot: Optional[MarketSnapshot] = self.market.fetch_market_data(use_cache=use_cache)
        except AllProvidersFailedError as exc:
            logger.error(f"DashboardEngine: market data unavailable: {exc}")
            snapshot = None
            errors.append(exc.message)

        signals = self.news.aggregate(use_cache=use_cache)
        return DashboardRefresh(market=snapshot, signals=signals, errors=errors)
