"""Data structures for the market-data and news-signal pipelines."""

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

NEWS_CATEGORIES = ("Macro", "Earnings", "Policy", "Technical")


@dataclass(frozen=True)
class RawQuote:
    """
    A single index quote as reported by one upstream provider.
    """
    symbol: str
    price: float
    change: float
    change_percent: float  # percentage points, e.g. 0.42 for +0.42%
    open: float
    high: float
    low: float
    previous_close: float
    volume: int
    timestamp: datetime


@dataclass(frozen=True)
class MacdResult:
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(frozen=True)
class TechnicalIndicators:
    """
    Indicators recomputed from scratch on every fetch cycle.
    """
    vwap: float
    sma50: float
    ema9: float
    ema21: float
    rsi: float
    macd: MacdResult
    vix: float


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Quote plus indicators, stamped with the provider that served it.
    """
    quote: RawQuote
    indicators: TechnicalIndicators
    source: str
    last_updated: datetime

    def with_source(self, source: str) -> "MarketSnapshot":
        return replace(self, source=source)

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON-ready payload in the dashboard's camelCase shape."""
        q, ind = self.quote, self.indicators
        return {
            "symbol": q.symbol,
            "price": q.price,
            "change": q.change,
            "changePercent": q.change_percent,
            "open": q.open,
            "high": q.high,
            "low": q.low,
            "previousClose": q.previous_close,
            "volume": q.volume,
            "timestamp": q.timestamp.isoformat(),
            "vwap": ind.vwap,
            "sma50": ind.sma50,
            "ema9": ind.ema9,
            "ema21": ind.ema21,
            "rsi": ind.rsi,
            "macd": asdict(ind.macd),
            "vix": ind.vix,
            "source": self.source,
            "lastUpdated": self.last_updated.isoformat(),
        }


@dataclass(frozen=True)
class RawNewsArticle:
    """
    A normalized news item parsed from one outlet's feed.
    """
    headline: str
    url: str
    published_at: datetime
    source: str
    summary: Optional[str] = None


@dataclass(frozen=True)
class NewsAnalysis:
    """AI assessment of one headline. Ranges are enforced by the validator."""
    sentiment: float  # [-1.0, 1.0]
    category: str  # one of NEWS_CATEGORIES
    rationale: str
    relevance_score: float  # [0, 100]

    @classmethod
    def neutral(cls, rationale: str = "Unable to analyze") -> "NewsAnalysis":
        return cls(sentiment=0.0, category="Macro", rationale=rationale, relevance_score=50.0)


@dataclass(frozen=True)
class ProcessedNewsSignal:
    """
    A surviving (non-duplicate) article together with its analysis.
    """
    article: RawNewsArticle
    analysis: NewsAnalysis

    @property
    def headline(self) -> str:
        return self.article.headline

    @property
    def published_at(self) -> datetime:
        return self.article.published_at

    @property
    def sentiment(self) -> float:
        return self.analysis.sentiment

    @property
    def category(self) -> str:
        return self.analysis.category

    @property
    def relevance_score(self) -> float:
        return self.analysis.relevance_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headline": self.article.headline,
            "summary": self.article.summary,
            "url": self.article.url,
            "publishedAt": self.article.published_at.isoformat(),
            "source": self.article.source,
            "sentiment": self.analysis.sentiment,
            "category": self.analysis.category,
            "rationale": self.analysis.rationale,
            "relevanceScore": self.analysis.relevance_score,
        }
