"""News aggregation service: fan-out fetch, dedup, rank and AI scoring.

Flow per refresh:
  1. Fresh non-empty cache (younger than the TTL) → returned as is
  2. Every provider fetched concurrently; a failing provider contributes []
  3. Near-duplicate headlines collapsed
  4. Newest first, top 20 kept
  5. Each survivor scored one at a time, at most one AI call per 100 ms
  6. Result cached and returned

A refresh never raises: the worst case is an empty list or neutral scores.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from niftydesk.core.cache import Clock, TTLCache, utc_now
from niftydesk.core.logger import logger
from niftydesk.core.pacing import RateLimiter
from niftydesk.models.datatypes import ProcessedNewsSignal, RawNewsArticle
from niftydesk.pipeline.deduplicator import NewsDeduplicator
from niftydesk.providers.base import NewsProvider
from niftydesk.providers.sentiment import NewsAnalyzer

NEWS_CACHE_TTL_SECONDS = 120
MAX_ARTICLES = 20
AI_MIN_INTERVAL_SECONDS = 0.1


class NewsAggregationService:
    """Builds the scored headline list shown on the dashboard.

    Args:
        providers: News providers, fetched in parallel.
        analyzer: Scores each surviving article.
        deduplicator: Near-duplicate filter (default threshold 0.8).
        limiter: Paces AI calls; defaults to one call per 100 ms.
        cache_ttl_seconds: Validity window of the cached list.
        max_articles: Articles kept after ranking.
        clock: Returns the current tz-aware time.
    """

    def __init__(
        self,
        providers: Sequence[NewsProvider],
        analyzer: NewsAnalyzer,
        deduplicator: Optional[NewsDeduplicator] = None,
        limiter: Optional[RateLimiter] = None,
        cache_ttl_seconds: float = NEWS_CACHE_TTL_SECONDS,
        max_articles: int = MAX_ARTICLES,
        clock: Clock = utc_now,
    ) -> None:
        self.providers: List[NewsProvider] = list(providers)
        self.analyzer = analyzer
        self.deduplicator = deduplicator or NewsDeduplicator()
        self.limiter = limiter or RateLimiter(AI_MIN_INTERVAL_SECONDS)
        self.max_articles = max_articles
        self._cache: TTLCache[List[ProcessedNewsSignal]] = TTLCache(cache_ttl_seconds, clock=clock)

    # ── public ────────────────────────────────────────────────────────────────

    def aggregate(self, use_cache: bool = True) -> List[ProcessedNewsSignal]:
        """Return scored signals, refreshing them when the cache is stale or empty."""
        if use_cache:
            cached = self._cache.get_fresh()
            if cached:
                logger.debug("NewsAggregationService: returning cached news")
                return list(cached)

        logger.info("NewsAggregationService: fetching fresh news from all sources")
        articles = self._fetch_all()
        logger.info(f"NewsAggregationService: {len(articles)} articles before deduplication")

        unique = self.deduplicator.deduplicate(articles)
        ranked = sorted(unique, key=lambda a: a.published_at, reverse=True)[: self.max_articles]

        signals = self._analyze(ranked)
        self._cache.set(list(signals))
        logger.info(f"NewsAggregationService: {len(signals)} signals ready")
        return signals

    def get_cached_news(self) -> List[ProcessedNewsSignal]:
        """The last stored list regardless of age (empty if none)."""
        return list(self._cache.value or [])

    def clear_cache(self) -> None:
        self._cache.clear()

    # ── internal ──────────────────────────────────────────────────────────────

    def _fetch_all(self) -> List[RawNewsArticle]:
        if not self.providers:
            return []
        with ThreadPoolExecutor(max_workers=len(self.providers), thread_name_prefix="news") as pool:
            results = list(pool.map(self._fetch_one, self.providers))
        return [article for batch in results for article in batch]

    def _fetch_one(self, provider: NewsProvider) -> List[RawNewsArticle]:
        try:
            logger.info(f"NewsAggregationService: fetching from {provider.name}")
            articles = provider.fetch_articles()
        except Exception as exc:
            logger.error(f"NewsAggregationService: {provider.name} failed: {exc}")
            return []
        logger.info(f"NewsAggregationService: {len(articles)} articles from {provider.name}")
        return list(articles)

    def _analyze(self, articles: List[RawNewsArticle]) -> List[ProcessedNewsSignal]:
        signals: List[ProcessedNewsSignal] = []
        for article in articles:
            self.limiter.wait()
            signals.append(self.analyzer.analyze_article(article))
        return signals
