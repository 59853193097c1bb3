"""Market data service: provider fallback, indicators and a short-lived cache.

Flow per call:
  1. Fresh cache (younger than the TTL) → returned as is, no provider touched.
  2. Providers in priority order: skip when the probe fails, otherwise fetch.
     The first successful quote is merged with freshly computed indicators,
     cached and returned.
  3. Every provider failed → the stale cached snapshot, relabelled
     ``"<source> (cached)"``.
  4. Nothing cached either → AllProvidersFailedError.
"""

from typing import List, Optional, Sequence

from niftydesk.core.cache import Clock, TTLCache, utc_now
from niftydesk.core.errors import AllProvidersFailedError, ProviderUnavailableError
from niftydesk.core.logger import logger
from niftydesk.models.datatypes import MarketSnapshot, RawQuote
from niftydesk.pipeline.indicators import calculate_all
from niftydesk.providers.base import MarketDataProvider
from niftydesk.providers.history import PriceHistorySource, SampledHistorySource

MARKET_CACHE_TTL_SECONDS = 15
CACHED_SUFFIX = " (cached)"


class MarketDataService:
    """Serves one Nifty 50 snapshot per TTL window.

    Args:
        providers: Market data providers in priority order.
        history: Source of the historical window used for indicators.
        cache_ttl_seconds: Validity window of the cached snapshot.
        clock: Returns the current tz-aware time.
    """

    def __init__(
        self,
        providers: Sequence[MarketDataProvider],
        history: Optional[PriceHistorySource] = None,
        cache_ttl_seconds: float = MARKET_CACHE_TTL_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self.providers: List[MarketDataProvider] = list(providers)
        self.history = history or SampledHistorySource()
        self.clock = clock
        self._cache: TTLCache[MarketSnapshot] = TTLCache(cache_ttl_seconds, clock=clock)

    # ── public ────────────────────────────────────────────────────────────────

    def fetch_market_data(self, use_cache: bool = True) -> MarketSnapshot:
        """Return the current snapshot, refreshing it when needed.

        Args:
            use_cache: When False, always try the providers first. A successful
                       fetch replaces the cache either way.

        Raises:
            AllProvidersFailedError: No provider succeeded and nothing is cached.
        """
        if use_cache:
            cached = self._cache.get_fresh()
            if cached is not None:
                logger.debug("MarketDataService: returning cached market data")
                return cached

        last_error: Optional[str] = None

        for provider in self.providers:
            logger.info(f"MarketDataService: attempting {provider.name}")
            try:
                if not provider.is_available():
                    raise ProviderUnavailableError(provider.name)
                quote = provider.fetch_quote()
                snapshot = self._build_snapshot(quote, provider.name)
            except ProviderUnavailableError as exc:
                logger.warning(f"MarketDataService: {exc}, trying next provider")
                continue
            except Exception as exc:
                last_error = str(exc)
                logger.error(f"MarketDataService: {provider.name} failed: {exc}")
                continue

            self._cache.set(snapshot)
            logger.info(
                f"MarketDataService: {provider.name} → {quote.symbol} {quote.price:.2f} "
                f"({quote.change_percent:+.2f}%)"
            )
            return snapshot

        stale = self._cache.value
        if stale is not None:
            logger.warning("MarketDataService: all providers failed, returning stale cached data")
            return stale.with_source(f"{stale.source}{CACHED_SUFFIX}")

        raise AllProvidersFailedError(last_error)

    def get_cached_data(self) -> Optional[MarketSnapshot]:
        """The last stored snapshot regardless of age."""
        return self._cache.value

    def clear_cache(self) -> None:
        self._cache.clear()

    # ── internal ──────────────────────────────────────────────────────────────

    def _build_snapshot(self, quote: RawQuote, source: str) -> MarketSnapshot:
        history = self.history.fetch_history(quote.price)
        indicators = calculate_all(history.prices, history.volumes, history.vix)
        return MarketSnapshot(
            quote=quote,
            indicators=indicators,
            source=source,
            last_updated=self.clock(),
        )
