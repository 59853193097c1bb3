"""Historical price windows that seed the indicator calculation.

The live quote only carries today's price, so each fetch cycle needs a window
of earlier samples. Two sources exist:

- ``SampledHistorySource`` draws a synthetic window around the live price.
  Indicator values are approximations by design; this is the default.
- ``YFinanceHistorySource`` pulls recent daily bars for ``^NSEI`` and the
  India VIX close via yfinance, falling back to sampling on any failure.

Both append the live price as the newest sample.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd
import yfinance as yf

from niftydesk.core.logger import logger
from niftydesk.core.retry import with_retries

DEFAULT_HISTORY_DAYS = 100
_PRICE_SPREAD = 100.0
_MAX_SAMPLED_VOLUME = 1_000_000
_VIX_RANGE = (12.0, 18.0)


@dataclass(frozen=True)
class PriceHistory:
    """Aligned price and volume samples, oldest first, plus a volatility gauge."""
    prices: List[float]
    volumes: List[float]
    vix: float


class PriceHistorySource(ABC):
    """Interface for producing the indicator input window."""

    @abstractmethod
    def fetch_history(self, current_price: float) -> PriceHistory:
        """
        Args:
            current_price (float): The live price, appended as the newest sample.

        Returns:
            PriceHistory: Never empty; at least the live price.
        """
        pass


class SampledHistorySource(PriceHistorySource):
    """Synthetic history: ``days`` samples within ±100 points of the live price."""

    def __init__(self, days: int = DEFAULT_HISTORY_DAYS, rng: Optional[random.Random] = None) -> None:
        self.days = days
        self.rng = rng or random.Random()

    def fetch_history(self, current_price: float) -> PriceHistory:
        prices = [
            current_price + self.rng.uniform(-_PRICE_SPREAD, _PRICE_SPREAD)
            for _ in range(self.days)
        ]
        prices.append(current_price)
        volumes = [self.rng.uniform(0, _MAX_SAMPLED_VOLUME) for _ in prices]
        return PriceHistory(prices=prices, volumes=volumes, vix=self.sample_vix())

    def sample_vix(self) -> float:
        return self.rng.uniform(*_VIX_RANGE)


class YFinanceHistorySource(PriceHistorySource):
    """Daily ``^NSEI`` closes and volumes from Yahoo via yfinance."""

    index_symbol = "^NSEI"
    vix_symbol = "^INDIAVIX"

    def __init__(
        self,
        days: int = DEFAULT_HISTORY_DAYS,
        fallback: Optional[SampledHistorySource] = None,
    ) -> None:
        self.days = days
        self.fallback = fallback or SampledHistorySource(days=days)

    def fetch_history(self, current_price: float) -> PriceHistory:
        try:
            bars = self._fetch_bars()
        except Exception as exc:
            logger.warning(f"YFinanceHistorySource: history unavailable ({exc}), sampling instead")
            return self.fallback.fetch_history(current_price)

        prices = bars["Close"].tolist()
        volumes = bars["Volume"].tolist()
        prices.append(current_price)
        # Today's volume is not known yet; repeat the last session's so VWAP stays weighted
        volumes.append(volumes[-1] if volumes else 0.0)

        return PriceHistory(prices=prices, volumes=volumes, vix=self._fetch_vix())

    @with_retries(max_retries=2, initial_delay=1.0)
    def _fetch_bars(self) -> pd.DataFrame:
        """Last ``days`` daily bars with numeric Close and Volume."""
        # Calendar days ≈ 1.5x trading sessions
        period = f"{int(self.days * 1.5) + 10}d"
        logger.info(f"YFinanceHistorySource: fetching {self.index_symbol} period={period}")
        hist = yf.Ticker(self.index_symbol).history(period=period, interval="1d")

        if hist is None or hist.empty:
            raise ValueError(f"no history returned for {self.index_symbol}")

        hist = hist.copy()
        hist["Close"] = pd.to_numeric(hist["Close"], errors="coerce")
        hist["Volume"] = pd.to_numeric(hist["Volume"], errors="coerce").fillna(0).astype(float)
        hist = hist.dropna(subset=["Close"])
        if hist.empty:
            raise ValueError(f"history for {self.index_symbol} has no closes")
        return hist.tail(self.days)

    def _fetch_vix(self) -> float:
        try:
            vix_hist = yf.Ticker(self.vix_symbol).history(period="5d", interval="1d")
            closes = pd.to_numeric(vix_hist["Close"], errors="coerce").dropna()
            if not closes.empty:
                return round(float(closes.iloc[-1]), 2)
            logger.warning(f"YFinanceHistorySource: empty {self.vix_symbol} history")
        except Exception as exc:
            logger.warning(f"YFinanceHistorySource: {self.vix_symbol} fetch failed: {exc}")
        return self.fallback.sample_vix()
