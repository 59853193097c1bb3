"""Shared fixtures: fake clock, fake providers and article factories."""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import List, Optional

# Keep test runs from writing into the project's output/ directory
os.environ.setdefault("NIFTYDESK_LOG_FILE", os.path.join(tempfile.gettempdir(), "niftydesk-tests.log"))

import pytest  # noqa: E402

from niftydesk.core.errors import FetchError  # noqa: E402
from niftydesk.models.datatypes import RawNewsArticle, RawQuote  # noqa: E402
from niftydesk.providers.base import CompletionBackend, MarketDataProvider, NewsProvider  # noqa: E402
from niftydesk.providers.history import PriceHistory, PriceHistorySource  # noqa: E402

T0 = datetime(2024, 1, 1, 9, 15, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_quote(price: float = 21700.0, symbol: str = "NIFTY 50") -> RawQuote:
    return RawQuote(
        symbol=symbol,
        price=price,
        change=50.0,
        change_percent=0.23,
        open=21650.0,
        high=21750.0,
        low=21600.0,
        previous_close=price - 50.0,
        volume=123456,
        timestamp=T0,
    )


def make_article(
    headline: str,
    minutes: int = 0,
    source: str = "Test Wire",
    summary: Optional[str] = None,
) -> RawNewsArticle:
    return RawNewsArticle(
        headline=headline,
        url=f"http://example.com/{abs(hash((headline, minutes)))}",
        published_at=T0 + timedelta(minutes=minutes),
        source=source,
        summary=summary,
    )


class StubMarketProvider(MarketDataProvider):
    def __init__(self, name: str, available: bool = True, quote: Optional[RawQuote] = None,
                 error: Optional[Exception] = None) -> None:
        self.name = name
        self.available = available
        self.quote = quote or make_quote()
        self.error = error
        self.probe_calls = 0
        self.fetch_calls = 0

    def is_available(self) -> bool:
        self.probe_calls += 1
        return self.available

    def fetch_quote(self) -> RawQuote:
        self.fetch_calls += 1
        if self.error is not None:
            raise self.error
        return self.quote


class StubNewsProvider(NewsProvider):
    def __init__(self, name: str, articles: Optional[List[RawNewsArticle]] = None,
                 error: Optional[Exception] = None) -> None:
        self.name = name
        self.articles = articles or []
        self.error = error
        self.fetch_calls = 0

    def is_available(self) -> bool:
        return self.error is None

    def fetch_articles(self) -> List[RawNewsArticle]:
        self.fetch_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.articles)


class ScriptedBackend(CompletionBackend):
    """Returns canned responses in order; an Exception entry is raised."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if self.responses else (
            '{"sentiment": 0.1, "category": "Macro", "rationale": "steady", "relevanceScore": 60}'
        )
        if isinstance(response, Exception):
            raise response
        return response


class FlatHistory(PriceHistorySource):
    """Deterministic window: ``days`` copies of the live price."""

    def __init__(self, days: int = 30, vix: float = 14.0) -> None:
        self.days = days
        self.vix = vix
        self.calls: List[float] = []

    def fetch_history(self, current_price: float) -> PriceHistory:
        self.calls.append(current_price)
        prices = [current_price] * (self.days + 1)
        return PriceHistory(prices=prices, volumes=[1000.0] * len(prices), vix=self.vix)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("Stub", "upstream returned an error", status=503)
