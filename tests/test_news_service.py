"""Tests for the news aggregation service: fan-out, ranking, scoring and cache."""

from conftest import ScriptedBackend, StubNewsProvider, make_article
from niftydesk.core.pacing import RateLimiter
from niftydesk.pipeline.news_service import NewsAggregationService
from niftydesk.providers.sentiment import NewsAnalyzer


class RecordingLimiter(RateLimiter):
    def __init__(self):
        super().__init__(0.1, clock=lambda: 0.0, sleep=lambda _: None)
        self.waits = 0

    def wait(self) -> float:
        self.waits += 1
        return 0.0


def _service(providers, clock, backend=None, limiter=None, **kwargs):
    return NewsAggregationService(
        providers,
        analyzer=NewsAnalyzer(backend or ScriptedBackend()),
        limiter=limiter or RecordingLimiter(),
        clock=clock,
        **kwargs,
    )


class TestAggregate:

    def test_merges_dedups_and_sorts_newest_first(self, clock):
        et = StubNewsProvider("Economic Times", [
            make_article("RBI holds repo rate", minutes=5),
            make_article("Infosys beats estimates", minutes=20),
        ])
        mc = StubNewsProvider("Moneycontrol", [
            make_article("rbi holds repo rate!", minutes=1),
            make_article("Rupee weakens", minutes=10),
        ])

        signals = _service([et, mc], clock).aggregate()

        assert [s.headline for s in signals] == [
            "Infosys beats estimates", "Rupee weakens", "RBI holds repo rate",
        ]

    def test_failing_provider_contributes_nothing(self, clock):
        good = StubNewsProvider("Business Standard", [make_article("Sensex flat")])
        bad = StubNewsProvider("Moneycontrol", error=RuntimeError("feed exploded"))

        signals = _service([good, bad], clock).aggregate()

        assert [s.headline for s in signals] == ["Sensex flat"]
        assert bad.fetch_calls == 1

    def test_keeps_top_twenty(self, clock):
        articles = [make_article(f"unique headline number {i} alpha{i}", minutes=i) for i in range(30)]
        signals = _service([StubNewsProvider("ET", articles)], clock).aggregate()

        assert len(signals) == 20
        assert signals[0].published_at == articles[29].published_at
        assert signals[-1].published_at == articles[10].published_at

    def test_max_articles_is_configurable(self, clock):
        articles = [make_article(f"story {i} w{i}", minutes=i) for i in range(5)]
        signals = _service([StubNewsProvider("ET", articles)], clock, max_articles=2).aggregate()
        assert len(signals) == 2

    def test_every_article_scored_once_and_paced(self, clock):
        articles = [make_article("Nifty rallies", minutes=2), make_article("Crude spikes", minutes=1)]
        backend = ScriptedBackend(
            '{"sentiment": 0.6, "category": "Technical", "rationale": "breakout", "relevanceScore": 90}',
            RuntimeError("rate limited"),
        )
        limiter = RecordingLimiter()

        signals = _service([StubNewsProvider("ET", articles)], clock, backend=backend, limiter=limiter).aggregate()

        assert len(backend.prompts) == 2
        assert limiter.waits == 2
        assert signals[0].analysis.category == "Technical"
        assert signals[1].analysis.rationale == "Analysis pending"
        assert signals[1].sentiment == 0.0

    def test_oversized_number_in_reply_gets_neutral_score(self, clock):
        huge = "1" + "0" * 400
        articles = [make_article("Nifty rallies", minutes=2), make_article("Crude spikes", minutes=1)]
        backend = ScriptedBackend(
            f'{{"sentiment": {huge}, "category": "Macro", "rationale": "x", "relevanceScore": 90}}',
        )

        signals = _service([StubNewsProvider("ET", articles)], clock, backend=backend).aggregate()

        assert len(signals) == 2
        assert signals[0].analysis.rationale == "Unable to analyze"
        assert signals[0].sentiment == 0.0
        assert signals[0].analysis.relevance_score == 50.0
        assert signals[1].analysis.rationale == "steady"

    def test_no_providers_returns_empty_list(self, clock):
        assert _service([], clock).aggregate() == []


class TestNewsCache:

    def test_fresh_cache_returned_without_fetching(self, clock):
        provider = StubNewsProvider("ET", [make_article("Nifty rallies")])
        backend = ScriptedBackend()
        service = _service([provider], clock, backend=backend)

        first = service.aggregate()
        clock.advance(119)
        second = service.aggregate(True)

        assert second == first
        assert provider.fetch_calls == 1
        assert len(backend.prompts) == 1

    def test_mutating_returned_list_leaves_cache_intact(self, clock):
        provider = StubNewsProvider("ET", [make_article("Nifty rallies"), make_article("Crude spikes")])
        service = _service([provider], clock)

        first = service.aggregate()
        first.clear()
        served = service.aggregate()
        served.pop()

        assert len(service.aggregate()) == 2
        assert len(service.get_cached_news()) == 2
        assert provider.fetch_calls == 1

    def test_cache_expires_after_ttl(self, clock):
        provider = StubNewsProvider("ET", [make_article("Nifty rallies")])
        service = _service([provider], clock)

        service.aggregate()
        clock.advance(120)
        service.aggregate()

        assert provider.fetch_calls == 2

    def test_empty_cached_result_is_not_served(self, clock):
        provider = StubNewsProvider("ET", [])
        service = _service([provider], clock)

        service.aggregate()
        service.aggregate()

        assert provider.fetch_calls == 2

    def test_use_cache_false_forces_refresh(self, clock):
        provider = StubNewsProvider("ET", [make_article("Nifty rallies")])
        service = _service([provider], clock)

        service.aggregate()
        refreshed = service.aggregate(use_cache=False)

        assert provider.fetch_calls == 2
        assert service.get_cached_news() == refreshed

    def test_clear_cache(self, clock):
        service = _service([StubNewsProvider("ET", [make_article("x y z")])], clock)
        service.aggregate()
        service.clear_cache()
        assert service.get_cached_news() == []
