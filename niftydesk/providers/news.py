"""RSS news providers for Indian market outlets.

Each provider polls its outlet's feeds one after another. A feed that fails
(timeout, HTTP error, unparseable body) is logged and skipped; whatever the
other feeds returned is still handed back.

  EconomicTimesProvider  markets + economy, filtered to market keywords
  MoneyControlProvider  market reports + economy
  BusinessStandardProvider  markets + finance
"""

import calendar
import io
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import feedparser
import requests

from niftydesk.core.errors import FetchError
from niftydesk.core.http import get_bytes
from niftydesk.core.logger import logger
from niftydesk.core.text_utils import contains_keyword, strip_html
from niftydesk.models.datatypes import RawNewsArticle
from niftydesk.providers.base import FEED_TIMEOUT_SECONDS, PROBE_TIMEOUT_SECONDS, NewsProvider

SUMMARY_MAX_CHARS = 300

_FEED_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; NewsAggregator/1.0)"}

MARKET_KEYWORDS = (
    "nifty", "sensex", "market", "stock", "share", "equity",
    "rbi", "policy", "rate", "inflation", "gdp", "economy",
    "banking", "finance", "investment", "trading",
)


# ── feed parsing ──────────────────────────────────────────────────────────────

def _published_at(entry: Any) -> datetime:
    """Entry publish time in UTC, or now when the feed omits or garbles it."""
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return datetime.now(timezone.utc)


def parse_feed(content: str | bytes, source_name: str) -> List[RawNewsArticle]:
    """Parse an RSS/Atom document into articles.

    feedparser handles CDATA sections, entities and most malformed markup.
    Titles and descriptions are reduced to plain text; entries without a
    title or a link are dropped.

    Args:
        content: Raw feed body.
        source_name: Outlet name stamped on every article.

    Returns:
        List[RawNewsArticle]: Articles in feed order.
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    feed = feedparser.parse(io.BytesIO(raw))
    if feed.bozo and not feed.entries:
        logger.warning(f"parse_feed: {source_name} feed unreadable: {feed.get('bozo_exception')}")
        return []

    articles: List[RawNewsArticle] = []
    for entry in feed.entries:
        title = strip_html(entry.get("title", ""))
        link = (entry.get("link") or "").strip()
        if not title or not link:
            logger.debug(f"parse_feed: {source_name} item skipped (title={title!r}, link={link!r})")
            continue

        summary = strip_html(entry.get("summary", ""))[:SUMMARY_MAX_CHARS]
        articles.append(RawNewsArticle(
            headline=title,
            url=link,
            published_at=_published_at(entry),
            source=source_name,
            summary=summary or None,
        ))
    return articles


# ── RSSNewsProvider ───────────────────────────────────────────────────────────

class RSSNewsProvider(NewsProvider):
    """Polls a fixed list of RSS feeds belonging to one outlet."""

    name = "RSS"
    feed_urls: Sequence[str] = ()

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()
        self.session.headers.update(_FEED_HEADERS)

    def is_available(self) -> bool:
        if not self.feed_urls:
            return False
        try:
            resp = self.session.head(
                self.feed_urls[0], timeout=PROBE_TIMEOUT_SECONDS, allow_redirects=True
            )
        except requests.RequestException as exc:
            logger.info(f"{self.name}: liveness probe failed: {exc}")
            return False
        return resp.ok

    def fetch_articles(self) -> List[RawNewsArticle]:
        articles: List[RawNewsArticle] = []
        for url in self.feed_urls:
            try:
                articles.extend(self.fetch_feed(url))
            except FetchError as exc:
                logger.error(f"{self.name}: feed skipped: {exc}")
            except Exception as exc:
                logger.error(f"{self.name}: feed {url} skipped, unexpected error: {exc!r}")
        return self.filter_articles(articles)

    def fetch_feed(self, url: str) -> List[RawNewsArticle]:
        """Download and parse one feed.

        Raises:
            FetchError: On timeout, network error or non-2xx status.
        """
        try:
            resp, body = get_bytes(self.session, url, FEED_TIMEOUT_SECONDS)
        except requests.Timeout:
            raise FetchError(self.name, f"{url} timed out after {FEED_TIMEOUT_SECONDS}s") from None
        except requests.RequestException as exc:
            raise FetchError(self.name, f"{url} request failed: {exc}") from exc

        if not resp.ok:
            raise FetchError(self.name, f"{url} RSS fetch failed", status=resp.status_code)

        articles = parse_feed(body, self.name)
        logger.info(f"{self.name}: {len(articles)} articles from {url}")
        return articles

    def filter_articles(self, articles: List[RawNewsArticle]) -> List[RawNewsArticle]:
        """Hook for outlet-specific filtering. Keeps everything by default."""
        return articles


class EconomicTimesProvider(RSSNewsProvider):
    """Economic Times. Its economy feed is broad, so results are keyword-filtered."""

    name = "Economic Times"
    feed_urls = (
        "https://economictimes.indiatimes.com/markets/rssfeeds/1977021501.cms",
        "https://economictimes.indiatimes.com/news/economy/rssfeeds/1373380680.cms",
    )
    keywords = MARKET_KEYWORDS

    def filter_articles(self, articles: List[RawNewsArticle]) -> List[RawNewsArticle]:
        relevant = [
            a for a in articles
            if contains_keyword(f"{a.headline} {a.summary or ''}", self.keywords)
        ]
        logger.debug(f"{self.name}: kept {len(relevant)}/{len(articles)} after keyword filter")
        return relevant


class MoneyControlProvider(RSSNewsProvider):
    name = "Moneycontrol"
    feed_urls = (
        "https://www.moneycontrol.com/rss/marketreports.xml",
        "https://www.moneycontrol.com/rss/economy.xml",
    )


class BusinessStandardProvider(RSSNewsProvider):
    name = "Business Standard"
    feed_urls = (
        "https://www.business-standard.com/rss/markets-106.rss",
        "https://www.business-standard.com/rss/finance-103.rss",
    )
