"""Live Nifty 50 quotes from the NSE India API and the Yahoo Finance chart API."""

import json
from typing import Any, Dict, Optional

import requests

from niftydesk.core.cache import utc_now
from niftydesk.core.errors import FetchError
from niftydesk.core.http import get_bytes
from niftydesk.core.logger import logger
from niftydesk.models.datatypes import RawQuote
from niftydesk.providers.base import (
    PROBE_TIMEOUT_SECONDS,
    QUOTE_TIMEOUT_SECONDS,
    MarketDataProvider,
)

NIFTY_SYMBOL = "NIFTY 50"

_BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.nseindia.com",
}


def _first(record: Dict[str, Any], *keys: str) -> Any:
    """Return the first alias that carries a usable value."""
    for key in keys:
        value = record.get(key)
        if value not in (None, "", 0):
            return value
    return None


def _to_float(value: Any, field: str, provider: str) -> float:
    if value is None:
        raise FetchError(provider, f"missing field '{field}'")
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        raise FetchError(provider, f"non-numeric '{field}': {value!r}") from None


def _get_json(session: requests.Session, provider: str, url: str, **kwargs: Any) -> Any:
    """GET ``url`` and decode JSON, mapping every failure onto FetchError."""
    try:
        resp, body = get_bytes(session, url, QUOTE_TIMEOUT_SECONDS, **kwargs)
    except requests.Timeout:
        raise FetchError(provider, f"timed out after {QUOTE_TIMEOUT_SECONDS}s") from None
    except requests.RequestException as exc:
        raise FetchError(provider, f"request failed: {exc}") from exc

    if not resp.ok:
        raise FetchError(provider, "upstream returned an error", status=resp.status_code)

    try:
        return json.loads(body)
    except ValueError:
        raise FetchError(provider, "response is not valid JSON", status=resp.status_code) from None


def _probe(session: requests.Session, provider: str, url: str, **kwargs: Any) -> bool:
    try:
        resp = session.get(url, timeout=PROBE_TIMEOUT_SECONDS, stream=True, **kwargs)
    except requests.RequestException as exc:
        logger.info(f"{provider}: liveness probe failed: {exc}")
        return False
    resp.close()
    if not resp.ok:
        logger.info(f"{provider}: liveness probe returned HTTP {resp.status_code}")
    return resp.ok


# ── NSEProvider ───────────────────────────────────────────────────────────────

class NSEProvider(MarketDataProvider):
    """NSE India ``equity-stockIndices`` endpoint.

    The home page probe doubles as cookie warm-up: NSE rejects API calls that
    arrive without the cookies it sets there, so the provider keeps one
    session for both calls.
    """

    name = "NSE India"
    home_url = "https://www.nseindia.com"
    quote_url = "https://www.nseindia.com/api/equity-stockIndices"

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()
        self.session.headers.update(_BROWSER_HEADERS)

    def is_available(self) -> bool:
        return _probe(self.session, self.name, self.home_url)

    def fetch_quote(self) -> RawQuote:
        logger.info(f"{self.name}: fetching {NIFTY_SYMBOL}")
        payload = _get_json(
            self.session, self.name, self.quote_url, params={"index": NIFTY_SYMBOL}
        )
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not rows or not isinstance(rows[0], dict):
            raise FetchError(self.name, "invalid response format: no index record")
        return self._parse(rows[0])

    def _parse(self, record: Dict[str, Any]) -> RawQuote:
        """Map an NSE index record onto RawQuote. ``pChange`` is already a percentage."""
        volume = _first(record, "totalTradedVolume")
        return RawQuote(
            symbol=NIFTY_SYMBOL,
            price=_to_float(_first(record, "last", "lastPrice"), "last", self.name),
            change=_to_float(record.get("change"), "change", self.name),
            change_percent=_to_float(record.get("pChange", record.get("perChange")), "pChange", self.name),
            open=_to_float(record.get("open"), "open", self.name),
            high=_to_float(_first(record, "dayHigh", "high"), "dayHigh", self.name),
            low=_to_float(_first(record, "dayLow", "low"), "dayLow", self.name),
            previous_close=_to_float(record.get("previousClose"), "previousClose", self.name),
            volume=int(_to_float(volume, "totalTradedVolume", self.name)) if volume else 0,
            timestamp=utc_now(),
        )


# ── YahooFinanceProvider ──────────────────────────────────────────────────────

class YahooFinanceProvider(MarketDataProvider):
    """Yahoo Finance v8 chart API for ``^NSEI``.

    The chart payload has no change fields, so change and change percent are
    derived from price and previous close. Intraday bars may contain nulls,
    which are skipped for high/low/volume.
    """

    name = "Yahoo Finance"
    chart_url = "https://query1.finance.yahoo.com/v8/finance/chart/%5ENSEI"

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": _BROWSER_HEADERS["User-Agent"]})

    def is_available(self) -> bool:
        return _probe(
            self.session, self.name, self.chart_url, params={"interval": "1d", "range": "1d"}
        )

    def fetch_quote(self) -> RawQuote:
        logger.info(f"{self.name}: fetching {NIFTY_SYMBOL} intraday chart")
        payload = _get_json(
            self.session, self.name, self.chart_url, params={"interval": "1m", "range": "1d"}
        )
        try:
            result = payload["chart"]["result"][0]
            meta = result["meta"]
        except (KeyError, IndexError, TypeError):
            raise FetchError(self.name, "invalid response format: no chart result") from None
        if not isinstance(meta, dict):
            raise FetchError(self.name, "invalid response format: no chart meta")

        quotes = (result.get("indicators") or {}).get("quote") or [{}]
        return self._parse(meta, quotes[0] or {})

    def _parse(self, meta: Dict[str, Any], bars: Dict[str, Any]) -> RawQuote:
        price = _to_float(_first(meta, "regularMarketPrice", "previousClose"), "regularMarketPrice", self.name)
        previous_close = _to_float(
            _first(meta, "chartPreviousClose", "previousClose"), "chartPreviousClose", self.name
        )
        change = price - previous_close
        change_percent = (change / previous_close) * 100 if previous_close else 0.0

        opens = bars.get("open") or []
        highs = [h for h in (bars.get("high") or []) if h]
        lows = [low for low in (bars.get("low") or []) if low]
        volumes = [v for v in (bars.get("volume") or []) if v]

        return RawQuote(
            symbol=NIFTY_SYMBOL,
            price=price,
            change=change,
            change_percent=change_percent,
            open=float(opens[0]) if opens and opens[0] else price,
            high=float(max(highs)) if highs else price,
            low=float(min(lows)) if lows else price,
            previous_close=previous_close,
            volume=int(sum(volumes)),
            timestamp=utc_now(),
        )
