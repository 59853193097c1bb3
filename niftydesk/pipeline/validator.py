"""AI output validation: extracts and sanitizes the news analysis JSON.

Checks applied to every model response:
  1. A JSON object is present somewhere in the free text
  2. sentiment is numeric, clamped to [-1.0, 1.0]
  3. relevanceScore is numeric, clamped to [0, 100]
  4. category is one of Macro / Earnings / Policy / Technical, any letter case
  5. rationale is non-empty text, cut to 200 characters

Any failed check raises ParseError; the caller substitutes a neutral analysis.
"""

import json
import math
from typing import Any, Dict

from niftydesk.core.errors import ParseError
from niftydesk.core.logger import logger
from niftydesk.models.datatypes import NEWS_CATEGORIES, NewsAnalysis

RATIONALE_MAX_CHARS = 200
_DECODER = json.JSONDecoder()
_CATEGORY_LOOKUP = {c.lower(): c for c in NEWS_CATEGORIES}


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first decodable top-level JSON object embedded in ``text``.

    Surrounding prose and markdown fences are ignored, and braces inside JSON
    strings do not confuse the match.

    Raises:
        ParseError: The text is empty or holds no JSON object.
    """
    if not text or not text.strip():
        raise ParseError("empty AI response")

    start = text.find("{")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except ValueError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)

    raise ParseError(f"no JSON object in AI response: {text[:80]!r}")


def _number(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or value is None:
        raise ParseError(f"'{key}' missing or not a number: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ParseError(f"'{key}' is not a number: {value!r}") from None
    if math.isnan(number) or math.isinf(number):
        raise ParseError(f"'{key}' is not finite: {value!r}")
    return number


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ParseError(f"'{key}' missing or empty: {value!r}")
    return text


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def validate_analysis(data: Dict[str, Any]) -> NewsAnalysis:
    """Coerce a decoded model response into a range-checked NewsAnalysis.

    Args:
        data: Object with ``sentiment``, ``category``, ``rationale`` and
              ``relevanceScore`` keys.

    Returns:
        NewsAnalysis: With sentiment and relevance clamped into range.

    Raises:
        ParseError: A field is missing, a score is not a finite number, or the
            category is not one of the four known ones.
    """
    sentiment = _number(data, "sentiment")
    relevance = _number(data, "relevanceScore")

    if not -1.0 <= sentiment <= 1.0:
        logger.warning(f"validate_analysis: sentiment {sentiment} out of range, clamping")
    if not 0.0 <= relevance <= 100.0:
        logger.warning(f"validate_analysis: relevanceScore {relevance} out of range, clamping")

    category = _CATEGORY_LOOKUP.get(_text(data, "category").lower())
    if category is None:
        raise ParseError(f"unknown category: {data.get('category')!r}")

    rationale = _text(data, "rationale")

    return NewsAnalysis(
        sentiment=_clamp(sentiment, -1.0, 1.0),
        category=category,
        rationale=rationale[:RATIONALE_MAX_CHARS],
        relevance_score=_clamp(relevance, 0.0, 100.0),
    )
