"""Text helpers for the news pipeline: HTML cleanup, headline normalization, keyword match."""

import html
import re
from typing import Iterable

import lxml.html
from lxml import etree

_TAG_RE = re.compile(r"<[^>]*>")
_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")


def strip_html(text: str) -> str:
    """Return the visible text of an HTML fragment with entities decoded.

    Examples:
        ``"<p>Rates &amp; bonds</p>"`` → ``"Rates & bonds"``
        ``"Plain text"`` → ``"Plain text"``
    """
    if not text or not text.strip():
        return ""
    try:
        content = lxml.html.fromstring(text).text_content()
    except (etree.ParserError, ValueError):
        # lxml refuses some fragments (e.g. a bare encoding declaration)
        content = html.unescape(_TAG_RE.sub("", text))
    return _SPACE_RE.sub(" ", content.replace("\xa0", " ")).strip()


def normalize_headline(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace.

    ``"RBI cuts rates, again!"`` → ``"rbi cuts rates again"``
    """
    lowered = _PUNCT_RE.sub("", (text or "").lower())
    return _SPACE_RE.sub(" ", lowered).strip()


def jaccard_similarity(normalized_a: str, normalized_b: str) -> float:
    """Jaccard index of the word sets of two normalized headlines."""
    words_a = set(normalized_a.split(" "))
    words_b = set(normalized_b.split(" "))
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match of any keyword inside ``text``."""
    haystack = (text or "").lower()
    return any(keyword.lower() in haystack for keyword in keywords)
