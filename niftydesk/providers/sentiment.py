"""AI news scoring via a text-completion backend (Gemini by default).

Pipeline:
    headline + summary → prompt → CompletionBackend.complete() → free text
    → first JSON object → validate_analysis() → NewsAnalysis

The model is asked for a JSON object with sentiment [-1, 1], category
(Macro / Earnings / Policy / Technical), a short rationale and a 0–100
relevance score for the Nifty 50 over the next hour.

Failure handling never aborts a batch:
    backend raised            → neutral, rationale "Analysis pending"
    empty / unparseable reply → neutral, rationale "Unable to analyze"
"""

import os
from typing import Optional

from niftydesk.core.cache import utc_now
from niftydesk.core.errors import ConfigError, ParseError
from niftydesk.core.logger import logger
from niftydesk.models.datatypes import NewsAnalysis, ProcessedNewsSignal, RawNewsArticle
from niftydesk.pipeline.validator import extract_json_object, validate_analysis
from niftydesk.providers.base import CompletionBackend

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 30
PENDING_RATIONALE = "Analysis pending"
UNABLE_RATIONALE = "Unable to analyze"
MANUAL_SOURCE = "Manual Entry"
_SUMMARY_PROMPT_CHARS = 200

ANALYSIS_PROMPT = """Analyze this financial news for its 1-hour impact on Nifty 50.
Output ONLY valid JSON with this exact structure:
{{
  "sentiment": <number between -1.0 and 1.0>,
  "category": "<one of: Macro, Earnings, Policy, Technical>",
  "rationale": "<10 words max explaining the impact>",
  "relevanceScore": <number between 0 and 100 indicating relevance to Nifty 50>
}}

Headline: "{headline}"
Summary: "{summary}\""""


def build_prompt(headline: str, summary: str = "") -> str:
    return ANALYSIS_PROMPT.format(headline=headline, summary=(summary or "")[:_SUMMARY_PROMPT_CHARS])


class GeminiCompletionBackend(CompletionBackend):
    """Google Gemini through the ``google-genai`` SDK.

    The client is created on the first call so that importing this module
    and constructing the backend cost nothing and need no credentials.

    Args:
        api_key: Gemini API key. Defaults to ``$GEMINI_API_KEY``.
        model: Model identifier.
        base_url: Optional proxy / gateway base URL (``$GEMINI_BASE_URL``).
        timeout_seconds: Per-request timeout.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key or os.getenv("GEMINI_API_KEY", "")
        self.model = model
        self.base_url = base_url or os.getenv("GEMINI_BASE_URL") or None
        self.timeout_seconds = timeout_seconds
        self._client = None  # lazy-loaded

    def complete(self, prompt: str) -> str:
        client = self._get_client()
        response = client.models.generate_content(model=self.model, contents=prompt)
        return response.text or ""

    def _get_client(self):
        """Create the genai client on first use."""
        if self._client is None:
            if not self.api_key:
                raise ConfigError("Gemini API key is not configured (GEMINI_API_KEY)")
            from google import genai
            from google.genai import types

            logger.info(f"GeminiCompletionBackend: initialising client for '{self.model}'")
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(
                    base_url=self.base_url,
                    timeout=int(self.timeout_seconds * 1000),
                ),
            )
        return self._client


class NewsAnalyzer:
    """Scores headlines with a completion backend. Never raises."""

    def __init__(self, backend: CompletionBackend) -> None:
        self.backend = backend

    def analyze(self, headline: str, summary: str = "") -> NewsAnalysis:
        """Return the model's analysis of one headline, or a neutral default."""
        prompt = build_prompt(headline, summary)
        try:
            text = self.backend.complete(prompt)
        except Exception as exc:
            logger.error(f"NewsAnalyzer: backend failed for {headline[:60]!r}: {exc}")
            return NewsAnalysis.neutral(PENDING_RATIONALE)

        try:
            analysis = validate_analysis(extract_json_object(text))
        except ParseError as exc:
            logger.warning(f"NewsAnalyzer: {exc}; neutral score for {headline[:60]!r}")
            return NewsAnalysis.neutral(UNABLE_RATIONALE)

        logger.info(
            f"NewsAnalyzer: [{analysis.category} / {analysis.sentiment:+.2f} / "
            f"rel {analysis.relevance_score:.0f}] {headline[:60]!r}"
        )
        return analysis

    def analyze_article(self, article: RawNewsArticle) -> ProcessedNewsSignal:
        return ProcessedNewsSignal(
            article=article,
            analysis=self.analyze(article.headline, article.summary or ""),
        )

    def analyze_headline(self, headline: str) -> ProcessedNewsSignal:
        """Score a manually entered headline, outside any aggregation cycle."""
        article = RawNewsArticle(
            headline=headline.strip(),
            url="",
            published_at=utc_now(),
            source=MANUAL_SOURCE,
        )
        return self.analyze_article(article)
