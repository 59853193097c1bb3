"""Abstract base classes for data providers."""

from abc import ABC, abstractmethod
from typing import List

from niftydesk.models.datatypes import RawNewsArticle, RawQuote

PROBE_TIMEOUT_SECONDS = 3
QUOTE_TIMEOUT_SECONDS = 5
FEED_TIMEOUT_SECONDS = 10


class MarketDataProvider(ABC):
    """Interface for fetching a live Nifty 50 quote from one upstream."""

    name: str = "unnamed"

    @abstractmethod
    def is_available(self) -> bool:
        """
        Best-effort liveness probe with a short timeout.

        Returns:
            bool: False on any failure. Never raises.
        """
        pass

    @abstractmethod
    def fetch_quote(self) -> RawQuote:
        """
        Fetch and normalize the current quote.

        Returns:
            RawQuote: The normalized quote.

        Raises:
            FetchError: On non-2xx status, timeout or a malformed payload.
        """
        pass


class NewsProvider(ABC):
    """Interface for fetching recent headlines from one news outlet."""

    name: str = "unnamed"

    @abstractmethod
    def is_available(self) -> bool:
        """HEAD-style probe of the outlet. False on any failure."""
        pass

    @abstractmethod
    def fetch_articles(self) -> List[RawNewsArticle]:
        """
        Fetch the outlet's current articles.

        Returns:
            List[RawNewsArticle]: Articles from every feed that responded.
                                  Individual feed failures are logged, not raised.
        """
        pass


class CompletionBackend(ABC):
    """Interface for a free-text AI completion service."""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the model's raw text response.

        Args:
            prompt (str): Natural-language prompt.

        Returns:
            str: The response text, possibly empty.
        """
        pass
