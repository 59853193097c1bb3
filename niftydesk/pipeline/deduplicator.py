"""Near-duplicate elimination for headlines gathered across outlets."""

from typing import Iterable, List, Set

from niftydesk.core.logger import logger
from niftydesk.core.text_utils import jaccard_similarity, normalize_headline
from niftydesk.models.datatypes import RawNewsArticle

SIMILARITY_THRESHOLD = 0.8


class NewsDeduplicator:
    """Collapses articles whose normalized headlines match or nearly match.

    Articles are scanned in input order. An exact repeat of an accepted
    headline is dropped outright. Otherwise the article is compared with every
    accepted one by word-set Jaccard similarity; above the threshold it is a
    duplicate, and if it was published earlier it takes the accepted
    article's place, so the earliest report of a story is kept.

    The exact-match set only records headlines that were appended. When a
    replacement happens the replaced headline stays in the set and the new one
    is never added, so a later exact repeat of the replacing headline goes
    through the similarity scan instead.
    """

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD) -> None:
        self.threshold = threshold

    def deduplicate(self, articles: Iterable[RawNewsArticle]) -> List[RawNewsArticle]:
        unique: List[RawNewsArticle] = []
        normalized: List[str] = []
        seen: Set[str] = set()
        total = 0

        for article in articles:
            total += 1
            headline = normalize_headline(article.headline)
            if headline in seen:
                continue

            duplicate = False
            for index, existing in enumerate(normalized):
                if jaccard_similarity(headline, existing) > self.threshold:
                    duplicate = True
                    if article.published_at < unique[index].published_at:
                        unique[index] = article
                        normalized[index] = headline
                    break

            if not duplicate:
                unique.append(article)
                normalized.append(headline)
                seen.add(headline)

        logger.info(f"NewsDeduplicator: {total} → {len(unique)} articles")
        return unique
