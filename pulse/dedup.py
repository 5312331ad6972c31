"""Merging of per-source results into one deduplicated, time-ordered list."""

from collections.abc import Iterable

from .logging_config import create_execution_logger
from .models import Article


def sort_key(article: Article) -> float:
    """Publication time in epoch seconds; undated articles count as epoch."""
    if article.published is None:
        return 0.0
    return article.published.timestamp()


class Deduplicator:
    """Removes URL duplicates across sources and orders newest first."""

    def __init__(self, execution_id: str | None = None):
        self.logger = create_execution_logger("deduplicator", execution_id)

    def merge(self, batches: Iterable[list[Article]]) -> list[Article]:
        """Concatenate batches, drop URL-less and repeated URLs, sort by date.

        The first occurrence of a URL wins. Equal timestamps keep their
        concatenation order.
        """
        seen: set[str] = set()
        unique = []
        total = 0
        without_url = 0

        for batch in batches:
            for article in batch:
                total += 1
                if not article.url:
                    without_url += 1
                    continue
                if article.url in seen:
                    continue
                seen.add(article.url)
                unique.append(article)

        unique.sort(key=sort_key, reverse=True)

        self.logger.info(
            "Merged articles",
            articles_in=total,
            articles_out=len(unique),
            without_url=without_url,
            duplicates_removed=total - without_url - len(unique),
        )
        return unique
