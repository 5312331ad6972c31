"""Search and category filtering over the article list."""

from collections.abc import Collection

from .models import Article

FILTER_ALL = "all"
FILTER_BOOKMARKED = "bookmarked"


def matches_query(article: Article, query: str) -> bool:
    """Case-insensitive substring match on title, summary, source and tags."""
    return (
        query in article.title.lower()
        or query in article.summary.lower()
        or query in article.source.lower()
        or any(query in tag.lower() for tag in article.tags)
    )


def filter_articles(
    articles: list[Article],
    query: str = "",
    category: str = FILTER_ALL,
    bookmarks: Collection[str] = (),
) -> list[Article]:
    """Apply the search box and the filter pill, in that order.

    `category` is "all", "bookmarked", or a source category such as "news".
    """
    query = query.lower().strip()
    if query:
        articles = [article for article in articles if matches_query(article, query)]

    if category == FILTER_BOOKMARKED:
        return [article for article in articles if article.url in bookmarks]
    if category != FILTER_ALL:
        return [article for article in articles if article.source_category == category]
    return list(articles)
