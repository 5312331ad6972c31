"""Time-windowed, categorized digest reports."""

from collections import Counter
from datetime import datetime, timedelta

from .categorize import Categorizer
from .logging_config import create_execution_logger
from .models import Article, EmptyReport, Report, ReportGroup, ReportWindow

DISPLAY_LIMIT = 5
TOP_SOURCES_LIMIT = 5
NAMED_SOURCES_LIMIT = 3
NAMED_TITLES_LIMIT = 2


def window_cutoff(window: ReportWindow, now: datetime) -> datetime:
    """Earliest publication time included in a window ending at `now`."""
    if window is ReportWindow.LAST_HOUR:
        return now - timedelta(hours=1)
    if window is ReportWindow.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    return now - timedelta(days=7)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.astimezone()


def _plural(count: int, noun: str) -> str:
    return noun if count == 1 else f"{noun}s"


def join_names(names: list[str]) -> str:
    """'A', 'A and B', 'A, B and C'."""
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


def summarize_group(articles: list[Article]) -> str:
    """Write a short paragraph describing one category's articles."""
    if not articles:
        return ""

    first = articles[0]
    if len(articles) == 1:
        return f"{first.source} reports “{first.title}”."

    sources = list(dict.fromkeys(article.source for article in articles))
    named_sources = sources[:NAMED_SOURCES_LIMIT]
    titles = [f"“{article.title}”" for article in articles[:NAMED_TITLES_LIMIT]]

    paragraph = (
        f"{len(articles)} articles from {join_names(named_sources)}, "
        f"led by {join_names(titles)}."
    )

    more_articles = len(articles) - len(titles)
    more_sources = len(sources) - len(named_sources)
    if more_articles > 0:
        paragraph += f" Plus {more_articles} more {_plural(more_articles, 'article')}"
        if more_sources > 0:
            paragraph += f" from {more_sources} other {_plural(more_sources, 'source')}"
        paragraph += "."
    return paragraph


def top_sources(articles: list[Article], limit: int = TOP_SOURCES_LIMIT) -> list[str]:
    """Most frequent source names; ties keep first-occurrence order."""
    return [name for name, _ in Counter(a.source for a in articles).most_common(limit)]


class ReportGenerator:
    """Builds Reports from the current article list."""

    def __init__(
        self,
        categorizer: Categorizer | None = None,
        display_limit: int = DISPLAY_LIMIT,
        execution_id: str | None = None,
    ):
        self.categorizer = categorizer or Categorizer()
        self.display_limit = display_limit
        self.logger = create_execution_logger("report", execution_id)

    def generate(
        self,
        articles: list[Article],
        window: ReportWindow | str = ReportWindow.TODAY,
        now: datetime | None = None,
    ) -> Report | EmptyReport:
        """Group the in-window articles by category.

        Returns an EmptyReport when no dated article falls in the window.
        """
        window = ReportWindow.parse(window)
        now = _aware(now) if now else datetime.now().astimezone()
        cutoff = window_cutoff(window, now)

        in_window = [
            article
            for article in articles
            if article.published is not None and _aware(article.published) >= cutoff
        ]

        if not in_window:
            self.logger.info(
                "No articles in report window",
                window=window.value,
                cutoff=cutoff.isoformat(),
            )
            return EmptyReport(window=window, generated_at=now)

        grouped: dict[str, list[Article]] = {}
        categories = {}
        for article in in_window:
            category = self.categorizer.categorize(article)
            categories[category.id] = category
            grouped.setdefault(category.id, []).append(article)

        ordered = sorted(grouped.items(), key=lambda item: len(item[1]), reverse=True)

        groups = {}
        for category_id, members in ordered:
            category = categories[category_id]
            groups[category_id] = ReportGroup(
                category=category_id,
                label=category.label,
                emoji=category.emoji,
                articles=members[: self.display_limit],
                total=len(members),
                headline=members[0].title,
                summary=summarize_group(members),
            )

        report = Report(
            window=window,
            generated_at=now,
            groups=groups,
            top_sources=top_sources(in_window),
            total_articles=len(in_window),
        )
        self.logger.info(
            "Report generated",
            window=window.value,
            total_articles=report.total_articles,
            groups=len(groups),
        )
        return report
