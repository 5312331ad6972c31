"""Data models for Pulse news aggregation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

SOURCE_CATEGORIES = ("company", "news", "research", "social")


@dataclass
class Source:
    """A syndication feed the aggregator can pull from."""

    id: str
    name: str
    feed_url: str
    category: str  # one of SOURCE_CATEGORIES
    icon: str
    color: str
    website_url: str = ""
    enabled: bool = True

    @property
    def fetchable(self) -> bool:
        """Social sources need their own authenticated integration."""
        return self.enabled and self.category != "social"


@dataclass(frozen=True)
class Article:
    """A single normalized feed entry."""

    id: str
    title: str
    summary: str
    url: str
    source: str
    source_id: str
    source_icon: str
    source_color: str
    source_category: str
    published: datetime | None = None
    author: str | None = None
    tags: tuple[str, ...] = ()
    thumbnail: str | None = None
    bookmarked: bool = False

    def to_dict(self) -> dict:
        """Serialize with an ISO-8601 timestamp."""
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "source": self.source,
            "source_id": self.source_id,
            "source_icon": self.source_icon,
            "source_color": self.source_color,
            "source_category": self.source_category,
            "published": self.published.isoformat() if self.published else None,
            "author": self.author,
            "tags": list(self.tags),
            "thumbnail": self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Article":
        """Inverse of to_dict. Raises KeyError/ValueError/TypeError on bad input."""
        published = data.get("published")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            summary=str(data.get("summary") or ""),
            url=str(data["url"]),
            source=str(data["source"]),
            source_id=str(data["source_id"]),
            source_icon=str(data.get("source_icon") or ""),
            source_color=str(data.get("source_color") or ""),
            source_category=str(data.get("source_category") or ""),
            published=datetime.fromisoformat(published) if published else None,
            author=data.get("author"),
            tags=tuple(data.get("tags") or ()),
            thumbnail=data.get("thumbnail"),
        )


@dataclass
class CacheSnapshot:
    """Articles captured at the end of a refresh."""

    timestamp_ms: int
    articles: list[Article]


@dataclass
class SourceResult:
    """Outcome of retrieving one source through its mirrors."""

    source: Source
    articles: list[Article] = field(default_factory=list)
    mirror: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.articles)


class ReportWindow(Enum):
    """Time windows a report can cover."""

    LAST_HOUR = "hour"
    TODAY = "today"
    THIS_WEEK = "week"

    @property
    def label(self) -> str:
        return {
            ReportWindow.LAST_HOUR: "Last Hour",
            ReportWindow.TODAY: "Today",
            ReportWindow.THIS_WEEK: "This Week",
        }[self]

    @classmethod
    def parse(cls, value: "str | ReportWindow") -> "ReportWindow":
        if isinstance(value, cls):
            return value
        for window in cls:
            if value in (window.value, window.name.lower(), window.label.lower()):
                return window
        raise ValueError(f"Unknown report window: {value!r}")


@dataclass
class ReportGroup:
    """Articles of one report category."""

    category: str
    label: str
    emoji: str
    articles: list[Article]  # at most five, for display
    total: int
    headline: str
    summary: str


@dataclass
class Report:
    """A categorized digest of the articles inside a time window."""

    window: ReportWindow
    generated_at: datetime
    groups: dict[str, ReportGroup]
    top_sources: list[str]
    total_articles: int

    @property
    def title(self) -> str:
        return f"{self.window.label} AI News Report"


@dataclass
class EmptyReport:
    """Result of generating a report when no article falls in the window."""

    window: ReportWindow
    generated_at: datetime
    message: str = "No articles in this period"

    @property
    def title(self) -> str:
        return f"{self.window.label} AI News Report"


class FeedState(Enum):
    """What the article list currently represents."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle."""

    articles: list[Article]
    skipped: bool = False
    results: list[SourceResult] = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
