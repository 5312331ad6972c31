"""RSS/Atom feed parsing into canonical articles."""

import io
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from xml.sax import SAXException

import feedparser
from bs4 import BeautifulSoup, ParserRejectedMarkup
from dateutil import parser as date_parser

from .logging_config import create_execution_logger
from .models import Article, Source

MAX_ENTRIES = 30
SUMMARY_LIMIT = 400
ELLIPSIS = "…"
UNTITLED = "(No title)"

# "2026-02-28 14:30:00" -> "2026-02-28T14:30:00"
_LENIENT_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2}) (\d{2}:\d{2})")

_TAG = re.compile(r"<[^>]*>")

# RFC 822 zone names allowed in RSS pubDate; dateutil only knows UTC/GMT/Z
RFC822_ZONES = {
    "UT": 0,
    "EST": -5 * 3600,
    "EDT": -4 * 3600,
    "CST": -6 * 3600,
    "CDT": -5 * 3600,
    "MST": -7 * 3600,
    "MDT": -6 * 3600,
    "PST": -8 * 3600,
    "PDT": -7 * 3600,
}

# Stems are anchored at the start only so "fund" also matches "funding".
TAG_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    (
        "Research",
        re.compile(r"\b(gpt|llm|claude|gemini|model|paper|arxiv|research|benchmark)"),
    ),
    (
        "Business",
        re.compile(r"\b(fund|invest|acqui|startup|revenue|billion|million)"),
    ),
    (
        "Policy",
        re.compile(r"\b(regulat|policy|safety|law|congress|government|ethics)"),
    ),
    ("Open Source", re.compile(r"\b(open.source|github|weights|hugging)")),
    (
        "Product",
        re.compile(r"\b(product|launch|release|feature|update|api|tool)"),
    ),
)


class Dialect(Enum):
    """Syndication format of a document."""

    RSS = "rss"
    ATOM = "atom"


def _first_href(links: list, predicate: Callable[[dict], bool]) -> str:
    for link in links:
        href = (link.get("href") or "").strip()
        if href and predicate(link):
            return href
    return ""


def _atom_link(entry) -> str:
    links = entry.get("links") or []
    return (
        _first_href(links, lambda link: link.get("rel") == "alternate")
        or _first_href(links, lambda link: link.get("rel") != "self")
        or _first_href(links, lambda link: True)
        or (entry.get("link") or "").strip()
    )


def _rss_link(entry) -> str:
    # An href attribute wins over the element text
    links = entry.get("links") or []
    return (
        _first_href(
            links, lambda link: link.get("rel") in (None, "alternate")
        )
        or (entry.get("link") or "").strip()
    )


def _atom_author(entry) -> str:
    return _first_field(entry, ("author_detail", "author"))


def _rss_author(entry) -> str:
    # feedparser folds dc:creator and <author> into one list; only <author>
    # is required to carry an email address
    authors = [detail for detail in entry.get("authors") or [] if detail]
    for detail in authors:
        if detail.get("name") and not detail.get("email"):
            return detail["name"].strip()
    for detail in authors:
        name = (detail.get("name") or detail.get("email") or "").strip()
        if name:
            return name
    return _first_field(entry, ("author",))


@dataclass(frozen=True)
class DialectFields:
    """Where each canonical field lives for one dialect, in preference order."""

    link: Callable
    author: Callable
    date_fields: tuple[str, ...]
    body_fields: tuple[str, ...]
    id_fields: tuple[str, ...]


FIELDS: dict[Dialect, DialectFields] = {
    Dialect.ATOM: DialectFields(
        link=_atom_link,
        author=_atom_author,
        date_fields=("published", "updated"),
        body_fields=("content", "summary"),
        id_fields=("id",),
    ),
    # feedparser exposes content:encoded as "content"
    Dialect.RSS: DialectFields(
        link=_rss_link,
        author=_rss_author,
        date_fields=("published", "updated"),
        body_fields=("content", "summary", "description"),
        id_fields=("id", "guid"),
    ),
}


def detect_dialect(parsed) -> Dialect | None:
    """Resolve the dialect once per document from feedparser's version tag."""
    version = parsed.get("version") or ""
    if version.startswith("atom"):
        return Dialect.ATOM
    if version.startswith("rss"):
        return Dialect.RSS
    return None


def parse_published(raw: str | None) -> datetime | None:
    """Parse a feed timestamp, returning None when it cannot be understood.

    A "YYYY-MM-DD HH:MM" string missing the ISO 'T' separator is normalized
    first. RFC 822 zone names such as EST are honored. Timestamps without
    an offset are taken as local time.
    """
    if not raw or not raw.strip():
        return None

    text = _LENIENT_DATETIME.sub(r"\1T\2", raw.strip(), count=1)
    try:
        published = date_parser.parse(text, tzinfos=RFC822_ZONES)
        if published.tzinfo is None:
            published = published.astimezone()
    except (ValueError, OverflowError, OSError, TypeError):
        return None
    return published


def clean_html_content(content: str | None) -> str:
    """Remove HTML tags from content and normalize whitespace.

    Args:
        content: Raw content that may contain HTML

    Returns:
        Clean text content without HTML tags
    """
    if not content:
        return ""

    if "<" not in content and ">" not in content:
        return " ".join(content.split())

    try:
        soup = BeautifulSoup(content, "html.parser")
    except ParserRejectedMarkup:
        text = _TAG.sub(" ", content)
    else:
        for script in soup(["script", "style"]):
            script.decompose()
        text = soup.get_text(separator=" ")

    # Stray brackets left over from broken markup
    text = text.replace("<", "").replace(">", "")

    return " ".join(text.split())


def truncate_summary(text: str, limit: int = SUMMARY_LIMIT) -> str:
    """Cut text to `limit` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + ELLIPSIS


def infer_tags(text: str) -> tuple[str, ...]:
    """Return every tag whose keyword pattern occurs in the lower-cased text."""
    lowered = text.lower()
    return tuple(tag for tag, pattern in TAG_PATTERNS if pattern.search(lowered))


def _text_value(value) -> str:
    """Flatten the shapes feedparser uses for text fields."""
    if not value:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        for part in value:
            text = _text_value(part)
            if text:
                return text
        return ""
    if isinstance(value, dict):
        return value.get("value") or value.get("name") or ""
    return str(value)


def _first_field(entry, fields: tuple[str, ...]) -> str:
    for field_name in fields:
        text = _text_value(entry.get(field_name)).strip()
        if text:
            return text
    return ""


def _thumbnail(entry) -> str | None:
    for thumb in entry.get("media_thumbnail") or []:
        if thumb.get("url"):
            return thumb["url"]
    for media in entry.get("media_content") or []:
        medium = media.get("medium") or ""
        media_type = media.get("type") or ""
        if media.get("url") and (medium == "image" or media_type.startswith("image/")):
            return media["url"]
    for enclosure in entry.get("enclosures") or []:
        if (enclosure.get("type") or "").startswith("image/"):
            href = enclosure.get("href") or enclosure.get("url")
            if href:
                return href
    return None


class FeedParser:
    """Turns raw RSS 2.0/RDF or Atom documents into Articles."""

    def __init__(self, max_entries: int = MAX_ENTRIES, execution_id: str | None = None):
        """Initialize FeedParser.

        Args:
            max_entries: Entries beyond this many per document are ignored
            execution_id: Execution ID for logging context
        """
        self.max_entries = max_entries
        self.logger = create_execution_logger("parser", execution_id)

    def parse(self, body: bytes | str, source: Source) -> list[Article]:
        """Parse one document for one source.

        Never raises for bad input: ill-formed XML, an unknown dialect or a
        document without entries all yield an empty list.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        if not body or not body.strip():
            return []

        # A stream keeps feedparser from treating the payload as a URL or path
        parsed = feedparser.parse(io.BytesIO(body))

        if parsed.get("bozo") and isinstance(parsed.get("bozo_exception"), SAXException):
            self.logger.warning(
                f"Malformed feed document for {source.id}: {parsed.bozo_exception}",
                source_id=source.id,
                bozo_exception=str(parsed.bozo_exception),
            )
            return []

        dialect = detect_dialect(parsed)
        if dialect is None or not parsed.entries:
            self.logger.warning(
                "No feed entries found",
                source_id=source.id,
                version=parsed.get("version") or "",
            )
            return []

        fields = FIELDS[dialect]
        articles = []
        for entry in parsed.entries[: self.max_entries]:
            try:
                articles.append(self.normalize_entry(entry, fields, source))
            except Exception as e:
                self.logger.warning(
                    f"Failed to normalize entry from {source.id}: {e}",
                    source_id=source.id,
                    error=str(e),
                )
                continue

        self.logger.debug(
            "Parsed feed",
            source_id=source.id,
            dialect=dialect.value,
            articles_count=len(articles),
            total_entries=len(parsed.entries),
        )
        return articles

    def normalize_entry(self, entry, fields: DialectFields, source: Source) -> Article:
        """Normalize a feedparser entry into an Article."""
        title = " ".join(_text_value(entry.get("title")).split()) or UNTITLED
        link = fields.link(entry)

        published = parse_published(_first_field(entry, fields.date_fields))

        summary = truncate_summary(
            clean_html_content(_first_field(entry, fields.body_fields))
        )

        author = fields.author(entry) or None

        article_id = _first_field(entry, fields.id_fields) or link or title

        return Article(
            id=article_id,
            title=title,
            summary=summary,
            url=link,
            source=source.name,
            source_id=source.id,
            source_icon=source.icon,
            source_color=source.color,
            source_category=source.category,
            published=published,
            author=author,
            tags=infer_tags(f"{title} {summary}"),
            thumbnail=_thumbnail(entry),
        )
