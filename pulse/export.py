"""Rendering of reports as portable Markdown or HTML."""

from datetime import datetime

from .models import EmptyReport, Report

EMPTY_HINT = "Try a wider time range or refresh the feed first."
FORMATS = ("markdown", "html")


def time_ago(moment: datetime | None, now: datetime | None = None) -> str:
    """Compact relative age such as '5m ago'."""
    if moment is None:
        return ""
    now = now or datetime.now().astimezone()
    if moment.tzinfo is None:
        moment = moment.astimezone()
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def escape_html(text: str | None) -> str:
    """Escape HTML special characters in text and attribute values."""
    if not text:
        return ""

    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    text = text.replace('"', "&quot;")
    text = text.replace("'", "&#x27;")

    return text


class ReportExporter:
    """Formats a Report (or EmptyReport) for saving or sharing."""

    def __init__(self, now: datetime | None = None):
        """Initialize exporter.

        Args:
            now: Reference time for relative ages; defaults to the report's
                generation time
        """
        self.now = now

    def _reference(self, report: Report | EmptyReport) -> datetime:
        return self.now or report.generated_at

    def to_markdown(self, report: Report | EmptyReport) -> str:
        """Render the report as Markdown."""
        generated = report.generated_at.strftime("%Y-%m-%d %H:%M")
        md = f"# {report.title}\n\n"
        md += f"**Generated:** {generated}\n"

        if isinstance(report, EmptyReport):
            md += f"\n{report.message}. {EMPTY_HINT}\n"
            return md

        md += f"**Total articles:** {report.total_articles}\n"
        md += f"**Top sources:** {', '.join(report.top_sources)}\n\n---\n\n"

        now = self._reference(report)
        for group in report.groups.values():
            md += f"## {group.emoji} {group.label}\n\n"
            md += f"{group.summary}\n\n"
            for article in group.articles:
                age = time_ago(article.published, now)
                md += f"- **{article.title}** - *{article.source}* ({age})\n"
                md += f"  {article.url}\n"
            md += "\n"
        return md

    def to_html(self, report: Report | EmptyReport) -> str:
        """Render the report as a standalone HTML fragment."""
        generated = report.generated_at.strftime("%Y-%m-%d %H:%M")
        html = f"<h1>{escape_html(report.title)}</h1>\n"
        html += f"<p><strong>Generated:</strong> {generated}</p>\n"

        if isinstance(report, EmptyReport):
            html += f"<p>{escape_html(report.message)}. {escape_html(EMPTY_HINT)}</p>\n"
            return html

        sources = ", ".join(escape_html(name) for name in report.top_sources)
        html += f"<p><strong>Total articles:</strong> {report.total_articles}</p>\n"
        html += f"<p><strong>Top sources:</strong> {sources}</p>\n<hr>\n"

        now = self._reference(report)
        for group in report.groups.values():
            html += f"<h2>{group.emoji} {escape_html(group.label)}</h2>\n"
            html += f"<p>{escape_html(group.summary)}</p>\n<ul>\n"
            for article in group.articles:
                age = time_ago(article.published, now)
                html += (
                    f'<li><a href="{escape_html(article.url)}">'
                    f"{escape_html(article.title)}</a> "
                    f"<em>{escape_html(article.source)}</em> ({age})</li>\n"
                )
            html += "</ul>\n"
        return html


def export_report(
    report: Report | EmptyReport, fmt: str = "markdown", now: datetime | None = None
) -> str:
    """Render a report in one of FORMATS."""
    exporter = ReportExporter(now=now)
    if fmt == "markdown":
        return exporter.to_markdown(report)
    if fmt == "html":
        return exporter.to_html(report)
    raise ValueError(f"Unsupported export format: {fmt!r}")
