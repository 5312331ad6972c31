"""Unit tests for report export."""

from datetime import UTC, datetime, timedelta

import pytest

from pulse.export import ReportExporter, escape_html, export_report, time_ago
from pulse.models import EmptyReport, ReportWindow
from pulse.report import ReportGenerator
from tests.factories import make_article

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


@pytest.fixture
def report():
    articles = [
        make_article(
            url="https://x.test/1",
            title="Startup raises billion",
            source="Alpha",
            published=NOW - timedelta(minutes=30),
        ),
        make_article(
            url="https://x.test/2",
            title="New LLM <benchmark> & more",
            source="Beta",
            published=NOW - timedelta(hours=3),
        ),
    ]
    return ReportGenerator().generate(articles, ReportWindow.TODAY, now=NOW)


class TestTimeAgo:
    """Unit tests for relative ages."""

    def test_buckets(self):
        assert time_ago(NOW - timedelta(seconds=30), NOW) == "Just now"
        assert time_ago(NOW - timedelta(minutes=5), NOW) == "5m ago"
        assert time_ago(NOW - timedelta(hours=2, minutes=59), NOW) == "2h ago"
        assert time_ago(NOW - timedelta(days=3), NOW) == "3d ago"

    def test_missing_date(self):
        assert time_ago(None, NOW) == ""


class TestReportExporterUnit:
    """Unit tests for Markdown and HTML rendering."""

    def test_markdown_layout(self, report):
        """Header, section per category and one bullet per article."""
        md = export_report(report, "markdown")

        assert md.startswith("# Today AI News Report\n")
        assert "**Generated:** 2026-03-02 12:00" in md
        assert "**Total articles:** 2" in md
        assert "**Top sources:** Alpha, Beta" in md
        assert "## 💼 Industry & Business" in md
        assert "## 🧠 Models & Research" in md
        assert "- **Startup raises billion** - *Alpha* (30m ago)\n  https://x.test/1" in md
        assert "Alpha reports “Startup raises billion”." in md

    def test_markdown_section_order(self, report):
        md = ReportExporter().to_markdown(report)

        assert md.index("Industry & Business") < md.index("Models & Research")

    def test_html_escapes_text(self, report):
        html = export_report(report, "html")

        assert "<h1>Today AI News Report</h1>" in html
        assert "New LLM &lt;benchmark&gt; &amp; more" in html
        assert '<a href="https://x.test/1">' in html
        assert "<benchmark>" not in html

    def test_empty_report(self):
        """An empty report renders a message instead of sections."""
        empty = EmptyReport(window=ReportWindow.LAST_HOUR, generated_at=NOW)

        md = export_report(empty)
        html = export_report(empty, "html")

        assert md.startswith("# Last Hour AI News Report\n")
        assert "No articles in this period." in md
        assert "##" not in md
        assert "No articles in this period." in html

    def test_explicit_reference_time(self, report):
        later = NOW + timedelta(hours=1)

        md = ReportExporter(now=later).to_markdown(report)

        assert "(1h ago)" in md

    def test_unknown_format(self, report):
        with pytest.raises(ValueError):
            export_report(report, "pdf")

    def test_escape_html(self):
        assert escape_html('<a href="x">&\'</a>') == (
            "&lt;a href=&quot;x&quot;&gt;&amp;&#x27;&lt;/a&gt;"
        )
        assert escape_html(None) == ""
