"""Unit tests for RSS/Atom feed parsing."""

from datetime import UTC, datetime

from pulse.rss import (
    ELLIPSIS,
    MAX_ENTRIES,
    UNTITLED,
    FeedParser,
    clean_html_content,
    infer_tags,
    parse_published,
    truncate_summary,
)
from tests.factories import atom_document, make_source, rss_document


class TestFeedParserUnit:
    """Unit tests for specific RSS/Atom feed formats."""

    def test_rss_2_0_parsing(self):
        """Test parsing an RSS 2.0 item into an Article."""
        parser = FeedParser()
        source = make_source()
        body = rss_document(
            [
                {
                    "title": "OpenAI releases GPT research paper",
                    "link": "https://x.test/rss-1",
                    "guid": "rss-1",
                    "pubDate": "Mon, 02 Mar 2026 10:00:00 GMT",
                    "description": "&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;",
                }
            ]
        )

        articles = parser.parse(body, source)

        assert len(articles) == 1
        article = articles[0]
        assert article.title == "OpenAI releases GPT research paper"
        assert article.url == "https://x.test/rss-1"
        assert article.id == "rss-1"
        assert article.published == datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
        assert article.summary == "Hello world"  # HTML cleaned
        assert article.source == "Test News"
        assert article.source_id == "test-news"
        assert article.source_category == "news"
        assert "Research" in article.tags
        assert "Product" in article.tags

    def test_rdf_parsing(self):
        """Test that RSS 1.0 (RDF) documents use the RSS field table."""
        body = (
            '<?xml version="1.0"?>'
            '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#" '
            'xmlns="http://purl.org/rss/1.0/" '
            'xmlns:dc="http://purl.org/dc/elements/1.1/">'
            '<channel rdf:about="https://x.test"><title>R</title>'
            "<link>https://x.test</link><description>d</description></channel>"
            '<item rdf:about="https://x.test/r1"><title>RDF item</title>'
            "<link>https://x.test/r1</link>"
            "<dc:date>2026-03-01T08:00:00Z</dc:date>"
            "<dc:creator>Alan</dc:creator></item>"
            "</rdf:RDF>"
        )

        articles = FeedParser().parse(body, make_source())

        assert len(articles) == 1
        assert articles[0].url == "https://x.test/r1"
        assert articles[0].published == datetime(2026, 3, 1, 8, 0, tzinfo=UTC)
        assert articles[0].author == "Alan"

    def test_creator_preferred_over_author_in_either_order(self):
        """dc:creator wins over an RSS <author> wherever it appears in the item."""
        creator_first = {
            "title": "Creator first",
            "link": "https://x.test/c1",
            "dc:creator": "Creator Name",
            "author": "mail@x.test (Plain Author)",
        }
        author_first = {
            "title": "Author first",
            "link": "https://x.test/c2",
            "author": "mail@x.test (Plain Author)",
            "dc:creator": "Creator Name",
        }

        articles = FeedParser().parse(
            rss_document([creator_first, author_first]), make_source()
        )

        assert [a.author for a in articles] == ["Creator Name", "Creator Name"]

    def test_rss_author_without_creator(self):
        body = rss_document(
            [
                {
                    "title": "Only author",
                    "link": "https://x.test/a1",
                    "author": "mail@x.test (Plain Author)",
                }
            ]
        )

        articles = FeedParser().parse(body, make_source())

        assert articles[0].author == "Plain Author"

    def test_rfc822_zone_names(self):
        """Test RSS pubDate values with US zone abbreviations."""
        body = rss_document(
            [
                {
                    "title": "Eastern",
                    "link": "https://x.test/est",
                    "pubDate": "Mon, 02 Mar 2026 10:00:00 EST",
                }
            ]
        )

        articles = FeedParser().parse(body, make_source())

        assert articles[0].published == datetime(2026, 3, 2, 15, 0, tzinfo=UTC)

    def test_atom_1_0_parsing(self):
        """Test parsing an Atom entry with alternate and self links."""
        body = atom_document(
            [
                "<title>Claude model update</title>"
                '<link rel="self" href="https://x.test/self"/>'
                '<link rel="alternate" href="https://x.test/atom-1"/>'
                "<id>urn:test:atom-1</id>"
                "<published>2026-03-01T09:30:00Z</published>"
                "<updated>2026-03-01T11:00:00Z</updated>"
                '<content type="html">&lt;div&gt;&lt;h2&gt;Body&lt;/h2&gt;&lt;/div&gt;</content>'
                "<author><name>Ada</name></author>"
            ]
        )

        articles = FeedParser().parse(body, make_source())

        assert len(articles) == 1
        article = articles[0]
        assert article.url == "https://x.test/atom-1"
        assert article.id == "urn:test:atom-1"
        assert article.published == datetime(2026, 3, 1, 9, 30, tzinfo=UTC)
        assert article.summary == "Body"
        assert article.author == "Ada"

    def test_atom_plain_link_without_rel(self):
        """An Atom entry with a single rel-less link uses its href."""
        body = atom_document(
            [
                "<title>Plain link</title>"
                '<link href="https://x.test/c"/>'
                "<id>urn:test:c</id>"
                "<updated>2026-03-01T10:00:00Z</updated>"
            ]
        )

        articles = FeedParser().parse(body, make_source())

        assert [a.url for a in articles] == ["https://x.test/c"]

    def test_atom_falls_back_to_updated(self):
        """Entries without <published> are dated by <updated>."""
        body = atom_document(
            [
                "<title>Only updated</title>"
                '<link href="https://x.test/u"/>'
                "<id>urn:test:u</id>"
                "<updated>2026-03-01T10:00:00Z</updated>"
            ]
        )

        article = FeedParser().parse(body, make_source())[0]

        assert article.published == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)

    def test_lenient_space_separated_date(self):
        """A pubDate missing the ISO 'T' separator is still accepted."""
        body = rss_document(
            [
                {
                    "title": "Spaced date",
                    "link": "https://x.test/b",
                    "pubDate": "2026-02-28 14:30:00",
                }
            ]
        )

        article = FeedParser().parse(body, make_source())[0]

        assert article.published == datetime(2026, 2, 28, 14, 30).astimezone()

    def test_unparseable_date_keeps_article(self):
        """An unreadable date leaves published empty but keeps the entry."""
        body = rss_document(
            [
                {
                    "title": "Bad date",
                    "link": "https://x.test/bad-date",
                    "pubDate": "sometime last week",
                }
            ]
        )

        articles = FeedParser().parse(body, make_source())

        assert len(articles) == 1
        assert articles[0].published is None

    def test_entry_cap(self):
        """Only the first entries of a long document are kept, in order."""
        items = [
            {"title": f"Item {i}", "link": f"https://x.test/{i}"} for i in range(40)
        ]

        articles = FeedParser().parse(rss_document(items), make_source())

        assert len(articles) == MAX_ENTRIES
        assert [a.url for a in articles] == [f"https://x.test/{i}" for i in range(30)]

    def test_missing_title_and_link(self):
        """Entries with no title get a placeholder and may lack a URL."""
        body = rss_document([{"description": "Just a body"}])

        articles = FeedParser().parse(body, make_source())

        assert len(articles) == 1
        assert articles[0].title == UNTITLED
        assert articles[0].url == ""
        assert articles[0].id == UNTITLED

    def test_image_enclosure_becomes_thumbnail(self):
        """An image enclosure is exposed as the article thumbnail."""
        body = rss_document(
            [{"title": "With image", "link": "https://x.test/img"}]
        ).replace(
            "</item>",
            '<enclosure url="https://x.test/i.jpg" type="image/jpeg" length="1"/></item>',
        )

        article = FeedParser().parse(body, make_source())[0]

        assert article.thumbnail == "https://x.test/i.jpg"

    def test_malformed_documents_yield_no_articles(self):
        """Ill-formed or non-feed payloads never raise."""
        parser = FeedParser()
        source = make_source()

        assert parser.parse("this is not xml at all", source) == []
        assert parser.parse("<rss><channel><item><title>cut", source) == []
        assert parser.parse("<html><body>Not a feed</body></html>", source) == []
        assert parser.parse("", source) == []
        assert parser.parse(b"   ", source) == []

    def test_feed_without_entries(self):
        """A valid feed with no items yields an empty list."""
        assert FeedParser().parse(rss_document([]), make_source()) == []


class TestParsingHelpers:
    """Unit tests for the field normalization helpers."""

    def test_parse_published_formats(self):
        """Test the date shapes feeds commonly use."""
        assert parse_published("Mon, 02 Mar 2026 10:00:00 GMT") == datetime(
            2026, 3, 2, 10, 0, tzinfo=UTC
        )
        assert parse_published("2026-03-02T10:00:00+00:00") == datetime(
            2026, 3, 2, 10, 0, tzinfo=UTC
        )
        assert parse_published("2026-02-28 14:30:00") == datetime(
            2026, 2, 28, 14, 30
        ).astimezone()

    def test_parse_published_zone_abbreviations(self):
        assert parse_published("Mon, 02 Mar 2026 10:00:00 EST") == datetime(
            2026, 3, 2, 15, 0, tzinfo=UTC
        )
        assert parse_published("Mon, 02 Mar 2026 10:00:00 PDT") == datetime(
            2026, 3, 2, 17, 0, tzinfo=UTC
        )
        assert parse_published("Mon, 02 Mar 2026 10:00:00 UT") == datetime(
            2026, 3, 2, 10, 0, tzinfo=UTC
        )

    def test_parse_published_rejects_garbage(self):
        assert parse_published(None) is None
        assert parse_published("") is None
        assert parse_published("   ") is None
        assert parse_published("not a date") is None

    def test_truncate_summary(self):
        """Long text is cut with an ellipsis, short text is untouched."""
        assert truncate_summary("short") == "short"
        assert truncate_summary("a" * 400) == "a" * 400

        result = truncate_summary("a" * 500)
        assert result == "a" * 400 + ELLIPSIS
        assert len(result) == 401

    def test_html_cleaning_specific_cases(self):
        """Test HTML cleaning with specific problematic cases."""
        assert clean_html_content("<p>Hello <b>world</b></p>") == "Hello world"
        assert (
            clean_html_content("<script>alert('x')</script><p>Safe</p>") == "Safe"
        )
        assert clean_html_content("  plain\n\ttext  ") == "plain text"
        assert clean_html_content(None) == ""
        assert clean_html_content("") == ""

    def test_infer_tags(self):
        """Tags are returned in fixed order, each at most once."""
        assert infer_tags("New arxiv paper on startup funding") == (
            "Research",
            "Business",
        )
        assert infer_tags("EU passes AI safety law") == ("Policy",)
        assert infer_tags("Weights released on GitHub") == ("Open Source", "Product")
        assert infer_tags("A quiet day") == ()

    def test_infer_tags_matches_stems(self):
        """Stems match longer words that start with them."""
        assert "Business" in infer_tags("acquisition talks")
        assert "Policy" in infer_tags("regulators respond")
        assert "Research" not in infer_tags("remodel the kitchen")
