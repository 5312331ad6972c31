"""Command-line interface for Pulse."""

import argparse
import json
import sys
import threading
from pathlib import Path

from .aggregator import AutoRefresher, NewsAggregator
from .config import REFRESH_INTERVALS, THEMES, Config
from .export import FORMATS, time_ago
from .logging_config import create_execution_logger, setup_structured_logging
from .models import Article, ReportWindow
from .search import FILTER_ALL, FILTER_BOOKMARKED
from .store import JsonFileStore

DEFAULT_LIST_LIMIT = 20


def format_article(article: Article) -> str:
    """Two-line console rendering of one article."""
    marker = "★ " if article.bookmarked else ""
    age = time_ago(article.published) or "undated"
    tags = f" [{', '.join(article.tags)}]" if article.tags else ""
    return (
        f"{article.source_icon} {marker}{article.title}\n"
        f"    {article.source} - {age}{tags}\n"
        f"    {article.url}"
    )


def print_articles(articles: list[Article], limit: int, as_json: bool = False) -> None:
    shown = articles[:limit] if limit > 0 else articles
    if as_json:
        print(json.dumps([a.to_dict() for a in shown], ensure_ascii=False, indent=2))
        return
    if not shown:
        print("No articles.")
        return
    for article in shown:
        print(format_article(article))
    if len(articles) > len(shown):
        print(f"... and {len(articles) - len(shown)} more")


def _ensure_articles(aggregator: NewsAggregator, cached_only: bool) -> None:
    """Populate the article list from the cache, refreshing if allowed."""
    if aggregator.load_cached() or cached_only:
        return
    aggregator.refresh()


def cmd_refresh(aggregator: NewsAggregator, args) -> int:
    result = aggregator.refresh()
    if args.json:
        print_articles(aggregator.articles_with_bookmarks(), args.limit, as_json=True)
    else:
        metrics = result.metrics
        print(
            f"Fetched {metrics.get('articles_merged', 0)} articles from "
            f"{metrics.get('sources_succeeded', 0)}/{metrics.get('sources_attempted', 0)} sources"
        )
        for source_result in result.results:
            if not source_result.ok:
                print(f"  ! {source_result.source.name}: {source_result.error}")
        print_articles(aggregator.articles_with_bookmarks(), args.limit)

    if args.watch:
        return _watch(aggregator, args.interval)
    return 0


def _watch(aggregator: NewsAggregator, interval_minutes: int | None) -> int:
    interval = interval_minutes or aggregator.settings.refresh_interval
    aggregator.on_update = lambda articles: print(
        f"Updated: {len(articles)} articles"
    )
    refresher = AutoRefresher(aggregator, interval_seconds=interval * 60)
    if not refresher.start():
        print(
            "Auto-refresh is off. Enable it with: pulse settings --auto-refresh",
            file=sys.stderr,
        )
        return 1
    print(f"Refreshing every {interval} minutes. Press Ctrl+C to stop.")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        refresher.stop(timeout=5)
    return 0


def cmd_report(aggregator: NewsAggregator, args) -> int:
    _ensure_articles(aggregator, args.cached)
    report = aggregator.generate_report(args.window)
    document = aggregator.export_report(report, args.format)

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(document, encoding="utf-8")
        print(f"Wrote {report.title} to {output}")
    else:
        print(document)
    return 0


def cmd_search(aggregator: NewsAggregator, args) -> int:
    _ensure_articles(aggregator, args.cached)
    matches = aggregator.filtered(args.query, args.category)
    print_articles(matches, args.limit, as_json=args.json)
    return 0


def cmd_sources(aggregator: NewsAggregator, args) -> int:
    changes = [(source_id, True) for source_id in args.enable]
    changes += [(source_id, False) for source_id in args.disable]
    for source_id, enabled in changes:
        if not aggregator.set_source_enabled(source_id, enabled):
            print(f"Unknown source: {source_id}", file=sys.stderr)
            return 1

    for source in aggregator.sources:
        mark = "x" if source.enabled else " "
        note = "" if source.category != "social" else " (not fetched)"
        print(f"[{mark}] {source.icon} {source.id:<16} {source.name} ({source.category}){note}")
    return 0


def cmd_bookmarks(aggregator: NewsAggregator, args) -> int:
    if args.clear:
        aggregator.clear_bookmarks()
    for url in args.add:
        if not aggregator.is_bookmarked(url):
            aggregator.toggle_bookmark(url)
    for url in args.remove:
        if aggregator.is_bookmarked(url):
            aggregator.toggle_bookmark(url)

    aggregator.load_cached()
    known = {article.url: article for article in aggregator.bookmarked_articles()}
    for url in sorted(aggregator.bookmarks):
        article = known.get(url)
        print(f"★ {article.title}\n    {url}" if article else f"★ {url}")
    if not aggregator.bookmarks:
        print("No bookmarks.")
    return 0


def cmd_settings(aggregator: NewsAggregator, args) -> int:
    changes = {}
    if args.theme:
        changes["theme"] = args.theme
    if args.auto_refresh is not None:
        changes["auto_refresh"] = args.auto_refresh
    if args.interval:
        changes["refresh_interval"] = args.interval
    settings = aggregator.update_settings(**changes) if changes else aggregator.settings

    print(f"theme: {settings.theme}")
    print(f"auto_refresh: {'on' if settings.auto_refresh else 'off'}")
    print(f"refresh_interval: {settings.refresh_interval} minutes")
    return 0


def cmd_clear(aggregator: NewsAggregator, args) -> int:
    aggregator.clear_data()
    print("Cleared bookmarks and cached articles.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pulse", description="Aggregate AI news from RSS and Atom feeds"
    )
    parser.add_argument(
        "--data-dir", help="Directory for persisted state (default: $PULSE_DATA_DIR or ~/.pulse)"
    )
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Fetch all enabled sources")
    refresh.add_argument("--limit", type=int, default=DEFAULT_LIST_LIMIT)
    refresh.add_argument("--json", action="store_true", help="Print articles as JSON")
    refresh.add_argument("--watch", action="store_true", help="Keep refreshing on a timer")
    refresh.add_argument(
        "--interval", type=int, choices=REFRESH_INTERVALS, help="Minutes between refreshes"
    )
    refresh.set_defaults(handler=cmd_refresh)

    report = subparsers.add_parser("report", help="Generate a categorized digest")
    report.add_argument(
        "--window",
        choices=[window.value for window in ReportWindow],
        default=ReportWindow.TODAY.value,
    )
    report.add_argument("--format", choices=FORMATS, default="markdown")
    report.add_argument("--output", "-o", help="Write to a file instead of stdout")
    report.add_argument(
        "--cached", action="store_true", help="Use cached articles, never fetch"
    )
    report.set_defaults(handler=cmd_report)

    search = subparsers.add_parser("search", help="Search articles")
    search.add_argument("query", nargs="?", default="")
    search.add_argument(
        "--category",
        default=FILTER_ALL,
        help=f"'{FILTER_ALL}', '{FILTER_BOOKMARKED}' or a source category",
    )
    search.add_argument("--limit", type=int, default=DEFAULT_LIST_LIMIT)
    search.add_argument("--json", action="store_true")
    search.add_argument("--cached", action="store_true")
    search.set_defaults(handler=cmd_search)

    sources = subparsers.add_parser("sources", help="List or toggle sources")
    sources.add_argument("--enable", action="append", default=[], metavar="ID")
    sources.add_argument("--disable", action="append", default=[], metavar="ID")
    sources.set_defaults(handler=cmd_sources)

    bookmarks = subparsers.add_parser("bookmarks", help="List or edit bookmarks")
    bookmarks.add_argument("--add", action="append", default=[], metavar="URL")
    bookmarks.add_argument("--remove", action="append", default=[], metavar="URL")
    bookmarks.add_argument("--clear", action="store_true")
    bookmarks.set_defaults(handler=cmd_bookmarks)

    settings = subparsers.add_parser("settings", help="Show or change preferences")
    settings.add_argument("--theme", choices=THEMES)
    settings.add_argument(
        "--auto-refresh", action=argparse.BooleanOptionalAction, default=None
    )
    settings.add_argument("--interval", type=int, choices=REFRESH_INTERVALS)
    settings.set_defaults(handler=cmd_settings)

    clear = subparsers.add_parser("clear", help="Delete bookmarks and cached articles")
    clear.set_defaults(handler=cmd_clear)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = Config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.data_dir:
        config.data_dir = Path(args.data_dir).expanduser()

    # Logs go to stderr so command output stays pipeable
    setup_structured_logging(args.log_level or config.log_level, stream=sys.stderr)
    logger = create_execution_logger("main")
    logger.debug("Running command", command=args.command, data_dir=str(config.data_dir))

    store = JsonFileStore(config.data_dir, execution_id=logger.execution_id)
    aggregator = NewsAggregator(store, config=config, execution_id=logger.execution_id)
    return args.handler(aggregator, args)


if __name__ == "__main__":
    sys.exit(main())
