"""Coordinator owning the article list, bookmarks, sources and settings.

All shared state is mutated through NewsAggregator methods. Refresh cycles
are not reentrant: a trigger that arrives while one is running (manual,
timer or start-up) is ignored and reported as skipped.
"""

import json
import threading
from dataclasses import replace
from datetime import UTC, datetime

from .cache import SnapshotCache
from .config import AppSettings, Config, load_settings, save_settings
from .dedup import Deduplicator
from .export import export_report
from .fetch import FeedFetcher
from .logging_config import create_execution_logger
from .models import (
    Article,
    EmptyReport,
    FeedState,
    RefreshResult,
    Report,
    ReportWindow,
    Source,
)
from .report import ReportGenerator
from .search import FILTER_ALL, filter_articles
from .sources import SourceRegistry
from .store import KeyValueStore

BOOKMARKS_KEY = "pulse_bookmarks"


class NewsAggregator:
    """Runs refresh cycles and answers the rendering layer's queries."""

    def __init__(
        self,
        store: KeyValueStore,
        config: Config | None = None,
        fetcher: FeedFetcher | None = None,
        on_update=None,
        execution_id: str | None = None,
    ):
        """Initialize the coordinator.

        Args:
            store: Persisted key-value store shared by all components
            config: Environment configuration
            fetcher: Feed fetcher; built from config when omitted
            on_update: Called with the article list whenever it changes
            execution_id: Execution ID for logging context
        """
        self.config = config or Config()
        self.store = store
        self.execution_id = (
            execution_id or f"pulse_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
        )
        self.logger = create_execution_logger("aggregator", self.execution_id)

        self.registry = SourceRegistry(store, execution_id=self.execution_id)
        self.cache = SnapshotCache(
            store, self.config.get_cache_config(), execution_id=self.execution_id
        )
        self.fetcher = fetcher or FeedFetcher(
            self.config.get_fetch_config(), execution_id=self.execution_id
        )
        self.deduplicator = Deduplicator(execution_id=self.execution_id)
        self.report_generator = ReportGenerator(execution_id=self.execution_id)
        self.settings = load_settings(store)
        self.on_update = on_update

        self.state = FeedState.IDLE
        self.last_refreshed: datetime | None = None
        self.current_report: Report | EmptyReport | None = None
        self._articles: list[Article] = []
        self._bookmarks: set[str] = self._load_bookmarks()
        self._refresh_lock = threading.Lock()

    # Articles

    @property
    def articles(self) -> list[Article]:
        return list(self._articles)

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_lock.locked()

    def _set_articles(self, articles: list[Article]) -> None:
        self._articles = list(articles)
        if self.on_update is not None:
            self.on_update(self.articles_with_bookmarks())

    def load_cached(self) -> bool:
        """Show the cached snapshot, if still fresh. Returns True if used."""
        snapshot = self.cache.read()
        if snapshot is None:
            return False
        self.last_refreshed = datetime.fromtimestamp(
            snapshot.timestamp_ms / 1000
        ).astimezone()
        self._set_articles(snapshot.articles)
        return True

    def refresh(self) -> RefreshResult:
        """Run one full fetch, merge and cache cycle.

        Returns a skipped result when another cycle is already running.
        """
        if not self._refresh_lock.acquire(blocking=False):
            self.logger.info("Refresh already in progress, ignoring trigger")
            return RefreshResult(articles=self.articles, skipped=True)

        try:
            self.logger.log_execution_start()
            self.load_cached()
            self.state = FeedState.LOADING

            sources = self.registry.enabled_fetchable()
            results = self.fetcher.fetch_all(sources)
            batches = [result.articles for result in results]
            merged = self.deduplicator.merge(batches)

            fetched = sum(len(batch) for batch in batches)
            without_url = sum(1 for batch in batches for a in batch if not a.url)
            succeeded = sum(1 for result in results if result.ok)
            metrics = {
                "sources_attempted": len(sources),
                "sources_succeeded": succeeded,
                "sources_failed": len(sources) - succeeded,
                "articles_fetched": fetched,
                "articles_merged": len(merged),
                "articles_without_url": without_url,
                "duplicates_removed": fetched - without_url - len(merged),
            }

            # The snapshot always reflects the latest completed cycle
            self.cache.write(merged)
            self.last_refreshed = datetime.now().astimezone()
            self.state = FeedState.READY if merged else FeedState.EMPTY
            self._set_articles(merged)

            self.logger.log_metrics(metrics)
            self.logger.log_execution_end(success=True, state=self.state.value)
            return RefreshResult(articles=self.articles, results=results, metrics=metrics)
        except Exception as e:
            self.state = FeedState.READY if self._articles else FeedState.EMPTY
            self.logger.error(f"Refresh failed: {e}", error=str(e))
            self.logger.log_execution_end(success=False, error=str(e))
            raise
        finally:
            self._refresh_lock.release()

    def filtered(self, query: str = "", category: str = FILTER_ALL) -> list[Article]:
        return filter_articles(
            self.articles_with_bookmarks(), query, category, self._bookmarks
        )

    # Reports

    def generate_report(
        self, window: ReportWindow | str = ReportWindow.TODAY
    ) -> Report | EmptyReport:
        self.current_report = self.report_generator.generate(self._articles, window)
        return self.current_report

    def export_report(
        self, report: Report | EmptyReport | None = None, fmt: str = "markdown"
    ) -> str:
        """Render the given report, the current one, or a fresh 'today' one."""
        if report is None:
            report = self.current_report or self.generate_report()
        return export_report(report, fmt)

    # Sources

    @property
    def sources(self) -> list[Source]:
        return self.registry.sources

    def set_source_enabled(self, source_id: str, enabled: bool) -> bool:
        return self.registry.set_enabled(source_id, enabled)

    # Bookmarks

    def _load_bookmarks(self) -> set[str]:
        raw = self.store.get(BOOKMARKS_KEY)
        if raw is None:
            return set()
        try:
            data = json.loads(raw)
        except ValueError:
            self.logger.warning("Ignoring malformed bookmarks")
            return set()
        if not isinstance(data, list):
            return set()
        return {url for url in data if isinstance(url, str) and url}

    def _save_bookmarks(self) -> None:
        try:
            self.store.set(BOOKMARKS_KEY, json.dumps(sorted(self._bookmarks)))
        except OSError as e:
            self.logger.warning(f"Failed to save bookmarks: {e}", error=str(e))

    @property
    def bookmarks(self) -> frozenset[str]:
        return frozenset(self._bookmarks)

    def is_bookmarked(self, url: str) -> bool:
        return url in self._bookmarks

    def toggle_bookmark(self, url: str) -> bool:
        """Flip bookmark membership. Returns the new state."""
        if url in self._bookmarks:
            self._bookmarks.discard(url)
        else:
            self._bookmarks.add(url)
        self._save_bookmarks()
        return url in self._bookmarks

    def clear_bookmarks(self) -> None:
        self._bookmarks.clear()
        self._save_bookmarks()

    def articles_with_bookmarks(self) -> list[Article]:
        """Copies of the articles with the bookmarked flag overlaid."""
        return [
            replace(article, bookmarked=True) if article.url in self._bookmarks else article
            for article in self._articles
        ]

    def bookmarked_articles(self) -> list[Article]:
        return [article for article in self.articles_with_bookmarks() if article.bookmarked]

    def clear_data(self) -> None:
        """Forget bookmarks, the article list and the cached snapshot."""
        self.clear_bookmarks()
        self.cache.clear()
        self._articles = []
        self.state = FeedState.IDLE
        self.current_report = None

    # Settings

    def update_settings(self, **changes) -> AppSettings:
        self.settings = replace(self.settings, **changes)
        save_settings(self.store, self.settings)
        return self.settings


class AutoRefresher:
    """Triggers aggregator refreshes on a fixed interval in the background."""

    def __init__(self, aggregator: NewsAggregator, interval_seconds: float | None = None):
        self.aggregator = aggregator
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else aggregator.settings.refresh_interval * 60
        )
        self.logger = create_execution_logger("aggregator", aggregator.execution_id)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start the timer thread if the auto_refresh setting is on.

        Returns whether the timer is running afterwards.
        """
        if self.running:
            return True
        if not self.aggregator.settings.auto_refresh:
            self.logger.info("Auto-refresh is disabled in settings")
            return False
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="pulse-auto-refresh", daemon=True
        )
        self._thread.start()
        self.logger.info(
            "Auto-refresh started", interval_seconds=self.interval_seconds
        )
        return True

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self.logger.info("Auto-refresh stopped")

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            if not self.aggregator.settings.auto_refresh:
                self.logger.info("Auto-refresh turned off, stopping timer")
                return
            try:
                self.aggregator.refresh()
            except Exception as e:
                self.logger.error(f"Auto-refresh cycle failed: {e}", error=str(e))
