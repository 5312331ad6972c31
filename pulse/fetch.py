"""Concurrent feed retrieval with per-source mirror fallback."""

import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import quote, urlparse

import requests

from .config import FetchConfig
from .logging_config import create_execution_logger
from .models import Source, SourceResult
from .rss import FeedParser

CHUNK_SIZE = 64 * 1024


def build_mirror_urls(feed_url: str, mirrors: tuple[str, ...]) -> list[str]:
    """Expand mirror templates for one feed, keeping their order."""
    quoted = quote(feed_url, safe="")
    return [
        template.replace("{quoted}", quoted).replace("{url}", feed_url)
        for template in mirrors
    ]


def _abort_response(response: requests.Response, expired: threading.Event) -> None:
    """Unblock a reader stuck on `response` by shutting its socket down."""
    expired.set()
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        response.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already closed by the peer
        response.close()


class FeedFetcher:
    """Retrieves and parses feeds for many sources at once."""

    def __init__(
        self,
        config: FetchConfig | None = None,
        parser: FeedParser | None = None,
        session: requests.Session | None = None,
        execution_id: str | None = None,
    ):
        """Initialize FeedFetcher with configuration.

        Args:
            config: Timeouts, worker bound and mirror templates
            parser: Parser applied to every downloaded document
            session: HTTP session shared by all workers
            execution_id: Execution ID for logging context
        """
        self.config = config or FetchConfig()
        self.parser = parser or FeedParser(self.config.max_entries, execution_id)
        self.logger = create_execution_logger("fetcher", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

        self.logger.info(
            "FeedFetcher initialized",
            timeout=self.config.timeout,
            max_workers=self.config.max_workers,
            mirrors=len(self.config.mirrors),
        )

    def fetch_all(self, sources: list[Source]) -> list[SourceResult]:
        """Fetch every source concurrently and wait for all of them.

        The result list is parallel to `sources`. A failing source yields an
        empty SourceResult and never affects its siblings.
        """
        if not sources:
            return []

        self.logger.log_execution_start(source_count=len(sources))
        workers = min(self.config.max_workers, len(sources))

        results = []
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="pulse-fetch"
        ) as executor:
            futures = [executor.submit(self.fetch_source, source) for source in sources]
            for source, future in zip(sources, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    self.logger.error(
                        f"Unexpected failure fetching {source.id}: {e}",
                        source_id=source.id,
                        error=str(e),
                    )
                    results.append(SourceResult(source=source, error=str(e)))

        succeeded = sum(1 for result in results if result.ok)
        self.logger.log_execution_end(
            success=True,
            sources_succeeded=succeeded,
            sources_failed=len(results) - succeeded,
            total_articles=sum(len(result.articles) for result in results),
        )
        return results

    def fetch_source(self, source: Source) -> SourceResult:
        """Try each mirror in order until one yields a non-empty parse."""
        scheme = urlparse(source.feed_url).scheme
        if scheme not in ("http", "https"):
            self.logger.warning(
                "Skipping source with unsupported URL scheme",
                source_id=source.id,
                feed_url=source.feed_url,
                scheme=scheme,
            )
            return SourceResult(source=source, error=f"unsupported scheme: {scheme}")

        last_error = None
        for mirror_url in build_mirror_urls(source.feed_url, self.config.mirrors):
            try:
                body = self.download(mirror_url)
            except requests.RequestException as e:
                last_error = str(e)
                self.logger.warning(
                    f"Mirror failed for {source.id}: {e}",
                    source_id=source.id,
                    mirror=mirror_url,
                    error=str(e),
                )
                continue

            articles = self.parser.parse(body, source)
            if articles:
                self.logger.log_source_processing(source.id, len(articles))
                return SourceResult(source=source, articles=articles, mirror=mirror_url)

            last_error = "no articles parsed"
            self.logger.warning(
                "Mirror returned no articles",
                source_id=source.id,
                mirror=mirror_url,
                content_length=len(body),
            )

        self.logger.warning(
            "All mirrors exhausted",
            source_id=source.id,
            feed_url=source.feed_url,
            error=last_error,
        )
        return SourceResult(source=source, error=last_error)

    def download(self, url: str) -> bytes:
        """Download a document within the configured time budget.

        A watchdog shuts the connection down once the budget is spent, so a
        server trickling bytes cannot keep a read blocked past the deadline.

        Raises:
            requests.RequestException: On network errors, non-2xx responses
                or when the whole download takes longer than the timeout
        """
        timeout = self.config.timeout
        deadline = time.monotonic() + timeout
        expired = threading.Event()

        with self.session.get(url, timeout=timeout, stream=True) as response:
            response.raise_for_status()
            watchdog = threading.Timer(
                max(deadline - time.monotonic(), 0.0),
                _abort_response,
                args=(response, expired),
            )
            watchdog.daemon = True
            watchdog.start()

            chunks = []
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if expired.is_set() or time.monotonic() > deadline:
                        break
                    chunks.append(chunk)
            except requests.RequestException:
                if not expired.is_set():
                    raise
            finally:
                watchdog.cancel()

            if expired.is_set() or time.monotonic() > deadline:
                raise requests.Timeout(f"Download of {url} exceeded {timeout}s")

        return b"".join(chunks)
