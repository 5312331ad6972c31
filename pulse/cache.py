"""TTL-bounded article snapshot for instant start-up display."""

import json
import time

from .config import CacheConfig
from .logging_config import create_execution_logger
from .models import Article, CacheSnapshot
from .store import KeyValueStore

CACHE_KEY = "pulse_news_cache"


def _now_ms() -> int:
    return int(time.time() * 1000)


class SnapshotCache:
    """Best-effort snapshot store. Nothing here raises to the caller."""

    def __init__(
        self,
        store: KeyValueStore,
        config: CacheConfig | None = None,
        execution_id: str | None = None,
    ):
        self.store = store
        self.config = config or CacheConfig()
        self.logger = create_execution_logger("cache", execution_id)

    @property
    def ttl_ms(self) -> int:
        return self.config.ttl_minutes * 60 * 1000

    def read(self, now_ms: int | None = None) -> CacheSnapshot | None:
        """Return the snapshot if present, well-formed and younger than the TTL."""
        raw = self.store.get(CACHE_KEY)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
            timestamp_ms = data["timestamp"]
            if isinstance(timestamp_ms, bool) or not isinstance(timestamp_ms, int):
                raise ValueError("timestamp must be epoch milliseconds")
            entries = data["articles"]
            if not isinstance(entries, list):
                raise ValueError("articles must be a list")
            articles = [Article.from_dict(entry) for entry in entries]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.warning(f"Ignoring unreadable snapshot: {e}", error=str(e))
            return None

        now_ms = _now_ms() if now_ms is None else now_ms
        age_ms = now_ms - timestamp_ms
        if age_ms >= self.ttl_ms:
            self.logger.debug("Snapshot expired", age_ms=age_ms, ttl_ms=self.ttl_ms)
            return None

        self.logger.info(
            "Serving cached snapshot", articles_count=len(articles), age_ms=age_ms
        )
        return CacheSnapshot(timestamp_ms=timestamp_ms, articles=articles)

    def write(self, articles: list[Article], now_ms: int | None = None) -> bool:
        """Replace the snapshot. Returns False if the write failed."""
        payload = {
            "timestamp": _now_ms() if now_ms is None else now_ms,
            "articles": [article.to_dict() for article in articles],
        }
        try:
            self.store.set(CACHE_KEY, json.dumps(payload, ensure_ascii=False))
        except (OSError, TypeError, ValueError) as e:
            self.logger.warning(f"Failed to write snapshot: {e}", error=str(e))
            return False

        self.logger.debug("Snapshot written", articles_count=len(articles))
        return True

    def clear(self) -> None:
        try:
            self.store.delete(CACHE_KEY)
        except OSError as e:
            self.logger.warning(f"Failed to clear snapshot: {e}", error=str(e))
