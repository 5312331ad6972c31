"""Unit tests for the article snapshot cache."""

import json
from datetime import UTC, datetime
from unittest.mock import Mock

from pulse.cache import CACHE_KEY, SnapshotCache
from pulse.config import CacheConfig
from pulse.store import MemoryStore
from tests.factories import make_article

TTL_MS = 15 * 60 * 1000


class TestSnapshotCacheUnit:
    """Unit tests for SnapshotCache."""

    def test_write_then_read_within_ttl(self):
        """A fresh snapshot is served with its articles intact."""
        store = MemoryStore()
        cache = SnapshotCache(store)
        article = make_article(
            url="https://x.test/a",
            title="Cached",
            published=datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
            tags=("Research",),
        )

        assert cache.write([article], now_ms=1_000)
        snapshot = cache.read(now_ms=1_000 + TTL_MS - 1)

        assert snapshot is not None
        assert snapshot.timestamp_ms == 1_000
        assert snapshot.articles == [article]

    def test_expired_at_exactly_ttl(self):
        """A snapshot exactly TTL old is no longer usable."""
        cache = SnapshotCache(MemoryStore())
        cache.write([make_article()], now_ms=0)

        assert cache.read(now_ms=TTL_MS) is None

    def test_custom_ttl(self):
        cache = SnapshotCache(MemoryStore(), CacheConfig(ttl_minutes=1))
        cache.write([make_article()], now_ms=0)

        assert cache.ttl_ms == 60_000
        assert cache.read(now_ms=59_999) is not None
        assert cache.read(now_ms=60_000) is None

    def test_missing_snapshot(self):
        assert SnapshotCache(MemoryStore()).read() is None

    def test_malformed_snapshots_are_absent(self):
        """Unreadable payloads behave exactly like a missing snapshot."""
        payloads = [
            "not json",
            "[]",
            json.dumps({"articles": []}),
            json.dumps({"timestamp": "yesterday", "articles": []}),
            json.dumps({"timestamp": True, "articles": []}),
            json.dumps({"timestamp": 0, "articles": {}}),
            json.dumps({"timestamp": 0, "articles": [{"title": "no url"}]}),
            json.dumps({"timestamp": 0, "articles": [42]}),
        ]
        for payload in payloads:
            cache = SnapshotCache(MemoryStore({CACHE_KEY: payload}))
            assert cache.read(now_ms=1) is None, payload

    def test_empty_article_list_is_valid(self):
        """An empty refresh result is still a usable snapshot."""
        cache = SnapshotCache(MemoryStore())
        cache.write([], now_ms=0)

        snapshot = cache.read(now_ms=1)

        assert snapshot is not None
        assert snapshot.articles == []

    def test_write_failure_is_reported_not_raised(self):
        """A store that cannot be written makes write() return False."""
        store = Mock()
        store.set.side_effect = OSError("disk full")
        cache = SnapshotCache(store)

        assert cache.write([make_article()]) is False

    def test_stored_format(self):
        """The payload carries epoch milliseconds and ISO timestamps."""
        store = MemoryStore()
        SnapshotCache(store).write(
            [make_article(published=datetime(2026, 3, 1, 9, 0, tzinfo=UTC))], now_ms=123
        )

        payload = json.loads(store.get(CACHE_KEY))

        assert payload["timestamp"] == 123
        assert payload["articles"][0]["published"] == "2026-03-01T09:00:00+00:00"

    def test_clear(self):
        store = MemoryStore()
        cache = SnapshotCache(store)
        cache.write([make_article()])

        cache.clear()

        assert store.get(CACHE_KEY) is None
        assert cache.read() is None
