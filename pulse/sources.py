"""Source registry: the feed catalog and its user-toggled enabled state."""

import json
from dataclasses import replace

from .logging_config import create_execution_logger
from .models import Source
from .store import KeyValueStore

SOURCES_KEY = "pulse_sources"

DEFAULT_SOURCES: tuple[Source, ...] = (
    # Company blogs
    Source(
        id="openai",
        name="OpenAI Blog",
        feed_url="https://openai.com/blog/rss.xml",
        website_url="https://openai.com/blog",
        category="company",
        icon="🟢",
        color="#10A37F",
    ),
    Source(
        id="anthropic",
        name="Anthropic",
        feed_url="https://www.anthropic.com/rss.xml",
        website_url="https://www.anthropic.com/news",
        category="company",
        icon="🟠",
        color="#D4A843",
    ),
    Source(
        id="deepmind",
        name="Google DeepMind",
        feed_url="https://deepmind.google/blog/rss.xml",
        website_url="https://deepmind.google/discover/blog",
        category="company",
        icon="🔵",
        color="#4285F4",
    ),
    Source(
        id="meta-ai",
        name="Meta AI",
        feed_url="https://ai.meta.com/blog/feed",
        website_url="https://ai.meta.com/blog",
        category="company",
        icon="Ⓜ️",
        color="#0082FB",
    ),
    Source(
        id="microsoft-ai",
        name="Microsoft AI",
        feed_url="https://blogs.microsoft.com/ai/feed/",
        website_url="https://blogs.microsoft.com/ai",
        category="company",
        icon="🪟",
        color="#00A4EF",
    ),
    # News sites
    Source(
        id="techcrunch-ai",
        name="TechCrunch AI",
        feed_url="https://techcrunch.com/category/artificial-intelligence/feed/",
        website_url="https://techcrunch.com/category/artificial-intelligence",
        category="news",
        icon="⚡",
        color="#0A8A00",
    ),
    Source(
        id="verge-ai",
        name="The Verge AI",
        feed_url="https://www.theverge.com/rss/ai-artificial-intelligence/index.xml",
        website_url="https://www.theverge.com/ai-artificial-intelligence",
        category="news",
        icon="🔺",
        color="#FA4522",
    ),
    Source(
        id="venturebeat-ai",
        name="VentureBeat AI",
        feed_url="https://venturebeat.com/category/ai/feed/",
        website_url="https://venturebeat.com/category/ai",
        category="news",
        icon="📈",
        color="#8B5CF6",
    ),
    Source(
        id="wired-ai",
        name="Wired AI",
        feed_url="https://www.wired.com/feed/tag/ai/latest/rss",
        website_url="https://www.wired.com/tag/artificial-intelligence",
        category="news",
        icon="📡",
        color="#1A1A1A",
    ),
    Source(
        id="mit-tech-review",
        name="MIT Technology Review",
        feed_url="https://www.technologyreview.com/feed/",
        website_url="https://www.technologyreview.com",
        category="news",
        icon="🎓",
        color="#A31F34",
    ),
    Source(
        id="ai-news",
        name="AI News",
        feed_url="https://www.artificialintelligence-news.com/feed/",
        website_url="https://www.artificialintelligence-news.com",
        category="news",
        icon="📰",
        color="#2563EB",
    ),
    # Research
    Source(
        id="arxiv-ai",
        name="ArXiv AI",
        feed_url="https://export.arxiv.org/rss/cs.AI",
        website_url="https://arxiv.org/list/cs.AI/recent",
        category="research",
        icon="📄",
        color="#B31B1B",
    ),
    Source(
        id="arxiv-ml",
        name="ArXiv ML",
        feed_url="https://export.arxiv.org/rss/cs.LG",
        website_url="https://arxiv.org/list/cs.LG/recent",
        category="research",
        icon="∑",
        color="#B31B1B",
    ),
    # Social, served by a separate authenticated integration
    Source(
        id="x-ai",
        name="X (Twitter) AI",
        feed_url="x://api/v2/tweets/search",
        website_url="https://twitter.com",
        category="social",
        icon="🐦",
        color="#000000",
    ),
)


class SourceRegistry:
    """Holds the source catalog merged with the persisted enabled flags."""

    def __init__(
        self,
        store: KeyValueStore,
        defaults: tuple[Source, ...] = DEFAULT_SOURCES,
        execution_id: str | None = None,
    ):
        self.store = store
        self.defaults = defaults
        self.logger = create_execution_logger("registry", execution_id)
        self._sources: list[Source] | None = None

    def load(self) -> list[Source]:
        """Return defaults with the user's enabled flags applied by id.

        Sources added to the defaults since the state was saved keep their
        default flag; saved ids no longer in the defaults are ignored.
        """
        saved = self._read_enabled_state()
        self._sources = [
            replace(source, enabled=saved.get(source.id, source.enabled))
            for source in self.defaults
        ]
        self.logger.debug(
            "Loaded sources",
            total=len(self._sources),
            enabled=sum(1 for s in self._sources if s.enabled),
        )
        return list(self._sources)

    @property
    def sources(self) -> list[Source]:
        if self._sources is None:
            return self.load()
        return list(self._sources)

    def get(self, source_id: str) -> Source | None:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None

    def set_enabled(self, source_id: str, enabled: bool) -> bool:
        """Toggle a source and persist immediately.

        Returns False if no source has that id.
        """
        sources = self.sources
        for index, source in enumerate(sources):
            if source.id == source_id:
                sources[index] = replace(source, enabled=enabled)
                break
        else:
            self.logger.warning("Unknown source id", source_id=source_id)
            return False

        self._sources = sources
        self._persist()
        self.logger.info(
            "Source toggled", source_id=source_id, enabled=enabled
        )
        return True

    def enabled_fetchable(self) -> list[Source]:
        """Enabled sources that the generic feed path can retrieve."""
        return [source for source in self.sources if source.fetchable]

    def _read_enabled_state(self) -> dict[str, bool]:
        raw = self.store.get(SOURCES_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            self.logger.warning("Ignoring malformed source state")
            return {}
        if not isinstance(data, list):
            return {}

        state = {}
        for entry in data:
            if (
                isinstance(entry, dict)
                and isinstance(entry.get("id"), str)
                and isinstance(entry.get("enabled"), bool)
            ):
                state[entry["id"]] = entry["enabled"]
        return state

    def _persist(self) -> None:
        payload = json.dumps(
            [{"id": s.id, "enabled": s.enabled} for s in self._sources or []]
        )
        try:
            self.store.set(SOURCES_KEY, payload)
        except OSError as e:
            self.logger.warning(
                f"Failed to persist source state: {e}", error=str(e)
            )
