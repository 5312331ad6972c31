"""Single-label keyword classifier used to group report sections."""

from dataclasses import dataclass

from .models import Article


@dataclass(frozen=True)
class ReportCategory:
    id: str
    label: str
    emoji: str
    keywords: tuple[str, ...]


# Order matters: it breaks ties between equally scored categories.
REPORT_CATEGORIES: tuple[ReportCategory, ...] = (
    ReportCategory(
        id="models",
        label="Models & Research",
        emoji="🧠",
        keywords=(
            "gpt", "llm", "model", "claude", "gemini", "llama", "benchmark",
            "paper", "research", "arxiv", "training", "fine-tun",
        ),
    ),
    ReportCategory(
        id="industry",
        label="Industry & Business",
        emoji="💼",
        keywords=(
            "funding", "acquisition", "billion", "startup", "investment",
            "revenue", "partnership", "deal", "valuation",
        ),
    ),
    ReportCategory(
        id="policy",
        label="Policy & Safety",
        emoji="⚖️",
        keywords=(
            "regulation", "policy", "law", "eu", "act", "safety", "risk",
            "ethics", "bias", "governance", "ban",
        ),
    ),
    ReportCategory(
        id="products",
        label="Products & Tools",
        emoji="🛠️",
        keywords=(
            "launch", "release", "update", "feature", "app", "tool",
            "platform", "product", "api", "sdk",
        ),
    ),
    ReportCategory(
        id="open-source",
        label="Open Source",
        emoji="🔓",
        keywords=(
            "open source", "github", "hugging face", "mistral", "ollama",
            "community", "weights",
        ),
    ),
)

DEFAULT_CATEGORY_ID = "products"


class Categorizer:
    """Assigns exactly one report category per article."""

    def __init__(
        self,
        categories: tuple[ReportCategory, ...] = REPORT_CATEGORIES,
        default_id: str = DEFAULT_CATEGORY_ID,
    ):
        self.categories = categories
        self.default = next(c for c in categories if c.id == default_id)

    @staticmethod
    def score(text: str, category: ReportCategory) -> int:
        """Number of the category's keywords found in lower-cased text."""
        return sum(1 for keyword in category.keywords if keyword in text)

    def categorize(self, article: Article) -> ReportCategory:
        """Highest keyword count wins; the first category seen wins ties."""
        text = f"{article.title} {article.summary}".lower()
        best = None
        best_score = 0
        for category in self.categories:
            score = self.score(text, category)
            if score > best_score:
                best, best_score = category, score
        return best or self.default
