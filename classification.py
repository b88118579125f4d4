from typing import Iterable, Mapping

from pydantic import BaseModel

from models import Category, TransactionRecord


# Keyword heuristics over the lowercased explorer ``functionName``.
# They overlap on purpose: one transaction may land in several categories.
DEFAULT_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.SWAP: ("swap", "exactoutput", "exactinput", "multicall"),
    Category.BRIDGE: ("bridge", "deposit", "withdraw"),
    Category.DEFI: ("stake", "supply", "borrow", "repay", "mint", "claim"),
    Category.NAMING: ("commit", "register", "setname", "settext"),
}


class ClassificationRules(BaseModel):
    keywords: dict[Category, tuple[str, ...]] = dict(DEFAULT_KEYWORDS)

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, Iterable[str]]) -> "ClassificationRules":
        keywords = dict(DEFAULT_KEYWORDS)
        for category, words in overrides.items():
            keywords[Category(category)] = tuple(w.lower() for w in words)
        return cls(keywords=keywords)

    def categorize(self, tx: TransactionRecord) -> set[Category]:
        fn = (tx.function_name or "").lower()
        categories = {
            category
            for category, words in self.keywords.items()
            if any(word in fn for word in words)
        }
        if tx.creates_contract:
            categories.add(Category.DEPLOYMENT)
        return categories

    def count(self, txs: Iterable[TransactionRecord]) -> dict[Category, int]:
        counts = {category: 0 for category in Category}
        for tx in txs:
            for category in self.categorize(tx):
                counts[category] += 1
        return counts
