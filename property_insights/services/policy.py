"""Per-category wiring: which fetcher, which template, which completion mode."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from ..config import InsightsSettings
from ..models.insights import QuestionCategory


class CompletionMode(str, Enum):
    PLAIN = "plain"
    WEB_AUGMENTED = "web_augmented"


@dataclass(frozen=True)
class CategoryPolicy:
    category: QuestionCategory
    fetcher: str
    template: str
    mode: CompletionMode = CompletionMode.PLAIN

    @property
    def web_search(self) -> bool:
        return self.mode is CompletionMode.WEB_AUGMENTED


# fetcher names map to ContextService.fetch_<name>
ROUTES: Dict[QuestionCategory, str] = {
    QuestionCategory.FACT: "fact",
    QuestionCategory.COMPLEX_FACT: "fact",
    QuestionCategory.COMPARISON: "comparison",
    QuestionCategory.INVESTMENT: "investment",
    QuestionCategory.MARKET: "market",
    QuestionCategory.IRRELEVANT: "none",
}


def build_policy(settings: Optional[InsightsSettings] = None) -> Dict[QuestionCategory, CategoryPolicy]:
    settings = settings or InsightsSettings()
    augmented = set(settings.augmented_categories)
    return {
        category: CategoryPolicy(
            category=category,
            fetcher=ROUTES[category],
            template=category.value,
            mode=CompletionMode.WEB_AUGMENTED if category in augmented else CompletionMode.PLAIN,
        )
        for category in settings.categories
    }


__all__ = ["CompletionMode", "CategoryPolicy", "ROUTES", "build_policy"]
