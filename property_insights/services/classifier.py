"""Map a free-text question to one ``QuestionCategory`` with a single completion call."""

from __future__ import annotations

from typing import Optional, Sequence

from ..models.insights import QuestionCategory
from ..utils.logging import get_logger
from .completion import CompletionBackend
from .prompts import CATEGORY_DESCRIPTIONS, CLASSIFIER_PROMPT

LOGGER = get_logger("services.classifier")

_STRIP_CHARS = " \t\r\n`'\".:*"


class QuestionClassifier:
    def __init__(
        self,
        backend: CompletionBackend,
        categories: Optional[Sequence[QuestionCategory]] = None,
        default: QuestionCategory = QuestionCategory.COMPARISON,
    ) -> None:
        self.backend = backend
        self.categories = tuple(categories or QuestionCategory)
        self.default = default

    def prompt(self, question: str) -> str:
        lines = [f"- {category.value}: {CATEGORY_DESCRIPTIONS[category]}" for category in self.categories]
        return CLASSIFIER_PROMPT.format(
            categories="\n".join(lines),
            labels=", ".join(category.value for category in self.categories),
            question=question.strip(),
        )

    def resolve(self, raw: Optional[str]) -> QuestionCategory:
        """Normalize backend output; anything unrecognised becomes the default."""

        label = (raw or "").strip(_STRIP_CHARS).upper()
        for category in self.categories:
            if category.value == label:
                return category
        LOGGER.info("classification_ambiguous raw=%r default=%s", (raw or "")[:40], self.default.value)
        return self.default

    async def classify(self, question: str) -> QuestionCategory:
        raw = await self.backend.complete(self.prompt(question), temperature=0.0)
        category = self.resolve(raw)
        LOGGER.debug("classified category=%s", category.value)
        return category


__all__ = ["QuestionClassifier"]
