"""Render the category template with property data and context, then complete it."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from ..errors import SynthesisFailed
from ..models.insights import QuestionCategory
from ..models.property import Property
from ..utils.logging import get_logger
from .completion import CompletionBackend
from .context import ContextBundle
from .policy import CategoryPolicy
from .prompts import TEMPLATES

LOGGER = get_logger("services.synthesizer")

MISSING = "No data available"


class _TemplateFields(dict):
    def __missing__(self, key: str) -> str:
        return MISSING


def to_template_text(value: Any) -> str:
    """Serialize a context section into text that is safe to drop into a template."""

    if value is None or value == {} or value == []:
        return MISSING
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


class ResponseSynthesizer:
    def __init__(self, backend: CompletionBackend, policy: Mapping[QuestionCategory, CategoryPolicy]) -> None:
        self.backend = backend
        self.policy = policy

    def render(self, category: QuestionCategory, prop: Property, bundle: ContextBundle, question: str) -> str:
        fields: Dict[str, str] = _TemplateFields(
            name=prop.name,
            address=prop.address,
            city=prop.city,
            state=prop.state,
            year_built=str(prop.year_built) if prop.has_known_year else "Unknown",
            units=str(prop.units),
            levels=str(prop.levels),
            submarket=prop.submarket,
            question=question.strip(),
        )
        for name, value in bundle.sections().items():
            fields[name] = to_template_text(value)
        template = TEMPLATES[self.policy[category].template]
        return template.format_map(fields)

    async def synthesize(self, category: QuestionCategory, prop: Property, bundle: ContextBundle, question: str) -> str:
        policy = self.policy[category]
        prompt = self.render(category, prop, bundle, question)
        try:
            text = await self.backend.complete(prompt, web_search=policy.web_search)
        except Exception as exc:
            raise SynthesisFailed(f"Completion failed for {category.value} question: {exc}") from exc
        if not text or not text.strip():
            raise SynthesisFailed(f"Completion returned no text for {category.value} question")
        LOGGER.debug("synthesized category=%s mode=%s chars=%d", category.value, policy.mode.value, len(text))
        return text.strip()


__all__ = ["ResponseSynthesizer", "to_template_text"]
