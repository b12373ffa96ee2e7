"""Run one question through normalize, classify, fetch and synthesize."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from ..config import InsightsSettings
from ..db.repo import Repo
from ..errors import InvalidPayload
from ..models.insights import InsightsResponse, QuestionCategory, ReadinessResponse
from ..utils.logging import get_logger
from .classifier import QuestionClassifier
from .completion import CompletionBackend
from .context import ContextBundle, ContextService
from .normalizer import normalize_property
from .policy import build_policy
from .synthesizer import ResponseSynthesizer

LOGGER = get_logger("services.insights")

GENERIC_ERROR = "Failed to generate property insights"
WARMUP_QUESTION = "What year was this property built?"
DEFAULT_WARMUP_TIMEOUT_S = 8.0


class PipelineStage(str, Enum):
    RECEIVED = "received"
    NORMALIZED = "normalized"
    CLASSIFIED = "classified"
    CONTEXT_FETCHED = "context_fetched"
    SYNTHESIZED = "synthesized"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class InsightsFailure:
    error: str
    details: str
    status_code: int = 500

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error, "details": self.details}


def _advance(current: PipelineStage, target: PipelineStage) -> PipelineStage:
    LOGGER.debug("stage_transition from=%s to=%s", current.value, target.value)
    return target


class InsightsService:
    def __init__(
        self,
        repository: Repo,
        backend: CompletionBackend,
        settings: Optional[InsightsSettings] = None,
        warmup_timeout_s: float = DEFAULT_WARMUP_TIMEOUT_S,
    ) -> None:
        self.settings = settings or InsightsSettings()
        self.repository = repository
        self.backend = backend
        self.warmup_timeout_s = warmup_timeout_s
        self.policy = build_policy(self.settings)
        self.context = ContextService(repository, self.settings)
        self.classifier = QuestionClassifier(backend, tuple(self.policy), self.settings.default_category)
        self.synthesizer = ResponseSynthesizer(backend, self.policy)

    async def fetch_context(self, category: QuestionCategory, prop) -> ContextBundle:
        fetcher = getattr(self.context, f"fetch_{self.policy[category].fetcher}")
        return await fetcher(prop)

    async def run(self, question: Any, property_data: Any) -> InsightsResponse:
        """Execute the pipeline, raising on the first failed stage."""

        stage = PipelineStage.RECEIVED
        try:
            if not isinstance(question, str) or not question.strip():
                raise InvalidPayload("question must be a non-empty string")
            prop = normalize_property(property_data)
            stage = _advance(stage, PipelineStage.NORMALIZED)

            category = await self.classifier.classify(question)
            stage = _advance(stage, PipelineStage.CLASSIFIED)

            bundle = await self.fetch_context(category, prop)
            stage = _advance(stage, PipelineStage.CONTEXT_FETCHED)

            text = await self.synthesizer.synthesize(category, prop, bundle, question)
            stage = _advance(stage, PipelineStage.SYNTHESIZED)
        except Exception:
            LOGGER.error("pipeline_failed last_stage=%s", stage.value)
            _advance(stage, PipelineStage.FAILED)
            raise
        _advance(stage, PipelineStage.COMPLETED)

        summary = bundle.summary()
        LOGGER.info(
            "pipeline_completed category=%s property=%s records=%d",
            category.value,
            prop.property_id,
            summary.records_used,
        )
        return InsightsResponse(
            response=text,
            question_type=category.value,
            property=prop.to_payload(),
            context_summary=summary,
        )

    async def answer(self, payload: Any) -> Union[InsightsResponse, InsightsFailure]:
        """Request/response cycle: never raises, failures become one error envelope."""

        try:
            if not isinstance(payload, Mapping):
                raise InvalidPayload("request body must be a JSON object")
            return await self.run(payload.get("question"), payload.get("propertyData"))
        except InvalidPayload as exc:
            return InsightsFailure(error=GENERIC_ERROR, details=str(exc), status_code=400)
        except Exception as exc:
            LOGGER.error("Property insights error: %s", exc)
            return InsightsFailure(error=GENERIC_ERROR, details=str(exc), status_code=500)

    async def warmup(self) -> ReadinessResponse:
        """Best-effort readiness probe; failures only downgrade the status."""

        components: Dict[str, str] = {}
        try:
            category = await self.classifier.classify(WARMUP_QUESTION)
            components["classifier"] = f"ok ({category.value})"
        except Exception as exc:
            LOGGER.warning("warmup_failed component=classifier error=%s", exc)
            components["classifier"] = "error"

        try:
            await self.backend.complete("Reply with the single word OK.")
            components["completion"] = "ok"
        except Exception as exc:
            LOGGER.warning("warmup_failed component=completion error=%s", exc)
            components["completion"] = "error"

        try:
            await asyncio.wait_for(
                self.backend.complete("Reply with the single word OK.", web_search=True),
                timeout=self.warmup_timeout_s,
            )
            components["web_search"] = "ok"
        except asyncio.TimeoutError:
            LOGGER.warning("warmup_timeout component=web_search timeout_s=%s", self.warmup_timeout_s)
            components["web_search"] = "timeout"
        except Exception as exc:
            LOGGER.warning("warmup_failed component=web_search error=%s", exc)
            components["web_search"] = "error"

        ready = all(status.startswith("ok") for status in components.values())
        return ReadinessResponse(status="ready" if ready else "partially_initialized", components=components)


__all__ = ["GENERIC_ERROR", "PipelineStage", "InsightsFailure", "InsightsService"]
