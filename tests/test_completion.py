import asyncio
from types import SimpleNamespace

from property_insights.config import LLMSettings
from property_insights.models.insights import InsightsResponse, QuestionCategory
from property_insights.services.classifier import QuestionClassifier
from property_insights.services.completion import GeminiCompletion
from property_insights.services.insights_service import InsightsService


class FakeModels:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.responses.pop(0)


def _gemini(*responses):
    backend = GeminiCompletion(LLMSettings(model_name="gemini-2.5-flash"))
    models = FakeModels(responses)
    backend._client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return backend, models


def _response(text=None, parts=(), chunks=(), finish_reason="STOP", block_reason=None):
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=list(parts)),
        finish_reason=finish_reason,
        grounding_metadata=SimpleNamespace(grounding_chunks=list(chunks)) if chunks else None,
    )
    return SimpleNamespace(
        text=text,
        candidates=[candidate] if parts or text or chunks else [],
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
    )


def _thinking_only():
    return _response(parts=[SimpleNamespace(text="Weighing the options", thought=True)], finish_reason="MAX_TOKENS")


def _web_chunk(title, uri):
    return SimpleNamespace(web=SimpleNamespace(title=title, uri=uri))


def test_thinking_only_classification_falls_back_to_default():
    backend, models = _gemini(_thinking_only())
    category = asyncio.run(QuestionClassifier(backend).classify("How does it compare?"))
    assert category == QuestionCategory.COMPARISON
    config = models.calls[0]["config"]
    assert config.temperature == 0.0
    assert config.max_output_tokens is None
    assert not config.tools


def test_empty_classification_still_answers_end_to_end(repo, settings):
    backend, models = _gemini(_thinking_only(), _response(text="Oak Ridge rents above its submarket peers."))
    payload = {"question": "How does it stack up?", "propertyData": {"Name": "Oak Ridge", "Submarket": "East"}}
    result = asyncio.run(InsightsService(repo, backend, settings).answer(payload))
    assert isinstance(result, InsightsResponse)
    assert result.question_type == "COMPARISON"
    assert result.response == "Oak Ridge rents above its submarket peers."
    assert len(models.calls) == 2


def test_blocked_response_is_empty_text():
    backend, _ = _gemini(_response(block_reason="SAFETY"))
    assert asyncio.run(backend.complete("hello")) == ""


def test_parts_are_used_when_text_accessor_is_empty():
    parts = [SimpleNamespace(text="draft", thought=True), SimpleNamespace(text="Rent was $1,150.", thought=None)]
    backend, _ = _gemini(_response(parts=parts))
    assert asyncio.run(backend.complete("What was the rent?")) == "Rent was $1,150."


def test_web_search_sends_google_search_tool_and_cites_sources():
    response = _response(
        text="Austin rents are rising [Census](https://census.gov/x).",
        parts=[SimpleNamespace(text="Austin rents are rising.", thought=None)],
        chunks=[_web_chunk("Census", "https://census.gov/x"), _web_chunk("Local News", "https://news.example/y")],
    )
    backend, models = _gemini(response)
    text = asyncio.run(backend.complete("How is the market?", web_search=True))

    call = models.calls[0]
    assert call["model"] == "gemini-2.5-flash"
    assert call["contents"] == "How is the market?"
    tools = call["config"].tools
    assert len(tools) == 1
    assert tools[0].google_search is not None
    assert call["config"].temperature == 0.2
    assert text.endswith("Sources: [Local News](https://news.example/y)")
    assert text.count("https://census.gov/x") == 1


def test_plain_mode_sends_no_tools():
    backend, models = _gemini(_response(text="Built in 2010."))
    assert asyncio.run(backend.complete("When was it built?")) == "Built in 2010."
    assert not models.calls[0]["config"].tools


def test_warmup_calls_are_uncapped(repo, settings):
    backend, models = _gemini(_response(text="FACT"), _response(text="OK"), _response(text="OK"))
    readiness = asyncio.run(InsightsService(repo, backend, settings).warmup())
    assert readiness.status == "ready"
    assert all(call["config"].max_output_tokens is None for call in models.calls)
    assert models.calls[2]["config"].tools[0].google_search is not None
