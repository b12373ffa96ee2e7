"""Text completion backends used by the classifier and the synthesizer."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

try:
    from google import genai
    from google.genai import types
except Exception:  # pragma: no cover - optional dependency
    genai = None
    types = None

from ..config import LLMSettings
from ..errors import CompletionFailed
from ..utils.logging import get_logger

LOGGER = get_logger("services.completion")

CITATION_RE = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)")


def format_citation(label: str, url: str) -> str:
    """Inline citation format the dashboard extracts and re-renders."""

    label = label.replace("[", "(").replace("]", ")").strip() or url
    return f"[{label}]({url})"


def extract_citations(text: str) -> List[Tuple[str, str]]:
    return CITATION_RE.findall(text or "")


class CompletionBackend:
    """Text in, text out. ``web_search`` lets the backend consult the web."""

    async def complete(
        self,
        prompt: str,
        *,
        web_search: bool = False,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        raise NotImplementedError


class GeminiCompletion(CompletionBackend):
    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        self.settings = settings or LLMSettings()
        self.model_name = self.settings.model_name
        self._client = None
        if self.settings.api_key and genai is not None:
            try:
                self._client = genai.Client(api_key=self.settings.api_key)
            except Exception as exc:
                LOGGER.warning("Failed to initialise Gemini client: %s", exc)
                self._client = None

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _config(
        self,
        web_search: bool,
        temperature: Optional[float],
        max_output_tokens: Optional[int],
    ) -> "types.GenerateContentConfig":
        options: Dict[str, Any] = {
            "temperature": self.settings.temperature if temperature is None else temperature,
        }
        if max_output_tokens is not None:
            options["max_output_tokens"] = max_output_tokens
        if web_search:
            options["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        return types.GenerateContentConfig(**options)

    async def complete(
        self,
        prompt: str,
        *,
        web_search: bool = False,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        if not self._client:
            raise CompletionFailed("completion backend not configured")
        config = self._config(web_search, temperature, max_output_tokens)
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            LOGGER.warning("Gemini completion failed web_search=%s: %s", web_search, exc)
            raise CompletionFailed(str(exc)) from exc
        text = self._extract_text(response)
        if not text:
            LOGGER.warning("Gemini returned no text web_search=%s reason=%s", web_search, self._finish_reason(response))
            return ""
        if web_search:
            text = self._append_sources(text, self._grounding_sources(response))
        return text.strip()

    def _extract_text(self, response: Any) -> str:
        """Visible text of the first candidate; ``""`` for thinking-only or blocked responses."""

        text = getattr(response, "text", None)
        if text:
            return text
        for candidate in getattr(response, "candidates", None) or []:
            parts = getattr(getattr(candidate, "content", None), "parts", None) or []
            joined = "".join(
                part.text for part in parts if getattr(part, "text", None) and not getattr(part, "thought", False)
            )
            if joined:
                return joined
        return ""

    def _finish_reason(self, response: Any) -> Optional[str]:
        feedback = getattr(response, "prompt_feedback", None)
        if getattr(feedback, "block_reason", None):
            return str(feedback.block_reason)
        for candidate in getattr(response, "candidates", None) or []:
            reason = getattr(candidate, "finish_reason", None)
            if reason:
                return str(reason)
        return None

    def _grounding_sources(self, response: Any) -> List[Tuple[str, str]]:
        sources: List[Tuple[str, str]] = []
        for candidate in getattr(response, "candidates", None) or []:
            metadata = getattr(candidate, "grounding_metadata", None)
            for chunk in getattr(metadata, "grounding_chunks", None) or []:
                web = getattr(chunk, "web", None)
                uri = getattr(web, "uri", None)
                if uri:
                    sources.append((getattr(web, "title", None) or uri, uri))
        return sources

    def _append_sources(self, text: str, sources: List[Tuple[str, str]]) -> str:
        cited = {url for _, url in extract_citations(text)}
        missing = []
        for label, url in sources:
            if url not in cited:
                cited.add(url)
                missing.append(format_citation(label, url))
        if not missing:
            return text
        return text.rstrip() + "\n\nSources: " + ", ".join(missing)


__all__ = [
    "CITATION_RE",
    "format_citation",
    "extract_citations",
    "CompletionBackend",
    "GeminiCompletion",
]
