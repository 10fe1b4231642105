"""Draft assistant adapter.

Wraps an OpenAI-compatible chat completions endpoint (Gemini by default) and
turns a topic and tone into a structured draft.
"""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from ..core.config import get_assistant_api_key, get_assistant_base_url, get_assistant_model
from ..schemas.draft import DEFAULT_TONE, DraftPublic


log = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Write a blog post about "{topic}".
Tone: {tone}.

Return the response in strictly valid JSON format with the following schema:
{{
  "title": "Catchy Title",
  "excerpt": "A 2-sentence summary.",
  "content": "The full blog post content in Markdown format (no markdown code blocks, just the text)."
}}
"""


class AssistantError(Exception):
    pass


class AssistantConfigError(AssistantError):
    pass


class AssistantGenerationError(AssistantError):
    pass


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class DraftAssistant:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.api_key = get_assistant_api_key() if api_key is None else api_key
        self.model = model or get_assistant_model()
        self.base_url = base_url or get_assistant_base_url()
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise AssistantConfigError("GEMINI_API_KEY not configured")
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def generate(self, topic: str, tone: str = DEFAULT_TONE) -> DraftPublic:
        client = self._get_client()
        prompt = PROMPT_TEMPLATE.format(topic=topic, tone=tone)
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise AssistantGenerationError(f"Draft generation failed: {e}") from e
        text = resp.choices[0].message.content if resp.choices else None
        if not text:
            raise AssistantGenerationError("No response from draft assistant")
        try:
            return DraftPublic.model_validate_json(_strip_fences(text))
        except ValidationError as e:
            raise AssistantGenerationError("Draft assistant returned a malformed draft") from e

    async def close(self) -> None:
        if isinstance(self._client, AsyncOpenAI):
            await self._client.close()


def placeholder_draft(topic: str, tone: str = DEFAULT_TONE) -> DraftPublic:
    return DraftPublic(
        title=f"The Future of {topic}",
        excerpt=f"Exploring the latest trends and innovations in {topic}. This comprehensive guide covers everything you need to know.",
        content=(
            f"# The Future of {topic}\n\n"
            f"{topic} is evolving rapidly. In this {tone} article, we dive deep into the current state and future possibilities.\n\n"
            "## Key Trends\n\n"
            "- Innovation in technology\n"
            "- Market changes\n"
            "- Future predictions\n\n"
            "## Conclusion\n\n"
            f"The landscape of {topic} is bright and full of opportunities."
        ),
    )


async def generate_draft(assistant: DraftAssistant, topic: str, tone: str = DEFAULT_TONE) -> DraftPublic:
    """Generate a draft, substituting a templated placeholder when credentials are absent."""
    try:
        return await assistant.generate(topic, tone)
    except AssistantConfigError as e:
        log.info("%s; returning placeholder draft", e)
        return placeholder_draft(topic, tone)
