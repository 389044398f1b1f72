"""Streaming text generation backends."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional, Protocol

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from changelog_api.config.settings import Settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Produces text chunks for a prompt. May fail part-way through the stream."""

    def stream(self, prompt: str) -> AsyncIterator[str]:
        ...

    async def aclose(self) -> None:
        ...


class OpenAITextGenerator:
    """Chat-completions streaming via the OpenAI SDK."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 15000,
        temperature: float = 0.7,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        logger.info(f"Starting OpenAI generation with {self.model} ({len(prompt)} prompt chars)")
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stream=True,
        )
        async for chunk in response:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content

    async def aclose(self) -> None:
        await self._client.close()


class AnthropicTextGenerator:
    """Messages streaming via the Anthropic SDK."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: str = "claude-3-5-haiku-20241022",
        max_tokens: int = 8192,
        temperature: float = 0.7,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client or AsyncAnthropic(api_key=api_key)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        logger.info(f"Starting Anthropic generation with {self.model} ({len(prompt)} prompt chars)")
        async with self._client.messages.stream(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
        ) as response:
            async for text in response.text_stream:
                if text:
                    yield text

    async def aclose(self) -> None:
        await self._client.close()


def create_text_generator(config: Settings) -> TextGenerator:
    """Build the generator for the configured LLM provider"""
    if config.LLM_PROVIDER == "openai":
        if not config.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'")
        return OpenAITextGenerator(
            api_key=config.OPENAI_API_KEY,
            model=config.OPENAI_MODEL,
            max_tokens=config.LLM_MAX_TOKENS,
            temperature=config.LLM_TEMPERATURE,
        )
    if config.LLM_PROVIDER == "anthropic":
        if not config.ANTHROPIC_API_KEY:
            raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER is 'anthropic'")
        return AnthropicTextGenerator(
            api_key=config.ANTHROPIC_API_KEY,
            model=config.ANTHROPIC_MODEL,
            max_tokens=config.ANTHROPIC_MAX_TOKENS,
            temperature=config.LLM_TEMPERATURE,
        )
    raise ValueError(f"Unsupported LLM provider: {config.LLM_PROVIDER}")
