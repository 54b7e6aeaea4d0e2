"""LLM provider adapters with a unified completion interface.

Supports multiple LLM providers with a common interface:
- OpenAI (default)
- Google Gemini
"""

from abc import ABC, abstractmethod

from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI

from arcana.core.config import get_settings
from arcana.core.exceptions import LLMProviderError
from arcana.core.logging import get_logger

logger = get_logger(__name__)


class LLMAdapter(ABC):
    """Abstract base class for LLM provider adapters."""

    provider_name: str = "base"
    default_model: str = ""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.8,
    ) -> str:
        """Return the full text of a single JSON-formatted completion."""
        ...

    async def close(self) -> None:
        """Release HTTP resources held by the provider client."""


class GeminiAdapter(LLMAdapter):
    """Adapter for Google Gemini models."""

    provider_name = "gemini"

    def __init__(self, api_key: str | None = None):
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.default_model = settings.gemini_model

        if not self.api_key:
            logger.warning("Gemini API key not configured")

        self.client = genai.Client(api_key=self.api_key)

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.8,
    ) -> str:
        if not self.api_key:
            raise LLMProviderError("gemini", "API key not configured")

        model = model or self.default_model
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=temperature,
                    response_mime_type="application/json",
                ),
            )
            return response.text or ""
        except Exception as e:
            logger.error("Gemini completion error", error=str(e), model=model)
            raise LLMProviderError("gemini", str(e))


class OpenAIAdapter(LLMAdapter):
    """Adapter for OpenAI models."""

    provider_name = "openai"

    def __init__(self, api_key: str | None = None):
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.default_model = settings.openai_model

        if not self.api_key:
            logger.warning("OpenAI API key not configured")

        self.client = AsyncOpenAI(api_key=self.api_key, timeout=settings.llm_timeout)

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.8,
    ) -> str:
        if not self.api_key:
            raise LLMProviderError("openai", "API key not configured")

        model = model or self.default_model
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                response_format={"type": "json_object"},
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error("OpenAI completion error", error=str(e), model=model)
            raise LLMProviderError("openai", str(e))

    async def close(self) -> None:
        await self.client.close()


class LLMService:
    """Service class to manage LLM adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, LLMAdapter] = {}

    def get_adapter(self, provider: str) -> LLMAdapter:
        """Get or create an adapter for the specified provider."""
        if provider not in self._adapters:
            if provider == "gemini":
                self._adapters[provider] = GeminiAdapter()
            elif provider == "openai":
                self._adapters[provider] = OpenAIAdapter()
            else:
                raise ValueError(f"Unknown LLM provider: {provider}")

        return self._adapters[provider]

    def configured_provider(self) -> str | None:
        """Pick the default provider if it has a key, otherwise any keyed provider."""
        settings = get_settings()
        keys = {"openai": settings.openai_api_key, "gemini": settings.gemini_api_key}

        if keys.get(settings.default_llm_provider):
            return settings.default_llm_provider
        return next((name for name, key in keys.items() if key), None)

    def prewarm_adapters(self) -> None:
        """Pre-initialize the configured adapter to avoid first-request latency."""
        provider = self.configured_provider()
        if provider is None:
            logger.info("No LLM provider configured, template interpretations only")
            return
        try:
            self.get_adapter(provider)
            logger.info("Pre-warmed LLM adapter", provider=provider)
        except Exception as e:
            logger.warning("Failed to pre-warm LLM adapter", provider=provider, error=str(e))

    async def close(self) -> None:
        for adapter in self._adapters.values():
            try:
                await adapter.close()
            except Exception as e:
                logger.warning("Failed to close LLM adapter", provider=adapter.provider_name, error=str(e))
        self._adapters.clear()


# Global LLM service instance
_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create the global LLM service instance."""
    global _llm_service

    if _llm_service is None:
        _llm_service = LLMService()

    return _llm_service
