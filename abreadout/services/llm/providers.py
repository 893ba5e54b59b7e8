from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog
from openai import AsyncOpenAI, OpenAIError

from abreadout.config import Settings

logger = structlog.get_logger()

ANTHROPIC_API_VERSION = "2023-06-01"


class ProviderError(Exception):
    """Raised when a narrative provider cannot produce text."""


class NarrativeProvider(ABC):
    """Prompt in, text out. Implementations raise ProviderError on any failure."""

    name: str

    @abstractmethod
    async def generate(self, prompt: str) -> str: ...

    async def aclose(self) -> None:
        """Release any connection pool held by the provider."""


class OpenAIChatProvider(NarrativeProvider):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            raise ProviderError(f"{self.name} API error: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(f"{self.name} returned a malformed response") from e

        if not content or not content.strip():
            raise ProviderError(f"{self.name} returned an empty response")

        return content

    async def aclose(self) -> None:
        await self.client.close()


class DeepSeekProvider(OpenAIChatProvider):
    name = "deepseek"


class AnthropicProvider(NarrativeProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        base_url: str = "https://api.anthropic.com",
        max_tokens: int = 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.transport = transport

    async def generate(self, prompt: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/v1/messages", headers=headers, json=payload
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"anthropic request failed: {e}") from e

        if response.is_error:
            raise ProviderError(
                f"anthropic API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            text = response.json()["content"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError("anthropic returned a malformed response") from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderError("anthropic returned an empty response")

        return text


def get_narrative_provider(settings: Settings) -> Optional[NarrativeProvider]:
    """Select the configured provider, or None when it is disabled or missing credentials."""
    provider = settings.LLM_PROVIDER

    if provider == "openai" and settings.OPENAI_API_KEY:
        return OpenAIChatProvider(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)

    if provider == "deepseek" and settings.DEEPSEEK_API_KEY:
        return DeepSeekProvider(
            api_key=settings.DEEPSEEK_API_KEY,
            model=settings.DEEPSEEK_MODEL,
            base_url=settings.DEEPSEEK_BASE_URL,
        )

    if provider == "anthropic" and settings.ANTHROPIC_API_KEY:
        return AnthropicProvider(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            base_url=settings.ANTHROPIC_BASE_URL,
        )

    if provider != "none":
        logger.warning("narrative_provider_unavailable", provider=provider)

    return None
