from abreadout.services.llm.providers import (
    AnthropicProvider,
    DeepSeekProvider,
    NarrativeProvider,
    OpenAIChatProvider,
    ProviderError,
    get_narrative_provider,
)

__all__ = [
    "NarrativeProvider",
    "ProviderError",
    "OpenAIChatProvider",
    "DeepSeekProvider",
    "AnthropicProvider",
    "get_narrative_provider",
]
