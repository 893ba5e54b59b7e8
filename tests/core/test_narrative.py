from unittest.mock import AsyncMock, patch

import pytest

from abreadout.core import narrative
from abreadout.core.narrative import close_readout_generator, get_readout_generator
from abreadout.services.experiments.readout import ReadoutGenerator
from abreadout.services.llm.providers import OpenAIChatProvider


class TestReadoutGeneratorLifecycle:
    @pytest.mark.asyncio
    async def test_generator_is_built_once(self):
        with patch.object(
            ReadoutGenerator, "from_settings", wraps=ReadoutGenerator.from_settings
        ) as from_settings:
            first = await get_readout_generator()
            second = await get_readout_generator()

        assert first is second
        from_settings.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_releases_provider_client(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        narrative.get_settings.cache_clear()

        generator = await get_readout_generator()
        assert isinstance(generator.provider, OpenAIChatProvider)
        generator.provider.client.close = AsyncMock()
        client_close = generator.provider.client.close

        await close_readout_generator()

        client_close.assert_awaited_once()
        assert narrative.readout_generator is None

    @pytest.mark.asyncio
    async def test_close_without_provider(self):
        await get_readout_generator()

        await close_readout_generator()
        await close_readout_generator()

        assert narrative.readout_generator is None

    @pytest.mark.asyncio
    async def test_rebuilt_after_close(self):
        first = await get_readout_generator()
        await close_readout_generator()

        assert await get_readout_generator() is not first
