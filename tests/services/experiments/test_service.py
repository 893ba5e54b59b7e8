from unittest.mock import AsyncMock, MagicMock

import pytest

from abreadout.config import Settings
from abreadout.services.experiments.readout import FALLBACK_SOURCE, ReadoutGenerator, ReadoutResult
from abreadout.services.experiments.service import ExperimentReadoutService
from abreadout.services.experiments.stats import SAMPLE_IMBALANCE_WARNING, VariantSample

CONTROL = VariantSample(exposures=1000, conversions=100)
VARIANT = VariantSample(exposures=1000, conversions=150)


class TestExperimentReadoutService:
    @pytest.fixture
    def cache(self):
        cache = MagicMock()
        cache.get = AsyncMock(return_value=None)
        cache.set = AsyncMock()
        return cache

    @pytest.fixture
    def service(self, cache):
        return ExperimentReadoutService(generator=ReadoutGenerator(provider=None), cache=cache)

    @pytest.mark.asyncio
    async def test_generates_and_caches(self, service, cache):
        result = await service.get_readout("exp-1", "Checkout", "hyp", CONTROL, VARIANT)

        assert result.cached is False
        assert result.readout.source == FALLBACK_SOURCE
        assert result.statistics.is_significant is True
        cache.set.assert_awaited_once_with("exp-1", result.readout)

    @pytest.mark.asyncio
    async def test_returns_cached_readout(self, service, cache):
        cached = ReadoutResult(text="cached text", source="anthropic")
        cache.get = AsyncMock(return_value=cached)

        result = await service.get_readout("exp-1", "Checkout", "hyp", CONTROL, VARIANT)

        assert result.cached is True
        assert result.readout == cached
        cache.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_regenerate_skips_cache_lookup(self, service, cache):
        cache.get = AsyncMock(return_value=ReadoutResult(text="stale", source="openai"))

        result = await service.get_readout(
            "exp-1", "Checkout", "hyp", CONTROL, VARIANT, regenerate=True
        )

        assert result.cached is False
        assert result.readout.source == FALLBACK_SOURCE
        cache.get.assert_not_awaited()
        cache.set.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_cache(self):
        service = ExperimentReadoutService(generator=ReadoutGenerator(provider=None))

        result = await service.get_readout("exp-1", "Checkout", "hyp", CONTROL, VARIANT)

        assert result.readout.source == FALLBACK_SOURCE

    def test_thresholds_from_settings(self):
        settings = Settings(SMALL_SAMPLE_THRESHOLD=10, IMBALANCE_RATIO_THRESHOLD=3.0)
        service = ExperimentReadoutService.from_settings(settings)

        result = service.analyze(
            VariantSample(exposures=50, conversions=5), VariantSample(exposures=120, conversions=12)
        )

        assert result.warnings == ()
        assert service.generator.small_sample_threshold == 10

    def test_default_thresholds(self):
        service = ExperimentReadoutService.from_settings(Settings())

        result = service.analyze(
            VariantSample(exposures=1000, conversions=100), VariantSample(exposures=200, conversions=20)
        )

        assert result.warnings == (SAMPLE_IMBALANCE_WARNING,)
