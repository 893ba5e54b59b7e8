from dataclasses import dataclass
from typing import Optional

import structlog

from abreadout.config import Settings
from abreadout.core.cache import ReadoutCache
from abreadout.services.experiments.readout import ReadoutGenerator, ReadoutResult
from abreadout.services.experiments.stats import (
    AnalysisResult,
    AnalysisThresholds,
    VariantSample,
    analyze_experiment,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExperimentReadout:
    experiment_id: str
    statistics: AnalysisResult
    readout: ReadoutResult
    cached: bool = False


class ExperimentReadoutService:
    def __init__(
        self,
        generator: ReadoutGenerator,
        cache: Optional[ReadoutCache] = None,
        thresholds: AnalysisThresholds = AnalysisThresholds(),
    ):
        self.generator = generator
        self.cache = cache
        self.thresholds = thresholds

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: Optional[ReadoutCache] = None,
        generator: Optional[ReadoutGenerator] = None,
    ) -> "ExperimentReadoutService":
        return cls(
            generator=generator or ReadoutGenerator.from_settings(settings),
            cache=cache,
            thresholds=AnalysisThresholds(
                small_sample_threshold=settings.SMALL_SAMPLE_THRESHOLD,
                imbalance_ratio_threshold=settings.IMBALANCE_RATIO_THRESHOLD,
            ),
        )

    def analyze(self, control: VariantSample, variant: VariantSample) -> AnalysisResult:
        return analyze_experiment(control, variant, self.thresholds)

    async def get_readout(
        self,
        experiment_id: str,
        name: str,
        hypothesis: str,
        control: VariantSample,
        variant: VariantSample,
        regenerate: bool = False,
    ) -> ExperimentReadout:
        statistics = self.analyze(control, variant)

        if self.cache is not None and not regenerate:
            cached = await self.cache.get(experiment_id)
            if cached is not None:
                logger.info("readout_cache_hit", experiment_id=experiment_id)
                return ExperimentReadout(
                    experiment_id=experiment_id,
                    statistics=statistics,
                    readout=cached,
                    cached=True,
                )

        readout = await self.generator.generate(statistics, name, hypothesis)

        if self.cache is not None:
            await self.cache.set(experiment_id, readout)

        return ExperimentReadout(
            experiment_id=experiment_id, statistics=statistics, readout=readout
        )
