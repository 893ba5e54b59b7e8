from typing import Optional

from fastapi import APIRouter, Depends, Query
from redis import asyncio as aioredis

from abreadout.config import get_settings
from abreadout.core.cache import ReadoutCache, get_redis
from abreadout.core.narrative import get_readout_generator
from abreadout.models.schemas import (
    AnalysisResponse,
    AnalyzeExperimentRequest,
    ReadoutRequest,
    ReadoutResponse,
    SampleSizeRequest,
    SampleSizeResponse,
)
from abreadout.services.experiments.readout import ReadoutGenerator
from abreadout.services.experiments.service import ExperimentReadoutService
from abreadout.services.experiments.stats import calculate_sample_size_requirement

router = APIRouter()


async def get_readout_service(
    redis: Optional[aioredis.Redis] = Depends(get_redis),
    generator: ReadoutGenerator = Depends(get_readout_generator),
) -> ExperimentReadoutService:
    settings = get_settings()
    cache = ReadoutCache(redis, settings.READOUT_CACHE_TTL_SECONDS) if redis is not None else None
    return ExperimentReadoutService.from_settings(settings, cache=cache, generator=generator)


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_experiment(
    request: AnalyzeExperimentRequest,
    service: ExperimentReadoutService = Depends(get_readout_service),
):
    result = service.analyze(request.control.to_sample(), request.variant.to_sample())
    return AnalysisResponse.from_result(result)


@router.post("/sample-size", response_model=SampleSizeResponse)
async def sample_size(request: SampleSizeRequest):
    n = calculate_sample_size_requirement(
        baseline_rate=request.baseline_rate,
        minimum_detectable_effect=request.minimum_detectable_effect,
        alpha=request.alpha,
        power=request.power,
    )
    return SampleSizeResponse(exposures_per_variant=n, total_exposures=n * 2)


@router.post("/{experiment_id}/readout", response_model=ReadoutResponse)
async def generate_readout(
    experiment_id: str,
    request: ReadoutRequest,
    regenerate: bool = Query(False, description="Ignore any cached readout"),
    service: ExperimentReadoutService = Depends(get_readout_service),
):
    result = await service.get_readout(
        experiment_id=experiment_id,
        name=request.name,
        hypothesis=request.hypothesis,
        control=request.control.to_sample(),
        variant=request.variant.to_sample(),
        regenerate=regenerate,
    )

    return ReadoutResponse(
        experiment_id=result.experiment_id,
        text=result.readout.text,
        source=result.readout.source,
        cached=result.cached,
        statistics=AnalysisResponse.from_result(result.statistics),
    )
