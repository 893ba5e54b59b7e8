from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from abreadout.services.experiments.stats import AnalysisResult, VariantSample


class VariantCountsRequest(BaseModel):
    exposures: int = Field(..., ge=0, description="Distinct users exposed to the variant")
    conversions: int = Field(..., ge=0, description="Distinct exposed users who converted")

    @model_validator(mode="after")
    def check_conversions_within_exposures(self):
        if self.conversions > self.exposures:
            raise ValueError("conversions cannot exceed exposures")
        return self

    def to_sample(self) -> VariantSample:
        return VariantSample(exposures=self.exposures, conversions=self.conversions)


class AnalyzeExperimentRequest(BaseModel):
    control: VariantCountsRequest
    variant: VariantCountsRequest


class ReadoutRequest(AnalyzeExperimentRequest):
    name: str = Field(..., min_length=1, max_length=200)
    hypothesis: str = Field("", description="The hypothesis being tested")


class SampleSizeRequest(BaseModel):
    baseline_rate: float = Field(..., gt=0, lt=1, description="Control conversion rate (0-1)")
    minimum_detectable_effect: float = Field(
        ..., gt=0, description="Smallest absolute lift worth detecting, in percentage points"
    )
    alpha: float = Field(0.05, ge=0.01, le=0.20)
    power: float = Field(0.80, ge=0.5, lt=1)


class SampleSizeResponse(BaseModel):
    exposures_per_variant: int
    total_exposures: int


class VariantStatsResponse(BaseModel):
    exposures: int
    conversions: int
    conversion_rate: float  # Proportion, not percent


class ConfidenceIntervalResponse(BaseModel):
    lower: float
    upper: float


class AnalysisResponse(BaseModel):
    control: VariantStatsResponse
    variant: VariantStatsResponse
    lift: Optional[float] = None  # Relative percent, None when control rate is 0
    z_score: Optional[float] = None
    p_value: Optional[float] = None
    confidence_interval: Optional[ConfidenceIntervalResponse] = None
    is_significant: bool
    warnings: List[str] = []

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResponse":
        ci = result.confidence_interval
        return cls(
            control=VariantStatsResponse(
                exposures=result.control.exposures,
                conversions=result.control.conversions,
                conversion_rate=result.control.conversion_rate,
            ),
            variant=VariantStatsResponse(
                exposures=result.variant.exposures,
                conversions=result.variant.conversions,
                conversion_rate=result.variant.conversion_rate,
            ),
            lift=result.lift,
            z_score=result.z_score,
            p_value=result.p_value,
            confidence_interval=(
                ConfidenceIntervalResponse(lower=ci.lower, upper=ci.upper) if ci else None
            ),
            is_significant=result.is_significant,
            warnings=list(result.warnings),
        )


class ReadoutResponse(BaseModel):
    experiment_id: str
    text: str
    source: str  # Provider id, or "fallback"
    cached: bool = False
    statistics: AnalysisResponse
