from abreadout.models.schemas import (  # noqa: F401
    AnalysisResponse,
    AnalyzeExperimentRequest,
    ReadoutRequest,
    ReadoutResponse,
    SampleSizeRequest,
    SampleSizeResponse,
    VariantCountsRequest,
)
