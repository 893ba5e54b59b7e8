"""
Experiment analysis and readout generation.

This module provides:
- Statistical analysis for two-variant A/B tests (z-test, confidence interval, warnings)
- Readout generation with a narrative provider and a deterministic fallback
- Sample size planning
"""

from abreadout.services.experiments.readout import (
    FALLBACK_SOURCE,
    ReadoutGenerator,
    ReadoutResult,
    generate_fallback_readout,
)
from abreadout.services.experiments.stats import (
    AnalysisResult,
    AnalysisThresholds,
    VariantSample,
    analyze_experiment,
    calculate_confidence_interval,
    calculate_lift,
    calculate_sample_size_requirement,
    normal_cdf,
    run_proportion_z_test,
)

__all__ = [
    "VariantSample",
    "AnalysisResult",
    "AnalysisThresholds",
    "normal_cdf",
    "calculate_lift",
    "calculate_confidence_interval",
    "run_proportion_z_test",
    "calculate_sample_size_requirement",
    "analyze_experiment",
    "ReadoutGenerator",
    "ReadoutResult",
    "FALLBACK_SOURCE",
    "generate_fallback_readout",
]
