import math
from dataclasses import dataclass
from typing import Optional, Tuple

from scipy import stats as scipy_stats

SIGNIFICANCE_LEVEL = 0.05
Z_CRITICAL_95 = 1.96

MISSING_EXPOSURE_WARNING = "Missing exposure data in one or both variants"
SAMPLE_IMBALANCE_WARNING = "Possible sample imbalance between variants"
LIFT_UNDEFINED_WARNING = "Lift undefined (control conversion rate is 0)"


def small_sample_warning(threshold: int) -> str:
    return f"Small sample size detected (< {threshold} exposures per variant)"


@dataclass(frozen=True)
class AnalysisThresholds:
    small_sample_threshold: int = 100
    imbalance_ratio_threshold: float = 1.5


DEFAULT_THRESHOLDS = AnalysisThresholds()


@dataclass(frozen=True)
class VariantSample:
    exposures: int
    conversions: int

    @property
    def conversion_rate(self) -> float:
        if self.exposures == 0:
            return 0.0
        return self.conversions / self.exposures


@dataclass(frozen=True)
class VariantStats:
    exposures: int
    conversions: int
    conversion_rate: float


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float


@dataclass(frozen=True)
class AnalysisResult:
    control: VariantStats
    variant: VariantStats
    lift: Optional[float]  # Relative, in percent
    z_score: Optional[float]
    p_value: Optional[float]
    confidence_interval: Optional[ConfidenceInterval]
    is_significant: bool
    warnings: Tuple[str, ...] = ()


def normal_cdf(x: float) -> float:
    """Standard normal CDF, Abramowitz & Stegun 26.2.17 (|error| < 7.5e-8)."""
    t = 1.0 / (1.0 + 0.2316419 * abs(x))
    d = 0.3989422804014327 * math.exp(-x * x / 2.0)
    tail = (
        d
        * t
        * (
            0.319381530
            + t * (-0.356563782 + t * (1.781477937 + t * (-1.821255978 + t * 1.330274429)))
        )
    )
    return 1.0 - tail if x > 0 else tail


def calculate_lift(control_rate: float, variant_rate: float) -> Optional[float]:
    if control_rate == 0:
        # Percentage change from zero is undefined, not infinite
        return 0.0 if variant_rate == 0 else None

    return ((variant_rate - control_rate) / control_rate) * 100


def calculate_pooled_proportion(control: VariantSample, variant: VariantSample) -> float:
    total_conversions = control.conversions + variant.conversions
    total_exposures = control.exposures + variant.exposures

    if total_exposures == 0:
        return 0.0

    return total_conversions / total_exposures


def run_proportion_z_test(control: VariantSample, variant: VariantSample) -> Tuple[float, float]:
    """Pooled two-proportion z-test. Both samples must have exposures."""
    p1 = control.conversion_rate
    p2 = variant.conversion_rate

    p_pooled = calculate_pooled_proportion(control, variant)
    # Clamped so conversions > exposures yields rates above 1 instead of a domain error
    variance = max(p_pooled * (1 - p_pooled), 0.0)
    se = math.sqrt(variance * (1 / control.exposures + 1 / variant.exposures))

    # Both rates 0 or both 1: no variance, no evidence of a difference
    if se == 0:
        return 0.0, 1.0

    z_score = (p2 - p1) / se

    # Two-tailed; Φ(-|z|) == 1 - Φ(|z|) without the cancellation
    p_value = 2 * normal_cdf(-abs(z_score))

    return z_score, p_value


def calculate_confidence_interval(
    control: VariantSample, variant: VariantSample
) -> ConfidenceInterval:
    """95% interval on variant_rate - control_rate, unpooled standard error."""
    p1 = control.conversion_rate
    p2 = variant.conversion_rate
    diff = p2 - p1

    se1 = math.sqrt(max(p1 * (1 - p1), 0.0) / control.exposures)
    se2 = math.sqrt(max(p2 * (1 - p2), 0.0) / variant.exposures)
    se_diff = math.sqrt(se1**2 + se2**2)

    margin_of_error = Z_CRITICAL_95 * se_diff

    return ConfidenceInterval(lower=diff - margin_of_error, upper=diff + margin_of_error)


def collect_warnings(
    control: VariantSample,
    variant: VariantSample,
    lift: Optional[float],
    thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
) -> Tuple[str, ...]:
    warnings = []

    if control.exposures == 0 or variant.exposures == 0:
        warnings.append(MISSING_EXPOSURE_WARNING)

    if (
        control.exposures < thresholds.small_sample_threshold
        or variant.exposures < thresholds.small_sample_threshold
    ):
        warnings.append(small_sample_warning(thresholds.small_sample_threshold))

    if control.exposures > 0 and variant.exposures > 0:
        ratio = max(control.exposures, variant.exposures) / min(
            control.exposures, variant.exposures
        )
        if ratio > thresholds.imbalance_ratio_threshold:
            warnings.append(SAMPLE_IMBALANCE_WARNING)

    if lift is None:
        warnings.append(LIFT_UNDEFINED_WARNING)

    return tuple(warnings)


def calculate_sample_size_requirement(
    baseline_rate: float, minimum_detectable_effect: float, alpha: float = 0.05, power: float = 0.80
) -> int:
    """Exposures needed per variant to detect an absolute lift of `minimum_detectable_effect`
    percentage points over `baseline_rate` with a two-sided two-proportion test."""
    if baseline_rate <= 0 or baseline_rate >= 1:
        return 0

    # Convert MDE from percentage points to proportion
    mde = minimum_detectable_effect / 100
    p1 = baseline_rate
    p2 = baseline_rate + mde

    if mde == 0 or p2 <= 0 or p2 >= 1:
        return 0

    z_alpha = scipy_stats.norm.ppf(1 - alpha / 2)
    z_beta = scipy_stats.norm.ppf(power)

    p_pooled = (p1 + p2) / 2

    numerator = (
        z_alpha * math.sqrt(2 * p_pooled * (1 - p_pooled))
        + z_beta * math.sqrt(p1 * (1 - p1) + p2 * (1 - p2))
    ) ** 2

    denominator = (p2 - p1) ** 2

    return math.ceil(numerator / denominator)


def analyze_experiment(
    control: VariantSample,
    variant: VariantSample,
    thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
) -> AnalysisResult:
    control_rate = control.conversion_rate
    variant_rate = variant.conversion_rate

    lift = calculate_lift(control_rate, variant_rate)

    z_score = None
    p_value = None
    confidence_interval = None

    # Inference needs data on both sides
    if control.exposures > 0 and variant.exposures > 0:
        z_score, p_value = run_proportion_z_test(control, variant)
        confidence_interval = calculate_confidence_interval(control, variant)

    is_significant = p_value is not None and p_value < SIGNIFICANCE_LEVEL

    return AnalysisResult(
        control=VariantStats(
            exposures=control.exposures,
            conversions=control.conversions,
            conversion_rate=control_rate,
        ),
        variant=VariantStats(
            exposures=variant.exposures,
            conversions=variant.conversions,
            conversion_rate=variant_rate,
        ),
        lift=lift,
        z_score=z_score,
        p_value=p_value,
        confidence_interval=confidence_interval,
        is_significant=is_significant,
        warnings=collect_warnings(control, variant, lift, thresholds),
    )
