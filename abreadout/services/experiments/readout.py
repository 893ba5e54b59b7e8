import asyncio
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from abreadout.config import Settings
from abreadout.services.experiments.stats import AnalysisResult
from abreadout.services.llm.providers import NarrativeProvider, get_narrative_provider

logger = structlog.get_logger()

FALLBACK_SOURCE = "fallback"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class ReadoutResult:
    text: str
    source: str


def to_fixed(value: float, places: int = 2) -> str:
    """Fixed-point text with exact ties rounded away from zero."""
    return str(Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def _format_percent(rate: float) -> str:
    return f"{to_fixed(rate * 100)}%"


def describe_lift(lift: Optional[float]) -> str:
    if lift is None:
        return "undefined (control conversion rate is 0)"
    if lift == 0:
        return "0% (no change)"

    direction = "increased" if lift > 0 else "decreased"
    return f"{to_fixed(abs(lift))}% {direction}"


def build_readout_prompt(stats: AnalysisResult, experiment_name: str, hypothesis: str) -> str:
    lift = (
        f"{to_fixed(stats.lift)}%" if stats.lift is not None else "undefined (control rate is 0)"
    )
    p_value = to_fixed(stats.p_value, 4) if stats.p_value is not None else "N/A"
    warnings = ", ".join(stats.warnings) or "None"

    return f"""You are an experiment analyst. Write a short experiment readout for stakeholders.

Experiment: {experiment_name}
Hypothesis: {hypothesis}

Results:
- Control: {stats.control.conversions}/{stats.control.exposures} conversions ({_format_percent(stats.control.conversion_rate)})
- Variant: {stats.variant.conversions}/{stats.variant.exposures} conversions ({_format_percent(stats.variant.conversion_rate)})
- Lift: {lift}
- P-value: {p_value}
- Statistically significant: {"Yes" if stats.is_significant else "No"}
- Warnings: {warnings}

Write a readout with these sections:
1. Summary (what changed)
2. Decision recommendation (Ship / Kill / Iterate with reason)
3. Risks / caveats (be blunt if sample size is too small)
4. Next test suggestion (1 idea)

Be concise and actionable."""


def _decision(stats: AnalysisResult, small_sample_threshold: int) -> str:
    lift = stats.lift

    # First match wins; the conditions overlap
    if any("Missing exposure" in w for w in stats.warnings):
        return (
            "**Iterate**: Missing exposure data in one or both variants. "
            "Cannot make a decision without data."
        )
    if lift is None:
        return (
            "**Iterate**: Lift is undefined because control conversion rate is 0. "
            "Collect more data or investigate why control has no conversions."
        )
    if any("Small sample" in w for w in stats.warnings):
        return (
            "**Iterate**: Sample size is too small to make a confident decision. "
            f"Continue collecting data until each variant has at least "
            f"{small_sample_threshold} exposures."
        )
    if stats.is_significant and lift > 0:
        return (
            f"**Ship**: The variant shows a statistically significant improvement of "
            f"{to_fixed(abs(lift))}%. Recommend rolling out to all users."
        )
    if stats.is_significant and lift < 0:
        return (
            f"**Kill**: The variant shows a statistically significant decrease of "
            f"{to_fixed(abs(lift))}%. Do not ship this change."
        )
    if not stats.is_significant and lift > 0:
        return (
            "**Iterate**: The variant shows a directional improvement but is not "
            "statistically significant. Consider running longer or increasing sample size."
        )
    return "**Kill**: No meaningful improvement detected. Do not ship this change."


def _next_test(stats: AnalysisResult) -> str:
    trending_up = stats.lift is not None and stats.lift > 0

    if stats.is_significant and trending_up:
        return (
            "Test a more aggressive version of this change to see if you can capture "
            "even more lift."
        )
    if not stats.is_significant and trending_up:
        return (
            "Run this test longer or with a larger sample size to confirm the "
            "directional trend."
        )
    return "Try a different hypothesis or test a completely different area of the product."


def generate_fallback_readout(
    stats: AnalysisResult, experiment_name: str, small_sample_threshold: int = 100
) -> str:
    """Deterministic Summary / Decision / Risks / Next test readout in markdown."""
    lines = [
        "## Summary",
        "",
        f'The experiment "{experiment_name}" tested a variant against the control.',
        "",
        f"- **Control conversion rate**: {_format_percent(stats.control.conversion_rate)} "
        f"({stats.control.conversions}/{stats.control.exposures})",
        f"- **Variant conversion rate**: {_format_percent(stats.variant.conversion_rate)} "
        f"({stats.variant.conversions}/{stats.variant.exposures})",
        f"- **Lift**: {describe_lift(stats.lift)}",
        f"- **Statistical significance**: {'Yes (p < 0.05)' if stats.is_significant else 'No'}",
    ]
    if stats.p_value is not None:
        lines.append(f"- **P-value**: {to_fixed(stats.p_value, 4)}")

    lines += [
        "",
        "## Decision Recommendation",
        "",
        _decision(stats, small_sample_threshold),
        "",
        "## Risks / Caveats",
        "",
    ]

    if stats.warnings:
        lines += [f"- {w}" for w in stats.warnings]
    else:
        lines += [
            "- This analysis uses a 2-proportion z-test, which is an approximation that "
            "works best with larger sample sizes.",
            "- Statistical significance does not guarantee practical significance. "
            "Consider business impact.",
        ]

    lines += [
        "",
        "## Next Test Suggestion",
        "",
        _next_test(stats),
    ]

    return "\n".join(lines) + "\n"


class ReadoutGenerator:
    def __init__(
        self,
        provider: Optional[NarrativeProvider] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        small_sample_threshold: int = 100,
    ):
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.small_sample_threshold = small_sample_threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReadoutGenerator":
        return cls(
            provider=get_narrative_provider(settings),
            timeout_seconds=settings.READOUT_TIMEOUT_SECONDS,
            small_sample_threshold=settings.SMALL_SAMPLE_THRESHOLD,
        )

    def _fallback(self, stats: AnalysisResult, experiment_name: str) -> ReadoutResult:
        return ReadoutResult(
            text=generate_fallback_readout(stats, experiment_name, self.small_sample_threshold),
            source=FALLBACK_SOURCE,
        )

    async def generate(
        self, stats: AnalysisResult, experiment_name: str, hypothesis: str
    ) -> ReadoutResult:
        if self.provider is None:
            logger.info("readout_fallback", experiment=experiment_name, reason="no_provider")
            return self._fallback(stats, experiment_name)

        provider_name = self.provider.name
        prompt = build_readout_prompt(stats, experiment_name, hypothesis)

        try:
            # wait_for cancels the provider call if the timer wins
            text = await asyncio.wait_for(
                self.provider.generate(prompt), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "readout_provider_timeout",
                experiment=experiment_name,
                provider=provider_name,
                timeout_seconds=self.timeout_seconds,
            )
            return self._fallback(stats, experiment_name)
        except Exception as e:
            logger.error(
                "readout_provider_failed",
                experiment=experiment_name,
                provider=provider_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._fallback(stats, experiment_name)

        if not isinstance(text, str) or not text.strip():
            logger.error(
                "readout_provider_failed",
                experiment=experiment_name,
                provider=provider_name,
                error="empty narrative",
            )
            return self._fallback(stats, experiment_name)

        logger.info("readout_generated", experiment=experiment_name, provider=provider_name)
        return ReadoutResult(text=text, source=provider_name)

    async def aclose(self) -> None:
        if self.provider is not None:
            await self.provider.aclose()
