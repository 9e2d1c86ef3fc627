"""
Maternal-health risk scoring.

The deterministic core is a set of pure functions: vitals in, assessment out,
no shared state. RiskAssessmentEngine wraps them with the one fallible
side-channel, the optional predictive signal, which is fetched under a timeout
and degrades to rule-only scoring on any failure.

Rule order matters: the preeclampsia rule reads the score accumulated by the
hypertension rule, so the rules run in a fixed sequence.
"""

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from natalcare.domain.models import (
    DEFAULT_THRESHOLDS,
    AssessmentResult,
    RiskThresholds,
    RiskTier,
    Vitals,
    VitalsValidationError,
)
from natalcare.services.predictive_signal import (
    PredictiveSignalProvider,
    Result,
    validate_probability,
)

logger = structlog.get_logger(__name__)

# Rule weights
SEVERE_HYPERTENSION_POINTS = 50
HYPERTENSION_POINTS = 20
PREECLAMPSIA_POINTS = 40
FETAL_DISTRESS_POINTS = 30
PREDICTIVE_SIGNAL_POINTS = 15

# Preeclampsia needs at least the high hypertension tier and protein above trace
PREECLAMPSIA_MIN_SCORE = 20
PREECLAMPSIA_MIN_PROTEINURIA = 1

DEFAULT_TRIGGER_PROBABILITY = 0.75

SEVERE_HYPERTENSION_REASON = "Severe Hypertension detected"
HYPERTENSION_REASON = "Hypertension detected"
PREECLAMPSIA_REASON = "Potential Preeclampsia (BP + Protein)"
NORMAL_LIMITS_REASON = "Within normal limits"


class TierProfile(NamedTuple):
    tier: RiskTier
    min_score: int
    ui_color: str
    action: str


# Highest threshold first
TIER_TABLE: tuple[TierProfile, ...] = (
    TierProfile(RiskTier.CRITICAL, 50, "#FF0000", "EMERGENCY: Transport now"),
    TierProfile(RiskTier.HIGH, 20, "#FFA500", "REFERRAL: Monitor & prepare"),
    TierProfile(RiskTier.MEDIUM, 10, "#FFFF00", "WARNING: Re-check in 4 hours"),
    TierProfile(RiskTier.LOW, 0, "#008000", "STABLE: Routine care"),
)


class SignalTimeoutError(TimeoutError):
    """The predictive signal did not arrive within the configured bound."""


class RuleOutcome(BaseModel):
    """Score and ordered reasons produced by the scoring rules."""

    model_config = ConfigDict(frozen=True)

    score: int = 0
    reasons: tuple[str, ...] = ()

    def add(self, points: int, reason: str) -> "RuleOutcome":
        return RuleOutcome(score=self.score + points, reasons=(*self.reasons, reason))


def fetal_distress_reason(fetal_heart_rate: float) -> str:
    rate = float(fetal_heart_rate)
    observed = str(int(rate)) if rate.is_integer() else repr(rate)
    return f"Abnormal Fetal Heart Rate: {observed}"


def predictive_signal_reason(probability: float) -> str:
    return f"AI pattern match: elevated risk probability {probability:.2f}"


def ensure_vitals(vitals: Vitals | Mapping[str, Any]) -> Vitals:
    """Return validated vitals or raise VitalsValidationError naming the bad field."""
    if isinstance(vitals, Vitals):
        return vitals
    if not isinstance(vitals, Mapping):
        raise VitalsValidationError(
            field="vitals", message=f"expected Vitals or mapping, got {type(vitals).__name__}"
        )
    try:
        return Vitals.model_validate(dict(vitals))
    except ValidationError as e:
        raise VitalsValidationError.from_pydantic(e) from e


def score_vitals(vitals: Vitals, thresholds: RiskThresholds = DEFAULT_THRESHOLDS) -> RuleOutcome:
    """Apply the deterministic clinical rules in order."""
    outcome = RuleOutcome()

    if (
        vitals.systolic_bp >= thresholds.bp_critical_systolic
        or vitals.diastolic_bp >= thresholds.bp_critical_diastolic
    ):
        outcome = outcome.add(SEVERE_HYPERTENSION_POINTS, SEVERE_HYPERTENSION_REASON)
    elif (
        vitals.systolic_bp >= thresholds.bp_high_systolic
        or vitals.diastolic_bp >= thresholds.bp_high_diastolic
    ):
        outcome = outcome.add(HYPERTENSION_POINTS, HYPERTENSION_REASON)

    # Reads the running score, so must follow the hypertension rule
    if (
        outcome.score >= PREECLAMPSIA_MIN_SCORE
        and vitals.proteinuria > PREECLAMPSIA_MIN_PROTEINURIA
    ):
        outcome = outcome.add(PREECLAMPSIA_POINTS, PREECLAMPSIA_REASON)

    rate = vitals.fetal_heart_rate
    if rate < thresholds.fhr_low or rate > thresholds.fhr_high:
        outcome = outcome.add(FETAL_DISTRESS_POINTS, fetal_distress_reason(rate))

    return outcome


def resolve_signal(signal: Result[float, Exception] | float | None) -> float | None:
    """Collapse unavailable, failed and out-of-range signals to None."""
    if signal is None:
        return None
    if isinstance(signal, Result):
        if signal.is_err():
            return None
        signal = signal.unwrap()
    checked = validate_probability(signal)
    if checked.is_err():
        logger.debug("predictive_signal_out_of_range", error=str(checked.unwrap_err()))
        return None
    return checked.unwrap()


def classify_score(
    score: int, reasons: Sequence[str], signal_used: bool = False
) -> AssessmentResult:
    """
    Map a total score to its tier.

    LOW always reports the single normal-limits message; any accumulated
    reasons are dropped at that tier.
    """
    profile = next((p for p in TIER_TABLE if score >= p.min_score), TIER_TABLE[-1])

    reasoning = (NORMAL_LIMITS_REASON,) if profile.tier is RiskTier.LOW else tuple(reasons)
    return AssessmentResult(
        risk_level=profile.tier,
        ui_color=profile.ui_color,
        action=profile.action,
        reasoning=reasoning,
        score=score,
        signal_used=signal_used,
    )


def assess(
    vitals: Vitals | Mapping[str, Any],
    signal: Result[float, Exception] | float | None = None,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
    trigger_probability: float = DEFAULT_TRIGGER_PROBABILITY,
) -> AssessmentResult:
    """
    Assess maternal risk from one set of vitals.

    Args:
        vitals: Vitals, or a mapping validated into Vitals before scoring.
        signal: Optional predictive signal, as a Result or a bare probability.
            None means unavailable and Result.err means the provider failed;
            both score on rules alone, as does a value outside [0, 1].
        thresholds: Clinical cutoffs, shared and read-only.
        trigger_probability: The signal must exceed this to add risk.

    Raises:
        VitalsValidationError: If a required field is missing or out of range.
    """
    checked = ensure_vitals(vitals)
    outcome = score_vitals(checked, thresholds)

    probability = resolve_signal(signal)
    if probability is not None and probability > trigger_probability:
        outcome = outcome.add(PREDICTIVE_SIGNAL_POINTS, predictive_signal_reason(probability))

    return classify_score(outcome.score, outcome.reasons, signal_used=probability is not None)


class EngineConfig(BaseModel):
    """Settings for the risk assessment engine."""

    model_config = ConfigDict(frozen=True)

    thresholds: RiskThresholds = Field(default_factory=lambda: DEFAULT_THRESHOLDS)
    signal_timeout_seconds: float = Field(
        default=2.0, gt=0.0, description="Timeout for one predictive signal call"
    )
    trigger_probability: float = Field(
        default=DEFAULT_TRIGGER_PROBABILITY,
        ge=0.0,
        le=1.0,
        description="Signal must exceed this to add risk",
    )


class RiskAssessmentEngine:
    """
    Runs assessments with an optional predictive signal provider.

    Design principles:
    - The provider is never required; without it scoring is rule-only
    - One signal attempt per assessment, bounded by a timeout, no retries
    - No mutable state shared between assessments
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        signal_provider: PredictiveSignalProvider | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.signal_provider = signal_provider
        self.logger = logger.bind(component="risk_assessment_engine")

    async def fetch_signal(self, vitals: Vitals) -> Result[float, Exception] | None:
        """Ask the provider for a probability; every failure comes back as Result.err."""
        if self.signal_provider is None:
            self.logger.debug("predictive_signal_unavailable", reason="no provider configured")
            return None

        provider_name = getattr(self.signal_provider, "provider_name", "unknown")
        try:
            signal = await asyncio.wait_for(
                self.signal_provider.predict(vitals),
                timeout=self.config.signal_timeout_seconds,
            )
        except TimeoutError:
            self.logger.warning(
                "predictive_signal_timeout",
                provider=provider_name,
                timeout_seconds=self.config.signal_timeout_seconds,
            )
            return Result.err(
                SignalTimeoutError(
                    f"{provider_name} did not respond within "
                    f"{self.config.signal_timeout_seconds}s"
                )
            )
        except Exception as e:
            self.logger.warning("predictive_signal_failed", provider=provider_name, error=str(e))
            return Result.err(e)

        # Tolerate providers that hand back a bare number
        if not isinstance(signal, Result):
            signal = validate_probability(signal)

        if signal.is_err():
            self.logger.info(
                "predictive_signal_failed",
                provider=provider_name,
                error=str(signal.unwrap_err()),
            )
        return signal

    async def assess(self, vitals: Vitals | Mapping[str, Any]) -> AssessmentResult:
        """Validate, fetch the signal, then score."""
        checked = ensure_vitals(vitals)
        signal = await self.fetch_signal(checked)

        result = assess(
            checked,
            signal,
            thresholds=self.config.thresholds,
            trigger_probability=self.config.trigger_probability,
        )

        self.logger.info(
            "risk_assessed",
            patient_id=checked.patient_id,
            risk_level=result.risk_level.value,
            score=result.score,
            signal_used=result.signal_used,
        )
        return result

    async def assess_many(
        self, vitals_batch: Sequence[Vitals | Mapping[str, Any]]
    ) -> list[AssessmentResult]:
        """
        Assess independent patients concurrently, preserving input order.

        Every record is validated up front so a bad record fails the batch
        with a plain VitalsValidationError before any provider is called.
        """
        checked = [ensure_vitals(vitals) for vitals in vitals_batch]

        async with asyncio.TaskGroup() as task_group:
            tasks = [task_group.create_task(self.assess(vitals)) for vitals in checked]

        return [task.result() for task in tasks]

    def assess_sync(self, vitals: Vitals | Mapping[str, Any]) -> AssessmentResult:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.assess(vitals))


async def main() -> None:
    """Demonstrate an assessment with and without a predictive signal."""
    from natalcare.services.predictive_signal import StaticSignalProvider

    vitals = Vitals(systolic_bp=150, diastolic_bp=95, proteinuria=2, fetal_heart_rate=140)

    rule_only = RiskAssessmentEngine()
    with_signal = RiskAssessmentEngine(signal_provider=StaticSignalProvider(0.9))

    for engine in (rule_only, with_signal):
        result = await engine.assess(vitals)
        print(f"{result.risk_level.value} ({result.score}): {result.action}")
        for reason in result.reasoning:
            print(f"  - {reason}")


if __name__ == "__main__":
    asyncio.run(main())
