"""
Predictive signal providers feeding an optional probability into the risk engine.

Key patterns:
- Protocol-based dependency injection (providers are swappable and mockable)
- Generic Result type so failure is an explicit value, not a swallowed exception
- Lazy model checks: a model-backed provider can be built on a device with no
  model installed and simply reports failure when asked to predict
"""

import math
from typing import TYPE_CHECKING, Generic, Literal, Protocol, TypeVar

import structlog
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from natalcare.domain.models import Vitals

if TYPE_CHECKING:
    from natalcare.config import PredictiveSignalConfig

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    A predictive signal is either a value or the reason it is missing; the
    engine decides what to do with each case.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def __repr__(self) -> str:
        if self._error is None:
            return f"Result.ok({self._value!r})"
        return f"Result.err({self._error!r})"


class SignalUnavailableError(RuntimeError):
    """The predictive model is not loaded or cannot be reached."""


class InvalidSignalError(ValueError):
    """The provider returned something that is not a probability in [0, 1]."""


class PredictiveSignalProvider(Protocol):
    """
    Protocol for anything that can estimate a risk probability from vitals.

    Implementations may be slow and may fail; they should report failure as
    Result.err rather than raise, but the engine tolerates both.
    """

    provider_name: str

    async def predict(self, vitals: Vitals) -> Result[float, Exception]:
        """
        Estimate the probability that the pregnancy is high risk.

        Returns:
            Result[float]: probability in [0, 1] or the reason it is missing.
        """
        ...


def validate_probability(value: object) -> Result[float, Exception]:
    """Accept only finite numbers within [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return Result.err(InvalidSignalError(f"Signal must be numeric, got {type(value).__name__}"))
    probability = float(value)
    if not math.isfinite(probability) or not 0.0 <= probability <= 1.0:
        return Result.err(InvalidSignalError(f"Signal {probability} outside [0, 1]"))
    return Result.ok(probability)


class StaticSignalProvider:
    """
    Placeholder provider returning a fixed, low probability.

    Stands in until a trained model is wired in; it never triggers the
    predictive rule with the default trigger probability.
    """

    def __init__(self, probability: float = 0.1, provider_name: str = "static") -> None:
        checked = validate_probability(probability)
        if checked.is_err():
            raise checked.unwrap_err()
        self.probability = checked.unwrap()
        self.provider_name = provider_name

    async def predict(self, vitals: Vitals) -> Result[float, Exception]:
        return Result.ok(self.probability)


class UnavailableSignalProvider:
    """Provider for devices where no model is installed."""

    def __init__(
        self, provider_name: str = "unavailable", reason: str = "model not loaded"
    ) -> None:
        self.provider_name = provider_name
        self.reason = reason

    async def predict(self, vitals: Vitals) -> Result[float, Exception]:
        return Result.err(SignalUnavailableError(self.reason))


class SignalEstimate(BaseModel):
    """Structured output expected from a model-backed provider."""

    probability: float = Field(ge=0.0, le=1.0, description="Probability of high-risk pregnancy")
    rationale: str = Field(default="", max_length=500)


class ModelSignalProvider:
    """
    Model-backed provider using a Pydantic AI agent with typed output.

    The model is resolved lazily, so a missing local model only shows up as
    a failed prediction, never as a construction error.
    """

    def __init__(self, model_name: str, provider_name: str = "model") -> None:
        self.model_name = model_name
        self.provider_name = provider_name
        self.logger = logger.bind(component="model_signal_provider", model=model_name)

        self.agent = Agent(
            model=self.model_name,
            output_type=SignalEstimate,
            system_prompt=self._build_system_prompt(),
            defer_model_check=True,
        )

    def _build_system_prompt(self) -> str:
        return """You are an obstetric risk model running on a community health worker's device.

Given one set of antenatal vitals, estimate the probability (0.0 to 1.0) that
this pregnancy needs escalated care. Base the estimate only on the readings
provided. Keep the rationale to one or two sentences."""

    def _build_user_prompt(self, vitals: Vitals) -> str:
        gestation = (
            f"{vitals.gestational_age_weeks:g} weeks"
            if vitals.gestational_age_weeks is not None
            else "unknown"
        )
        symptoms = ", ".join(sorted(vitals.symptoms)) or "none reported"
        return f"""VITALS:
Blood pressure: {vitals.systolic_bp:g}/{vitals.diastolic_bp:g} mmHg
Proteinuria (dipstick 0-4): {vitals.proteinuria}
Fetal heart rate: {vitals.fetal_heart_rate:g} bpm
Gestational age: {gestation}
Symptoms: {symptoms}"""

    async def predict(self, vitals: Vitals) -> Result[float, Exception]:
        try:
            result = await self.agent.run(self._build_user_prompt(vitals))
            estimate: SignalEstimate = result.output
            self.logger.debug(
                "model_signal_estimated",
                probability=estimate.probability,
                rationale=estimate.rationale,
            )
            return validate_probability(estimate.probability)
        except Exception as e:
            self.logger.warning("model_signal_failed", error=str(e))
            return Result.err(e)


SignalProviderKind = Literal["static", "model", "disabled"]


def build_signal_provider(config: "PredictiveSignalConfig") -> PredictiveSignalProvider | None:
    """Create the provider selected by configuration; None means no signal."""
    if config.provider == "disabled":
        return None
    if config.provider == "model":
        return ModelSignalProvider(config.model_name)
    if config.provider == "static":
        return StaticSignalProvider(config.static_probability)
    raise ValueError(f"Unknown signal provider: {config.provider}")
