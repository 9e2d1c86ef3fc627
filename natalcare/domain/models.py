"""
Domain models for maternal-health risk assessment.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation; every model is frozen so an assessment can be
shared between threads, tasks and storage layers without defensive copies.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class VitalsValidationError(ValueError):
    """Raised when a vitals record is malformed, before any scoring happens."""

    def __init__(self, field: str, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(f"Invalid vitals field '{field}': {message}")
        self.field = field
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "VitalsValidationError":
        """Build from a pydantic error, naming the first offending field."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = first.get("loc") or ("vitals",)
        field = ".".join(str(part) for part in location)
        return cls(field=field, message=first.get("msg", str(exc)), errors=errors)


class RiskTier(str, Enum):
    """Risk tiers, totally ordered by clinical severity."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return _TIER_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.severity >= other.severity


_TIER_ORDER = (RiskTier.LOW, RiskTier.MEDIUM, RiskTier.HIGH, RiskTier.CRITICAL)


class SyncStatus(str, Enum):
    """Whether a locally created record has reached the central server."""

    PENDING = "PENDING"
    SYNCED = "SYNCED"


class RiskThresholds(BaseModel):
    """
    Named clinical cutoffs used by the scoring rules.

    Loaded once at startup and shared read-only by every assessment.
    """

    model_config = ConfigDict(frozen=True)

    bp_critical_systolic: float = Field(default=160, gt=0, description="Severe systolic BP (mmHg)")
    bp_critical_diastolic: float = Field(
        default=110, gt=0, description="Severe diastolic BP (mmHg)"
    )
    bp_high_systolic: float = Field(default=140, gt=0, description="Hypertensive systolic BP")
    bp_high_diastolic: float = Field(default=90, gt=0, description="Hypertensive diastolic BP")
    fhr_low: float = Field(default=110, gt=0, description="Lower bound of normal fetal heart rate")
    fhr_high: float = Field(default=160, gt=0, description="Upper bound of normal fetal heart rate")

    @model_validator(mode="after")
    def critical_above_high(self) -> "RiskThresholds":
        """Critical cutoffs must be strictly more extreme than the high ones."""
        if self.bp_critical_systolic <= self.bp_high_systolic:
            raise ValueError("bp_critical_systolic must be greater than bp_high_systolic")
        if self.bp_critical_diastolic <= self.bp_high_diastolic:
            raise ValueError("bp_critical_diastolic must be greater than bp_high_diastolic")
        if self.fhr_low >= self.fhr_high:
            raise ValueError("fhr_low must be lower than fhr_high")
        return self


DEFAULT_THRESHOLDS = RiskThresholds()


class Vitals(BaseModel):
    """Single set of clinical readings taken during an antenatal visit."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Strict: booleans and numeric strings are rejected, not coerced
    systolic_bp: float = Field(ge=0, le=300, strict=True, allow_inf_nan=False, description="mmHg")
    diastolic_bp: float = Field(ge=0, le=300, strict=True, allow_inf_nan=False, description="mmHg")
    proteinuria: int = Field(
        ge=0, le=4, strict=True, description="Urine dipstick grade, 0 (none) to 4 (++++)"
    )
    fetal_heart_rate: float = Field(
        ge=0, le=300, strict=True, allow_inf_nan=False, description="bpm"
    )
    gestational_age_weeks: float | None = Field(
        default=None, ge=0, le=45, strict=True, allow_inf_nan=False
    )
    symptoms: frozenset[str] = Field(default_factory=frozenset)
    patient_id: str | None = Field(default=None, description="Caller-side linkage only")


class AssessmentResult(BaseModel):
    """Outcome of one risk assessment, ready for display or audit storage."""

    model_config = ConfigDict(frozen=True)

    risk_level: RiskTier
    ui_color: str = Field(pattern=r"^#[0-9A-F]{6}$")
    action: str = Field(min_length=1)
    reasoning: tuple[str, ...]
    score: int = Field(ge=0, description="Total accumulated rule score")
    signal_used: bool = Field(
        default=False, description="True when a predictive signal value was available"
    )


class PatientProfile(BaseModel):
    """Patient record created on the device, waiting to be synced."""

    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str = Field(min_length=1)
    village: str = Field(min_length=1)
    age: int = Field(ge=0, le=120)
    last_menstrual_period: date
    estimated_delivery_date: date
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    sync_status: SyncStatus = SyncStatus.PENDING
