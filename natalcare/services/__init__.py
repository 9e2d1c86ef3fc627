"""
Core services for the application.

This package contains the risk assessment engine, the pluggable predictive
signal providers and offline patient registration.
"""

from .predictive_signal import (
    ModelSignalProvider,
    PredictiveSignalProvider,
    Result,
    StaticSignalProvider,
    UnavailableSignalProvider,
    build_signal_provider,
)
from .registration import calculate_edd, gestational_age_weeks, register_patient
from .risk_engine import EngineConfig, RiskAssessmentEngine, assess, classify_score, score_vitals

__all__ = [
    "PredictiveSignalProvider",
    "ModelSignalProvider",
    "Result",
    "StaticSignalProvider",
    "UnavailableSignalProvider",
    "build_signal_provider",
    "calculate_edd",
    "gestational_age_weeks",
    "register_patient",
    "EngineConfig",
    "RiskAssessmentEngine",
    "assess",
    "classify_score",
    "score_vitals",
]
