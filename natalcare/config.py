"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast on inverted clinical thresholds)
- Type safety with Pydantic
- Offline-safe defaults (the static signal provider needs no model)
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from natalcare.domain.models import DEFAULT_THRESHOLDS, RiskThresholds
from natalcare.services.predictive_signal import SignalProviderKind
from natalcare.services.risk_engine import EngineConfig

# Load environment variables from .env file
load_dotenv()


class PredictiveSignalConfig(BaseModel):
    """Optional predictive signal settings."""

    provider: SignalProviderKind = Field(
        default="static", description="Which provider feeds the predictive rule"
    )
    static_probability: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Value returned by the static stub provider"
    )
    model_name: str = Field(
        default="ollama:llama3.2", description="Model used by the model-backed provider"
    )
    timeout_seconds: float = Field(
        default=2.0, gt=0.0, description="Give up on the signal after this many seconds"
    )
    trigger_probability: float = Field(
        default=0.75, ge=0.0, le=1.0, description="Signal must exceed this to add risk"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    thresholds: RiskThresholds = Field(default_factory=lambda: DEFAULT_THRESHOLDS)
    predictive_signal: PredictiveSignalConfig = Field(default_factory=PredictiveSignalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _provider_to_literal(val: str) -> SignalProviderKind:
        v = val.strip().lower()
        return cast(SignalProviderKind, v if v in {"static", "model", "disabled"} else "static")

    def _threshold(name: str, default: float) -> float:
        return float(os.getenv(name, str(default)))

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    # Clinical cutoffs; an inverted table fails validation here
    thresholds = RiskThresholds(
        bp_critical_systolic=_threshold(
            "THRESHOLD_BP_CRITICAL_SYSTOLIC", DEFAULT_THRESHOLDS.bp_critical_systolic
        ),
        bp_critical_diastolic=_threshold(
            "THRESHOLD_BP_CRITICAL_DIASTOLIC", DEFAULT_THRESHOLDS.bp_critical_diastolic
        ),
        bp_high_systolic=_threshold(
            "THRESHOLD_BP_HIGH_SYSTOLIC", DEFAULT_THRESHOLDS.bp_high_systolic
        ),
        bp_high_diastolic=_threshold(
            "THRESHOLD_BP_HIGH_DIASTOLIC", DEFAULT_THRESHOLDS.bp_high_diastolic
        ),
        fhr_low=_threshold("THRESHOLD_FHR_LOW", DEFAULT_THRESHOLDS.fhr_low),
        fhr_high=_threshold("THRESHOLD_FHR_HIGH", DEFAULT_THRESHOLDS.fhr_high),
    )

    signal_config = PredictiveSignalConfig(
        provider=_provider_to_literal(os.getenv("SIGNAL_PROVIDER", "static")),
        static_probability=float(os.getenv("SIGNAL_STATIC_PROBABILITY", "0.1")),
        model_name=os.getenv("SIGNAL_MODEL_NAME", "ollama:llama3.2"),
        timeout_seconds=float(os.getenv("SIGNAL_TIMEOUT_SECONDS", "2.0")),
        trigger_probability=float(os.getenv("SIGNAL_TRIGGER_PROBABILITY", "0.75")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        thresholds=thresholds,
        predictive_signal=signal_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Forget the cached configuration so the next call re-reads the environment."""
    get_config.cache_clear()


def get_engine_config() -> EngineConfig:
    """Build the risk engine settings from the cached application config."""
    config = get_config()
    return EngineConfig(
        thresholds=config.thresholds,
        signal_timeout_seconds=config.predictive_signal.timeout_seconds,
        trigger_probability=config.predictive_signal.trigger_probability,
    )


def configure_logging(logging_config: LoggingConfig | None = None) -> None:
    """Configure structlog for JSON (devices, log shipping) or console output."""
    logging_config = logging_config or get_config().logging
    logging.basicConfig(format="%(message)s", level=logging_config.level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if logging_config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if config.predictive_signal.provider == "disabled":
            print("ℹ️  Predictive signal disabled, rule-only scoring")
        else:
            print(f"✅ Predictive signal provider: {config.predictive_signal.provider}")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()
    thresholds = config.thresholds

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n🩺 CLINICAL THRESHOLDS")
    print(
        f"Severe BP: >= {thresholds.bp_critical_systolic:g}/{thresholds.bp_critical_diastolic:g}"
    )
    print(f"High BP: >= {thresholds.bp_high_systolic:g}/{thresholds.bp_high_diastolic:g}")
    print(f"Normal FHR: {thresholds.fhr_low:g}-{thresholds.fhr_high:g} bpm")

    print("\n🤖 PREDICTIVE SIGNAL")
    print(f"Provider: {config.predictive_signal.provider}")
    print(f"Model: {config.predictive_signal.model_name}")
    print(f"Timeout: {config.predictive_signal.timeout_seconds}s")
    print(f"Trigger Probability: {config.predictive_signal.trigger_probability:.0%}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
