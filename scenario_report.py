"""
Walkthrough of the risk engine on reference clinical scenarios.

This script shows:
1. Configuration loading and validation
2. Offline patient registration
3. Rule-only assessments across all risk tiers
4. Predictive signal success, failure and timeout fallbacks

Run with: uv run python scenario_report.py
"""

import asyncio
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from natalcare.config import configure_logging, get_config, get_engine_config, validate_config
from natalcare.domain.models import AssessmentResult, RiskTier, Vitals
from natalcare.services.predictive_signal import (
    Result,
    StaticSignalProvider,
    UnavailableSignalProvider,
    build_signal_provider,
)
from natalcare.services.registration import gestational_age_weeks, register_patient
from natalcare.services.risk_engine import RiskAssessmentEngine

console = Console()

TIER_STYLES = {
    RiskTier.LOW: "green",
    RiskTier.MEDIUM: "yellow",
    RiskTier.HIGH: "dark_orange",
    RiskTier.CRITICAL: "bold red",
}

SCENARIOS: list[tuple[str, Vitals]] = [
    (
        "Routine visit",
        Vitals(systolic_bp=120, diastolic_bp=80, proteinuria=0, fetal_heart_rate=140),
    ),
    (
        "Gestational hypertension",
        Vitals(systolic_bp=150, diastolic_bp=95, proteinuria=0, fetal_heart_rate=140),
    ),
    (
        "Preeclampsia",
        Vitals(systolic_bp=150, diastolic_bp=95, proteinuria=2, fetal_heart_rate=140),
    ),
    (
        "Severe hypertension",
        Vitals(systolic_bp=165, diastolic_bp=100, proteinuria=0, fetal_heart_rate=140),
    ),
    (
        "Fetal bradycardia",
        Vitals(systolic_bp=118, diastolic_bp=76, proteinuria=0, fetal_heart_rate=100),
    ),
]


class SlowSignalProvider:
    """Provider that never answers in time, to show the timeout fallback."""

    provider_name = "slow"

    async def predict(self, vitals: Vitals) -> Result[float, Exception]:
        await asyncio.sleep(60)
        return Result.ok(0.99)


def render_results(title: str, rows: list[tuple[str, AssessmentResult]]) -> Table:
    table = Table(title=title)
    table.add_column("Scenario", style="cyan")
    table.add_column("Tier")
    table.add_column("Score", justify="right")
    table.add_column("Action")
    table.add_column("Reasoning", style="white")

    for name, result in rows:
        style = TIER_STYLES[result.risk_level]
        table.add_row(
            name,
            f"[{style}]{result.risk_level.value}[/{style}]",
            str(result.score),
            result.action,
            "\n".join(result.reasoning),
        )
    return table


def show_configuration() -> None:
    console.print(Panel("🔧 Configuration", style="blue"))
    validate_config()
    config = get_config()
    console.print(f"Signal provider: {config.predictive_signal.provider}", style="cyan")


def show_registration() -> None:
    console.print(Panel("🗂️  Offline Registration", style="blue"))
    profile = register_patient("Amina Bello", "Kafin Madaki", 27, "2026-03-02")
    weeks = gestational_age_weeks(profile.last_menstrual_period, on=date(2026, 10, 19))
    console.print(f"ID: {profile.id}")
    console.print(f"EDD: {profile.estimated_delivery_date.isoformat()}")
    console.print(f"Gestational age: {weeks} weeks")
    console.print(f"Sync status: {profile.sync_status.value}", style="yellow")


async def show_rule_only() -> None:
    console.print(Panel("🩺 Rule-only Assessments", style="blue"))
    engine = RiskAssessmentEngine(get_engine_config())
    names = [name for name, _ in SCENARIOS]
    results = await engine.assess_many([vitals for _, vitals in SCENARIOS])
    console.print(render_results("Deterministic rules", list(zip(names, results, strict=True))))


async def show_signal_fallbacks() -> None:
    console.print(Panel("🤖 Predictive Signal Fallbacks", style="blue"))
    vitals = SCENARIOS[0][1]
    base_config = get_engine_config()

    configured = build_signal_provider(get_config().predictive_signal)
    short_timeout = base_config.model_copy(update={"signal_timeout_seconds": 0.2})

    engines = [
        ("Configured provider", RiskAssessmentEngine(base_config, configured)),
        ("High-probability stub", RiskAssessmentEngine(base_config, StaticSignalProvider(0.9))),
        ("Model not loaded", RiskAssessmentEngine(base_config, UnavailableSignalProvider())),
        ("Timed out", RiskAssessmentEngine(short_timeout, SlowSignalProvider())),
    ]

    rows = [(name, await engine.assess(vitals)) for name, engine in engines]
    console.print(render_results("Routine visit with a predictive signal", rows))


async def run_report() -> None:
    configure_logging()
    console.print(Panel("🤰 NatalCare Risk Engine - Scenario Report", style="bold blue"))

    show_configuration()
    show_registration()
    await show_rule_only()
    await show_signal_fallbacks()


if __name__ == "__main__":
    try:
        asyncio.run(run_report())
    except KeyboardInterrupt:
        console.print("\n👋 Report stopped by user", style="yellow")
