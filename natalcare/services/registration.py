"""
Offline patient registration.

Records are created entirely on the device: the id is a locally generated
UUID4 so records from different devices never collide when synced later.
Nothing here persists anything; the caller stores the returned profile.
"""

import calendar
import uuid
from datetime import UTC, date, datetime, timedelta

import structlog

from natalcare.domain.models import PatientProfile, SyncStatus

logger = structlog.get_logger(__name__)

NAEGELE_DAYS = 7
NAEGELE_MONTHS = 9


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def calculate_edd(lmp: date) -> date:
    """
    Estimated delivery date by Naegele's rule: LMP + 7 days + 9 months.

    Days past the end of a short target month clamp to its last day.
    """
    return _add_months(lmp + timedelta(days=NAEGELE_DAYS), NAEGELE_MONTHS)


def gestational_age_weeks(lmp: date, on: date | None = None) -> int:
    """Whole weeks of gestation on the given day (today, UTC, by default)."""
    on = on or datetime.now(UTC).date()
    if on < lmp:
        raise ValueError(
            f"Date {on.isoformat()} is before last menstrual period {lmp.isoformat()}"
        )
    return (on - lmp).days // 7


def _parse_lmp(lmp: date | str) -> date:
    if isinstance(lmp, datetime):
        return lmp.date()
    if isinstance(lmp, date):
        return lmp
    try:
        return date.fromisoformat(lmp.strip())
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Last menstrual period must be YYYY-MM-DD, got {lmp!r}") from e


def register_patient(name: str, village: str, age: int, lmp: date | str) -> PatientProfile:
    """
    Create a new patient profile without any network access.

    Args:
        name: Full name of the patient.
        village: Home village, used by community health workers for follow-up.
        age: Age in years.
        lmp: First day of the last menstrual period, as a date or YYYY-MM-DD.

    Raises:
        ValueError: If name or village is blank, or the date cannot be parsed.
    """
    if not name or not name.strip() or not village or not village.strip():
        raise ValueError("Missing required fields")

    lmp_date = _parse_lmp(lmp)
    profile = PatientProfile(
        id=str(uuid.uuid4()),
        full_name=name.strip(),
        village=village.strip(),
        age=age,
        last_menstrual_period=lmp_date,
        estimated_delivery_date=calculate_edd(lmp_date),
        sync_status=SyncStatus.PENDING,
    )

    logger.info(
        "patient_registered",
        patient_id=profile.id,
        village=profile.village,
        estimated_delivery_date=profile.estimated_delivery_date.isoformat(),
    )
    return profile
