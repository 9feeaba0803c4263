"""Service-day rules: which calendar dates a subscription is visited on"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from ...config import Settings

WEEKDAY_NAMES = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


@dataclass(frozen=True)
class ServiceDayRules:
    """Tunable parts of the service-day decision"""

    non_service_weekdays: frozenset = field(default_factory=lambda: frozenset({"SUNDAY"}))
    weekday_pin_overrides_cadence: bool = False
    monthly_tolerance_days: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceDayRules":
        return cls(
            non_service_weekdays=settings.non_service_weekdays,
            weekday_pin_overrides_cadence=settings.weekday_pin_overrides_cadence,
            monthly_tolerance_days=settings.monthly_tolerance_days,
        )


DEFAULT_RULES = ServiceDayRules()


def matches_cadence(
    day: date, frequency: str, anchor: date, tolerance_days: int = 3
) -> bool:
    """Frequency rule alone, ignoring weekday exclusions and pins"""
    if frequency == "WEEKLY":
        return True

    if frequency == "BIWEEKLY":
        # Floor division keeps dates before the anchor on the right phase too
        week_offset = (day - anchor).days // 7
        return week_offset % 2 == 0

    if frequency == "MONTHLY":
        # Band around the anchor's day of month, no wrap across month ends
        return abs(day.day - anchor.day) <= tolerance_days

    return False


def pinned_monthly_day(
    year: int, month: int, anchor_day: int, weekday: str, tolerance_days: int = 3
) -> int:
    """
    Day of month a weekday-pinned MONTHLY subscription is visited on.

    The search week starts at the low edge of the band around the anchor day,
    pulled back so all seven days fit inside the month; any weekday occurs
    exactly once in it.
    """
    last_day = calendar.monthrange(year, month)[1]
    start = max(1, min(anchor_day - tolerance_days, last_day - 6))
    target = WEEKDAY_NAMES.index(weekday)
    return start + (target - date(year, month, start).weekday()) % 7


def is_service_day(
    day: date,
    frequency: str,
    anchor: Union[date, datetime],
    preferred_day: Optional[str] = None,
    rules: ServiceDayRules = DEFAULT_RULES,
) -> bool:
    """
    Decide whether ``day`` needs a visit for a subscription.

    Args:
        day: Candidate calendar date
        frequency: WEEKLY, BIWEEKLY, MONTHLY (ONETIME never matches)
        anchor: Subscription creation timestamp, the phase reference
        preferred_day: Optional weekday pin such as "TUESDAY"
        rules: Excluded weekdays and pin/cadence precedence

    Returns:
        True when a job should exist on ``day``
    """
    if weekday_name(day) in rules.non_service_weekdays:
        return False

    anchor_date = _as_date(anchor)

    if preferred_day:
        if weekday_name(day) != preferred_day.upper():
            return False
        if rules.weekday_pin_overrides_cadence:
            return True
        if frequency == "MONTHLY":
            visit_day = pinned_monthly_day(
                day.year,
                day.month,
                anchor_date.day,
                preferred_day.upper(),
                rules.monthly_tolerance_days,
            )
            return day.day == visit_day

    return matches_cadence(day, frequency, anchor_date, rules.monthly_tolerance_days)
