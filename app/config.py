import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scoopops.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Shared secret for the job generation trigger (sent as x-cron-secret)
CRON_SECRET = os.getenv("CRON_SECRET")
if not CRON_SECRET:
    import warnings

    warnings.warn(
        "CRON_SECRET not set! Job generation can only be triggered by logged-in staff",
        RuntimeWarning,
        stacklevel=2,
    )

# Frontend base URL (CORS)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Scheduling
DEFAULT_DAYS_AHEAD = int(os.getenv("JOBS_DEFAULT_DAYS_AHEAD", "7"))
MAX_DAYS_AHEAD = int(os.getenv("JOBS_MAX_DAYS_AHEAD", "90"))
REGENERATE_DAYS_AHEAD = int(os.getenv("JOBS_REGENERATE_DAYS_AHEAD", "14"))
# Comma separated weekday names that are never serviced
NON_SERVICE_WEEKDAYS = os.getenv("NON_SERVICE_WEEKDAYS", "SUNDAY")
# true: a preferred weekday replaces the frequency cadence (legacy behavior)
# false: the preferred weekday narrows the cadence (biweekly stays biweekly)
WEEKDAY_PIN_OVERRIDES_CADENCE = (
    os.getenv("WEEKDAY_PIN_OVERRIDES_CADENCE", "false").lower() == "true"
)
MONTHLY_TOLERANCE_DAYS = int(os.getenv("MONTHLY_TOLERANCE_DAYS", "3"))

# Nightly job generation (arq cron), local server time
JOBS_CRON_HOUR = int(os.getenv("JOBS_CRON_HOUR", "2"))
JOBS_CRON_MINUTE = int(os.getenv("JOBS_CRON_MINUTE", "0"))


def _parse_weekdays(raw: str) -> frozenset:
    return frozenset(part.strip().upper() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and handed to components."""

    cron_secret: str | None = None
    default_days_ahead: int = 7
    max_days_ahead: int = 90
    regenerate_days_ahead: int = 14
    non_service_weekdays: frozenset = field(default_factory=lambda: frozenset({"SUNDAY"}))
    weekday_pin_overrides_cadence: bool = False
    monthly_tolerance_days: int = 3

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            cron_secret=CRON_SECRET,
            default_days_ahead=DEFAULT_DAYS_AHEAD,
            max_days_ahead=MAX_DAYS_AHEAD,
            regenerate_days_ahead=REGENERATE_DAYS_AHEAD,
            non_service_weekdays=_parse_weekdays(NON_SERVICE_WEEKDAYS),
            weekday_pin_overrides_cadence=WEEKDAY_PIN_OVERRIDES_CADENCE,
            monthly_tolerance_days=MONTHLY_TOLERANCE_DAYS,
        )


settings = Settings.from_env()


def get_settings() -> Settings:
    """Dependency returning the startup settings object"""
    return settings
