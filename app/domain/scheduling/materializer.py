"""
Job Materializer
Turns active subscriptions into concrete Job rows for an upcoming horizon
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Subscription
from ...models_route import Job
from .repository import SchedulingRepository
from .service_days import DEFAULT_RULES, ServiceDayRules, is_service_day

logger = logging.getLogger(__name__)

CREATED = "created"
EXISTING = "existing"
ERROR = "error"


def resolve_days_ahead(days_ahead: Optional[int], default: int, maximum: int) -> int:
    """Default when absent, ValueError when not positive, clamped to ``maximum``"""
    if days_ahead is None:
        return default
    if days_ahead < 1:
        raise ValueError("daysAhead must be a positive integer")
    if days_ahead > maximum:
        logger.warning(f"⚠️ daysAhead {days_ahead} exceeds limit, using {maximum}")
        return maximum
    return days_ahead


@dataclass
class MaterializeResult:
    created: int = 0
    skipped: int = 0
    existing: int = 0
    errors: int = 0
    subscriptions_processed: int = 0


def build_job(
    subscription: Subscription,
    scheduled_date: date,
    generated_by: str = "cron",
    frequency: Optional[str] = None,
) -> Job:
    """New SCHEDULED job carrying a price snapshot and a generation tag"""
    return Job(
        org_id=subscription.org_id,
        subscription_id=subscription.id,
        client_id=subscription.client_id,
        location_id=subscription.location_id,
        scheduled_date=scheduled_date,
        status="SCHEDULED",
        price_cents=subscription.price_per_visit_cents,
        job_metadata={
            "generated_by": generated_by,
            "generated_at": datetime.utcnow().isoformat(),
            "frequency": frequency or subscription.frequency,
        },
    )


def subscription_is_serviceable(subscription: Subscription) -> bool:
    """Client must be ACTIVE and the service location still in use"""
    client = subscription.client
    location = subscription.location
    if not client or client.status != "ACTIVE":
        return False
    if not location or not location.is_active:
        return False
    return True


class JobMaterializer:
    """Creates missing jobs for subscriptions, one insert per unit of work"""

    def __init__(self, db: Session, rules: ServiceDayRules = DEFAULT_RULES):
        self.db = db
        self.rules = rules
        self.repo = SchedulingRepository()

    def insert_job(self, job: Job) -> str:
        """
        Insert a single job and commit it.

        A uniqueness conflict on (subscription, date) means another run or an
        earlier pass already created the visit; that is reported as EXISTING.
        Any other failure is rolled back and reported as ERROR.
        """
        subscription_id = job.subscription_id
        scheduled_date = job.scheduled_date
        try:
            self.db.add(job)
            self.db.commit()
            return CREATED
        except IntegrityError:
            self.db.rollback()
            if self.repo.find_job(self.db, subscription_id, scheduled_date):
                return EXISTING
            logger.error(
                f"❌ Integrity error creating job for subscription {subscription_id} on {scheduled_date}"
            )
            return ERROR
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"❌ Error creating job for subscription {subscription_id} on {scheduled_date}: {e}"
            )
            return ERROR

    def candidate_dates(self, subscription: Subscription, today: date, horizon_days: int):
        """Service days for a subscription from today through today + horizon (inclusive)"""
        for day_offset in range(horizon_days + 1):
            candidate = today + timedelta(days=day_offset)
            if is_service_day(
                candidate,
                subscription.frequency,
                subscription.created_at,
                subscription.preferred_day,
                self.rules,
            ):
                yield candidate

    def materialize(
        self,
        subscriptions: Iterable[Subscription],
        horizon_days: int,
        today: date,
        result: Optional[MaterializeResult] = None,
    ) -> MaterializeResult:
        """Recurring pass over the given subscriptions; ONETIME ones are ignored here"""
        result = result or MaterializeResult()

        for subscription in subscriptions:
            result.subscriptions_processed += 1
            if subscription.status != "ACTIVE" or subscription.frequency == "ONETIME":
                continue
            if not subscription_is_serviceable(subscription):
                result.skipped += 1
                continue

            for candidate in list(self.candidate_dates(subscription, today, horizon_days)):
                outcome = self.insert_job(build_job(subscription, candidate))
                self._tally(result, outcome)

        return result

    def materialize_onetime(
        self, subscriptions: Iterable[Subscription], result: Optional[MaterializeResult] = None
    ) -> MaterializeResult:
        """One job per ONETIME subscription, keyed by the subscription alone"""
        result = result or MaterializeResult()

        for subscription in subscriptions:
            if not subscription.next_service_date:
                continue
            if self.repo.has_any_job(self.db, subscription.id):
                result.existing += 1
                continue
            job = build_job(subscription, subscription.next_service_date, frequency="ONETIME")
            self._tally(result, self.insert_job(job))

        return result

    def run(
        self, horizon_days: int, today: Optional[date] = None, org_id: Optional[str] = None
    ) -> MaterializeResult:
        """Full generation run: recurring subscriptions, then one-time visits"""
        today = today or date.today()
        logger.info(
            f"🗓️ Generating jobs for {horizon_days} days ahead from {today}"
            + (f" (org {org_id})" if org_id else "")
        )

        result = self.materialize(
            self.repo.get_recurring_subscriptions(self.db, org_id), horizon_days, today
        )
        self.materialize_onetime(self.repo.get_onetime_subscriptions(self.db, org_id), result)

        logger.info(
            f"✅ Job generation complete: {result.created} created, {result.existing} existing, "
            f"{result.skipped} skipped, {result.errors} errors"
        )
        return result

    @staticmethod
    def _tally(result: MaterializeResult, outcome: str) -> None:
        if outcome == CREATED:
            result.created += 1
        elif outcome == EXISTING:
            result.existing += 1
        else:
            result.errors += 1
