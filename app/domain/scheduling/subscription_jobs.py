"""
Subscription job management
Voids and regenerates jobs when a subscription's status changes
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Subscription
from ..routing.assignment import RouteAssignmentWriter
from .materializer import CREATED, EXISTING, JobMaterializer, build_job
from .repository import SchedulingRepository
from .service_days import DEFAULT_RULES, ServiceDayRules, is_service_day

logger = logging.getLogger(__name__)

VOID_STATUSES = {"PAUSED": "Subscription paused", "CANCELED": "Subscription canceled"}


class SubscriptionJobSync:
    """Keeps a subscription's future jobs in line with its status"""

    def __init__(self, db: Session, rules: ServiceDayRules = DEFAULT_RULES):
        self.db = db
        self.rules = rules
        self.repo = SchedulingRepository()
        self.materializer = JobMaterializer(db, rules)
        self.writer = RouteAssignmentWriter(db)

    def void_future_jobs(
        self,
        subscription: Subscription,
        reason: str = "Subscription changed",
        today: Optional[date] = None,
    ) -> int:
        """Cancel unworked jobs from today on and take them off their routes"""
        today = today or date.today()
        jobs = self.repo.get_voidable_jobs(self.db, subscription.id, subscription.org_id, today)
        if not jobs:
            return 0

        for job in jobs:
            job.status = "CANCELED"
            job.skip_reason = reason
        # Commits the status change together with the route compaction;
        # stops on completed routes stay as the record of the day
        removed = self.writer.detach_jobs(jobs, skip_locked=True)

        logger.info(
            f"🚫 Voided {len(jobs)} future jobs for subscription {subscription.id} "
            f"({removed} removed from routes): {reason}"
        )
        return len(jobs)

    def regenerate_jobs(
        self,
        subscription: Subscription,
        days_ahead: int = 14,
        today: Optional[date] = None,
    ) -> int:
        """
        Recreate upcoming jobs (tomorrow through ``days_ahead``) for a
        reactivated subscription. A visit canceled by an earlier pause is
        revived rather than duplicated.
        """
        if subscription.status != "ACTIVE" or subscription.frequency == "ONETIME":
            return 0

        today = today or date.today()
        generated = 0
        for day_offset in range(1, days_ahead + 1):
            candidate = today + timedelta(days=day_offset)
            if not is_service_day(
                candidate,
                subscription.frequency,
                subscription.created_at,
                subscription.preferred_day,
                self.rules,
            ):
                continue

            existing = self.repo.find_job(self.db, subscription.id, candidate)
            if existing is not None:
                if existing.status == "CANCELED":
                    existing.status = "SCHEDULED"
                    existing.skip_reason = None
                    existing.price_cents = subscription.price_per_visit_cents
                    existing.job_metadata = {
                        **(existing.job_metadata or {}),
                        "revived_by": "subscription_change",
                        "revived_at": datetime.utcnow().isoformat(),
                    }
                    self.db.commit()
                    generated += 1
                continue

            job = build_job(subscription, candidate, generated_by="subscription_change")
            outcome = self.materializer.insert_job(job)
            if outcome == CREATED:
                generated += 1
            elif outcome != EXISTING:
                logger.warning(
                    f"⚠️ Could not regenerate job for subscription {subscription.id} on {candidate}"
                )

        logger.info(f"🔁 Regenerated {generated} jobs for subscription {subscription.id}")
        return generated

    def handle_status_change(
        self,
        subscription: Subscription,
        old_status: str,
        new_status: str,
        days_ahead: int = 14,
        today: Optional[date] = None,
    ) -> dict:
        """Void on pause/cancel, regenerate on reactivation"""
        result = {"voided": 0, "generated": 0}

        if new_status in VOID_STATUSES:
            result["voided"] = self.void_future_jobs(
                subscription, VOID_STATUSES[new_status], today=today
            )
            return result

        if new_status == "ACTIVE" and old_status != "ACTIVE":
            result["generated"] = self.regenerate_jobs(subscription, days_ahead, today=today)

        return result
