"""Scheduling service - Job generation runs and subscription status changes"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import Settings
from ...models import Subscription, User
from .materializer import JobMaterializer, MaterializeResult, resolve_days_ahead
from .repository import SchedulingRepository
from .schemas import SubscriptionStatusUpdate
from .service_days import ServiceDayRules
from .subscription_jobs import SubscriptionJobSync

logger = logging.getLogger(__name__)


class SchedulingService:
    """Service layer for job scheduling"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.rules = ServiceDayRules.from_settings(settings)
        self.repo = SchedulingRepository()

    def resolve_days_ahead(self, days_ahead: Optional[int]) -> int:
        try:
            return resolve_days_ahead(
                days_ahead, self.settings.default_days_ahead, self.settings.max_days_ahead
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def generate_jobs(
        self, days_ahead: int, org_id: Optional[str] = None, today: Optional[date] = None
    ) -> MaterializeResult:
        materializer = JobMaterializer(self.db, self.rules)
        try:
            return materializer.run(days_ahead, today=today, org_id=org_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Job generation failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate jobs")

    def get_subscription(self, subscription_id: str, user: User) -> Subscription:
        subscription = self.repo.get_subscription(self.db, subscription_id, user.org_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        return subscription

    def change_subscription_status(
        self, subscription_id: str, data: SubscriptionStatusUpdate, user: User
    ) -> tuple[Subscription, str, dict]:
        """Update the status, then void or regenerate the affected jobs"""
        subscription = self.get_subscription(subscription_id, user)
        old_status = subscription.status
        if data.status == old_status:
            return subscription, old_status, {"voided": 0, "generated": 0}

        subscription.status = data.status
        if data.status == "CANCELED":
            subscription.canceled_at = datetime.utcnow()
            subscription.cancel_reason = data.reason
        elif data.status == "ACTIVE":
            subscription.canceled_at = None
            subscription.cancel_reason = None
        self.db.commit()
        logger.info(
            f"🔄 Subscription {subscription_id} status {old_status} → {data.status} by {user.email}"
        )

        sync = SubscriptionJobSync(self.db, self.rules)
        try:
            result = sync.handle_status_change(
                subscription,
                old_status,
                data.status,
                days_ahead=self.settings.regenerate_days_ahead,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Job sync failed for subscription {subscription_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update subscription jobs")

        return subscription, old_status, result
