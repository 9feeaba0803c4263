"""Scheduling repository - Database operations for subscriptions and generated jobs"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Subscription
from ...models_route import Job


class SchedulingRepository:
    """Repository for job generation queries"""

    @staticmethod
    def get_recurring_subscriptions(db: Session, org_id: Optional[str] = None) -> list[Subscription]:
        """Active subscriptions with a repeating frequency, client and location preloaded"""
        query = (
            db.query(Subscription)
            .options(joinedload(Subscription.client), joinedload(Subscription.location))
            .filter(Subscription.status == "ACTIVE", Subscription.frequency != "ONETIME")
        )
        if org_id:
            query = query.filter(Subscription.org_id == org_id)
        return query.order_by(Subscription.created_at, Subscription.id).all()

    @staticmethod
    def get_onetime_subscriptions(db: Session, org_id: Optional[str] = None) -> list[Subscription]:
        query = db.query(Subscription).filter(
            Subscription.status == "ACTIVE",
            Subscription.frequency == "ONETIME",
            Subscription.next_service_date.isnot(None),
        )
        if org_id:
            query = query.filter(Subscription.org_id == org_id)
        return query.order_by(Subscription.created_at, Subscription.id).all()

    @staticmethod
    def get_subscription(db: Session, subscription_id: str, org_id: str) -> Optional[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.id == subscription_id, Subscription.org_id == org_id)
            .first()
        )

    @staticmethod
    def find_job(db: Session, subscription_id: str, scheduled_date: date) -> Optional[Job]:
        return (
            db.query(Job)
            .filter(Job.subscription_id == subscription_id, Job.scheduled_date == scheduled_date)
            .first()
        )

    @staticmethod
    def has_any_job(db: Session, subscription_id: str) -> bool:
        return (
            db.query(Job.id).filter(Job.subscription_id == subscription_id).first() is not None
        )

    @staticmethod
    def get_voidable_jobs(
        db: Session, subscription_id: str, org_id: str, from_date: date
    ) -> list[Job]:
        """Future jobs that have not been worked yet"""
        return (
            db.query(Job)
            .options(joinedload(Job.route_stop))
            .filter(
                Job.subscription_id == subscription_id,
                Job.org_id == org_id,
                Job.scheduled_date >= from_date,
                Job.status.in_(("SCHEDULED", "EN_ROUTE")),
            )
            .all()
        )
