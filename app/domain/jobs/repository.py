"""Job repository - Database operations for jobs"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Client, Location
from ...models_route import Job, RouteStop


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def list_jobs(
        db: Session,
        org_id: str,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        statuses: Optional[list[str]] = None,
        assigned_to: Optional[str] = None,
        client_id: Optional[str] = None,
        location_id: Optional[str] = None,
        route_id: Optional[str] = None,
        unassigned: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Job]:
        """Jobs ordered by date, then by position on their route"""
        query = (
            db.query(Job)
            .outerjoin(RouteStop, RouteStop.job_id == Job.id)
            .options(
                joinedload(Job.client), joinedload(Job.location), joinedload(Job.route_stop)
            )
            .filter(Job.org_id == org_id)
        )

        if on_date:
            query = query.filter(Job.scheduled_date == on_date)
        else:
            if start_date:
                query = query.filter(Job.scheduled_date >= start_date)
            if end_date:
                query = query.filter(Job.scheduled_date <= end_date)
        if statuses:
            query = query.filter(Job.status.in_(statuses))
        if assigned_to:
            query = query.filter(Job.assigned_to == assigned_to)
        if client_id:
            query = query.filter(Job.client_id == client_id)
        if location_id:
            query = query.filter(Job.location_id == location_id)
        if route_id:
            query = query.filter(RouteStop.route_id == route_id)
        if unassigned:
            query = query.filter(RouteStop.id.is_(None))

        return (
            query.order_by(
                Job.scheduled_date,
                RouteStop.stop_order.is_(None),
                RouteStop.stop_order,
                Job.created_at,
            )
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_job(db: Session, job_id: str, org_id: str) -> Optional[Job]:
        return (
            db.query(Job)
            .options(
                joinedload(Job.client), joinedload(Job.location), joinedload(Job.route_stop)
            )
            .filter(Job.id == job_id, Job.org_id == org_id)
            .first()
        )

    @staticmethod
    def get_client(db: Session, client_id: str, org_id: str) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.org_id == org_id).first()

    @staticmethod
    def get_client_location(db: Session, location_id: str, client_id: str) -> Optional[Location]:
        return (
            db.query(Location)
            .filter(Location.id == location_id, Location.client_id == client_id)
            .first()
        )

    @staticmethod
    def create_job(db: Session, **job_data) -> Job:
        job = Job(**job_data)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job
