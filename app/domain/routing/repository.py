"""Routing repository - Database operations for routes and stops"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import User
from ...models_route import Job, Route, RouteStop


class RouteRepository:
    """Repository for route database operations"""

    @staticmethod
    def get_route(db: Session, route_id: str, org_id: str) -> Optional[Route]:
        """Route with its stops, their jobs and locations preloaded"""
        return (
            db.query(Route)
            .options(
                selectinload(Route.stops)
                .joinedload(RouteStop.job)
                .joinedload(Job.location),
                selectinload(Route.stops).joinedload(RouteStop.job).joinedload(Job.client),
            )
            .filter(Route.id == route_id, Route.org_id == org_id)
            .first()
        )

    @staticmethod
    def list_routes(
        db: Session,
        org_id: str,
        route_date: Optional[date] = None,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> list[Route]:
        query = (
            db.query(Route)
            .options(selectinload(Route.stops))
            .filter(Route.org_id == org_id)
        )
        if route_date:
            query = query.filter(Route.route_date == route_date)
        if status:
            query = query.filter(Route.status == status)
        if assigned_to:
            query = query.filter(Route.assigned_to == assigned_to)
        return query.order_by(Route.route_date.desc(), Route.created_at).all()

    @staticmethod
    def create_route(db: Session, org_id: str, **route_data) -> Route:
        route = Route(org_id=org_id, **route_data)
        db.add(route)
        db.commit()
        db.refresh(route)
        return route

    @staticmethod
    def get_jobs_with_locations(db: Session, org_id: str, job_ids: list[str]) -> list[Job]:
        """Jobs in the caller's organization, in the order the ids were given"""
        if not job_ids:
            return []
        jobs = (
            db.query(Job)
            .options(joinedload(Job.location), joinedload(Job.client), joinedload(Job.route_stop))
            .filter(Job.id.in_(job_ids), Job.org_id == org_id)
            .all()
        )
        by_id = {job.id: job for job in jobs}
        return [by_id[job_id] for job_id in dict.fromkeys(job_ids) if job_id in by_id]

    @staticmethod
    def get_job(db: Session, job_id: str, org_id: str) -> Optional[Job]:
        return (
            db.query(Job)
            .options(joinedload(Job.route_stop))
            .filter(Job.id == job_id, Job.org_id == org_id)
            .first()
        )

    @staticmethod
    def get_stop(db: Session, route_id: str, stop_id: str) -> Optional[RouteStop]:
        return (
            db.query(RouteStop)
            .filter(RouteStop.route_id == route_id, RouteStop.id == stop_id)
            .first()
        )

    @staticmethod
    def get_stop_by_job(db: Session, route_id: str, job_id: str) -> Optional[RouteStop]:
        return (
            db.query(RouteStop)
            .filter(RouteStop.route_id == route_id, RouteStop.job_id == job_id)
            .first()
        )

    @staticmethod
    def get_org_user(db: Session, user_id: str, org_id: str) -> Optional[User]:
        return (
            db.query(User)
            .filter(User.id == user_id, User.org_id == org_id, User.is_active.is_(True))
            .first()
        )
