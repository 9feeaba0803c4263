"""Routing service - Business logic for routes, stops and ZIP-based optimization"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import User
from ...models_route import ROUTE_STATUSES, Job, Route, RouteStop
from .assignment import RouteAssignmentWriter, RouteLockedError, sorted_stops
from .repository import RouteRepository
from .schemas import (
    OptimizeResponse,
    OptimizeRouteRequest,
    PreviewResponse,
    PreviewStop,
    RouteCreate,
    RouteResponse,
    RouteUpdate,
    StopCreate,
    StopResponse,
)
from .sequencer import optimize_stop_order

logger = logging.getLogger(__name__)


def _client_name(job: Optional[Job]) -> Optional[str]:
    client = job.client if job else None
    if not client:
        return None
    return " ".join(part for part in (client.first_name, client.last_name) if part)


def serialize_stop(stop: RouteStop) -> StopResponse:
    job = stop.job
    location = job.location if job else None
    return StopResponse(
        id=stop.id,
        jobId=stop.job_id,
        stopOrder=stop.stop_order,
        estimatedArrival=stop.estimated_arrival,
        actualArrival=stop.actual_arrival,
        jobStatus=job.status if job else None,
        clientName=_client_name(job),
        address=location.address_line1 if location else None,
        city=location.city if location else None,
        zipCode=location.zip_code if location else None,
        gateCode=location.gate_code if location else None,
    )


def serialize_route(route: Route, include_stops: bool = True) -> RouteResponse:
    stops = sorted_stops(route)
    return RouteResponse(
        id=route.id,
        date=route.route_date,
        name=route.name,
        status=route.status,
        assignedTo=route.assigned_to,
        notes=route.notes,
        startTime=route.start_time,
        endTime=route.end_time,
        stopCount=len(stops),
        stops=[serialize_stop(s) for s in stops] if include_stops else [],
    )


class RouteService:
    """Service layer for route planning"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RouteRepository()
        self.writer = RouteAssignmentWriter(db)

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize(self, data: OptimizeRouteRequest, user: User) -> tuple[OptimizeResponse, int]:
        """Returns the response body and its status code (201 when a route was created)"""
        if data.routeId:
            return self.optimize_existing(data.routeId, user), 200
        return self.create_optimized_route(data, user), 201

    def optimize_existing(self, route_id: str, user: User) -> OptimizeResponse:
        route = self.get_route(route_id, user)
        if route.status == "COMPLETED":
            raise HTTPException(status_code=400, detail="Cannot optimize a completed route")

        stops = sorted_stops(route)
        if not stops:
            return OptimizeResponse(message="No stops to optimize", route=serialize_route(route))

        ordered = optimize_stop_order([stop.job for stop in stops])
        try:
            self.writer.apply_order(route, [job.id for job in ordered])
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error optimizing route {route_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update route stops")

        logger.info(f"🧭 Optimized {len(stops)} stops on route {route_id}")
        self.db.refresh(route)
        return OptimizeResponse(
            message=f"Optimized {len(stops)} stops by ZIP code", route=serialize_route(route)
        )

    def create_optimized_route(self, data: OptimizeRouteRequest, user: User) -> OptimizeResponse:
        if not data.jobIds:
            raise HTTPException(status_code=400, detail="At least one job ID is required")

        jobs = self.repo.get_jobs_with_locations(self.db, user.org_id, data.jobIds)
        if not jobs:
            raise HTTPException(status_code=404, detail="No valid jobs found")

        for job in jobs:
            self._check_routable(job, data.date)
        if data.assignedTo:
            self._check_assignee(data.assignedTo, user)

        ordered = optimize_stop_order(jobs)
        try:
            route = Route(
                org_id=user.org_id,
                route_date=data.date,
                name=data.name or f"Optimized Route - {data.date.isoformat()}",
                assigned_to=data.assignedTo,
                status="PLANNED",
            )
            self.db.add(route)
            self.writer.populate(route, ordered)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error creating optimized route: {e}")
            raise HTTPException(status_code=500, detail="Failed to create route")

        logger.info(f"🧭 Created optimized route {route.id} with {len(ordered)} stops")
        self.db.refresh(route)
        return OptimizeResponse(
            message=f"Created optimized route with {len(ordered)} stops",
            route=serialize_route(route),
        )

    def preview(self, job_ids: list[str], user: User) -> PreviewResponse:
        """Dry-run ordering; nothing is written"""
        if not job_ids:
            raise HTTPException(status_code=400, detail="jobIds query parameter is required")

        jobs = self.repo.get_jobs_with_locations(self.db, user.org_id, job_ids)
        if not jobs:
            raise HTTPException(status_code=404, detail="No valid jobs found")

        ordered = optimize_stop_order(jobs)
        return PreviewResponse(
            stops=[
                PreviewStop(
                    jobId=job.id,
                    order=index,
                    clientName=_client_name(job),
                    address=job.location.address_line1 if job.location else None,
                    zipCode=job.location.zip_code if job.location else None,
                )
                for index, job in enumerate(ordered, start=1)
            ]
        )

    # ------------------------------------------------------------------
    # Route CRUD
    # ------------------------------------------------------------------

    def list_routes(
        self,
        user: User,
        route_date=None,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> list[Route]:
        return self.repo.list_routes(self.db, user.org_id, route_date, status, assigned_to)

    def get_route(self, route_id: str, user: User) -> Route:
        route = self.repo.get_route(self.db, route_id, user.org_id)
        if not route:
            raise HTTPException(status_code=404, detail="Route not found")
        return route

    def create_route(self, data: RouteCreate, user: User) -> Route:
        if data.assignedTo:
            self._check_assignee(data.assignedTo, user)
        logger.info(f"📥 Creating route for {data.date} in org {user.org_id}")
        return self.repo.create_route(
            self.db,
            user.org_id,
            route_date=data.date,
            name=data.name,
            assigned_to=data.assignedTo,
            notes=data.notes,
            status="PLANNED",
        )

    def update_route(self, route_id: str, data: RouteUpdate, user: User) -> Route:
        route = self.get_route(route_id, user)

        if data.status is not None and data.status != route.status:
            current = ROUTE_STATUSES.index(route.status)
            target = ROUTE_STATUSES.index(data.status)
            if target < current:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot move route from {route.status} back to {data.status}",
                )
            route.status = data.status
            if data.status == "IN_PROGRESS" and not route.start_time:
                route.start_time = datetime.utcnow()
            if data.status == "COMPLETED":
                route.start_time = route.start_time or datetime.utcnow()
                route.end_time = datetime.utcnow()

        if data.assignedTo is not None:
            if data.assignedTo:
                self._check_assignee(data.assignedTo, user)
            route.assigned_to = data.assignedTo or None
        if data.name is not None:
            route.name = data.name
        if data.notes is not None:
            route.notes = data.notes

        self.db.commit()
        self.db.refresh(route)
        return route

    def delete_route(self, route_id: str, user: User) -> None:
        """Delete a route; its stops go with it and the jobs become unassigned"""
        route = self.get_route(route_id, user)
        if route.status == "IN_PROGRESS":
            raise HTTPException(
                status_code=400, detail="Cannot delete a route that is in progress"
            )
        stop_count = len(route.stops)
        self.db.delete(route)
        self.db.commit()
        logger.info(f"🗑️ Deleted route {route_id} ({stop_count} jobs unassigned)")

    # ------------------------------------------------------------------
    # Stops
    # ------------------------------------------------------------------

    def add_stop(self, route_id: str, data: StopCreate, user: User) -> RouteStop:
        route = self.get_route(route_id, user)
        job = self.repo.get_job(self.db, data.jobId, user.org_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        self._check_routable(job, route.route_date)

        try:
            return self.writer.insert_stop(route, job, data.stopOrder, data.estimatedArrival)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def reorder_stops(self, route_id: str, stop_ids: list[str], user: User) -> Route:
        if not stop_ids:
            raise HTTPException(status_code=400, detail="stopIds is required")
        route = self.get_route(route_id, user)

        unknown = set(stop_ids) - {stop.id for stop in route.stops}
        if unknown:
            raise HTTPException(status_code=400, detail="Stop does not belong to this route")

        try:
            self.writer.reorder_stops(route, stop_ids)
        except RouteLockedError as e:
            raise HTTPException(status_code=400, detail=str(e))
        self.db.refresh(route)
        return route

    def remove_stop(
        self, route_id: str, user: User, stop_id: Optional[str] = None, job_id: Optional[str] = None
    ) -> None:
        if not stop_id and not job_id:
            raise HTTPException(status_code=400, detail="stopId or jobId is required")
        route = self.get_route(route_id, user)

        if stop_id:
            stop = self.repo.get_stop(self.db, route.id, stop_id)
        else:
            stop = self.repo.get_stop_by_job(self.db, route.id, job_id)
        if not stop:
            raise HTTPException(status_code=404, detail="Stop not found")

        try:
            self.writer.remove_stop(route, stop)
        except RouteLockedError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Error removing stop from route {route_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to remove stop from route")

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_routable(self, job: Job, route_date) -> None:
        if job.scheduled_date != route_date:
            raise HTTPException(status_code=400, detail="Job date does not match route date")
        if job.route_stop is not None:
            raise HTTPException(
                status_code=400, detail="Job is already assigned to another route"
            )
        if job.status in ("CANCELED", "COMPLETED"):
            raise HTTPException(
                status_code=400, detail=f"Cannot route a job that is {job.status.lower()}"
            )

    def _check_assignee(self, user_id: str, user: User) -> None:
        if not self.repo.get_org_user(self.db, user_id, user.org_id):
            raise HTTPException(status_code=400, detail="Assigned user not found")
