"""Job service - Business logic for ad hoc jobs and the job status workflow"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User
from ...models_route import Job
from ...rbac import has_permission
from ..routing.assignment import RouteAssignmentWriter, RouteLockedError, ensure_route_editable
from ..routing.repository import RouteRepository
from .repository import JobRepository
from .schemas import JobCreate, JobResponse, JobUpdate

logger = logging.getLogger(__name__)

# COMPLETED is terminal
ALLOWED_TRANSITIONS = {
    "SCHEDULED": {"EN_ROUTE", "IN_PROGRESS", "COMPLETED", "SKIPPED", "CANCELED"},
    "EN_ROUTE": {"IN_PROGRESS", "SKIPPED", "CANCELED", "SCHEDULED"},
    "IN_PROGRESS": {"COMPLETED", "SKIPPED"},
    "SKIPPED": {"SCHEDULED"},
    "CANCELED": {"SCHEDULED"},
    "COMPLETED": set(),
}

# Fields a crew member holding only jobs:complete may change
FIELD_UPDATABLE = {"status", "skipReason", "notes"}


def can_transition(current: str, target: str) -> bool:
    return target == current or target in ALLOWED_TRANSITIONS.get(current, set())


def apply_status(job: Job, target: str, now: Optional[datetime] = None) -> None:
    """Move ``job`` to ``target``, stamping work timestamps on the way"""
    if not can_transition(job.status, target):
        raise ValueError(f"Cannot change job status from {job.status} to {target}")

    now = now or datetime.utcnow()
    if target == "IN_PROGRESS" and not job.started_at:
        job.started_at = now
    if target == "COMPLETED" and job.status != "COMPLETED":
        job.completed_at = now
        if job.started_at:
            job.duration_minutes = round((now - job.started_at).total_seconds() / 60)
    if target == "SCHEDULED":
        job.skip_reason = None
    job.status = target


def serialize_job(job: Job) -> JobResponse:
    client = job.client
    location = job.location
    return JobResponse(
        id=job.id,
        subscriptionId=job.subscription_id,
        clientId=job.client_id,
        locationId=job.location_id,
        clientName=(
            " ".join(p for p in (client.first_name, client.last_name) if p) if client else None
        ),
        address=location.address_line1 if location else None,
        zipCode=location.zip_code if location else None,
        assignedTo=job.assigned_to,
        scheduledDate=job.scheduled_date,
        scheduledTimeStart=job.scheduled_time_start,
        scheduledTimeEnd=job.scheduled_time_end,
        status=job.status,
        skipReason=job.skip_reason,
        startedAt=job.started_at,
        completedAt=job.completed_at,
        durationMinutes=job.duration_minutes,
        priceCents=job.price_cents,
        notes=job.notes,
        internalNotes=job.internal_notes,
        routeId=job.route_id,
        routeOrder=job.route_order,
        metadata=job.job_metadata or {},
        createdAt=job.created_at,
    )


class JobService:
    """Service layer for job operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()
        self.writer = RouteAssignmentWriter(db)

    def list_jobs(self, user: User, **filters) -> list[Job]:
        return self.repo.list_jobs(self.db, user.org_id, **filters)

    def get_job(self, job_id: str, user: User) -> Job:
        job = self.repo.get_job(self.db, job_id, user.org_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def create_job(self, data: JobCreate, user: User) -> Job:
        client = self.repo.get_client(self.db, data.clientId, user.org_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        location = self.repo.get_client_location(self.db, data.locationId, client.id)
        if not location:
            raise HTTPException(
                status_code=404, detail="Location not found or does not belong to client"
            )
        if data.assignedTo:
            self._check_assignee(data.assignedTo, user)

        logger.info(f"📥 Creating ad hoc job for client {client.id} on {data.scheduledDate}")
        return self.repo.create_job(
            self.db,
            org_id=user.org_id,
            client_id=client.id,
            location_id=location.id,
            scheduled_date=data.scheduledDate,
            scheduled_time_start=data.scheduledTimeStart,
            scheduled_time_end=data.scheduledTimeEnd,
            assigned_to=data.assignedTo,
            status=data.status or "SCHEDULED",
            price_cents=data.priceCents,
            notes=data.notes,
            internal_notes=data.internalNotes,
            job_metadata={"generated_by": "manual", "created_by": user.id},
        )

    def update_job(self, job_id: str, data: JobUpdate, user: User) -> Job:
        job = self.get_job(job_id, user)
        provided = data.model_dump(exclude_unset=True)

        if not has_permission(user.role, "jobs:write"):
            restricted = set(provided) - FIELD_UPDATABLE
            if restricted:
                raise HTTPException(
                    status_code=403,
                    detail=f"Insufficient permissions to update: {', '.join(sorted(restricted))}",
                )

        leaves_route = data.status in ("SKIPPED", "CANCELED") or (
            data.scheduledDate is not None and data.scheduledDate != job.scheduled_date
        )
        if leaves_route:
            self._ensure_route_editable(job)

        if data.status is not None:
            try:
                apply_status(job, data.status)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            if data.status in ("SKIPPED", "CANCELED") and job.route_stop is not None:
                self.writer.detach_jobs([job], commit=False)

        if "skipReason" in provided:
            job.skip_reason = data.skipReason
        if "assignedTo" in provided:
            if data.assignedTo:
                self._check_assignee(data.assignedTo, user)
            job.assigned_to = data.assignedTo or None
        if data.scheduledDate is not None and data.scheduledDate != job.scheduled_date:
            # A stop belongs to one day's route
            if job.route_stop is not None:
                self.writer.detach_jobs([job], commit=False)
            job.scheduled_date = data.scheduledDate
        if "scheduledTimeStart" in provided:
            job.scheduled_time_start = data.scheduledTimeStart
        if "scheduledTimeEnd" in provided:
            job.scheduled_time_end = data.scheduledTimeEnd
        if data.priceCents is not None:
            job.price_cents = data.priceCents
        if "notes" in provided:
            job.notes = data.notes
        if "internalNotes" in provided:
            job.internal_notes = data.internalNotes

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=400,
                detail="A job already exists for this subscription on that date",
            )
        self.db.refresh(job)
        logger.info(f"✏️ Job {job_id} updated by {user.email}")
        return job

    def delete_job(self, job_id: str, user: User, hard: bool = False) -> None:
        """Cancel a job (or remove it outright with ``hard``); it always leaves its route"""
        job = self.get_job(job_id, user)
        if job.status == "COMPLETED":
            raise HTTPException(status_code=400, detail="Cannot delete completed jobs")
        self._ensure_route_editable(job)

        self.writer.detach_jobs([job], commit=False)
        if hard:
            self.db.flush()
            self.db.expire(job, ["route_stop"])
            self.db.delete(job)
        else:
            job.status = "CANCELED"
        self.db.commit()
        logger.info(f"🗑️ Job {job_id} {'deleted' if hard else 'canceled'} by {user.email}")

    def _ensure_route_editable(self, job: Job) -> None:
        if job.route_stop is None:
            return
        try:
            ensure_route_editable(job.route_stop.route)
        except RouteLockedError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def _check_assignee(self, user_id: str, user: User) -> None:
        if not RouteRepository.get_org_user(self.db, user_id, user.org_id):
            raise HTTPException(status_code=400, detail="Assigned user not found")
