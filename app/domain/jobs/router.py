"""Job router - FastAPI endpoints for job operations"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_any_permission, require_permission
from ...database import get_db
from ...models import User
from .schemas import JobCreate, JobResponse, JobUpdate
from .service import JobService, serialize_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/jobs", tags=["Jobs"])


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    """Dependency injection for JobService"""
    return JobService(db)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    date: Optional[date] = Query(None),
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    assignedTo: Optional[str] = Query(None),
    clientId: Optional[str] = Query(None),
    locationId: Optional[str] = Query(None),
    routeId: Optional[str] = Query(None),
    unassigned: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_permission("jobs:read")),
    service: JobService = Depends(get_job_service),
):
    """List jobs ordered by date and route position"""
    statuses = [s.strip().upper() for s in status.split(",") if s.strip()] if status else None
    jobs = service.list_jobs(
        current_user,
        on_date=date,
        start_date=startDate,
        end_date=endDate,
        statuses=statuses,
        assigned_to=assignedTo,
        client_id=clientId,
        location_id=locationId,
        route_id=routeId,
        unassigned=unassigned,
        limit=limit,
        offset=offset,
    )
    return [serialize_job(j) for j in jobs]


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    data: JobCreate,
    current_user: User = Depends(require_permission("jobs:write")),
    service: JobService = Depends(get_job_service),
):
    return serialize_job(service.create_job(data, current_user))


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    current_user: User = Depends(require_permission("jobs:read")),
    service: JobService = Depends(get_job_service),
):
    return serialize_job(service.get_job(job_id, current_user))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str,
    data: JobUpdate,
    current_user: User = Depends(require_any_permission("jobs:write", "jobs:complete")),
    service: JobService = Depends(get_job_service),
):
    """Update a job; crews with jobs:complete may only change status and notes"""
    return serialize_job(service.update_job(job_id, data, current_user))


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    hard: bool = Query(False),
    current_user: User = Depends(require_permission("jobs:write")),
    service: JobService = Depends(get_job_service),
):
    service.delete_job(job_id, current_user, hard=hard)
    return {"success": True}
