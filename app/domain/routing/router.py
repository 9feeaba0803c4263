"""Routing router - FastAPI endpoints for route planning and stop management"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import User
from .schemas import (
    OptimizeResponse,
    OptimizeRouteRequest,
    PreviewResponse,
    RouteCreate,
    RouteResponse,
    RouteUpdate,
    StopCreate,
    StopReorder,
    StopResponse,
)
from .service import RouteService, serialize_route, serialize_stop

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/routes", tags=["Routes"])


def get_route_service(db: Session = Depends(get_db)) -> RouteService:
    """Dependency injection for RouteService"""
    return RouteService(db)


# ============================================================================
# OPTIMIZATION
# ============================================================================


@router.post("/optimize", response_model=OptimizeResponse)
async def optimize_route(
    data: OptimizeRouteRequest,
    response: Response,
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    """Re-sequence an existing route, or create a route from jobs in ZIP order"""
    result, status_code = service.optimize(data, current_user)
    response.status_code = status_code
    return result


@router.get("/optimize/preview", response_model=PreviewResponse)
async def preview_route(
    jobIds: str = Query(..., description="Comma-separated job ids"),
    current_user: User = Depends(require_permission("routes:read")),
    service: RouteService = Depends(get_route_service),
):
    """Show the optimized order for a set of jobs without saving anything"""
    job_ids = [job_id.strip() for job_id in jobIds.split(",") if job_id.strip()]
    return service.preview(job_ids, current_user)


# ============================================================================
# ROUTE CRUD
# ============================================================================


@router.get("", response_model=list[RouteResponse])
async def list_routes(
    date: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
    assignedTo: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("routes:read")),
    service: RouteService = Depends(get_route_service),
):
    routes = service.list_routes(current_user, date, status, assignedTo)
    return [serialize_route(r, include_stops=False) for r in routes]


@router.post("", response_model=RouteResponse, status_code=201)
async def create_route(
    data: RouteCreate,
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    return serialize_route(service.create_route(data, current_user))


@router.get("/{route_id}", response_model=RouteResponse)
async def get_route(
    route_id: str,
    current_user: User = Depends(require_permission("routes:read")),
    service: RouteService = Depends(get_route_service),
):
    return serialize_route(service.get_route(route_id, current_user))


@router.put("/{route_id}", response_model=RouteResponse)
async def update_route(
    route_id: str,
    data: RouteUpdate,
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    """Update route details; status only moves forward"""
    return serialize_route(service.update_route(route_id, data, current_user))


@router.delete("/{route_id}")
async def delete_route(
    route_id: str,
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    service.delete_route(route_id, current_user)
    return {"success": True, "message": "Route deleted"}


# ============================================================================
# STOPS
# ============================================================================


@router.get("/{route_id}/stops", response_model=list[StopResponse])
async def list_stops(
    route_id: str,
    current_user: User = Depends(require_permission("routes:read")),
    service: RouteService = Depends(get_route_service),
):
    return serialize_route(service.get_route(route_id, current_user)).stops


@router.post("/{route_id}/stops", response_model=StopResponse, status_code=201)
async def add_stop(
    route_id: str,
    data: StopCreate,
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    """Add a job to the route, optionally at a given position"""
    return serialize_stop(service.add_stop(route_id, data, current_user))


@router.put("/{route_id}/stops", response_model=list[StopResponse])
async def reorder_stops(
    route_id: str,
    data: StopReorder,
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    return serialize_route(service.reorder_stops(route_id, data.stopIds, current_user)).stops


@router.delete("/{route_id}/stops")
async def remove_stop(
    route_id: str,
    stopId: Optional[str] = Query(None),
    jobId: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("routes:write")),
    service: RouteService = Depends(get_route_service),
):
    service.remove_stop(route_id, current_user, stop_id=stopId, job_id=jobId)
    return {"success": True, "message": "Stop removed"}
