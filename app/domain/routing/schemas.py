"""Routing domain schemas - Pydantic models for routes, stops and optimization"""

import datetime as dt
from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models_route import ROUTE_STATUSES


class OptimizeRouteRequest(BaseModel):
    """Either re-sequence an existing route or build a new one from jobs"""

    routeId: Optional[str] = None
    date: Optional[dt.date] = None
    jobIds: Optional[list[str]] = None
    name: Optional[str] = None
    assignedTo: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if not self.routeId and self.date is None:
            raise ValueError("Either routeId or date with jobIds is required")
        return self


class RouteCreate(BaseModel):
    date: dt.date
    name: Optional[str] = None
    assignedTo: Optional[str] = None
    notes: Optional[str] = None


class RouteUpdate(BaseModel):
    name: Optional[str] = None
    assignedTo: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in ROUTE_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ROUTE_STATUSES)}")
        return v


class StopCreate(BaseModel):
    jobId: str
    stopOrder: Optional[int] = None
    estimatedArrival: Optional[time] = None

    @field_validator("stopOrder")
    @classmethod
    def validate_stop_order(cls, v):
        if v is not None and v < 1:
            raise ValueError("stopOrder must be 1 or greater")
        return v


class StopReorder(BaseModel):
    """Stop ids in their new order"""

    stopIds: list[str]


class StopResponse(BaseModel):
    id: str
    jobId: str
    stopOrder: int
    estimatedArrival: Optional[time] = None
    actualArrival: Optional[datetime] = None
    jobStatus: Optional[str] = None
    clientName: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zipCode: Optional[str] = None
    gateCode: Optional[str] = None


class RouteResponse(BaseModel):
    id: str
    date: dt.date
    name: Optional[str] = None
    status: str
    assignedTo: Optional[str] = None
    notes: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    stopCount: int = 0
    stops: list[StopResponse] = []


class OptimizeResponse(BaseModel):
    success: bool = True
    message: str
    route: Optional[RouteResponse] = None


class PreviewStop(BaseModel):
    jobId: str
    order: int
    clientName: Optional[str] = None
    address: Optional[str] = None
    zipCode: Optional[str] = None


class PreviewResponse(BaseModel):
    success: bool = True
    stops: list[PreviewStop]
