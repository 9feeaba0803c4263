"""Job schemas - Pydantic models for job requests and responses"""

import datetime as dt
from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models_route import JOB_STATUSES


def _check_status(v):
    if v is None:
        return v
    v = v.upper()
    if v not in JOB_STATUSES:
        raise ValueError(f"status must be one of {', '.join(JOB_STATUSES)}")
    return v


class JobCreate(BaseModel):
    """Ad hoc job outside any subscription"""

    clientId: str
    locationId: str
    scheduledDate: dt.date
    scheduledTimeStart: Optional[time] = None
    scheduledTimeEnd: Optional[time] = None
    assignedTo: Optional[str] = None
    status: Optional[str] = None
    priceCents: int = 0
    notes: Optional[str] = None
    internalNotes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)

    @field_validator("priceCents")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("priceCents cannot be negative")
        return v


class JobUpdate(BaseModel):
    status: Optional[str] = None
    skipReason: Optional[str] = None
    assignedTo: Optional[str] = None
    scheduledDate: Optional[dt.date] = None
    scheduledTimeStart: Optional[time] = None
    scheduledTimeEnd: Optional[time] = None
    priceCents: Optional[int] = None
    notes: Optional[str] = None
    internalNotes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class JobResponse(BaseModel):
    id: str
    subscriptionId: Optional[str] = None
    clientId: str
    locationId: str
    clientName: Optional[str] = None
    address: Optional[str] = None
    zipCode: Optional[str] = None
    assignedTo: Optional[str] = None
    scheduledDate: dt.date
    scheduledTimeStart: Optional[time] = None
    scheduledTimeEnd: Optional[time] = None
    status: str
    skipReason: Optional[str] = None
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    durationMinutes: Optional[int] = None
    priceCents: int
    notes: Optional[str] = None
    internalNotes: Optional[str] = None
    routeId: Optional[str] = None
    routeOrder: Optional[int] = None
    metadata: dict = {}
    createdAt: Optional[datetime] = None
