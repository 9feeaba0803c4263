"""Scheduling schemas - Pydantic models for job generation and subscription status"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import SUBSCRIPTION_STATUSES


class GenerateJobsRequest(BaseModel):
    """Body of the nightly generation call; every field is optional"""

    daysAhead: Optional[int] = None
    orgId: Optional[str] = None


class GenerateJobsResponse(BaseModel):
    success: bool = True
    message: str
    generated: int
    skipped: int
    existing: int
    errors: int
    subscriptionsProcessed: int
    daysAhead: int


class SubscriptionStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        v = v.upper()
        if v not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"status must be one of {', '.join(SUBSCRIPTION_STATUSES)}")
        return v


class SubscriptionStatusResponse(BaseModel):
    success: bool = True
    id: str
    status: str
    previousStatus: str
    jobsVoided: int
    jobsGenerated: int
