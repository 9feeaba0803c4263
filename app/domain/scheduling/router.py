"""Scheduling router - Job generation trigger and subscription status endpoints"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_optional_user, require_permission
from ...config import Settings, get_settings
from ...database import get_db
from ...models import User
from ...rbac import has_permission
from .schemas import (
    GenerateJobsRequest,
    GenerateJobsResponse,
    SubscriptionStatusResponse,
    SubscriptionStatusUpdate,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_scheduling_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db, settings)


def _cron_secret_matches(provided: Optional[str], settings: Settings) -> bool:
    if not provided or not settings.cron_secret:
        return False
    return hmac.compare_digest(provided.encode(), settings.cron_secret.encode())


def _generate(
    days_ahead: Optional[int],
    org_id: Optional[str],
    x_cron_secret: Optional[str],
    user: Optional[User],
    settings: Settings,
    service: SchedulingService,
) -> GenerateJobsResponse:
    if _cron_secret_matches(x_cron_secret, settings):
        logger.info("🔑 Job generation triggered with cron secret")
    else:
        if user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        if not has_permission(user.role, "jobs:write"):
            raise HTTPException(status_code=403, detail="Forbidden: Insufficient permissions")
        if org_id and org_id != user.org_id:
            raise HTTPException(
                status_code=403, detail="Cannot generate jobs for another organization"
            )
        org_id = user.org_id
        logger.info(f"👤 Job generation triggered by {user.email}")

    days = service.resolve_days_ahead(days_ahead)
    result = service.generate_jobs(days, org_id=org_id)

    return GenerateJobsResponse(
        message=f"Generated {result.created} jobs for the next {days} days",
        generated=result.created,
        skipped=result.skipped,
        existing=result.existing,
        errors=result.errors,
        subscriptionsProcessed=result.subscriptions_processed,
        daysAhead=days,
    )


@router.post("/api/v2/cron/generate-jobs", response_model=GenerateJobsResponse)
async def generate_jobs(
    data: Optional[GenerateJobsRequest] = Body(None),
    x_cron_secret: Optional[str] = Header(None),
    user: Optional[User] = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Create upcoming jobs from active subscriptions (nightly cron or manual run)"""
    data = data or GenerateJobsRequest()
    return _generate(data.daysAhead, data.orgId, x_cron_secret, user, settings, service)


@router.get("/api/v2/cron/generate-jobs", response_model=GenerateJobsResponse)
async def generate_jobs_get(
    daysAhead: Optional[int] = Query(None),
    orgId: Optional[str] = Query(None),
    x_cron_secret: Optional[str] = Header(None),
    user: Optional[User] = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Same as POST, for schedulers that can only issue GET requests"""
    return _generate(daysAhead, orgId, x_cron_secret, user, settings, service)


@router.patch("/api/admin/subscriptions/{subscription_id}/status", response_model=SubscriptionStatusResponse)
async def update_subscription_status(
    subscription_id: str,
    data: SubscriptionStatusUpdate,
    current_user: User = Depends(require_permission("subscriptions:write")),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Pause, cancel or reactivate a subscription and keep its jobs in step"""
    subscription, old_status, result = service.change_subscription_status(
        subscription_id, data, current_user
    )
    return SubscriptionStatusResponse(
        id=subscription.id,
        status=subscription.status,
        previousStatus=old_status,
        jobsVoided=result["voided"],
        jobsGenerated=result["generated"],
    )
