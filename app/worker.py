"""
ARQ Background Worker
Runs the nightly job generation outside the web process
"""

import logging
import os
from dataclasses import asdict
from datetime import date
from typing import Optional

from arq.connections import RedisSettings
from arq.cron import cron

# Import all model files to ensure all models are registered
from . import models  # noqa: F401
from . import models_route  # noqa: F401
from .config import JOBS_CRON_HOUR, JOBS_CRON_MINUTE, settings
from .database import SessionLocal
from .domain.scheduling.materializer import JobMaterializer, resolve_days_ahead
from .domain.scheduling.service_days import ServiceDayRules

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """Redis connection for the worker, from REDIS_URL (rediss:// for TLS)"""
    return RedisSettings.from_dsn(os.getenv("REDIS_URL", "redis://localhost:6379"))


async def generate_jobs_task(
    ctx, days_ahead: Optional[int] = None, org_id: Optional[str] = None, today: Optional[date] = None
):
    """
    Nightly cron job that materializes upcoming jobs for every organization.
    Can also be enqueued by hand with a custom horizon or a single org.
    """
    horizon = resolve_days_ahead(days_ahead, settings.default_days_ahead, settings.max_days_ahead)
    logger.info(f"🌙 Starting nightly job generation ({horizon} days ahead)")

    db = SessionLocal()
    try:
        materializer = JobMaterializer(db, ServiceDayRules.from_settings(settings))
        result = materializer.run(horizon, today=today, org_id=org_id)
        return asdict(result)
    except Exception as e:
        logger.error(f"❌ Nightly job generation failed: {str(e)}")
        raise
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [generate_jobs_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "600"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))
    health_check_interval = 60
    max_tries = 3

    cron_jobs = [
        cron(generate_jobs_task, hour=JOBS_CRON_HOUR, minute=JOBS_CRON_MINUTE),
    ]

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")
