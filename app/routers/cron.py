"""
Cron Router - déclenchement planifié (scheduler externe) des synchros marché.
Endpoints: /v1/cron/*
"""
from rq import Queue
import redis
from fastapi import APIRouter, Depends, Query

from app.core.auth import verify_cron_secret
from app.core.config import REDIS_URL
from app.core.logging import get_logger
from app.jobs_market import refresh_market_latest, sync_portfolio_market_data

router = APIRouter(prefix="/v1/cron", tags=["cron"])
logger = get_logger(__name__)

redis_conn = redis.from_url(REDIS_URL)
queue_default = Queue("default", connection=redis_conn)


def get_queue() -> Queue:
    return queue_default


@router.post("/market-sync", dependencies=[Depends(verify_cron_secret)])
def trigger_market_sync(
    stale_hours: int = Query(6, ge=1, le=168),
    limit: int = Query(50, ge=1, le=500),
    currency_code: str = Query("GBP", min_length=3, max_length=3),
    queue: Queue = Depends(get_queue),
):
    sync_job = queue.enqueue(
        sync_portfolio_market_data,
        stale_hours=stale_hours,
        limit=limit,
        currency_code=currency_code.upper(),
        job_timeout=1800,
    )
    logger.info("Market sync enqueued", job_id=sync_job.id)
    return {"success": True, "job_id": sync_job.id}


@router.post("/market-latest-refresh", dependencies=[Depends(verify_cron_secret)])
def trigger_latest_refresh(queue: Queue = Depends(get_queue)):
    job = queue.enqueue(refresh_market_latest, job_timeout=600)
    logger.info("Latest refresh enqueued", job_id=job.id)
    return {"success": True, "job_id": job.id}
