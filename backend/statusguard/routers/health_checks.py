"""Health-check API - manual trigger, check history and metrics."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..errors import ServiceNotFoundError, StorageError
from ..schemas.check import (
    CheckResultList,
    CheckResultResponse,
    CheckSummary,
    CheckSummaryEnvelope,
    HistoryBucket,
    HistoryList,
    ManualCheckResponse,
    PageSummaryList,
    ServiceCheckSummary,
)
from ..services.result_store import ResultStore
from ..services.scheduler import SchedulerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health-checks", tags=["health-checks"])


def get_scheduler(request: Request) -> SchedulerService:
    return request.app.state.scheduler


def get_result_store(request: Request) -> ResultStore:
    return request.app.state.result_store


@router.post("/{service_id}/check", response_model=ManualCheckResponse)
async def trigger_check(service_id: str, scheduler: SchedulerService = Depends(get_scheduler)):
    """Run a health check for one service now."""
    try:
        result = await scheduler.run_single_check(service_id)
    except ServiceNotFoundError:
        raise HTTPException(status_code=404, detail="Service not found")
    except StorageError as e:
        logger.error(f"Error triggering manual health check: {e}")
        raise HTTPException(status_code=500, detail="Failed to perform health check")

    return ManualCheckResponse(
        service_id=result.service_id,
        is_up=result.success,
        latency_ms=result.latency_ms,
        status_code=result.status_code,
        error=result.error,
        timestamp=result.checked_at,
    )


@router.get("/page/{status_page_id}/summary", response_model=PageSummaryList)
async def get_page_summary(
    status_page_id: str,
    hours: int = Query(24, ge=1, le=24 * 90),
    store: ResultStore = Depends(get_result_store),
):
    """Per-service availability for every service on a status page."""
    try:
        rows = await store.page_summary(status_page_id, hours)
    except StorageError as e:
        logger.error(f"Error fetching page health summary: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch page health")
    return PageSummaryList(data=[ServiceCheckSummary(**row) for row in rows])


@router.get("/{service_id}", response_model=CheckResultList)
async def list_checks(
    service_id: str,
    hours: int = Query(24, ge=1, le=24 * 90),
    limit: int = Query(100, ge=1, le=1000),
    store: ResultStore = Depends(get_result_store),
):
    """Recent checks for a service, newest first."""
    try:
        results = await store.results_since(service_id, hours, limit)
    except StorageError as e:
        logger.error(f"Error fetching health checks: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch health checks")
    return CheckResultList(data=[CheckResultResponse.model_validate(r) for r in results])


@router.get("/{service_id}/summary", response_model=CheckSummaryEnvelope)
async def get_summary(
    service_id: str,
    hours: int = Query(24, ge=1, le=24 * 90),
    store: ResultStore = Depends(get_result_store),
):
    """Availability and latency percentiles for a service."""
    try:
        summary = await store.summary(service_id, hours)
    except StorageError as e:
        logger.error(f"Error fetching health check summary: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch summary")
    return CheckSummaryEnvelope(data=CheckSummary(**summary))


@router.get("/{service_id}/history", response_model=HistoryList)
async def get_history(
    service_id: str,
    hours: int = Query(24, ge=1, le=24 * 90),
    bucket_minutes: int = Query(5, ge=1, le=60),
    store: ResultStore = Depends(get_result_store),
):
    """Check history aggregated into fixed time buckets."""
    if 60 % bucket_minutes:
        raise HTTPException(status_code=422, detail="bucket_minutes must divide 60")
    try:
        buckets = await store.history(service_id, hours, bucket_minutes)
    except StorageError as e:
        logger.error(f"Error fetching check history: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch history")
    return HistoryList(data=[HistoryBucket(**b) for b in buckets])
