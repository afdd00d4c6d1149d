"""Health-check schemas for API."""
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, PlainSerializer

from ..utils.time_utils import isoformat_utc

# Stored timestamps are naive UTC; clients get an explicit Z suffix
UTCDateTime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=str, when_used="json")]


class CheckResultResponse(BaseModel):
    """A stored check result."""
    id: int
    service_id: str
    checked_at: UTCDateTime
    latency_ms: int
    is_up: bool
    status_code: Optional[int] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True


class ManualCheckResponse(BaseModel):
    """Outcome of a manually triggered check."""
    service_id: str
    is_up: bool
    latency_ms: int
    status_code: Optional[int] = None
    error: Optional[str] = None
    timestamp: UTCDateTime


class CheckSummary(BaseModel):
    """Availability and latency over a window."""
    total_checks: int
    successful_checks: int
    failed_checks: int
    availability_percent: Optional[float] = None
    avg_latency_ms: Optional[float] = None
    p95_latency_ms: Optional[float] = None
    p99_latency_ms: Optional[float] = None
    min_latency_ms: Optional[int] = None
    max_latency_ms: Optional[int] = None


class HistoryBucket(BaseModel):
    """Aggregated checks for one time bucket."""
    bucket: UTCDateTime
    check_count: int
    up_count: int
    availability_percent: Optional[float] = None
    avg_latency_ms: Optional[float] = None
    p95_latency_ms: Optional[float] = None


class ServiceCheckSummary(BaseModel):
    """Per-service totals on a status page."""
    service_id: str
    service_name: str
    total_checks: int
    successful_checks: int
    availability_percent: Optional[float] = None
    avg_latency_ms: Optional[float] = None


class CheckResultList(BaseModel):
    data: List[CheckResultResponse]


class CheckSummaryEnvelope(BaseModel):
    data: CheckSummary


class HistoryList(BaseModel):
    data: List[HistoryBucket]


class PageSummaryList(BaseModel):
    data: List[ServiceCheckSummary]
