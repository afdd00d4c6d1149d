"""Pydantic schemas for API request/response models."""
from .check import (
    CheckResultResponse,
    ManualCheckResponse,
    CheckSummary,
    HistoryBucket,
    ServiceCheckSummary,
    CheckResultList,
    CheckSummaryEnvelope,
    HistoryList,
    PageSummaryList,
)

__all__ = [
    "CheckResultResponse",
    "ManualCheckResponse",
    "CheckSummary",
    "HistoryBucket",
    "ServiceCheckSummary",
    "CheckResultList",
    "CheckSummaryEnvelope",
    "HistoryList",
    "PageSummaryList",
]
