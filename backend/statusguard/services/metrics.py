"""Latency and availability aggregation over check results."""
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


def percentile(values: Sequence[float], fraction: float) -> Optional[float]:
    """Continuous percentile with linear interpolation (PERCENTILE_CONT)."""
    if not values:
        return None
    ordered = sorted(values)
    position = (len(ordered) - 1) * fraction
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return float(ordered[lower])
    weight = position - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * weight


def availability(total: int, up: int) -> Optional[float]:
    """Percentage of successful checks, or None when there are no checks."""
    if total == 0:
        return None
    return _round(100.0 * up / total)


def summarize(results: Sequence) -> Dict:
    """Summary of a window of check results.

    Returns counts, availability percent and avg/p95/p99/min/max latency.
    Latency figures are None when the window is empty.
    """
    latencies = [r.latency_ms for r in results]
    total = len(results)
    successful = sum(1 for r in results if r.is_up)
    return {
        "total_checks": total,
        "successful_checks": successful,
        "failed_checks": total - successful,
        "availability_percent": availability(total, successful),
        "avg_latency_ms": _round(sum(latencies) / total) if total else None,
        "p95_latency_ms": _round(percentile(latencies, 0.95)),
        "p99_latency_ms": _round(percentile(latencies, 0.99)),
        "min_latency_ms": min(latencies) if latencies else None,
        "max_latency_ms": max(latencies) if latencies else None,
    }


def bucket_start(timestamp: datetime, bucket_minutes: int) -> datetime:
    """Truncate a timestamp to the start of its bucket, aligned to the hour."""
    truncated = timestamp.replace(second=0, microsecond=0)
    return truncated - timedelta(minutes=truncated.minute % bucket_minutes)


def bucketize(results: Sequence, bucket_minutes: int) -> List[Dict]:
    """Group results into fixed-width time buckets, newest bucket first."""
    if bucket_minutes < 1 or 60 % bucket_minutes:
        raise ValueError("bucket_minutes must be a divisor of 60")

    buckets: Dict[datetime, List] = {}
    for result in results:
        buckets.setdefault(bucket_start(result.checked_at, bucket_minutes), []).append(result)

    history = []
    for start in sorted(buckets, reverse=True):
        members = buckets[start]
        latencies = [r.latency_ms for r in members]
        up_count = sum(1 for r in members if r.is_up)
        history.append({
            "bucket": start,
            "check_count": len(members),
            "up_count": up_count,
            "availability_percent": availability(len(members), up_count),
            "avg_latency_ms": _round(sum(latencies) / len(latencies)),
            "p95_latency_ms": _round(percentile(latencies, 0.95)),
        })
    return history
