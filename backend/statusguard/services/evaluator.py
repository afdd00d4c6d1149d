"""Consecutive-outcome evaluator - decides when a status threshold is crossed."""
import logging

from .result_store import ResultStore

logger = logging.getLogger(__name__)


class OutcomeEvaluator:
    """Reads recent history and reports runs of identical outcomes."""

    def __init__(self, result_store: ResultStore):
        self._result_store = result_store

    async def has_consecutive_outcome(self, service_id: str, desired_outcome: bool, count: int) -> bool:
        """True iff the `count` most recent results all have `is_up == desired_outcome`.

        Fewer than `count` results never satisfies the check, so a new service
        cannot flip status before it has enough history.
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        recent = await self._result_store.recent_results(service_id, count)
        if len(recent) < count:
            logger.debug(f"Service {service_id}: {len(recent)} of {count} results needed, threshold not reached")
            return False
        return all(result.is_up == desired_outcome for result in recent)
