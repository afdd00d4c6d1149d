"""Tests for the consecutive-outcome evaluator."""
import pytest


class TestHasConsecutiveOutcome:
    async def test_empty_history(self, evaluator, make_service) -> None:
        service = await make_service()
        assert await evaluator.has_consecutive_outcome(service.id, True, 2) is False
        assert await evaluator.has_consecutive_outcome(service.id, False, 2) is False

    async def test_single_entry_never_reaches_two(self, evaluator, make_service, add_history) -> None:
        service = await make_service()
        await add_history(service.id, True)

        assert await evaluator.has_consecutive_outcome(service.id, True, 2) is False
        assert await evaluator.has_consecutive_outcome(service.id, True, 1) is True

    async def test_short_history_is_logged(self, evaluator, make_service, add_history, caplog) -> None:
        service = await make_service()
        await add_history(service.id, False)

        with caplog.at_level("DEBUG", logger="statusguard.services.evaluator"):
            await evaluator.has_consecutive_outcome(service.id, False, 2)

        assert f"Service {service.id}: 1 of 2 results needed" in caplog.text

    async def test_two_failures(self, evaluator, make_service, add_history) -> None:
        service = await make_service()
        await add_history(service.id, False, False)

        assert await evaluator.has_consecutive_outcome(service.id, False, 2) is True
        assert await evaluator.has_consecutive_outcome(service.id, True, 2) is False

    async def test_success_after_failure(self, evaluator, make_service, add_history) -> None:
        # Newest first this history reads [success, fail]
        service = await make_service()
        await add_history(service.id, False, True)

        assert await evaluator.has_consecutive_outcome(service.id, False, 2) is False
        assert await evaluator.has_consecutive_outcome(service.id, True, 2) is False

    async def test_only_most_recent_window_counts(self, evaluator, make_service, add_history) -> None:
        service = await make_service()
        await add_history(service.id, True, True, True, False, False)

        assert await evaluator.has_consecutive_outcome(service.id, False, 2) is True
        assert await evaluator.has_consecutive_outcome(service.id, False, 3) is False

    async def test_history_is_per_service(self, evaluator, make_service, add_history) -> None:
        first = await make_service(name="first")
        second = await make_service(name="second")
        await add_history(first.id, False, False)

        assert await evaluator.has_consecutive_outcome(second.id, False, 2) is False

    async def test_count_must_be_positive(self, evaluator) -> None:
        with pytest.raises(ValueError):
            await evaluator.has_consecutive_outcome("svc", True, 0)
