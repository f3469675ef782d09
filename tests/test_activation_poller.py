"""
Test cases for the progress poller.
Covers the state machine, progressive delays, the wait budget and failure handling.
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

from edgedeploy.activation.poller import ProgressPoller, progressive_delay
from edgedeploy.activation.progress_manager import ProgressManager, iter_progress
from edgedeploy.activation.rollback import RollbackCoordinator
from edgedeploy.core.enums import ActivationOutcome, ActivationState as S, Network
from edgedeploy.core.exceptions import TransientAPIError


@pytest.fixture
def pending(control_plane):
    """A freshly submitted staging activation"""
    return control_plane.add_activation("prp_1", 3, Network.STAGING, S.PENDING, activation_id="atv_new")


@pytest.fixture
def poller(control_plane, clock):
    return ProgressPoller(control_plane, clock=clock, sleep=clock.sleep)


class TestProgressiveDelay:
    """Delay schedule between polls"""

    @pytest.mark.parametrize("elapsed,expected", [
        (0, 5.0),
        (119, 5.0),
        (120, 10.0),
        (419, 10.0),
        (420, 30.0),
        (1019, 30.0),
        (1020, 60.0),
        (5000, 60.0),
    ])
    def test_schedule(self, elapsed, expected):
        assert progressive_delay(elapsed) == expected


class TestPollingStateMachine:
    """Observed states and derived progress"""

    @pytest.mark.asyncio
    async def test_full_progression_succeeds(self, control_plane, pending, poller, clock):
        control_plane.script("atv_new", S.PENDING, S.ZONE_1, S.ZONE_2, S.ZONE_3, S.ACTIVE)
        manager = ProgressManager()
        queue = manager.subscribe()

        result = await poller.poll("prp_1", "atv_new", progress_manager=manager)

        assert result.outcome == ActivationOutcome.SUCCEEDED
        assert result.terminal
        assert result.observed_states == [S.PENDING, S.ZONE_1, S.ZONE_2, S.ZONE_3, S.ACTIVE]
        assert clock.sleeps == [5.0, 5.0, 5.0, 5.0]

        percents = [p.percent_complete async for p in iter_progress(queue)]
        assert percents == [5, 25, 50, 75, 100]
        assert result.progress.estimated_time_remaining == 0
        assert result.progress.status_message == "Activation complete"

    @pytest.mark.asyncio
    async def test_zones_may_be_skipped(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.PENDING, S.ZONE_3, S.ACTIVE)

        result = await poller.poll("prp_1", "atv_new")

        assert result.outcome == ActivationOutcome.SUCCEEDED
        assert result.polls == 3

    @pytest.mark.asyncio
    async def test_repeated_state_is_a_no_op(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.PENDING, S.PENDING, S.ZONE_1, S.ZONE_1, S.ACTIVE)
        seen = []

        result = await poller.poll(
            "prp_1", "atv_new", progress_manager=ProgressManager(lambda p: seen.append(p.percent_complete))
        )

        assert result.outcome == ActivationOutcome.SUCCEEDED
        assert seen == [5, 5, 25, 25, 100]

    @pytest.mark.asyncio
    async def test_percent_never_decreases(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.ZONE_2, S.ZONE_1, S.ZONE_3, S.ACTIVE)
        seen = []

        await poller.poll(
            "prp_1", "atv_new", progress_manager=ProgressManager(lambda p: seen.append(p.percent_complete))
        )

        assert seen == [50, 50, 75, 100]

    @pytest.mark.asyncio
    async def test_current_zone_label(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.ZONE_2, S.ACTIVE)
        zones = []

        await poller.poll(
            "prp_1", "atv_new", progress_manager=ProgressManager(lambda p: zones.append(p.current_zone))
        )

        assert zones == ["ZONE_2", None]

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.PENDING, S.ACTIVE)
        callback = AsyncMock()

        await poller.poll("prp_1", "atv_new", progress_manager=ProgressManager(callback))

        assert callback.await_count == 2

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_polling(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.PENDING, S.ACTIVE)
        callback = Mock(side_effect=RuntimeError("boom"))

        result = await poller.poll("prp_1", "atv_new", progress_manager=ProgressManager(callback))

        assert result.outcome == ActivationOutcome.SUCCEEDED
        assert callback.call_count == 2


class TestWaitBudget:
    """Timeouts are a distinct, resumable outcome"""

    @pytest.mark.asyncio
    async def test_times_out_while_pending(self, control_plane, pending, poller, clock):
        result = await poller.poll("prp_1", "atv_new", max_wait=30)

        assert result.outcome == ActivationOutcome.TIMED_OUT
        assert not result.terminal
        assert clock.sleeps == [5.0] * 6
        assert result.polls == 7
        assert result.elapsed_seconds == 30
        assert control_plane.cancelled == []

    @pytest.mark.asyncio
    async def test_last_sleep_is_capped_by_remaining_budget(self, control_plane, pending, poller, clock):
        result = await poller.poll("prp_1", "atv_new", max_wait=7)

        assert result.outcome == ActivationOutcome.TIMED_OUT
        assert clock.sleeps == [5.0, 2.0]

    @pytest.mark.asyncio
    async def test_zero_budget_reads_once(self, control_plane, pending, poller, clock):
        result = await poller.poll("prp_1", "atv_new", max_wait=0)

        assert result.outcome == ActivationOutcome.TIMED_OUT
        assert result.polls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_same_id_can_be_polled_again_after_timeout(self, control_plane, pending, poller):
        control_plane.script("atv_new", S.PENDING, S.PENDING, S.ZONE_1, S.ACTIVE)

        first = await poller.poll("prp_1", "atv_new", max_wait=5)
        second = await poller.poll("prp_1", "atv_new", max_wait=60)

        assert first.outcome == ActivationOutcome.TIMED_OUT
        assert second.outcome == ActivationOutcome.SUCCEEDED

    @pytest.mark.asyncio
    async def test_delays_grow_with_elapsed_time(self, control_plane, pending, poller, clock):
        await poller.poll("prp_1", "atv_new", max_wait=200)

        assert set(clock.sleeps) == {5.0, 10.0}
        assert clock.sleeps.index(10.0) == 24

    @pytest.mark.asyncio
    async def test_fire_and_forget_reads_once(self, control_plane, pending, poller, clock):
        result = await poller.poll("prp_1", "atv_new", fire_and_forget=True)

        assert result.outcome == ActivationOutcome.SUBMITTED
        assert result.progress.percent_complete == 5
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_subscribers_get_end_of_stream(self, control_plane, pending, poller):
        manager = ProgressManager()
        queue = manager.subscribe()

        await poller.poll("prp_1", "atv_new", max_wait=0, progress_manager=manager)

        assert (await queue.get()).state == S.PENDING
        assert await queue.get() is None


class TestFailureHandling:
    """Failure terminals and transient read errors"""

    @pytest.mark.asyncio
    async def test_failed_state_reports_failure_without_rollback(self, control_plane, pending, clock):
        rollback = Mock(spec=RollbackCoordinator)
        rollback.rollback = AsyncMock(return_value="atv_rb")
        poller = ProgressPoller(control_plane, rollback=rollback, clock=clock, sleep=clock.sleep)
        control_plane.script("atv_new", S.PENDING, S.FAILED)

        result = await poller.poll("prp_1", "atv_new")

        assert result.outcome == ActivationOutcome.FAILED
        assert result.progress.percent_complete == 5
        rollback.rollback.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", [S.FAILED, S.ABORTED])
    async def test_rollback_is_opt_in(self, control_plane, pending, clock, terminal):
        rollback = Mock(spec=RollbackCoordinator)
        rollback.rollback = AsyncMock(return_value="atv_rb")
        poller = ProgressPoller(control_plane, rollback=rollback, clock=clock, sleep=clock.sleep)
        control_plane.script("atv_new", S.PENDING, terminal)

        result = await poller.poll("prp_1", "atv_new", rollback_on_failure=True)

        assert result.outcome == ActivationOutcome.FAILED
        assert result.rollback_activation_id == "atv_rb"
        rollback.rollback.assert_awaited_once()
        assert rollback.rollback.await_args.args[0].activation_id == "atv_new"

    @pytest.mark.asyncio
    async def test_deactivated_does_not_trigger_rollback(self, control_plane, pending, clock):
        rollback = Mock(spec=RollbackCoordinator)
        rollback.rollback = AsyncMock(return_value="atv_rb")
        poller = ProgressPoller(control_plane, rollback=rollback, clock=clock, sleep=clock.sleep)
        control_plane.script("atv_new", S.DEACTIVATED)

        result = await poller.poll("prp_1", "atv_new", rollback_on_failure=True)

        assert result.outcome == ActivationOutcome.FAILED
        rollback.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_transient_read_errors_are_tolerated(self, control_plane, pending, poller):
        control_plane.read_failures = [TransientAPIError("503", status=503), TransientAPIError("503", status=503)]
        control_plane.script("atv_new", S.ACTIVE)

        result = await poller.poll("prp_1", "atv_new")

        assert result.outcome == ActivationOutcome.SUCCEEDED
        assert result.polls == 1

    @pytest.mark.asyncio
    async def test_consecutive_read_errors_give_up(self, control_plane, pending, poller):
        control_plane.read_failures = [TransientAPIError("timeout") for _ in range(3)]
        manager = ProgressManager()
        queue = manager.subscribe()

        with pytest.raises(TransientAPIError):
            await poller.poll("prp_1", "atv_new", progress_manager=manager)

        assert await queue.get() is None


class TestRemainingTime:
    """Estimated time remaining is aged from the submit date"""

    @pytest.mark.asyncio
    async def test_resumed_watch_counts_from_submission(self, control_plane, clock):
        record = control_plane.add_activation("prp_1", 3, Network.PRODUCTION, S.ZONE_1, activation_id="atv_old")
        now = record.submitted_at + timedelta(minutes=25)
        poller = ProgressPoller(control_plane, clock=clock, sleep=clock.sleep, wall_clock=lambda: now)

        result = await poller.poll("prp_1", "atv_old", fire_and_forget=True)

        assert result.progress.estimated_time_remaining == 300

    @pytest.mark.asyncio
    async def test_long_running_activation_reports_zero(self, control_plane, clock):
        record = control_plane.add_activation("prp_1", 3, Network.STAGING, S.ZONE_2, activation_id="atv_slow")
        now = record.submitted_at + timedelta(hours=2)
        poller = ProgressPoller(control_plane, clock=clock, sleep=clock.sleep, wall_clock=lambda: now)

        result = await poller.poll("prp_1", "atv_slow", fire_and_forget=True)

        assert result.progress.estimated_time_remaining == 0

    @pytest.mark.asyncio
    async def test_unknown_submit_date_uses_watch_time(self, control_plane, pending, poller):
        pending.submitted_at = None
        control_plane.script("atv_new", S.PENDING)

        result = await poller.poll("prp_1", "atv_new", max_wait=10)

        assert result.outcome == ActivationOutcome.TIMED_OUT
        assert result.progress.estimated_time_remaining == 590
