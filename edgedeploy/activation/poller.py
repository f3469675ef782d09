"""
Progress poller: drives the bounded polling loop for one activation.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TYPE_CHECKING

from ..client.base_client import ControlPlaneClient
from ..core.enums import ActivationOutcome, ActivationState
from ..core.exceptions import TransientAPIError
from ..core.models import ActivationProgress, seconds_since, utc_now
from .progress_manager import ProgressManager

if TYPE_CHECKING:
    from .rollback import RollbackCoordinator


DEFAULT_MAX_WAIT_SECONDS = 1800.0
MAX_CONSECUTIVE_POLL_ERRORS = 3


def progressive_delay(elapsed_seconds: float) -> float:
    """
    Seconds to wait before the next poll.

    5s for the first 2 minutes, 10s for the next 5, 30s for the next 10,
    then 60s.
    """
    if elapsed_seconds < 120:
        return 5.0
    if elapsed_seconds < 420:
        return 10.0
    if elapsed_seconds < 1020:
        return 30.0
    return 60.0


@dataclass
class PollResult:
    """Outcome of one poll call"""
    outcome: ActivationOutcome
    activation_id: str
    progress: Optional[ActivationProgress] = None
    observed_states: List[ActivationState] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    polls: int = 0
    rollback_activation_id: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.outcome in (ActivationOutcome.SUCCEEDED, ActivationOutcome.FAILED)


class ProgressPoller:
    """
    Polls an activation until it reaches a terminal state or the wait budget runs out.

    Polling is a pure read: a TIMED_OUT result leaves the activation untouched
    and the same id can be polled again later. Clock and sleep are injectable.
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        rollback: Optional['RollbackCoordinator'] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_consecutive_errors: int = MAX_CONSECUTIVE_POLL_ERRORS,
        wall_clock: Callable[[], datetime] = utc_now
    ):
        self.client = client
        self.rollback = rollback
        self.clock = clock
        self.sleep = sleep
        self.wall_clock = wall_clock
        self.max_consecutive_errors = max_consecutive_errors
        self.logger = logging.getLogger(f"{__name__}.ProgressPoller")

    async def poll(
        self,
        resource_id: str,
        activation_id: str,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        progress_manager: Optional[ProgressManager] = None,
        rollback_on_failure: bool = False,
        fire_and_forget: bool = False
    ) -> PollResult:
        """
        Watch an activation.

        Args:
            resource_id: Resource the activation belongs to
            activation_id: Activation to watch
            max_wait: Overall wait budget in seconds
            progress_manager: Receives every progress snapshot
            rollback_on_failure: Hand FAILED/ABORTED activations to the rollback coordinator
            fire_and_forget: Fetch once and return without waiting

        Returns:
            PollResult with outcome SUCCEEDED, FAILED, TIMED_OUT or SUBMITTED
        """
        progress_manager = progress_manager or ProgressManager(logger=self.logger)
        start = self.clock()
        result = PollResult(outcome=ActivationOutcome.TIMED_OUT, activation_id=activation_id)
        floor_percent = 0
        consecutive_errors = 0

        try:
            while True:
                elapsed = self.clock() - start
                try:
                    record = await self.client.get_activation(resource_id, activation_id)
                    consecutive_errors = 0
                except TransientAPIError as e:
                    consecutive_errors += 1
                    if consecutive_errors >= self.max_consecutive_errors:
                        self.logger.error(
                            f"Giving up on {activation_id} after {consecutive_errors} failed status reads"
                        )
                        raise
                    self.logger.warning(
                        f"Status read for {activation_id} failed "
                        f"({consecutive_errors}/{self.max_consecutive_errors}): {e}"
                    )
                    record = None

                if record is not None:
                    result.polls += 1
                    previous = result.observed_states[-1] if result.observed_states else None

                    if previous == record.state:
                        self.logger.debug(f"{activation_id} still {record.state.value}")
                    elif record.state.percent < floor_percent and not record.state.is_failure:
                        self.logger.debug(
                            f"{activation_id} reported {record.state.value} after reaching {floor_percent}%"
                        )
                    else:
                        self.logger.info(f"{activation_id} is {record.state.value}")

                    # Remaining time is measured from submission, not from the start of this watch
                    since_submit = seconds_since(record.submitted_at, self.wall_clock())
                    age = elapsed if since_submit is None else max(since_submit, elapsed)
                    progress = ActivationProgress.from_record(record, age, floor_percent)
                    floor_percent = progress.percent_complete
                    result.progress = progress
                    result.observed_states.append(record.state)
                    await progress_manager.publish(progress)

                    if record.state == ActivationState.ACTIVE:
                        result.outcome = ActivationOutcome.SUCCEEDED
                        return result

                    if record.state.is_failure:
                        result.outcome = ActivationOutcome.FAILED
                        self.logger.error(
                            f"Activation {activation_id} ended {record.state.value}: "
                            f"{'; '.join(e.detail for e in record.errors) or record.fatal_error or 'no details'}"
                        )
                        if rollback_on_failure and record.state.triggers_rollback and self.rollback:
                            result.rollback_activation_id = await self.rollback.rollback(record)
                        return result

                    if fire_and_forget:
                        result.outcome = ActivationOutcome.SUBMITTED
                        return result

                elapsed = self.clock() - start
                remaining = max_wait - elapsed
                if remaining <= 0:
                    self.logger.warning(
                        f"Stopped watching {activation_id} after {elapsed:.0f}s; still in progress"
                    )
                    result.outcome = ActivationOutcome.TIMED_OUT
                    return result

                await self.sleep(min(progressive_delay(elapsed), remaining))
        finally:
            result.elapsed_seconds = self.clock() - start
            progress_manager.close()
