"""
Activation service: the caller-facing surface of the activation engine.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional

from ..cache.name_resolver import NameResolver
from ..client.base_client import ControlPlaneClient
from ..core.enums import ActivationOutcome, ActivationState, ActivationStrategy, Network
from ..core.exceptions import ActivationNotCancellableError
from ..core.models import (
    ActivationPlan,
    ActivationProgress,
    ActivationRecord,
    ActivationRequest,
    ActivationResult,
    PlanItem,
    ValidationResult,
    seconds_since,
    utc_now,
)
from .planner import ActivationPlanner, PlanItemOutcome
from .poller import DEFAULT_MAX_WAIT_SECONDS, PollResult, ProgressPoller
from .progress_manager import ProgressCallback, ProgressManager
from .rollback import RollbackCoordinator
from .submitter import ActivationSubmitter
from .validator import PreflightValidator


_OUTCOME_MESSAGES = {
    ActivationOutcome.SUCCEEDED: 'Activation completed successfully',
    ActivationOutcome.FAILED: 'Activation failed',
    ActivationOutcome.TIMED_OUT: 'Stopped waiting; activation is still in progress',
    ActivationOutcome.SUBMITTED: 'Activation submitted',
}


class ActivationService:
    """
    Validate, submit, watch, cancel and plan activations.

    One instance wraps one control-plane client. The rollback coordinator is
    shared across calls so a failed activation is rolled back at most once
    however many times it is watched.
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        name_resolver: Optional[NameResolver] = None,
        default_max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        submit_attempts: int = 3,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        wall_clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize the service.

        Args:
            client: Control-plane client
            name_resolver: Optional id -> name lookups for validation context
            default_max_wait: Wait budget used when a call passes none
            submit_attempts: Attempts per submission on transient failures
            clock: Monotonic clock for the poller
            sleep: Sleep coroutine for the poller
            wall_clock: Current UTC time, used to age activations from their submit date
        """
        self.client = client
        self.name_resolver = name_resolver
        self.default_max_wait = default_max_wait
        self.validator = PreflightValidator(client, name_resolver)
        self.submitter = ActivationSubmitter(client, max_attempts=submit_attempts)
        self.rollback = RollbackCoordinator(client, self.submitter)
        self.wall_clock = wall_clock
        self.poller = ProgressPoller(
            client, rollback=self.rollback, clock=clock, sleep=sleep, wall_clock=wall_clock
        )
        self.planner = ActivationPlanner()
        self.logger = logging.getLogger(f"{__name__}.ActivationService")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    async def validate(
        self,
        resource_id: str,
        network: Network,
        version: Optional[int] = None,
        require_all_preflight_checks: bool = False
    ) -> ValidationResult:
        return await self.validator.validate(
            resource_id, network, version, require_all_preflight_checks
        )

    async def activate(
        self,
        request: ActivationRequest,
        validate_first: bool = True,
        wait: bool = True,
        max_wait: Optional[float] = None,
        rollback_on_failure: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        progress_manager: Optional[ProgressManager] = None,
        require_all_preflight_checks: bool = False
    ) -> ActivationResult:
        """
        Activate a version, optionally validating first and waiting for the outcome.

        Args:
            request: What to activate
            validate_first: Run preflight validation; an invalid result blocks submission
            wait: Poll until terminal or ``max_wait``; False returns after one status read
            max_wait: Wait budget in seconds (defaults to the service's)
            rollback_on_failure: Re-activate the last good version on FAILED/ABORTED
            progress_callback: Called with every progress snapshot
            progress_manager: Alternative to ``progress_callback`` for queue subscribers
            require_all_preflight_checks: Strict preflight mode

        Returns:
            ActivationResult; outcome BLOCKED when validation failed

        Raises:
            ConflictError: Submission collided with another activation
            ControlPlaneError: Non-transient or exhausted submission failure
        """
        validation = None
        if validate_first:
            validation = await self.validate(
                request.resource_id,
                request.network,
                request.version,
                require_all_preflight_checks
            )
            if not validation.valid:
                self.logger.warning(
                    f"Activation of {request.resource_id} v{request.version} to "
                    f"{request.network.value} blocked by {len(validation.errors)} validation error(s)"
                )
                return ActivationResult(
                    outcome=ActivationOutcome.BLOCKED,
                    request=request,
                    validation=validation,
                    message='Preflight validation failed',
                )

        activation_id = await self.submitter.submit(request)

        poll = await self.poller.poll(
            request.resource_id,
            activation_id,
            max_wait=self.default_max_wait if max_wait is None else max_wait,
            progress_manager=progress_manager or ProgressManager(progress_callback, self.logger),
            rollback_on_failure=rollback_on_failure,
            fire_and_forget=not wait,
        )
        return self._to_result(poll, request=request, validation=validation)

    async def get_progress(self, resource_id: str, activation_id: str) -> ActivationProgress:
        """Single status read turned into a progress snapshot"""
        record = await self.client.get_activation(resource_id, activation_id)
        age = seconds_since(record.submitted_at, self.wall_clock())
        return ActivationProgress.from_record(record, age or 0.0)

    async def wait(
        self,
        resource_id: str,
        activation_id: str,
        max_wait: Optional[float] = None,
        rollback_on_failure: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        progress_manager: Optional[ProgressManager] = None
    ) -> ActivationResult:
        """Resume watching an existing activation, e.g. after a TIMED_OUT result"""
        poll = await self.poller.poll(
            resource_id,
            activation_id,
            max_wait=self.default_max_wait if max_wait is None else max_wait,
            progress_manager=progress_manager or ProgressManager(progress_callback, self.logger),
            rollback_on_failure=rollback_on_failure,
        )
        return self._to_result(poll)

    async def cancel(self, resource_id: str, activation_id: str) -> ActivationRecord:
        """
        Cancel a PENDING activation.

        Returns:
            The activation record as it was before cancellation

        Raises:
            ActivationNotCancellableError: The activation is past PENDING
        """
        record = await self.client.get_activation(resource_id, activation_id)
        if record.state != ActivationState.PENDING:
            raise ActivationNotCancellableError(activation_id, record.state.value)

        await self.client.cancel_activation(resource_id, activation_id)
        self.logger.info(f"Cancelled activation {activation_id} of {resource_id}")
        return record

    def plan(
        self,
        items: List[PlanItem],
        strategy: ActivationStrategy = ActivationStrategy.SEQUENTIAL,
        dependencies: Optional[Dict[str, List[str]]] = None
    ) -> ActivationPlan:
        return self.planner.build_plan(items, strategy, dependencies)

    async def execute_plan(
        self,
        plan: ActivationPlan,
        validate_first: bool = True,
        max_wait: Optional[float] = None,
        rollback_on_failure: bool = False,
        continue_on_error: bool = False,
        note: Optional[str] = None
    ) -> List[PlanItemOutcome]:
        """Activate every plan item and wait for each, step by step"""

        async def run_item(item: PlanItem) -> ActivationResult:
            version = await self.resolve_version(item.resource_id, item.version)
            request = ActivationRequest(
                resource_id=item.resource_id,
                version=version,
                network=item.network,
                note=note,
            )
            return await self.activate(
                request,
                validate_first=validate_first,
                max_wait=max_wait,
                rollback_on_failure=rollback_on_failure,
            )

        return await self.planner.execute(plan, run_item, continue_on_error)

    async def resolve_version(self, resource_id: str, version: Optional[int] = None) -> int:
        """Use the given version, or the resource's latest"""
        if version:
            return version
        resource = await self.client.get_resource(resource_id)
        return int(resource.get('latestVersion') or 1)

    @staticmethod
    def _to_result(
        poll: PollResult,
        request: Optional[ActivationRequest] = None,
        validation: Optional[ValidationResult] = None
    ) -> ActivationResult:
        message = _OUTCOME_MESSAGES[poll.outcome]
        if poll.outcome == ActivationOutcome.FAILED and poll.progress:
            message = f"{message}: {poll.progress.status_message}"
            if poll.rollback_activation_id:
                message = f"{message}; rollback submitted as {poll.rollback_activation_id}"

        return ActivationResult(
            outcome=poll.outcome,
            activation_id=poll.activation_id,
            request=request,
            progress=poll.progress,
            validation=validation,
            rollback_activation_id=poll.rollback_activation_id,
            message=message,
        )
