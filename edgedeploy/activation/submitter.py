import logging
from typing import Any, Dict, Optional

from ..client.base_client import ControlPlaneClient
from ..core.exceptions import TransientAPIError
from ..core.models import ActivationRequest


MAX_SUBMIT_ATTEMPTS = 3


class ActivationSubmitter:
    """
    Submits activation requests with a bounded retry on transient failures.

    The same payload is re-issued on every attempt. There is no delay between
    attempts: submission is a single fast call, not a long poll. Anything that
    is not a TransientAPIError (conflicts, other 4xx) surfaces immediately.
    """

    def __init__(self, client: ControlPlaneClient, max_attempts: int = MAX_SUBMIT_ATTEMPTS):
        self.client = client
        self.max_attempts = max(1, max_attempts)
        self.logger = logging.getLogger(f"{__name__}.ActivationSubmitter")

    async def submit(self, request: ActivationRequest, payload: Optional[Dict[str, Any]] = None) -> str:
        """
        Submit an activation.

        Args:
            request: The activation to request
            payload: Pre-built body (defaults to ``request.to_payload()``)

        Returns:
            Activation id assigned by the control plane

        Raises:
            TransientAPIError: When every attempt failed transiently (the last one)
            ControlPlaneError: Any non-transient failure, on the first occurrence
        """
        payload = payload or request.to_payload()
        last_error: Optional[TransientAPIError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                activation_id = await self.client.submit_activation(request.resource_id, payload)
                self.logger.info(
                    f"Submitted activation {activation_id} for {request.resource_id} "
                    f"v{request.version} to {request.network.value}"
                )
                return activation_id
            except TransientAPIError as e:
                last_error = e
                self.logger.warning(
                    f"Activation submit for {request.resource_id} failed "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )

        self.logger.error(
            f"Activation submit for {request.resource_id} failed after {self.max_attempts} attempts"
        )
        raise last_error
