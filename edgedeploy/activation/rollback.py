import asyncio
import logging
from typing import Optional, Set

from ..client.base_client import ControlPlaneClient
from ..core.enums import ActivationState
from ..core.models import ActivationRecord, ActivationRequest
from .submitter import ActivationSubmitter


class RollbackCoordinator:
    """
    Best-effort re-activation of the last known-good version.

    Never raises: rollback failure is logged and must not mask the failure
    being reported to the caller. Each failed activation is rolled back at
    most once per coordinator, so re-polling a terminal id is harmless.
    """

    def __init__(self, client: ControlPlaneClient, submitter: Optional[ActivationSubmitter] = None):
        self.client = client
        self.submitter = submitter or ActivationSubmitter(client)
        self._handled: Set[str] = set()
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(f"{__name__}.RollbackCoordinator")

    def already_handled(self, activation_id: str) -> bool:
        return activation_id in self._handled

    async def find_last_good(self, failed: ActivationRecord) -> Optional[ActivationRecord]:
        """Most recently updated other ACTIVE record for the same resource and network"""
        records = await self.client.list_activations(failed.resource_id)
        candidates = [
            r for r in records
            if r.network == failed.network
            and r.state == ActivationState.ACTIVE
            and r.activation_id != failed.activation_id
        ]
        if not candidates:
            return None
        return max(candidates, key=_last_touched)

    async def rollback(self, failed: ActivationRecord) -> Optional[str]:
        """
        Re-submit the last known-good version after a failed activation.

        Returns:
            Activation id of the rollback, or None when nothing was submitted
        """
        async with self._lock:
            if failed.activation_id in self._handled:
                self.logger.info(f"Rollback for {failed.activation_id} already handled")
                return None
            self._handled.add(failed.activation_id)

        try:
            last_good = await self.find_last_good(failed)
            if last_good is None:
                self.logger.warning(
                    f"No previous ACTIVE version of {failed.resource_id} on "
                    f"{failed.network.value}; skipping rollback"
                )
                return None

            request = ActivationRequest(
                resource_id=failed.resource_id,
                version=last_good.version,
                network=failed.network,
                note=f"Automatic rollback due to failed activation {failed.activation_id}",
                fast_push=True,
                acknowledge_warnings=True,
            )
            rollback_id = await self.submitter.submit(request)
            self.logger.info(
                f"Rolled {failed.resource_id} on {failed.network.value} back to "
                f"v{last_good.version} (activation {rollback_id})"
            )
            return rollback_id

        except Exception as e:
            self.logger.error(
                f"Rollback after failed activation {failed.activation_id} failed: {e}",
                exc_info=True
            )
            return None


def _last_touched(record: ActivationRecord) -> float:
    stamp = record.updated_at or record.submitted_at
    return stamp.timestamp() if stamp else 0.0
