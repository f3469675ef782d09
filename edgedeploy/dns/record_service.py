"""
DNS record edits through the guarded change-list workflow.
"""
import logging
from typing import Any, Dict, List, Optional

from ..client.base_client import ControlPlaneClient
from ..core.exceptions import EdgeDeployError
from .changelist_guard import ChangeListGuard


class EmptyChangeListError(EdgeDeployError):
    """Raised when submitting a change list that is missing or has no record sets"""

    def __init__(self, zone: str, missing: bool = False):
        self.zone = zone
        self.missing = missing
        if missing:
            message = f"No pending change list exists for zone {zone}. Create changes before submitting."
        else:
            message = f"The change list for zone {zone} is empty. Add changes before submitting."
        super().__init__(message)


class DnsRecordService:
    """Create, replace and delete record sets one change list at a time"""

    def __init__(self, client: ControlPlaneClient, guard: Optional[ChangeListGuard] = None):
        self.client = client
        self.guard = guard or ChangeListGuard(client)
        self.logger = logging.getLogger(f"{__name__}.DnsRecordService")

    async def upsert_record(
        self,
        zone: str,
        name: str,
        record_type: str,
        ttl: int,
        rdata: List[str],
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create or replace a record set and submit the change.

        Returns:
            The control plane's submit response
        """
        change = {
            'name': name,
            'type': record_type,
            'op': 'ADD',
            'ttl': ttl,
            'rdata': list(rdata),
        }
        return await self._apply(zone, change, comment or f"Updated {record_type} record for {name}")

    async def delete_record(
        self,
        zone: str,
        name: str,
        record_type: str,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        change = {
            'name': name,
            'type': record_type,
            'op': 'DELETE',
        }
        return await self._apply(zone, change, comment or f"Deleted {record_type} record for {name}")

    async def submit_change_list(self, zone: str, comment: Optional[str] = None) -> Dict[str, Any]:
        """
        Submit whatever is pending for the zone.

        Raises:
            EmptyChangeListError: No change list, or one without record sets
        """
        change_list = await self.client.get_change_list(zone)
        if change_list is None:
            raise EmptyChangeListError(zone, missing=True)
        if not change_list.record_sets:
            raise EmptyChangeListError(zone)

        response = await self.client.submit_change_list(
            zone, comment or f"Submitting pending changes for {zone}"
        )
        self.logger.info(
            f"Submitted change list for {zone} with {len(change_list.record_sets)} record set(s)"
        )
        return response or {}

    async def _apply(self, zone: str, change: Dict[str, Any], comment: str) -> Dict[str, Any]:
        async with self.guard.edit(zone):
            await self.client.add_record_change(zone, change)
            response = await self.client.submit_change_list(zone, comment)

        self.logger.info(f"{change['op']} {change['type']} {change['name']} in {zone}: submitted")
        return response or {}
