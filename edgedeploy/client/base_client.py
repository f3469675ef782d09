from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.models import ActivationRecord, ChangeList


class ControlPlaneClient(ABC):
    """
    Boundary to the remote control plane.

    Implementations translate each call into one REST request and map
    failures onto the exceptions in ``edgedeploy.core.exceptions``:
    ``NotFoundError`` for 404, ``ConflictError`` for 409,
    ``TransientAPIError`` for network errors and 408/429/5xx.
    """

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    # Configuration resources

    @abstractmethod
    async def get_resource(self, resource_id: str) -> Dict[str, Any]:
        """
        Get resource metadata.

        Returns:
            Dict with at least ``propertyName``, ``latestVersion``,
            ``stagingVersion`` and ``productionVersion`` keys
        """
        pass

    @abstractmethod
    async def validate_version(self, resource_id: str, version: int) -> Dict[str, Any]:
        """
        Run the control plane's own rule validation for a version.

        Returns:
            Dict with ``errors`` and ``warnings`` lists
        """
        pass

    @abstractmethod
    async def get_hostnames(self, resource_id: str, version: int) -> List[Dict[str, Any]]:
        """Hostnames bound to a version"""
        pass

    @abstractmethod
    async def get_rules(self, resource_id: str, version: int) -> Dict[str, Any]:
        """Rule tree of a version"""
        pass

    # Activations

    @abstractmethod
    async def list_activations(self, resource_id: str) -> List[ActivationRecord]:
        """All activation records of a resource, any network and state"""
        pass

    @abstractmethod
    async def submit_activation(self, resource_id: str, payload: Dict[str, Any]) -> str:
        """
        Request deployment of a version.

        Returns:
            The new activation id
        """
        pass

    @abstractmethod
    async def get_activation(self, resource_id: str, activation_id: str) -> ActivationRecord:
        """Current status of one activation"""
        pass

    @abstractmethod
    async def cancel_activation(self, resource_id: str, activation_id: str) -> None:
        """Cancel a PENDING activation; the control plane rejects any other state"""
        pass

    # DNS change lists

    @abstractmethod
    async def get_change_list(self, zone: str) -> Optional[ChangeList]:
        """Open change list of a zone, or None when there is none"""
        pass

    @abstractmethod
    async def delete_change_list(self, zone: str) -> None:
        """Discard the zone's change list; raises NotFoundError when absent"""
        pass

    @abstractmethod
    async def create_change_list(self, zone: str) -> ChangeList:
        """Open a fresh, empty change list; raises ConflictError if one exists"""
        pass

    @abstractmethod
    async def add_record_change(self, zone: str, change: Dict[str, Any]) -> None:
        """Append one record operation (``op`` ADD/EDIT/DELETE) to the change list"""
        pass

    @abstractmethod
    async def submit_change_list(self, zone: str, comment: str) -> Dict[str, Any]:
        """Submit the zone's change list; returns the submit receipt"""
        pass

    # Name lookups

    @abstractmethod
    async def list_contracts(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_groups(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections"""
        pass
