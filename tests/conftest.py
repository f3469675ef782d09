"""Pytest configuration and fixtures for edgedeploy tests."""

import copy
import logging
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from edgedeploy.client.base_client import ControlPlaneClient
from edgedeploy.core.enums import ActivationState, Network
from edgedeploy.core.exceptions import ConflictError, NotFoundError
from edgedeploy.core.models import ActivationRecord, ChangeList

# Configure logging
logging.basicConfig(level=logging.INFO)


BASE_TIME = datetime(2025, 10, 15, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock that only moves when the poller sleeps"""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeControlPlane(ControlPlaneClient):
    """
    In-memory control plane.

    Activation states are scripted per activation id: each status read
    consumes the next scripted state and the last one repeats forever.
    """

    def __init__(self):
        self.resources: Dict[str, Dict[str, Any]] = {}
        self.validation_reports: Dict[str, Dict[str, Any]] = {}
        self.hostnames: Dict[str, List[Dict[str, Any]]] = {}
        self.rules: Dict[str, Dict[str, Any]] = {}
        self.rules_error: Optional[Exception] = None

        self.records: Dict[str, ActivationRecord] = {}
        self.scripts: Dict[str, List[ActivationState]] = {}
        self.next_scripts: List[List[ActivationState]] = []
        self.submit_failures: List[Exception] = []
        self.read_failures: List[Exception] = []
        self.submitted: List[Dict[str, Any]] = []
        self.cancelled: List[str] = []
        self._activation_seq = 0

        self.change_lists: Dict[str, ChangeList] = {}
        self.delete_not_found = False
        self.dns_calls: List[tuple] = []
        self.submitted_change_lists: List[Dict[str, Any]] = []

        self.contracts: List[Dict[str, Any]] = []
        self.groups: List[Dict[str, Any]] = []
        self.lookup_error: Optional[Exception] = None
        self.lookup_calls = 0
        self.closed = False

    # Setup helpers

    def add_resource(
        self,
        resource_id: str = "prp_1",
        latest_version: int = 3,
        staging_version: Optional[int] = None,
        production_version: Optional[int] = None,
        hostnames: Optional[List[Dict[str, Any]]] = None,
        rules: Optional[Dict[str, Any]] = None,
        **extra
    ) -> Dict[str, Any]:
        resource = {
            'propertyId': resource_id,
            'propertyName': f"{resource_id}.example.com",
            'latestVersion': latest_version,
            'stagingVersion': staging_version,
            'productionVersion': production_version,
        }
        resource.update(extra)
        self.resources[resource_id] = resource
        self.hostnames[resource_id] = (
            hostnames if hostnames is not None
            else [{'cnameFrom': f"www.{resource_id}.example.com", 'cnameTo': 'www.example.com.edgesuite.net'}]
        )
        self.rules[resource_id] = rules if rules is not None else {
            'name': 'default',
            'behaviors': [{'name': 'origin', 'options': {'hostname': 'origin.example.com'}}],
            'children': [],
        }
        self.validation_reports[resource_id] = {'errors': [], 'warnings': []}
        return resource

    def add_activation(
        self,
        resource_id: str,
        version: int,
        network: Network = Network.STAGING,
        state: ActivationState = ActivationState.ACTIVE,
        activation_id: Optional[str] = None,
        updated_minutes_ago: int = 60
    ) -> ActivationRecord:
        self._activation_seq += 1
        record = ActivationRecord(
            activation_id=activation_id or f"atv_{self._activation_seq}",
            resource_id=resource_id,
            version=version,
            network=network,
            state=state,
            submitted_at=BASE_TIME - timedelta(minutes=updated_minutes_ago + 10),
            updated_at=BASE_TIME - timedelta(minutes=updated_minutes_ago),
        )
        self.records[record.activation_id] = record
        return record

    def script(self, activation_id: str, *states: ActivationState) -> None:
        self.scripts[activation_id] = list(states)

    def script_next(self, *states: ActivationState) -> None:
        """Script the states of the next submitted activation"""
        self.next_scripts.append(list(states))

    # ControlPlaneClient

    async def get_resource(self, resource_id: str) -> Dict[str, Any]:
        if resource_id not in self.resources:
            raise NotFoundError(f"Property {resource_id} not found", status=404)
        return dict(self.resources[resource_id])

    async def validate_version(self, resource_id: str, version: int) -> Dict[str, Any]:
        return copy.deepcopy(self.validation_reports.get(resource_id, {'errors': [], 'warnings': []}))

    async def get_hostnames(self, resource_id: str, version: int) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.hostnames.get(resource_id, []))

    async def get_rules(self, resource_id: str, version: int) -> Dict[str, Any]:
        if self.rules_error:
            raise self.rules_error
        return copy.deepcopy(self.rules.get(resource_id, {}))

    async def list_activations(self, resource_id: str) -> List[ActivationRecord]:
        return [replace(r) for r in self.records.values() if r.resource_id == resource_id]

    async def submit_activation(self, resource_id: str, payload: Dict[str, Any]) -> str:
        self.submitted.append({'resource_id': resource_id, 'payload': payload})
        if self.submit_failures:
            raise self.submit_failures.pop(0)

        record = self.add_activation(
            resource_id,
            payload['propertyVersion'],
            Network(payload['network']),
            state=ActivationState.PENDING,
            updated_minutes_ago=0,
        )
        record.note = payload.get('note')
        if self.next_scripts:
            self.scripts[record.activation_id] = self.next_scripts.pop(0)
        return record.activation_id

    async def get_activation(self, resource_id: str, activation_id: str) -> ActivationRecord:
        if self.read_failures:
            raise self.read_failures.pop(0)
        if activation_id not in self.records:
            raise NotFoundError(f"Activation {activation_id} not found", status=404)

        record = self.records[activation_id]
        script = self.scripts.get(activation_id)
        if script:
            record.state = script.pop(0) if len(script) > 1 else script[0]
        return replace(record)

    async def cancel_activation(self, resource_id: str, activation_id: str) -> None:
        self.cancelled.append(activation_id)
        self.records[activation_id].state = ActivationState.ABORTED

    async def get_change_list(self, zone: str) -> Optional[ChangeList]:
        self.dns_calls.append(('get', zone))
        change_list = self.change_lists.get(zone)
        return replace(change_list, record_sets=list(change_list.record_sets)) if change_list else None

    async def delete_change_list(self, zone: str) -> None:
        self.dns_calls.append(('delete', zone))
        if self.delete_not_found or zone not in self.change_lists:
            self.change_lists.pop(zone, None)
            raise NotFoundError(f"Change list for {zone} not found", status=404)
        del self.change_lists[zone]

    async def create_change_list(self, zone: str) -> ChangeList:
        self.dns_calls.append(('create', zone))
        if zone in self.change_lists:
            raise ConflictError(f"Change list for {zone} already exists", status=409)
        self.change_lists[zone] = ChangeList(zone=zone)
        return replace(self.change_lists[zone])

    async def add_record_change(self, zone: str, change: Dict[str, Any]) -> None:
        self.dns_calls.append(('add-change', zone))
        if zone not in self.change_lists:
            raise NotFoundError(f"Change list for {zone} not found", status=404)
        self.change_lists[zone].record_sets.append(dict(change))

    async def submit_change_list(self, zone: str, comment: str) -> Dict[str, Any]:
        self.dns_calls.append(('submit', zone))
        change_list = self.change_lists.pop(zone)
        self.submitted_change_lists.append({
            'zone': zone,
            'comment': comment,
            'record_sets': change_list.record_sets,
        })
        return {'requestId': f"req_{len(self.submitted_change_lists)}"}

    async def list_contracts(self) -> List[Dict[str, Any]]:
        self.lookup_calls += 1
        if self.lookup_error:
            raise self.lookup_error
        return list(self.contracts)

    async def list_groups(self) -> List[Dict[str, Any]]:
        self.lookup_calls += 1
        if self.lookup_error:
            raise self.lookup_error
        return list(self.groups)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def control_plane():
    """Fake control plane with one clean resource, prp_1"""
    fake = FakeControlPlane()
    fake.add_resource("prp_1")
    return fake


@pytest.fixture
def clock():
    return FakeClock()
