"""
Test cases for the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from edgedeploy import __version__
from edgedeploy.activation.service import ActivationService
from edgedeploy.api.main import app
from edgedeploy.api.routers import activations, dns
from edgedeploy.core.enums import ActivationState, Network
from edgedeploy.core.exceptions import ControlPlaneError
from edgedeploy.core.models import ChangeList
from edgedeploy.dns.record_service import DnsRecordService


@pytest.fixture
def api(control_plane, clock):
    activations.set_activation_service(ActivationService(control_plane, clock=clock, sleep=clock.sleep))
    dns.set_dns_service(DnsRecordService(control_plane))
    yield TestClient(app)
    activations.set_activation_service(None)
    dns.set_dns_service(None)


def test_health(api):
    response = api.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "edgedeploy-api", "version": __version__}


class TestActivationEndpoints:

    def test_validate(self, api):
        response = api.post("/api/activations/validate", json={"resource_id": "prp_1"})

        assert response.status_code == 200
        body = response.json()
        assert body['valid'] is True
        assert body['version'] == 3
        assert body['network'] == "STAGING"

    def test_activate_returns_after_submission(self, api, control_plane):
        response = api.post("/api/activations", json={"resource_id": "prp_1", "network": "PRODUCTION"})

        assert response.status_code == 200
        body = response.json()
        assert body['outcome'] == "submitted"
        assert body['activation_id'] in control_plane.records
        assert control_plane.submitted[0]['payload']['propertyVersion'] == 3
        assert control_plane.submitted[0]['payload']['network'] == "PRODUCTION"

    def test_activate_and_wait(self, api, control_plane):
        control_plane.script_next(ActivationState.PENDING, ActivationState.ACTIVE)

        response = api.post("/api/activations", json={"resource_id": "prp_1", "version": 2, "wait": True})

        assert response.status_code == 200
        assert response.json()['outcome'] == "succeeded"
        assert response.json()['progress']['percent_complete'] == 100

    def test_blocked_activation_is_400(self, api, control_plane):
        control_plane.hostnames["prp_1"] = []

        response = api.post("/api/activations", json={"resource_id": "prp_1"})

        assert response.status_code == 400
        detail = response.json()['detail']
        assert detail['outcome'] == "blocked"
        assert detail['validation']['valid'] is False
        assert control_plane.submitted == []

    def test_unknown_resource_is_404(self, api):
        response = api.post("/api/activations", json={"resource_id": "prp_missing"})

        assert response.status_code == 404

    def test_progress(self, api, control_plane):
        control_plane.add_activation("prp_1", 3, Network.STAGING, ActivationState.ZONE_3, activation_id="atv_9")

        response = api.get("/api/activations/prp_1/atv_9")

        assert response.status_code == 200
        assert response.json()['percent_complete'] == 75
        assert response.json()['current_zone'] == "ZONE_3"

    def test_unreadable_activation_is_502(self, api, control_plane):
        control_plane.read_failures = [ControlPlaneError("Unknown activation status INACTIVE for atv_9")]

        response = api.get("/api/activations/prp_1/atv_9")

        assert response.status_code == 502
        assert "INACTIVE" in response.json()['detail']

    def test_wait(self, api, control_plane):
        control_plane.add_activation("prp_1", 3, Network.STAGING, ActivationState.ZONE_1, activation_id="atv_9")
        control_plane.script("atv_9", ActivationState.ZONE_1, ActivationState.ACTIVE)

        response = api.post("/api/activations/prp_1/atv_9/wait", json={"max_wait": 60})

        assert response.status_code == 200
        assert response.json()['outcome'] == "succeeded"

    def test_cancel(self, api, control_plane):
        control_plane.add_activation("prp_1", 3, Network.STAGING, ActivationState.PENDING, activation_id="atv_p")
        control_plane.add_activation("prp_1", 3, Network.STAGING, ActivationState.ZONE_1, activation_id="atv_z")

        cancelled = api.delete("/api/activations/prp_1/atv_p")
        refused = api.delete("/api/activations/prp_1/atv_z")

        assert cancelled.status_code == 200
        assert cancelled.json() == {"activation_id": "atv_p", "cancelled": True, "previous_state": "PENDING"}
        assert refused.status_code == 409

    def test_plan_without_execution(self, api, control_plane):
        response = api.post("/api/activations/plan", json={
            "items": [
                {"resource_id": "web", "network": "STAGING"},
                {"resource_id": "api", "network": "STAGING"},
            ],
            "strategy": "DEPENDENCY_ORDERED",
            "dependencies": {"web": ["api"]},
        })

        assert response.status_code == 200
        body = response.json()
        assert body['results'] is None
        assert [step[0]['resource_id'] for step in body['plan']['steps']] == ["api", "web"]
        assert control_plane.submitted == []

    def test_plan_cycle_is_400(self, api):
        response = api.post("/api/activations/plan", json={
            "items": [
                {"resource_id": "a", "network": "STAGING"},
                {"resource_id": "b", "network": "STAGING"},
            ],
            "strategy": "DEPENDENCY_ORDERED",
            "dependencies": {"a": ["b"], "b": ["a"]},
        })

        assert response.status_code == 400
        assert response.json()['detail']['cycle'] == ["a", "b", "a"]

    def test_plan_execution(self, api, control_plane):
        control_plane.script_next(ActivationState.ACTIVE)

        response = api.post("/api/activations/plan", json={
            "items": [{"resource_id": "prp_1", "network": "STAGING"}],
            "execute": True,
        })

        assert response.status_code == 200
        body = response.json()
        assert body['succeeded'] is True
        assert body['results'][0]['result']['outcome'] == "succeeded"


class TestDnsEndpoints:

    def test_upsert_record(self, api, control_plane):
        response = api.put("/api/dns/zones/example.com/records", json={
            "name": "www.example.com",
            "type": "a",
            "rdata": ["192.0.2.1"],
        })

        assert response.status_code == 200
        assert response.json() == {
            "zone": "example.com",
            "name": "www.example.com",
            "type": "A",
            "submit": {"requestId": "req_1"},
        }
        assert control_plane.submitted_change_lists[0]['record_sets'][0]['ttl'] == 300

    def test_delete_record_with_comment(self, api, control_plane):
        response = api.delete(
            "/api/dns/zones/example.com/records/old.example.com/CNAME", params={"comment": "retire"}
        )

        assert response.status_code == 200
        assert control_plane.submitted_change_lists[0]['comment'] == "retire"

    def test_reset_change_list(self, api, control_plane):
        control_plane.change_lists["example.com"] = ChangeList(zone="example.com", record_sets=[{'name': 'x'}])

        response = api.post("/api/dns/zones/example.com/changelist/reset")

        assert response.status_code == 200
        assert response.json()['zone'] == "example.com"
        assert response.json()['record_sets'] == []

    def test_submit_without_changes_is_400(self, api):
        response = api.post("/api/dns/zones/example.com/changelist/submit", json={})

        assert response.status_code == 400


def test_uninitialized_service_is_500():
    activations.set_activation_service(None)

    response = TestClient(app).get("/api/activations/prp_1/atv_1")

    assert response.status_code == 500
