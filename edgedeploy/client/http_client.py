import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..core.exceptions import ControlPlaneError, NotFoundError, TransientAPIError, error_for_status
from ..core.models import ActivationRecord, ChangeList
from .base_client import ControlPlaneClient


class HttpControlPlaneClient(ControlPlaneClient):
    """
    aiohttp implementation of the control-plane boundary.

    One ClientSession is opened lazily and reused for every call; close it with
    ``await client.close()`` or by using the client as an async context manager.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.api_token = api_token
        self.timeout = timeout
        self.extra_headers = dict(headers or {})
        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(f"{__name__}.HttpControlPlaneClient")

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.api_token:
            headers['Authorization'] = f"Bearer {self.api_token}"
        headers.update(self.extra_headers)
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._headers()
            )
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Issue one request and decode the JSON body.

        Raises:
            TransientAPIError: On connection errors, timeouts, 408/429/5xx
            NotFoundError: On 404
            ConflictError: On 409
            ControlPlaneError: On any other non-2xx status
        """
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        self.logger.debug(f"{method} {url}")

        try:
            async with session.request(method, url, json=json, params=params) as response:
                if response.status == 204:
                    return {}
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = await response.text()

                if response.status >= 400:
                    detail = body.get('detail') if isinstance(body, dict) else None
                    message = detail or response.reason or "Request failed"
                    raise error_for_status(response.status, f"{method} {path}: {message}", body)
                return body if body is not None else {}
        except aiohttp.ClientError as e:
            raise TransientAPIError(f"{method} {path}: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransientAPIError(f"{method} {path}: timed out after {self.timeout}s") from e

    # Configuration resources

    async def get_resource(self, resource_id: str) -> Dict[str, Any]:
        body = await self._request('GET', f"/papi/v1/properties/{resource_id}")
        items = body.get('properties', {}).get('items', [])
        if not items:
            raise NotFoundError(f"Property {resource_id} not found", status=404, body=body)
        return items[0]

    async def validate_version(self, resource_id: str, version: int) -> Dict[str, Any]:
        body = await self._request(
            'POST', f"/papi/v1/properties/{resource_id}/versions/{version}/validate"
        )
        return {
            'errors': body.get('errors') or [],
            'warnings': body.get('warnings') or [],
        }

    async def get_hostnames(self, resource_id: str, version: int) -> List[Dict[str, Any]]:
        body = await self._request(
            'GET', f"/papi/v1/properties/{resource_id}/versions/{version}/hostnames"
        )
        return body.get('hostnames', {}).get('items', []) or []

    async def get_rules(self, resource_id: str, version: int) -> Dict[str, Any]:
        body = await self._request(
            'GET', f"/papi/v1/properties/{resource_id}/versions/{version}/rules"
        )
        return body.get('rules', {}) or {}

    # Activations

    async def list_activations(self, resource_id: str) -> List[ActivationRecord]:
        body = await self._request('GET', f"/papi/v1/properties/{resource_id}/activations")
        items = body.get('activations', {}).get('items', []) or []
        records = []
        for item in items:
            try:
                records.append(ActivationRecord.from_api(item))
            except ControlPlaneError as e:
                # INACTIVE, NEW and other statuses outside ActivationState
                self.logger.debug(f"Skipping activation history entry: {e}")
        return records

    async def submit_activation(self, resource_id: str, payload: Dict[str, Any]) -> str:
        body = await self._request(
            'POST', f"/papi/v1/properties/{resource_id}/activations", json=payload
        )
        if body.get('activationId'):
            return body['activationId']
        link = body.get('activationLink', '')
        # activationLink ends with the activation id
        return link.rstrip('/').split('/')[-1].split('?')[0]

    async def get_activation(self, resource_id: str, activation_id: str) -> ActivationRecord:
        body = await self._request(
            'GET', f"/papi/v1/properties/{resource_id}/activations/{activation_id}"
        )
        items = body.get('activations', {}).get('items', []) or []
        if not items:
            raise NotFoundError(f"Activation {activation_id} not found", status=404, body=body)
        return ActivationRecord.from_api(items[0])

    async def cancel_activation(self, resource_id: str, activation_id: str) -> None:
        await self._request(
            'DELETE', f"/papi/v1/properties/{resource_id}/activations/{activation_id}"
        )

    # DNS change lists

    async def get_change_list(self, zone: str) -> Optional[ChangeList]:
        try:
            metadata = await self._request('GET', f"/config-dns/v2/changelists/{zone}")
            records = await self._request('GET', f"/config-dns/v2/changelists/{zone}/recordsets")
        except NotFoundError:
            return None
        metadata = dict(metadata)
        metadata.setdefault('zone', zone)
        metadata['recordSets'] = records.get('recordsets', []) if isinstance(records, dict) else []
        return ChangeList.from_api(metadata)

    async def delete_change_list(self, zone: str) -> None:
        await self._request('DELETE', f"/config-dns/v2/changelists/{zone}")

    async def create_change_list(self, zone: str) -> ChangeList:
        body = await self._request('POST', "/config-dns/v2/changelists", params={'zone': zone})
        body = dict(body or {})
        body.setdefault('zone', zone)
        return ChangeList.from_api(body)

    async def add_record_change(self, zone: str, change: Dict[str, Any]) -> None:
        await self._request(
            'POST', f"/config-dns/v2/changelists/{zone}/recordsets/add-change", json=change
        )

    async def submit_change_list(self, zone: str, comment: str) -> Dict[str, Any]:
        return await self._request(
            'POST', f"/config-dns/v2/changelists/{zone}/submit", json={'comment': comment}
        )

    # Name lookups

    async def list_contracts(self) -> List[Dict[str, Any]]:
        body = await self._request('GET', "/papi/v1/contracts")
        return body.get('contracts', {}).get('items', []) or []

    async def list_groups(self) -> List[Dict[str, Any]]:
        body = await self._request('GET', "/papi/v1/groups")
        return body.get('groups', {}).get('items', []) or []

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
