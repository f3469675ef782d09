"""
API endpoints for DNS record edits.
"""
from fastapi import APIRouter, HTTPException, Query
from typing import Optional

from ...core.exceptions import EdgeDeployError
from ...dns.record_service import DnsRecordService, EmptyChangeListError
from ..errors import to_http_exception
from ..models.api_models import SubmitChangeListRequest, UpsertRecordRequest

router = APIRouter(prefix="/api/dns", tags=["dns"])

_dns_service: Optional[DnsRecordService] = None


def set_dns_service(service: Optional[DnsRecordService]):
    """Set the DNS record service instance"""
    global _dns_service
    _dns_service = service


def get_dns_service() -> DnsRecordService:
    if _dns_service is None:
        raise HTTPException(status_code=500, detail="DNS service not initialized")
    return _dns_service


@router.put("/zones/{zone}/records")
async def upsert_record(zone: str, request: UpsertRecordRequest):
    """Create or replace a record set"""
    service = get_dns_service()
    try:
        response = await service.upsert_record(
            zone, request.name, request.type.upper(), request.ttl, request.rdata, request.comment
        )
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return {"zone": zone, "name": request.name, "type": request.type.upper(), "submit": response}


@router.delete("/zones/{zone}/records/{name}/{record_type}")
async def delete_record(
    zone: str,
    name: str,
    record_type: str,
    comment: Optional[str] = Query(None, description="Submit comment")
):
    """Delete a record set"""
    service = get_dns_service()
    try:
        response = await service.delete_record(zone, name, record_type.upper(), comment)
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return {"zone": zone, "name": name, "type": record_type.upper(), "submit": response}


@router.post("/zones/{zone}/changelist/reset")
async def reset_change_list(zone: str):
    """Discard any pending change list and open an empty one"""
    service = get_dns_service()
    try:
        change_list = await service.guard.reset(zone)
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return change_list.to_dict()


@router.post("/zones/{zone}/changelist/submit")
async def submit_change_list(zone: str, request: SubmitChangeListRequest):
    service = get_dns_service()
    try:
        response = await service.submit_change_list(zone, request.comment)
    except EmptyChangeListError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return {"zone": zone, "submit": response}
