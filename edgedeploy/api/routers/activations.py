"""
API endpoints for activations.
"""
from fastapi import APIRouter, HTTPException
from typing import Optional

from ...activation.service import ActivationService
from ...core.exceptions import EdgeDeployError
from ...core.models import ActivationRequest, PlanItem
from ..errors import to_http_exception
from ..models.api_models import ActivateRequest, PlanRequest, ValidateRequest, WaitRequest

router = APIRouter(prefix="/api/activations", tags=["activations"])

# Global activation service (will be initialized by main app)
_activation_service: Optional[ActivationService] = None


def set_activation_service(service: Optional[ActivationService]):
    """Set the activation service instance"""
    global _activation_service
    _activation_service = service


def get_activation_service() -> ActivationService:
    """Get the activation service instance"""
    if _activation_service is None:
        raise HTTPException(status_code=500, detail="Activation service not initialized")
    return _activation_service


@router.post("/validate")
async def validate(request: ValidateRequest):
    """Run preflight validation for a version"""
    service = get_activation_service()
    try:
        result = await service.validate(
            request.resource_id,
            request.network,
            request.version,
            request.require_all_preflight_checks
        )
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return result.to_dict()


@router.post("")
async def activate(request: ActivateRequest):
    """
    Activate a version.

    By default returns right after submission with outcome ``submitted``;
    set ``wait`` to block until a terminal state or ``max_wait``.
    """
    service = get_activation_service()
    try:
        activation_request = ActivationRequest(
            resource_id=request.resource_id,
            version=await service.resolve_version(request.resource_id, request.version),
            network=request.network,
            note=request.note,
            notify_emails=tuple(request.notify_emails),
            fast_push=request.fast_push,
            acknowledge_warnings=request.acknowledge_warnings,
        )
        result = await service.activate(
            activation_request,
            validate_first=request.validate_first,
            wait=request.wait,
            max_wait=request.max_wait,
            rollback_on_failure=request.rollback_on_failure,
            require_all_preflight_checks=request.require_all_preflight_checks,
        )
    except EdgeDeployError as e:
        raise to_http_exception(e)

    if result.validation is not None and not result.validation.valid:
        raise HTTPException(status_code=400, detail=result.to_dict())
    return result.to_dict()


@router.post("/plan")
async def plan(request: PlanRequest):
    """Build an activation plan and optionally execute it"""
    service = get_activation_service()
    items = [
        PlanItem(resource_id=i.resource_id, network=i.network, version=i.version)
        for i in request.items
    ]
    try:
        activation_plan = service.plan(items, request.strategy, request.dependencies)
        if not request.execute:
            return {"plan": activation_plan.to_dict(), "results": None}

        outcomes = await service.execute_plan(
            activation_plan,
            validate_first=request.validate_first,
            max_wait=request.max_wait,
            rollback_on_failure=request.rollback_on_failure,
            continue_on_error=request.continue_on_error,
        )
    except EdgeDeployError as e:
        raise to_http_exception(e)

    return {
        "plan": activation_plan.to_dict(),
        "results": [o.to_dict() for o in outcomes],
        "succeeded": all(o.succeeded for o in outcomes),
    }


@router.get("/{resource_id}/{activation_id}")
async def get_progress(resource_id: str, activation_id: str):
    """Current progress of an activation"""
    service = get_activation_service()
    try:
        progress = await service.get_progress(resource_id, activation_id)
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return progress.to_dict()


@router.post("/{resource_id}/{activation_id}/wait")
async def wait(resource_id: str, activation_id: str, request: WaitRequest):
    service = get_activation_service()
    try:
        result = await service.wait(
            resource_id,
            activation_id,
            max_wait=request.max_wait,
            rollback_on_failure=request.rollback_on_failure,
        )
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return result.to_dict()


@router.delete("/{resource_id}/{activation_id}")
async def cancel(resource_id: str, activation_id: str):
    """Cancel a PENDING activation"""
    service = get_activation_service()
    try:
        record = await service.cancel(resource_id, activation_id)
    except EdgeDeployError as e:
        raise to_http_exception(e)
    return {"activation_id": activation_id, "cancelled": True, "previous_state": record.state.value}
