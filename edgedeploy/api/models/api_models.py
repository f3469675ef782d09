from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from ...core.enums import ActivationStrategy, Network


class ValidateRequest(BaseModel):
    """Request model for preflight validation"""
    resource_id: str
    network: Network = Network.STAGING
    version: Optional[int] = None
    require_all_preflight_checks: bool = False


class ActivateRequest(BaseModel):
    """Request model for activating a version"""
    resource_id: str
    network: Network = Network.STAGING
    version: Optional[int] = None
    note: Optional[str] = None
    notify_emails: List[str] = Field(default_factory=list)
    fast_push: bool = True
    acknowledge_warnings: bool = True
    validate_first: bool = True
    wait: bool = False
    max_wait: Optional[float] = None
    rollback_on_failure: bool = False
    require_all_preflight_checks: bool = False


class WaitRequest(BaseModel):
    """Request model for resuming the wait on an activation"""
    max_wait: Optional[float] = None
    rollback_on_failure: bool = False


class PlanItemModel(BaseModel):
    resource_id: str
    network: Network
    version: Optional[int] = None


class PlanRequest(BaseModel):
    """Request model for building (and optionally executing) a plan"""
    items: List[PlanItemModel]
    strategy: ActivationStrategy = ActivationStrategy.SEQUENTIAL
    dependencies: Dict[str, List[str]] = Field(default_factory=dict)
    execute: bool = False
    validate_first: bool = True
    continue_on_error: bool = False
    rollback_on_failure: bool = False
    max_wait: Optional[float] = None


class UpsertRecordRequest(BaseModel):
    """Request model for creating or replacing a record set"""
    name: str
    type: str
    ttl: int = 300
    rdata: List[str]
    comment: Optional[str] = None


class SubmitChangeListRequest(BaseModel):
    comment: Optional[str] = None
