"""
edgedeploy - CDN control-plane client for safe configuration rollouts

Main modules:
- core: Data models, enums and exceptions
- client: Control-plane client interface and its aiohttp implementation
- activation: Preflight validation, submission, progress polling, rollback and planning
- dns: Change-list guard and DNS record edits
- cache: Name-lookup cache for contracts, groups and products
- config: Global configuration loading
- cli / api: Command line and HTTP surfaces
"""

__version__ = "1.0.0"

from .core.enums import ActivationOutcome, ActivationState, ActivationStrategy, Network
from .core.models import ActivationRequest, ActivationResult, PlanItem, ValidationResult
from .client.http_client import HttpControlPlaneClient
from .activation.service import ActivationService
from .dns.changelist_guard import ChangeListGuard
from .dns.record_service import DnsRecordService

__all__ = [
    'ActivationOutcome',
    'ActivationState',
    'ActivationStrategy',
    'Network',
    'ActivationRequest',
    'ActivationResult',
    'PlanItem',
    'ValidationResult',
    'HttpControlPlaneClient',
    'ActivationService',
    'ChangeListGuard',
    'DnsRecordService',
]
