"""Factories for building clients and services from GlobalConfig"""
import logging
from typing import Optional

from ..activation.service import ActivationService
from ..cache.memory import InMemoryCacheBackend
from ..cache.name_resolver import NameResolver
from ..client.base_client import ControlPlaneClient
from ..client.http_client import HttpControlPlaneClient
from ..dns.changelist_guard import ChangeListGuard
from ..dns.record_service import DnsRecordService
from ..dns.zone_lock_manager import ZoneLockManager
from .global_config_loader import GlobalConfig


def create_client_from_global(global_config: GlobalConfig) -> HttpControlPlaneClient:
    cp = global_config.control_plane
    return HttpControlPlaneClient(
        base_url=cp.base_url,
        api_token=cp.api_token,
        timeout=cp.timeout,
        headers=cp.headers,
    )


def create_activation_service_from_global(
    global_config: GlobalConfig,
    client: Optional[ControlPlaneClient] = None
) -> ActivationService:
    """
    Create an ActivationService wired with a name-lookup cache.

    Args:
        global_config: The global configuration
        client: Control-plane client to reuse (a new HTTP client otherwise)
    """
    client = client or create_client_from_global(global_config)
    cache = InMemoryCacheBackend(max_size=global_config.cache.max_size)
    return ActivationService(
        client,
        name_resolver=NameResolver(client, cache),
        default_max_wait=global_config.activation.max_wait,
        submit_attempts=global_config.activation.submit_attempts,
    )


def create_dns_service_from_global(
    global_config: GlobalConfig,
    client: Optional[ControlPlaneClient] = None
) -> DnsRecordService:
    """Create a DnsRecordService; Redis zone locks are added when enabled"""
    logger = logging.getLogger(__name__)
    client = client or create_client_from_global(global_config)

    lock_manager = None
    if global_config.redis.enabled:
        lock_manager = ZoneLockManager(
            redis_url=global_config.redis.url,
            lock_timeout=global_config.redis.zone_lock_timeout,
        )
        logger.info(f"Using Redis zone locks at {global_config.redis.url}")

    return DnsRecordService(client, ChangeListGuard(client, lock_manager))
