"""
Human-readable names for contract, group and product ids.

Names are looked up on demand and kept for the life of the resolver; a
failed lookup falls back to a label derived from the id and is not cached,
so a later call can still succeed.
"""
import logging
from typing import Optional, TYPE_CHECKING

from .base import BaseCacheBackend
from .memory import InMemoryCacheBackend

if TYPE_CHECKING:
    from ..client.base_client import ControlPlaneClient


PRODUCT_NAMES = {
    'prd_Fresca': 'Ion Standard',
    'prd_SPM': 'Ion Premier',
    'prd_Site_Accel': 'Dynamic Site Accelerator (DSA)',
    'prd_Web_Accel': 'Web Application Accelerator',
    'prd_Download_Delivery': 'Download Delivery',
    'prd_Adaptive_Media_Delivery': 'Adaptive Media Delivery (AMD)',
    'prd_Security_Failover': 'Security Failover',
    'prd_Site_Defender': 'Site Defender',
    'prd_Enterprise': 'Enterprise',
}


class NameResolver:
    """Resolve ids to display names through an injectable cache"""

    def __init__(
        self,
        client: 'ControlPlaneClient',
        cache: Optional[BaseCacheBackend] = None
    ):
        self.client = client
        self.cache = cache or InMemoryCacheBackend(max_size=1024)
        self.logger = logging.getLogger(f"{__name__}.NameResolver")

    async def contract_name(self, contract_id: str) -> str:
        cached = await self.cache.get(('contract', contract_id))
        if cached is not None:
            return cached

        try:
            contracts = await self.client.list_contracts()
            for contract in contracts:
                name = contract.get('contractTypeName')
                if name:
                    await self.cache.set(('contract', contract['contractId']), name)
            match = next((c for c in contracts if c.get('contractId') == contract_id), None)
            if match and match.get('contractTypeName'):
                return match['contractTypeName']
        except Exception as e:
            self.logger.debug(f"Failed to get contract name for {contract_id}: {e}")

        return f"Contract {contract_id.replace('ctr_', '')}"

    async def group_name(self, group_id: str) -> str:
        cached = await self.cache.get(('group', group_id))
        if cached is not None:
            return cached

        try:
            groups = await self.client.list_groups()
            for group in groups:
                name = group.get('groupName')
                if name:
                    await self.cache.set(('group', group['groupId']), name)
            match = next((g for g in groups if g.get('groupId') == group_id), None)
            if match and match.get('groupName'):
                return match['groupName']
        except Exception as e:
            self.logger.debug(f"Failed to get group name for {group_id}: {e}")

        return f"Group {group_id}"

    async def product_name(self, product_id: str) -> str:
        cached = await self.cache.get(('product', product_id))
        if cached is not None:
            return cached

        name = PRODUCT_NAMES.get(product_id) or product_id.replace('prd_', '').replace('_', ' ')
        await self.cache.set(('product', product_id), name)
        return name
