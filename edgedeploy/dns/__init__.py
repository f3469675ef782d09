from .changelist_guard import ChangeListGuard
from .record_service import DnsRecordService, EmptyChangeListError
from .zone_lock_manager import ZoneLockManager

__all__ = [
    'ChangeListGuard',
    'DnsRecordService',
    'EmptyChangeListError',
    'ZoneLockManager',
]
