from .global_config_loader import (
    GlobalConfig,
    ControlPlaneConfig,
    ActivationConfig,
    RedisConfig,
    CacheConfig,
    ApiConfig,
    load_global_config,
    get_global_config,
    set_global_config,
)

__all__ = [
    'GlobalConfig',
    'ControlPlaneConfig',
    'ActivationConfig',
    'RedisConfig',
    'CacheConfig',
    'ApiConfig',
    'load_global_config',
    'get_global_config',
    'set_global_config',
]
