import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field


@dataclass
class ControlPlaneConfig:
    """Control-plane connection settings"""
    base_url: str = "http://localhost:8080"
    api_token: Optional[str] = None
    timeout: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class ActivationConfig:
    """Defaults for activate/wait calls"""
    max_wait: float = 1800.0
    validate_first: bool = True
    rollback_on_failure: bool = False
    submit_attempts: int = 3
    require_all_preflight_checks: bool = False


@dataclass
class RedisConfig:
    """Redis configuration for cross-process zone locks"""
    enabled: bool = False
    url: str = "redis://localhost:6379"
    zone_lock_timeout: int = 300


@dataclass
class CacheConfig:
    """Name-lookup cache settings"""
    max_size: int = 1024


@dataclass
class ApiConfig:
    """HTTP API server settings"""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class GlobalConfig:
    """Global configuration for the CLI and the HTTP API"""
    control_plane: ControlPlaneConfig
    activation: ActivationConfig
    redis: RedisConfig
    cache: CacheConfig
    api: ApiConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GlobalConfig':
        """Create GlobalConfig from dictionary"""
        return cls(
            control_plane=ControlPlaneConfig(**data.get('control_plane', {})),
            activation=ActivationConfig(**data.get('activation', {})),
            redis=RedisConfig(**data.get('redis', {})),
            cache=CacheConfig(**data.get('cache', {})),
            api=ApiConfig(**data.get('api', {}))
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'GlobalConfig':
        """Load GlobalConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            return cls.default()

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def default(cls) -> 'GlobalConfig':
        """Return default configuration"""
        return cls(
            control_plane=ControlPlaneConfig(),
            activation=ActivationConfig(),
            redis=RedisConfig(),
            cache=CacheConfig(),
            api=ApiConfig()
        )

    def apply_env_overrides(self) -> 'GlobalConfig':
        """EDGEDEPLOY_BASE_URL and EDGEDEPLOY_API_TOKEN take precedence over the file"""
        base_url = os.environ.get('EDGEDEPLOY_BASE_URL')
        if base_url:
            self.control_plane.base_url = base_url
        api_token = os.environ.get('EDGEDEPLOY_API_TOKEN')
        if api_token:
            self.control_plane.api_token = api_token
        return self


# Global instance - can be overridden
_global_config: Optional[GlobalConfig] = None


def load_global_config(config_path: Optional[str] = None) -> GlobalConfig:
    """
    Load global configuration from YAML file.
    If no path provided, looks for edgedeploy.yaml in standard locations.
    """
    global _global_config

    if config_path:
        _global_config = GlobalConfig.from_yaml(config_path).apply_env_overrides()
        return _global_config

    search_paths = [
        Path("./edgedeploy.yaml"),
        Path("./config/edgedeploy.yaml"),
        Path.home() / ".edgedeploy" / "config.yaml",
        Path("/etc/edgedeploy/edgedeploy.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            _global_config = GlobalConfig.from_yaml(str(path)).apply_env_overrides()
            return _global_config

    _global_config = GlobalConfig.default().apply_env_overrides()
    return _global_config


def get_global_config() -> GlobalConfig:
    """Get the loaded global configuration"""
    global _global_config
    if _global_config is None:
        _global_config = load_global_config()
    return _global_config


def set_global_config(config: Optional[GlobalConfig]) -> None:
    global _global_config
    _global_config = config
