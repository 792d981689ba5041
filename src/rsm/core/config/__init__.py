"""rsm configuration: bundled YAML defaults, caller files, RSM_* env overrides."""
from .base import BaseDomainConfig
from .cache import clear_all_caches, get_cached_config
from .domains import RetryConfig
from .manager import ConfigManager

__all__ = [
    "BaseDomainConfig",
    "ConfigManager",
    "RetryConfig",
    "clear_all_caches",
    "get_cached_config",
]
