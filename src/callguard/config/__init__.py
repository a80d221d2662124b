"""Configuration package for callguard.

Sub-modules:
    parsing  – value parsing helpers
    domains  – RetrySettings, RateLimitSettings
    loader   – ClientConfig loading mixin (_ClientConfigLoader)
    settings – ClientConfig dataclass, get_config/set_config globals
"""

from callguard.config.domains import RateLimitSettings, RetrySettings
from callguard.config.loader import CONFIG_FILE_ENV_VAR
from callguard.config.settings import ClientConfig, get_config, set_config

__all__ = [
    "CONFIG_FILE_ENV_VAR",
    "ClientConfig",
    "RateLimitSettings",
    "RetrySettings",
    "get_config",
    "set_config",
]
