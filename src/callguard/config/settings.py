"""ClientConfig dataclass and global configuration state.

Loading logic lives in the ``_ClientConfigLoader`` mixin (``loader.py``).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from callguard.config.domains import RateLimitSettings, RetrySettings
from callguard.config.loader import _ClientConfigLoader
from callguard.core.resilience import RateLimitConfig, RetryPredicate, RetryStrategy

_HANDLER_NAME = "callguard.stream"


@dataclass
class ClientConfig(_ClientConfigLoader):
    """Client configuration with support for env vars and TOML overrides."""

    # Client
    base_url: Optional[str] = None
    timeout: Optional[float] = 30.0
    default_headers: Dict[str, str] = field(default_factory=dict)

    # Logging
    log_level: str = "INFO"
    structured_logging: bool = False

    # Policies
    retry: RetrySettings = field(default_factory=RetrySettings)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)

    def build_strategy(self) -> RetryStrategy:
        return self.retry.build_strategy()

    def build_predicate(self) -> RetryPredicate:
        return self.retry.build_predicate()

    def build_rate_limit_config(self) -> RateLimitConfig:
        return self.rate_limit.build_config()

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        root_logger = logging.getLogger("callguard")
        root_logger.setLevel(level)

        # Reuse the handler from an earlier call instead of stacking another
        handler = next((h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME), None)
        if handler is None:
            handler = logging.StreamHandler()
            handler.set_name(_HANDLER_NAME)
            root_logger.addHandler(handler)
        handler.setFormatter(formatter)


# Global configuration instance
_config: Optional[ClientConfig] = None


def get_config() -> ClientConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ClientConfig.from_env()
    return _config


def set_config(config: Optional[ClientConfig]) -> None:
    """Set (or with ``None``, reset) the global configuration instance."""
    global _config
    _config = config
