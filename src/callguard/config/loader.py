"""ClientConfig loading logic.

Provides ``_ClientConfigLoader``, a mixin whose methods are inherited by
``ClientConfig`` (defined in ``settings.py``), keeping ``settings.py`` focused
on field definitions and the objects built from them.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, cast

from callguard.config.domains import _VALID_STRATEGIES, RateLimitSettings, RetrySettings
from callguard.config.parsing import (
    _parse_bool,
    _parse_choice,
    _parse_float,
    _parse_int,
    _parse_optional_float,
)
from callguard.core.errors import ConfigurationError

if TYPE_CHECKING:
    from callguard.config.settings import ClientConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "CALLGUARD_CONFIG_FILE"
_VALID_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


class _ClientConfigLoader:
    """Mixin providing config-loading methods for ``ClientConfig``.

    At runtime ``self`` is always a ``ClientConfig`` instance.
    """

    if TYPE_CHECKING:
        base_url: Optional[str]
        timeout: Optional[float]
        default_headers: Dict[str, str]
        log_level: str
        structured_logging: bool
        retry: RetrySettings
        rate_limit: RateLimitSettings

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ClientConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Explicit config file (argument or CALLGUARD_CONFIG_FILE), or
           project config (./callguard.toml)
        3. XDG config (~/.config/callguard/config.toml)
        4. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            config._load_toml(Path(toml_path), required=True)
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "callguard" / "config.toml"
            if xdg_config.exists():
                config._load_toml(xdg_config)
                logger.debug("Loaded XDG config from %s", xdg_config)

            project_config = Path("callguard.toml")
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug("Loaded project config from %s", project_config)

        config._load_env()
        return cast("ClientConfig", config)

    def _load_toml(self, path: Path, required: bool = False) -> None:
        """Load configuration from a TOML file."""
        if not path.exists():
            if required:
                raise ConfigurationError(f"Config file not found: {path}")
            logger.warning("Config file not found: %s", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

        self._apply_toml_dict(data)

    def _apply_toml_dict(self, data: Dict[str, Any]) -> None:
        if "client" in data:
            client = data["client"]
            if "base_url" in client:
                self.base_url = str(client["base_url"])
            if "timeout" in client:
                self.timeout = _parse_optional_float(client["timeout"], "client.timeout")
            if "default_headers" in client:
                self.default_headers.update(
                    {str(k): str(v) for k, v in client["default_headers"].items()}
                )

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _parse_choice(log["level"], "logging.level", _VALID_LOG_LEVELS).upper()
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "retry" in data:
            self.retry = RetrySettings.from_toml_dict(data["retry"])

        if "rate_limit" in data:
            self.rate_limit = RateLimitSettings.from_toml_dict(data["rate_limit"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if base_url := os.environ.get("CALLGUARD_BASE_URL"):
            self.base_url = base_url

        if timeout := os.environ.get("CALLGUARD_TIMEOUT"):
            self.timeout = _parse_optional_float(timeout, "CALLGUARD_TIMEOUT")

        if level := os.environ.get("CALLGUARD_LOG_LEVEL"):
            self.log_level = _parse_choice(level, "CALLGUARD_LOG_LEVEL", _VALID_LOG_LEVELS).upper()

        if strategy := os.environ.get("CALLGUARD_RETRY_STRATEGY"):
            self.retry.strategy = _parse_choice(
                strategy, "CALLGUARD_RETRY_STRATEGY", _VALID_STRATEGIES
            )

        if max_retries := os.environ.get("CALLGUARD_MAX_RETRIES"):
            self.retry.max_retries = _parse_int(max_retries, "CALLGUARD_MAX_RETRIES")

        if enabled := os.environ.get("CALLGUARD_RATE_LIMIT_ENABLED"):
            self.rate_limit.enabled = _parse_bool(enabled)

        if max_wait := os.environ.get("CALLGUARD_RATE_LIMIT_MAX_WAIT"):
            self.rate_limit.max_wait = _parse_float(max_wait, "CALLGUARD_RATE_LIMIT_MAX_WAIT")
