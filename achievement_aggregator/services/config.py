"""Configuration service for managing application settings."""

import json
import os
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig
from .errors import ConfigurationError
from .validation import ValidationResult

log = structlog.stdlib.get_logger()

API_KEY_ENV_VAR = "STEAM_API_KEY"


class ConfigurationService:
    """Service for managing application configuration."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "steam-achievement-aggregator" / "config.json"
        log.info("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file (or defaults) and apply environment overrides."""
        return self._apply_environment(self._load_file_config())

    def _load_file_config(self) -> AppConfig:
        if not self.config_path.exists():
            log.info("Configuration file not found, using defaults")
            return self._get_default_config()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data: dict[str, Any] = json.load(f)

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
                return self._get_default_config()

            log.info("Configuration loaded successfully")
            return config

        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            return self._get_default_config()

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file."""
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(validation_result.errors)}")

        # Ensure directory exists
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(config), f, indent=2, ensure_ascii=False)

            log.info("Configuration saved successfully")

        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.steam_api_key, str):
            errors.append("steam_api_key must be a string")

        if not isinstance(config.base_url, str) or not config.base_url.startswith(("http://", "https://")):
            errors.append("base_url must be an http(s) URL")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")
        elif config.request_timeout > 60:
            errors.append("request_timeout should not exceed 60 seconds")

        for name in ("upstream_cache_ttl", "response_cache_ttl", "games_cache_ttl", "achievements_cache_ttl"):
            value = getattr(config, name)
            if not isinstance(value, (int, float)) or value < 0:
                errors.append(f"{name} must be a non-negative number")

        positive_ints = (
            "cache_max_entries",
            "games_rate_window_ms",
            "games_rate_max_requests",
            "achievements_rate_window_ms",
            "achievements_rate_max_requests",
            "concurrent_achievement_fetches",
        )
        for name in positive_ints:
            value = getattr(config, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(f"{name} must be a positive integer")

        if isinstance(config.concurrent_achievement_fetches, int) and config.concurrent_achievement_fetches > 32:
            errors.append("concurrent_achievement_fetches should not exceed 32")

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if config.log_level not in valid_log_levels:
            errors.append(f"log_level must be one of: {', '.join(sorted(valid_log_levels))}")

        return ValidationResult(len(errors) == 0, errors)

    def _get_default_config(self) -> AppConfig:
        """Get default configuration."""
        return AppConfig()

    def _apply_environment(self, config: AppConfig) -> AppConfig:
        api_key = os.getenv(API_KEY_ENV_VAR)
        if api_key:
            log.debug("Steam API key taken from environment")
            return replace(config, steam_api_key=api_key)
        return config

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert dictionary to AppConfig, ignoring unknown keys."""
        known = {f.name for f in fields(AppConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            log.warning("Unknown configuration keys ignored", keys=unknown)
        return AppConfig(**{k: v for k, v in data.items() if k in known})


def require_api_key(config: AppConfig) -> str:
    """Return the configured Steam API key.

    Raises:
        ConfigurationError: If no key is configured
    """
    if not config.steam_api_key:
        raise ConfigurationError(
            message=f"Missing Steam API key. Set {API_KEY_ENV_VAR} or steam_api_key in the config file.",
            setting="steam_api_key",
            expected="a Steam Web API key",
        )
    return config.steam_api_key
