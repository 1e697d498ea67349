"""
Application configuration module.

Settings are read from, in increasing priority: field defaults, an optional
YAML or JSON file named by ``CONFIG_PATH``, the ``.env`` file and the process
environment.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lms_backend.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./lms_assessments.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    CREATE_SCHEMA: bool = True

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # API settings
    API_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "LMS Assessments"
    ALLOW_ORIGINS: str = "*"
    ADMIN_USER_IDS: str = ""

    # Assessment settings
    START_ATTEMPT_MAX_RETRIES: int = 3
    ADMIN_ATTEMPTS_PAGE_LIMIT: int = 200

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("START_ATTEMPT_MAX_RETRIES", "ADMIN_ATTEMPTS_PAGE_LIMIT")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v

    @property
    def allowed_origins(self) -> list:
        return [origin.strip() for origin in self.ALLOW_ORIGINS.split(",") if origin.strip()]

    @property
    def admin_user_ids(self) -> set:
        return {user_id.strip() for user_id in self.ADMIN_USER_IDS.split(",") if user_id.strip()}


def _load_overlay(path: str) -> Dict[str, Any]:
    """Read a YAML or JSON settings overlay file."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}")
        return {}

    suffix = config_path.suffix.lower()
    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f) or {}
            elif suffix == '.json':
                data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported config file format: {suffix}", "CONFIG_PATH")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not parse {config_path}: {e}", "CONFIG_PATH")

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping", "CONFIG_PATH")
    return data


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Build a ``Settings`` instance.

    Values from the overlay file only fill in keys that are not already set in
    the environment, so the environment keeps the highest priority.

    Args:
        config_path: Optional overlay path; defaults to ``CONFIG_PATH``

    Returns:
        Loaded settings
    """
    config_path = config_path or os.environ.get("CONFIG_PATH")
    overlay = _load_overlay(config_path) if config_path else {}
    overrides = {key: value for key, value in overlay.items() if key not in os.environ}
    return Settings(**overrides)


settings = load_settings()
