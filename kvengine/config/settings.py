"""
KV-Engine Configuration Settings

This module contains all configuration constants for the engine and the
optional protocol server. Values can be overridden with environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Engine and server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("KV_ENGINE_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("KV_ENGINE_PORT", "7171"))

    # Protocol limits
    MAX_KEY_LENGTH: int = 256
    MAX_VALUE_LENGTH: int = 4096

    # Expiry settings
    SWEEP_INTERVAL: float = float(os.environ.get("KV_ENGINE_SWEEP_INTERVAL", "0.1"))

    # Job queue settings
    MAX_RETRIES: int = int(os.environ.get("KV_ENGINE_MAX_RETRIES", "3"))
    PROCESSING_TIMEOUT: int = int(os.environ.get("KV_ENGINE_PROCESSING_TIMEOUT", "300"))

    # Rate limiter settings
    TOKEN_BUCKET_TTL: int = 3600

    # Connection settings
    READ_BUFFER_SIZE: int = 65536

    # Logging settings
    DEBUG: bool = os.environ.get("KV_ENGINE_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("KV_ENGINE_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
