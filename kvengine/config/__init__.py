"""Configuration module for KV-Engine."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
