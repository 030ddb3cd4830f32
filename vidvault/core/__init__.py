"""Core module for configuration and utilities."""

from vidvault.core.config import Settings, UploadConfig, settings

__all__ = [
    "Settings",
    "UploadConfig",
    "settings",
]
