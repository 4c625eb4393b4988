"""Configuration package for the Prompt Locator engine."""

from .settings import DedupPolicy, Settings, get_settings, reset_settings

__all__ = ["DedupPolicy", "Settings", "get_settings", "reset_settings"]
