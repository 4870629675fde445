"""Configuration package."""

from settleup.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
