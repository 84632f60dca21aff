"""Core configuration for the importer."""

from .config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
