"""Configuration loading for menumirror."""

from .settings import DEFAULT_SECRET, SETTINGS_FILENAME, SyncSettings, load_settings

__all__ = ["DEFAULT_SECRET", "SETTINGS_FILENAME", "SyncSettings", "load_settings"]
