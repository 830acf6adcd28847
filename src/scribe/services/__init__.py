"""Service layer helpers (settings, events)."""

from .events import EventBus
from .settings import Settings, SettingsStore, settings_from_payload

__all__ = ["EventBus", "Settings", "SettingsStore", "settings_from_payload"]
