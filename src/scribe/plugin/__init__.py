"""Host integration: contracts, the plugin itself, and a headless host."""

from .headless import HeadlessHost
from .host import EditorCommand, NoteEditor, PluginHost, RibbonIcon
from .scribe_plugin import COMMAND_ID, COMMAND_NAME, ScribePlugin
from .settings_tab import ScribeSettingTab, SettingField

__all__ = [
    "COMMAND_ID",
    "COMMAND_NAME",
    "EditorCommand",
    "HeadlessHost",
    "NoteEditor",
    "PluginHost",
    "RibbonIcon",
    "ScribePlugin",
    "ScribeSettingTab",
    "SettingField",
]
