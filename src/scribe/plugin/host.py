"""Contracts between the plugin and the note-taking host application."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol, Union

__all__ = [
    "CommandCallback",
    "EditorCommand",
    "NoteEditor",
    "PluginHost",
    "RibbonIcon",
    "SettingTab",
    "StatusBarItem",
]


class NoteEditor(Protocol):
    """The two editor operations the rewrite command relies on."""

    def get_value(self) -> str:
        ...

    def set_value(self, text: str) -> None:
        ...


class StatusBarItem(Protocol):
    def set_text(self, text: str) -> None:
        ...


class SettingTab(Protocol):
    """A settings panel the host renders from field descriptions."""

    def display(self) -> list[Any]:
        ...


CommandCallback = Callable[[NoteEditor, Any], Union[Awaitable[None], None]]


@dataclass(slots=True)
class EditorCommand:
    """An editor command; the host passes the active editor and view on invocation."""

    id: str
    name: str
    editor_callback: CommandCallback


@dataclass(slots=True)
class RibbonIcon:
    icon: str
    title: str
    callback: Callable[[], None]
    css_classes: list[str] = field(default_factory=list)

    def add_class(self, name: str) -> None:
        if name not in self.css_classes:
            self.css_classes.append(name)


class PluginHost(Protocol):
    """Capability registration and storage offered by the host application."""

    def add_command(self, command: EditorCommand) -> None:
        ...

    def add_ribbon_icon(self, icon: str, title: str, callback: Callable[[], None]) -> RibbonIcon:
        ...

    def add_status_bar_item(self) -> StatusBarItem:
        ...

    def add_setting_tab(self, tab: SettingTab) -> None:
        ...

    def notice(self, message: str) -> None:
        ...

    async def load_data(self) -> Mapping[str, Any] | None:
        ...

    async def save_data(self, data: Mapping[str, Any]) -> None:
        ...
