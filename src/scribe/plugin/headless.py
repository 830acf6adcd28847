"""In-process host used to run the plugin outside the note-taking application."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping

from ..services.settings import SettingsStore
from .host import EditorCommand, NoteEditor, RibbonIcon, SettingTab

__all__ = ["HeadlessHost", "HeadlessStatusBarItem"]

LOGGER = logging.getLogger(__name__)


class HeadlessStatusBarItem:
    def __init__(self) -> None:
        self.text = ""
        self.history: List[str] = []

    def set_text(self, text: str) -> None:
        self.text = text
        self.history.append(text)


class HeadlessHost:
    """Records registrations and runs commands by id.

    Plugin data lives in memory unless a :class:`SettingsStore` is supplied,
    in which case ``load_data``/``save_data`` go through its JSON file.
    """

    def __init__(
        self,
        *,
        data: Mapping[str, Any] | None = None,
        store: SettingsStore | None = None,
    ) -> None:
        self._data: Dict[str, Any] | None = dict(data) if data is not None else None
        self._store = store
        self.commands: Dict[str, EditorCommand] = {}
        self.ribbon_icons: List[RibbonIcon] = []
        self.status_items: List[HeadlessStatusBarItem] = []
        self.setting_tabs: List[SettingTab] = []
        self.notices: List[str] = []

    def add_command(self, command: EditorCommand) -> None:
        if command.id in self.commands:
            raise ValueError(f"Command {command.id!r} is already registered")
        self.commands[command.id] = command

    def add_ribbon_icon(self, icon: str, title: str, callback: Callable[[], None]) -> RibbonIcon:
        ribbon = RibbonIcon(icon=icon, title=title, callback=callback)
        self.ribbon_icons.append(ribbon)
        return ribbon

    def add_status_bar_item(self) -> HeadlessStatusBarItem:
        item = HeadlessStatusBarItem()
        self.status_items.append(item)
        return item

    def add_setting_tab(self, tab: SettingTab) -> None:
        self.setting_tabs.append(tab)

    def notice(self, message: str) -> None:
        LOGGER.info("Notice: %s", message)
        self.notices.append(message)

    async def load_data(self) -> Mapping[str, Any] | None:
        if self._store is not None:
            return self._store.read_payload() or None
        return dict(self._data) if self._data is not None else None

    async def save_data(self, data: Mapping[str, Any]) -> None:
        if self._store is not None:
            self._store.write_payload(data)
            return
        self._data = dict(data)

    async def run_command(self, command_id: str, editor: NoteEditor, view: Any = None) -> Any:
        """Invoke a registered command the way the host would, awaiting coroutines."""

        try:
            command = self.commands[command_id]
        except KeyError:
            raise KeyError(f"No command registered with id {command_id!r}") from None
        result = command.editor_callback(editor, view)
        if inspect.isawaitable(result):
            result = await result
        return result

    def click_ribbon(self, index: int = 0) -> None:
        self.ribbon_icons[index].callback()
