"""The Scribe plugin: registers the rewrite command with the host."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..ai.ai_types import GenerationResult, MalformedFragment
from ..ai.client import ClientSettings, GenerationClient
from ..ai.prompts import build_rewrite_prompt
from ..services.events import (
    EventBus,
    FragmentApplied,
    FragmentRejected,
    GenerationCompleted,
    GenerationFailed,
    GenerationStarted,
    NoticePosted,
)
from ..services.settings import Settings, settings_from_payload, settings_to_payload
from .host import EditorCommand, NoteEditor, PluginHost, StatusBarItem
from .settings_tab import ScribeSettingTab

__all__ = ["ScribePlugin"]

LOGGER = logging.getLogger(__name__)

COMMAND_ID = "rewrite-note"
COMMAND_NAME = "Scribe: Rewrite Note with LLM."
RIBBON_ICON = "dice"
RIBBON_TITLE = "Greet"
RIBBON_CSS_CLASS = "scribe-ribbon-class"
STATUS_IDLE = "Scribe is enabled"
STATUS_RUNNING = "Scribe: generating…"

ClientFactory = Callable[[Settings], GenerationClient]


def _default_client_factory(settings: Settings) -> GenerationClient:
    return GenerationClient(ClientSettings.from_settings(settings))


class ScribePlugin:
    """Wires the prompt builder and generation client into the host."""

    def __init__(
        self,
        host: PluginHost,
        *,
        client_factory: ClientFactory | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._host = host
        self._client_factory = client_factory or _default_client_factory
        self._bus = bus or EventBus()
        self.settings = Settings()
        self._client: GenerationClient | None = None
        self._retired_clients: list[GenerationClient] = []
        self._status_item: StatusBarItem | None = None
        self._active_generations = 0

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def client(self) -> GenerationClient:
        """Return the generation client for the current settings, building it on demand."""

        if self._client is None:
            self._client = self._client_factory(self.settings)
        return self._client

    async def on_load(self) -> None:
        LOGGER.info("loading plugin")
        await self.load_settings()

        ribbon = self._host.add_ribbon_icon(RIBBON_ICON, RIBBON_TITLE, self._on_ribbon_click)
        ribbon.add_class(RIBBON_CSS_CLASS)

        self._status_item = self._host.add_status_bar_item()
        self._status_item.set_text(STATUS_IDLE)
        for event_type, handler in self._subscriptions():
            self._bus.subscribe(event_type, handler)

        self._host.add_command(
            EditorCommand(id=COMMAND_ID, name=COMMAND_NAME, editor_callback=self.rewrite_note)
        )
        self._host.add_setting_tab(ScribeSettingTab(self))

    async def on_unload(self) -> None:
        LOGGER.info("unloading plugin")
        for event_type, handler in self._subscriptions():
            self._bus.unsubscribe(event_type, handler)
        if self._client is not None:
            self._retired_clients.append(self._client)
            self._client = None
        await self._close_retired_clients()

    async def load_settings(self) -> None:
        self.settings = settings_from_payload(await self._host.load_data())
        LOGGER.debug(
            "Settings loaded (endpoint=%s, model=%s, framing=%s)",
            self.settings.endpoint_url,
            self.settings.model,
            self.settings.framing,
        )

    async def save_settings(self) -> None:
        await self._host.save_data(settings_to_payload(self.settings))

    async def update_settings(self, settings: Settings) -> None:
        """Persist ``settings`` and rebuild the client for the next invocation."""

        self.settings = settings
        await self.save_settings()
        if self._client is not None:
            self._retired_clients.append(self._client)
            self._client = None
        if self._active_generations == 0:
            await self._close_retired_clients()

    async def rewrite_note(self, editor: NoteEditor, view: Any = None) -> GenerationResult:
        """Command callback: stream a template rewrite of the note into ``editor``.

        Every applied fragment overwrites the whole buffer, so edits made
        while the stream runs are lost. Failures never raise into the host;
        they are logged and shown as a notice.
        """

        note_text = editor.get_value()
        prompt = build_rewrite_prompt(note_text)
        client = self.client
        applied = 0

        def apply(text: str) -> None:
            nonlocal applied
            editor.set_value(text)
            applied += 1
            self._bus.publish(FragmentApplied(index=applied, text_length=len(text)))

        def rejected(fragment: MalformedFragment) -> None:
            self._bus.publish(FragmentRejected(reason=fragment.reason))

        LOGGER.debug("Rewriting note (%d chars)", len(note_text))
        self._bus.publish(GenerationStarted(prompt_chars=len(prompt)))
        self._active_generations += 1
        try:
            result = await client.generate(prompt, apply, on_rejected=rejected)
        finally:
            self._active_generations -= 1
            if self._active_generations == 0:
                await self._close_retired_clients()

        if result.ok:
            self._bus.publish(GenerationCompleted(result=result))
        else:
            self._bus.publish(
                GenerationFailed(error=result.error or "unknown error", status_code=result.status_code)
            )
            self._bus.publish(NoticePosted(message=f"Scribe: generation failed ({result.error})"))
        return result

    def _subscriptions(self) -> list[tuple[type, Callable[[Any], None]]]:
        return [
            (GenerationStarted, self._on_generation_started),
            (GenerationCompleted, self._on_generation_completed),
            (GenerationFailed, self._on_generation_failed),
            (NoticePosted, self._on_notice),
        ]

    async def _close_retired_clients(self) -> None:
        while self._retired_clients:
            await self._retired_clients.pop().aclose()

    def _on_ribbon_click(self) -> None:
        self._bus.publish(NoticePosted(message=f"Run '{COMMAND_NAME}' to rewrite the open note."))

    def _set_status(self, text: str) -> None:
        if self._status_item is not None:
            self._status_item.set_text(text)

    def _on_generation_started(self, event: GenerationStarted) -> None:
        self._set_status(STATUS_RUNNING)

    def _on_generation_completed(self, event: GenerationCompleted) -> None:
        self._set_status(f"Scribe: done ({event.result.fragments_applied} fragments)")

    def _on_generation_failed(self, event: GenerationFailed) -> None:
        self._set_status("Scribe: generation failed")

    def _on_notice(self, event: NoticePosted) -> None:
        self._host.notice(event.message)
