"""Settings tab describing the editable plugin settings."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..ai.client import DEFAULT_ENDPOINT_URL, DEFAULT_MODEL
from ..ai.stream_decoder import FRAMING_CHOICES
from ..services.settings import SETTING_COERCERS, Settings

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .scribe_plugin import ScribePlugin

__all__ = ["ScribeSettingTab", "SettingField"]


@dataclass(slots=True, frozen=True)
class SettingField:
    """One row of the settings tab as the host should render it."""

    key: str
    name: str
    description: str
    value: str
    placeholder: str = ""
    choices: tuple[str, ...] | None = None


_EDITABLE_KEYS: tuple[str, ...] = ("endpoint_url", "model", "framing", "request_timeout")


class ScribeSettingTab:
    """Describes the plugin settings and applies edits made in the host UI."""

    def __init__(self, plugin: "ScribePlugin") -> None:
        self.plugin = plugin

    def display(self) -> list[SettingField]:
        settings = self.plugin.settings
        timeout = "" if settings.request_timeout is None else f"{settings.request_timeout:g}"
        return [
            SettingField(
                key="endpoint_url",
                name="Generation endpoint",
                description="URL of the local generate API that streams the rewrite.",
                value=settings.endpoint_url,
                placeholder=DEFAULT_ENDPOINT_URL,
            ),
            SettingField(
                key="model",
                name="Model",
                description="Model identifier sent with every request.",
                value=settings.model,
                placeholder=DEFAULT_MODEL,
            ),
            SettingField(
                key="framing",
                name="Stream framing",
                description=(
                    "'lines' buffers partial lines until they are complete; "
                    "'chunk' parses every network chunk on its own and drops split fragments."
                ),
                value=settings.framing,
                choices=FRAMING_CHOICES,
            ),
            SettingField(
                key="request_timeout",
                name="Request timeout (seconds)",
                description="Leave empty to wait for the server indefinitely.",
                value=timeout,
            ),
        ]

    async def update(self, key: str, value: str) -> Settings:
        """Validate ``value`` for ``key``, then persist and apply the new settings."""

        if key not in _EDITABLE_KEYS:
            raise KeyError(f"Unknown setting {key!r}")
        coerce = SETTING_COERCERS[key]
        updated = replace(self.plugin.settings, **{key: coerce(value)})
        await self.plugin.update_settings(updated)
        return updated
