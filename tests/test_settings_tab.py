"""Tests for the settings tab."""

from __future__ import annotations

import pytest

from scribe.plugin.headless import HeadlessHost
from scribe.plugin.scribe_plugin import ScribePlugin
from scribe.plugin.settings_tab import ScribeSettingTab


@pytest.fixture
def tab(host: HeadlessHost) -> ScribeSettingTab:
    return ScribeSettingTab(ScribePlugin(host))


def test_display_lists_editable_fields(tab: ScribeSettingTab) -> None:
    fields = {field.key: field for field in tab.display()}

    assert list(fields) == ["endpoint_url", "model", "framing", "request_timeout"]
    assert fields["endpoint_url"].value == "http://localhost:11434/api/generate"
    assert fields["model"].value == "llama3"
    assert fields["framing"].choices == ("lines", "chunk")
    assert fields["request_timeout"].value == ""


@pytest.mark.asyncio
async def test_update_persists_through_host(tab: ScribeSettingTab, host: HeadlessHost) -> None:
    updated = await tab.update("model", "  mistral ")

    assert updated.model == "mistral"
    assert tab.plugin.settings.model == "mistral"
    assert (await host.load_data())["model"] == "mistral"


@pytest.mark.asyncio
async def test_timeout_round_trips_through_display(tab: ScribeSettingTab) -> None:
    await tab.update("request_timeout", "90")
    assert tab.plugin.settings.request_timeout == 90.0
    assert tab.display()[3].value == "90"

    await tab.update("request_timeout", "")
    assert tab.plugin.settings.request_timeout is None


@pytest.mark.asyncio
async def test_framing_is_normalized(tab: ScribeSettingTab) -> None:
    updated = await tab.update("framing", "Chunk")

    assert updated.framing == "chunk"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("endpoint_url", "localhost:11434"),
        ("endpoint_url", "ftp://example.com/api"),
        ("model", "   "),
        ("framing", "websocket"),
        ("request_timeout", "-1"),
        ("request_timeout", "forever"),
    ],
)
async def test_invalid_values_are_rejected(tab: ScribeSettingTab, key: str, value: str) -> None:
    before = tab.plugin.settings

    with pytest.raises(ValueError):
        await tab.update(key, value)

    assert tab.plugin.settings == before


@pytest.mark.asyncio
async def test_unknown_key_is_rejected(tab: ScribeSettingTab) -> None:
    with pytest.raises(KeyError):
        await tab.update("temperature", "0.2")
