"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from scribe.plugin.headless import HeadlessHost
from tests.helpers import RecordingEditor


@pytest.fixture(autouse=True)
def _isolated_scribe_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in ("SCRIBE_DEBUG", "SCRIBE_SETTINGS_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SCRIBE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def editor() -> RecordingEditor:
    return RecordingEditor("Met with Acme Corp about the Q3 rollout")


@pytest.fixture
def host() -> HeadlessHost:
    return HeadlessHost()
