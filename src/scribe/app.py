"""Headless entry point: run the rewrite command against a note file."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence, TextIO

from .ai.ai_types import GenerationResult
from .ai.prompts import build_rewrite_prompt
from .editor.document_model import DocumentMetadata, DocumentState
from .plugin.headless import HeadlessHost
from .plugin.scribe_plugin import COMMAND_ID, ScribePlugin
from .services.settings import SETTING_COERCERS, Settings, SettingsStore, settings_to_payload
from .utils import logging as logging_utils
from .utils.file_io import is_markdown_path, read_note, write_note

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    level = logging_utils.level_for(debug)
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Path | None = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


async def rewrite_document(settings: Settings, document: DocumentState) -> GenerationResult:
    """Load the plugin into a headless host and run the rewrite command on ``document``."""

    host = HeadlessHost(data=settings_to_payload(settings))
    plugin = ScribePlugin(host)
    await plugin.on_load()
    try:
        return await host.run_command(COMMAND_ID, document)
    finally:
        await plugin.on_unload()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `scribe` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    debug = _env_flag("SCRIBE_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("SCRIBE_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(store=store, overrides=cli_overrides or None)
    if args.dump_settings:
        _dump_settings(settings, store, overrides=cli_overrides)
        return 0
    if args.note is None:
        parser.error("a note path is required unless --dump-settings is given")

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    note_path = Path(args.note).expanduser()
    try:
        text = read_note(note_path)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Cannot read note {note_path}: {exc}", file=sys.stderr)
        return 2
    if not is_markdown_path(note_path):
        _LOGGER.warning("%s does not look like a Markdown note; rewriting anyway", note_path)

    if args.dry_run:
        sys.stdout.write(build_rewrite_prompt(text))
        return 0

    document = DocumentState(text=text, metadata=DocumentMetadata(path=note_path))
    result = asyncio.run(rewrite_document(settings, document))
    if not result.ok:
        # Partial text stays out of the file so the original note survives.
        print(f"Generation failed: {result.error}", file=sys.stderr)
        return 1
    if document.dirty:
        write_note(note_path, document.text)
        _LOGGER.info("Rewrote %s (%d chars)", note_path, len(document.text))
    else:
        _LOGGER.info("Server streamed no text; %s left unchanged", note_path)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scribe",
        description="Rewrite a note into the meeting template using a local LLM.",
    )
    parser.add_argument("note", nargs="?", help="Path of the Markdown note to rewrite in place.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the prompt that would be sent and exit.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.scribe/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in SETTING_COERCERS:
            raise ValueError(f"Unknown setting '{key}'.")
        value: Any = raw_value.strip()
        if key == "default_headers":
            try:
                value = json.loads(value or "{}")
            except json.JSONDecodeError as exc:
                raise ValueError("default_headers must be a JSON object") from exc
        overrides[key] = SETTING_COERCERS[key](value)
    return overrides


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    output = {
        "settings": asdict(settings),
        "meta": {
            "path": str(store.path),
            "cli_overrides": sorted(overrides.keys()),
            "environment_variables": sorted(
                name for name in os.environ if name.startswith("SCRIBE_")
            ),
        },
    }
    json.dump(output, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual launch
    raise SystemExit(main())
