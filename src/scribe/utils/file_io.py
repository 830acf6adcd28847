"""Note file helpers used by the headless entry point."""

from __future__ import annotations

import codecs
import os
import tempfile
from pathlib import Path

__all__ = ["read_note", "write_note", "is_markdown_path"]

_MARKDOWN_SUFFIXES = {".md", ".markdown"}


def read_note(path: Path | str) -> str:
    """Read a note as UTF-8 text, dropping a leading BOM and normalizing newlines."""

    raw = Path(path).read_bytes()
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8):]
    text = raw.decode("utf-8")
    if "\r" not in text:
        return text
    return text.replace("\r\n", "\n").replace("\r", "\n")


def write_note(path: Path | str, content: str) -> Path:
    """Atomically replace ``path`` with ``content`` encoded as UTF-8."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target


def is_markdown_path(path: Path | str) -> bool:
    return Path(path).suffix.lower() in _MARKDOWN_SUFFIXES
