"""In-memory note buffer used by the headless host and tests."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class DocumentMetadata:
    """Where the note came from and when it last changed."""

    path: Optional[Path] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(slots=True)
class DocumentState:
    """Mutable note text exposing the editor surface the rewrite command uses.

    ``get_value``/``set_value`` mirror the host editor's read-full-text and
    replace-full-text operations; every ``set_value`` bumps ``version_id``.
    """

    text: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    dirty: bool = False
    version_id: int = 1
    content_hash: str = field(default_factory=str)

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = _hash_text(self.text)

    def update_text(self, new_text: str) -> None:
        """Replace the full text and mark the note dirty."""

        self.text = new_text
        self.dirty = True
        self.metadata.updated_at = _utcnow()
        self.version_id += 1
        self.content_hash = _hash_text(new_text)

    def get_value(self) -> str:
        return self.text

    def set_value(self, text: str) -> None:
        self.update_text(text)

    def snapshot(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": self.text,
            "dirty": self.dirty,
            "version_id": self.version_id,
            "content_hash": self.content_hash,
        }
        if self.metadata.path:
            payload["path"] = str(self.metadata.path)
        return payload
