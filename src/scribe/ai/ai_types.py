"""Shared data types for the streaming generation client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Union


@dataclass(slots=True, frozen=True)
class GenerationRequest:
    """Payload sent once per invocation to the generation endpoint."""

    model: str
    prompt: str
    stream: bool = True

    def as_payload(self) -> Dict[str, Any]:
        return {"model": self.model, "prompt": self.prompt, "stream": self.stream}


@dataclass(slots=True, frozen=True)
class GenerationFragment:
    """One JSON object decoded from the response stream.

    ``response`` is ``None`` when the server omitted the field (or sent a
    non-string value); such fragments are valid and simply contribute nothing.
    """

    response: str | None
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return bool(self.raw.get("done", False))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GenerationFragment":
        text = payload.get("response")
        return cls(response=text if isinstance(text, str) else None, raw=dict(payload))


@dataclass(slots=True, frozen=True)
class MalformedFragment:
    """A decoded unit that could not be interpreted as a single JSON object."""

    raw: str
    reason: str


DecodedItem = Union[GenerationFragment, MalformedFragment]


class GenerationState(str, Enum):
    """States of one streaming invocation."""

    AWAITING_CHUNK = "awaiting_chunk"
    DECODING = "decoding"
    APPLYING = "applying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class GenerationResult:
    """Outcome of :meth:`GenerationClient.generate`."""

    state: GenerationState = GenerationState.AWAITING_CHUNK
    text: str = ""
    fragments_applied: int = 0
    fragments_rejected: int = 0
    chunks_received: int = 0
    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.state is GenerationState.COMPLETED


class GenerationTransportError(RuntimeError):
    """Raised when no usable response body could be obtained."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
