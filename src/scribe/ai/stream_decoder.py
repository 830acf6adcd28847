"""Incremental decoding of the generation endpoint's JSON fragment stream.

The endpoint answers with newline-delimited JSON objects, but transport
chunks are not aligned with those lines. Two framings are supported:

``"chunk"``
    Every transport chunk is decoded and parsed on its own. Objects that span
    chunk boundaries are reported as malformed and dropped.

``"lines"``
    Decoded text is buffered and parsed one complete line at a time. A
    trailing partial line is consumed early when it already parses as a full
    object, so servers that do not newline-terminate fragments still stream.
    Buffered text that cannot be completed by the next chunk is reported as
    malformed as soon as that chunk starts a complete object of its own.

Both framings share a stateful UTF-8 decoder, so a multi-byte character split
across chunks is completed when the next chunk arrives.
"""

from __future__ import annotations

import codecs
import json
from typing import ClassVar, List

from .ai_types import DecodedItem, GenerationFragment, MalformedFragment

__all__ = [
    "DEFAULT_FRAMING",
    "FRAMING_CHOICES",
    "FragmentDecoder",
    "ChunkFragmentDecoder",
    "LineFragmentDecoder",
    "build_decoder",
    "parse_fragment",
]

DEFAULT_FRAMING = "lines"
FRAMING_CHOICES: tuple[str, ...] = ("lines", "chunk")


def parse_fragment(text: str) -> DecodedItem:
    """Parse ``text`` as exactly one JSON object."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        return MalformedFragment(raw=text, reason=f"invalid JSON: {exc.msg} (char {exc.pos})")
    if not isinstance(payload, dict):
        return MalformedFragment(
            raw=text, reason=f"expected a JSON object, got {type(payload).__name__}"
        )
    return GenerationFragment.from_payload(payload)


class FragmentDecoder:
    """Base class holding the incremental UTF-8 decoder."""

    framing: ClassVar[str] = ""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="strict")

    def feed(self, chunk: bytes) -> List[DecodedItem]:
        """Decode one transport chunk and return the items it completes."""

        try:
            text = self._utf8.decode(chunk)
        except UnicodeDecodeError as exc:
            return self._decode_failure(chunk, exc)
        return self._consume(text)

    def flush(self) -> List[DecodedItem]:
        """Signal end of stream and return whatever the remaining bytes yield."""

        try:
            text = self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            return self._decode_failure(b"", exc)
        return self._finish(text)

    def _decode_failure(self, chunk: bytes, exc: UnicodeDecodeError) -> List[DecodedItem]:
        self._utf8.reset()
        self._discard()
        return [
            MalformedFragment(
                raw=chunk.decode("utf-8", errors="replace"),
                reason=f"invalid UTF-8: {exc.reason}",
            )
        ]

    def _consume(self, text: str) -> List[DecodedItem]:
        raise NotImplementedError

    def _finish(self, text: str) -> List[DecodedItem]:
        raise NotImplementedError

    def _discard(self) -> None:
        """Drop any buffered text after a decode failure."""


class ChunkFragmentDecoder(FragmentDecoder):
    """Parse each decoded chunk as one standalone JSON object."""

    framing = "chunk"

    def _consume(self, text: str) -> List[DecodedItem]:
        return [parse_fragment(text)]

    def _finish(self, text: str) -> List[DecodedItem]:
        return [parse_fragment(text)] if text else []


class LineFragmentDecoder(FragmentDecoder):
    """Buffer decoded text and parse it one newline-terminated line at a time."""

    framing = "lines"

    def __init__(self) -> None:
        super().__init__()
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def _consume(self, text: str) -> List[DecodedItem]:
        items: List[DecodedItem] = []
        if self._pending and self._starts_new_object(text.split("\n", 1)[0]):
            # The buffered text can never complete; report it and start over.
            items.append(parse_fragment(self._pending))
            self._pending = ""
        *lines, self._pending = (self._pending + text).split("\n")
        items.extend(parse_fragment(line) for line in lines if line.strip())
        if self._pending.strip():
            candidate = parse_fragment(self._pending)
            if isinstance(candidate, GenerationFragment):
                items.append(candidate)
                self._pending = ""
        return items

    def _starts_new_object(self, head: str) -> bool:
        if not head.strip() or not isinstance(parse_fragment(head), GenerationFragment):
            return False
        joined = self._pending + head
        try:
            json.loads(joined)
        except json.JSONDecodeError as exc:
            # Failing at the end of input means more text could still complete it.
            return exc.pos < len(joined.rstrip())
        return False

    def _finish(self, text: str) -> List[DecodedItem]:
        remainder = self._pending + text
        self._pending = ""
        if not remainder.strip():
            return []
        return [parse_fragment(line) for line in remainder.split("\n") if line.strip()]

    def _discard(self) -> None:
        self._pending = ""


_DECODERS: dict[str, type[FragmentDecoder]] = {
    ChunkFragmentDecoder.framing: ChunkFragmentDecoder,
    LineFragmentDecoder.framing: LineFragmentDecoder,
}


def build_decoder(framing: str = DEFAULT_FRAMING) -> FragmentDecoder:
    key = (framing or "").strip().lower()
    try:
        return _DECODERS[key]()
    except KeyError:
        raise ValueError(
            f"Unknown stream framing {framing!r}; expected one of {', '.join(FRAMING_CHOICES)}"
        ) from None
