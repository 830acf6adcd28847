"""Tests for incremental fragment decoding."""

from __future__ import annotations

import pytest

from scribe.ai.ai_types import GenerationFragment, MalformedFragment
from scribe.ai.stream_decoder import (
    ChunkFragmentDecoder,
    LineFragmentDecoder,
    build_decoder,
    parse_fragment,
)


def _texts(items) -> list[str | None]:
    return [item.response if isinstance(item, GenerationFragment) else "<malformed>" for item in items]


class TestParseFragment:
    def test_object_with_response(self) -> None:
        item = parse_fragment('{"response": "hi", "done": false}')
        assert isinstance(item, GenerationFragment)
        assert item.response == "hi"
        assert item.done is False

    def test_missing_response_is_valid(self) -> None:
        item = parse_fragment('{"done": true, "eval_count": 12}')
        assert isinstance(item, GenerationFragment)
        assert item.response is None
        assert item.done is True

    def test_non_string_response_is_ignored(self) -> None:
        item = parse_fragment('{"response": 42}')
        assert isinstance(item, GenerationFragment)
        assert item.response is None

    @pytest.mark.parametrize(
        "text",
        ['{"response": "a"}{"response": "b"}', '["response"]', '"response"', '{"response": "a', ""],
    )
    def test_anything_but_one_object_is_malformed(self, text: str) -> None:
        item = parse_fragment(text)
        assert isinstance(item, MalformedFragment)
        assert item.raw == text
        assert item.reason


class TestChunkFragmentDecoder:
    def test_each_chunk_is_parsed_alone(self) -> None:
        decoder = ChunkFragmentDecoder()

        first = decoder.feed(b'{"response": "Acme"}')
        second = decoder.feed(b'{"response": " Corp"}\n')

        assert _texts(first) == ["Acme"]
        assert _texts(second) == [" Corp"]
        assert decoder.flush() == []

    def test_object_split_across_chunks_is_dropped(self) -> None:
        decoder = ChunkFragmentDecoder()

        items = decoder.feed(b'{"response": "Ac') + decoder.feed(b'me"}')

        assert _texts(items) == ["<malformed>", "<malformed>"]

    def test_split_multibyte_character_is_carried_over(self) -> None:
        decoder = ChunkFragmentDecoder()
        encoded = '{"response": "é"}'.encode("utf-8")
        cut = encoded.index(b"\xc3") + 1

        head = decoder.feed(encoded[:cut])
        tail = decoder.feed(encoded[cut:])

        # Neither half is a full object, but the second half decodes the
        # completed character instead of raising.
        assert isinstance(head[0], MalformedFragment)
        assert isinstance(tail[0], MalformedFragment)
        assert tail[0].raw.startswith("é")

    def test_invalid_utf8_is_reported_and_decoding_continues(self) -> None:
        decoder = ChunkFragmentDecoder()

        bad = decoder.feed(b'{"response": "\xff"}')
        good = decoder.feed(b'{"response": "ok"}')

        assert isinstance(bad[0], MalformedFragment)
        assert "UTF-8" in bad[0].reason
        assert _texts(good) == ["ok"]

    def test_truncated_character_at_end_of_stream(self) -> None:
        decoder = ChunkFragmentDecoder()
        decoder.feed(b'{"response": "ok"}\xe6\x97')

        leftover = decoder.flush()

        assert len(leftover) == 1
        assert isinstance(leftover[0], MalformedFragment)


class TestLineFragmentDecoder:
    def test_partial_line_is_buffered_until_complete(self) -> None:
        decoder = LineFragmentDecoder()

        assert decoder.feed(b'{"response": "Ac') == []
        assert decoder.pending == '{"response": "Ac'
        assert _texts(decoder.feed(b'me"}\n{"response": " Co')) == ["Acme"]
        assert _texts(decoder.feed(b'rp"}\n')) == [" Corp"]
        assert decoder.pending == ""

    def test_multibyte_split_inside_line(self) -> None:
        decoder = LineFragmentDecoder()
        encoded = '{"response": "日本"}\n'.encode("utf-8")

        items = []
        for i in range(len(encoded)):
            items.extend(decoder.feed(encoded[i : i + 1]))

        assert _texts(items) == ["日本"]

    def test_several_lines_in_one_chunk(self) -> None:
        decoder = LineFragmentDecoder()

        items = decoder.feed(b'{"response": "a"}\n\n{"response": "b"}\r\n{"done": true}\n')

        assert _texts(items) == ["a", "b", None]

    def test_complete_object_without_newline_is_consumed_early(self) -> None:
        decoder = LineFragmentDecoder()

        assert _texts(decoder.feed(b'{"response": "a"}')) == ["a"]
        assert _texts(decoder.feed(b'\n{"response": "b"}')) == ["b"]
        assert decoder.flush() == []

    def test_malformed_line_does_not_affect_neighbours(self) -> None:
        decoder = LineFragmentDecoder()

        items = decoder.feed(b'{"response": "a"}\noops\n{"response": "b"}\n')

        assert _texts(items) == ["a", "<malformed>", "b"]

    def test_unparseable_remainder_is_reported_on_flush(self) -> None:
        decoder = LineFragmentDecoder()

        assert decoder.feed(b'{"response": "a"}{"response": "b"}') == []
        leftover = decoder.flush()

        assert len(leftover) == 1
        assert isinstance(leftover[0], MalformedFragment)
        assert decoder.pending == ""

    def test_stale_garbage_is_reported_when_a_new_object_arrives(self) -> None:
        decoder = LineFragmentDecoder()

        assert decoder.feed(b"not json") == []
        items = decoder.feed(b'{"response": "b"}')

        assert isinstance(items[0], MalformedFragment)
        assert items[0].raw == "not json"
        assert _texts(items[1:]) == ["b"]
        assert decoder.pending == ""

    def test_stale_garbage_before_terminated_line(self) -> None:
        decoder = LineFragmentDecoder()
        decoder.feed(b'{"response": "a"}{"response": "b"}')

        items = decoder.feed(b'{"response": "c"}\n{"response": "d')

        assert _texts(items) == ["<malformed>", "c"]
        assert decoder.pending == '{"response": "d'

    def test_partial_object_is_not_mistaken_for_garbage(self) -> None:
        decoder = LineFragmentDecoder()
        decoder.feed(b'{"response": "a", "options": ')

        assert decoder.feed(b'{"x": 1}') == []
        assert _texts(decoder.feed(b"}\n")) == ["a"]

    def test_invalid_utf8_discards_pending_text(self) -> None:
        decoder = LineFragmentDecoder()
        decoder.feed(b'{"response": "a')

        bad = decoder.feed(b'\xff"}\n')
        good = decoder.feed(b'{"response": "b"}\n')

        assert isinstance(bad[0], MalformedFragment)
        assert decoder.pending == ""
        assert _texts(good) == ["b"]


def test_build_decoder_selects_framing() -> None:
    assert isinstance(build_decoder("chunk"), ChunkFragmentDecoder)
    assert isinstance(build_decoder(" LINES "), LineFragmentDecoder)
    assert isinstance(build_decoder(), LineFragmentDecoder)


def test_build_decoder_rejects_unknown_framing() -> None:
    with pytest.raises(ValueError, match="Unknown stream framing"):
        build_decoder("sse")
