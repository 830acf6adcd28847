"""Shared test helpers: fake editors and streaming HTTP transports."""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable

import httpx

from scribe.ai.client import ClientSettings, GenerationClient


class RecordingEditor:
    """Editor stub that records every full-buffer write."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.writes: list[str] = []

    def get_value(self) -> str:
        return self.text

    def set_value(self, text: str) -> None:
        self.text = text
        self.writes.append(text)


def ndjson(*fragments: str, **extra: Any) -> bytes:
    """Encode ``fragments`` as newline-terminated generate-API lines."""

    lines = [json.dumps({"model": "llama3", "response": text, "done": False, **extra}) for text in fragments]
    return "".join(f"{line}\n" for line in lines).encode("utf-8")


def streaming_transport(
    chunks: Iterable[bytes],
    *,
    status_code: int = 200,
    requests: list[httpx.Request] | None = None,
    fail_after: int | None = None,
) -> httpx.MockTransport:
    """Transport answering every request with ``chunks`` streamed one by one.

    When ``fail_after`` is set, the body raises ``httpx.ReadError`` after that
    many chunks.
    """

    payload = list(chunks)

    async def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)

        async def body():
            for index, chunk in enumerate(payload):
                if fail_after is not None and index >= fail_after:
                    raise httpx.ReadError("connection reset by peer")
                yield chunk

        return httpx.Response(status_code, content=body())

    return httpx.MockTransport(handler)


def raising_transport(factory: Callable[[httpx.Request], Exception]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise factory(request)

    return httpx.MockTransport(handler)


def make_client(
    chunks: Iterable[bytes] = (),
    *,
    framing: str = "lines",
    status_code: int = 200,
    requests: list[httpx.Request] | None = None,
    transport: httpx.MockTransport | None = None,
    **settings: Any,
) -> GenerationClient:
    active_transport = transport or streaming_transport(
        chunks, status_code=status_code, requests=requests
    )
    http_client = httpx.AsyncClient(transport=active_transport)
    return GenerationClient(ClientSettings(framing=framing, **settings), client=http_client)
