"""Async client for Ollama-style streaming text generation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Mapping

import httpx

from .ai_types import (
    DecodedItem,
    GenerationRequest,
    GenerationResult,
    GenerationState,
    GenerationTransportError,
    MalformedFragment,
)
from .stream_decoder import DEFAULT_FRAMING, build_decoder

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.settings import Settings

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "http://localhost:11434/api/generate"
DEFAULT_MODEL = "llama3"
_JSON_HEADERS: Mapping[str, str] = {"Content-Type": "application/json"}
_ERROR_BODY_LIMIT = 200
_LOG_FRAGMENT_LIMIT = 120

ApplyText = Callable[[str], None]


@dataclass(slots=True)
class ClientSettings:
    """Construction-time configuration for :class:`GenerationClient`."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    model: str = DEFAULT_MODEL
    framing: str = DEFAULT_FRAMING
    request_timeout: float | None = None
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ClientSettings":
        return cls(
            endpoint_url=settings.endpoint_url,
            model=settings.model,
            framing=settings.framing,
            request_timeout=settings.request_timeout,
            default_headers=dict(settings.default_headers) or None,
            debug_logging=settings.debug_logging,
        )


class GenerationClient:
    """Issue one streamed generation request and apply the text as it arrives."""

    def __init__(self, settings: ClientSettings, *, client: httpx.AsyncClient | None = None) -> None:
        # Fail fast on an unknown framing instead of on the first request.
        build_decoder(settings.framing)
        self._settings = settings
        self._owns_client = client is None
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def build_request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(model=self._settings.model, prompt=prompt, stream=True)

    async def stream_fragments(
        self, prompt: str, *, progress: GenerationResult | None = None
    ) -> AsyncIterator[DecodedItem]:
        """Yield decoded fragments in arrival order.

        When ``progress`` is given, its chunk counter and state are updated as
        chunks arrive. Raises :class:`GenerationTransportError` when the
        endpoint cannot be reached, answers with a non-2xx status, or has no
        body.
        """

        payload = self.build_request(prompt).as_payload()
        LOGGER.debug(
            "Starting streamed generation via %s (model=%s, %d prompt chars)",
            self._settings.endpoint_url,
            self._settings.model,
            len(prompt),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        decoder = build_decoder(self._settings.framing)
        try:
            async with self._client.stream(
                "POST",
                self._settings.endpoint_url,
                json=payload,
                headers=self._request_headers(),
            ) as response:
                await self._raise_for_unusable(response)
                async for chunk in response.aiter_bytes():
                    if progress is not None:
                        progress.chunks_received += 1
                        progress.state = GenerationState.DECODING
                    for item in decoder.feed(chunk):
                        yield item
                    if progress is not None:
                        progress.state = GenerationState.AWAITING_CHUNK
                for item in decoder.flush():
                    yield item
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise GenerationTransportError(
                f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
            ) from exc

    async def generate(
        self,
        prompt: str,
        apply: ApplyText,
        *,
        on_rejected: Callable[[MalformedFragment], None] | None = None,
    ) -> GenerationResult:
        """Stream a generation for ``prompt`` into ``apply``.

        ``apply`` receives the full accumulated text after every fragment that
        carries a ``response`` string. Malformed fragments are logged and
        skipped. Transport failures are logged and reported through the
        returned result; they are never raised.
        """

        result = GenerationResult()
        try:
            async for item in self.stream_fragments(prompt, progress=result):
                if isinstance(item, MalformedFragment):
                    result.fragments_rejected += 1
                    LOGGER.warning(
                        "Skipping malformed generation fragment (%s): %r",
                        item.reason,
                        item.raw[:_LOG_FRAGMENT_LIMIT],
                    )
                    if on_rejected is not None:
                        on_rejected(item)
                    continue
                if item.response is None:
                    continue
                result.state = GenerationState.APPLYING
                result.text += item.response
                apply(result.text)
                result.fragments_applied += 1
                result.state = GenerationState.AWAITING_CHUNK
        except GenerationTransportError as exc:
            result.state = GenerationState.FAILED
            result.error = str(exc)
            result.status_code = exc.status_code
            LOGGER.error("Generation via %s failed: %s", self._settings.endpoint_url, exc)
            return result

        result.state = GenerationState.COMPLETED
        LOGGER.info(
            "Generation completed: %d fragment(s) applied, %d rejected, %d chars",
            result.fragments_applied,
            result.fragments_rejected,
            len(result.text),
        )
        return result

    async def _raise_for_unusable(self, response: httpx.Response) -> None:
        status = response.status_code
        if response.is_success and status != httpx.codes.NO_CONTENT:
            return
        if status == httpx.codes.NO_CONTENT:
            raise GenerationTransportError("endpoint returned no response body", status_code=status)
        body = await response.aread()
        detail = _error_detail(body)
        message = f"HTTP {status} {response.reason_phrase}".rstrip()
        if detail:
            message = f"{message}: {detail}"
        raise GenerationTransportError(message, status_code=status)

    def _request_headers(self) -> Dict[str, str]:
        headers = dict(self._settings.default_headers or {})
        headers.update(_JSON_HEADERS)
        return headers

    def _build_client(self, settings: ClientSettings) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout))

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        LOGGER.debug("Generation payload:\n%s", json.dumps(payload, ensure_ascii=False, indent=2))

    async def aclose(self) -> None:
        """Close the HTTP client when this instance created it."""

        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _error_detail(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    if not text:
        return ""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text[:_ERROR_BODY_LIMIT]
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return text[:_ERROR_BODY_LIMIT]
