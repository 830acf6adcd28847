"""Prompt building and the streaming generation client."""

from .ai_types import (
    GenerationFragment,
    GenerationRequest,
    GenerationResult,
    GenerationState,
    GenerationTransportError,
    MalformedFragment,
)
from .client import ClientSettings, GenerationClient
from .prompts import NOTE_TEMPLATE, build_rewrite_prompt

__all__ = [
    "ClientSettings",
    "GenerationClient",
    "GenerationFragment",
    "GenerationRequest",
    "GenerationResult",
    "GenerationState",
    "GenerationTransportError",
    "MalformedFragment",
    "NOTE_TEMPLATE",
    "build_rewrite_prompt",
]
