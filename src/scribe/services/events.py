"""Typed event bus connecting the rewrite command to status and notice surfaces.

The generation client knows nothing about the host UI; the plugin publishes
lifecycle events here and the status bar / notice adapters subscribe.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

    from ..ai.ai_types import GenerationResult

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the bus."""


@dataclass(slots=True)
class GenerationStarted(Event):
    """Emitted before the generation request is sent.

    Attributes:
        prompt_chars: Length of the prompt handed to the client.
    """

    prompt_chars: int


@dataclass(slots=True)
class FragmentApplied(Event):
    """Emitted after the editor buffer was overwritten with new text."""

    index: int
    text_length: int


@dataclass(slots=True)
class FragmentRejected(Event):
    """Emitted for every fragment that failed to decode."""

    reason: str


@dataclass(slots=True)
class GenerationCompleted(Event):
    """Emitted when the response stream was consumed to the end."""

    result: "GenerationResult"


@dataclass(slots=True)
class GenerationFailed(Event):
    """Emitted when no usable response could be obtained.

    Attributes:
        error: Human-readable failure description.
        status_code: HTTP status of the response, if one arrived.
    """

    error: str
    status_code: int | None = None


@dataclass(slots=True)
class NoticePosted(Event):
    """Emitted when a short notice should be shown to the user."""

    message: str


# Published once per fragment; keep them out of the debug log.
_QUIET_EVENT_TYPES: set[type] = {FragmentApplied}


class EventBus(Generic[E]):
    """A typed publish-subscribe bus.

    Bound-method handlers are held weakly so a discarded subscriber does not
    keep receiving events. Handler exceptions are logged and do not stop
    delivery to the remaining handlers. Not thread-safe; use it from the
    event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s", _handler_name(handler), event_type.__name__
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` synchronously to handlers in registration order."""

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        found_dead = False
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                found_dead = True
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        if found_dead:
            handlers[:] = [ref for ref in handlers if ref.resolve() is not None]

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "GenerationStarted",
    "FragmentApplied",
    "FragmentRejected",
    "GenerationCompleted",
    "GenerationFailed",
    "NoticePosted",
]
