"""Lifecycle notifications emitted by the orchestrator.

Each event is a small dataclass; subscribers register by event type. Delivery
is synchronous and a failing subscriber never affects the others or the
emitter.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from spec_debate.models import Critique, DebateRound, DebateSession, Persona

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundStarting:
    round_number: int


@dataclass(frozen=True)
class CritiqueStarting:
    backend: str
    persona: Persona


@dataclass(frozen=True)
class CritiqueComplete:
    critique: Critique


@dataclass(frozen=True)
class RoundComplete:
    round: DebateRound


@dataclass(frozen=True)
class SynthesisStarting:
    pass


@dataclass(frozen=True)
class SynthesisComplete:
    refined_spec: str


@dataclass(frozen=True)
class DebateComplete:
    session: DebateSession


@dataclass(frozen=True)
class DebateError:
    message: str


E = TypeVar("E")

Handler = Callable[[Any], None]


class EventBus:
    """Publish/subscribe keyed on event class."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register handler for event_type. Returns a callable that unsubscribes it."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[event_type].remove(handler)
            except ValueError:
                pass  # already removed

        return unsubscribe

    def emit(self, event: object) -> None:
        # Copy so a handler that unsubscribes does not skip its neighbour
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception("Subscriber for %s failed", type(event).__name__)
