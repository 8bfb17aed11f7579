from __future__ import annotations

"""Tiny pub/sub event bus.

Carries host signals into the quiz (``visibility_hidden``,
``visibility_visible``, ``teardown``) and session lifecycle events out of
it (``question_started``, ``question_locked``, ``finished``,
``attempt_saved``).
"""

from typing import Any, Callable, Dict, List

VISIBILITY_HIDDEN = "visibility_hidden"
VISIBILITY_VISIBLE = "visibility_visible"
TEARDOWN = "teardown"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception:
                # Best effort; keep going
                pass
