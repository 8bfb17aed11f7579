from __future__ import annotations

"""Explain Mode: one-line traces of quiz milestones.

Each line carries the milliseconds since tracing was switched on, which is
what matters when following a timed question:

    [EXPLAIN +1520ms] question_answered :: {"index":0,"correct":true}
"""

import json
import time
from typing import Any, Callable, Dict, Optional

_ENABLED = False
_STARTED = 0.0
_WRITER: Callable[[str], None] = print


def enable(flag: bool = True, *, writer: Optional[Callable[[str], None]] = None) -> None:
    global _ENABLED, _STARTED, _WRITER
    _ENABLED = bool(flag)
    _STARTED = time.monotonic()
    _WRITER = writer or print


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    offset = int((time.monotonic() - _STARTED) * 1000)
    try:
        body = json.dumps(payload or {}, separators=(",", ":"), default=str)
        _WRITER(f"[EXPLAIN +{offset}ms] {event} :: {body}")
    except Exception:
        # tracing must never break a running question
        pass
